# backend/sentinel/services/insights.py
"""
Insight aggregation over attendance records.

Everything here is a pure function of (records, roster, now). "Today" is the
calendar date of `now` in the process's local timezone and is re-evaluated on
every call; presence always counts distinct student ids so a duplicated record
can never inflate attendance.
"""
import math
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from sentinel.schemas import (
    AttendanceRecord,
    DailyReport,
    Emotion,
    InsightsSnapshot,
    Student,
    Trend,
)

POSITIVE_EMOTIONS = frozenset({Emotion.HAPPY.value, Emotion.FOCUSED.value})
TREND_WINDOW_DAYS = 7


def round_half_up(value: float) -> int:
    """Round like the dashboards do (2.5 -> 3), not banker's rounding."""
    return int(math.floor(value + 0.5))


def local_date(ts: datetime) -> date:
    # naive timestamps are taken as local time
    return ts.astimezone().date()


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now().astimezone()


def _label(record: AttendanceRecord) -> str:
    return Emotion(record.emotion).value


def _percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100)


def _present(records: Iterable[AttendanceRecord]) -> int:
    return len({r.student_id for r in records})


def engagement_score(records: Sequence[AttendanceRecord]) -> int:
    positive = sum(1 for r in records if _label(r) in POSITIVE_EMOTIONS)
    return _percent(positive, len(records))


def emotion_counts(records: Iterable[AttendanceRecord]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for r in records:
        key = _label(r)
        counts[key] = counts.get(key, 0) + 1
    return counts


def dominant_emotion(counts: Dict[str, int]) -> str:
    """Most frequent emotion; ties go to the key tallied first, "neutral" when empty."""
    if not counts:
        return Emotion.NEUTRAL.value
    return max(counts, key=counts.__getitem__)


def daily_attendance(records: Iterable[AttendanceRecord], today: date,
                     days: int = TREND_WINDOW_DAYS) -> List[int]:
    """Distinct-student count per local date, oldest first, ending at `today`."""
    window = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    seen: Dict[date, set] = {d: set() for d in window}
    for r in records:
        bucket = seen.get(local_date(r.timestamp))
        if bucket is not None:
            bucket.add(r.student_id)
    return [len(seen[d]) for d in window]


def classify_trend(daily: Sequence[int]) -> Trend:
    """Newest day vs oldest day only; interior days are ignored."""
    if not daily:
        return Trend.STABLE
    newest, oldest = daily[-1], daily[0]
    if newest > oldest:
        return Trend.INCREASING
    if newest < oldest:
        return Trend.DECREASING
    return Trend.STABLE


def compute_insights(records: Iterable[AttendanceRecord], roster: Iterable[Student],
                     now: Optional[datetime] = None) -> InsightsSnapshot:
    # materialize once so a concurrent append can't produce a torn read
    records = tuple(records)
    total_students = len(list(roster))
    today = local_date(_now(now))

    todays = [r for r in records if local_date(r.timestamp) == today]
    present = _present(todays)
    counts = emotion_counts(todays)
    daily = daily_attendance(records, today)

    return InsightsSnapshot(
        total_students=total_students,
        total_records=len(todays),
        present_students=present,
        attendance_rate=min(100, _percent(present, total_students)),
        engagement_score=engagement_score(todays),
        emotion_counts=counts,
        dominant_emotion=dominant_emotion(counts),
        daily_attendance=daily,
        avg_attendance=round_half_up(sum(daily) / len(daily)),
        trend=classify_trend(daily),
    )


def hourly_engagement(records: Iterable[AttendanceRecord]) -> List[int]:
    """Engagement percent per local hour of day (0..23) over the whole record set."""
    totals = [0] * 24
    positives = [0] * 24
    for r in records:
        hour = r.timestamp.astimezone().hour
        totals[hour] += 1
        if _label(r) in POSITIVE_EMOTIONS:
            positives[hour] += 1
    return [_percent(p, t) for p, t in zip(positives, totals)]


def daily_report(records: Iterable[AttendanceRecord], roster: Iterable[Student],
                 day: date) -> DailyReport:
    """Per-date summary used by the reports view."""
    total_students = len(list(roster))
    selected = [r for r in records if local_date(r.timestamp) == day]
    unique = _present(selected)

    # most_common keeps first-seen order for equal counts
    stats = Counter(emotion_counts(selected)).most_common()

    return DailyReport(
        date=day,
        total_records=len(selected),
        unique_students=unique,
        total_students=total_students,
        attendance_rate=min(100, _percent(unique, total_students)),
        engagement_score=engagement_score(selected),
        session_count=len({r.session_id for r in selected}),
        emotion_stats=stats,
    )
