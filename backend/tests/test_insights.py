from datetime import timedelta

from sentinel.schemas import Trend
from sentinel.services.insights import (
    classify_trend,
    compute_insights,
    daily_attendance,
    daily_report,
    dominant_emotion,
    hourly_engagement,
    round_half_up,
)

from conftest import NOW, make_record


def test_empty_inputs_give_zero_metrics():
    snap = compute_insights([], [], now=NOW)
    assert snap.total_students == 0
    assert snap.present_students == 0
    assert snap.attendance_rate == 0
    assert snap.engagement_score == 0
    assert snap.emotion_counts == {}
    assert snap.dominant_emotion == "neutral"
    assert snap.daily_attendance == [0] * 7
    assert snap.avg_attendance == 0
    assert snap.trend == Trend.STABLE


def test_empty_roster_rate_is_zero_even_with_records():
    records = [make_record("1"), make_record("2")]
    snap = compute_insights(records, [], now=NOW)
    assert snap.present_students == 2
    assert snap.attendance_rate == 0


def test_attendance_rate_counts_distinct_students(students):
    # duplicate (session, student) pair injected around the controller
    records = [make_record("1"), make_record("1"), make_record("2", session_id="session_b")]
    snap = compute_insights(records, students, now=NOW)
    assert snap.present_students == 2
    assert snap.attendance_rate == 50
    assert snap.total_records == 3


def test_attendance_rate_bounds(students):
    records = [make_record(s.id) for s in students] + [make_record("ghost")]
    snap = compute_insights(records, students, now=NOW)
    # ids missing from the roster still count as present, but the rate is capped
    assert snap.present_students == 5
    assert snap.attendance_rate == 100
    snap = compute_insights([make_record("1")], students, now=NOW)
    assert snap.attendance_rate == 25


def test_only_today_counts_for_today_metrics(students):
    records = [make_record("1", "happy", days_ago=1), make_record("2", "sad", days_ago=3)]
    snap = compute_insights(records, students, now=NOW)
    assert snap.present_students == 0
    assert snap.engagement_score == 0
    assert snap.emotion_counts == {}
    assert snap.dominant_emotion == "neutral"


def test_dominant_and_engagement(students):
    records = [make_record("1", "happy"), make_record("2", "happy"), make_record("3", "focused")]
    snap = compute_insights(records, students, now=NOW)
    assert snap.dominant_emotion == "happy"
    assert snap.engagement_score == 100
    assert snap.emotion_counts == {"happy": 2, "focused": 1}


def test_engagement_rounds_half_up(students):
    records = [make_record("1", "happy"), make_record("2", "sad"),
               make_record("3", "sad"), make_record("4", "sad"),
               make_record("5", "happy"), make_record("6", "sad"),
               make_record("7", "sad"), make_record("8", "sad")]
    # 2 of 8 -> 25
    assert compute_insights(records, students, now=NOW).engagement_score == 25
    assert round_half_up(2.5) == 3
    assert round_half_up(12.5) == 13


def test_dominant_tie_goes_to_first_tallied():
    assert dominant_emotion({"sad": 2, "happy": 2}) == "sad"
    assert dominant_emotion({"happy": 2, "sad": 2}) == "happy"
    assert dominant_emotion({}) == "neutral"


def test_daily_attendance_window_oldest_first():
    records = [
        make_record("1", days_ago=6), make_record("2", days_ago=6),
        make_record("1", days_ago=3),
        make_record("1"), make_record("2"), make_record("3"),
        make_record("9", days_ago=7),   # outside the window
    ]
    assert daily_attendance(records, NOW.date()) == [2, 0, 0, 1, 0, 0, 3]


def test_trend_uses_oldest_and_newest_only():
    assert classify_trend([5, 6, 7, 8, 9, 10, 12]) == Trend.INCREASING
    assert classify_trend([10, 9, 8, 7, 6, 5, 4]) == Trend.DECREASING
    assert classify_trend([5, 5, 5, 5, 5, 5, 5]) == Trend.STABLE
    assert classify_trend([5, 0, 20, 0, 20, 0, 5]) == Trend.STABLE


def test_snapshot_trend_and_average(students):
    records = [make_record("1", days_ago=6), make_record("2", days_ago=6), make_record("1")]
    snap = compute_insights(records, students, now=NOW)
    assert snap.daily_attendance == [2, 0, 0, 0, 0, 0, 1]
    assert snap.avg_attendance == 0        # 3 / 7 rounds down
    assert snap.trend == Trend.DECREASING


def test_today_is_evaluated_per_call(students):
    records = [make_record("1", "happy")]
    assert compute_insights(records, students, now=NOW).present_students == 1
    tomorrow = NOW + timedelta(days=1)
    snap = compute_insights(records, students, now=tomorrow)
    assert snap.present_students == 0
    assert snap.daily_attendance[-2] == 1


def test_idempotent(students):
    records = [make_record("1", "happy"), make_record("2", "bored", days_ago=2)]
    assert compute_insights(records, students, now=NOW) == compute_insights(records, students, now=NOW)


def test_input_order_does_not_matter_for_counts(students):
    records = [make_record("1", "happy", days_ago=2), make_record("2", "sad"), make_record("3", "happy")]
    a = compute_insights(records, students, now=NOW)
    b = compute_insights(list(reversed(records)), students, now=NOW)
    assert a.present_students == b.present_students
    assert a.daily_attendance == b.daily_attendance
    assert a.emotion_counts == b.emotion_counts


def test_hourly_engagement_buckets_by_hour():
    records = [
        make_record("1", "happy", hour=9),
        make_record("2", "sad", hour=9),
        make_record("3", "focused", hour=14, days_ago=2),
    ]
    hourly = hourly_engagement(records)
    assert len(hourly) == 24
    assert hourly[9] == 50
    assert hourly[14] == 100
    assert sum(hourly) == 150


def test_daily_report(students):
    records = [
        make_record("1", "bored", session_id="s1"),
        make_record("2", "happy", session_id="s1"),
        make_record("1", "bored", session_id="s2"),
        make_record("3", "happy", days_ago=1, session_id="s0"),
    ]
    report = daily_report(records, students, NOW.date())
    assert report.total_records == 3
    assert report.unique_students == 2
    assert report.attendance_rate == 50
    assert report.session_count == 2
    assert report.engagement_score == 33
    assert report.emotion_stats == [("bored", 2), ("happy", 1)]

    empty = daily_report(records, students, NOW.date() - timedelta(days=5))
    assert empty.total_records == 0
    assert empty.engagement_score == 0
    assert empty.emotion_stats == []
