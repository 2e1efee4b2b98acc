# backend/sentinel/services/classroom.py
from datetime import date, datetime
from typing import Iterable, List, Optional

from sentinel.core.config import Settings
from sentinel.schemas import (
    AttendanceRecord,
    DailyReport,
    InsightsSnapshot,
    Recommendation,
    Student,
)
from sentinel.services import insights as agg
from sentinel.services.assistant import AssistantClient
from sentinel.services.capture import CaptureController
from sentinel.services.detection import DetectionSource, build_source
from sentinel.services.recommendations import generate_recommendations
from sentinel.services.store import AttendanceStore, Roster


class Classroom:
    """
    Explicit owner of all core state for one classroom: roster, record store,
    capture controller and assistant client. Readers only ever get snapshots.
    """

    def __init__(self, roster: Roster, store: AttendanceStore, source: DetectionSource,
                 assistant: AssistantClient, interval: float = 2.0):
        self.roster = roster
        self.store = store
        self.source = source
        self.assistant = assistant
        self.capture = CaptureController(roster, store, source, interval=interval)

        # live snapshot, refreshed on every append; `version` lets pollers detect changes
        self.version = 0
        self._latest: Optional[InsightsSnapshot] = None
        self._latest_day: Optional[date] = None
        self.store.subscribe(self._on_append)

    @classmethod
    def from_settings(cls, settings: Settings, students: Iterable[Student] = (),
                      records: Iterable[AttendanceRecord] = ()) -> "Classroom":
        return cls(
            roster=Roster(students),
            store=AttendanceStore(records),
            source=build_source(settings.detection_source, seed=settings.demo_seed),
            assistant=AssistantClient(
                api_url=settings.assistant_api_url,
                api_key=settings.assistant_api_key,
                model=settings.assistant_model,
                timeout=settings.assistant_timeout,
                temperature=settings.assistant_temperature,
                max_tokens=settings.assistant_max_tokens,
            ),
            interval=settings.detection_interval,
        )

    def _refresh(self, now: datetime) -> None:
        self._latest = self.insights(now=now)
        self._latest_day = agg.local_date(now)

    def _on_append(self, record: AttendanceRecord) -> None:
        self._refresh(datetime.now().astimezone())
        self.version += 1

    def latest_insights(self, now: Optional[datetime] = None) -> InsightsSnapshot:
        """Cached snapshot; a new local day invalidates it and bumps `version`."""
        now = now or datetime.now().astimezone()
        if self._latest is None:
            self._refresh(now)
        elif self._latest_day != agg.local_date(now):
            self._refresh(now)
            self.version += 1
        return self._latest

    def records(self) -> List[AttendanceRecord]:
        return list(self.store.snapshot())

    def insights(self, now: Optional[datetime] = None) -> InsightsSnapshot:
        return agg.compute_insights(self.store.snapshot(), self.roster.list(), now=now)

    def hourly_engagement(self) -> List[int]:
        return agg.hourly_engagement(self.store.snapshot())

    def recommendations(self, now: Optional[datetime] = None) -> List[Recommendation]:
        return generate_recommendations(self.insights(now=now))

    def report(self, day: Optional[date] = None) -> DailyReport:
        day = day or datetime.now().astimezone().date()
        return agg.daily_report(self.store.snapshot(), self.roster.list(), day)
