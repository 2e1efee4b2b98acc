# backend/sentinel/services/capture.py
"""
Session capture controller.

- start_session() allocates a session id and starts one repeating asyncio task
  on the running loop; calling it again while running is a no-op
- each tick runs exactly one detection pass, then sleeps; passes are sequential
  inside the task and also serialized by a lock, so they never overlap
- a student is recorded at most once per session (attendee set)
- stop_session() cancels the task; no pass starts after it returns
"""
import asyncio
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set

from sentinel.schemas import AttendanceRecord, Detection
from sentinel.services.detection import DetectionSource
from sentinel.services.store import AttendanceStore, Roster

logger = logging.getLogger(__name__)

DETECTION_INTERVAL = 2.0  # seconds


def new_session_id() -> str:
    return f"session_{uuid.uuid4().hex[:12]}"


def new_record_id() -> str:
    return f"record_{uuid.uuid4().hex}"


def normalize_confidence(value: float) -> float:
    """Clamp to [0, 1] and round half-up to 2 decimals."""
    value = min(1.0, max(0.0, float(value)))
    return int(value * 100 + 0.5) / 100


class CaptureController:

    def __init__(self, roster: Roster, store: AttendanceStore, source: DetectionSource,
                 interval: float = DETECTION_INTERVAL):
        self.roster = roster
        self.store = store
        self.source = source
        self.interval = interval

        self.session_id: Optional[str] = None
        self._attendees: Set[str] = set()
        self._task: Optional[asyncio.Task] = None
        self._pass_lock = asyncio.Lock()
        self.passes = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "session_id": self.session_id,
            "attendees": len(self._attendees),
            "total_students": len(self.roster),
            "passes": self.passes,
            "interval": self.interval,
        }

    # ---------------------------
    # SESSION CONTROL
    # ---------------------------
    def start_session(self) -> str:
        """
        Start a capture session on the running event loop and return its id.
        Idempotent: while a session is running its id is returned unchanged.
        Raises RuntimeError when called outside a running loop.
        """
        if self.running:
            return self.session_id

        loop = asyncio.get_running_loop()
        self.session_id = new_session_id()
        self._attendees = set()
        self.passes = 0
        self._task = loop.create_task(self._capture_loop(), name=f"capture-{self.session_id}")
        logger.info("capture session %s started (interval %.1fs)", self.session_id, self.interval)
        return self.session_id

    async def stop_session(self) -> Optional[str]:
        """Cancel the capture loop and drop session state. Returns the stopped session id."""
        task, self._task = self._task, None
        session_id = self.session_id
        self.session_id = None
        self._attendees = set()
        # pending input belongs to the stopped session
        self.source.reset()

        if task:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if session_id:
            logger.info("capture session %s stopped", session_id)
        return session_id

    # ---------------------------
    # DETECTION CYCLE
    # ---------------------------
    async def _capture_loop(self):
        while True:
            try:
                await self.run_pass()
            except asyncio.CancelledError:
                raise
            except Exception:
                # a broken pass must not end the session
                logger.exception("capture pass failed")
            await asyncio.sleep(self.interval)

    async def run_pass(self) -> List[AttendanceRecord]:
        """
        Run one detection pass and return the records it created.
        A pass belongs to the session active when it took the lock; if that
        session ended while the source was awaited, its detections are dropped.
        """
        async with self._pass_lock:
            session_id = self.session_id
            if session_id is None:
                return []
            detections = await self._detect()
            if self.session_id != session_id:
                logger.info("pass for ended session %s discarded", session_id)
                return []
            self.passes += 1
            return self.process_detections(detections, session_id)

    async def _detect(self) -> List[Detection]:
        try:
            return list(await self.source.detect(self.roster))
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("detection source failed, treating pass as empty")
            return []

    def process_detections(self, detections: Iterable[Detection],
                           session_id: Optional[str] = None) -> List[AttendanceRecord]:
        """
        Turn detections into records for the active session. No awaits in here:
        the dedup check and the append happen without a suspension point.
        A session_id other than the active one yields nothing.
        """
        if self.session_id is None or session_id not in (None, self.session_id):
            return []
        session_id = self.session_id

        created: List[AttendanceRecord] = []
        for det in detections:
            if det.student_id in self._attendees:
                continue

            student = self.roster.get(det.student_id)
            if student is None:
                logger.warning("detection for unknown student %r ignored", det.student_id)
                continue

            record = AttendanceRecord(
                id=new_record_id(),
                student_id=student.id,
                student_name=student.name,
                timestamp=datetime.now().astimezone(),
                emotion=det.emotion,
                confidence=normalize_confidence(det.confidence),
                session_id=session_id,
            )
            self.store.append(record)
            self._attendees.add(student.id)
            created.append(record)
            logger.info("recorded %s (%s, %.2f) in %s",
                        student.name, record.emotion.value, record.confidence, session_id)
        return created
