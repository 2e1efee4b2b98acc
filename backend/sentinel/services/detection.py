# backend/sentinel/services/detection.py
"""
Detection sources: the boundary to whatever recognizes faces.

A source is polled once per capture pass via `await source.detect(roster)` and
returns zero or more Detection tuples. Sources may raise; the capture
controller treats any failure as an empty pass.
"""
import asyncio
import logging
import random
from collections import deque
from typing import Deque, List, Optional

from sentinel.schemas import Detection, Emotion
from sentinel.services.store import Roster

logger = logging.getLogger(__name__)

MAX_PENDING = 1000   # oldest queued events are dropped beyond this


class DetectionSource:
    async def detect(self, roster: Roster) -> List[Detection]:
        raise NotImplementedError

    def reset(self) -> None:
        """Drop any input buffered for the current session."""


class QueuedDetectionSource(DetectionSource):
    """
    Buffer for detections pushed by the camera agent over HTTP.
    Each pass drains everything queued since the previous pass.
    """

    def __init__(self, maxlen: int = MAX_PENDING):
        self._pending: Deque[Detection] = deque(maxlen=maxlen)
        self._lock = asyncio.Lock()

    async def push(self, detection: Detection) -> None:
        async with self._lock:
            if len(self._pending) == self._pending.maxlen:
                logger.warning("detection queue full, dropping oldest event")
            self._pending.append(detection)

    async def pending(self) -> List[Detection]:
        async with self._lock:
            return list(self._pending)

    def reset(self) -> None:
        # sync so a stopping session empties the queue before yielding
        self._pending.clear()

    async def detect(self, roster: Roster) -> List[Detection]:
        async with self._lock:
            out = list(self._pending)
            self._pending.clear()
        return out


# expressions a webcam expression model can report
DEMO_EMOTIONS = (
    Emotion.HAPPY, Emotion.SAD, Emotion.ANGRY, Emotion.SURPRISED,
    Emotion.FEARFUL, Emotion.DISGUSTED, Emotion.NEUTRAL,
)


class SimulatedDetectionSource(DetectionSource):
    """Demo mode: now and then "sees" a random roster student with a random expression."""

    def __init__(self, seed: Optional[int] = None, hit_rate: float = 0.4):
        self._rng = random.Random(seed)
        self.hit_rate = hit_rate

    async def detect(self, roster: Roster) -> List[Detection]:
        students = roster.list()
        if not students or self._rng.random() >= self.hit_rate:
            return []
        student = self._rng.choice(students)
        return [Detection(
            student_id=student.id,
            emotion=self._rng.choice(DEMO_EMOTIONS),
            confidence=self._rng.random() * 0.3 + 0.7,
        )]


def build_source(kind: str, seed: Optional[int] = None) -> DetectionSource:
    if kind == "queue":
        return QueuedDetectionSource()
    if kind == "demo":
        return SimulatedDetectionSource(seed=seed)
    raise ValueError(f"Unknown detection source {kind!r} (expected 'queue' or 'demo')")
