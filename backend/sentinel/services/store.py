# backend/sentinel/services/store.py
"""
In-memory roster and append-only attendance record store.

The store is the only shared mutable state between the capture controller
(the single writer) and everything that reads metrics. Readers take a
snapshot() tuple and never see a half-applied append.
"""
import logging
import threading
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from sentinel.schemas import AttendanceRecord, Student

logger = logging.getLogger(__name__)

RecordObserver = Callable[[AttendanceRecord], None]


class Roster:
    """Ordered set of students; the denominator for attendance rates."""

    def __init__(self, students: Iterable[Student] = ()):
        self._students: Dict[str, Student] = {}
        for s in students:
            self.add(s)

    def add(self, student: Student) -> None:
        if student.id in self._students:
            raise ValueError(f"Student {student.id!r} already on roster")
        self._students[student.id] = student

    def get(self, student_id: str) -> Optional[Student]:
        return self._students.get(student_id)

    def list(self) -> List[Student]:
        return list(self._students.values())

    def __contains__(self, student_id: object) -> bool:
        return student_id in self._students

    def __iter__(self) -> Iterator[Student]:
        return iter(self.list())

    def __len__(self) -> int:
        return len(self._students)


class AttendanceStore:
    """Append-only sequence of AttendanceRecord with append observers."""

    def __init__(self, records: Iterable[AttendanceRecord] = ()):
        self._records: List[AttendanceRecord] = list(records)
        self._lock = threading.Lock()
        self._observers: List[RecordObserver] = []

    def subscribe(self, observer: RecordObserver) -> None:
        self._observers.append(observer)

    def append(self, record: AttendanceRecord) -> None:
        with self._lock:
            self._records.append(record)
        self._notify(record)

    def snapshot(self) -> Tuple[AttendanceRecord, ...]:
        with self._lock:
            return tuple(self._records)

    def _notify(self, record: AttendanceRecord) -> None:
        for observer in list(self._observers):
            try:
                observer(record)
            except Exception:
                logger.exception("record observer %r failed for %s", observer, record.id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
