import itertools
from datetime import datetime, timedelta

import pytest

from sentinel.schemas import AttendanceRecord, Student
from sentinel.services.store import AttendanceStore, Roster

# fixed evaluation moment, local timezone
NOW = datetime(2024, 5, 15, 12, 0).astimezone()

_ids = itertools.count(1)


def make_record(student_id, emotion="neutral", days_ago=0, hour=10, session_id="session_a",
                confidence=0.9, name=None):
    ts = (NOW - timedelta(days=days_ago)).replace(hour=hour, minute=0)
    return AttendanceRecord(
        id=f"record_{next(_ids)}",
        student_id=student_id,
        student_name=name or f"Student {student_id}",
        timestamp=ts,
        emotion=emotion,
        confidence=confidence,
        session_id=session_id,
    )


@pytest.fixture
def students():
    return [
        Student(id="1", name="Riya Sen", email="riya.sen@school.edu"),
        Student(id="2", name="Aryan Das", email="aryan.das@school.edu"),
        Student(id="3", name="Priya Sharma", email="priya.sharma@school.edu"),
        Student(id="4", name="Vikash Kumar", email="vikash.kumar@school.edu"),
    ]


@pytest.fixture
def roster(students):
    return Roster(students)


@pytest.fixture
def store():
    return AttendanceStore()
