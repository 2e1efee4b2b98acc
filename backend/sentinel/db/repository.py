# backend/sentinel/db/repository.py
"""
Durable mirror of the in-memory roster and record store.

The core never reads from the database while running: the roster and record
history are loaded once at startup, and every appended record is copied out
through a store observer.
"""
import asyncio
import logging
from typing import List, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sentinel import schemas
from sentinel.db import models

logger = logging.getLogger(__name__)

SAMPLE_STUDENTS = [
    schemas.Student(id="1", name="Riya Sen", email="riya.sen@school.edu"),
    schemas.Student(id="2", name="Aryan Das", email="aryan.das@school.edu"),
    schemas.Student(id="3", name="Priya Sharma", email="priya.sharma@school.edu"),
    schemas.Student(id="4", name="Vikash Kumar", email="vikash.kumar@school.edu"),
]


async def load_students(db: AsyncSession) -> List[schemas.Student]:
    q = await db.execute(select(models.Student).order_by(models.Student.created_at, models.Student.id))
    return [schemas.Student.model_validate(s) for s in q.scalars().all()]


async def add_student(db: AsyncSession, student: schemas.Student) -> schemas.Student:
    row = models.Student(id=student.id, name=student.name, email=student.email)
    db.add(row)
    await db.commit()
    await db.refresh(row)
    return schemas.Student.model_validate(row)


async def seed_students(db: AsyncSession) -> List[schemas.Student]:
    for s in SAMPLE_STUDENTS:
        db.add(models.Student(id=s.id, name=s.name, email=s.email))
    await db.commit()
    logger.info("seeded %d sample students", len(SAMPLE_STUDENTS))
    return list(SAMPLE_STUDENTS)


async def load_records(db: AsyncSession) -> List[schemas.AttendanceRecord]:
    q = await db.execute(select(models.AttendanceRecord).order_by(models.AttendanceRecord.timestamp))
    return [schemas.AttendanceRecord.model_validate(r) for r in q.scalars().all()]


async def save_record(db: AsyncSession, record: schemas.AttendanceRecord):
    db.add(models.AttendanceRecord(
        id=record.id,
        student_id=record.student_id,
        student_name=record.student_name,
        timestamp=record.timestamp,
        emotion=record.emotion.value,
        confidence=record.confidence,
        session_id=record.session_id,
    ))
    await db.commit()


class RecordMirror:
    """
    AttendanceStore observer that writes each new record to the database.
    Writes run as tasks on the capture loop; failures are logged and never
    reach the in-memory store.
    """

    def __init__(self, sessionmaker):
        self._sessionmaker = sessionmaker
        self._pending: Set[asyncio.Task] = set()

    def __call__(self, record: schemas.AttendanceRecord) -> None:
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._write(record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write(self, record: schemas.AttendanceRecord):
        try:
            async with self._sessionmaker() as db:
                await save_record(db, record)
        except Exception:
            logger.exception("failed to persist attendance record %s", record.id)

    async def drain(self):
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
