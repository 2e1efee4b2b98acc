import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sentinel.api.deps import get_classroom
from sentinel.db import repository
from sentinel.db.session import get_db
from sentinel.schemas import Student
from sentinel.services.classroom import Classroom

router = APIRouter(prefix="/api/v1/students", tags=["students"])

# -----------------------------
# SCHEMAS
# -----------------------------
class StudentCreate(BaseModel):
    id: Optional[str] = None
    name: str
    email: Optional[str] = None


# -----------------------------
# CREATE STUDENT
# -----------------------------
@router.post("/", response_model=Student, status_code=status.HTTP_201_CREATED)
async def create_student(payload: StudentCreate,
                         db: AsyncSession = Depends(get_db),
                         classroom: Classroom = Depends(get_classroom)):
    student_id = payload.id or uuid.uuid4().hex[:8]
    if student_id in classroom.roster:
        raise HTTPException(400, "Student with this id already exists")

    student = Student(id=student_id, name=payload.name, email=payload.email)
    try:
        student = await repository.add_student(db, student)
    except IntegrityError:
        await db.rollback()
        raise HTTPException(400, "Student with this id or email already exists")

    classroom.roster.add(student)
    return student


# -----------------------------
# LIST STUDENTS
# -----------------------------
@router.get("/", response_model=List[Student])
async def list_students(classroom: Classroom = Depends(get_classroom)):
    return classroom.roster.list()


# -----------------------------
# GET SINGLE STUDENT
# -----------------------------
@router.get("/{student_id}", response_model=Student)
async def get_student(student_id: str, classroom: Classroom = Depends(get_classroom)):
    student = classroom.roster.get(student_id)
    if not student:
        raise HTTPException(404, "Student not found")
    return student
