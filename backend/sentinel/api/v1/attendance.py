# backend/sentinel/api/v1/attendance.py
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends

from sentinel.api.deps import get_classroom
from sentinel.schemas import AttendanceRecord, DailyReport
from sentinel.services.classroom import Classroom

router = APIRouter(prefix="/api/v1/attendance", tags=["attendance"])


# ---------------------------
# GET ALL RECORDS
# ---------------------------
@router.get("/records", response_model=List[AttendanceRecord])
async def list_records(session_id: Optional[str] = None,
                       student_id: Optional[str] = None,
                       classroom: Classroom = Depends(get_classroom)):
    out = classroom.records()
    if session_id:
        out = [r for r in out if r.session_id == session_id]
    if student_id:
        out = [r for r in out if r.student_id == student_id]
    return out


# ---------------------------
# DAILY REPORT
# ---------------------------
@router.get("/report", response_model=DailyReport)
async def attendance_report(day: Optional[date] = None,
                            classroom: Classroom = Depends(get_classroom)):
    """
    Summary for one local calendar date (defaults to today): unique students,
    attendance rate, engagement, number of capture sessions and emotion stats.
    """
    return classroom.report(day)
