# backend/sentinel/schemas.py
from enum import Enum
from typing import Dict, List, Optional, Tuple
from datetime import datetime, date

from pydantic import BaseModel, Field


class Emotion(str, Enum):
    HAPPY = "happy"
    SAD = "sad"
    ANGRY = "angry"
    SURPRISED = "surprised"
    FEARFUL = "fearful"
    DISGUSTED = "disgusted"
    NEUTRAL = "neutral"
    FOCUSED = "focused"
    SLEEPY = "sleepy"
    BORED = "bored"


class Trend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


# ---------------------------
# ROSTER / RECORDS
# ---------------------------
class Student(BaseModel):
    id: str
    name: str
    email: Optional[str] = None

    model_config = {"from_attributes": True, "frozen": True}


class Detection(BaseModel):
    """One recognition tuple supplied by the detection collaborator."""
    student_id: str
    emotion: Emotion
    confidence: float


class AttendanceRecord(BaseModel):
    id: str
    student_id: str
    student_name: str
    timestamp: datetime
    emotion: Emotion
    confidence: float = Field(ge=0.0, le=1.0)
    session_id: str

    model_config = {"from_attributes": True, "frozen": True}


# ---------------------------
# DERIVED METRICS
# ---------------------------
class InsightsSnapshot(BaseModel):
    total_students: int
    total_records: int
    present_students: int
    attendance_rate: int
    engagement_score: int
    emotion_counts: Dict[str, int]
    dominant_emotion: str
    daily_attendance: List[int]
    avg_attendance: int
    trend: Trend


class DailyReport(BaseModel):
    date: date
    total_records: int
    unique_students: int
    total_students: int
    attendance_rate: int
    engagement_score: int
    session_count: int
    emotion_stats: List[Tuple[str, int]]


class Recommendation(BaseModel):
    type: str
    priority: str
    message: str


class ChatReply(BaseModel):
    response: str
    insights: InsightsSnapshot
    timestamp: datetime
    fallback: bool = False
