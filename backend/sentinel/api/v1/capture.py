# backend/sentinel/api/v1/capture.py
"""
Capture session control plus the push endpoint for the camera agent.
- start/stop are idempotent
- detections POSTed here are queued and consumed by the next capture pass
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from sentinel.api.deps import get_classroom
from sentinel.schemas import Detection, Emotion
from sentinel.services.classroom import Classroom
from sentinel.services.detection import QueuedDetectionSource

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/capture", tags=["capture"])


class DetectEvt(BaseModel):
    student_id: str
    emotion: Emotion
    confidence: float
    camera_id: Optional[str] = "local"


def _queue(classroom: Classroom) -> QueuedDetectionSource:
    if not isinstance(classroom.source, QueuedDetectionSource):
        raise HTTPException(status.HTTP_409_CONFLICT,
                            "Detections are simulated; pushed events are not accepted")
    return classroom.source


@router.post("/start")
async def start_capture(classroom: Classroom = Depends(get_classroom)):
    session_id = classroom.capture.start_session()
    return {"ok": True, "session_id": session_id}


@router.post("/stop")
async def stop_capture(classroom: Classroom = Depends(get_classroom)):
    session_id = await classroom.capture.stop_session()
    return {"ok": True, "session_id": session_id}


@router.get("/status")
async def capture_status(classroom: Classroom = Depends(get_classroom)):
    return classroom.capture.status()


@router.post("/detections", status_code=status.HTTP_202_ACCEPTED)
async def push_detection(evt: DetectEvt, classroom: Classroom = Depends(get_classroom)):
    queue = _queue(classroom)
    if not classroom.capture.running:
        raise HTTPException(status.HTTP_409_CONFLICT, "No capture session is running")

    await queue.push(Detection(student_id=evt.student_id, emotion=evt.emotion,
                               confidence=evt.confidence))
    logger.debug("queued detection %s from %s", evt.student_id, evt.camera_id)
    return {"ok": True, "student_id": evt.student_id, "session_id": classroom.capture.session_id}


# DEBUG: pending queue dump
@router.get("/detections")
async def pending_detections(classroom: Classroom = Depends(get_classroom)):
    pending = await _queue(classroom).pending()
    return [d.model_dump(mode="json") for d in pending]
