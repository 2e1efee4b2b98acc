# backend/sentinel/api/v1/dashboard.py
import asyncio
import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from sentinel.api.deps import get_classroom, get_ws_classroom
from sentinel.schemas import Recommendation
from sentinel.services.classroom import Classroom
from sentinel.services.recommendations import generate_recommendations

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])

WS_POLL_SECONDS = 1.0


@router.get("/insights")
async def dashboard_insights(classroom: Classroom = Depends(get_classroom)):
    """
    Current snapshot plus the hour-of-day engagement profile:
    { "insights": {...}, "hourly_engagement": [24 ints] }
    """
    return {
        "insights": classroom.insights().model_dump(mode="json"),
        "hourly_engagement": classroom.hourly_engagement(),
    }


@router.get("/recommendations", response_model=List[Recommendation])
async def dashboard_recommendations(classroom: Classroom = Depends(get_classroom)):
    return classroom.recommendations()


@router.get("/analytics")
async def dashboard_analytics(classroom: Classroom = Depends(get_classroom)):
    snapshot = classroom.insights()
    return {
        "insights": snapshot.model_dump(mode="json"),
        "recommendations": [r.model_dump() for r in generate_recommendations(snapshot)],
        "timestamp": datetime.now().astimezone().isoformat(),
    }


async def _watch_disconnect(ws: WebSocket, closed: asyncio.Event):
    try:
        while True:
            msg = await ws.receive()
            if msg["type"] == "websocket.disconnect":
                return
    finally:
        closed.set()


# pushes the live snapshot whenever a new record or a new day changed it
@router.websocket("/ws/insights")
async def ws_insights(ws: WebSocket, classroom: Classroom = Depends(get_ws_classroom)):
    await ws.accept()
    closed = asyncio.Event()
    watcher = asyncio.create_task(_watch_disconnect(ws, closed))
    sent_version = -1
    try:
        while not closed.is_set():
            snapshot = classroom.latest_insights()
            if classroom.version != sent_version:
                sent_version = classroom.version
                await ws.send_json(snapshot.model_dump(mode="json"))
            try:
                await asyncio.wait_for(closed.wait(), timeout=WS_POLL_SECONDS)
            except asyncio.TimeoutError:
                pass
    except WebSocketDisconnect:
        pass
    finally:
        watcher.cancel()
        logger.debug("insights websocket closed")
