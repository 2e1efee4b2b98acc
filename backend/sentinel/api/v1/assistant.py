# backend/sentinel/api/v1/assistant.py
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from sentinel.api.deps import get_classroom
from sentinel.schemas import ChatReply
from sentinel.services.classroom import Classroom

router = APIRouter(prefix="/api/v1/assistant", tags=["assistant"])


class ChatReq(BaseModel):
    message: str


@router.post("/chat", response_model=ChatReply)
async def chat(payload: ChatReq, classroom: Classroom = Depends(get_classroom)):
    """Answer a free-text question using the current snapshot; falls back to templates."""
    if not payload.message.strip():
        raise HTTPException(400, "Message is required")

    snapshot = classroom.insights()
    text, fallback = await classroom.assistant.reply(payload.message, snapshot)
    return ChatReply(
        response=text,
        insights=snapshot,
        timestamp=datetime.now().astimezone(),
        fallback=fallback,
    )
