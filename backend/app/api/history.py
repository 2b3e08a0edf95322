"""REST API for single-session chat history (legacy mode)."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from app.models.conversation import StoredMessage
from app.services.conversation_store import ConversationStore, get_conversation_store

router = APIRouter()
logger = logging.getLogger(__name__)

_messages_adapter = TypeAdapter(list[StoredMessage])


class SaveHistoryRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str | None = None
    messages: Any = None


@router.get("")
async def get_history(
    session_id: str | None = Query(None, alias="sessionId"),
    store: ConversationStore = Depends(get_conversation_store),
):
    if not session_id:
        raise HTTPException(status_code=400, detail="sessionId is required")
    try:
        history = await store.get_history(session_id)
    except Exception:
        logger.exception("Error fetching chat history")
        raise HTTPException(status_code=500, detail="Failed to fetch chat history")
    if history is None:
        return {"messages": [], "lastUpdated": None}
    return history.to_wire()


@router.post("")
async def save_history(
    req: SaveHistoryRequest,
    store: ConversationStore = Depends(get_conversation_store),
):
    if not req.session_id:
        raise HTTPException(status_code=400, detail="sessionId is required")
    if not isinstance(req.messages, list):
        raise HTTPException(status_code=400, detail="messages must be an array")
    try:
        messages = _messages_adapter.validate_python(req.messages)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid messages: {e.error_count()} error(s)")

    try:
        await store.save_history(req.session_id, messages)
    except Exception:
        logger.exception("Error saving chat history")
        raise HTTPException(status_code=500, detail="Failed to save chat history")
    return {"success": True}


@router.delete("")
async def delete_history(
    session_id: str | None = Query(None, alias="sessionId"),
    store: ConversationStore = Depends(get_conversation_store),
):
    if not session_id:
        raise HTTPException(status_code=400, detail="sessionId is required")
    try:
        await store.delete_history(session_id)
    except Exception:
        logger.exception("Error deleting chat history")
        raise HTTPException(status_code=500, detail="Failed to delete chat history")
    return {"success": True}
