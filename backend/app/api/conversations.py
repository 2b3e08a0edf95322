"""REST API for per-user conversation lists."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from app.models.conversation import Conversation, StoredMessage
from app.services.conversation_store import ConversationStore, get_conversation_store

router = APIRouter()
logger = logging.getLogger(__name__)

_conversation_adapter = TypeAdapter(Conversation)
_messages_adapter = TypeAdapter(list[StoredMessage])


class SaveConversationRequest(BaseModel):
    """Either a full conversation, or a conversation id plus its messages."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str | None = None
    conversation: Any = None
    conversation_id: str | None = None
    messages: Any = None


@router.get("")
async def list_conversations(
    user_id: str | None = Query(None, alias="userId"),
    store: ConversationStore = Depends(get_conversation_store),
):
    if not user_id:
        raise HTTPException(status_code=400, detail="userId is required")
    try:
        conversations = await store.list_conversations(user_id)
    except Exception:
        logger.exception("Error fetching conversations")
        raise HTTPException(status_code=500, detail="Failed to fetch conversations")
    return {"conversations": [c.to_wire() for c in conversations]}


@router.post("")
async def save_conversation(
    req: SaveConversationRequest,
    store: ConversationStore = Depends(get_conversation_store),
):
    if not req.user_id:
        raise HTTPException(status_code=400, detail="userId is required")

    if req.conversation is None and not (req.conversation_id and isinstance(req.messages, list)):
        raise HTTPException(status_code=400, detail="Invalid request body")

    full: Conversation | None = None
    messages: list[StoredMessage] = []
    if req.conversation is not None:
        try:
            full = _conversation_adapter.validate_python(req.conversation)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=f"Invalid conversation: {e.error_count()} error(s)")
    else:
        try:
            messages = _messages_adapter.validate_python(req.messages)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=f"Invalid messages: {e.error_count()} error(s)")

    try:
        if full is not None:
            await store.save_conversation(req.user_id, full)
            conversation = full
        else:
            conversation = await store.upsert_messages(req.user_id, req.conversation_id, messages)
    except Exception:
        logger.exception("Error saving conversation")
        raise HTTPException(status_code=500, detail="Failed to save conversation")

    return {"success": True, "conversation": conversation.to_wire()}


@router.delete("")
async def delete_conversation(
    user_id: str | None = Query(None, alias="userId"),
    conversation_id: str | None = Query(None, alias="conversationId"),
    store: ConversationStore = Depends(get_conversation_store),
):
    if not user_id or not conversation_id:
        raise HTTPException(status_code=400, detail="userId and conversationId are required")
    try:
        await store.delete_conversation(user_id, conversation_id)
    except Exception:
        logger.exception("Error deleting conversation")
        raise HTTPException(status_code=500, detail="Failed to delete conversation")
    logger.debug("Deleted conversation %s", conversation_id)
    return {"success": True}
