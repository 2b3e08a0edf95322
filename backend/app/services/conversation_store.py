"""Conversation persistence on the key-value store.

Each user owns one key holding a JSON list of conversations, most recently
updated first. The list is capped and expires after a period of inactivity;
every write resets the expiry. The legacy single-session mode keeps one
history record per session id.

Values are always written as JSON text and parsed as text. Writes are
read-modify-write without locking: concurrent writers for the same user race
and the last write wins.
"""

import json
import logging
from typing import Any

from app.core.kv import get_redis
from app.models.conversation import ChatHistory, Conversation, StoredMessage, TextPart, now_iso

logger = logging.getLogger(__name__)

CONVERSATIONS_KEY = "crypto-chat:conversations"
HISTORY_KEY = "crypto-chat:history"

MAX_CONVERSATIONS = 50
CONVERSATIONS_TTL = 30 * 24 * 60 * 60   # 30 days
HISTORY_TTL = 7 * 24 * 60 * 60          # 7 days

TITLE_MAX_CHARS = 40
DEFAULT_TITLE = "New conversation"


def generate_title(text: str) -> str:
    title = text[:TITLE_MAX_CHARS]
    return f"{title}..." if len(title) < len(text) else title


def text_of(message: StoredMessage) -> str:
    """Text of the first text part, or an empty string."""
    for part in message.parts:
        match part:
            case TextPart(text=text):
                return text
            case _:
                continue
    return ""


def title_for(messages: list[StoredMessage]) -> str:
    first_user = next((m for m in messages if m.role == "user"), None)
    text = text_of(first_user) if first_user else ""
    return generate_title(text) if text else DEFAULT_TITLE


class ConversationStore:
    """Read/write conversations through an async get/set/delete/expire client."""

    def __init__(self, redis: Any | None = None) -> None:
        self._redis = redis

    @property
    def redis(self) -> Any:
        # Resolved on first use so missing credentials only fail store operations.
        if self._redis is None:
            self._redis = get_redis()
        return self._redis

    # --- Multi-conversation mode ---

    @staticmethod
    def _list_key(user_id: str) -> str:
        return f"{CONVERSATIONS_KEY}:{user_id}"

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        raw = await self.redis.get(self._list_key(user_id))
        if not raw:
            return []
        return [Conversation.model_validate(c) for c in json.loads(raw)]

    async def get_conversation(self, user_id: str, conversation_id: str) -> Conversation | None:
        conversations = await self.list_conversations(user_id)
        return next((c for c in conversations if c.id == conversation_id), None)

    async def _write_list(self, user_id: str, conversations: list[Conversation]) -> None:
        payload = json.dumps([c.to_wire() for c in conversations])
        await self.redis.set(self._list_key(user_id), payload, ex=CONVERSATIONS_TTL)

    async def save_conversation(self, user_id: str, conversation: Conversation) -> None:
        """Replace the conversation in place if known, otherwise prepend it."""
        conversations = await self.list_conversations(user_id)
        index = next((i for i, c in enumerate(conversations) if c.id == conversation.id), None)
        if index is not None:
            conversations[index] = conversation
        else:
            conversations.insert(0, conversation)
        await self._write_list(user_id, conversations[:MAX_CONVERSATIONS])
        logger.debug("Saved conversation %s for user %s", conversation.id, user_id)

    async def upsert_messages(
        self, user_id: str, conversation_id: str, messages: list[StoredMessage]
    ) -> Conversation:
        """Store a new message list, keeping an existing title and creation time."""
        existing = await self.get_conversation(user_id, conversation_id)
        now = now_iso()
        conversation = Conversation(
            id=conversation_id,
            title=existing.title if existing and existing.title else title_for(messages),
            messages=messages,
            created_at=existing.created_at if existing else now,
            last_updated=now,
        )
        await self.save_conversation(user_id, conversation)
        return conversation

    async def delete_conversation(self, user_id: str, conversation_id: str) -> None:
        conversations = await self.list_conversations(user_id)
        remaining = [c for c in conversations if c.id != conversation_id]
        await self._write_list(user_id, remaining)
        logger.debug("Deleted conversation %s for user %s", conversation_id, user_id)

    # --- Legacy single-session mode ---

    @staticmethod
    def _history_key(session_id: str) -> str:
        return f"{HISTORY_KEY}:{session_id}"

    async def get_history(self, session_id: str) -> ChatHistory | None:
        raw = await self.redis.get(self._history_key(session_id))
        if not raw:
            return None
        return ChatHistory.model_validate_json(raw)

    async def save_history(self, session_id: str, messages: list[StoredMessage]) -> ChatHistory:
        history = ChatHistory(messages=messages, last_updated=now_iso())
        await self.redis.set(
            self._history_key(session_id),
            json.dumps(history.to_wire()),
            ex=HISTORY_TTL,
        )
        return history

    async def delete_history(self, session_id: str) -> None:
        await self.redis.delete(self._history_key(session_id))

    async def refresh_ttl(self, session_id: str) -> None:
        await self.redis.expire(self._history_key(session_id), HISTORY_TTL)


def get_conversation_store() -> ConversationStore:
    """FastAPI dependency; overridden in tests."""
    return ConversationStore()
