"""Client-side sync between in-memory chat state and the conversation API.

Local state is updated immediately; the network write follows once the state
has been quiet for the debounce delay. Write failures are logged and never
raised, so the in-memory state stays authoritative for the running client.
"""

import functools
import logging
from typing import Any

import httpx

from app.client.debounce import Debouncer
from app.client.identity import ClientIdentity, generate_id
from app.core.config import settings
from app.models.conversation import Conversation, StoredMessage, now_iso
from app.services.conversation_store import title_for

logger = logging.getLogger(__name__)


class _ApiClient:
    def __init__(
        self,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url or settings.client_api_base_url
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self._base_url, transport=self._transport, timeout=15.0)

    async def get(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        async with self._client() as client:
            resp = await client.get(path, params=params)
            resp.raise_for_status()
            return resp.json()

    async def post(self, path: str, payload: dict[str, Any]) -> None:
        async with self._client() as client:
            resp = await client.post(path, json=payload)
            resp.raise_for_status()

    async def delete(self, path: str, params: dict[str, str]) -> None:
        async with self._client() as client:
            resp = await client.delete(path, params=params)
            resp.raise_for_status()


class ConversationSync:
    """Multi-conversation mode."""

    def __init__(
        self,
        identity: ClientIdentity | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        debounce_seconds: float | None = None,
    ) -> None:
        self.identity = identity or ClientIdentity()
        self.api = _ApiClient(base_url, transport)
        delay = settings.save_debounce_seconds if debounce_seconds is None else debounce_seconds
        self._debouncer = Debouncer(delay)

        self.conversations: list[Conversation] = []
        self.current_conversation_id: str | None = None
        self.is_loaded = False
        self.is_saving = False
        self._displayed_id: str | None = None

    @property
    def current_messages(self) -> list[StoredMessage]:
        if not self.current_conversation_id:
            return []
        conv = next((c for c in self.conversations if c.id == self.current_conversation_id), None)
        return list(conv.messages) if conv else []

    async def load(self) -> None:
        """Fetch the user's conversations. Never replaces a non-empty local list."""
        try:
            data = await self.api.get("/api/conversations", {"userId": self.identity.user_id})
            if not self.conversations:
                self.conversations = [
                    Conversation.model_validate(c) for c in data.get("conversations", [])
                ]
        except httpx.HTTPError as e:
            logger.error("Error loading conversations: %s", e)
        finally:
            self.is_loaded = True

    def save_messages(self, messages: list[StoredMessage], streaming: bool = False) -> None:
        """Mirror ``messages`` locally and schedule a debounced write.

        Ignored while a response is streaming; the settled state is saved
        once streaming ends.
        """
        if streaming:
            return

        conv_id = self.current_conversation_id
        if not conv_id:
            if not messages:
                return
            conv_id = f"conv_{generate_id()}"
            self.current_conversation_id = conv_id
            # The display already shows these messages
            self._displayed_id = conv_id

        existing = next((c for c in self.conversations if c.id == conv_id), None)
        now = now_iso()
        updated = Conversation(
            id=conv_id,
            title=existing.title if existing else title_for(messages),
            messages=list(messages),
            created_at=existing.created_at if existing else now,
            last_updated=now,
        )
        self.conversations = [updated] + [c for c in self.conversations if c.id != conv_id]

        payload = {
            "userId": self.identity.user_id,
            "conversationId": conv_id,
            "messages": [m.to_wire() for m in messages],
        }
        self._debouncer.schedule(functools.partial(self._write, payload))

    async def _write(self, payload: dict[str, Any]) -> None:
        self.is_saving = True
        try:
            await self.api.post("/api/conversations", payload)
        except httpx.HTTPError as e:
            logger.error("Error saving conversation %s: %s", payload["conversationId"], e)
        finally:
            self.is_saving = False

    def new_conversation(self) -> None:
        self.current_conversation_id = None

    def select_conversation(self, conversation_id: str) -> None:
        self.current_conversation_id = conversation_id

    def messages_to_display(self) -> list[StoredMessage] | None:
        """Messages to show after a switch, or None when the active conversation did not change.

        Keeps an in-progress (possibly streaming) display intact unless the
        user actually moved to another conversation.
        """
        if self.current_conversation_id == self._displayed_id:
            return None
        self._displayed_id = self.current_conversation_id
        return self.current_messages

    async def delete_conversation(self, conversation_id: str) -> None:
        try:
            await self.api.delete(
                "/api/conversations",
                {"userId": self.identity.user_id, "conversationId": conversation_id},
            )
        except httpx.HTTPError as e:
            logger.error("Error deleting conversation %s: %s", conversation_id, e)
            return

        self.conversations = [c for c in self.conversations if c.id != conversation_id]
        if self.current_conversation_id == conversation_id:
            self.current_conversation_id = self.conversations[0].id if self.conversations else None

    async def flush(self) -> None:
        await self._debouncer.flush()

    async def wait(self) -> None:
        await self._debouncer.wait()

    def close(self) -> None:
        self._debouncer.cancel()


class ChatHistorySync:
    """Legacy single-session mode."""

    def __init__(
        self,
        identity: ClientIdentity | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        debounce_seconds: float | None = None,
    ) -> None:
        self.identity = identity or ClientIdentity()
        self.api = _ApiClient(base_url, transport)
        delay = settings.save_debounce_seconds if debounce_seconds is None else debounce_seconds
        self._debouncer = Debouncer(delay)

        self.messages: list[StoredMessage] = []
        self.is_loaded = False
        self.is_saving = False

    async def load(self) -> None:
        """Restore saved messages unless a conversation is already in progress."""
        try:
            data = await self.api.get("/api/history", {"sessionId": self.identity.session_id})
            saved = [StoredMessage.model_validate(m) for m in data.get("messages", [])]
            if saved and not self.messages:
                self.messages = saved
        except httpx.HTTPError as e:
            logger.error("Error loading chat history: %s", e)
        finally:
            self.is_loaded = True

    def save_messages(self, messages: list[StoredMessage], streaming: bool = False) -> None:
        if streaming:
            return
        self.messages = list(messages)
        payload = {
            "sessionId": self.identity.session_id,
            "messages": [m.to_wire() for m in messages],
        }
        self._debouncer.schedule(functools.partial(self._write, payload))

    async def _write(self, payload: dict[str, Any]) -> None:
        self.is_saving = True
        try:
            await self.api.post("/api/history", payload)
        except httpx.HTTPError as e:
            logger.error("Error saving chat history: %s", e)
        finally:
            self.is_saving = False

    async def clear(self) -> None:
        self._debouncer.cancel()
        try:
            await self.api.delete("/api/history", {"sessionId": self.identity.session_id})
        except httpx.HTTPError as e:
            logger.error("Error clearing chat history: %s", e)
            return
        self.messages = []

    async def flush(self) -> None:
        await self._debouncer.flush()

    async def wait(self) -> None:
        await self._debouncer.wait()

    def close(self) -> None:
        self._debouncer.cancel()
