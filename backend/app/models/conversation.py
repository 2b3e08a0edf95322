"""Conversation and message models for chat history persistence.

Messages carry an ordered list of typed parts. A part is either a text
fragment or a tool invocation; the ``type`` field discriminates them.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class TextPart(_WireModel):
    type: Literal["text"] = "text"
    text: str


class ToolPart(_WireModel):
    type: Literal["tool"] = "tool"
    tool_call_id: str
    tool_name: str
    input: dict[str, Any] = Field(default_factory=dict)
    state: Literal["input-available", "output-available"] = "input-available"
    output: Any = None


MessagePart = Annotated[TextPart | ToolPart, Field(discriminator="type")]


class StoredMessage(_WireModel):
    id: str
    role: Literal["user", "assistant", "system"]
    parts: list[MessagePart] = Field(default_factory=list)
    created_at: str | None = None


class Conversation(_WireModel):
    id: str
    title: str = "New conversation"
    messages: list[StoredMessage] = Field(default_factory=list)
    created_at: str = Field(default_factory=now_iso)
    last_updated: str = Field(default_factory=now_iso)


class ChatHistory(_WireModel):
    """Single-session history (legacy mode)."""

    messages: list[StoredMessage] = Field(default_factory=list)
    last_updated: str | None = None
