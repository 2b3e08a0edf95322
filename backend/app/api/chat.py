"""Chat endpoint - runs the agent and streams its output as server-sent events."""

import logging
import uuid

from fastapi import APIRouter
from pydantic import BaseModel
from sse_starlette.sse import EventSourceResponse

from app.api.sse import sse_done, sse_error, sse_text, sse_tool_call, sse_tool_result
from app.models.conversation import MessagePart, StoredMessage, TextPart, ToolPart, now_iso
from app.services.agent import Agent

logger = logging.getLogger(__name__)
router = APIRouter()


class ChatRequest(BaseModel):
    messages: list[StoredMessage]


class _AssistantMessageBuilder:
    """Assembles streamed agent events into one assistant message."""

    def __init__(self) -> None:
        self.parts: list[MessagePart] = []
        self._tools: dict[str, ToolPart] = {}

    def add_text(self, text: str) -> None:
        if self.parts and isinstance(self.parts[-1], TextPart):
            self.parts[-1].text += text
        else:
            self.parts.append(TextPart(text=text))

    def add_tool_call(self, call_id: str, name: str, args: dict) -> None:
        part = ToolPart(tool_call_id=call_id, tool_name=name, input=args)
        self._tools[call_id] = part
        self.parts.append(part)

    def add_tool_result(self, call_id: str, output: dict) -> None:
        part = self._tools.get(call_id)
        if part is not None and part.state != "output-available":
            part.output = output
            part.state = "output-available"

    def build(self, message_id: str) -> StoredMessage:
        return StoredMessage(id=message_id, role="assistant", parts=self.parts, created_at=now_iso())


@router.post("")
async def chat(req: ChatRequest):
    async def event_generator():
        builder = _AssistantMessageBuilder()
        try:
            agent = Agent()
            async for event in agent.run(req.messages):
                if event.type == "text":
                    builder.add_text(event.data)
                    yield sse_text(event.data)
                elif event.type == "tool-call":
                    builder.add_tool_call(event.data["toolCallId"], event.data["toolName"], event.data["input"])
                    yield sse_tool_call(event.data)
                elif event.type == "tool-result":
                    builder.add_tool_result(event.data["toolCallId"], event.data["output"])
                    yield sse_tool_result(event.data)
        except Exception as e:
            logger.exception("Error in chat stream")
            yield sse_error(str(e))

        message = builder.build(f"msg_{uuid.uuid4().hex}")
        yield sse_done({"message": message.to_wire()})

    return EventSourceResponse(event_generator(), ping=15)
