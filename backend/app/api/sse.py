import json
from typing import Any


def format_sse_event(event_type: str, data: str) -> dict:
    """Format an SSE event for sse-starlette's EventSourceResponse."""
    return {"event": event_type, "data": data}


def sse_text(text: str) -> dict:
    return format_sse_event("text", text)


def sse_tool_call(call: dict[str, Any]) -> dict:
    return format_sse_event("tool-call", json.dumps(call))


def sse_tool_result(result: dict[str, Any]) -> dict:
    return format_sse_event("tool-result", json.dumps(result))


def sse_error(error: str) -> dict:
    return format_sse_event("error", error)


def sse_done(data: dict) -> dict:
    return format_sse_event("done", json.dumps(data))
