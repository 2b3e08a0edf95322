"""Base tool interface. All tools the agent can use implement this.

Tools never raise: every outcome, including failures, is returned as a
result envelope ``{success, data?, suggestions?, error?, source, timestamp}``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

SOURCE = "coingecko"


@dataclass
class ToolParameter:
    name: str
    type: str  # "string" | "integer" | "boolean" | "number"
    description: str
    required: bool = True
    enum: list[str] | None = None
    minimum: int | None = None
    maximum: int | None = None


@dataclass
class ToolDefinition:
    name: str
    description: str
    parameters: list[ToolParameter] = field(default_factory=list)

    def to_gemini_schema(self) -> dict:
        """Convert to Gemini function declaration format."""
        properties = {}
        required = []
        for param in self.parameters:
            prop: dict[str, Any] = {"type": param.type, "description": param.description}
            if param.enum:
                prop["enum"] = param.enum
            if param.minimum is not None:
                prop["minimum"] = param.minimum
            if param.maximum is not None:
                prop["maximum"] = param.maximum
            properties[param.name] = prop
            if param.required:
                required.append(param.name)

        declaration: dict[str, Any] = {"name": self.name, "description": self.description}
        # Gemini rejects an object schema without properties
        if properties:
            declaration["parameters"] = {
                "type": "object",
                "properties": properties,
                "required": required,
            }
        return declaration


def envelope(success: bool, **fields: Any) -> dict[str, Any]:
    result: dict[str, Any] = {"success": success}
    result.update({k: v for k, v in fields.items() if v is not None})
    result["source"] = SOURCE
    result["timestamp"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    return result


class BaseTool(ABC):
    @abstractmethod
    def definition(self) -> ToolDefinition:
        """Return the tool's definition for LLM function calling."""
        ...

    @abstractmethod
    async def execute(self, **kwargs: Any) -> dict[str, Any]:
        """Execute the tool with the given arguments. Returns a result envelope."""
        ...
