"""Agent orchestration - handles multi-step tool use with the LLM."""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, AsyncIterator

from google import genai
from google.genai import types

from app.core.config import settings
from app.models.conversation import StoredMessage, TextPart, ToolPart
from app.services.tools.base import envelope
from app.services.tools.registry import ToolRegistry, create_default_registry

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an expert cryptocurrency assistant. You help users get information about
cryptocurrencies using real data from CoinGecko.

IMPORTANT RULES:
1. NEVER make up prices or market data. ALWAYS use the available tools to get real data.
2. If the user asks about prices, market cap or any other crypto data, you MUST use a tool.
3. For the top 10, the most valuable or the most important cryptocurrencies, use get_top_cryptos.
4. For a specific cryptocurrency (bitcoin, eth, solana, ...), use get_crypto_by_query.
5. For cryptocurrencies of a category (memes, defi, layer 1, gaming, AI, ...), use get_cryptos_by_category.
6. When a tool returns suggestions, list them and ask the user which one they mean.
7. You may answer general questions (what a blockchain is, concepts, ...) without tools.
8. Always mention that the data comes from CoinGecko when you show prices.
9. Stay in your role as a cryptocurrency information assistant and keep answers concise."""


@dataclass
class AgentEvent:
    type: str  # "text" | "tool-call" | "tool-result"
    data: Any


def to_gemini_contents(messages: list[StoredMessage]) -> tuple[list[types.Content], str]:
    """Convert stored messages to Gemini contents plus extra system instructions.

    A tool part with output becomes a model function_call followed by a
    function_response turn; pending tool parts are dropped.
    """
    contents: list[types.Content] = []
    system_notes: list[str] = []

    for msg in messages:
        if msg.role == "system":
            system_notes.extend(p.text for p in msg.parts if isinstance(p, TextPart))
            continue

        role = "model" if msg.role == "assistant" else "user"
        pending: list[types.Part] = []
        for part in msg.parts:
            match part:
                case TextPart(text=text):
                    if text:
                        pending.append(types.Part(text=text))
                case ToolPart(state="output-available", tool_name=name, input=args, output=output):
                    pending.append(types.Part(function_call=types.FunctionCall(name=name, args=args)))
                    contents.append(types.Content(role=role, parts=pending))
                    response = output if isinstance(output, dict) else {"result": output}
                    contents.append(types.Content(
                        role="user",
                        parts=[types.Part(function_response=types.FunctionResponse(name=name, response=response))],
                    ))
                    pending = []
                case ToolPart():
                    continue
        if pending:
            contents.append(types.Content(role=role, parts=pending))

    return contents, "\n".join(system_notes)


class Agent:
    """Agent that orchestrates LLM + tools for multi-step interactions."""

    def __init__(self, registry: ToolRegistry | None = None):
        self.registry = registry or create_default_registry()
        self.client = genai.Client(api_key=settings.gemini_api_key)
        self.model = settings.gemini_model

    def _build_tools(self) -> list[types.Tool]:
        declarations = self.registry.gemini_declarations()
        return [types.Tool(function_declarations=declarations)]

    async def run(self, messages: list[StoredMessage]) -> AsyncIterator[AgentEvent]:
        """Run the agent with tool use. Yields text tokens and tool events as they happen."""
        contents, extra_system = to_gemini_contents(messages)
        system_prompt = SYSTEM_PROMPT + (f"\n\n{extra_system}" if extra_system else "")
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            tools=self._build_tools(),
        )

        max_iterations = settings.agent_max_iterations
        for iteration in range(max_iterations):
            logger.info(
                "LLM call (iteration %d/%d): model=%s messages=%d",
                iteration + 1, max_iterations, self.model, len(contents),
            )

            stream = await self.client.aio.models.generate_content_stream(
                model=self.model,
                contents=contents,
                config=config,
            )

            model_parts: list[types.Part] = []
            function_calls: list[types.FunctionCall] = []
            async for chunk in stream:
                if not chunk.candidates or not chunk.candidates[0].content:
                    continue
                for part in chunk.candidates[0].content.parts or []:
                    if part.function_call:
                        function_calls.append(part.function_call)
                        model_parts.append(part)
                    elif part.text:
                        model_parts.append(part)
                        yield AgentEvent("text", part.text)

            if not function_calls:
                return

            contents.append(types.Content(role="model", parts=model_parts))
            function_responses = []

            for fc in function_calls:
                tool_name = fc.name or ""
                tool_args = dict(fc.args) if fc.args else {}
                call_id = fc.id or f"call_{uuid.uuid4().hex[:12]}"

                logger.info("Tool call: %s(%s)", tool_name, tool_args)
                yield AgentEvent("tool-call", {"toolCallId": call_id, "toolName": tool_name, "input": tool_args})

                tool = self.registry.get(tool_name)
                if tool:
                    result = await tool.execute(**tool_args)
                else:
                    result = envelope(False, error=f"Unknown tool: {tool_name}")

                yield AgentEvent("tool-result", {"toolCallId": call_id, "toolName": tool_name, "output": result})
                function_responses.append(
                    types.Part(function_response=types.FunctionResponse(
                        id=fc.id,
                        name=tool_name,
                        response=result,
                    ))
                )

            # Add tool results back to the conversation
            contents.append(types.Content(role="user", parts=function_responses))

        yield AgentEvent("text", "\n[Agent reached maximum iterations]")
