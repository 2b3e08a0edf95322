"""Shared test fixtures for backend tests."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from app.services.agent import AgentEvent
from app.services.conversation_store import ConversationStore, get_conversation_store
from app.services.integrations.coingecko import get_coingecko_client
from tests.fakes import FakeCoinGecko, FakeKV


@pytest.fixture
def kv():
    return FakeKV()


@pytest.fixture
def store(kv):
    return ConversationStore(kv)


@pytest.fixture
def coingecko():
    return FakeCoinGecko()


@pytest.fixture
def mock_agent():
    """Mock Agent that streams a tool call, its result and some text."""

    class FakeAgent:
        async def run(self, messages):
            yield AgentEvent("tool-call", {"toolCallId": "call_1", "toolName": "get_top_cryptos", "input": {}})
            yield AgentEvent(
                "tool-result",
                {"toolCallId": "call_1", "toolName": "get_top_cryptos", "output": {"success": True, "data": []}},
            )
            for token in ["Hello", " from", " agent"]:
                yield AgentEvent("text", token)

    return FakeAgent()


@pytest.fixture
def client(store, coingecko, mock_agent):
    """FastAPI TestClient with all external deps patched."""
    market_client = coingecko.client()
    with patch("app.api.chat.Agent", return_value=mock_agent):
        from app.main import app

        app.dependency_overrides[get_conversation_store] = lambda: store
        app.dependency_overrides[get_coingecko_client] = lambda: market_client

        with TestClient(app) as c:
            yield c

        app.dependency_overrides.clear()
