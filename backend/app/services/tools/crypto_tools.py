"""Cryptocurrency market data tools backed by CoinGecko."""

import logging
from abc import abstractmethod
from typing import Any

from app.models.crypto import Ambiguous, CategoryNotFound, CategoryResolved, NotFound, Resolved
from app.services.integrations.coingecko import MAX_CATEGORY_LIMIT, CoinGeckoClient, get_coingecko_client
from app.services.tools.base import BaseTool, ToolDefinition, ToolParameter, envelope

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_LIMIT = 10


class _CryptoTool(BaseTool):
    def __init__(self, client: CoinGeckoClient | None = None) -> None:
        self.client = client or get_coingecko_client()

    async def execute(self, **kwargs: Any) -> dict[str, Any]:
        name = self.definition().name
        try:
            return await self._run(**kwargs)
        except Exception as e:
            logger.exception("Tool %s failed", name)
            return envelope(False, error=str(e) or type(e).__name__)

    @abstractmethod
    async def _run(self, **kwargs: Any) -> dict[str, Any]:
        """Tool body; exceptions are turned into failure envelopes by execute."""


class TopCryptosTool(_CryptoTool):
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="get_top_cryptos",
            description=(
                "Get the 10 cryptocurrencies with the largest market capitalization, "
                "including name, symbol, price, market cap, 24h change and image. Takes no parameters."
            ),
        )

    async def _run(self, **kwargs: Any) -> dict[str, Any]:
        assets = await self.client.fetch_top_assets(10)
        return envelope(True, data=[a.to_wire() for a in assets])


class CryptoByQueryTool(_CryptoTool):
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="get_crypto_by_query",
            description=(
                "Look up detailed market data for one cryptocurrency. Accepts a name (bitcoin, "
                "ethereum), a ticker symbol (btc, eth) or a CoinGecko ID."
            ),
            parameters=[
                ToolParameter(
                    name="query", type="string",
                    description='Name, symbol or ID of the cryptocurrency, e.g. "bitcoin", "btc", "ethereum".',
                ),
            ],
        )

    async def _run(self, **kwargs: Any) -> dict[str, Any]:
        query = str(kwargs.get("query") or "").strip()
        if not query:
            return envelope(False, error="A cryptocurrency name, symbol or ID is required.")

        result = await self.client.resolve_query(query)
        match result:
            case Resolved(asset=asset):
                return envelope(True, data=asset.to_wire())
            case Ambiguous(suggestions=suggestions):
                return envelope(
                    False,
                    suggestions=[s.to_wire() for s in suggestions],
                    error=f'Several cryptocurrencies could match "{query}". Which one do you mean?',
                )
            case NotFound():
                return envelope(
                    False,
                    error=f'No cryptocurrency matches "{query}". Try another name or symbol.',
                )


class CryptosByCategoryTool(_CryptoTool):
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="get_cryptos_by_category",
            description=(
                "Get the largest cryptocurrencies of a category. Popular categories: meme, defi, "
                "layer-1, layer-2, gaming, metaverse, ai, nft, stablecoins, privacy, oracle, smart-contract."
            ),
            parameters=[
                ToolParameter(
                    name="category", type="string",
                    description='Category name, e.g. "meme", "defi", "layer-1", "gaming", "ai".',
                ),
                ToolParameter(
                    name="limit", type="integer",
                    description=f"Number of cryptocurrencies to return (default {DEFAULT_CATEGORY_LIMIT}, max {MAX_CATEGORY_LIMIT}).",
                    required=False,
                    minimum=1,
                    maximum=MAX_CATEGORY_LIMIT,
                ),
            ],
        )

    async def _run(self, **kwargs: Any) -> dict[str, Any]:
        category = str(kwargs.get("category") or "").strip()
        if not category:
            return envelope(False, error="A category name is required.")
        limit = min(int(kwargs.get("limit") or DEFAULT_CATEGORY_LIMIT), MAX_CATEGORY_LIMIT)

        result = await self.client.resolve_category(category, limit)
        match result:
            case CategoryResolved(assets=assets, category_name=category_name):
                return envelope(True, data=[a.to_wire() for a in assets], category=category_name)
            case CategoryNotFound(suggestions=suggestions):
                return envelope(
                    False,
                    error=f'Category "{category}" was not found.',
                    suggestions=suggestions,
                )
