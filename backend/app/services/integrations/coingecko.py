"""CoinGecko market data client.

Prices, search and categories come from the public CoinGecko REST API. An
optional demo API key is appended to every request. Successful responses are
memoized in-process for a short revalidation window per endpoint; failures
are never cached and never retried.
"""

import logging
import time
from collections import OrderedDict
from typing import Any

import httpx

from app.core.config import settings
from app.models.crypto import (
    Ambiguous,
    Category,
    CategoryNotFound,
    CategoryResolution,
    CategoryResolved,
    CryptoAsset,
    NotFound,
    QueryResolution,
    Resolved,
    SearchHit,
    Suggestion,
)

logger = logging.getLogger(__name__)

_MARKETS_TTL = 10            # price lookups
_CATEGORY_MARKETS_TTL = 30
_SEARCH_TTL = 60
_CATEGORIES_TTL = 300        # category list rarely changes
_CACHE_MAX_ENTRIES = 256

MAX_SUGGESTIONS = 5
MAX_CATEGORY_LIMIT = 20
SIGNIFICANT_RANK = 500

# Common ticker symbols mapped to CoinGecko asset IDs
ASSET_ALIASES: dict[str, str] = {
    "btc": "bitcoin",
    "eth": "ethereum",
    "sol": "solana",
    "ada": "cardano",
    "xrp": "ripple",
    "doge": "dogecoin",
    "dot": "polkadot",
    "matic": "polygon-ecosystem-token",
    "avax": "avalanche-2",
    "link": "chainlink",
    "uni": "uniswap",
    "atom": "cosmos",
    "ltc": "litecoin",
    "bnb": "binancecoin",
    "usdt": "tether",
    "usdc": "usd-coin",
    "busd": "binance-usd",
    "shib": "shiba-inu",
    "trx": "tron",
}

# Everyday category names mapped to CoinGecko category IDs
CATEGORY_ALIASES: dict[str, str] = {
    "layer 1": "layer-1",
    "layer-1": "layer-1",
    "l1": "layer-1",
    "layer 2": "layer-2",
    "layer-2": "layer-2",
    "l2": "layer-2",
    "defi": "decentralized-finance-defi",
    "nft": "non-fungible-tokens-nft",
    "nfts": "non-fungible-tokens-nft",
    "meme": "meme-token",
    "memes": "meme-token",
    "memecoin": "meme-token",
    "memecoins": "meme-token",
    "gaming": "gaming",
    "metaverse": "metaverse",
    "ai": "artificial-intelligence",
    "artificial intelligence": "artificial-intelligence",
    "stablecoin": "stablecoins",
    "stablecoins": "stablecoins",
    "exchange": "exchange-based-tokens",
    "dex": "decentralized-exchange",
    "privacy": "privacy-coins",
    "oracle": "oracle",
    "storage": "storage",
    "smart contract": "smart-contract-platform",
    "smart contracts": "smart-contract-platform",
}

DEFAULT_CATEGORY_SUGGESTIONS: list[str] = ["DeFi", "Layer 1", "Meme", "Gaming", "AI"]


class UpstreamError(Exception):
    """CoinGecko returned a non-2xx response or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AssetNotFoundError(LookupError):
    pass


class CoinGeckoClient:
    """Async CoinGecko client implementing query and category resolution."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        cache: bool = True,
    ) -> None:
        self._base_url = (base_url or settings.coingecko_base_url).rstrip("/")
        self._api_key = settings.coingecko_api_key if api_key is None else api_key
        self._timeout = timeout or settings.coingecko_timeout
        self._transport = transport
        self._cache_enabled = cache
        self._cache: OrderedDict[str, tuple[Any, float]] = OrderedDict()

    # --- HTTP plumbing ---

    def _params(self, params: dict[str, str] | None = None) -> dict[str, str]:
        merged = dict(params or {})
        if self._api_key:
            merged["x_cg_demo_api_key"] = self._api_key
        return merged

    async def _request(self, endpoint: str, params: dict[str, str] | None = None) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                return await client.get(f"{self._base_url}{endpoint}", params=self._params(params))
        except httpx.HTTPError as e:
            raise UpstreamError(f"CoinGecko request failed: {e}") from e

    async def _get_json(self, endpoint: str, params: dict[str, str] | None, ttl: int) -> Any:
        """GET an endpoint, raising UpstreamError on non-2xx. Fresh cached data is reused."""
        key = endpoint + "?" + "&".join(f"{k}={v}" for k, v in sorted((params or {}).items()))
        if self._cache_enabled:
            cached = self._cache.get(key)
            if cached:
                data, expires_at = cached
                if time.time() < expires_at:
                    return data

        resp = await self._request(endpoint, params)
        if not resp.is_success:
            raise UpstreamError(
                f"CoinGecko API error: {resp.status_code} {resp.reason_phrase}",
                status_code=resp.status_code,
            )
        data = resp.json()
        if self._cache_enabled:
            self._store(key, data, ttl)
        return data

    def _store(self, key: str, data: Any, ttl: int) -> None:
        """Cache a response, dropping expired entries and the oldest ones past the cap."""
        now = time.time()
        for stale in [k for k, (_, expires_at) in self._cache.items() if expires_at <= now]:
            del self._cache[stale]
        self._cache.pop(key, None)
        self._cache[key] = (data, now + ttl)
        while len(self._cache) > _CACHE_MAX_ENTRIES:
            self._cache.popitem(last=False)

    # --- Market data ---

    async def fetch_top_assets(self, n: int = 10) -> list[CryptoAsset]:
        """Top ``n`` assets by market cap, largest first."""
        data = await self._get_json(
            "/coins/markets",
            {
                "vs_currency": "usd",
                "order": "market_cap_desc",
                "per_page": str(n),
                "page": "1",
                "sparkline": "false",
            },
            _MARKETS_TTL,
        )
        assets = [CryptoAsset.from_market_data(row) for row in data]
        assets.sort(key=lambda a: a.market_cap or 0, reverse=True)
        return assets

    async def fetch_asset_by_id(self, asset_id: str) -> CryptoAsset | None:
        """Fast lookup through the markets endpoint. Any failure yields None."""
        try:
            data = await self._get_json(
                "/coins/markets",
                {"vs_currency": "usd", "ids": asset_id, "sparkline": "false"},
                _MARKETS_TTL,
            )
        except UpstreamError as e:
            logger.debug("Asset lookup failed for %s: %s", asset_id, e)
            return None
        if not data:
            return None
        return CryptoAsset.from_market_data(data[0])

    async def get_asset_by_id(self, asset_id: str) -> CryptoAsset:
        asset = await self.fetch_asset_by_id(asset_id)
        if asset is None:
            raise AssetNotFoundError(f"Cryptocurrency not found: {asset_id}")
        return asset

    async def search_assets(self, query: str) -> list[SearchHit]:
        data = await self._get_json("/search", {"query": query}, _SEARCH_TTL)
        return [SearchHit.model_validate(coin) for coin in data.get("coins", [])]

    async def fetch_categories(self) -> list[Category]:
        data = await self._get_json("/coins/categories/list", None, _CATEGORIES_TTL)
        return [Category.model_validate(c) for c in data]

    # --- Resolution ---

    async def resolve_query(self, query: str) -> QueryResolution:
        """Map free-form text (name, ticker or ID) to one asset or a short list of candidates.

        Cheap paths come first: the alias table and a direct ID lookup cost a
        single request each. Only then is the search endpoint consulted, where
        names that several significant assets share ("coin") produce
        suggestions instead of a guess.
        """
        normalized = query.lower().strip()
        if not normalized:
            return NotFound()

        alias_id = ASSET_ALIASES.get(normalized)
        if alias_id:
            asset = await self.fetch_asset_by_id(alias_id)
            if asset:
                return Resolved(asset)

        asset = await self.fetch_asset_by_id(normalized)
        if asset:
            return Resolved(asset)

        hits = await self.search_assets(query)
        if not hits:
            return NotFound()

        hits = sorted(hits, key=lambda h: h.rank_key)

        exact = next(
            (
                h for h in hits
                if normalized in (h.id.lower(), h.symbol.lower(), h.name.lower())
            ),
            None,
        )
        if exact:
            asset = await self.fetch_asset_by_id(exact.id)
            if asset:
                return Resolved(asset)

        relevant = [
            h for h in hits
            if normalized in h.name.lower()
            and h.market_cap_rank
            and h.market_cap_rank <= SIGNIFICANT_RANK
        ]
        if len(relevant) > 1:
            return Ambiguous([Suggestion.from_hit(h) for h in relevant[:MAX_SUGGESTIONS]])
        if len(relevant) == 1:
            asset = await self.fetch_asset_by_id(relevant[0].id)
            if asset:
                return Resolved(asset)

        asset = await self.fetch_asset_by_id(hits[0].id)
        if asset:
            return Resolved(asset)

        logger.debug("No asset could be fetched for %r, returning suggestions", query)
        return Ambiguous([Suggestion.from_hit(h) for h in hits[:MAX_SUGGESTIONS]])

    async def resolve_category(self, category: str, limit: int = 10) -> CategoryResolution:
        """Top assets of a category, or category name suggestions when nothing matches."""
        limit = max(1, min(limit, MAX_CATEGORY_LIMIT))
        normalized = category.lower().strip()
        if not normalized:
            return CategoryNotFound(list(DEFAULT_CATEGORY_SUGGESTIONS))

        category_id = CATEGORY_ALIASES.get(normalized, normalized)
        categories = await self.fetch_categories()

        matched = next(
            (c for c in categories if c.category_id == category_id or c.name.lower() == normalized),
            None,
        )
        if matched is None:
            matched = next(
                (c for c in categories if normalized in c.category_id or normalized in c.name.lower()),
                None,
            )
        if matched is None:
            return CategoryNotFound(_suggest_categories(normalized, categories))

        data = await self._get_json(
            "/coins/markets",
            {
                "vs_currency": "usd",
                "category": matched.category_id,
                "order": "market_cap_desc",
                "per_page": str(limit),
                "page": "1",
                "sparkline": "false",
            },
            _CATEGORY_MARKETS_TTL,
        )
        if not data:
            return CategoryNotFound(list(DEFAULT_CATEGORY_SUGGESTIONS))

        assets = []
        for row in data:
            asset = CryptoAsset.from_market_data(row)
            asset.categories = [matched.name]
            assets.append(asset)
        assets.sort(key=lambda a: a.market_cap or 0, reverse=True)
        return CategoryResolved(assets=assets[:limit], category_name=matched.name)


def _suggest_categories(normalized: str, categories: list[Category]) -> list[str]:
    """Names sharing the query's first three characters, else a default set."""
    prefix = normalized[:3]
    names = [
        c.name for c in categories
        if prefix in c.name.lower() or prefix in c.category_id
    ][:MAX_SUGGESTIONS]
    return names or list(DEFAULT_CATEGORY_SUGGESTIONS)


_client: CoinGeckoClient | None = None


def get_coingecko_client() -> CoinGeckoClient:
    """Shared client so the response cache survives across requests. FastAPI dependency."""
    global _client
    if _client is None:
        _client = CoinGeckoClient()
    return _client
