"""Tests for the CoinGecko client and query/category resolution."""

from types import SimpleNamespace

import pytest

from app.models.crypto import (
    Ambiguous,
    CategoryNotFound,
    CategoryResolved,
    NotFound,
    Resolved,
)
from app.services.integrations import coingecko as coingecko_module
from app.services.integrations.coingecko import (
    DEFAULT_CATEGORY_SUGGESTIONS,
    AssetNotFoundError,
    UpstreamError,
)
from tests.fakes import market_row, search_hit


@pytest.fixture
def market(coingecko):
    coingecko.add_market(
        market_row("bitcoin", "btc", "Bitcoin", 1, 1_300_000_000_000, 65000.0),
        market_row("ethereum", "eth", "Ethereum", 2, 400_000_000_000, 3200.0),
        market_row("tether", "usdt", "Tether", 3, 110_000_000_000),
        market_row("binancecoin", "bnb", "BNB", 4, 85_000_000_000, 580.0),
        market_row("solana", "sol", "Solana", 5, 70_000_000_000, 150.0),
        market_row("usd-coin", "usdc", "USD Coin", 6, 33_000_000_000),
        market_row("ripple", "xrp", "XRP", 7, 28_000_000_000, 0.5),
        market_row("dogecoin", "doge", "Dogecoin", 8, 20_000_000_000, 0.15),
        market_row("cardano", "ada", "Cardano", 9, 16_000_000_000, 0.45),
        market_row("tron", "trx", "TRON", 10, 11_000_000_000, 0.12),
        market_row("shiba-inu", "shib", "Shiba Inu", 11, 10_000_000_000, 0.00002),
        market_row("wrapped-bitcoin", "wbtc", "Wrapped Bitcoin", 15, 9_000_000_000, 65000.0),
        market_row("bitcoin-cash", "bch", "Bitcoin Cash", 18, 8_000_000_000, 450.0),
        market_row("litecoin", "ltc", "Litecoin", 20, 6_000_000_000, 80.0),
        market_row("satoshi-token", "sats", "Satoshi Token", 900, 1_000_000),
    )
    return coingecko


# --- Market data ---


@pytest.mark.asyncio
async def test_fetch_top_assets_sorted_by_market_cap(market):
    assets = await market.client().fetch_top_assets(10)
    assert len(assets) == 10
    caps = [a.market_cap for a in assets]
    assert caps == sorted(caps, reverse=True)
    assert assets[0].id == "bitcoin"
    assert assets[0].symbol == "BTC"
    assert assets[0].price == 65000.0


@pytest.mark.asyncio
async def test_fetch_top_assets_upstream_error(market):
    market.failing_paths.add("/coins/markets")
    with pytest.raises(UpstreamError) as exc_info:
        await market.client().fetch_top_assets(10)
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_fetch_asset_by_id_returns_none_on_error(market):
    market.failing_paths.add("/coins/markets")
    assert await market.client().fetch_asset_by_id("bitcoin") is None


@pytest.mark.asyncio
async def test_fetch_asset_by_id_unknown(market):
    assert await market.client().fetch_asset_by_id("nope") is None


@pytest.mark.asyncio
async def test_get_asset_by_id_raises_when_missing(market):
    with pytest.raises(AssetNotFoundError):
        await market.client().get_asset_by_id("nope")


@pytest.mark.asyncio
async def test_search_assets_upstream_error(market):
    market.failing_paths.add("/search")
    with pytest.raises(UpstreamError):
        await market.client().search_assets("bit")


@pytest.mark.asyncio
async def test_api_key_appended_to_requests(market):
    await market.client(api_key="demo-key").fetch_top_assets(3)
    assert market.requests[0].url.params["x_cg_demo_api_key"] == "demo-key"


@pytest.mark.asyncio
async def test_no_api_key_param_without_key(market):
    await market.client().fetch_top_assets(3)
    assert "x_cg_demo_api_key" not in market.requests[0].url.params


@pytest.mark.asyncio
async def test_responses_cached_within_window(market):
    client = market.client(cache=True)
    await client.fetch_top_assets(5)
    await client.fetch_top_assets(5)
    assert len(market.requests) == 1


@pytest.mark.asyncio
async def test_failures_not_cached(market):
    client = market.client(cache=True)
    market.failing_paths.add("/coins/markets")
    with pytest.raises(UpstreamError):
        await client.fetch_top_assets(5)
    market.failing_paths.clear()
    assert len(await client.fetch_top_assets(5)) == 5


@pytest.mark.asyncio
async def test_expired_entries_dropped_on_write(market, monkeypatch):
    clock = SimpleNamespace(now=1_000.0)
    monkeypatch.setattr(coingecko_module, "time", SimpleNamespace(time=lambda: clock.now))
    client = market.client(cache=True)
    for i in range(20):
        await client.fetch_asset_by_id(f"q{i}")
    assert len(client._cache) == 20

    clock.now += 11
    await client.fetch_asset_by_id("bitcoin")
    assert list(client._cache) == ["/coins/markets?ids=bitcoin&sparkline=false&vs_currency=usd"]


@pytest.mark.asyncio
async def test_cache_size_is_capped(market, monkeypatch):
    monkeypatch.setattr(coingecko_module, "_CACHE_MAX_ENTRIES", 3)
    client = market.client(cache=True)
    for i in range(5):
        await client.fetch_asset_by_id(f"q{i}")
    assert len(client._cache) == 3
    assert all("q0" not in key and "q1" not in key for key in client._cache)


# --- Query resolution ---


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "query, expected_id",
    [("btc", "bitcoin"), ("ETH", "ethereum"), (" sol ", "solana"), ("shib", "shiba-inu")],
)
async def test_alias_resolves_with_single_call(market, query, expected_id):
    result = await market.client().resolve_query(query)
    assert isinstance(result, Resolved)
    assert result.asset.id == expected_id
    assert len(market.requests) == 1


@pytest.mark.asyncio
async def test_direct_id_resolves_without_search(market):
    result = await market.client().resolve_query("Cardano")
    assert isinstance(result, Resolved)
    assert result.asset.id == "cardano"
    assert [r.url.path for r in market.requests] == ["/api/v3/coins/markets"]


@pytest.mark.asyncio
async def test_empty_query_not_found(market):
    assert isinstance(await market.client().resolve_query("   "), NotFound)
    assert market.requests == []


@pytest.mark.asyncio
async def test_no_search_hits_not_found(market):
    result = await market.client().resolve_query("qwertyzzz")
    assert isinstance(result, NotFound)


@pytest.mark.asyncio
async def test_shared_name_is_ambiguous(market):
    market.search_results["coin"] = [
        search_hit("litecoin", "ltc", "Litecoin", 20),
        search_hit("chaincoin", "chc", "Chaincoin", None),
        search_hit("bitcoin", "btc", "Bitcoin", 1),
        search_hit("dogecoin", "doge", "Dogecoin", 8),
        search_hit("bitcoin-cash", "bch", "Bitcoin Cash", 18),
        search_hit("usd-coin", "usdc", "USD Coin", 6),
        search_hit("coinbase-wrapped-btc", "cbbtc", "Coinbase Wrapped BTC", 40),
    ]
    result = await market.client().resolve_query("coin")
    assert isinstance(result, Ambiguous)
    assert [s.id for s in result.suggestions] == [
        "bitcoin", "usd-coin", "dogecoin", "bitcoin-cash", "litecoin",
    ]
    assert result.suggestions[0].symbol == "BTC"


@pytest.mark.asyncio
async def test_exact_name_match_bypasses_ambiguity(market):
    market.search_results["wrapped bitcoin"] = [
        search_hit("wrapped-bitcoin-portal", "wbtc", "Wrapped Bitcoin (Portal)", 300),
        search_hit("wrapped-bitcoin", "wbtc", "Wrapped Bitcoin", 15),
    ]
    result = await market.client().resolve_query("Wrapped Bitcoin")
    assert isinstance(result, Resolved)
    assert result.asset.id == "wrapped-bitcoin"


@pytest.mark.asyncio
async def test_single_relevant_match_resolves(market):
    market.search_results["shiba"] = [
        search_hit("shiba-predator", "qom", "Shiba Predator", None),
        search_hit("shiba-inu", "shib", "Shiba Inu", 11),
    ]
    result = await market.client().resolve_query("shiba")
    assert isinstance(result, Resolved)
    assert result.asset.id == "shiba-inu"


@pytest.mark.asyncio
async def test_falls_back_to_top_ranked_hit(market):
    market.search_results["satoshi"] = [
        search_hit("satoshi-token", "sats", "Satoshi Token", 900),
        search_hit("satoshi-dust", "dust", "Satoshi Dust", None),
    ]
    result = await market.client().resolve_query("satoshi")
    assert isinstance(result, Resolved)
    assert result.asset.id == "satoshi-token"


@pytest.mark.asyncio
async def test_suggestions_when_top_hit_unavailable(market):
    market.search_results["ghost"] = [
        search_hit(f"ghost-{i}", f"gh{i}", f"Phantom {i}", 600 + i) for i in range(7)
    ]
    result = await market.client().resolve_query("ghost")
    assert isinstance(result, Ambiguous)
    assert [s.id for s in result.suggestions] == [f"ghost-{i}" for i in range(5)]


@pytest.mark.asyncio
async def test_search_failure_propagates(market):
    market.failing_paths.add("/search")
    with pytest.raises(UpstreamError):
        await market.client().resolve_query("unknowncoin")


# --- Category resolution ---


@pytest.fixture
def categories(market):
    market.categories = [
        {"category_id": "layer-1", "name": "Layer 1 (L1)"},
        {"category_id": "decentralized-finance-defi", "name": "Decentralized Finance (DeFi)"},
        {"category_id": "meme-token", "name": "Meme"},
        {"category_id": "gaming", "name": "Gaming (GameFi)"},
        {"category_id": "artificial-intelligence", "name": "Artificial Intelligence (AI)"},
    ]
    market.category_markets["meme-token"] = [
        market_row("shiba-inu", "shib", "Shiba Inu", 11, 10_000_000_000),
        market_row("dogecoin", "doge", "Dogecoin", 8, 20_000_000_000),
    ]
    market.category_markets["gaming"] = [
        market_row("axie-infinity", "axs", "Axie Infinity", 90, 900_000_000),
    ]
    market.category_markets["layer-1"] = [
        market_row(f"chain-{i}", f"c{i}", f"Chain {i}", i + 1, 1_000_000 * (30 - i)) for i in range(30)
    ]
    return market


@pytest.mark.asyncio
async def test_category_alias(categories):
    result = await categories.client().resolve_category("memes")
    assert isinstance(result, CategoryResolved)
    assert result.category_name == "Meme"
    assert [a.id for a in result.assets] == ["dogecoin", "shiba-inu"]
    assert all(a.categories == ["Meme"] for a in result.assets)


@pytest.mark.asyncio
async def test_category_limit_is_capped(categories):
    result = await categories.client().resolve_category("l1", limit=50)
    assert isinstance(result, CategoryResolved)
    assert len(result.assets) == 20
    assert categories.requests[-1].url.params["per_page"] == "20"


@pytest.mark.asyncio
async def test_category_substring_match(categories):
    result = await categories.client().resolve_category("gam")
    assert isinstance(result, CategoryResolved)
    assert result.category_name == "Gaming (GameFi)"


@pytest.mark.asyncio
async def test_unknown_category_suggests_by_prefix(categories):
    result = await categories.client().resolve_category("defx")
    assert isinstance(result, CategoryNotFound)
    assert result.suggestions == ["Decentralized Finance (DeFi)"]


@pytest.mark.asyncio
async def test_unknown_category_default_suggestions(categories):
    result = await categories.client().resolve_category("zzzz")
    assert isinstance(result, CategoryNotFound)
    assert result.suggestions == DEFAULT_CATEGORY_SUGGESTIONS


@pytest.mark.asyncio
async def test_empty_category_markets_not_found(categories):
    result = await categories.client().resolve_category("ai")
    assert isinstance(result, CategoryNotFound)
