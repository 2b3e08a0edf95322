"""Markets API - market-cap leaderboard and single asset lookups (CoinGecko)."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from app.models.crypto import Ambiguous, NotFound, Resolved
from app.services.integrations.coingecko import (
    AssetNotFoundError,
    CoinGeckoClient,
    UpstreamError,
    get_coingecko_client,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/top")
async def top_cryptos(
    limit: int = Query(10, ge=1, le=100),
    client: CoinGeckoClient = Depends(get_coingecko_client),
):
    """Largest assets by market cap."""
    try:
        assets = await client.fetch_top_assets(limit)
    except UpstreamError as e:
        logger.error("Top assets fetch failed: %s", e)
        raise HTTPException(status_code=502, detail=str(e))
    return {"cryptos": [a.to_wire() for a in assets]}


@router.get("/resolve")
async def resolve(q: str, client: CoinGeckoClient = Depends(get_coingecko_client)):
    """Resolve free-form text to an asset, returning suggestions when ambiguous."""
    try:
        result = await client.resolve_query(q)
    except UpstreamError as e:
        logger.error("Resolution failed for %r: %s", q, e)
        raise HTTPException(status_code=502, detail=str(e))

    match result:
        case Resolved(asset=asset):
            return {"status": "resolved", "crypto": asset.to_wire()}
        case Ambiguous(suggestions=suggestions):
            return {"status": "ambiguous", "suggestions": [s.to_wire() for s in suggestions]}
        case NotFound():
            raise HTTPException(status_code=404, detail=f'No cryptocurrency matches "{q}"')


@router.get("/coins/{asset_id}")
async def get_coin(asset_id: str, client: CoinGeckoClient = Depends(get_coingecko_client)):
    try:
        asset = await client.get_asset_by_id(asset_id)
    except AssetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"crypto": asset.to_wire()}
