"""Autocomplete search over CoinGecko assets."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.services.integrations.coingecko import CoinGeckoClient, UpstreamError, get_coingecko_client

logger = logging.getLogger(__name__)
router = APIRouter()

MIN_QUERY_CHARS = 2
MAX_RESULTS = 10


@router.get("")
async def search(q: str = "", client: CoinGeckoClient = Depends(get_coingecko_client)):
    """Up to 10 matching coins, most significant (lowest market cap rank) first."""
    query = q.strip()
    if len(query) < MIN_QUERY_CHARS:
        return {"coins": []}

    try:
        hits = await client.search_assets(query)
    except UpstreamError as e:
        logger.error("Search failed for %r: %s", query, e)
        return JSONResponse({"coins": [], "error": "Search failed"}, status_code=500)

    hits.sort(key=lambda h: h.rank_key)
    return {"coins": [h.model_dump() for h in hits[:MAX_RESULTS]]}
