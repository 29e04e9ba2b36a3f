"""pm_market REST endpoints.

GET /markets                          — list, filter by category, sort volume|newest
GET /markets/featured                 — top markets by volume
GET /markets/search?q=                — case-insensitive question search
GET /markets/{id_or_address}          — detail with bounded price history
GET /markets/{id_or_address}/trades   — most recent trades
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from config.settings import settings
from src.pm_common.enums import MarketSort
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.dependencies import get_mirror_store
from src.pm_indexer.domain.store import MirrorStoreProtocol
from src.pm_market.application.service import MarketQueryService

router = APIRouter(prefix="/markets", tags=["markets"])


def get_market_service(
    store: Annotated[MirrorStoreProtocol, Depends(get_mirror_store)],
) -> MarketQueryService:
    return MarketQueryService(store, settings.PRICE_HISTORY_LIMIT)


@router.get("")
async def list_markets(
    request: Request,
    service: Annotated[MarketQueryService, Depends(get_market_service)],
    category: str | None = Query(None, description="Category filter. 'all' for no filter."),
    sort: MarketSort = Query(MarketSort.VOLUME),
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    result = await service.list_markets(category, sort, limit)
    return success_response(result.model_dump(), request)


@router.get("/featured")
async def featured_markets(
    request: Request,
    service: Annotated[MarketQueryService, Depends(get_market_service)],
) -> ApiResponse:
    result = await service.featured_markets()
    return success_response(result.model_dump(), request)


@router.get("/search")
async def search_markets(
    request: Request,
    service: Annotated[MarketQueryService, Depends(get_market_service)],
    q: str = Query(..., min_length=1, max_length=200),
) -> ApiResponse:
    result = await service.search_markets(q)
    return success_response(result.model_dump(), request)


@router.get("/{id_or_address}")
async def get_market(
    id_or_address: str,
    request: Request,
    service: Annotated[MarketQueryService, Depends(get_market_service)],
) -> ApiResponse:
    result = await service.get_market(id_or_address)
    return success_response(result.model_dump(), request)


@router.get("/{id_or_address}/trades")
async def get_trades(
    id_or_address: str,
    request: Request,
    service: Annotated[MarketQueryService, Depends(get_market_service)],
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    result = await service.get_trades(id_or_address, limit)
    return success_response(result.model_dump(), request)
