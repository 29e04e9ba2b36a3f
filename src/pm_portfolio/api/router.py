"""pm_portfolio REST endpoints.

GET /portfolio/{address}            — open positions with derived P&L
GET /portfolio/{address}/history    — most recent trades
GET /portfolio/{address}/claimable  — winning positions in resolved markets
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.dependencies import get_mirror_store
from src.pm_indexer.domain.store import MirrorStoreProtocol
from src.pm_portfolio.application.service import HISTORY_LIMIT, PortfolioQueryService

router = APIRouter(prefix="/portfolio", tags=["portfolio"])


def get_portfolio_service(
    store: Annotated[MirrorStoreProtocol, Depends(get_mirror_store)],
) -> PortfolioQueryService:
    return PortfolioQueryService(store)


@router.get("/{address}")
async def get_portfolio(
    address: str,
    request: Request,
    service: Annotated[PortfolioQueryService, Depends(get_portfolio_service)],
) -> ApiResponse:
    result = await service.get_portfolio(address)
    return success_response(result.model_dump(), request)


@router.get("/{address}/history")
async def get_history(
    address: str,
    request: Request,
    service: Annotated[PortfolioQueryService, Depends(get_portfolio_service)],
    limit: int = Query(HISTORY_LIMIT, ge=1, le=200),
) -> ApiResponse:
    result = await service.get_trade_history(address, limit)
    return success_response(result.model_dump(), request)


@router.get("/{address}/claimable")
async def get_claimable(
    address: str,
    request: Request,
    service: Annotated[PortfolioQueryService, Depends(get_portfolio_service)],
) -> ApiResponse:
    result = await service.get_claimable(address)
    return success_response(result.model_dump(), request)
