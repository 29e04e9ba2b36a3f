"""AMM transaction endpoints against the local chain.

POST /amm/faucet                        — mint test collateral
GET  /amm/accounts/{address}            — collateral balance
POST /amm/markets                       — create + seed a market (201)
POST /amm/markets/{address}/buy         — buy YES/NO shares
POST /amm/markets/{address}/sell        — sell shares back to the pool
POST /amm/markets/{address}/resolve     — oracle-only resolution
POST /amm/markets/{address}/claim       — redeem winning shares 1:1
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from src.pm_amm.application.schemas import (
    BuyRequest,
    ClaimRequest,
    CreateMarketRequest,
    FaucetRequest,
    ResolveRequest,
    SellRequest,
)
from src.pm_amm.application.service import AmmTransactionService
from src.pm_chain.infrastructure.local_chain import LocalChain
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.dependencies import get_local_chain

router = APIRouter(prefix="/amm", tags=["amm"])


def get_amm_service(
    chain: Annotated[LocalChain, Depends(get_local_chain)],
) -> AmmTransactionService:
    return AmmTransactionService(chain)


@router.post("/faucet")
async def faucet(
    body: FaucetRequest,
    request: Request,
    service: Annotated[AmmTransactionService, Depends(get_amm_service)],
) -> ApiResponse:
    return success_response(service.faucet(body).model_dump(), request)


@router.get("/accounts/{address}")
async def get_account(
    address: str,
    request: Request,
    service: Annotated[AmmTransactionService, Depends(get_amm_service)],
) -> ApiResponse:
    return success_response(service.get_account(address).model_dump(), request)


@router.post("/markets", status_code=status.HTTP_201_CREATED)
async def create_market(
    body: CreateMarketRequest,
    request: Request,
    service: Annotated[AmmTransactionService, Depends(get_amm_service)],
) -> ApiResponse:
    return success_response(service.create_market(body).model_dump(), request)


@router.post("/markets/{address}/buy")
async def buy(
    address: str,
    body: BuyRequest,
    request: Request,
    service: Annotated[AmmTransactionService, Depends(get_amm_service)],
) -> ApiResponse:
    return success_response(service.buy(address, body).model_dump(), request)


@router.post("/markets/{address}/sell")
async def sell(
    address: str,
    body: SellRequest,
    request: Request,
    service: Annotated[AmmTransactionService, Depends(get_amm_service)],
) -> ApiResponse:
    return success_response(service.sell(address, body).model_dump(), request)


@router.post("/markets/{address}/resolve")
async def resolve(
    address: str,
    body: ResolveRequest,
    request: Request,
    service: Annotated[AmmTransactionService, Depends(get_amm_service)],
) -> ApiResponse:
    return success_response(service.resolve(address, body).model_dump(), request)


@router.post("/markets/{address}/claim")
async def claim(
    address: str,
    body: ClaimRequest,
    request: Request,
    service: Annotated[AmmTransactionService, Depends(get_amm_service)],
) -> ApiResponse:
    return success_response(service.claim(address, body).model_dump(), request)
