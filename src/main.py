"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.pm_amm.api.router import router as amm_router
from src.pm_chain.infrastructure.local_chain import LocalChain
from src.pm_chain.infrastructure.local_client import LocalChainClient
from src.pm_common.database import async_session_factory, engine
from src.pm_common.errors import AppError
from src.pm_common.redis_client import close_redis, get_redis
from src.pm_common.response import error_response
from src.pm_gateway.middleware.rate_limit import RateLimitMiddleware
from src.pm_gateway.middleware.request_log import RequestLogMiddleware
from src.pm_indexer.api.router import router as trades_router
from src.pm_indexer.application.poller import ChainEventPoller
from src.pm_indexer.application.reconciler import Reconciler
from src.pm_indexer.domain.store import MirrorStoreProtocol
from src.pm_indexer.infrastructure.memory_store import InMemoryMirrorStore
from src.pm_indexer.infrastructure.persistence import SqlMirrorStore
from src.pm_market.api.router import router as market_router
from src.pm_portfolio.api.router import router as portfolio_router


async def _build_store() -> MirrorStoreProtocol:
    if settings.MIRROR_BACKEND == "memory":
        return InMemoryMirrorStore()
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return SqlMirrorStore(async_session_factory)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: wire store, chain, reconciler and poller. Shutdown: stop and dispose."""
    # Startup
    store = await _build_store()
    chain = LocalChain(owner=settings.CHAIN_OWNER_ADDRESS)
    client = LocalChainClient(chain)
    reconciler = Reconciler(store, client, settings.RPC_TIMEOUT_SECONDS)
    poller = ChainEventPoller(
        chain=client,
        reconciler=reconciler,
        store=store,
        scan_interval=settings.SCAN_INTERVAL_SECONDS,
        price_interval=settings.PRICE_REFRESH_INTERVAL_SECONDS,
        rpc_timeout=settings.RPC_TIMEOUT_SECONDS,
    )
    app.state.mirror_store = store
    app.state.chain = chain
    app.state.reconciler = reconciler
    app.state.poller = poller
    if settings.RATE_LIMIT_ENABLED:
        await get_redis()
    if settings.INDEXER_ENABLED:
        await poller.start()
    yield
    # Shutdown
    await poller.stop()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(market_router, prefix="/api/v1")
app.include_router(portfolio_router, prefix="/api/v1")
app.include_router(trades_router, prefix="/api/v1")
app.include_router(amm_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
