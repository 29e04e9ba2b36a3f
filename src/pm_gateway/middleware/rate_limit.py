"""Rate limiting middleware — Redis fixed-window counter per client IP.

Rule: RATE_LIMIT_REQUESTS per RATE_LIMIT_WINDOW_SECONDS per IP on /api/ paths.

    count = await redis.incr(key)
    if count == 1:
        await redis.expire(key, window)
    if count > limit:
        -> 429 with RateLimitError envelope and Retry-After

Key pattern: "ratelimit:{ip}:{window_start}". The client IP is taken from the
first X-Forwarded-For hop when present (reverse proxy aware).
Redis unavailable → request is let through (fail open) with a warning.
"""

import logging
import time

from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from config.settings import settings
from src.pm_common.errors import RateLimitError
from src.pm_common.redis_client import get_redis
from src.pm_common.response import error_response

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not settings.RATE_LIMIT_ENABLED or not request.url.path.startswith("/api/"):
            return await call_next(request)

        window = settings.RATE_LIMIT_WINDOW_SECONDS
        key = f"ratelimit:{client_ip(request)}:{int(time.time()) // window}"
        try:
            redis = await get_redis()
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, window)
        except (RedisError, OSError) as e:
            logger.warning("Rate limit check skipped, Redis unavailable: %s", e)
            return await call_next(request)

        if count > settings.RATE_LIMIT_REQUESTS:
            exc = RateLimitError()
            resp = error_response(exc.code, exc.message)
            if hasattr(request.state, "request_id"):
                resp.request_id = request.state.request_id
            return JSONResponse(
                status_code=exc.http_status,
                content=resp.model_dump(),
                headers={"Retry-After": str(window - int(time.time()) % window)},
            )
        return await call_next(request)
