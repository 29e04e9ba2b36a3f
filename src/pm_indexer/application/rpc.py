"""Timeout-bounded chain calls."""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from src.pm_common.errors import ChainRpcError

T = TypeVar("T")


async def rpc_call(call: Awaitable[T], timeout: float | None) -> T:
    """Await `call`, converting a timeout into ChainRpcError."""
    if timeout is None:
        return await call
    try:
        return await asyncio.wait_for(call, timeout)
    except asyncio.TimeoutError as e:
        raise ChainRpcError(f"timed out after {timeout}s") from e
