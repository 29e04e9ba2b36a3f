"""FastAPI dependencies resolving the process-wide components built in lifespan.

Usage in any router:
    from src.pm_gateway.dependencies import get_mirror_store

    @router.get("/markets")
    async def list_markets(store: MirrorStoreProtocol = Depends(get_mirror_store)):
        ...

Tests swap components by assigning app.state attributes directly.
"""

from fastapi import Request

from src.pm_chain.infrastructure.local_chain import LocalChain
from src.pm_common.errors import InternalError
from src.pm_indexer.application.reconciler import Reconciler
from src.pm_indexer.domain.store import MirrorStoreProtocol


def _component(request: Request, name: str):
    component = getattr(request.app.state, name, None)
    if component is None:
        raise InternalError()
    return component


def get_mirror_store(request: Request) -> MirrorStoreProtocol:
    return _component(request, "mirror_store")


def get_reconciler(request: Request) -> Reconciler:
    return _component(request, "reconciler")


def get_local_chain(request: Request) -> LocalChain:
    return _component(request, "chain")
