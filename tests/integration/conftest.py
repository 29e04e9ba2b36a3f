"""Integration fixtures: the real app wired to an in-memory mirror and local chain.

ASGITransport does not run the lifespan, so components are placed on
app.state here and the poller is driven by hand via scan_once().
"""

import pytest
from httpx import ASGITransport, AsyncClient

from config.settings import settings
from src.main import app
from src.pm_chain.infrastructure.local_chain import LocalChain
from src.pm_chain.infrastructure.local_client import LocalChainClient
from src.pm_indexer.application.poller import ChainEventPoller
from src.pm_indexer.application.reconciler import Reconciler
from src.pm_indexer.infrastructure.memory_store import InMemoryMirrorStore
from tests.support import GENESIS_TS, OWNER, FakeClock


@pytest.fixture
async def poller(monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", False)
    store = InMemoryMirrorStore()
    chain = LocalChain(owner=OWNER, clock=FakeClock(GENESIS_TS))
    client = LocalChainClient(chain)
    reconciler = Reconciler(store, client)
    p = ChainEventPoller(client, reconciler, store)
    app.state.mirror_store = store
    app.state.chain = chain
    app.state.reconciler = reconciler
    app.state.poller = p
    await p.bootstrap()
    yield p
    for name in ("mirror_store", "chain", "reconciler", "poller"):
        delattr(app.state, name)


@pytest.fixture
async def client(poller):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
