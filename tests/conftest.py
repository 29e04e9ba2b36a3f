"""Shared test fixtures."""

import pytest

from src.pm_chain.infrastructure.local_chain import LocalChain
from src.pm_chain.infrastructure.local_client import LocalChainClient
from src.pm_common.fixed_point import to_units
from src.pm_indexer.application.reconciler import Reconciler
from src.pm_indexer.infrastructure.memory_store import InMemoryMirrorStore
from tests.support import ALICE, BOB, GENESIS_TS, OWNER, FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(GENESIS_TS)


@pytest.fixture
def chain(clock: FakeClock) -> LocalChain:
    """LocalChain with the owner, ALICE and BOB funded."""
    c = LocalChain(owner=OWNER, clock=clock)
    c.mint(OWNER, OWNER, to_units(1_000_000))
    c.mint(OWNER, ALICE, to_units(10_000))
    c.mint(OWNER, BOB, to_units(10_000))
    return c


@pytest.fixture
def create_market(chain: LocalChain):
    """Factory: create a market on `chain` as the owner, return its address."""

    def _create(
        question: str = "Will it rain tomorrow?",
        liquidity: int = to_units(1_000),
        fee_bps: int = 200,
        category: str = "weather",
    ) -> str:
        receipt = chain.create_market(
            OWNER, question, "Resolves YES on measurable rain.", category,
            GENESIS_TS + 86_400, liquidity, fee_bps,
        )
        return receipt.result.address

    return _create


@pytest.fixture
def store() -> InMemoryMirrorStore:
    return InMemoryMirrorStore()


@pytest.fixture
def chain_client(chain: LocalChain) -> LocalChainClient:
    return LocalChainClient(chain)


@pytest.fixture
def reconciler(store: InMemoryMirrorStore, chain_client: LocalChainClient) -> Reconciler:
    return Reconciler(store, chain_client)
