# tests/unit/test_poller.py
"""Unit tests for ChainEventPoller: watermark scanning, recovery, lifecycle."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.pm_common.enums import Side
from src.pm_common.errors import ChainRpcError
from src.pm_common.fixed_point import to_units
from src.pm_indexer.application.poller import ChainEventPoller
from src.pm_indexer.application.reconciler import Reconciler
from src.pm_indexer.infrastructure.memory_store import InMemoryMirrorStore
from tests.support import ALICE, BOB


@pytest.fixture
def make_poller(store, reconciler, chain_client):
    def _make(chain=None, rec=None, **kwargs) -> ChainEventPoller:
        return ChainEventPoller(
            chain=chain or chain_client,
            reconciler=rec or reconciler,
            store=store,
            scan_interval=kwargs.get("scan_interval", 15.0),
            price_interval=kwargs.get("price_interval", 30.0),
            rpc_timeout=kwargs.get("rpc_timeout", 1.0),
        )

    return _make


async def _trade_count(store, address: str) -> int:
    market = await store.get_market_by_address(address)
    return len(await store.list_trades_by_market(market.id, 1_000))


class TestBootstrap:
    async def test_resyncs_and_starts_from_head(self, chain, store, make_poller, create_market):
        address = create_market()
        poller = make_poller()

        await poller.bootstrap()

        assert poller.state.last_scanned_block == chain.block_number
        assert address in poller.state.watched_markets
        assert await store.get_market_by_address(address) is not None

    async def test_resumes_from_persisted_watermark(self, chain, store, make_poller, create_market):
        address = create_market()
        await store.set_watermark(chain.block_number)
        chain.buy(ALICE, address, Side.YES, to_units(10))  # happened while we were down
        poller = make_poller()

        await poller.bootstrap()
        assert poller.state.last_scanned_block == chain.block_number - 1
        assert await poller.scan_once() is True

        assert await _trade_count(store, address) == 1

    async def test_watermark_ahead_of_head_rewinds(self, chain, store, make_poller):
        await store.set_watermark(chain.block_number + 500)
        poller = make_poller()
        await poller.bootstrap()
        assert poller.state.last_scanned_block == chain.block_number

    async def test_enumeration_failure_retried_on_next_tick(self, chain, store, chain_client):
        client = MagicMock(wraps=chain_client)
        client.registry_address = chain_client.registry_address
        client.get_markets = AsyncMock(side_effect=ChainRpcError("node down"))
        poller = ChainEventPoller(client, Reconciler(store, client), store)

        await poller.bootstrap()
        assert poller.state.last_scanned_block is None

        client.get_markets = AsyncMock(return_value=[])
        assert await poller.scan_once() is False
        assert poller.state.last_scanned_block == chain.block_number


class TestScanOnce:
    async def test_no_new_blocks(self, make_poller):
        poller = make_poller()
        await poller.bootstrap()
        assert await poller.scan_once() is False

    async def test_applies_events_and_persists_watermark(
        self, chain, store, make_poller, create_market
    ):
        address = create_market()
        poller = make_poller()
        await poller.bootstrap()
        chain.buy(ALICE, address, Side.YES, to_units(10))
        chain.buy(BOB, address, Side.NO, to_units(5))

        assert await poller.scan_once() is True

        assert poller.state.last_scanned_block == chain.block_number
        assert await store.get_watermark() == chain.block_number
        assert await _trade_count(store, address) == 2

    async def test_new_market_watched_and_its_trades_applied_same_tick(
        self, chain, store, make_poller, create_market
    ):
        poller = make_poller()
        await poller.bootstrap()
        address = create_market()
        chain.buy(ALICE, address, Side.YES, to_units(10))

        await poller.scan_once()

        assert address in poller.state.watched_markets
        assert await _trade_count(store, address) == 1

    async def test_fetch_error_keeps_watermark(self, chain, store, chain_client, create_market):
        address = create_market()
        client = MagicMock(wraps=chain_client)
        client.registry_address = chain_client.registry_address
        poller = ChainEventPoller(client, Reconciler(store, client), store)
        await poller.bootstrap()
        watermark = poller.state.last_scanned_block
        chain.buy(ALICE, address, Side.YES, to_units(10))
        client.get_logs = AsyncMock(side_effect=ChainRpcError("timeout"))

        assert await poller.scan_once() is False

        assert poller.state.last_scanned_block == watermark
        assert await store.get_watermark() is None
        assert await _trade_count(store, address) == 0

        # next tick with a healthy node picks the range up again
        client.get_logs = AsyncMock(side_effect=chain_client.get_logs)
        assert await poller.scan_once() is True
        assert await _trade_count(store, address) == 1

    async def test_crash_before_persist_replays_without_duplicates(
        self, chain, store, make_poller, create_market
    ):
        address = create_market()
        first = make_poller()
        await first.bootstrap()
        start = first.state.last_scanned_block
        chain.buy(ALICE, address, Side.YES, to_units(10))
        chain.sell(ALICE, address, Side.YES, 1_000)
        await first.scan_once()

        # restart with the watermark from before the range was applied
        await store.set_watermark(start)
        second = make_poller()
        await second.bootstrap()
        await second.scan_once()

        market = await store.get_market_by_address(address)
        assert await _trade_count(store, address) == 2
        position = await store.get_position(market.id, ALICE, Side.YES)
        assert position.shares == chain.registry.get_market(address).shares_of(ALICE, Side.YES)

    async def test_rpc_timeout_abandons_tick(self, store, chain_client):
        client = MagicMock(wraps=chain_client)
        client.registry_address = chain_client.registry_address
        poller = ChainEventPoller(client, Reconciler(store, client), store, rpc_timeout=0.01)
        await poller.bootstrap()
        watermark = poller.state.last_scanned_block

        async def _hang():
            await asyncio.sleep(1)
            return 10_000

        client.get_block_number = AsyncMock(side_effect=_hang)

        assert await poller.scan_once() is False
        assert poller.state.last_scanned_block == watermark


class TestLifecycle:
    async def test_start_and_stop(self, chain, store, make_poller, create_market):
        address = create_market()
        poller = make_poller(scan_interval=0.01, price_interval=0.01)

        await poller.start()
        assert poller.state.running is True
        chain.buy(ALICE, address, Side.YES, to_units(10))
        for _ in range(100):
            if await store.get_watermark() == chain.block_number:
                break
            await asyncio.sleep(0.01)
        await poller.stop()

        assert poller.state.running is False
        assert await _trade_count(store, address) == 1

    async def test_tick_failure_does_not_kill_loop(self, store, make_poller):
        rec = MagicMock()
        rec.full_resync = AsyncMock(return_value=[])
        rec.repair_positions = AsyncMock(return_value=0)
        rec.refresh_prices = AsyncMock(side_effect=[RuntimeError("boom"), 0, 0, 0, 0, 0, 0, 0])
        poller = make_poller(rec=rec, scan_interval=0.01, price_interval=0.01)

        await poller.start()
        for _ in range(100):
            if rec.refresh_prices.await_count >= 2:
                break
            await asyncio.sleep(0.01)
        await poller.stop()

        assert rec.refresh_prices.await_count >= 2


class TestPositionRepair:
    async def test_restart_after_crash_mid_trade_restores_position(
        self, chain, chain_client, create_market
    ):
        class _DiesOnSave(InMemoryMirrorStore):
            armed = False

            async def save_position(self, position) -> None:
                if self.armed:
                    self.armed = False
                    raise RuntimeError("process died")
                await super().save_position(position)

        store = _DiesOnSave()
        address = create_market()
        first = ChainEventPoller(chain_client, Reconciler(store, chain_client), store)
        await first.bootstrap()
        await store.set_watermark(first.state.last_scanned_block)
        receipt = chain.buy(ALICE, address, Side.YES, to_units(100))

        store.armed = True
        with pytest.raises(RuntimeError):
            await first.scan_once()
        assert await store.get_watermark() == first.state.last_scanned_block

        second = ChainEventPoller(chain_client, Reconciler(store, chain_client), store)
        await second.bootstrap()
        assert second.state.needs_position_repair is True
        assert await second.scan_once() is True

        market = await store.get_market_by_address(address)
        position = await store.get_position(market.id, ALICE, Side.YES)
        assert await _trade_count(store, address) == 1
        assert position.shares == receipt.result.shares
        assert position.shares == chain.registry.get_market(address).shares_of(ALICE, Side.YES)
        assert second.state.needs_position_repair is False

    async def test_runs_once_when_caught_up(self, make_poller):
        rec = MagicMock()
        rec.full_resync = AsyncMock(return_value=[])
        rec.repair_positions = AsyncMock(return_value=0)
        poller = make_poller(rec=rec)
        await poller.bootstrap()

        await poller.scan_once()
        await poller.scan_once()

        rec.repair_positions.assert_awaited_once_with(poller.state.last_scanned_block)
        assert poller.state.needs_position_repair is False

    async def test_retried_while_head_moves_or_chain_fails(self, make_poller):
        rec = MagicMock()
        rec.full_resync = AsyncMock(return_value=[])
        rec.repair_positions = AsyncMock(side_effect=[None, ChainRpcError("node down"), 3])
        poller = make_poller(rec=rec)
        await poller.bootstrap()

        await poller.scan_once()
        assert poller.state.needs_position_repair is True
        await poller.scan_once()
        assert poller.state.needs_position_repair is True
        await poller.scan_once()
        assert poller.state.needs_position_repair is False
        assert rec.repair_positions.await_count == 3
