# tests/unit/test_memory_store.py
"""Unit tests for InMemoryMirrorStore."""

from datetime import timedelta

from src.pm_amm.domain.models import MarketInfo
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import MarketSort, Side
from src.pm_indexer.domain.models import MirrorPosition, MirrorTrade, PricePoint
from tests.support import ALICE, BOB, GENESIS_TS, OWNER


def _info(address: str, **kwargs) -> MarketInfo:
    defaults = dict(
        address=address, question="Will it rain?", description="", category="weather",
        resolution_date=GENESIS_TS + 3_600, oracle=OWNER, resolved=False, outcome=None,
        yes_price=500_000, no_price=500_000, total_volume=0, fee_bps=200,
    )
    defaults.update(kwargs)
    return MarketInfo(**defaults)


def _trade(market_id: int, tx_ref: str, **kwargs) -> MirrorTrade:
    defaults = dict(
        market_id=market_id, holder=ALICE, action="BUY_YES", shares=10, price=500_000,
        amount=5, tx_ref=tx_ref, timestamp=utc_now(),
    )
    defaults.update(kwargs)
    return MirrorTrade(**defaults)


class TestMarkets:
    async def test_upsert_is_idempotent_by_address(self, store):
        first = await store.upsert_market(_info("0xAA01"))
        second = await store.upsert_market(_info("0xaa01", yes_price=600_000, no_price=400_000))

        assert second.id == first.id
        assert second.address == "0xaa01"
        assert second.yes_price == 600_000
        assert second.created_at == first.created_at

    async def test_upsert_refreshes_static_fields(self, store):
        first = await store.upsert_market(_info("0xaa01", question="Old chain question"))
        second = await store.upsert_market(
            _info("0xaa01", question="New question", description="d", category="crypto")
        )

        assert second.id == first.id
        assert second.question == "New question"
        assert second.description == "d"
        assert second.category == "crypto"

    async def test_upsert_resolved_carries_outcome(self, store):
        market = await store.upsert_market(_info("0xaa01", resolved=True, outcome=Side.NO))
        assert market.resolved is True
        assert market.outcome == "NO"

    async def test_lookup_by_id_and_address(self, store):
        market = await store.upsert_market(_info("0xaa01"))
        assert (await store.get_market_by_id(market.id)).address == "0xaa01"
        assert (await store.get_market_by_address("0xAA01")).id == market.id
        assert await store.get_market_by_address("0xbeef") is None

    async def test_returned_rows_are_copies(self, store):
        market = await store.upsert_market(_info("0xaa01"))
        market.volume = 999
        assert (await store.get_market_by_id(market.id)).volume == 0

    async def test_list_sort_and_filter(self, store):
        a = await store.upsert_market(_info("0xa", total_volume=10, category="crypto"))
        b = await store.upsert_market(_info("0xb", total_volume=30))
        c = await store.upsert_market(_info("0xc", total_volume=20, category="crypto"))

        by_volume = await store.list_markets(None, MarketSort.VOLUME, 10)
        newest = await store.list_markets(None, MarketSort.NEWEST, 10)
        crypto = await store.list_markets("crypto", MarketSort.VOLUME, 10)

        assert [m.id for m in by_volume] == [b.id, c.id, a.id]
        assert [m.id for m in newest] == [c.id, b.id, a.id]
        assert [m.id for m in crypto] == [c.id, a.id]
        assert len(await store.list_markets(None, MarketSort.VOLUME, 2)) == 2

    async def test_search_case_insensitive(self, store):
        await store.upsert_market(_info("0xa", question="Will BTC hit 100k?"))
        await store.upsert_market(_info("0xb", question="Will it rain?"))
        hits = await store.search_markets("btc", 10)
        assert [m.address for m in hits] == ["0xa"]

    async def test_prices_volume_and_resolution(self, store):
        market = await store.upsert_market(_info("0xa"))
        await store.update_market_prices(market.id, 700_000, 300_000)
        await store.increment_volume(market.id, 50)
        await store.increment_volume(market.id, 25)
        await store.mark_resolved(market.id, Side.YES)

        updated = await store.get_market_by_id(market.id)
        assert (updated.yes_price, updated.no_price) == (700_000, 300_000)
        assert updated.volume == 75
        assert updated.resolved is True
        assert updated.outcome == "YES"
        assert await store.list_unresolved_markets() == []

    async def test_update_prices_can_overwrite_volume(self, store):
        market = await store.upsert_market(_info("0xa"))
        await store.update_market_prices(market.id, 500_000, 500_000, volume=1_234)
        assert (await store.get_market_by_id(market.id)).volume == 1_234


class TestPriceHistory:
    async def test_latest_points_ascending(self, store):
        market = await store.upsert_market(_info("0xa"))
        base = utc_now()
        for i in range(5):
            await store.append_price_point(
                PricePoint(market.id, 500_000 + i, 500_000 - i, base + timedelta(seconds=i))
            )

        points = await store.list_price_history(market.id, 3)

        assert [p.yes_price for p in points] == [500_002, 500_003, 500_004]

    async def test_point_with_tx_ref_appended_once(self, store):
        market = await store.upsert_market(_info("0xa"))
        now = utc_now()
        assert await store.append_price_point(PricePoint(market.id, 1, 1, now, tx_ref="0xt1")) is True
        assert await store.append_price_point(PricePoint(market.id, 2, 2, now, tx_ref="0xt1")) is False
        assert await store.append_price_point(PricePoint(market.id, 3, 3, now)) is True
        assert await store.append_price_point(PricePoint(market.id, 4, 4, now)) is True

        points = await store.list_price_history(market.id, 10)
        assert sorted(p.yes_price for p in points) == [1, 3, 4]

    async def test_zero_limit(self, store):
        market = await store.upsert_market(_info("0xa"))
        await store.append_price_point(PricePoint(market.id, 1, 1, utc_now()))
        assert await store.list_price_history(market.id, 0) == []


class TestTrades:
    async def test_insert_is_idempotent_on_tx_ref(self, store):
        market = await store.upsert_market(_info("0xa"))
        assert await store.insert_trade(_trade(market.id, "0xt1")) is True
        assert await store.insert_trade(_trade(market.id, "0xt1", shares=99)) is False

        trades = await store.list_trades_by_market(market.id, 10)
        assert len(trades) == 1
        assert trades[0].shares == 10
        assert trades[0].id is not None

    async def test_by_market_newest_first(self, store):
        market = await store.upsert_market(_info("0xa"))
        base = utc_now()
        await store.insert_trade(_trade(market.id, "0xt1", timestamp=base))
        await store.insert_trade(_trade(market.id, "0xt2", timestamp=base + timedelta(seconds=5)))
        trades = await store.list_trades_by_market(market.id, 10)
        assert [t.tx_ref for t in trades] == ["0xt2", "0xt1"]

    async def test_by_holder_joins_market(self, store):
        market = await store.upsert_market(_info("0xa"))
        await store.insert_trade(_trade(market.id, "0xt1", holder=ALICE.upper().replace("0X", "0x")))
        await store.insert_trade(_trade(market.id, "0xt2", holder=BOB))

        rows = await store.list_trades_by_holder(ALICE, 10)

        assert len(rows) == 1
        trade, joined = rows[0]
        assert trade.tx_ref == "0xt1"
        assert joined.address == "0xa"

    async def test_position_trades_oldest_first_one_side(self, store):
        market = await store.upsert_market(_info("0xa"))
        base = utc_now()
        await store.insert_trade(_trade(market.id, "0xt2", timestamp=base + timedelta(seconds=5)))
        await store.insert_trade(_trade(market.id, "0xt1", timestamp=base))
        await store.insert_trade(
            _trade(market.id, "0xt3", action="SELL_YES", timestamp=base + timedelta(seconds=9))
        )
        await store.insert_trade(_trade(market.id, "0xt4", action="BUY_NO"))
        await store.insert_trade(_trade(market.id, "0xt5", holder=BOB))

        trades = await store.list_position_trades(market.id, ALICE, Side.YES)

        assert [t.tx_ref for t in trades] == ["0xt1", "0xt2", "0xt3"]

    async def test_known_holders_from_trades_and_positions(self, store):
        a = await store.upsert_market(_info("0xa"))
        b = await store.upsert_market(_info("0xb"))
        await store.insert_trade(_trade(a.id, "0xt1"))
        await store.insert_trade(_trade(a.id, "0xt2", action="BUY_NO"))
        await store.save_position(MirrorPosition(b.id, BOB, "NO", 5, 600_000))

        assert await store.list_known_holders() == [(a.id, ALICE), (b.id, BOB)]


class TestPositions:
    async def test_save_get_delete(self, store):
        market = await store.upsert_market(_info("0xa"))
        await store.save_position(MirrorPosition(market.id, ALICE, "YES", 100, 400_000))

        position = await store.get_position(market.id, ALICE, Side.YES)
        assert position.shares == 100
        assert position.id is not None
        assert await store.get_position(market.id, ALICE, Side.NO) is None

        position.shares = 40
        await store.save_position(position)
        assert (await store.get_position(market.id, ALICE, Side.YES)).shares == 40

        await store.delete_position(market.id, ALICE, Side.YES)
        assert await store.get_position(market.id, ALICE, Side.YES) is None

    async def test_list_by_holder_skips_empty(self, store):
        market = await store.upsert_market(_info("0xa"))
        await store.save_position(MirrorPosition(market.id, ALICE, "YES", 100, 400_000))
        await store.save_position(MirrorPosition(market.id, ALICE, "NO", 0, 0))
        await store.save_position(MirrorPosition(market.id, BOB, "NO", 5, 600_000))

        rows = await store.list_positions_by_holder(ALICE)

        assert [(p.side, m.id) for p, m in rows] == [("YES", market.id)]


class TestWatermark:
    async def test_round_trip(self, store):
        assert await store.get_watermark() is None
        await store.set_watermark(42)
        assert await store.get_watermark() == 42
