"""InMemoryMirrorStore — process-local MirrorStoreProtocol implementation.

Used when MIRROR_BACKEND=memory (local runs without Postgres) and by tests.
Same semantics as the SQL store: tx_ref uniqueness, (market, holder, side)
position key, address-keyed market upsert.
"""

from dataclasses import replace

from src.pm_amm.domain.models import MarketInfo
from src.pm_common.datetime_utils import from_unix, utc_now
from src.pm_common.enums import MarketSort, Side, TradeAction
from src.pm_indexer.domain.models import (
    MirrorMarket,
    MirrorPosition,
    MirrorTrade,
    PricePoint,
)

_PositionKey = tuple[int, str, str]


class InMemoryMirrorStore:
    def __init__(self) -> None:
        self._markets: dict[int, MirrorMarket] = {}
        self._ids_by_address: dict[str, int] = {}
        self._positions: dict[_PositionKey, MirrorPosition] = {}
        self._trades: list[MirrorTrade] = []
        self._tx_refs: set[str] = set()
        self._price_history: list[PricePoint] = []
        self._price_tx_refs: set[str] = set()
        self._watermark: int | None = None
        self._next_market_id = 1
        self._next_trade_id = 1
        self._next_position_id = 1

    # ------------------------------------------------------------------
    # Markets
    # ------------------------------------------------------------------

    async def upsert_market(self, info: MarketInfo) -> MirrorMarket:
        now = utc_now()
        address = info.address.lower()
        outcome = info.outcome.value if info.resolved and info.outcome else None
        market_id = self._ids_by_address.get(address)
        if market_id is None:
            market = MirrorMarket(
                id=self._next_market_id,
                address=address,
                question=info.question,
                description=info.description,
                category=info.category,
                resolution_date=from_unix(info.resolution_date),
                oracle=info.oracle,
                fee_bps=info.fee_bps,
                yes_price=info.yes_price,
                no_price=info.no_price,
                volume=info.total_volume,
                resolved=info.resolved,
                outcome=outcome,
                created_at=now,
                updated_at=now,
            )
            self._next_market_id += 1
            self._markets[market.id] = market
            self._ids_by_address[address] = market.id
        else:
            market = self._markets[market_id]
            market.question = info.question
            market.description = info.description
            market.category = info.category
            market.resolution_date = from_unix(info.resolution_date)
            market.oracle = info.oracle
            market.yes_price = info.yes_price
            market.no_price = info.no_price
            market.volume = info.total_volume
            market.fee_bps = info.fee_bps
            market.resolved = info.resolved
            market.outcome = outcome
            market.updated_at = now
        return replace(market)

    async def get_market_by_address(self, address: str) -> MirrorMarket | None:
        market_id = self._ids_by_address.get(address.lower())
        return await self.get_market_by_id(market_id) if market_id is not None else None

    async def get_market_by_id(self, market_id: int) -> MirrorMarket | None:
        market = self._markets.get(market_id)
        return replace(market) if market else None

    async def list_markets(
        self, category: str | None, sort: MarketSort, limit: int
    ) -> list[MirrorMarket]:
        markets = [
            m for m in self._markets.values()
            if category is None or m.category == category
        ]
        if sort == MarketSort.NEWEST:
            markets.sort(key=lambda m: (m.created_at, m.id), reverse=True)
        else:
            markets.sort(key=lambda m: (m.volume, m.created_at, m.id), reverse=True)
        return [replace(m) for m in markets[:limit]]

    async def search_markets(self, query: str, limit: int) -> list[MirrorMarket]:
        needle = query.lower()
        hits = [m for m in self._markets.values() if needle in m.question.lower()]
        hits.sort(key=lambda m: (m.volume, m.id), reverse=True)
        return [replace(m) for m in hits[:limit]]

    async def list_unresolved_markets(self) -> list[MirrorMarket]:
        return [replace(m) for m in self._markets.values() if not m.resolved]

    async def update_market_prices(
        self, market_id: int, yes_price: int, no_price: int, volume: int | None = None
    ) -> None:
        market = self._markets.get(market_id)
        if market is None:
            return
        market.yes_price = yes_price
        market.no_price = no_price
        if volume is not None:
            market.volume = volume
        market.updated_at = utc_now()

    async def increment_volume(self, market_id: int, amount: int) -> None:
        market = self._markets.get(market_id)
        if market is not None:
            market.volume += amount
            market.updated_at = utc_now()

    async def mark_resolved(self, market_id: int, outcome: Side) -> None:
        market = self._markets.get(market_id)
        if market is not None:
            market.resolved = True
            market.outcome = outcome.value
            market.updated_at = utc_now()

    # ------------------------------------------------------------------
    # Price history
    # ------------------------------------------------------------------

    async def append_price_point(self, point: PricePoint) -> bool:
        if point.tx_ref is not None:
            if point.tx_ref in self._price_tx_refs:
                return False
            self._price_tx_refs.add(point.tx_ref)
        self._price_history.append(replace(point))
        return True

    async def list_price_history(self, market_id: int, limit: int) -> list[PricePoint]:
        points = [p for p in self._price_history if p.market_id == market_id]
        points.sort(key=lambda p: p.timestamp)
        return [replace(p) for p in points[-limit:]] if limit > 0 else []

    # ------------------------------------------------------------------
    # Trades
    # ------------------------------------------------------------------

    async def insert_trade(self, trade: MirrorTrade) -> bool:
        if trade.tx_ref in self._tx_refs:
            return False
        stored = replace(trade, id=self._next_trade_id, holder=trade.holder.lower())
        self._next_trade_id += 1
        self._trades.append(stored)
        self._tx_refs.add(trade.tx_ref)
        return True

    async def list_trades_by_market(self, market_id: int, limit: int) -> list[MirrorTrade]:
        trades = [t for t in self._trades if t.market_id == market_id]
        trades.sort(key=lambda t: (t.timestamp, t.id or 0), reverse=True)
        return [replace(t) for t in trades[:limit]]

    async def list_trades_by_holder(
        self, holder: str, limit: int
    ) -> list[tuple[MirrorTrade, MirrorMarket]]:
        holder = holder.lower()
        trades = [t for t in self._trades if t.holder == holder]
        trades.sort(key=lambda t: (t.timestamp, t.id or 0), reverse=True)
        return [(replace(t), replace(self._markets[t.market_id])) for t in trades[:limit]]

    async def list_position_trades(
        self, market_id: int, holder: str, side: Side
    ) -> list[MirrorTrade]:
        holder = holder.lower()
        trades = [
            t for t in self._trades
            if t.market_id == market_id and t.holder == holder
            and TradeAction(t.action).side == side
        ]
        trades.sort(key=lambda t: (t.timestamp, t.id or 0))
        return [replace(t) for t in trades]

    async def list_known_holders(self) -> list[tuple[int, str]]:
        pairs = {(t.market_id, t.holder) for t in self._trades}
        pairs.update((market_id, holder) for market_id, holder, _ in self._positions)
        return sorted(pairs)

    # ------------------------------------------------------------------
    # Positions
    # ------------------------------------------------------------------

    async def get_position(
        self, market_id: int, holder: str, side: Side
    ) -> MirrorPosition | None:
        position = self._positions.get((market_id, holder.lower(), side.value))
        return replace(position) if position else None

    async def save_position(self, position: MirrorPosition) -> None:
        key = (position.market_id, position.holder.lower(), position.side)
        now = utc_now()
        existing = self._positions.get(key)
        if existing is None:
            self._positions[key] = replace(
                position,
                id=self._next_position_id,
                holder=position.holder.lower(),
                created_at=now,
                updated_at=now,
            )
            self._next_position_id += 1
        else:
            existing.shares = position.shares
            existing.avg_price = position.avg_price
            existing.updated_at = now

    async def delete_position(self, market_id: int, holder: str, side: Side) -> None:
        self._positions.pop((market_id, holder.lower(), side.value), None)

    async def list_positions_by_holder(
        self, holder: str
    ) -> list[tuple[MirrorPosition, MirrorMarket]]:
        holder = holder.lower()
        return [
            (replace(p), replace(self._markets[p.market_id]))
            for (_, h, _), p in sorted(self._positions.items())
            if h == holder and p.shares > 0
        ]

    # ------------------------------------------------------------------
    # Watermark
    # ------------------------------------------------------------------

    async def get_watermark(self) -> int | None:
        return self._watermark

    async def set_watermark(self, block_number: int) -> None:
        self._watermark = block_number
