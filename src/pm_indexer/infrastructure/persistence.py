"""SqlMirrorStore — Postgres implementation of MirrorStoreProtocol.

All queries use raw text() SQL (no ORM). Each method runs in its own session;
writes commit before returning. Alembic migrations are the authoritative DDL.
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.pm_amm.domain.models import MarketInfo
from src.pm_common.datetime_utils import from_unix
from src.pm_common.enums import MarketSort, Side, TradeAction
from src.pm_indexer.domain.models import (
    MirrorMarket,
    MirrorPosition,
    MirrorTrade,
    PricePoint,
)

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_MARKET_COLUMNS = """
    id, address, question, description, category, resolution_date, oracle,
    fee_bps, yes_price, no_price, volume, resolved, outcome,
    created_at, updated_at
"""

_UPSERT_MARKET_SQL = text(f"""
    INSERT INTO markets (
        address, question, description, category, resolution_date, oracle,
        fee_bps, yes_price, no_price, volume, resolved, outcome
    ) VALUES (
        :address, :question, :description, :category, :resolution_date, :oracle,
        :fee_bps, :yes_price, :no_price, :volume, :resolved, :outcome
    )
    ON CONFLICT (address) DO UPDATE SET
        question        = EXCLUDED.question,
        description     = EXCLUDED.description,
        category        = EXCLUDED.category,
        resolution_date = EXCLUDED.resolution_date,
        oracle          = EXCLUDED.oracle,
        yes_price  = EXCLUDED.yes_price,
        no_price   = EXCLUDED.no_price,
        volume     = EXCLUDED.volume,
        fee_bps    = EXCLUDED.fee_bps,
        resolved   = EXCLUDED.resolved,
        outcome    = EXCLUDED.outcome,
        updated_at = NOW()
    RETURNING {_MARKET_COLUMNS}
""")

_GET_MARKET_BY_ADDRESS_SQL = text(
    f"SELECT {_MARKET_COLUMNS} FROM markets WHERE address = :address"
)
_GET_MARKET_BY_ID_SQL = text(
    f"SELECT {_MARKET_COLUMNS} FROM markets WHERE id = :market_id"
)

_LIST_BY_VOLUME_SQL = text(f"""
    SELECT {_MARKET_COLUMNS} FROM markets
    WHERE CAST(:category AS TEXT) IS NULL OR category = CAST(:category AS TEXT)
    ORDER BY volume DESC, created_at DESC, id DESC
    LIMIT :limit
""")

_LIST_NEWEST_SQL = text(f"""
    SELECT {_MARKET_COLUMNS} FROM markets
    WHERE CAST(:category AS TEXT) IS NULL OR category = CAST(:category AS TEXT)
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_SEARCH_MARKETS_SQL = text(f"""
    SELECT {_MARKET_COLUMNS} FROM markets
    WHERE question ILIKE '%' || :query || '%' ESCAPE '\\'
    ORDER BY volume DESC, id DESC
    LIMIT :limit
""")

_LIST_UNRESOLVED_SQL = text(
    f"SELECT {_MARKET_COLUMNS} FROM markets WHERE resolved = FALSE ORDER BY id"
)

_UPDATE_PRICES_SQL = text("""
    UPDATE markets
    SET yes_price = :yes_price,
        no_price  = :no_price,
        volume    = COALESCE(CAST(:volume AS BIGINT), volume),
        updated_at = NOW()
    WHERE id = :market_id
""")

_INCREMENT_VOLUME_SQL = text("""
    UPDATE markets SET volume = volume + :amount, updated_at = NOW()
    WHERE id = :market_id
""")

_MARK_RESOLVED_SQL = text("""
    UPDATE markets SET resolved = TRUE, outcome = :outcome, updated_at = NOW()
    WHERE id = :market_id
""")

_INSERT_PRICE_POINT_SQL = text("""
    INSERT INTO price_history (market_id, yes_price, no_price, timestamp, tx_ref)
    VALUES (:market_id, :yes_price, :no_price, :timestamp, :tx_ref)
    ON CONFLICT (tx_ref) DO NOTHING
    RETURNING id
""")

# Latest `limit` points, returned oldest-first.
_LIST_PRICE_HISTORY_SQL = text("""
    SELECT market_id, yes_price, no_price, timestamp, tx_ref FROM (
        SELECT id, market_id, yes_price, no_price, timestamp, tx_ref
        FROM price_history
        WHERE market_id = :market_id
        ORDER BY timestamp DESC, id DESC
        LIMIT :limit
    ) recent
    ORDER BY timestamp ASC, id ASC
""")

_INSERT_TRADE_SQL = text("""
    INSERT INTO trades (
        market_id, holder, action, shares, price, amount, tx_ref, timestamp
    ) VALUES (
        :market_id, :holder, :action, :shares, :price, :amount, :tx_ref, :timestamp
    )
    ON CONFLICT (tx_ref) DO NOTHING
    RETURNING id
""")

_TRADE_COLUMNS = "t.id, t.market_id, t.holder, t.action, t.shares, t.price, t.amount, t.tx_ref, t.timestamp"

_LIST_TRADES_BY_MARKET_SQL = text(f"""
    SELECT {_TRADE_COLUMNS} FROM trades t
    WHERE t.market_id = :market_id
    ORDER BY t.timestamp DESC, t.id DESC
    LIMIT :limit
""")

_LIST_TRADES_BY_HOLDER_SQL = text(f"""
    SELECT {_TRADE_COLUMNS},
           m.id AS m_id, m.address AS m_address, m.question AS m_question,
           m.description AS m_description, m.category AS m_category,
           m.resolution_date AS m_resolution_date, m.oracle AS m_oracle,
           m.fee_bps AS m_fee_bps, m.yes_price AS m_yes_price,
           m.no_price AS m_no_price, m.volume AS m_volume,
           m.resolved AS m_resolved, m.outcome AS m_outcome,
           m.created_at AS m_created_at, m.updated_at AS m_updated_at
    FROM trades t JOIN markets m ON m.id = t.market_id
    WHERE t.holder = :holder
    ORDER BY t.timestamp DESC, t.id DESC
    LIMIT :limit
""")

_LIST_POSITION_TRADES_SQL = text(f"""
    SELECT {_TRADE_COLUMNS} FROM trades t
    WHERE t.market_id = :market_id AND t.holder = :holder
      AND t.action IN (:buy_action, :sell_action)
    ORDER BY t.timestamp ASC, t.id ASC
""")

_LIST_KNOWN_HOLDERS_SQL = text("""
    SELECT market_id, holder FROM trades
    UNION
    SELECT market_id, holder FROM positions
    ORDER BY market_id, holder
""")

_GET_POSITION_SQL = text("""
    SELECT id, market_id, holder, side, shares, avg_price, created_at, updated_at
    FROM positions
    WHERE market_id = :market_id AND holder = :holder AND side = :side
""")

_UPSERT_POSITION_SQL = text("""
    INSERT INTO positions (market_id, holder, side, shares, avg_price)
    VALUES (:market_id, :holder, :side, :shares, :avg_price)
    ON CONFLICT (market_id, holder, side) DO UPDATE SET
        shares     = EXCLUDED.shares,
        avg_price  = EXCLUDED.avg_price,
        updated_at = NOW()
""")

_DELETE_POSITION_SQL = text("""
    DELETE FROM positions
    WHERE market_id = :market_id AND holder = :holder AND side = :side
""")

_LIST_POSITIONS_BY_HOLDER_SQL = text("""
    SELECT p.id, p.market_id, p.holder, p.side, p.shares, p.avg_price,
           p.created_at, p.updated_at,
           m.id AS m_id, m.address AS m_address, m.question AS m_question,
           m.description AS m_description, m.category AS m_category,
           m.resolution_date AS m_resolution_date, m.oracle AS m_oracle,
           m.fee_bps AS m_fee_bps, m.yes_price AS m_yes_price,
           m.no_price AS m_no_price, m.volume AS m_volume,
           m.resolved AS m_resolved, m.outcome AS m_outcome,
           m.created_at AS m_created_at, m.updated_at AS m_updated_at
    FROM positions p JOIN markets m ON m.id = p.market_id
    WHERE p.holder = :holder AND p.shares > 0
    ORDER BY p.market_id, p.side
""")

_GET_WATERMARK_SQL = text(
    "SELECT last_scanned_block FROM indexer_state WHERE name = :name"
)

_SET_WATERMARK_SQL = text("""
    INSERT INTO indexer_state (name, last_scanned_block)
    VALUES (:name, :block)
    ON CONFLICT (name) DO UPDATE SET
        last_scanned_block = EXCLUDED.last_scanned_block,
        updated_at = NOW()
""")

_WATERMARK_NAME = "chain_event_poller"


def _escape_like(query: str) -> str:
    """Match the query literally inside ILIKE: escape the escape char, % and _."""
    return query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_market(row: Any, prefix: str = "") -> MirrorMarket:
    def col(name: str) -> Any:
        return getattr(row, f"{prefix}{name}")

    return MirrorMarket(
        id=col("id"),
        address=col("address"),
        question=col("question"),
        description=col("description"),
        category=col("category"),
        resolution_date=col("resolution_date"),
        oracle=col("oracle"),
        fee_bps=col("fee_bps"),
        yes_price=col("yes_price"),
        no_price=col("no_price"),
        volume=col("volume"),
        resolved=col("resolved"),
        outcome=col("outcome"),
        created_at=col("created_at"),
        updated_at=col("updated_at"),
    )


def _row_to_trade(row: Any) -> MirrorTrade:
    return MirrorTrade(
        id=row.id,
        market_id=row.market_id,
        holder=row.holder,
        action=row.action,
        shares=row.shares,
        price=row.price,
        amount=row.amount,
        tx_ref=row.tx_ref,
        timestamp=row.timestamp,
    )


def _row_to_position(row: Any) -> MirrorPosition:
    return MirrorPosition(
        id=row.id,
        market_id=row.market_id,
        holder=row.holder,
        side=row.side,
        shares=row.shares,
        avg_price=row.avg_price,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_price_point(row: Any) -> PricePoint:
    return PricePoint(
        market_id=row.market_id,
        yes_price=row.yes_price,
        no_price=row.no_price,
        timestamp=row.timestamp,
        tx_ref=row.tx_ref,
    )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class SqlMirrorStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _fetchone(self, sql: Any, params: dict[str, Any]) -> Any:
        async with self._session_factory() as db:
            return (await db.execute(sql, params)).fetchone()

    async def _fetchall(self, sql: Any, params: dict[str, Any]) -> list[Any]:
        async with self._session_factory() as db:
            return list((await db.execute(sql, params)).fetchall())

    async def _write(self, sql: Any, params: dict[str, Any]) -> Any:
        async with self._session_factory() as db:
            result = await db.execute(sql, params)
            row = result.fetchone() if result.returns_rows else None
            await db.commit()
            return row

    # --- markets ---

    async def upsert_market(self, info: MarketInfo) -> MirrorMarket:
        row = await self._write(
            _UPSERT_MARKET_SQL,
            {
                "address": info.address.lower(),
                "question": info.question,
                "description": info.description,
                "category": info.category,
                "resolution_date": from_unix(info.resolution_date),
                "oracle": info.oracle,
                "fee_bps": info.fee_bps,
                "yes_price": info.yes_price,
                "no_price": info.no_price,
                "volume": info.total_volume,
                "resolved": info.resolved,
                "outcome": info.outcome.value if info.resolved and info.outcome else None,
            },
        )
        return _row_to_market(row)

    async def get_market_by_address(self, address: str) -> MirrorMarket | None:
        row = await self._fetchone(_GET_MARKET_BY_ADDRESS_SQL, {"address": address.lower()})
        return _row_to_market(row) if row else None

    async def get_market_by_id(self, market_id: int) -> MirrorMarket | None:
        row = await self._fetchone(_GET_MARKET_BY_ID_SQL, {"market_id": market_id})
        return _row_to_market(row) if row else None

    async def list_markets(
        self, category: str | None, sort: MarketSort, limit: int
    ) -> list[MirrorMarket]:
        sql = _LIST_NEWEST_SQL if sort == MarketSort.NEWEST else _LIST_BY_VOLUME_SQL
        rows = await self._fetchall(sql, {"category": category, "limit": limit})
        return [_row_to_market(r) for r in rows]

    async def search_markets(self, query: str, limit: int) -> list[MirrorMarket]:
        rows = await self._fetchall(
            _SEARCH_MARKETS_SQL, {"query": _escape_like(query), "limit": limit}
        )
        return [_row_to_market(r) for r in rows]

    async def list_unresolved_markets(self) -> list[MirrorMarket]:
        rows = await self._fetchall(_LIST_UNRESOLVED_SQL, {})
        return [_row_to_market(r) for r in rows]

    async def update_market_prices(
        self, market_id: int, yes_price: int, no_price: int, volume: int | None = None
    ) -> None:
        await self._write(
            _UPDATE_PRICES_SQL,
            {
                "market_id": market_id,
                "yes_price": yes_price,
                "no_price": no_price,
                "volume": volume,
            },
        )

    async def increment_volume(self, market_id: int, amount: int) -> None:
        await self._write(_INCREMENT_VOLUME_SQL, {"market_id": market_id, "amount": amount})

    async def mark_resolved(self, market_id: int, outcome: Side) -> None:
        await self._write(
            _MARK_RESOLVED_SQL, {"market_id": market_id, "outcome": outcome.value}
        )

    # --- price history ---

    async def append_price_point(self, point: PricePoint) -> bool:
        row = await self._write(
            _INSERT_PRICE_POINT_SQL,
            {
                "market_id": point.market_id,
                "yes_price": point.yes_price,
                "no_price": point.no_price,
                "timestamp": point.timestamp,
                "tx_ref": point.tx_ref,
            },
        )
        return row is not None

    async def list_price_history(self, market_id: int, limit: int) -> list[PricePoint]:
        rows = await self._fetchall(
            _LIST_PRICE_HISTORY_SQL, {"market_id": market_id, "limit": limit}
        )
        return [_row_to_price_point(r) for r in rows]

    # --- trades ---

    async def insert_trade(self, trade: MirrorTrade) -> bool:
        row = await self._write(
            _INSERT_TRADE_SQL,
            {
                "market_id": trade.market_id,
                "holder": trade.holder.lower(),
                "action": trade.action,
                "shares": trade.shares,
                "price": trade.price,
                "amount": trade.amount,
                "tx_ref": trade.tx_ref,
                "timestamp": trade.timestamp,
            },
        )
        return row is not None

    async def list_trades_by_market(self, market_id: int, limit: int) -> list[MirrorTrade]:
        rows = await self._fetchall(
            _LIST_TRADES_BY_MARKET_SQL, {"market_id": market_id, "limit": limit}
        )
        return [_row_to_trade(r) for r in rows]

    async def list_trades_by_holder(
        self, holder: str, limit: int
    ) -> list[tuple[MirrorTrade, MirrorMarket]]:
        rows = await self._fetchall(
            _LIST_TRADES_BY_HOLDER_SQL, {"holder": holder.lower(), "limit": limit}
        )
        return [(_row_to_trade(r), _row_to_market(r, prefix="m_")) for r in rows]

    async def list_position_trades(
        self, market_id: int, holder: str, side: Side
    ) -> list[MirrorTrade]:
        rows = await self._fetchall(
            _LIST_POSITION_TRADES_SQL,
            {
                "market_id": market_id,
                "holder": holder.lower(),
                "buy_action": TradeAction.of(True, side).value,
                "sell_action": TradeAction.of(False, side).value,
            },
        )
        return [_row_to_trade(r) for r in rows]

    async def list_known_holders(self) -> list[tuple[int, str]]:
        rows = await self._fetchall(_LIST_KNOWN_HOLDERS_SQL, {})
        return [(r.market_id, r.holder) for r in rows]

    # --- positions ---

    async def get_position(
        self, market_id: int, holder: str, side: Side
    ) -> MirrorPosition | None:
        row = await self._fetchone(
            _GET_POSITION_SQL,
            {"market_id": market_id, "holder": holder.lower(), "side": side.value},
        )
        return _row_to_position(row) if row else None

    async def save_position(self, position: MirrorPosition) -> None:
        await self._write(
            _UPSERT_POSITION_SQL,
            {
                "market_id": position.market_id,
                "holder": position.holder.lower(),
                "side": position.side,
                "shares": position.shares,
                "avg_price": position.avg_price,
            },
        )

    async def delete_position(self, market_id: int, holder: str, side: Side) -> None:
        await self._write(
            _DELETE_POSITION_SQL,
            {"market_id": market_id, "holder": holder.lower(), "side": side.value},
        )

    async def list_positions_by_holder(
        self, holder: str
    ) -> list[tuple[MirrorPosition, MirrorMarket]]:
        rows = await self._fetchall(_LIST_POSITIONS_BY_HOLDER_SQL, {"holder": holder.lower()})
        return [(_row_to_position(r), _row_to_market(r, prefix="m_")) for r in rows]

    # --- watermark ---

    async def get_watermark(self) -> int | None:
        row = await self._fetchone(_GET_WATERMARK_SQL, {"name": _WATERMARK_NAME})
        return row.last_scanned_block if row else None

    async def set_watermark(self, block_number: int) -> None:
        await self._write(_SET_WATERMARK_SQL, {"name": _WATERMARK_NAME, "block": block_number})
