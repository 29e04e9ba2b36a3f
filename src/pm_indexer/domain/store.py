# src/pm_indexer/domain/store.py
"""Mirror store Protocol — dependency inversion for testability.

The reconciler is the only writer; the query services only read.
Infrastructure provides a Postgres and an in-memory implementation.
"""

from typing import Protocol

from src.pm_amm.domain.models import MarketInfo
from src.pm_common.enums import MarketSort, Side
from src.pm_indexer.domain.models import (
    MirrorMarket,
    MirrorPosition,
    MirrorTrade,
    PricePoint,
)


class MirrorStoreProtocol(Protocol):
    # --- markets ---

    async def upsert_market(self, info: MarketInfo) -> MirrorMarket: ...

    async def get_market_by_address(self, address: str) -> MirrorMarket | None: ...

    async def get_market_by_id(self, market_id: int) -> MirrorMarket | None: ...

    async def list_markets(
        self, category: str | None, sort: MarketSort, limit: int
    ) -> list[MirrorMarket]: ...

    async def search_markets(self, query: str, limit: int) -> list[MirrorMarket]: ...

    async def list_unresolved_markets(self) -> list[MirrorMarket]: ...

    async def update_market_prices(
        self, market_id: int, yes_price: int, no_price: int, volume: int | None = None
    ) -> None: ...

    async def increment_volume(self, market_id: int, amount: int) -> None: ...

    async def mark_resolved(self, market_id: int, outcome: Side) -> None: ...

    # --- price history ---

    async def append_price_point(self, point: PricePoint) -> bool:
        """Append a point. Returns False if a point for point.tx_ref already exists."""
        ...

    async def list_price_history(self, market_id: int, limit: int) -> list[PricePoint]: ...

    # --- trades ---

    async def insert_trade(self, trade: MirrorTrade) -> bool:
        """Insert unless tx_ref exists. Returns False on a duplicate."""
        ...

    async def list_trades_by_market(self, market_id: int, limit: int) -> list[MirrorTrade]: ...

    async def list_trades_by_holder(
        self, holder: str, limit: int
    ) -> list[tuple[MirrorTrade, MirrorMarket]]: ...

    async def list_position_trades(
        self, market_id: int, holder: str, side: Side
    ) -> list[MirrorTrade]:
        """Buys and sells of one (market, holder, side), oldest first."""
        ...

    async def list_known_holders(self) -> list[tuple[int, str]]:
        """Distinct (market_id, holder) pairs seen in trades or positions."""
        ...

    # --- positions ---

    async def get_position(
        self, market_id: int, holder: str, side: Side
    ) -> MirrorPosition | None: ...

    async def save_position(self, position: MirrorPosition) -> None: ...

    async def delete_position(self, market_id: int, holder: str, side: Side) -> None: ...

    async def list_positions_by_holder(
        self, holder: str
    ) -> list[tuple[MirrorPosition, MirrorMarket]]: ...

    # --- watermark ---

    async def get_watermark(self) -> int | None: ...

    async def set_watermark(self, block_number: int) -> None: ...
