"""MarketQueryService — read-only aggregation over the mirror store.

Nothing is cached: every read recomputes from the mirror.
"""

from src.pm_common.enums import MarketSort
from src.pm_common.errors import InvalidMarketIdError, MarketNotFoundError
from src.pm_indexer.domain.models import MirrorMarket
from src.pm_indexer.domain.store import MirrorStoreProtocol
from src.pm_market.application.schemas import (
    MarketDetail,
    MarketListItem,
    MarketListResponse,
    TradeListItem,
    TradeListResponse,
)

# Pseudo-categories the web client sends meaning "no filter".
_UNFILTERED_CATEGORIES = frozenset({"", "all", "trending"})

FEATURED_COUNT = 3
SEARCH_LIMIT = 10


class MarketQueryService:
    def __init__(self, store: MirrorStoreProtocol, price_history_limit: int = 200) -> None:
        self._store = store
        self._price_history_limit = price_history_limit

    async def list_markets(
        self, category: str | None, sort: MarketSort, limit: int
    ) -> MarketListResponse:
        if category is not None and category.lower() in _UNFILTERED_CATEGORIES:
            category = None
        markets = await self._store.list_markets(category, sort, limit)
        return MarketListResponse(items=[MarketListItem.from_domain(m) for m in markets])

    async def featured_markets(self) -> MarketListResponse:
        markets = await self._store.list_markets(None, MarketSort.VOLUME, FEATURED_COUNT)
        return MarketListResponse(items=[MarketListItem.from_domain(m) for m in markets])

    async def search_markets(self, query: str, limit: int = SEARCH_LIMIT) -> MarketListResponse:
        query = query.strip()
        if not query:
            return MarketListResponse(items=[])
        markets = await self._store.search_markets(query, limit)
        return MarketListResponse(items=[MarketListItem.from_domain(m) for m in markets])

    async def get_market(self, id_or_address: str) -> MarketDetail:
        market = await self._resolve(id_or_address)
        history = await self._store.list_price_history(market.id, self._price_history_limit)
        return MarketDetail.from_domain_with_history(market, history)

    async def get_trades(self, id_or_address: str, limit: int) -> TradeListResponse:
        market = await self._resolve(id_or_address)
        trades = await self._store.list_trades_by_market(market.id, limit)
        return TradeListResponse(
            market_id=market.id,
            trades=[TradeListItem.from_domain(t) for t in trades],
        )

    async def _resolve(self, id_or_address: str) -> MirrorMarket:
        """Accept either a numeric mirror id or a 0x contract address."""
        if id_or_address.lower().startswith("0x"):
            market = await self._store.get_market_by_address(id_or_address)
        elif id_or_address.isdigit():
            market = await self._store.get_market_by_id(int(id_or_address))
        else:
            raise InvalidMarketIdError(id_or_address)
        if market is None:
            raise MarketNotFoundError(id_or_address)
        return market
