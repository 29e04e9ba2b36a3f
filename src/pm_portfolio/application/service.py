"""Per-holder valuation, trade history and claimable winnings."""

from src.pm_indexer.domain.store import MirrorStoreProtocol
from src.pm_portfolio.application.schemas import (
    ClaimableItem,
    ClaimableResponse,
    HistoryItem,
    HistoryResponse,
    PortfolioResponse,
    PositionOut,
)

HISTORY_LIMIT = 50


class PortfolioQueryService:
    def __init__(self, store: MirrorStoreProtocol) -> None:
        self._store = store

    async def get_portfolio(self, address: str) -> PortfolioResponse:
        address = address.lower()
        rows = await self._store.list_positions_by_holder(address)
        positions = [PositionOut.from_domain(pos, market) for pos, market in rows]
        total_value = sum(p.current_value for p in positions)
        total_cost = sum(p.cost_basis for p in positions)
        return PortfolioResponse(
            address=address,
            positions=positions,
            total_value=total_value,
            total_cost_basis=total_cost,
            total_pnl=total_value - total_cost,
        )

    async def get_trade_history(self, address: str, limit: int = HISTORY_LIMIT) -> HistoryResponse:
        address = address.lower()
        rows = await self._store.list_trades_by_holder(address, limit)
        return HistoryResponse(
            address=address,
            trades=[HistoryItem.from_domain(trade, market) for trade, market in rows],
        )

    async def get_claimable(self, address: str) -> ClaimableResponse:
        """Resolved markets where the holder's side matches the outcome; payout = shares."""
        address = address.lower()
        rows = await self._store.list_positions_by_holder(address)
        claimable = [
            ClaimableItem(
                market_id=market.id,
                market_address=market.address,
                question=market.question,
                outcome=market.outcome,
                shares=pos.shares,
                payout=pos.shares,
            )
            for pos, market in rows
            if market.resolved and market.outcome == pos.side and pos.shares > 0
        ]
        return ClaimableResponse(
            address=address,
            claimable=claimable,
            total_claimable=sum(c.payout for c in claimable),
        )
