"""Pydantic schemas for pm_portfolio API responses.

All valuation fields are derived per read from the mirror (never stored):
  cost_basis    = shares × avg_price
  current_value = shares × current price of the position's side
  pnl           = current_value − cost_basis
  pnl_bps       = pnl / cost_basis in basis points (0 when cost_basis is 0)
"""

from pydantic import BaseModel

from src.pm_common.fixed_point import (
    BPS_DENOMINATOR,
    clamp_price,
    clamp_units,
    notional_value,
)
from src.pm_indexer.domain.models import MirrorMarket, MirrorPosition, MirrorTrade


class PositionOut(BaseModel):
    market_id: int
    market_address: str
    question: str
    side: str
    shares: int
    avg_price: int
    current_price: int
    cost_basis: int
    current_value: int
    pnl: int
    pnl_bps: int
    market_resolved: bool
    market_outcome: str | None

    @classmethod
    def from_domain(cls, pos: MirrorPosition, market: MirrorMarket) -> "PositionOut":
        current_price = clamp_price(market.yes_price if pos.side == "YES" else market.no_price)
        avg_price = clamp_units(pos.avg_price)
        shares = clamp_units(pos.shares)
        cost_basis = notional_value(shares, avg_price)
        current_value = notional_value(shares, current_price)
        pnl = current_value - cost_basis
        pnl_bps = pnl * BPS_DENOMINATOR // cost_basis if cost_basis > 0 else 0
        return cls(
            market_id=market.id,
            market_address=market.address,
            question=market.question,
            side=pos.side,
            shares=shares,
            avg_price=avg_price,
            current_price=current_price,
            cost_basis=cost_basis,
            current_value=current_value,
            pnl=pnl,
            pnl_bps=pnl_bps,
            market_resolved=market.resolved,
            market_outcome=market.outcome,
        )


class PortfolioResponse(BaseModel):
    address: str
    positions: list[PositionOut]
    total_value: int
    total_cost_basis: int
    total_pnl: int


class HistoryItem(BaseModel):
    market_id: int
    market_address: str
    question: str
    action: str
    shares: int
    price: int
    amount: int
    tx_ref: str
    timestamp: str

    @classmethod
    def from_domain(cls, trade: MirrorTrade, market: MirrorMarket) -> "HistoryItem":
        return cls(
            market_id=market.id,
            market_address=market.address,
            question=market.question,
            action=trade.action,
            shares=clamp_units(trade.shares),
            price=clamp_units(trade.price),
            amount=clamp_units(trade.amount),
            tx_ref=trade.tx_ref,
            timestamp=trade.timestamp.isoformat(),
        )


class HistoryResponse(BaseModel):
    address: str
    trades: list[HistoryItem]


class ClaimableItem(BaseModel):
    market_id: int
    market_address: str
    question: str
    outcome: str
    shares: int
    payout: int  # 1 winning share = 1 collateral unit


class ClaimableResponse(BaseModel):
    address: str
    claimable: list[ClaimableItem]
    total_claimable: int
