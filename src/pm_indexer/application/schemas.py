"""Pydantic schemas for the trade write path."""

from pydantic import BaseModel, Field

from src.pm_indexer.domain.models import MirrorTrade


class RecordTradeRequest(BaseModel):
    market_address: str = Field(..., min_length=1)
    holder: str = Field(..., min_length=1)
    action: str
    shares: int
    price: int = Field(..., ge=0)
    amount: int = Field(..., ge=0)
    tx_ref: str = Field(..., min_length=1, max_length=128)


class TradeOut(BaseModel):
    market_id: int
    market_address: str
    holder: str
    action: str
    shares: int
    price: int
    amount: int
    tx_ref: str
    timestamp: str

    @classmethod
    def from_domain(cls, trade: MirrorTrade, market_address: str) -> "TradeOut":
        return cls(
            market_id=trade.market_id,
            market_address=market_address,
            holder=trade.holder,
            action=trade.action,
            shares=trade.shares,
            price=trade.price,
            amount=trade.amount,
            tx_ref=trade.tx_ref,
            timestamp=trade.timestamp.isoformat(),
        )
