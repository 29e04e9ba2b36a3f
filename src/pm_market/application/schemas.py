"""Pydantic schemas for pm_market API responses.

Prices are PRICE_SCALE integers (1_000_000 = 100%); *_percent fields are the
same value as an exact decimal string. Money is collateral units at 6
implied decimals. Values are clamped here, at the read boundary, so a corrupt
mirror row never reaches a client as an out-of-range price. A trade's per-share
price includes fee and slippage and may exceed PRICE_SCALE; only negatives are
rejected there.
"""

from pydantic import BaseModel

from src.pm_common.fixed_point import (
    clamp_price,
    clamp_units,
    price_to_percent,
    units_to_display,
)
from src.pm_indexer.domain.models import MirrorMarket, MirrorTrade, PricePoint


class MarketListItem(BaseModel):
    id: int
    address: str
    question: str
    category: str
    yes_price: int
    no_price: int
    yes_percent: str
    no_percent: str
    volume: int
    volume_display: str
    fee_bps: int
    resolved: bool
    outcome: str | None
    resolution_date: str
    created_at: str

    @classmethod
    def from_domain(cls, m: MirrorMarket) -> "MarketListItem":
        yes_price = clamp_price(m.yes_price)
        no_price = clamp_price(m.no_price)
        volume = clamp_units(m.volume)
        return cls(
            id=m.id,
            address=m.address,
            question=m.question,
            category=m.category,
            yes_price=yes_price,
            no_price=no_price,
            yes_percent=price_to_percent(yes_price),
            no_percent=price_to_percent(no_price),
            volume=volume,
            volume_display=units_to_display(volume),
            fee_bps=m.fee_bps,
            resolved=m.resolved,
            outcome=m.outcome,
            resolution_date=m.resolution_date.isoformat(),
            created_at=m.created_at.isoformat(),
        )


class MarketListResponse(BaseModel):
    items: list[MarketListItem]


class PricePointOut(BaseModel):
    yes_price: int
    no_price: int
    timestamp: str

    @classmethod
    def from_domain(cls, p: PricePoint) -> "PricePointOut":
        return cls(
            yes_price=clamp_price(p.yes_price),
            no_price=clamp_price(p.no_price),
            timestamp=p.timestamp.isoformat(),
        )


class MarketDetail(MarketListItem):
    description: str
    oracle: str
    updated_at: str
    price_history: list[PricePointOut]

    @classmethod
    def from_domain_with_history(
        cls, m: MirrorMarket, history: list[PricePoint]
    ) -> "MarketDetail":
        base = MarketListItem.from_domain(m).model_dump()
        return cls(
            **base,
            description=m.description,
            oracle=m.oracle,
            updated_at=m.updated_at.isoformat(),
            price_history=[PricePointOut.from_domain(p) for p in history],
        )


class TradeListItem(BaseModel):
    id: int | None
    holder: str
    action: str
    shares: int
    price: int
    amount: int
    tx_ref: str
    timestamp: str

    @classmethod
    def from_domain(cls, t: MirrorTrade) -> "TradeListItem":
        return cls(
            id=t.id,
            holder=t.holder,
            action=t.action,
            shares=clamp_units(t.shares),
            price=clamp_units(t.price),
            amount=clamp_units(t.amount),
            tx_ref=t.tx_ref,
            timestamp=t.timestamp.isoformat(),
        )


class TradeListResponse(BaseModel):
    market_id: int
    trades: list[TradeListItem]
