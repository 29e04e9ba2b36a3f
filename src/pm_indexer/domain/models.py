"""Mirror models: the derived, eventually-consistent copy of chain state."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class MirrorMarket:
    id: int
    address: str
    question: str
    description: str
    category: str
    resolution_date: datetime
    oracle: str
    fee_bps: int
    yes_price: int          # PRICE_SCALE fixed-point
    no_price: int
    volume: int             # collateral units, fixed-point
    resolved: bool
    outcome: str | None     # "YES" / "NO" once resolved
    created_at: datetime
    updated_at: datetime


@dataclass
class MirrorPosition:
    market_id: int
    holder: str
    side: str
    shares: int
    avg_price: int          # volume-weighted entry price, PRICE_SCALE
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class MirrorTrade:
    market_id: int
    holder: str
    action: str             # TradeAction value
    shares: int
    price: int              # per-share execution price, PRICE_SCALE
    amount: int             # notional, collateral units
    tx_ref: str             # globally unique
    timestamp: datetime
    id: int | None = None


@dataclass
class PricePoint:
    market_id: int
    yes_price: int
    no_price: int
    timestamp: datetime
    tx_ref: str | None = None   # set for points taken from a trade event
