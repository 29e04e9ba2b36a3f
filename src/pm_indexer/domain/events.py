"""Domain events decoded from chain logs."""

from dataclasses import dataclass
from datetime import datetime

from src.pm_common.enums import Side


@dataclass(frozen=True)
class _EventMeta:
    market_address: str
    block_number: int
    tx_hash: str
    log_index: int
    timestamp: datetime


@dataclass(frozen=True)
class MarketCreated(_EventMeta):
    market_id: int
    question: str
    creator: str
    fee_bps: int


@dataclass(frozen=True)
class SharesPurchased(_EventMeta):
    buyer: str
    side: Side
    amount: int
    shares: int
    new_yes_price: int
    new_no_price: int


@dataclass(frozen=True)
class SharesSold(_EventMeta):
    seller: str
    side: Side
    shares: int
    payout: int
    new_yes_price: int
    new_no_price: int


@dataclass(frozen=True)
class MarketResolved(_EventMeta):
    outcome: Side


@dataclass(frozen=True)
class WinningsClaimed(_EventMeta):
    holder: str
    shares: int
    payout: int


DomainEvent = MarketCreated | SharesPurchased | SharesSold | MarketResolved | WinningsClaimed
