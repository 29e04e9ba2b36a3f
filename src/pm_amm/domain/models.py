"""Domain models for pm_amm: pure dataclasses, no business logic."""

from dataclasses import dataclass

from src.pm_common.enums import Side


@dataclass(frozen=True)
class BuyResult:
    side: Side
    amount: int          # gross collateral paid in
    fee: int             # credited to fee_pool, not to either pool
    shares: int          # minted to the buyer
    new_yes_price: int
    new_no_price: int


@dataclass(frozen=True)
class SellResult:
    side: Side
    shares: int          # burned from the seller
    payout: int          # collateral paid out
    new_yes_price: int
    new_no_price: int


@dataclass(frozen=True)
class ClaimResult:
    holder: str
    shares: int
    payout: int


@dataclass(frozen=True)
class MarketInfo:
    """Read-only view of one AMM instance (mirrors getMarketInfo)."""

    address: str
    question: str
    description: str
    category: str
    resolution_date: int   # unix seconds
    oracle: str
    resolved: bool
    outcome: Side | None
    yes_price: int
    no_price: int
    total_volume: int
    fee_bps: int


@dataclass(frozen=True)
class LivePrices:
    yes_price: int
    no_price: int
    total_volume: int
