"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class Side(str, Enum):
    YES = "YES"
    NO = "NO"

    @classmethod
    def from_bool(cls, is_yes: bool) -> "Side":
        return cls.YES if is_yes else cls.NO


class MarketState(str, Enum):
    """AMM lifecycle: OPEN -> RESOLVED (terminal)."""

    OPEN = "OPEN"
    RESOLVED = "RESOLVED"


class TradeAction(str, Enum):
    BUY_YES = "BUY_YES"
    BUY_NO = "BUY_NO"
    SELL_YES = "SELL_YES"
    SELL_NO = "SELL_NO"

    @property
    def side(self) -> Side:
        return Side.YES if self.value.endswith("YES") else Side.NO

    @property
    def is_buy(self) -> bool:
        return self.value.startswith("BUY")

    @classmethod
    def of(cls, is_buy: bool, side: Side) -> "TradeAction":
        return cls(f"{'BUY' if is_buy else 'SELL'}_{side.value}")


class MarketSort(str, Enum):
    VOLUME = "volume"
    NEWEST = "newest"


class ChainEventType(str, Enum):
    MARKET_CREATED = "MarketCreated"
    SHARES_PURCHASED = "SharesPurchased"
    SHARES_SOLD = "SharesSold"
    MARKET_RESOLVED = "MarketResolved"
    WINNINGS_CLAIMED = "WinningsClaimed"
