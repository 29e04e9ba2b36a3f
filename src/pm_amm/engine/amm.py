"""MarketAmm — constant-product market maker for one binary market.

Lifecycle: OPEN -> RESOLVED (terminal). Every public operation validates
fully before touching state, so a rejected call leaves the market unchanged.

Pool update direction (buying side S with net amount n):
    pool_S      += n
    pool_other   = K // pool_S
    shares_out   = pool_other_before - pool_other_after
Selling is the inverse: the shares go back into pool_other and the payout is
the shrinkage of pool_S. Truncation means K can only drift down, never up.
"""

import logging

from src.pm_amm.domain.models import BuyResult, ClaimResult, MarketInfo, SellResult
from src.pm_amm.engine.token import CollateralToken
from src.pm_common.enums import MarketState, Side
from src.pm_common.errors import (
    AlreadyClaimedError,
    AlreadyInitializedError,
    InsufficientSharesError,
    InvalidAmountError,
    MarketNotResolvedError,
    MarketResolvedError,
    NothingToClaimError,
    PoolDrainViolationError,
    PoolNotInitializedError,
    UnauthorizedError,
)
from src.pm_common.fixed_point import HALF_PRICE, PRICE_SCALE, calculate_fee

logger = logging.getLogger(__name__)

MIN_POOL_SIZE = 1_000  # 0.001 collateral units


class MarketAmm:
    def __init__(
        self,
        address: str,
        question: str,
        description: str,
        category: str,
        resolution_date: int,
        token: CollateralToken,
        oracle: str,
        fee_bps: int,
        factory: str,
    ) -> None:
        self.address = address.lower()
        self.question = question
        self.description = description
        self.category = category
        self.resolution_date = resolution_date
        self.oracle = oracle.lower()
        self.fee_bps = fee_bps
        self.factory = factory.lower()
        self._token = token

        self.yes_pool = 0
        self.no_pool = 0
        self.fee_pool = 0
        self.total_volume = 0
        self.total_shares_issued = 0
        self.state = MarketState.OPEN
        self.outcome: Side | None = None
        self.yes_shares: dict[str, int] = {}
        self.no_shares: dict[str, int] = {}
        self._claimed: set[str] = set()
        self._initialized = False

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def resolved(self) -> bool:
        return self.state == MarketState.RESOLVED

    @property
    def k(self) -> int:
        return self.yes_pool * self.no_pool

    def yes_price(self) -> int:
        total = self.yes_pool + self.no_pool
        if total == 0:
            return HALF_PRICE
        return self.yes_pool * PRICE_SCALE // total

    def no_price(self) -> int:
        total = self.yes_pool + self.no_pool
        if total == 0:
            return HALF_PRICE
        return self.no_pool * PRICE_SCALE // total

    def shares_of(self, holder: str, side: Side) -> int:
        book = self.yes_shares if side == Side.YES else self.no_shares
        return book.get(holder.lower(), 0)

    def has_claimed(self, holder: str) -> bool:
        return holder.lower() in self._claimed

    def market_info(self) -> MarketInfo:
        return MarketInfo(
            address=self.address,
            question=self.question,
            description=self.description,
            category=self.category,
            resolution_date=self.resolution_date,
            oracle=self.oracle,
            resolved=self.resolved,
            outcome=self.outcome,
            yes_price=self.yes_price(),
            no_price=self.no_price(),
            total_volume=self.total_volume,
            fee_bps=self.fee_bps,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def initialize_pool(self, caller: str, liquidity: int) -> None:
        """Split seeded liquidity 50/50. Registry only, exactly once."""
        if caller.lower() != self.factory:
            raise UnauthorizedError("only the registry can initialize the pool")
        if self._initialized:
            raise AlreadyInitializedError()
        if liquidity <= 0:
            raise InvalidAmountError("liquidity must be positive")
        half = liquidity // 2
        if half < MIN_POOL_SIZE:
            raise PoolDrainViolationError()

        self.yes_pool = half
        self.no_pool = half
        self._initialized = True
        logger.debug("Pool initialized: market=%s, liquidity=%d", self.address, liquidity)

    def buy(self, trader: str, side: Side, amount: int) -> BuyResult:
        self._require_open()
        if amount <= 0:
            raise InvalidAmountError("amount must be positive")

        fee = calculate_fee(amount, self.fee_bps)
        net = amount - fee
        k = self.k
        own_before, other_before = self._pools(side)
        own_after = own_before + net
        other_after = k // own_after
        shares = other_before - other_after

        if other_after < MIN_POOL_SIZE:
            raise PoolDrainViolationError()
        if shares <= 0:
            raise InvalidAmountError("amount too small to issue shares")

        # Only fallible step left; runs before any AMM state changes.
        self._token.transfer(trader, self.address, amount)

        self._set_pools(side, own_after, other_after)
        self.fee_pool += fee
        self.total_volume += amount
        self.total_shares_issued += shares
        book = self._book(side)
        holder = trader.lower()
        book[holder] = book.get(holder, 0) + shares

        return BuyResult(
            side=side,
            amount=amount,
            fee=fee,
            shares=shares,
            new_yes_price=self.yes_price(),
            new_no_price=self.no_price(),
        )

    def sell(self, trader: str, side: Side, shares: int) -> SellResult:
        self._require_open()
        if shares <= 0:
            raise InvalidAmountError("shares must be positive")
        held = self.shares_of(trader, side)
        if shares > held:
            raise InsufficientSharesError(requested=shares, held=held)

        k = self.k
        own_before, other_before = self._pools(side)
        other_after = other_before + shares
        own_after = k // other_after
        payout = own_before - own_after

        if own_after < MIN_POOL_SIZE:
            raise PoolDrainViolationError()

        self._token.transfer(self.address, trader, payout)

        self._set_pools(side, own_after, other_after)
        self.total_volume += payout
        self.total_shares_issued -= shares
        book = self._book(side)
        holder = trader.lower()
        remaining = held - shares
        if remaining == 0:
            del book[holder]
        else:
            book[holder] = remaining

        return SellResult(
            side=side,
            shares=shares,
            payout=payout,
            new_yes_price=self.yes_price(),
            new_no_price=self.no_price(),
        )

    def resolve(self, caller: str, outcome: Side) -> None:
        """Irreversible. Oracle only."""
        if self.resolved:
            raise MarketResolvedError()
        if caller.lower() != self.oracle:
            raise UnauthorizedError("only the oracle can resolve")
        self.state = MarketState.RESOLVED
        self.outcome = outcome
        logger.info("Market resolved: market=%s, outcome=%s", self.address, outcome.value)

    def claim_winnings(self, caller: str) -> ClaimResult:
        """Pay 1 collateral unit per winning share, once per holder."""
        if not self.resolved or self.outcome is None:
            raise MarketNotResolvedError()
        holder = caller.lower()
        if holder in self._claimed:
            raise AlreadyClaimedError()
        shares = self.shares_of(holder, self.outcome)
        if shares == 0:
            raise NothingToClaimError()

        payout = shares
        self._token.transfer(self.address, holder, payout)

        del self._book(self.outcome)[holder]
        self.total_shares_issued -= shares
        self._claimed.add(holder)
        return ClaimResult(holder=holder, shares=shares, payout=payout)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_open(self) -> None:
        if self.resolved:
            raise MarketResolvedError()
        if not self._initialized:
            raise PoolNotInitializedError()

    def _pools(self, side: Side) -> tuple[int, int]:
        """(own pool, other pool) for the traded side."""
        if side == Side.YES:
            return self.yes_pool, self.no_pool
        return self.no_pool, self.yes_pool

    def _set_pools(self, side: Side, own: int, other: int) -> None:
        if side == Side.YES:
            self.yes_pool, self.no_pool = own, other
        else:
            self.no_pool, self.yes_pool = own, other

    def _book(self, side: Side) -> dict[str, int]:
        return self.yes_shares if side == Side.YES else self.no_shares
