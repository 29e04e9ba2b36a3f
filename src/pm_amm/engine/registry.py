"""Deploys and enumerates AMM instances."""

import hashlib
import logging
from dataclasses import dataclass

from src.pm_amm.engine.amm import MarketAmm
from src.pm_amm.engine.token import CollateralToken
from src.pm_common.errors import (
    InsufficientBalanceError,
    InvalidMarketParamsError,
    MarketNotFoundError,
)
from src.pm_common.fixed_point import MAX_FEE_BPS

logger = logging.getLogger(__name__)


def derive_address(deployer: str, nonce: int) -> str:
    """Deterministic contract address for the deployer's nth deployment."""
    digest = hashlib.sha3_256(f"{deployer.lower()}:{nonce}".encode()).hexdigest()
    return "0x" + digest[-40:]


@dataclass(frozen=True)
class CreatedMarket:
    market_id: int
    address: str
    creator: str
    question: str
    fee_bps: int


class MarketRegistry:
    def __init__(self, address: str, token: CollateralToken, oracle: str) -> None:
        self.address = address.lower()
        self.oracle = oracle.lower()
        self._token = token
        self._markets: list[MarketAmm] = []
        self._by_address: dict[str, MarketAmm] = {}

    def create_market(
        self,
        caller: str,
        question: str,
        description: str,
        category: str,
        resolution_date: int,
        initial_liquidity: int,
        fee_bps: int,
        now: int,
    ) -> CreatedMarket:
        if not question.strip():
            raise InvalidMarketParamsError("question must not be empty")
        if resolution_date <= now:
            raise InvalidMarketParamsError("resolution date must be in the future")
        if not (0 <= fee_bps <= MAX_FEE_BPS):
            raise InvalidMarketParamsError(f"fee_bps must be between 0 and {MAX_FEE_BPS}")
        if initial_liquidity <= 0:
            raise InvalidMarketParamsError("initial liquidity must be positive")
        available = self._token.balance_of(caller)
        if available < initial_liquidity:
            raise InsufficientBalanceError(required=initial_liquidity, available=available)

        market_id = len(self._markets)
        market = MarketAmm(
            address=derive_address(self.address, market_id),
            question=question,
            description=description,
            category=category,
            resolution_date=resolution_date,
            token=self._token,
            oracle=self.oracle,
            fee_bps=fee_bps,
            factory=self.address,
        )
        self._token.transfer(caller, market.address, initial_liquidity)
        market.initialize_pool(self.address, initial_liquidity)

        self._markets.append(market)
        self._by_address[market.address] = market
        logger.info(
            "Market created: id=%d, address=%s, fee_bps=%d",
            market_id, market.address, fee_bps,
        )
        return CreatedMarket(
            market_id=market_id,
            address=market.address,
            creator=caller.lower(),
            question=question,
            fee_bps=fee_bps,
        )

    def get_markets(self) -> list[str]:
        return [m.address for m in self._markets]

    def market_count(self) -> int:
        return len(self._markets)

    def get_market(self, address: str) -> MarketAmm:
        market = self._by_address.get(address.lower())
        if market is None:
            raise MarketNotFoundError(address)
        return market
