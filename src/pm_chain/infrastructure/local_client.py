"""ChainClientProtocol backed by an in-process LocalChain."""

from src.pm_amm.domain.models import LivePrices, MarketInfo
from src.pm_amm.engine.amm import MarketAmm
from src.pm_chain.domain.models import ChainLog
from src.pm_chain.infrastructure.local_chain import LocalChain
from src.pm_common.enums import Side
from src.pm_common.errors import ChainRpcError, MarketNotFoundError


class LocalChainClient:
    def __init__(self, chain: LocalChain) -> None:
        self._chain = chain
        self.registry_address = chain.registry_address

    def _market(self, address: str) -> MarketAmm:
        try:
            return self._chain.registry.get_market(address)
        except MarketNotFoundError as e:
            raise ChainRpcError(f"call reverted: no market at {address}") from e

    async def get_block_number(self) -> int:
        return self._chain.block_number

    async def get_logs(
        self, from_block: int, to_block: int, addresses: list[str]
    ) -> list[ChainLog]:
        if from_block > to_block:
            return []
        return self._chain.get_logs(from_block, to_block, addresses)

    async def get_markets(self) -> list[str]:
        return self._chain.registry.get_markets()

    async def get_market_info(self, address: str) -> MarketInfo:
        return self._market(address).market_info()

    async def get_live_prices(self, address: str) -> LivePrices:
        market = self._market(address)
        return LivePrices(
            yes_price=market.yes_price(),
            no_price=market.no_price(),
            total_volume=market.total_volume,
        )

    async def get_shares(self, address: str, holder: str, side: Side) -> int:
        return self._market(address).shares_of(holder, side)
