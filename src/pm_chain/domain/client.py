# src/pm_chain/domain/client.py
"""Chain client Protocol — the read surface the indexer polls.

Unit tests inject a mock that conforms to this Protocol.
Any call may raise ChainRpcError on a transient fault.
"""

from typing import Protocol

from src.pm_amm.domain.models import LivePrices, MarketInfo
from src.pm_chain.domain.models import ChainLog
from src.pm_common.enums import Side


class ChainClientProtocol(Protocol):
    registry_address: str

    async def get_block_number(self) -> int: ...

    async def get_logs(
        self,
        from_block: int,
        to_block: int,
        addresses: list[str],
    ) -> list[ChainLog]: ...

    async def get_markets(self) -> list[str]: ...

    async def get_market_info(self, address: str) -> MarketInfo: ...

    async def get_live_prices(self, address: str) -> LivePrices: ...

    async def get_shares(self, address: str, holder: str, side: Side) -> int: ...
