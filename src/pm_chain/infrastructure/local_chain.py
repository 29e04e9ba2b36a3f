"""LocalChain — in-process execution environment for the registry and AMMs.

Every state-changing call runs to completion synchronously and is mined into
its own block with a unique tx hash, so calls on one market are linearized and
no partial application is observable. A call that raises mines nothing.
"""

import hashlib
import logging
import time
from collections.abc import Callable
from typing import Any

from src.pm_amm.engine.registry import MarketRegistry, derive_address
from src.pm_amm.engine.token import CollateralToken
from src.pm_chain.domain.models import ChainLog, TxReceipt
from src.pm_common.enums import ChainEventType, Side

logger = logging.getLogger(__name__)

_Emitted = list[tuple[str, ChainEventType, dict[str, Any]]]


class LocalChain:
    def __init__(
        self,
        owner: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.owner = owner.lower()
        self._clock = clock
        self.token = CollateralToken()
        self.registry = MarketRegistry(
            address=derive_address(self.owner, 0),
            token=self.token,
            oracle=self.owner,
        )
        self.block_number = 0
        self._last_timestamp = int(clock())
        self._logs: list[ChainLog] = []
        self._tx_count = 0

    @property
    def registry_address(self) -> str:
        return self.registry.address

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def now(self) -> int:
        return max(int(self._clock()), self._last_timestamp)

    def get_logs(
        self, from_block: int, to_block: int, addresses: list[str] | None = None
    ) -> list[ChainLog]:
        wanted = {a.lower() for a in addresses} if addresses is not None else None
        return [
            log for log in self._logs
            if from_block <= log.block_number <= to_block
            and (wanted is None or log.address in wanted)
        ]

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def mint(self, sender: str, to: str, amount: int) -> TxReceipt:
        """Test-token faucet."""
        self.token.mint_to(to, amount)
        return self._mine(sender, [], None)

    def create_market(
        self,
        sender: str,
        question: str,
        description: str,
        category: str,
        resolution_date: int,
        initial_liquidity: int,
        fee_bps: int,
    ) -> TxReceipt:
        created = self.registry.create_market(
            caller=sender,
            question=question,
            description=description,
            category=category,
            resolution_date=resolution_date,
            initial_liquidity=initial_liquidity,
            fee_bps=fee_bps,
            now=self.now(),
        )
        return self._mine(
            sender,
            [(
                self.registry.address,
                ChainEventType.MARKET_CREATED,
                {
                    "market_address": created.address,
                    "market_id": created.market_id,
                    "question": created.question,
                    "creator": created.creator,
                    "trading_fee": created.fee_bps,
                },
            )],
            created,
        )

    def buy(self, sender: str, market_address: str, side: Side, amount: int) -> TxReceipt:
        market = self.registry.get_market(market_address)
        result = market.buy(sender, side, amount)
        return self._mine(
            sender,
            [(
                market.address,
                ChainEventType.SHARES_PURCHASED,
                {
                    "buyer": sender.lower(),
                    "is_yes": side == Side.YES,
                    "amount": result.amount,
                    "shares": result.shares,
                    "new_yes_price": result.new_yes_price,
                    "new_no_price": result.new_no_price,
                },
            )],
            result,
        )

    def sell(self, sender: str, market_address: str, side: Side, shares: int) -> TxReceipt:
        market = self.registry.get_market(market_address)
        result = market.sell(sender, side, shares)
        return self._mine(
            sender,
            [(
                market.address,
                ChainEventType.SHARES_SOLD,
                {
                    "seller": sender.lower(),
                    "is_yes": side == Side.YES,
                    "shares": result.shares,
                    "payout": result.payout,
                    "new_yes_price": result.new_yes_price,
                    "new_no_price": result.new_no_price,
                },
            )],
            result,
        )

    def resolve(self, sender: str, market_address: str, outcome: Side) -> TxReceipt:
        market = self.registry.get_market(market_address)
        market.resolve(sender, outcome)
        return self._mine(
            sender,
            [(
                market.address,
                ChainEventType.MARKET_RESOLVED,
                {"outcome": outcome == Side.YES, "timestamp": self.now()},
            )],
            None,
        )

    def claim_winnings(self, sender: str, market_address: str) -> TxReceipt:
        market = self.registry.get_market(market_address)
        result = market.claim_winnings(sender)
        return self._mine(
            sender,
            [(
                market.address,
                ChainEventType.WINNINGS_CLAIMED,
                {"user": result.holder, "shares": result.shares, "payout": result.payout},
            )],
            result,
        )

    def _mine(self, sender: str, emitted: _Emitted, result: Any) -> TxReceipt:
        self.block_number += 1
        self._tx_count += 1
        timestamp = self.now()
        self._last_timestamp = timestamp
        tx_hash = "0x" + hashlib.sha3_256(
            f"{self.block_number}:{sender.lower()}:{self._tx_count}".encode()
        ).hexdigest()

        logs = [
            ChainLog(
                address=address,
                event=event,
                args=args,
                block_number=self.block_number,
                tx_hash=tx_hash,
                log_index=i,
                timestamp=timestamp,
            )
            for i, (address, event, args) in enumerate(emitted)
        ]
        self._logs.extend(logs)
        logger.debug("Mined block %d: tx=%s, logs=%d", self.block_number, tx_hash, len(logs))
        return TxReceipt(
            tx_hash=tx_hash,
            block_number=self.block_number,
            timestamp=timestamp,
            logs=logs,
            result=result,
        )
