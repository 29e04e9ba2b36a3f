"""Raw log records and transaction receipts."""

from dataclasses import dataclass, field
from typing import Any

from src.pm_common.enums import ChainEventType


@dataclass(frozen=True)
class ChainLog:
    """One event log as returned by a log query, before decoding."""

    address: str              # emitting contract
    event: ChainEventType
    args: dict[str, Any]
    block_number: int
    tx_hash: str
    log_index: int
    timestamp: int            # block timestamp, unix seconds

    @property
    def sort_key(self) -> tuple[int, int]:
        return self.block_number, self.log_index


@dataclass
class TxReceipt:
    tx_hash: str
    block_number: int
    timestamp: int
    logs: list[ChainLog] = field(default_factory=list)
    result: Any = None
