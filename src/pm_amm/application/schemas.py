"""Pydantic schemas for the AMM transaction API.

Amounts and shares are fixed-point integers with 6 implied decimals.
`sender` is the account submitting the transaction.
"""

import dataclasses
from typing import Any

from pydantic import BaseModel, Field

from src.pm_chain.domain.models import TxReceipt
from src.pm_common.enums import Side


class FaucetRequest(BaseModel):
    sender: str = Field(..., min_length=1)
    to: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0)


class CreateMarketRequest(BaseModel):
    sender: str = Field(..., min_length=1)
    question: str = Field(..., min_length=1, max_length=500)
    description: str = ""
    category: str = "general"
    resolution_date: int = Field(..., description="Unix seconds")
    initial_liquidity: int = Field(..., gt=0)
    fee_bps: int = Field(200, ge=0)


class BuyRequest(BaseModel):
    sender: str = Field(..., min_length=1)
    side: Side
    amount: int


class SellRequest(BaseModel):
    sender: str = Field(..., min_length=1)
    side: Side
    shares: int


class ResolveRequest(BaseModel):
    sender: str = Field(..., min_length=1)
    outcome: Side


class ClaimRequest(BaseModel):
    sender: str = Field(..., min_length=1)


class TxReceiptOut(BaseModel):
    tx_hash: str
    block_number: int
    timestamp: int
    events: list[str]
    result: dict[str, Any] | None

    @classmethod
    def from_receipt(cls, receipt: TxReceipt) -> "TxReceiptOut":
        result = receipt.result
        return cls(
            tx_hash=receipt.tx_hash,
            block_number=receipt.block_number,
            timestamp=receipt.timestamp,
            events=[log.event.value for log in receipt.logs],
            result=dataclasses.asdict(result) if dataclasses.is_dataclass(result) else None,
        )


class AccountOut(BaseModel):
    address: str
    collateral_balance: int
