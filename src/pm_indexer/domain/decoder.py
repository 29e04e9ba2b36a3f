"""Translate raw chain logs into domain events.

MarketCreated is emitted by the registry; its subject is the new market, so
market_address comes from the log args rather than the emitting contract.
"""

from src.pm_chain.domain.models import ChainLog
from src.pm_common.datetime_utils import from_unix
from src.pm_common.enums import ChainEventType, Side
from src.pm_indexer.domain.events import (
    DomainEvent,
    MarketCreated,
    MarketResolved,
    SharesPurchased,
    SharesSold,
    WinningsClaimed,
)


def decode_log(log: ChainLog) -> DomainEvent:
    args = log.args
    meta = {
        "market_address": log.address.lower(),
        "block_number": log.block_number,
        "tx_hash": log.tx_hash,
        "log_index": log.log_index,
        "timestamp": from_unix(log.timestamp),
    }

    if log.event == ChainEventType.MARKET_CREATED:
        meta["market_address"] = str(args["market_address"]).lower()
        return MarketCreated(
            **meta,
            market_id=int(args["market_id"]),
            question=args["question"],
            creator=str(args["creator"]).lower(),
            fee_bps=int(args["trading_fee"]),
        )
    if log.event == ChainEventType.SHARES_PURCHASED:
        return SharesPurchased(
            **meta,
            buyer=str(args["buyer"]).lower(),
            side=Side.from_bool(bool(args["is_yes"])),
            amount=int(args["amount"]),
            shares=int(args["shares"]),
            new_yes_price=int(args["new_yes_price"]),
            new_no_price=int(args["new_no_price"]),
        )
    if log.event == ChainEventType.SHARES_SOLD:
        return SharesSold(
            **meta,
            seller=str(args["seller"]).lower(),
            side=Side.from_bool(bool(args["is_yes"])),
            shares=int(args["shares"]),
            payout=int(args["payout"]),
            new_yes_price=int(args["new_yes_price"]),
            new_no_price=int(args["new_no_price"]),
        )
    if log.event == ChainEventType.MARKET_RESOLVED:
        return MarketResolved(**meta, outcome=Side.from_bool(bool(args["outcome"])))
    if log.event == ChainEventType.WINNINGS_CLAIMED:
        return WinningsClaimed(
            **meta,
            holder=str(args["user"]).lower(),
            shares=int(args["shares"]),
            payout=int(args["payout"]),
        )
    raise ValueError(f"Unknown chain event: {log.event}")
