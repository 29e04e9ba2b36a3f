"""TradeRecorder — write path reflecting a confirmed transaction ahead of the poller.

Shares the reconciler's trade unit, so a trade recorded here and later seen
again by the poller (same tx_ref) is applied exactly once. Unlike the
reconciler, a duplicate is reported to the caller as a conflict.
"""

import logging

from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import TradeAction
from src.pm_common.errors import (
    InvalidAmountError,
    InvalidTradeActionError,
    MarketNotFoundError,
    TradeAlreadyRecordedError,
)
from src.pm_indexer.application.reconciler import Reconciler
from src.pm_indexer.application.schemas import RecordTradeRequest, TradeOut
from src.pm_indexer.domain.models import MirrorTrade
from src.pm_indexer.domain.store import MirrorStoreProtocol

logger = logging.getLogger(__name__)


class TradeRecorder:
    def __init__(self, store: MirrorStoreProtocol, reconciler: Reconciler) -> None:
        self._store = store
        self._reconciler = reconciler

    async def record_trade(self, req: RecordTradeRequest) -> TradeOut:
        try:
            action = TradeAction(req.action)
        except ValueError as e:
            raise InvalidTradeActionError(req.action) from e
        if req.shares <= 0:
            raise InvalidAmountError("shares must be positive")

        market = await self._store.get_market_by_address(req.market_address)
        if market is None:
            raise MarketNotFoundError(req.market_address)

        trade = MirrorTrade(
            market_id=market.id,
            holder=req.holder.lower(),
            action=action.value,
            shares=req.shares,
            price=req.price,
            amount=req.amount,
            tx_ref=req.tx_ref,
            timestamp=utc_now(),
        )
        if not await self._reconciler.apply_trade(market, trade):
            raise TradeAlreadyRecordedError(req.tx_ref)
        return TradeOut.from_domain(trade, market.address)
