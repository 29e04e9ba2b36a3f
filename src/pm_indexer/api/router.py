"""Trade write path endpoint.

POST /trades — reflect a confirmed transaction before the poller picks it up.
  201 on insert, 409 when tx_ref is already recorded, 404 on unknown market.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.dependencies import get_mirror_store, get_reconciler
from src.pm_indexer.application.reconciler import Reconciler
from src.pm_indexer.application.schemas import RecordTradeRequest
from src.pm_indexer.application.trade_recorder import TradeRecorder
from src.pm_indexer.domain.store import MirrorStoreProtocol

router = APIRouter(prefix="/trades", tags=["trades"])


def get_trade_recorder(
    store: Annotated[MirrorStoreProtocol, Depends(get_mirror_store)],
    reconciler: Annotated[Reconciler, Depends(get_reconciler)],
) -> TradeRecorder:
    return TradeRecorder(store, reconciler)


@router.post("", status_code=status.HTTP_201_CREATED)
async def record_trade(
    body: RecordTradeRequest,
    request: Request,
    recorder: Annotated[TradeRecorder, Depends(get_trade_recorder)],
) -> ApiResponse:
    result = await recorder.record_trade(body)
    return success_response(result.model_dump(), request)
