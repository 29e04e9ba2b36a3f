"""Tests for pm_common.errors and pm_common.response."""

from unittest.mock import MagicMock

from src.pm_common.errors import (
    AlreadyClaimedError,
    AppError,
    ChainRpcError,
    InsufficientBalanceError,
    InsufficientSharesError,
    MarketNotFoundError,
    PoolDrainViolationError,
    TradeAlreadyRecordedError,
    UnauthorizedError,
)
from src.pm_common.response import ApiResponse, error_response, success_response


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500

    def test_custom_http_status(self) -> None:
        err = AppError(code=4001, message="dup", http_status=409)
        assert err.http_status == 409

    def test_is_exception(self) -> None:
        assert isinstance(AppError(code=1, message="x"), Exception)


class TestSpecificErrors:
    def test_pool_drain(self) -> None:
        err = PoolDrainViolationError()
        assert err.code == 1001
        assert err.http_status == 422
        assert "pool drain" in err.message

    def test_already_claimed(self) -> None:
        err = AlreadyClaimedError()
        assert err.code == 1003
        assert err.http_status == 409

    def test_unauthorized(self) -> None:
        err = UnauthorizedError("only the oracle can resolve")
        assert err.code == 1005
        assert err.http_status == 403
        assert "oracle" in err.message

    def test_insufficient_shares(self) -> None:
        err = InsufficientSharesError(requested=10, held=3)
        assert err.code == 1007
        assert "10" in err.message
        assert "3" in err.message

    def test_insufficient_balance(self) -> None:
        err = InsufficientBalanceError(required=6500, available=3000)
        assert err.code == 2001
        assert err.http_status == 422
        assert "6500" in err.message
        assert "3000" in err.message

    def test_market_not_found(self) -> None:
        err = MarketNotFoundError("0xabc")
        assert err.code == 3001
        assert err.http_status == 404
        assert "0xabc" in err.message

    def test_trade_already_recorded(self) -> None:
        err = TradeAlreadyRecordedError("0xdeadbeef")
        assert err.code == 4001
        assert err.http_status == 409

    def test_chain_rpc_error(self) -> None:
        err = ChainRpcError("timed out")
        assert err.code == 9003
        assert err.http_status == 503


class TestApiResponse:
    def test_success_response(self) -> None:
        resp = success_response({"id": 1})
        assert resp.code == 0
        assert resp.message == "success"
        assert resp.data == {"id": 1}
        assert resp.request_id.startswith("req_")

    def test_success_response_copies_request_id(self) -> None:
        request = MagicMock()
        request.state.request_id = "req_abc123"
        resp = success_response(None, request)
        assert resp.request_id == "req_abc123"

    def test_error_response(self) -> None:
        resp = error_response(3001, "Market not found: 0xabc")
        assert resp.code == 3001
        assert resp.data is None

    def test_timestamp_present(self) -> None:
        assert ApiResponse().timestamp
