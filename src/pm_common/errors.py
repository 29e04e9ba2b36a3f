"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: AMM invariants (fatal to the single operation, never retried)
  2xxx: Collateral
  3xxx: Market
  4xxx: Trade write path
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: AMM invariants ---

class PoolDrainViolationError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Trade too large: pool drain", 422)


class AlreadyInitializedError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Pool already initialized", 409)


class AlreadyClaimedError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Winnings already claimed", 409)


class MarketResolvedError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Market already resolved", 422)


class UnauthorizedError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1005, f"Unauthorized: {detail}", 403)


class InvalidAmountError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1006, f"Invalid amount: {detail}", 422)


class InsufficientSharesError(AppError):
    def __init__(self, requested: int, held: int) -> None:
        super().__init__(
            1007,
            f"Insufficient shares: requested {requested}, held {held}",
            422,
        )


class PoolNotInitializedError(AppError):
    def __init__(self) -> None:
        super().__init__(1008, "Pool not initialized", 422)


class MarketNotResolvedError(AppError):
    def __init__(self) -> None:
        super().__init__(1009, "Market not resolved", 422)


class NothingToClaimError(AppError):
    def __init__(self) -> None:
        super().__init__(1010, "No winning shares to claim", 422)


# --- 2xxx: Collateral ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required {required} units, available {available} units",
            422,
        )


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3001, f"Market not found: {market_id}", 404)


class InvalidMarketParamsError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3002, f"Invalid market parameters: {detail}", 422)


class InvalidMarketIdError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3003, f"Invalid market ID: {market_id}", 400)


# --- 4xxx: Trade write path ---

class TradeAlreadyRecordedError(AppError):
    def __init__(self, tx_ref: str) -> None:
        super().__init__(4001, f"Trade already recorded: {tx_ref}", 409)


class InvalidTradeActionError(AppError):
    def __init__(self, action: str) -> None:
        super().__init__(4002, f"Invalid trade action: {action}", 422)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Too many requests, please try again later.", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class ChainRpcError(AppError):
    """Transient chain read failure (timeout, node unavailable)."""

    def __init__(self, detail: str) -> None:
        super().__init__(9003, f"Chain RPC error: {detail}", 503)
