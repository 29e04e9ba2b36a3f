"""Stablecoin-style collateral ledger (6 decimals)."""

from collections import defaultdict

from src.pm_common.errors import InsufficientBalanceError, InvalidAmountError


class CollateralToken:
    decimals = 6

    def __init__(self) -> None:
        self._balances: dict[str, int] = defaultdict(int)
        self.total_supply = 0

    def balance_of(self, address: str) -> int:
        return self._balances.get(address.lower(), 0)

    def mint_to(self, address: str, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmountError("mint amount must be positive")
        self._balances[address.lower()] += amount
        self.total_supply += amount

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """Move `amount` from sender to recipient. Checks before mutating."""
        if amount < 0:
            raise InvalidAmountError("transfer amount must not be negative")
        available = self.balance_of(sender)
        if available < amount:
            raise InsufficientBalanceError(required=amount, available=available)
        self._balances[sender.lower()] -= amount
        self._balances[recipient.lower()] += amount
