"""AmmTransactionService — submits transactions to the local chain.

Each call is mined into its own block. Invariant violations raise the
engine's AppError subclasses unchanged, so the API reports them with their
own code and message.
"""

import logging

from src.pm_amm.application.schemas import (
    AccountOut,
    BuyRequest,
    ClaimRequest,
    CreateMarketRequest,
    FaucetRequest,
    ResolveRequest,
    SellRequest,
    TxReceiptOut,
)
from src.pm_chain.infrastructure.local_chain import LocalChain

logger = logging.getLogger(__name__)


class AmmTransactionService:
    def __init__(self, chain: LocalChain) -> None:
        self._chain = chain

    def faucet(self, req: FaucetRequest) -> TxReceiptOut:
        receipt = self._chain.mint(req.sender, req.to, req.amount)
        return TxReceiptOut.from_receipt(receipt)

    def get_account(self, address: str) -> AccountOut:
        return AccountOut(
            address=address.lower(),
            collateral_balance=self._chain.token.balance_of(address),
        )

    def create_market(self, req: CreateMarketRequest) -> TxReceiptOut:
        receipt = self._chain.create_market(
            sender=req.sender,
            question=req.question,
            description=req.description,
            category=req.category,
            resolution_date=req.resolution_date,
            initial_liquidity=req.initial_liquidity,
            fee_bps=req.fee_bps,
        )
        return TxReceiptOut.from_receipt(receipt)

    def buy(self, market_address: str, req: BuyRequest) -> TxReceiptOut:
        receipt = self._chain.buy(req.sender, market_address, req.side, req.amount)
        return TxReceiptOut.from_receipt(receipt)

    def sell(self, market_address: str, req: SellRequest) -> TxReceiptOut:
        receipt = self._chain.sell(req.sender, market_address, req.side, req.shares)
        return TxReceiptOut.from_receipt(receipt)

    def resolve(self, market_address: str, req: ResolveRequest) -> TxReceiptOut:
        receipt = self._chain.resolve(req.sender, market_address, req.outcome)
        logger.info("Resolve submitted for %s: %s", market_address, req.outcome.value)
        return TxReceiptOut.from_receipt(receipt)

    def claim(self, market_address: str, req: ClaimRequest) -> TxReceiptOut:
        receipt = self._chain.claim_winnings(req.sender, market_address)
        return TxReceiptOut.from_receipt(receipt)
