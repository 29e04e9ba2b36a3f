"""Reconciler — applies domain events and price snapshots to the mirror.

Chain state is ground truth; the mirror is a materialized view with
idempotent upserts plus periodic full-resync repair.

Idempotency boundary: a trade's tx_ref. Position and volume effects are
applied only when the trade row is newly inserted, so at-least-once event
delivery never double counts.
"""

import logging
import re

from src.pm_chain.domain.client import ChainClientProtocol
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import Side, TradeAction
from src.pm_common.errors import ChainRpcError
from src.pm_common.fixed_point import price_per_share, weighted_average_price
from src.pm_indexer.application.rpc import rpc_call
from src.pm_indexer.domain.events import (
    DomainEvent,
    MarketCreated,
    MarketResolved,
    SharesPurchased,
    SharesSold,
    WinningsClaimed,
)
from src.pm_indexer.domain.models import MirrorMarket, MirrorPosition, MirrorTrade, PricePoint
from src.pm_indexer.domain.store import MirrorStoreProtocol

logger = logging.getLogger(__name__)

_PLACEHOLDER_ADDRESS = re.compile(r"^0x0{10,}", re.IGNORECASE)


def is_placeholder_address(address: str) -> bool:
    """Seed/demo rows carry zero-padded addresses with no contract behind them."""
    return bool(_PLACEHOLDER_ADDRESS.match(address))


class Reconciler:
    def __init__(
        self,
        store: MirrorStoreProtocol,
        chain: ChainClientProtocol,
        rpc_timeout: float | None = None,
    ) -> None:
        self._store = store
        self._chain = chain
        self._rpc_timeout = rpc_timeout

    # ------------------------------------------------------------------
    # Market sync
    # ------------------------------------------------------------------

    async def sync_market(self, address: str) -> MirrorMarket:
        """Re-read one market from chain, upsert it and seed a price point."""
        info = await rpc_call(self._chain.get_market_info(address), self._rpc_timeout)
        market = await self._store.upsert_market(info)
        await self._store.append_price_point(
            PricePoint(
                market_id=market.id,
                yes_price=info.yes_price,
                no_price=info.no_price,
                timestamp=utc_now(),
            )
        )
        logger.info(
            "Indexed market %s: %.50s (yes=%d, no=%d)",
            market.address, market.question, market.yes_price, market.no_price,
        )
        return market

    async def full_resync(self) -> list[str]:
        """Enumerate the registry and re-sync every market.

        Returns every enumerated address, including ones whose sync failed;
        those are still watched and get synced on demand by their next event.
        Raises ChainRpcError only when the enumeration itself fails.
        """
        addresses = await rpc_call(self._chain.get_markets(), self._rpc_timeout)
        logger.info("Full resync: %d markets on-chain", len(addresses))
        for address in addresses:
            try:
                await self.sync_market(address)
            except ChainRpcError as e:
                logger.warning("Resync skipped market %s: %s", address, e.message)
        return [a.lower() for a in addresses]

    async def _market_for(self, address: str) -> MirrorMarket:
        market = await self._store.get_market_by_address(address)
        if market is None:
            # Gap: event for a market the mirror never saw.
            logger.info("Unknown market %s in event stream, syncing", address)
            market = await self.sync_market(address)
        return market

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def apply(self, event: DomainEvent) -> None:
        if isinstance(event, MarketCreated):
            logger.info(
                "New market detected: %s (fee: %d bps)", event.question, event.fee_bps
            )
            await self.sync_market(event.market_address)
        elif isinstance(event, SharesPurchased):
            await self._apply_purchase(event)
        elif isinstance(event, SharesSold):
            await self._apply_sale(event)
        elif isinstance(event, MarketResolved):
            market = await self._market_for(event.market_address)
            await self._store.mark_resolved(market.id, event.outcome)
            logger.info("Market %s resolved: %s", market.address, event.outcome.value)
        elif isinstance(event, WinningsClaimed):
            await self._apply_claim(event)

    async def _apply_purchase(self, event: SharesPurchased) -> None:
        market = await self._market_for(event.market_address)
        trade = MirrorTrade(
            market_id=market.id,
            holder=event.buyer,
            action=TradeAction.of(True, event.side).value,
            shares=event.shares,
            price=price_per_share(event.amount, event.shares),
            amount=event.amount,
            tx_ref=event.tx_hash,
            timestamp=event.timestamp,
        )
        await self.apply_trade(market, trade)
        await self._record_prices(market, event.new_yes_price, event.new_no_price, event)

    async def _apply_sale(self, event: SharesSold) -> None:
        market = await self._market_for(event.market_address)
        trade = MirrorTrade(
            market_id=market.id,
            holder=event.seller,
            action=TradeAction.of(False, event.side).value,
            shares=event.shares,
            price=price_per_share(event.payout, event.shares),
            amount=event.payout,
            tx_ref=event.tx_hash,
            timestamp=event.timestamp,
        )
        await self.apply_trade(market, trade)
        await self._record_prices(market, event.new_yes_price, event.new_no_price, event)

    async def _apply_claim(self, event: WinningsClaimed) -> None:
        market = await self._market_for(event.market_address)
        if market.outcome is None:
            market = await self.sync_market(event.market_address)
        if market.outcome is None:
            logger.warning("Claim on unresolved market %s ignored", market.address)
            return
        await self._store.delete_position(market.id, event.holder, Side(market.outcome))

    async def _record_prices(
        self, market: MirrorMarket, yes_price: int, no_price: int, event: DomainEvent
    ) -> None:
        """Record the post-trade prices carried by a trade event, once per tx.

        Runs even when the trade row already existed (recorded through the
        write path), so the event's prices still reach the market and its
        history. A redelivered event finds its point and changes nothing.
        """
        appended = await self._store.append_price_point(
            PricePoint(
                market_id=market.id,
                yes_price=yes_price,
                no_price=no_price,
                timestamp=event.timestamp,
                tx_ref=event.tx_hash,
            )
        )
        if appended:
            await self._store.update_market_prices(market.id, yes_price, no_price)

    # ------------------------------------------------------------------
    # Trade unit: insert + position + volume
    # ------------------------------------------------------------------

    async def apply_trade(self, market: MirrorMarket, trade: MirrorTrade) -> bool:
        """Apply one trade. Returns False (no-op) if tx_ref was already recorded."""
        if not await self._store.insert_trade(trade):
            logger.debug("Duplicate trade ignored: tx_ref=%s", trade.tx_ref)
            return False

        action = TradeAction(trade.action)
        if action.is_buy:
            await self._merge_buy(market.id, trade, action.side)
        else:
            await self._reduce_sell(market.id, trade, action.side)
        await self._store.increment_volume(market.id, trade.amount)
        logger.info(
            "Recorded %s on %s: holder=%s, shares=%d, amount=%d",
            trade.action, market.address, trade.holder, trade.shares, trade.amount,
        )
        return True

    async def _merge_buy(self, market_id: int, trade: MirrorTrade, side: Side) -> None:
        existing = await self._store.get_position(market_id, trade.holder, side)
        if existing is None:
            position = MirrorPosition(
                market_id=market_id,
                holder=trade.holder,
                side=side.value,
                shares=trade.shares,
                avg_price=trade.price,
            )
        else:
            position = existing
            position.avg_price = weighted_average_price(
                existing.shares, existing.avg_price, trade.shares, trade.price
            )
            position.shares = existing.shares + trade.shares
        await self._store.save_position(position)

    async def _reduce_sell(self, market_id: int, trade: MirrorTrade, side: Side) -> None:
        existing = await self._store.get_position(market_id, trade.holder, side)
        if existing is None:
            return
        remaining = existing.shares - trade.shares
        if remaining <= 0:
            await self._store.delete_position(market_id, trade.holder, side)
        else:
            existing.shares = remaining
            await self._store.save_position(existing)

    # ------------------------------------------------------------------
    # Position repair
    # ------------------------------------------------------------------

    async def repair_positions(self, at_block: int) -> int | None:
        """Overwrite mirrored share balances with the chain's.

        A crash between a trade insert and its position write leaves the
        trade deduped forever and the position short; replaying the event
        cannot fix that, so balances are read back from chain instead.
        Every holder seen in positions or trades is checked, both sides.

        Only valid while the mirror is caught up to ``at_block``: if the
        head moves during the pass, balances may include trades the mirror
        has not applied, so the pass is abandoned and None is returned.
        Otherwise returns the number of positions rewritten. Raises
        ChainRpcError on chain faults.
        """
        address_of: dict[int, str | None] = {}
        balances: list[tuple[int, str, Side, int]] = []
        for market_id, holder in await self._store.list_known_holders():
            if market_id not in address_of:
                market = await self._store.get_market_by_id(market_id)
                address_of[market_id] = market.address if market is not None else None
            address = address_of[market_id]
            if address is None or is_placeholder_address(address):
                continue
            for side in (Side.YES, Side.NO):
                shares = await rpc_call(
                    self._chain.get_shares(address, holder, side), self._rpc_timeout
                )
                balances.append((market_id, holder, side, shares))

        head = await rpc_call(self._chain.get_block_number(), self._rpc_timeout)
        if head != at_block:
            logger.info("Position repair abandoned: head moved %d -> %d", at_block, head)
            return None

        repaired = 0
        for market_id, holder, side, shares in balances:
            existing = await self._store.get_position(market_id, holder, side)
            mirrored = existing.shares if existing is not None else 0
            if mirrored == shares:
                continue
            if shares == 0:
                await self._store.delete_position(market_id, holder, side)
            else:
                avg_price = await self._replayed_avg_price(market_id, holder, side)
                if avg_price is None:
                    avg_price = existing.avg_price if existing is not None else 0
                await self._store.save_position(
                    MirrorPosition(
                        market_id=market_id,
                        holder=holder,
                        side=side.value,
                        shares=shares,
                        avg_price=avg_price,
                    )
                )
            logger.warning(
                "Repaired position market=%d holder=%s side=%s: %d -> %d shares",
                market_id, holder, side.value, mirrored, shares,
            )
            repaired += 1
        return repaired

    async def _replayed_avg_price(self, market_id: int, holder: str, side: Side) -> int | None:
        """Entry price from the holder's recorded trades; None if they net to nothing."""
        shares = 0
        avg_price = 0
        for trade in await self._store.list_position_trades(market_id, holder, side):
            if TradeAction(trade.action).is_buy:
                avg_price = weighted_average_price(shares, avg_price, trade.shares, trade.price)
                shares += trade.shares
            else:
                shares -= trade.shares
                if shares <= 0:
                    shares = 0
                    avg_price = 0
        return avg_price if shares > 0 else None

    # ------------------------------------------------------------------
    # Periodic price refresh
    # ------------------------------------------------------------------

    async def refresh_prices(self) -> int:
        """Re-read live prices and volume for every open market.

        Per-market chain faults are isolated. Returns the number refreshed.
        """
        markets = await self._store.list_unresolved_markets()
        refreshed = 0
        for market in markets:
            if is_placeholder_address(market.address):
                continue
            try:
                prices = await rpc_call(
                    self._chain.get_live_prices(market.address), self._rpc_timeout
                )
            except ChainRpcError as e:
                logger.warning("Price refresh skipped %s: %s", market.address, e.message)
                continue
            await self._store.update_market_prices(
                market.id, prices.yes_price, prices.no_price, prices.total_volume
            )
            await self._store.append_price_point(
                PricePoint(
                    market_id=market.id,
                    yes_price=prices.yes_price,
                    no_price=prices.no_price,
                    timestamp=utc_now(),
                )
            )
            refreshed += 1
        return refreshed
