"""ChainEventPoller: background loops that keep the mirror in step with chain.

Two independent loops:
  - event scan: reads logs over (last_scanned_block, head], applies them in
    (block, log_index) order, then advances and persists the watermark.
    A failed fetch or apply leaves the watermark untouched, so the next
    tick re-reads the same range (at-least-once; trades dedupe on tx_ref).
    After each bootstrap, the first tick that finds the mirror caught up
    also rewrites mirrored share balances from chain.
  - price refresh: re-reads live prices for every open market.

Each loop sleeps after its tick completes, so ticks never overlap.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from src.pm_chain.domain.client import ChainClientProtocol
from src.pm_common.enums import ChainEventType
from src.pm_common.errors import ChainRpcError
from src.pm_indexer.application.reconciler import Reconciler
from src.pm_indexer.application.rpc import rpc_call
from src.pm_indexer.domain.decoder import decode_log
from src.pm_indexer.domain.store import MirrorStoreProtocol

logger = logging.getLogger(__name__)


@dataclass
class PollerState:
    last_scanned_block: int | None = None
    watched_markets: set[str] = field(default_factory=set)
    running: bool = False
    needs_position_repair: bool = False


class ChainEventPoller:
    def __init__(
        self,
        chain: ChainClientProtocol,
        reconciler: Reconciler,
        store: MirrorStoreProtocol,
        scan_interval: float = 15.0,
        price_interval: float = 30.0,
        rpc_timeout: float | None = 10.0,
    ) -> None:
        self._chain = chain
        self._reconciler = reconciler
        self._store = store
        self._scan_interval = scan_interval
        self._price_interval = price_interval
        self._rpc_timeout = rpc_timeout
        self._tasks: list[asyncio.Task] = []
        self.state = PollerState()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self.state.running:
            return
        await self.bootstrap()
        self.state.running = True
        self._tasks = [
            asyncio.create_task(
                self._run_periodic("event scan", self.scan_once, self._scan_interval)
            ),
            asyncio.create_task(
                self._run_periodic("price refresh", self.refresh_prices_once, self._price_interval)
            ),
        ]
        logger.info(
            "Chain event poller started at block %s (scan=%ss, prices=%ss)",
            self.state.last_scanned_block, self._scan_interval, self._price_interval,
        )

    async def stop(self) -> None:
        self.state.running = False
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Chain event poller stopped")

    async def bootstrap(self) -> None:
        """Full resync, then resume from the persisted watermark (or chain head)."""
        try:
            addresses = await self._reconciler.full_resync()
            self.state.watched_markets.update(addresses)
            watermark = await self._store.get_watermark()
            head = await rpc_call(self._chain.get_block_number(), self._rpc_timeout)
            if watermark is None:
                watermark = head
            elif watermark > head:
                # Chain was reset underneath a persisted watermark. Market
                # rows are refreshed by address, but trades and price points
                # of the old chain stay; reset the database with the chain.
                logger.warning("Watermark %d is ahead of chain head %d, rewinding", watermark, head)
                watermark = head
        except ChainRpcError as e:
            logger.warning("Poller bootstrap failed, will retry: %s", e.message)
            return
        self.state.last_scanned_block = watermark
        self.state.needs_position_repair = True
        logger.info(
            "Poller bootstrapped: %d markets watched, watermark=%d",
            len(self.state.watched_markets), watermark,
        )

    async def _run_periodic(
        self, name: str, tick: Callable[[], Awaitable[object]], interval: float
    ) -> None:
        while self.state.running:
            try:
                await tick()
            except Exception:
                logger.exception("%s tick failed", name)
            await asyncio.sleep(interval)

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    async def scan_once(self) -> bool:
        """Scan one block range. Returns True if the watermark advanced."""
        last = self.state.last_scanned_block
        if last is None:
            await self.bootstrap()
            return False

        try:
            head = await rpc_call(self._chain.get_block_number(), self._rpc_timeout)
            if head <= last:
                await self._repair_positions_if_needed(last)
                return False
            from_block = last + 1
            registry_logs = await rpc_call(
                self._chain.get_logs(from_block, head, [self._chain.registry_address]),
                self._rpc_timeout,
            )
            for log in registry_logs:
                if log.event == ChainEventType.MARKET_CREATED:
                    self.state.watched_markets.add(str(log.args["market_address"]).lower())
            market_logs = []
            if self.state.watched_markets:
                market_logs = await rpc_call(
                    self._chain.get_logs(from_block, head, sorted(self.state.watched_markets)),
                    self._rpc_timeout,
                )
            logs = sorted(registry_logs + market_logs, key=lambda log: log.sort_key)
            for log in logs:
                await self._reconciler.apply(decode_log(log))
        except ChainRpcError as e:
            logger.warning(
                "Event scan from block %d abandoned: %s", last + 1, e.message
            )
            return False

        await self._store.set_watermark(head)
        self.state.last_scanned_block = head
        if logs:
            logger.info("Applied %d events from blocks %d-%d", len(logs), from_block, head)
        await self._repair_positions_if_needed(head)
        return True

    async def _repair_positions_if_needed(self, caught_up_to: int) -> None:
        """One chain-balance repair per bootstrap, once the scan has caught up."""
        if not self.state.needs_position_repair:
            return
        try:
            repaired = await self._reconciler.repair_positions(caught_up_to)
        except ChainRpcError as e:
            logger.warning("Position repair failed, will retry: %s", e.message)
            return
        if repaired is None:
            return
        self.state.needs_position_repair = False
        logger.info("Position repair complete: %d positions corrected", repaired)

    async def refresh_prices_once(self) -> int:
        return await self._reconciler.refresh_prices()
