from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass

from .activity import WalletTracker
from .alert_sink import AudioAlertSink
from .config import Settings
from .dedupe import SeenSet, TradeFilter
from .dispatcher import AlertDispatcher
from .enrichment import KalshiMarketResolver
from .kalshi_client import KalshiClient
from .polymarket_client import PolymarketClient
from .retry import PollResult, VenuePoller
from .types import Trade
from .webhook_notifier import WebhookNotifier

logger = logging.getLogger(__name__)


class SchedulerState(enum.Enum):
    IDLE = "idle"
    POLLING = "polling"
    SLEEPING = "sleeping"
    STOPPED = "stopped"


@dataclass
class Metrics:
    cycles: int = 0
    trades_seen: int = 0
    trades_over_threshold: int = 0
    alerts_sent: int = 0
    fetch_failures: int = 0
    venues_skipped: int = 0


class WatchService:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.threshold = settings.threshold
        self.metrics = Metrics()
        self.state = SchedulerState.IDLE
        self._stop = asyncio.Event()

        timeout = settings.fetch_timeout_seconds
        self.pollers: list[VenuePoller] = [
            VenuePoller(
                PolymarketClient(
                    settings.polymarket_api_base,
                    limit=settings.trade_limit,
                    timeout=timeout,
                )
            ),
            VenuePoller(
                KalshiClient(
                    settings.kalshi_api_base,
                    api_key_id=settings.kalshi_api_key_id,
                    limit=settings.trade_limit,
                    timeout=timeout,
                )
            ),
        ]
        self.trade_filter = TradeFilter(
            settings.threshold.min_notional_usd,
            SeenSet(settings.seen_max_entries),
        )
        self.dispatcher = AlertDispatcher(
            sink=AudioAlertSink(),
            notifier=WebhookNotifier(settings.webhook_url) if settings.webhook_url else None,
            resolver=KalshiMarketResolver(settings.kalshi_api_base, timeout=timeout),
            wallets=WalletTracker(),
        )

    def stop(self) -> None:
        self._stop.set()

    async def run(self) -> None:
        health_task = asyncio.create_task(self._health_loop())
        try:
            while not self._stop.is_set():
                self.state = SchedulerState.POLLING
                await self.run_cycle()
                if self._stop.is_set():
                    break
                self.state = SchedulerState.SLEEPING
                try:
                    await asyncio.wait_for(
                        self._stop.wait(), timeout=self.threshold.poll_interval_seconds
                    )
                except asyncio.TimeoutError:
                    pass
        finally:
            self.state = SchedulerState.STOPPED
            health_task.cancel()
            await asyncio.gather(health_task, return_exceptions=True)
            await self.close()
            logger.info(
                "Stopped after %d cycles, %d alerts", self.metrics.cycles, self.metrics.alerts_sent
            )

    async def run_cycle(self) -> list[Trade]:
        """Poll every venue concurrently, then filter and dispatch one trade at a time."""
        self.metrics.cycles += 1
        outcomes = await asyncio.gather(
            *(poller.poll() for poller in self.pollers), return_exceptions=True
        )

        alerted: list[Trade] = []
        for poller, outcome in zip(self.pollers, outcomes):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                self.metrics.fetch_failures += 1
                logger.error(
                    "%s poll crashed: %s", poller.venue.value, outcome, exc_info=outcome
                )
                continue
            alerted.extend(await self._handle_result(outcome))
        return alerted

    async def _handle_result(self, result: PollResult) -> list[Trade]:
        if not result.ok:
            if result.skipped:
                self.metrics.venues_skipped += 1
            else:
                self.metrics.fetch_failures += 1
            return []

        alerted: list[Trade] = []
        for trade in result.trades:
            self.metrics.trades_seen += 1
            if trade.notional_usd >= self.threshold.min_notional_usd:
                self.metrics.trades_over_threshold += 1
            if not self.trade_filter.admit(trade):
                continue
            await self.dispatcher.dispatch(trade)
            self.metrics.alerts_sent += 1
            alerted.append(trade)
        return alerted

    async def close(self) -> None:
        for poller in self.pollers:
            await poller.client.close()
        await self.dispatcher.close()

    async def _health_loop(self) -> None:
        while True:
            await asyncio.sleep(self.settings.health_log_interval_seconds)
            logger.info(
                (
                    "health cycles=%d trades_seen=%d over_threshold=%d "
                    "alerts_sent=%d fetch_failures=%d venues_skipped=%d"
                ),
                self.metrics.cycles,
                self.metrics.trades_seen,
                self.metrics.trades_over_threshold,
                self.metrics.alerts_sent,
                self.metrics.fetch_failures,
                self.metrics.venues_skipped,
            )
