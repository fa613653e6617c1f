from __future__ import annotations

import asyncio
import logging
from dataclasses import replace

from .activity import WalletTracker
from .alert_sink import AlertSink
from .enrichment import KalshiMarketResolver
from .formatting import (
    alert_payload,
    format_alert_line,
    format_webhook_message,
    webhook_tags,
    webhook_title,
)
from .types import Side, Trade, Venue, WalletActivity
from .webhook_notifier import WebhookNotifier

logger = logging.getLogger(__name__)


class AlertDispatcher:
    """Emits one alert per admitted trade: log line, audio cue, optional webhook.

    The log line is always written first; a failing cue or webhook is logged
    and never propagates into the poll loop.
    """

    def __init__(
        self,
        sink: AlertSink,
        notifier: WebhookNotifier | None = None,
        resolver: KalshiMarketResolver | None = None,
        wallets: WalletTracker | None = None,
        cue_gap_seconds: float = 0.1,
    ) -> None:
        self.sink = sink
        self.notifier = notifier
        self.resolver = resolver
        self.wallets = wallets
        self.cue_gap_seconds = cue_gap_seconds
        self._pending: set[asyncio.Task[None]] = set()
        self.cue_failures = 0
        self.webhook_failures = 0

    async def dispatch(self, trade: Trade) -> None:
        trade = await self._with_title(trade)
        activity = self._record_wallet(trade)

        logger.info(format_alert_line(trade, activity))

        await self._play_cue(self._cue_count(trade, activity))

        if self.notifier is not None:
            task = asyncio.create_task(self._send_webhook(self.notifier, trade, activity))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def close(self) -> None:
        await self.drain()
        if self.notifier is not None:
            await self.notifier.close()
        if self.resolver is not None:
            await self.resolver.close()

    async def _with_title(self, trade: Trade) -> Trade:
        if trade.market_title or trade.venue is not Venue.REGULATED or self.resolver is None:
            return trade
        title = await self.resolver.resolve(trade.market_id)
        if title is None:
            return trade
        return replace(trade, market_title=title)

    def _record_wallet(self, trade: Trade) -> WalletActivity | None:
        if self.wallets is None or not trade.wallet:
            return None
        return self.wallets.record(trade.wallet, trade.notional_usd)

    @staticmethod
    def _cue_count(trade: Trade, activity: WalletActivity | None) -> int:
        if trade.side is Side.SELL:
            return 3
        if activity is not None and (activity.is_repeat_actor or activity.is_heavy_actor):
            return 3
        return 1

    async def _play_cue(self, count: int) -> None:
        try:
            await asyncio.to_thread(self.sink.beep, count, self.cue_gap_seconds)
        except Exception as exc:
            self.cue_failures += 1
            logger.warning("Audio alert failed: %s", exc)

    async def _send_webhook(
        self, notifier: WebhookNotifier, trade: Trade, activity: WalletActivity | None
    ) -> None:
        try:
            await notifier.send(
                title=webhook_title(trade),
                message=format_webhook_message(trade, activity),
                tags=webhook_tags(trade),
                high_priority=trade.side is Side.SELL,
                payload=alert_payload(trade, activity),
            )
        except Exception as exc:
            self.webhook_failures += 1
            logger.exception("Failed to send webhook alert for trade %s: %s", trade.trade_id, exc)

