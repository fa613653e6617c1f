import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal

from whale_watcher.activity import WalletTracker
from whale_watcher.dispatcher import AlertDispatcher
from whale_watcher.types import Side, Trade, Venue


class DummySink:
    def __init__(self, fail: bool = False) -> None:
        self.calls: list[int] = []
        self.fail = fail

    def beep(self, count: int = 1, gap_seconds: float = 0.1) -> None:
        self.calls.append(count)
        if self.fail:
            raise OSError("no audio device")


class DummyNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.sent = []
        self.fail = fail

    async def send(self, title, message, tags, high_priority=False, payload=None) -> None:
        if self.fail:
            raise RuntimeError("webhook down")
        self.sent.append((title, payload))

    async def close(self) -> None:
        return None


class DummyResolver:
    def __init__(self) -> None:
        self.lookups: list[str] = []

    async def resolve(self, ticker: str) -> str | None:
        self.lookups.append(ticker)
        return "Bitcoin above 100k?"

    async def close(self) -> None:
        return None


def _trade(venue: Venue = Venue.DECENTRALIZED, side: Side = Side.BUY, wallet: str | None = None) -> Trade:
    return Trade(
        venue=venue,
        market_id="KXBTC" if venue is Venue.REGULATED else "0xcond",
        trade_id="t1",
        notional_usd=Decimal("30000"),
        side=side,
        observed_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        wallet=wallet,
    )


def test_dispatch_logs_and_beeps_once(caplog) -> None:
    sink = DummySink()
    dispatcher = AlertDispatcher(sink)

    with caplog.at_level(logging.INFO, logger="whale_watcher.dispatcher"):
        asyncio.run(dispatcher.dispatch(_trade()))

    assert sink.calls == [1]
    assert "LARGE TRANSACTION DETECTED - Polymarket" in caplog.text
    assert "amount=$30,000.00" in caplog.text


def test_sell_uses_triple_cue_in_single_sink_call() -> None:
    sink = DummySink()
    asyncio.run(AlertDispatcher(sink).dispatch(_trade(side=Side.SELL)))
    assert sink.calls == [3]


def test_sink_failure_still_logs_and_does_not_raise(caplog) -> None:
    sink = DummySink(fail=True)
    dispatcher = AlertDispatcher(sink)

    with caplog.at_level(logging.INFO, logger="whale_watcher.dispatcher"):
        asyncio.run(dispatcher.dispatch(_trade()))

    assert "LARGE TRANSACTION DETECTED" in caplog.text
    assert dispatcher.cue_failures == 1


def test_regulated_trade_is_enriched_with_title(caplog) -> None:
    resolver = DummyResolver()
    dispatcher = AlertDispatcher(DummySink(), resolver=resolver)

    with caplog.at_level(logging.INFO, logger="whale_watcher.dispatcher"):
        asyncio.run(dispatcher.dispatch(_trade(venue=Venue.REGULATED)))

    assert resolver.lookups == ["KXBTC"]
    assert 'title="Bitcoin above 100k?"' in caplog.text


def test_webhook_sent_and_failures_contained() -> None:
    ok = DummyNotifier()
    broken = DummyNotifier(fail=True)

    async def run() -> AlertDispatcher:
        d1 = AlertDispatcher(DummySink(), notifier=ok)
        d2 = AlertDispatcher(DummySink(), notifier=broken)
        await d1.dispatch(_trade())
        await d2.dispatch(_trade())
        await d1.drain()
        await d2.drain()
        return d2

    d2 = asyncio.run(run())

    assert ok.sent[0][0] == "WHALE BUYING"
    assert ok.sent[0][1]["alert_type"] == "WHALE_ENTRY"
    assert d2.webhook_failures == 1


def test_repeat_wallet_gets_triple_cue() -> None:
    sink = DummySink()
    dispatcher = AlertDispatcher(sink, wallets=WalletTracker())

    async def run() -> None:
        await dispatcher.dispatch(_trade(wallet="0xabc"))
        await dispatcher.dispatch(_trade(wallet="0xabc"))

    asyncio.run(run())

    assert sink.calls == [1, 3]
