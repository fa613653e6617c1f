from datetime import datetime, timezone
from decimal import Decimal

from whale_watcher.formatting import (
    alert_payload,
    format_alert_line,
    format_usd,
    format_webhook_message,
    short_address,
    time_iso,
)
from whale_watcher.types import Side, Trade, Venue, WalletActivity


def _trade(**overrides) -> Trade:
    fields = dict(
        venue=Venue.DECENTRALIZED,
        market_id="0xcond",
        trade_id="d1",
        notional_usd=Decimal("125000"),
        side=Side.BUY,
        observed_at=datetime(2026, 2, 10, 12, 0, tzinfo=timezone.utc),
        price=Decimal("0.65"),
        size=Decimal("192307.69"),
        outcome="Yes",
        market_title="Will X happen?",
        wallet="0x1234567890abcdef",
    )
    fields.update(overrides)
    return Trade(**fields)


def test_short_address() -> None:
    assert short_address("0x1234567890abcdef") == "0x1234...cdef"
    assert short_address(None) == "Unknown"


def test_time_and_amount() -> None:
    assert time_iso(datetime(2026, 2, 10, 12, 0, tzinfo=timezone.utc)) == "2026-02-10T12:00:00Z"
    assert format_usd(Decimal("25000")) == "$25,000.00"


def test_alert_line_contains_required_fields() -> None:
    line = format_alert_line(_trade())
    assert line.startswith("LARGE TRANSACTION DETECTED - Polymarket")
    assert "market=0xcond" in line
    assert "amount=$125,000.00" in line
    assert "side=BUY" in line
    assert "at=2026-02-10T12:00:00Z" in line
    assert "wallet=0x1234...cdef" in line


def test_alert_line_marks_heavy_sellers() -> None:
    activity = WalletActivity(2, 6, Decimal("60000"), Decimal("200000"))
    line = format_alert_line(_trade(side=Side.SELL), activity)
    assert line.startswith("WHALE EXITING POSITION [HEAVY ACTOR] - Polymarket")
    assert "wallet_txns_24h=6" in line


def test_payload_and_webhook_message() -> None:
    trade = _trade(venue=Venue.REGULATED, wallet=None, side=Side.SELL)
    payload = alert_payload(trade)
    assert payload["platform"] == "Kalshi"
    assert payload["alert_type"] == "WHALE_EXIT"
    assert payload["price_percent"] == 65
    assert "wallet_id" not in payload

    message = format_webhook_message(trade)
    assert message.startswith("WHALE EXITING POSITION")
    assert "Market: Will X happen?" in message
    assert "Amount: $125,000.00" in message
