from datetime import datetime, timezone
from decimal import Decimal

from whale_watcher.normalize import (
    normalize_kalshi_trades,
    normalize_polymarket_trades,
    parse_decimal,
    parse_timestamp,
)
from whale_watcher.types import Side, Venue

OBSERVED = datetime(2026, 2, 10, 12, 0, tzinfo=timezone.utc)


def test_polymarket_trade_is_normalized() -> None:
    record = {
        "proxyWallet": "0xwallet",
        "side": "BUY",
        "asset": "123",
        "conditionId": "0xcond",
        "size": "300000",
        "price": "0.52",
        "timestamp": 1730000000,
        "title": "Will X happen?",
        "outcome": "Yes",
        "transactionHash": "0xabc",
        "someNewField": {"ignored": True},
    }

    trades = normalize_polymarket_trades([record], observed_at=OBSERVED)
    assert len(trades) == 1
    trade = trades[0]

    assert trade.venue is Venue.DECENTRALIZED
    assert trade.market_id == "0xcond"
    assert trade.side is Side.BUY
    assert trade.notional_usd == Decimal("156000.00")
    assert trade.trade_id == "0xabc:123:BUY:300000"
    assert trade.market_title == "Will X happen?"
    assert trade.wallet == "0xwallet"
    assert trade.observed_at == OBSERVED
    assert trade.traded_at == datetime.fromtimestamp(1730000000, tz=timezone.utc)


def test_polymarket_prefers_explicit_id() -> None:
    record = {"id": "t-9", "conditionId": "c", "price": 0.5, "size": 10, "transactionHash": "0x1"}
    trades = normalize_polymarket_trades([record])
    assert trades[0].trade_id == "t-9"


def test_polymarket_drops_trade_without_identifier() -> None:
    record = {"conditionId": "c", "price": "0.5", "size": "100000"}
    assert normalize_polymarket_trades([record]) == []


def test_polymarket_drops_trade_without_notional() -> None:
    records = [
        {"id": "1", "conditionId": "c", "price": "abc", "size": "100"},
        {"id": "2", "conditionId": "c", "size": "100"},
        {"id": "3", "conditionId": "c", "price": "0.5", "size": "0"},
        {"id": "4", "conditionId": "c", "price": "NaN", "size": "5"},
        "not-a-record",
    ]
    assert normalize_polymarket_trades(records) == []


def test_kalshi_trade_uses_cents_price() -> None:
    record = {
        "trade_id": "r1",
        "ticker": "KXBTC-26JAN16",
        "count": 20000,
        "yes_price": 54,
        "no_price": 46,
        "taker_side": "no",
        "created_time": "2026-01-16T10:00:00Z",
    }

    trades = normalize_kalshi_trades([record], observed_at=OBSERVED)
    assert len(trades) == 1
    trade = trades[0]

    assert trade.venue is Venue.REGULATED
    assert trade.market_id == "KXBTC-26JAN16"
    assert trade.notional_usd == Decimal("10800")
    assert trade.side is Side.BUY
    assert trade.outcome == "NO"
    assert trade.traded_at == datetime(2026, 1, 16, 10, 0, tzinfo=timezone.utc)


def test_kalshi_trade_accepts_dollar_fields() -> None:
    record = {
        "trade_id": "r2",
        "ticker": "T",
        "count_fp": "1000.50",
        "yes_price_dollars": "0.4000",
        "taker_side": "yes",
    }
    trades = normalize_kalshi_trades([record])
    assert trades[0].notional_usd == Decimal("400.20000")


def test_kalshi_drops_trade_missing_id_or_count() -> None:
    records = [
        {"ticker": "T", "count": 10, "yes_price": 50},
        {"trade_id": "x", "ticker": "T", "yes_price": 50},
    ]
    assert normalize_kalshi_trades(records) == []


def test_parse_helpers() -> None:
    assert parse_decimal(True) is None
    assert parse_decimal("1.5") == Decimal("1.5")
    assert parse_decimal("inf") is None
    assert parse_timestamp(1730000000000) == datetime.fromtimestamp(1730000000, tz=timezone.utc)
    assert parse_timestamp("1730000000") == datetime.fromtimestamp(1730000000, tz=timezone.utc)
    assert parse_timestamp("garbage") is None
