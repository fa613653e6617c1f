from datetime import datetime, timezone
from decimal import Decimal

from whale_watcher.dedupe import SeenSet, TradeFilter
from whale_watcher.types import Side, Trade, Venue


def _trade(trade_id: str, notional: str, venue: Venue = Venue.DECENTRALIZED) -> Trade:
    return Trade(
        venue=venue,
        market_id="m1",
        trade_id=trade_id,
        notional_usd=Decimal(notional),
        side=Side.BUY,
        observed_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


def test_seen_set_evicts_oldest_entry() -> None:
    seen = SeenSet(max_entries=2)
    seen.add((Venue.DECENTRALIZED, "a"))
    seen.add((Venue.DECENTRALIZED, "b"))
    seen.add((Venue.DECENTRALIZED, "c"))
    assert (Venue.DECENTRALIZED, "a") not in seen
    assert (Venue.DECENTRALIZED, "c") in seen
    assert len(seen) == 2


def test_filter_threshold_is_inclusive() -> None:
    f = TradeFilter(Decimal("25000"))
    assert f.admit(_trade("at", "25000")) is True
    assert f.admit(_trade("below", "24999.99")) is False


def test_filter_admits_same_trade_once() -> None:
    f = TradeFilter(Decimal("25000"))
    assert f.admit(_trade("d1", "30000")) is True
    assert f.admit(_trade("d1", "30000")) is False


def test_below_threshold_trade_is_not_remembered() -> None:
    seen = SeenSet()
    f = TradeFilter(Decimal("25000"), seen)
    assert f.admit(_trade("r1", "10000")) is False
    assert len(seen) == 0


def test_same_trade_id_on_different_venues_is_not_a_duplicate() -> None:
    f = TradeFilter(Decimal("100"))
    assert f.admit(_trade("x", "500", Venue.DECENTRALIZED)) is True
    assert f.admit(_trade("x", "500", Venue.REGULATED)) is True
