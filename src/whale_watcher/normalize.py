from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from .types import Side, Trade, Venue

logger = logging.getLogger(__name__)

_CENTS = Decimal(100)


def normalize_polymarket_trades(
    records: list[Any], observed_at: datetime | None = None
) -> list[Trade]:
    now = observed_at or datetime.now(timezone.utc)
    trades: list[Trade] = []
    for record in records:
        trade = _normalize_polymarket_trade(record, now)
        if trade is not None:
            trades.append(trade)
    return trades


def normalize_kalshi_trades(
    records: list[Any], observed_at: datetime | None = None
) -> list[Trade]:
    now = observed_at or datetime.now(timezone.utc)
    trades: list[Trade] = []
    for record in records:
        trade = _normalize_kalshi_trade(record, now)
        if trade is not None:
            trades.append(trade)
    return trades


def _normalize_polymarket_trade(record: Any, observed_at: datetime) -> Trade | None:
    if not isinstance(record, dict):
        logger.warning("Dropping non-object Polymarket trade record: %r", record)
        return None

    price = parse_decimal(record.get("price"))
    size = parse_decimal(record.get("size"))
    if price is None or size is None or price <= 0 or size <= 0:
        logger.warning("Dropping Polymarket trade without usable price/size: %s", _describe(record))
        return None

    asset = _string_or_none(record.get("asset") or record.get("asset_id"))
    side = parse_side(record.get("side"))
    trade_id = _string_or_none(record.get("id"))
    if trade_id is None:
        tx_hash = _string_or_none(record.get("transactionHash"))
        if tx_hash is None:
            logger.warning("Dropping Polymarket trade without id or transaction hash: %s", _describe(record))
            return None
        # One transaction can fill several orders; asset/side/size separate the fills.
        trade_id = f"{tx_hash}:{asset or '-'}:{side.value}:{size}"

    market_id = _string_or_none(record.get("conditionId") or record.get("market")) or asset
    if market_id is None:
        logger.warning("Dropping Polymarket trade without market id: %s", _describe(record))
        return None

    return Trade(
        venue=Venue.DECENTRALIZED,
        market_id=market_id,
        trade_id=trade_id,
        notional_usd=price * size,
        side=side,
        observed_at=observed_at,
        price=price,
        size=size,
        outcome=_string_or_none(record.get("outcome")),
        market_title=_string_or_none(record.get("title")),
        wallet=_string_or_none(record.get("proxyWallet")),
        traded_at=parse_timestamp(record.get("timestamp")),
    )


def _normalize_kalshi_trade(record: Any, observed_at: datetime) -> Trade | None:
    if not isinstance(record, dict):
        logger.warning("Dropping non-object Kalshi trade record: %r", record)
        return None

    trade_id = _string_or_none(record.get("trade_id"))
    if trade_id is None:
        logger.warning("Dropping Kalshi trade without trade_id: %s", _describe(record))
        return None

    ticker = _string_or_none(record.get("ticker"))
    if ticker is None:
        logger.warning("Dropping Kalshi trade %s without ticker", trade_id)
        return None

    # Newer API revisions report dollars and fractional counts alongside cents.
    price = parse_decimal(record.get("yes_price_dollars"))
    if price is None:
        cents = parse_decimal(record.get("yes_price"))
        price = cents / _CENTS if cents is not None else None
    count = parse_decimal(record.get("count"))
    if count is None:
        count = parse_decimal(record.get("count_fp"))
    if price is None or count is None or price <= 0 or count <= 0:
        logger.warning("Dropping Kalshi trade %s without usable price/count", trade_id)
        return None

    taker_side = _string_or_none(record.get("taker_side"))
    return Trade(
        venue=Venue.REGULATED,
        market_id=ticker,
        trade_id=trade_id,
        notional_usd=price * count,
        side=Side.BUY if taker_side else Side.UNKNOWN,
        observed_at=observed_at,
        price=price,
        size=count,
        outcome=taker_side.upper() if taker_side else None,
        traded_at=parse_timestamp(record.get("created_time")),
    )


def parse_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def parse_side(value: Any) -> Side:
    text = str(value or "").strip().upper()
    if text == "BUY":
        return Side.BUY
    if text == "SELL":
        return Side.SELL
    return Side.UNKNOWN


def parse_timestamp(value: Any) -> datetime | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        ts = float(value)
        if ts > 10**12:
            ts /= 1000
        try:
            return datetime.fromtimestamp(ts, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    text = str(value).strip()
    if not text:
        return None
    if text.replace(".", "", 1).isdigit():
        return parse_timestamp(float(text))
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _string_or_none(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _describe(record: dict[str, Any]) -> str:
    keys = ("id", "trade_id", "transactionHash", "ticker", "asset")
    parts = [f"{k}={record[k]}" for k in keys if record.get(k)]
    return " ".join(parts) or "<no identifiers>"
