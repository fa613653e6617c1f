from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from .types import Side, Trade, WalletActivity


def short_address(address: str | None) -> str:
    if not address:
        return "Unknown"
    addr = address.strip()
    if len(addr) <= 12:
        return addr
    return f"{addr[:6]}...{addr[-4:]}"


def time_iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def format_usd(amount: Decimal) -> str:
    return f"${amount:,.2f}"


def alert_header(trade: Trade, activity: WalletActivity | None = None) -> str:
    if trade.side is Side.SELL:
        label = "WHALE EXITING POSITION"
    else:
        label = "LARGE TRANSACTION DETECTED"
    if activity is not None and activity.is_heavy_actor:
        label += " [HEAVY ACTOR]"
    elif activity is not None and activity.is_repeat_actor:
        label += " [REPEAT ACTOR]"
    return f"{label} - {trade.venue.value}"


def format_alert_line(trade: Trade, activity: WalletActivity | None = None) -> str:
    parts = [
        alert_header(trade, activity),
        f"market={trade.market_id}",
    ]
    if trade.market_title:
        parts.append(f'title="{trade.market_title}"')
    parts.append(f"amount={format_usd(trade.notional_usd)}")
    parts.append(f"side={trade.side.value}")
    if trade.outcome:
        parts.append(f"outcome={trade.outcome}")
    if trade.price is not None and trade.size is not None:
        parts.append(f"fill={trade.size:,.2f}@{trade.price:.4f}")
    if trade.wallet:
        parts.append(f"wallet={short_address(trade.wallet)}")
    if activity is not None:
        parts.append(
            f"wallet_txns_1h={activity.transactions_last_hour} "
            f"wallet_txns_24h={activity.transactions_last_day} "
            f"wallet_volume_24h={format_usd(activity.total_value_day)}"
        )
    parts.append(f"trade_id={trade.trade_id}")
    parts.append(f"at={time_iso(trade.observed_at)}")
    return " ".join(parts)


def alert_payload(trade: Trade, activity: WalletActivity | None = None) -> dict[str, Any]:
    price = float(trade.price) if trade.price is not None else None
    payload: dict[str, Any] = {
        "platform": trade.venue.value,
        "alert_type": "WHALE_EXIT" if trade.side is Side.SELL else "WHALE_ENTRY",
        "action": trade.side.value,
        "value": float(trade.notional_usd),
        "price": price,
        "price_percent": round(price * 100) if price is not None else None,
        "size": float(trade.size) if trade.size is not None else None,
        "timestamp": time_iso(trade.traded_at or trade.observed_at),
        "market_id": trade.market_id,
        "market_title": trade.market_title,
        "outcome": trade.outcome,
        "trade_id": trade.trade_id,
    }
    if trade.wallet:
        payload["wallet_id"] = trade.wallet
    if activity is not None:
        payload["wallet_activity"] = {
            "transactions_last_hour": activity.transactions_last_hour,
            "transactions_last_day": activity.transactions_last_day,
            "total_value_hour": float(activity.total_value_hour),
            "total_value_day": float(activity.total_value_day),
            "is_repeat_actor": activity.is_repeat_actor,
            "is_heavy_actor": activity.is_heavy_actor,
        }
    return payload


def webhook_title(trade: Trade) -> str:
    return "WHALE SELLING" if trade.side is Side.SELL else "WHALE BUYING"


def webhook_tags(trade: Trade) -> str:
    return "whale,sell,alert" if trade.side is Side.SELL else "whale,buy,alert"


def format_webhook_message(trade: Trade, activity: WalletActivity | None = None) -> str:
    heading = "WHALE EXITING POSITION" if trade.side is Side.SELL else "WHALE ENTERING POSITION"
    lines = [
        heading,
        "",
        f"Platform: {trade.venue.value}",
        f"Action: {trade.side.value}",
        f"Market: {trade.market_title or trade.market_id}",
    ]
    if trade.outcome:
        lines.append(f"Position: {trade.outcome}")
    lines.append(f"Amount: {format_usd(trade.notional_usd)}")
    if trade.price is not None:
        lines.append(f"Price: ${trade.price:.4f} ({trade.price * 100:.1f}%)")
    if trade.wallet:
        lines.append(f"Wallet: {short_address(trade.wallet)}")
    if activity is not None and (activity.is_repeat_actor or activity.is_heavy_actor):
        lines.append(
            f"Wallet activity: {activity.transactions_last_hour} trades/1h, "
            f"{activity.transactions_last_day} trades/24h"
        )
    lines.append(f"Time: {time_iso(trade.traded_at or trade.observed_at)}")
    return "\n".join(lines)
