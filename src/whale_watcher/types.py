from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


class Venue(str, enum.Enum):
    DECENTRALIZED = "Polymarket"
    REGULATED = "Kalshi"


class Side(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class Trade:
    venue: Venue
    market_id: str
    trade_id: str
    notional_usd: Decimal
    side: Side
    observed_at: datetime
    price: Decimal | None = None
    size: Decimal | None = None
    outcome: str | None = None
    market_title: str | None = None
    wallet: str | None = None
    traded_at: datetime | None = None

    @property
    def dedup_key(self) -> tuple[Venue, str]:
        return (self.venue, self.trade_id)


@dataclass(frozen=True)
class ThresholdConfig:
    min_notional_usd: Decimal
    poll_interval_seconds: float


@dataclass(frozen=True)
class WalletActivity:
    transactions_last_hour: int
    transactions_last_day: int
    total_value_hour: Decimal
    total_value_day: Decimal

    @property
    def is_repeat_actor(self) -> bool:
        return self.transactions_last_hour > 1

    @property
    def is_heavy_actor(self) -> bool:
        return self.transactions_last_day >= 5
