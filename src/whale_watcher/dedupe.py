from __future__ import annotations

import time
from collections import OrderedDict
from decimal import Decimal

from .types import Trade, Venue

SeenKey = tuple[Venue, str]


class SeenSet:
    """Alerted ``(venue, trade_id)`` keys, oldest evicted past ``max_entries``."""

    def __init__(self, max_entries: int = 10000) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._seen: OrderedDict[SeenKey, float] = OrderedDict()

    def __contains__(self, key: SeenKey) -> bool:
        return key in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def add(self, key: SeenKey) -> None:
        self._seen[key] = time.monotonic()
        self._seen.move_to_end(key)
        while len(self._seen) > self.max_entries:
            self._seen.popitem(last=False)


class TradeFilter:
    def __init__(self, min_notional_usd: Decimal, seen: SeenSet | None = None) -> None:
        self.min_notional_usd = min_notional_usd
        self._seen = seen if seen is not None else SeenSet()

    def admit(self, trade: Trade) -> bool:
        """Return True if the trade should be alerted, recording it as seen."""
        if trade.notional_usd < self.min_notional_usd:
            return False
        key = trade.dedup_key
        if key in self._seen:
            return False
        self._seen.add(key)
        return True
