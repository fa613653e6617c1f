from __future__ import annotations

import time
from collections import OrderedDict, deque
from decimal import Decimal

from .types import WalletActivity

HOUR = 3600.0
DAY = 24 * HOUR


class WalletTracker:
    """Rolling per-wallet trade counts and volume over the last hour and day."""

    def __init__(self, max_wallets: int = 5000) -> None:
        self.max_wallets = max_wallets
        self._wallets: OrderedDict[str, deque[tuple[float, Decimal]]] = OrderedDict()

    def record(self, wallet: str, value: Decimal, now: float | None = None) -> WalletActivity:
        now = time.time() if now is None else now
        history = self._wallets.get(wallet)
        if history is None:
            history = deque()
            self._wallets[wallet] = history
        self._wallets.move_to_end(wallet)
        history.append((now, value))
        self._prune(history, now)
        while len(self._wallets) > self.max_wallets:
            self._wallets.popitem(last=False)
        return self._activity(history, now)

    @staticmethod
    def _prune(history: deque[tuple[float, Decimal]], now: float) -> None:
        cutoff = now - DAY
        while history and history[0][0] < cutoff:
            history.popleft()

    @staticmethod
    def _activity(history: deque[tuple[float, Decimal]], now: float) -> WalletActivity:
        hour_cutoff = now - HOUR
        last_hour = [v for ts, v in history if ts >= hour_cutoff]
        return WalletActivity(
            transactions_last_hour=len(last_hour),
            transactions_last_day=len(history),
            total_value_hour=sum(last_hour, Decimal(0)),
            total_value_day=sum((v for _, v in history), Decimal(0)),
        )
