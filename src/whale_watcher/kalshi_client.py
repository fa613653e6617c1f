from __future__ import annotations

import logging
from typing import Any

import httpx

from .errors import MalformedPayloadError
from .normalize import normalize_kalshi_trades
from .types import Trade, Venue
from .venue_client import VenueClient

logger = logging.getLogger(__name__)


class KalshiClient(VenueClient):
    """Kalshi public trades feed, optionally keyed for higher rate limits.

    Polls are windowed by time: after a successful fetch the newest
    ``created_time`` seen becomes the next request's ``min_ts`` (minus one
    second, so trades sharing that second are re-listed, not skipped).
    """

    venue = Venue.REGULATED

    def __init__(
        self,
        api_base: str,
        api_key_id: str | None = None,
        limit: int = 100,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(api_base, timeout=timeout, client=client)
        self.api_key_id = api_key_id
        self.limit = limit
        self._min_ts: int | None = None

    async def fetch_recent_trades(self) -> list[Trade]:
        params: dict[str, Any] = {"limit": self.limit}
        if self._min_ts is not None:
            params["min_ts"] = self._min_ts

        data = await self._get_json("/markets/trades", params=params, headers=self._headers())
        if not isinstance(data, dict) or not isinstance(data.get("trades", []), list):
            raise MalformedPayloadError("Kalshi trades payload missing 'trades' list")

        records = data.get("trades", [])
        trades = normalize_kalshi_trades(records)
        self._advance_window(trades)
        logger.debug("Kalshi returned %d records, %d usable", len(records), len(trades))
        return trades

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key_id:
            headers["KALSHI-ACCESS-KEY"] = self.api_key_id
        return headers

    def _advance_window(self, trades: list[Trade]) -> None:
        stamps = [t.traded_at for t in trades if t.traded_at is not None]
        if not stamps:
            return
        newest = int(max(stamps).timestamp()) - 1
        if self._min_ts is None or newest > self._min_ts:
            self._min_ts = newest
