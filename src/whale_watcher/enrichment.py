from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class KalshiMarketResolver:
    """Resolves Kalshi tickers to market titles; misses are cached too."""

    def __init__(
        self,
        api_base: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._cache: dict[str, str | None] = {}
        self._lock = asyncio.Lock()

    async def close(self) -> None:
        await self._client.aclose()

    async def resolve(self, ticker: str) -> str | None:
        if ticker in self._cache:
            return self._cache[ticker]

        async with self._lock:
            if ticker in self._cache:
                return self._cache[ticker]

            try:
                title = await self._fetch_title(ticker)
            except (httpx.HTTPError, ValueError) as exc:
                # Transient failures are not cached so a later alert can retry.
                logger.debug("Kalshi market lookup failed for %s: %s", ticker, exc)
                return None
            self._cache[ticker] = title
            return title

    async def _fetch_title(self, ticker: str) -> str | None:
        resp = await self._client.get(f"{self.api_base}/markets/{ticker}")
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return self._extract_title(resp.json())

    @staticmethod
    def _extract_title(data: Any) -> str | None:
        if not isinstance(data, dict):
            return None
        market = data.get("market")
        if not isinstance(market, dict):
            return None
        for key in ("title", "subtitle"):
            value = market.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None
