from __future__ import annotations

import logging

import httpx

from .errors import MalformedPayloadError
from .normalize import normalize_polymarket_trades
from .types import Trade, Venue
from .venue_client import VenueClient

logger = logging.getLogger(__name__)


class PolymarketClient(VenueClient):
    """Public Polymarket data API; never authenticated.

    The trades endpoint has no cursor, so every poll lists the most recent
    ``limit`` taker trades and relies on the dedup filter for overlap.
    """

    venue = Venue.DECENTRALIZED

    def __init__(
        self,
        api_base: str,
        limit: int = 100,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(api_base, timeout=timeout, client=client)
        self.limit = limit

    async def fetch_recent_trades(self) -> list[Trade]:
        data = await self._get_json(
            "/trades",
            params={"limit": self.limit, "takerOnly": "true"},
        )
        if isinstance(data, dict) and isinstance(data.get("data"), list):
            data = data["data"]
        if not isinstance(data, list):
            raise MalformedPayloadError(
                f"Polymarket trades payload is {type(data).__name__}, expected list"
            )
        trades = normalize_polymarket_trades(data)
        logger.debug("Polymarket returned %d records, %d usable", len(data), len(trades))
        return trades
