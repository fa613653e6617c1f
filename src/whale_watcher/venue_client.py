from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from .errors import AuthError, MalformedPayloadError, NetworkError, RateLimitedError
from .types import Trade, Venue

logger = logging.getLogger(__name__)


class VenueClient(ABC):
    """Shared HTTP mechanics for the venue clients.

    Subclasses implement ``fetch_recent_trades`` and use ``_get_json`` so
    that every transport and status failure surfaces as a ``FetchError``.
    """

    venue: Venue

    def __init__(
        self,
        api_base: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    @abstractmethod
    async def fetch_recent_trades(self) -> list[Trade]: ...

    async def _get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        url = f"{self.api_base}{path}"
        try:
            resp = await self._client.get(url, params=params, headers=headers)
        except httpx.TimeoutException as exc:
            raise NetworkError(f"{self.venue.value} request timed out: {url}") from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"{self.venue.value} connection failed: {exc}") from exc

        if resp.status_code == 429:
            raise RateLimitedError(
                f"{self.venue.value} rate limited (HTTP 429)",
                retry_after=_retry_after_seconds(resp),
            )
        if resp.status_code in (401, 403):
            raise AuthError(f"{self.venue.value} rejected credentials (HTTP {resp.status_code})")
        if resp.status_code >= 400:
            raise NetworkError(f"{self.venue.value} returned HTTP {resp.status_code}")

        try:
            return resp.json()
        except ValueError as exc:
            raise MalformedPayloadError(f"{self.venue.value} returned invalid JSON") from exc


def _retry_after_seconds(resp: httpx.Response) -> float | None:
    raw = resp.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return max(float(raw), 0.0)
    except ValueError:
        logger.debug("Ignoring non-numeric Retry-After header: %s", raw)
        return None
