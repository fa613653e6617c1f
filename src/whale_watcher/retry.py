from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from .errors import AuthError, FetchError, MalformedPayloadError, NetworkError, RateLimitedError
from .types import Trade, Venue
from .venue_client import VenueClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Backoff:
    until: float


BackoffState = Idle | Backoff


@dataclass
class PollResult:
    venue: Venue
    trades: list[Trade] = field(default_factory=list)
    error: FetchError | None = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.skipped


class VenuePoller:
    """Wraps one venue client with rate-limit backoff and a single network retry.

    Backoff is a state checked at the start of ``poll``; it never sleeps,
    so one venue in backoff cannot hold up the other venue's fetch.
    """

    def __init__(
        self,
        client: VenueClient,
        backoff_seed: float = 1.0,
        backoff_cap: float = 60.0,
        network_retry_delay: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.client = client
        self.backoff_seed = backoff_seed
        self.backoff_cap = backoff_cap
        self.network_retry_delay = network_retry_delay
        self._clock = clock
        self._sleep = sleep
        self.state: BackoffState = Idle()
        self._next_delay = backoff_seed

    @property
    def venue(self) -> Venue:
        return self.client.venue

    async def poll(self) -> PollResult:
        if isinstance(self.state, Backoff):
            remaining = self.state.until - self._clock()
            if remaining > 0:
                logger.info("%s in rate-limit backoff for %.1fs more; skipping", self.venue.value, remaining)
                return PollResult(self.venue, skipped=True)
            self.state = Idle()

        try:
            trades = await self._fetch_with_network_retry()
        except RateLimitedError as exc:
            self._enter_backoff(exc)
            return PollResult(self.venue, error=exc)
        except (MalformedPayloadError, AuthError) as exc:
            logger.warning("%s fetch failed, skipping this cycle: %s", self.venue.value, exc)
            return PollResult(self.venue, error=exc)
        except NetworkError as exc:
            logger.warning("%s unreachable after retry, skipping this cycle: %s", self.venue.value, exc)
            return PollResult(self.venue, error=exc)

        self._next_delay = self.backoff_seed
        return PollResult(self.venue, trades=trades)

    async def _fetch_with_network_retry(self) -> list[Trade]:
        try:
            return await self.client.fetch_recent_trades()
        except NetworkError as exc:
            logger.warning(
                "%s network error (%s); retrying in %.1fs",
                self.venue.value,
                exc,
                self.network_retry_delay,
            )
        await self._sleep(self.network_retry_delay)
        return await self.client.fetch_recent_trades()

    def _enter_backoff(self, exc: RateLimitedError) -> None:
        delay = self._next_delay
        if exc.retry_after is not None:
            delay = max(delay, min(exc.retry_after, self.backoff_cap))
        self.state = Backoff(until=self._clock() + delay)
        self._next_delay = min(self._next_delay * 2, self.backoff_cap)
        logger.warning("%s rate limited; backing off %.1fs", self.venue.value, delay)
