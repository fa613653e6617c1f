from __future__ import annotations


class FetchError(Exception):
    """A venue fetch failed; contained per venue and per cycle."""


class NetworkError(FetchError):
    pass


class RateLimitedError(FetchError):
    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class MalformedPayloadError(FetchError):
    pass


class AuthError(FetchError):
    pass


class ConfigError(Exception):
    """Startup configuration could not be loaded. Fatal."""
