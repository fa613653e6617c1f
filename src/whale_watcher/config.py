from __future__ import annotations

import json
import math
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .errors import ConfigError
from .types import ThresholdConfig

DEFAULT_CONFIG_PATH = Path("~/.config/whale-watcher/config.json")
DEFAULT_THRESHOLD_USD = Decimal("25000")
DEFAULT_POLL_INTERVAL_SECONDS = 5.0

_CREDENTIAL_FIELDS = ("kalshi_api_key_id", "kalshi_private_key", "webhook_url")


@dataclass(frozen=True)
class Credentials:
    kalshi_api_key_id: str | None = None
    kalshi_private_key: str | None = None
    webhook_url: str | None = None


@dataclass(frozen=True)
class Settings:
    threshold: ThresholdConfig
    polymarket_api_base: str
    kalshi_api_base: str
    fetch_timeout_seconds: float
    trade_limit: int
    seen_max_entries: int
    health_log_interval_seconds: int
    config_path: Path
    config_file_found: bool
    kalshi_api_key_id: str | None
    webhook_url: str | None
    log_level: str


def _optional_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def _optional_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc
    if not math.isfinite(value):
        raise ConfigError(f"{name} must be a finite number, got {raw!r}")
    return value


def _optional_decimal(name: str, default: Decimal) -> Decimal:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return Decimal(raw.strip())
    except InvalidOperation as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc


def _optional_str(name: str) -> str | None:
    return os.getenv(name, "").strip() or None


def config_path() -> Path:
    raw = os.getenv("WHALE_CONFIG_PATH", "").strip()
    return Path(raw or DEFAULT_CONFIG_PATH).expanduser()


def load_credentials(path: Path) -> Credentials | None:
    """Read the persisted credentials file; ``None`` when it does not exist."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc

    try:
        parsed: Any = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file {path} is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")

    values: dict[str, str | None] = {}
    for key in _CREDENTIAL_FIELDS:
        value = parsed.get(key)
        if value is not None and not isinstance(value, str):
            raise ConfigError(f"Config field {key} must be a string")
        values[key] = (value.strip() or None) if isinstance(value, str) else None
    return Credentials(**values)


def save_credentials(credentials: Credentials, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {key: getattr(credentials, key) for key in _CREDENTIAL_FIELDS}
    # Created owner-only; an existing file is tightened before the key is written.
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    os.chmod(path, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as fh:
        fh.write(json.dumps(data, indent=2) + "\n")


def load_settings(
    threshold: Decimal | float | None = None,
    interval: float | None = None,
) -> Settings:
    load_dotenv()

    min_notional = (
        Decimal(str(threshold))
        if threshold is not None
        else _optional_decimal("WHALE_THRESHOLD_USD", DEFAULT_THRESHOLD_USD)
    )
    poll_interval = (
        float(interval)
        if interval is not None
        else _optional_float("WHALE_POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS)
    )
    if not min_notional.is_finite() or min_notional < 0:
        raise ConfigError(f"Threshold must be a non-negative amount, got {min_notional}")
    if not math.isfinite(poll_interval) or poll_interval <= 0:
        raise ConfigError(f"Poll interval must be positive, got {poll_interval}")

    fetch_timeout = _optional_float("WHALE_FETCH_TIMEOUT_SECONDS", 10.0)
    if fetch_timeout <= 0:
        raise ConfigError(f"WHALE_FETCH_TIMEOUT_SECONDS must be positive, got {fetch_timeout}")

    trade_limit = _optional_int("WHALE_TRADE_LIMIT", 100)
    seen_max = _optional_int("WHALE_SEEN_MAX", 10000)
    if trade_limit <= 0 or seen_max <= 0:
        raise ConfigError("WHALE_TRADE_LIMIT and WHALE_SEEN_MAX must be positive")

    path = config_path()
    credentials = load_credentials(path)
    stored = credentials or Credentials()

    return Settings(
        threshold=ThresholdConfig(
            min_notional_usd=min_notional,
            poll_interval_seconds=poll_interval,
        ),
        polymarket_api_base=os.getenv(
            "POLYMARKET_DATA_API", "https://data-api.polymarket.com"
        ).strip(),
        kalshi_api_base=os.getenv(
            "KALSHI_API_BASE", "https://api.elections.kalshi.com/trade-api/v2"
        ).strip(),
        fetch_timeout_seconds=fetch_timeout,
        trade_limit=trade_limit,
        seen_max_entries=seen_max,
        health_log_interval_seconds=_optional_int("HEALTH_LOG_INTERVAL_SECONDS", 300),
        config_path=path,
        config_file_found=credentials is not None,
        kalshi_api_key_id=_optional_str("KALSHI_API_KEY") or stored.kalshi_api_key_id,
        webhook_url=_optional_str("WHALE_WEBHOOK_URL") or stored.webhook_url,
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
    )
