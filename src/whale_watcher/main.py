from __future__ import annotations

import argparse
import asyncio
import logging
import math
import signal
import sys
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from .alert_sink import AudioAlertSink
from .config import Credentials, Settings, config_path, load_credentials, load_settings, save_credentials
from .errors import ConfigError
from .formatting import alert_payload, format_usd, format_webhook_message, webhook_tags, webhook_title
from .service import WatchService
from .types import Side, Trade, Venue
from .webhook_notifier import WebhookNotifier

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _usd_amount(raw: str) -> Decimal:
    try:
        value = Decimal(raw)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"invalid USD amount: {raw!r}") from exc
    if not value.is_finite() or value < 0:
        raise argparse.ArgumentTypeError(f"threshold must be a non-negative amount: {raw!r}")
    return value


def _positive_seconds(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid interval: {raw!r}") from exc
    if not math.isfinite(value) or value <= 0:
        raise argparse.ArgumentTypeError(f"interval must be a positive number of seconds: {raw!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wwatcher",
        description="Watch Polymarket and Kalshi for unusually large trades.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    watch = sub.add_parser("watch", help="Poll both venues and alert on whale trades")
    watch.add_argument("-t", "--threshold", type=_usd_amount, default=None,
                       help="Minimum trade size in USD (default: 25000)")
    watch.add_argument("-i", "--interval", type=_positive_seconds, default=None,
                       help="Polling interval in seconds (default: 5)")

    sub.add_parser("status", help="Show current configuration")
    sub.add_parser("setup", help="Configure Kalshi credentials and webhook")
    sub.add_parser("test-sound", help="Play the alert sound")
    sub.add_parser("test-webhook", help="Send sample alerts to the configured webhook")
    return parser


async def _watch(settings: Settings) -> None:
    service = WatchService(settings)
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, service.stop)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no signal handlers; Ctrl-C still
            # surfaces as KeyboardInterrupt in main().
            pass
    await service.run()


def _print_watch_banner(settings: Settings) -> None:
    print("WHALE WATCHER ACTIVE")
    print(f"  Threshold: {format_usd(settings.threshold.min_notional_usd)}")
    print(f"  Interval:  {settings.threshold.poll_interval_seconds:g} seconds")
    print(f"  Kalshi:    {'API key' if settings.kalshi_api_key_id else 'public endpoint'}")
    print(f"  Webhook:   {'enabled' if settings.webhook_url else 'disabled'}")
    print()


def cmd_watch(args: argparse.Namespace) -> int:
    settings = load_settings(threshold=args.threshold, interval=args.interval)
    configure_logging(settings.log_level)
    _print_watch_banner(settings)
    try:
        asyncio.run(_watch(settings))
    except KeyboardInterrupt:
        pass
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    settings = load_settings()
    print("WHALE WATCHER STATUS")
    print(f"  Config file:    {settings.config_path} "
          f"({'found' if settings.config_file_found else 'not found'})")
    print(f"  Threshold:      {format_usd(settings.threshold.min_notional_usd)}")
    print(f"  Interval:       {settings.threshold.poll_interval_seconds:g} seconds")
    print("  Polymarket API: public access (no key needed)")
    if settings.kalshi_api_key_id:
        print("  Kalshi API:     configured")
    else:
        print("  Kalshi API:     not configured (using public data)")
    if settings.webhook_url:
        print(f"  Webhook:        configured ({settings.webhook_url})")
    else:
        print("  Webhook:        not configured")
    return 0


def _prompt(label: str) -> str:
    return input(label).strip()


def cmd_setup(args: argparse.Namespace) -> int:
    path = config_path()
    existing = load_credentials(path) or Credentials()

    print("WHALE WATCHER SETUP")
    print("API credentials are optional; both venues publish public trade data.")
    print("Generate Kalshi API keys at https://kalshi.com/profile/api-keys")
    print()

    key_id = _prompt("Kalshi API Key ID (Enter to skip): ")
    private_key = _prompt("Kalshi Private Key: ") if key_id else ""
    webhook_url = _prompt("Webhook URL, e.g. https://ntfy.sh/whale-alerts (Enter to skip): ")

    credentials = Credentials(
        kalshi_api_key_id=key_id or existing.kalshi_api_key_id,
        kalshi_private_key=private_key or existing.kalshi_private_key,
        webhook_url=webhook_url or existing.webhook_url,
    )
    save_credentials(credentials, path)
    print(f"Configuration saved to {path}")
    print("Run 'wwatcher watch' to start watching for whale trades.")
    return 0


def cmd_test_sound(args: argparse.Namespace) -> int:
    sink = AudioAlertSink()
    print("Playing single alert...")
    sink.beep()
    print("Playing triple alert (repeat actors and exits)...")
    sink.beep(count=3)
    print("Sound test complete. If nothing played, check system volume and sound players.")
    return 0


def _sample_trades() -> list[Trade]:
    now = datetime.now(timezone.utc)
    return [
        Trade(
            venue=Venue.DECENTRALIZED,
            market_id="0xsample",
            trade_id="sample-buy",
            notional_usd=Decimal("50000"),
            side=Side.BUY,
            observed_at=now,
            price=Decimal("0.65"),
            size=Decimal("76923.08"),
            outcome="Yes",
            market_title="Will Bitcoin reach $100k by end of 2026?",
            wallet="0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb",
        ),
        Trade(
            venue=Venue.REGULATED,
            market_id="KXBTCD-SAMPLE",
            trade_id="sample-sell",
            notional_usd=Decimal("35000"),
            side=Side.SELL,
            observed_at=now,
            price=Decimal("0.54"),
            size=Decimal("64814"),
            outcome="NO",
            market_title="Bitcoin price on Jan 16, 2026?",
        ),
    ]


async def _send_samples(notifier: WebhookNotifier) -> None:
    try:
        for trade in _sample_trades():
            await notifier.send(
                title=webhook_title(trade),
                message=format_webhook_message(trade),
                tags=webhook_tags(trade),
                high_priority=trade.side is Side.SELL,
                payload=alert_payload(trade),
            )
            print(f"Sent sample {trade.side.value} alert")
    finally:
        await notifier.close()


def cmd_test_webhook(args: argparse.Namespace) -> int:
    settings = load_settings()
    configure_logging(settings.log_level)
    if not settings.webhook_url:
        print("No webhook configured. Run 'wwatcher setup' to add a webhook URL.")
        return 1
    print(f"Sending test alerts to {settings.webhook_url}")
    try:
        asyncio.run(_send_samples(WebhookNotifier(settings.webhook_url)))
    except Exception as exc:
        logger.error("Webhook test failed: %s", exc)
        return 1
    return 0


COMMANDS = {
    "watch": cmd_watch,
    "status": cmd_status,
    "setup": cmd_setup,
    "test-sound": cmd_test_sound,
    "test-webhook": cmd_test_webhook,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return COMMANDS[args.command](args)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
