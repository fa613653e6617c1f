from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class WebhookNotifier:
    """Posts alerts to an ntfy-style webhook (n8n, Zapier and ntfy all accept JSON)."""

    def __init__(
        self,
        url: str,
        topic: str = "whale-alerts",
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.topic = topic
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def send(
        self,
        title: str,
        message: str,
        tags: str,
        high_priority: bool = False,
        payload: dict[str, Any] | None = None,
    ) -> None:
        retries = 3
        delay = 1.0
        body = {
            "topic": self.topic,
            "title": title,
            "message": message,
            "tags": tags,
            "priority": 4 if high_priority else 3,
        }
        if payload is not None:
            body["alert"] = payload

        for attempt in range(retries):
            try:
                response = await self._client.post(self.url, json=body)

                if response.status_code == 429:
                    retry_after = 2.0
                    try:
                        retry_after = float(response.headers.get("Retry-After", retry_after))
                    except ValueError:
                        pass
                    logger.warning("Webhook rate limited. Sleeping %.1fs", retry_after)
                    await asyncio.sleep(retry_after)
                    continue

                if response.is_success:
                    return

                # Plain ntfy servers without JSON publishing accept form posts.
                logger.debug("Webhook JSON post returned %d; retrying as form data", response.status_code)
                form = {
                    "topic": self.topic,
                    "title": title,
                    "message": message,
                    "tags": tags,
                    "priority": "high" if high_priority else "default",
                }
                response = await self._client.post(self.url, data=form)
                response.raise_for_status()
                return
            except Exception as exc:
                if attempt == retries - 1:
                    raise
                logger.warning("Webhook send attempt %d failed: %s", attempt + 1, exc)
                await asyncio.sleep(delay)
                delay *= 2
        raise RuntimeError(f"Webhook still rate limited after {retries} attempts")
