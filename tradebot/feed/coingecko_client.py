"""CoinGecko simple-price async client.

Polls spot prices and 24h volume for the configured instruments.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

import httpx

from tradebot.config import Config
from tradebot.feed.models import PriceTick
from tradebot.models import Instrument

logger = logging.getLogger("tradebot.feed")

# Retry settings
_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt
_RETRYABLE_STATUS_CODES = {502, 503, 504, 429}


class CoinGeckoClient:
    """Async client wrapping the CoinGecko ``/simple/price`` endpoint."""

    def __init__(self, config: Config, retry_base_delay: float = _RETRY_BASE_DELAY) -> None:
        self._base_url = config.feed_base_url.rstrip("/")
        self._retry_base_delay = retry_base_delay
        self._headers = {"Accept": "application/json"}

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _get_with_retry(self, url: str, params: dict) -> httpx.Response:
        """GET with exponential-backoff retry.

        Retries on transient server errors (502, 503, 504) and rate-limits
        (429). Non-retryable errors are raised immediately.
        """
        last_exc: Optional[Exception] = None

        for attempt in range(_MAX_RETRIES):
            try:
                async with httpx.AsyncClient() as client:
                    resp = await client.get(
                        url,
                        headers=self._headers,
                        params=params,
                        timeout=30.0,
                    )

                if resp.status_code in _RETRYABLE_STATUS_CODES:
                    delay = self._retry_base_delay * (2 ** attempt)
                    logger.warning(
                        "GET %s returned %d — retry %d/%d in %.1fs",
                        url, resp.status_code, attempt + 1, _MAX_RETRIES, delay,
                    )
                    last_exc = httpx.HTTPStatusError(
                        f"Server error '{resp.status_code}'",
                        request=resp.request,
                        response=resp,
                    )
                    await asyncio.sleep(delay)
                    continue

                resp.raise_for_status()
                return resp

            except httpx.TransportError as exc:
                delay = self._retry_base_delay * (2 ** attempt)
                logger.warning(
                    "GET %s transport error (%s) — retry %d/%d in %.1fs",
                    url, exc, attempt + 1, _MAX_RETRIES, delay,
                )
                last_exc = exc
                await asyncio.sleep(delay)

        # All retries exhausted; raise the last error
        raise last_exc  # type: ignore[misc]

    # ── Prices ───────────────────────────────────────────────────────────

    async def fetch_ticks(self, instruments: Sequence[Instrument]) -> list[PriceTick]:
        """Fetch USD price and 24h volume for *instruments*.

        Instruments missing from the response, or with a non-positive
        price, are left out. Raises ``httpx.HTTPError`` once retries are
        exhausted.
        """
        if not instruments:
            return []
        url = f"{self._base_url}/simple/price"
        params = {
            "ids": ",".join(i.feed_id for i in instruments),
            "vs_currencies": "usd",
            "include_24hr_vol": "true",
        }

        resp = await self._get_with_retry(url, params)
        data = resp.json()
        now = datetime.now(timezone.utc)

        ticks: list[PriceTick] = []
        for instrument in instruments:
            quote = data.get(instrument.feed_id) or {}
            price = quote.get("usd")
            if not price or price <= 0:
                continue
            volume = quote.get("usd_24h_vol")
            ticks.append(
                PriceTick(
                    instrument_id=instrument.id,
                    price=float(price),
                    timestamp=now,
                    volume=float(volume) if volume and volume > 0 else None,
                )
            )
        return ticks
