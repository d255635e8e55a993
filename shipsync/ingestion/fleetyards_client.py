"""FleetYards API client.

Pages through ``GET {base}/models`` and returns every raw ship record.

Pagination: follow ``Link: rel="next"`` when present, otherwise treat a short
page as the last one, otherwise ask for ``page + 1``. A hard page cap guards
against runaway cursors.

Retry policy per page: network errors and 5xx back off linearly
(attempt x retry delay), 429 waits for ``Retry-After`` (capped at
``max_retry_after``; a fixed default when missing or non-finite), other 4xx
fail the page at once. A failed page stops pagination; a short result must
never pass for the last page.
"""

from __future__ import annotations

import asyncio
import math
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from shipsync.core.config import settings
from shipsync.core.logging import get_logger
from .base import BaseSource, FetchResult

log = get_logger("ingestion.fleetyards")

SleepFunc = Callable[[float], Awaitable[Any]]


class PageFetchError(Exception):
    """A page could not be retrieved; pagination stops here."""


class FleetYardsClient(BaseSource):
    """Fetches the full ship catalog from FleetYards."""

    name = "fleetyards"

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        page_size: Optional[int] = None,
        max_pages: Optional[int] = None,
        max_retries: Optional[int] = None,
        page_delay: Optional[float] = None,
        retry_delay: Optional[float] = None,
        rate_limit_wait: Optional[float] = None,
        max_retry_after: Optional[float] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        self.base_url = (base_url or settings.FLEETYARDS_API_BASE).rstrip("/")
        self.page_size = page_size or settings.SHIP_SYNC_PAGE_SIZE
        self.max_pages = max_pages or settings.SHIP_SYNC_MAX_PAGES
        self.max_retries = max_retries or settings.SHIP_SYNC_MAX_RETRIES
        self.page_delay = settings.SHIP_SYNC_PAGE_DELAY_SECONDS if page_delay is None else page_delay
        self.retry_delay = settings.SHIP_SYNC_RETRY_DELAY_SECONDS if retry_delay is None else retry_delay
        self.rate_limit_wait = settings.SHIP_SYNC_RATE_LIMIT_WAIT_SECONDS if rate_limit_wait is None else rate_limit_wait
        self.max_retry_after = settings.SHIP_SYNC_MAX_RETRY_AFTER_SECONDS if max_retry_after is None else max_retry_after
        self.timeout = timeout or settings.SHIP_SYNC_REQUEST_TIMEOUT_SECONDS
        self._transport = transport
        self._sleep = sleep or asyncio.sleep

    async def fetch(self) -> FetchResult:
        return await self.fetch_all_ships()

    def page_url(self, page: int) -> str:
        return str(httpx.URL(f"{self.base_url}/models", params={"page": page, "perPage": self.page_size}))

    async def fetch_all_ships(self) -> FetchResult:
        """Collect every page. Never raises for upstream failures."""
        result = FetchResult()
        next_url: Optional[str] = self.page_url(1)
        page = 1

        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={"Accept": "application/json"},
            follow_redirects=True,
        ) as client:
            while next_url:
                if page > self.max_pages:
                    message = f"Reached page limit ({self.max_pages}) with more pages advertised; pagination stopped"
                    result.errors.append(message)
                    log.warning(message)
                    break

                log.info(f"Fetching page {page}...")
                try:
                    response = await self._fetch_with_retry(client, next_url, page)
                    page_ships = self._parse_page(response, page)
                except PageFetchError as exc:
                    result.errors.append(str(exc))
                    log.warning(str(exc))
                    break

                if not page_ships:
                    log.info(f"Page {page}: empty response, pagination complete")
                    break

                result.ships.extend(page_ships)
                result.pages_processed += 1
                log.info(f"Page {page}: {len(page_ships)} ships")

                next_url = self._next_url(response, page, len(page_ships))
                page += 1

                if next_url and page <= self.max_pages:
                    await self._sleep(self.page_delay)

        log.info(f"Fetch complete: {len(result.ships)} ships from {result.pages_processed} pages")
        return result

    # -------------------------------------------------------------------------
    # Single page
    # -------------------------------------------------------------------------
    async def _fetch_with_retry(self, client: httpx.AsyncClient, url: str, page: int) -> httpx.Response:
        for attempt in range(1, self.max_retries + 1):
            try:
                response = await client.get(url)
            except httpx.TransportError as exc:
                wait = self.retry_delay * attempt
                log.warning(
                    f"Page {page} network error: {exc!r}. Retry {attempt}/{self.max_retries} after {wait:.1f}s"
                )
                await self._backoff(wait, attempt)
                continue

            if response.is_success:
                return response

            status = response.status_code
            if status == 429:
                wait = self._parse_retry_after(response)
                if wait is None:
                    wait = self.rate_limit_wait
                elif wait > self.max_retry_after:
                    log.warning(f"Page {page} Retry-After of {wait:.0f}s capped at {self.max_retry_after:.0f}s")
                    wait = self.max_retry_after
                log.warning(
                    f"Page {page} rate limited (429). Waiting {wait:.1f}s before retry {attempt}/{self.max_retries}"
                )
                await self._backoff(wait, attempt)
                continue

            if 400 <= status < 500:
                raise PageFetchError(f"Page {page} failed with HTTP {status}: {response.text[:200]}")

            if status >= 500:
                wait = self.retry_delay * attempt
                log.warning(
                    f"Page {page} server error ({status}). Retry {attempt}/{self.max_retries} after {wait:.1f}s"
                )
                await self._backoff(wait, attempt)
                continue

            raise PageFetchError(f"Page {page} unexpected HTTP {status}")

        raise PageFetchError(f"Page {page} failed after {self.max_retries} attempts")

    async def _backoff(self, wait: float, attempt: int) -> None:
        # No point sleeping once the last attempt is spent
        if attempt < self.max_retries:
            await self._sleep(wait)

    @staticmethod
    def _parse_page(response: httpx.Response, page: int) -> List[Dict[str, Any]]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise PageFetchError(f"Page {page} JSON parse error: {exc}") from exc

        if not isinstance(payload, list):
            raise PageFetchError(f"Page {page} returned {type(payload).__name__}, expected a JSON array")
        return payload

    def _next_url(self, response: httpx.Response, page: int, count: int) -> Optional[str]:
        next_link = response.links.get("next", {}).get("url")
        if next_link:
            return str(response.url.join(next_link))
        if count < self.page_size:
            return None
        return self.page_url(page + 1)

    @staticmethod
    def _parse_retry_after(response: httpx.Response) -> Optional[float]:
        """Return seconds from the Retry-After header, or None if absent/invalid."""
        header = response.headers.get("Retry-After")
        if header is None:
            return None
        try:
            seconds = float(header)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(seconds) or seconds < 0:
            return None
        return seconds
