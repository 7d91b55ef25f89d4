# lottracker/scrape.py
"""Fetch lot pages and lot-details payloads from the auction site.

A single Chromium browser is launched on first use and shared; each fetch
opens and closes its own page.
"""
import os
import re
import asyncio
from typing import Any, Dict, Optional
from playwright.async_api import (
    Browser,
    Error as PWError,
    Playwright,
    TimeoutError as PWTimeout,
    async_playwright,
)
from .errors import FetchError, FetchErrorKind
from .utils import logger, retry

LOT_BASE_URL = os.getenv("LOT_BASE_URL", "https://www.copart.com").rstrip("/")
HEADLESS = os.getenv("HEADLESS", "1") == "1"
FETCH_TIMEOUT_MS = int(os.getenv("FETCH_TIMEOUT_MS", "60000"))
FETCH_RETRIES = max(1, int(os.getenv("FETCH_RETRIES", "1")))

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/115.0.0.0 Safari/537.36"
)
EXTRA_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}
BLOCKED_RESOURCES = ("image", "stylesheet", "font", "media")
BLOCK_PHRASES = ("captcha", "access denied")
NETWORK_ERRORS = ("net::ERR_CONNECTION_REFUSED", "net::ERR_NAME_NOT_RESOLVED", "net::ERR_")
# "HTTP 403", "status 404", "status code: 404"
HTTP_STATUS_RE = re.compile(r"\b(?:HTTP|status(?: code)?)[\s:]*([1-5]\d\d)\b", re.I)


def lot_page_url(lot_number: str) -> str:
    return f"{LOT_BASE_URL}/lot/{lot_number}"


def lot_api_url(lot_number: str) -> str:
    return f"{LOT_BASE_URL}/public/data/lotdetails/solr/{lot_number}"


def classify_fetch_error(exc: BaseException) -> FetchError:
    """Map a raw browser/network error onto a `FetchError` kind."""
    if isinstance(exc, FetchError):
        return exc
    message = str(exc)
    lowered = message.lower()
    status_match = HTTP_STATUS_RE.search(message)
    status = int(status_match.group(1)) if status_match else None
    if isinstance(exc, (PWTimeout, asyncio.TimeoutError)) or "timeout" in lowered:
        kind = FetchErrorKind.TIMEOUT
    elif any(code in message for code in NETWORK_ERRORS):
        kind = FetchErrorKind.NETWORK
    elif "captcha" in lowered or "access denied" in lowered or status == 403 or "blocked" in lowered:
        kind = FetchErrorKind.BLOCKED
    elif status == 404:
        kind = FetchErrorKind.NOT_FOUND
    else:
        kind = FetchErrorKind.UNKNOWN
    return FetchError(kind, message)


def error_for_status(status: int) -> Optional[FetchError]:
    if status < 400:
        return None
    if status == 403:
        return FetchError(FetchErrorKind.BLOCKED, f"HTTP {status}")
    if status == 404:
        return FetchError(FetchErrorKind.NOT_FOUND, f"HTTP {status}")
    return FetchError(FetchErrorKind.UNKNOWN, f"Failed to load page: HTTP {status}")


def _transient(exc: BaseException) -> bool:
    return isinstance(exc, FetchError) and exc.kind in (FetchErrorKind.TIMEOUT, FetchErrorKind.NETWORK)


async def _block_heavy_resources(route):
    if route.request.resource_type in BLOCKED_RESOURCES:
        await route.abort()
    else:
        await route.continue_()


class LotFetcher:
    """Owns the browser session used for every upstream request."""

    def __init__(self, headless: bool = HEADLESS, timeout_ms: int = FETCH_TIMEOUT_MS):
        self.headless = headless
        self.timeout_ms = timeout_ms
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()

    async def _get_browser(self) -> Browser:
        async with self._lock:
            if self._browser is None or not self._browser.is_connected():
                if self._playwright is None:
                    self._playwright = await async_playwright().start()
                logger.info("Launching browser (headless=%s)", self.headless)
                self._browser = await self._playwright.chromium.launch(
                    headless=self.headless,
                    args=["--no-sandbox", "--disable-dev-shm-usage",
                          "--disable-blink-features=AutomationControlled"],
                )
            return self._browser

    async def close(self) -> None:
        async with self._lock:
            if self._browser is not None:
                await self._browser.close()
                self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None

    @retry(FetchError, tries=FETCH_RETRIES, delay=2, backoff=2, should_retry=_transient)
    async def fetch_html(self, lot_number: str) -> str:
        """Return the rendered lot page, or raise `FetchError`."""
        browser = await self._get_browser()
        context = await browser.new_context(user_agent=USER_AGENT, extra_http_headers=EXTRA_HEADERS,
                                            viewport={"width": 1280, "height": 800})
        try:
            page = await context.new_page()
            await page.route("**/*", _block_heavy_resources)
            url = lot_page_url(lot_number)
            logger.info("Navigating to %s", url)
            try:
                response = await page.goto(url, wait_until="networkidle", timeout=self.timeout_ms)
                if response is None:
                    raise FetchError(FetchErrorKind.UNKNOWN, "No response received from the server")
                failure = error_for_status(response.status)
                if failure is not None:
                    raise failure
                body_text = (await page.inner_text("body")).lower()
                if any(phrase in body_text for phrase in BLOCK_PHRASES):
                    raise FetchError(FetchErrorKind.BLOCKED, "CAPTCHA or access denied")
                html = await page.content()
            except PWError as e:
                raise classify_fetch_error(e) from e
            logger.info("Received %d characters of HTML for lot %s", len(html), lot_number)
            return html
        finally:
            await context.close()

    @retry(FetchError, tries=FETCH_RETRIES, delay=2, backoff=2, should_retry=_transient)
    async def fetch_json(self, lot_number: str) -> Dict[str, Any]:
        """Return the lot-details API payload, or raise `FetchError`."""
        browser = await self._get_browser()
        context = await browser.new_context(user_agent=USER_AGENT)
        try:
            url = lot_api_url(lot_number)
            logger.info("Requesting %s", url)
            try:
                response = await context.request.get(
                    url,
                    headers={"Accept": "application/json", "Referer": LOT_BASE_URL + "/"},
                    timeout=self.timeout_ms,
                )
                failure = error_for_status(response.status)
                if failure is not None:
                    raise failure
                payload = await response.json()
            except PWError as e:
                raise classify_fetch_error(e) from e
            except ValueError as e:
                raise FetchError(FetchErrorKind.UNKNOWN, f"Lot details response was not JSON: {e}") from e
            return payload
        finally:
            await context.close()
