# price_monitor/scrapers/page_fetcher.py

"""Fetch marketplace comparison pages as parsed documents.

Every call is independent: a product whose page cannot be loaded fails
on its own and leaves no state behind for the next product.
"""

import logging
import time
from typing import Any, Protocol

import cloudscraper  # type: ignore[import-untyped]
from curl_cffi import requests as curl_requests

from price_monitor.config.settings import Settings
from price_monitor.models.errors import NavigationError
from price_monitor.scrapers.document import DocumentHandle, SoupDocument

logger = logging.getLogger("price_monitor.fetcher")

# Markers of an anti-bot interstitial served with HTTP 200
CHALLENGE_MARKERS: tuple[str, ...] = (
    "challenges.cloudflare.com",
    "cdn-cgi/challenge-platform",
    "just a moment",
    "cf-turnstile",
)

# Real offer pages are large; keyword hits on them are false positives
_MIN_REAL_PAGE_LENGTH = 5000

_THROTTLE_STATUSES = (403, 429)


class PageFetcher(Protocol):
    """Anything that can load a URL into a queryable document."""

    def fetch_rendered_document(
        self,
        url: str,
        wait_for_selector: str | None = None,
        timeout: float | None = None,
    ) -> DocumentHandle: ...

    def close(self) -> None: ...


def blocked_reason(status_code: int, body: str) -> str | None:
    """Why a response cannot be used as an offer page, or None if it can."""
    if status_code != 200:
        return f"HTTP {status_code}"
    lower = body.lower()
    for marker in CHALLENGE_MARKERS:
        if marker in lower:
            return f"challenge page ({marker})"
    if len(body) < _MIN_REAL_PAGE_LENGTH:
        for keyword in Settings.CAPTCHA_KEYWORDS:
            if keyword in lower:
                return f"captcha page ({keyword})"
    return None


class MarketplaceFetcher:
    """Browser-impersonating fetcher with retries and a cloudscraper fallback.

    ``navigation_timeout`` bounds each HTTP request.  The ``timeout``
    passed to :meth:`fetch_rendered_document` only applies to waiting for
    the offer list, which for a static fetch is a presence check.
    """

    def __init__(
        self,
        navigation_timeout: float = Settings.NAVIGATION_TIMEOUT,
        max_retries: int = Settings.MAX_RETRIES,
        backoff: float = Settings.REQUEST_DELAY,
    ) -> None:
        self.navigation_timeout = navigation_timeout
        self.max_retries = max_retries
        self.backoff = backoff
        self.headers: dict[str, str] = {
            **Settings.DEFAULT_HEADERS,
            "Referer": Settings.MARKETPLACE_BASE_URL + "/",
        }
        self.session = curl_requests.Session(
            impersonate=Settings.IMPERSONATE_BROWSER
        )

    def close(self) -> None:
        """Release the underlying HTTP session."""
        self.session.close()

    def _retry_delay(self, attempt: int, throttled: bool) -> float:
        """Base delay, doubled per attempt while the marketplace throttles."""
        if throttled:
            return self.backoff * 2 ** (attempt - 1)
        return self.backoff

    def _download(self, url: str) -> tuple[str | None, str]:
        """curl_cffi attempts; returns (body, reason of the last failure)."""
        reason = "no response"
        for attempt in range(1, self.max_retries + 1):
            throttled = False
            try:
                resp = self.session.get(
                    url,
                    headers=self.headers,
                    timeout=self.navigation_timeout,
                )
            except Exception as exc:
                reason = f"request error ({exc})"
            else:
                body = str(resp.text)
                blocked = blocked_reason(resp.status_code, body)
                if blocked is None:
                    return body, ""
                reason = blocked
                throttled = (
                    resp.status_code in _THROTTLE_STATUSES
                    or not blocked.startswith("HTTP")
                )

            logger.warning(
                "Attempt %d/%d for %s failed: %s",
                attempt,
                self.max_retries,
                url,
                reason,
            )
            if attempt < self.max_retries:
                time.sleep(self._retry_delay(attempt, throttled))
        return None, reason

    def _download_fallback(self, url: str) -> str | None:
        """One attempt through cloudscraper's JS challenge solver."""
        try:
            scraper: Any = cloudscraper.create_scraper()
            resp: Any = scraper.get(
                url, headers=self.headers, timeout=self.navigation_timeout,
            )
        except Exception as exc:
            logger.warning("cloudscraper failed for %s: %s", url, exc)
            return None
        body = str(resp.text)
        blocked = blocked_reason(resp.status_code, body)
        if blocked is not None:
            logger.warning("cloudscraper rejected for %s: %s", url, blocked)
            return None
        return body

    def fetch_rendered_document(
        self,
        url: str,
        wait_for_selector: str | None = None,
        timeout: float | None = None,
    ) -> DocumentHandle:
        """Load *url* and return it as a :class:`SoupDocument`.

        A missing *wait_for_selector* is logged and the partial document
        is still returned.

        Raises:
            NavigationError: Neither client produced a usable page.
        """
        body, reason = self._download(url)
        if body is None:
            logger.info("Falling back to cloudscraper for %s", url)
            body = self._download_fallback(url)
        if body is None:
            raise NavigationError(
                url, f"{reason} after {self.max_retries} attempts"
            )

        document = SoupDocument.from_html(body)
        if wait_for_selector and not document.has(wait_for_selector):
            wait = (
                timeout if timeout is not None
                else Settings.OFFER_WAIT_TIMEOUT
            )
            logger.warning(
                "Offer list '%s' not present within %ss on %s, "
                "continuing with partial page",
                wait_for_selector,
                wait,
                url,
            )
        return document
