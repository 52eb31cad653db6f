# shopcompare/sources/base_source.py

"""HTTP plumbing shared by the search sources.

Two fetch paths sit on one impersonating curl_cffi session:

- :meth:`BaseSource._get_json` for API sources (Google Custom Search).
  Bodies are parsed as JSON and never scanned for challenge pages.
- :meth:`BaseSource._get_page` for scraped sources (Amazon).  HTML is
  checked for bot walls, and a cloudscraper retry is made once the
  session gives up.

Both go through the same retry loop, backoff and circuit breaker.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from bs4 import BeautifulSoup
from curl_cffi import requests as curl_requests

from shopcompare.config.settings import Settings

# Bot-wall fingerprints seen on HTML result pages
_CHALLENGE_MARKERS: tuple[str, ...] = (
    "challenges.cloudflare.com",
    "cdn-cgi/challenge-platform",
    "cf-turnstile",
    "api-services-support@amazon.com",
)

# Real result pages are big; walls are small
_MIN_RESULT_PAGE_CHARS = 5000


class CircuitBreaker:
    """Stops calling a source after repeated failed fetches.

    Opens after ``threshold`` consecutive failures and lets requests
    through again once ``cooldown`` seconds have passed.
    """

    def __init__(self, threshold: int, cooldown: float) -> None:
        self.threshold = threshold
        self.cooldown = cooldown
        self.failures = 0
        self.opened_at: float | None = None

    @property
    def is_open(self) -> bool:
        return self.opened_at is not None

    def allows_request(self) -> bool:
        """False while open and cooling down."""
        if self.opened_at is None:
            return True
        return time.time() - self.opened_at >= self.cooldown

    def record_success(self) -> None:
        self.failures = 0
        self.opened_at = None

    def record_failure(self) -> bool:
        """Count a failed fetch; True when this failure trips the breaker."""
        self.failures += 1
        if self.failures < self.threshold:
            return False
        self.opened_at = time.time()
        return True


class BaseSource(ABC):
    """Base for adapters that turn a query into raw source records.

    Subclasses implement :meth:`search`; turning records into Products
    is the normaliser's job.
    """

    # Sent as Referer on HTML fetches
    homepage: str = ""

    def __init__(self, source_id: str) -> None:
        self.source_id = source_id
        self.logger = logging.getLogger(
            f"shopcompare.sources.{source_id}"
        )
        self.settings = Settings()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self.breaker = CircuitBreaker(
            self.settings.CIRCUIT_BREAKER_THRESHOLD,
            self.settings.CIRCUIT_BREAKER_COOLDOWN,
        )
        self.delay: float = self.settings.REQUEST_DELAY

    # ── Retry loop ───────────────────────────────────────

    def _slow_down(self, reason: str) -> None:
        """Double the delay (capped) and wait it out."""
        cap = self.settings.REQUEST_DELAY * self.settings.MAX_DELAY_MULTIPLIER
        self.delay = min(self.delay * 2, cap)
        self.logger.warning(
            "[%s] %s, waiting %.1fs", self.source_id, reason, self.delay
        )
        time.sleep(self.delay)

    def _blocked_by(self, html: str) -> str | None:
        """Return the bot-wall marker found in *html*, if any."""
        lower = html.lower()
        for marker in _CHALLENGE_MARKERS:
            if marker in lower:
                return marker
        if len(html) >= _MIN_RESULT_PAGE_CHARS:
            return None
        return next(
            (kw for kw in self.settings.CAPTCHA_KEYWORDS if kw in lower),
            None,
        )

    def _request(
        self,
        url: str,
        headers: dict[str, str],
        params: dict[str, str] | None = None,
        check_html: bool = False,
    ) -> curl_requests.Response | None:
        """GET with retries; ``None`` once retries or the breaker say stop."""
        if not self.breaker.allows_request():
            self.logger.info(
                "[%s] Circuit open, skipping %s", self.source_id, url
            )
            return None

        for attempt in range(1, self.settings.MAX_RETRIES + 1):
            try:
                resp = self.session.get(
                    url,
                    headers=headers,
                    params=params,
                    timeout=self.settings.REQUEST_TIMEOUT,
                )
            except Exception as exc:
                self.logger.warning(
                    "[%s] Request error on attempt %d: %s",
                    self.source_id,
                    attempt,
                    exc,
                    exc_info=True,
                )
                time.sleep(self.delay * attempt)
                continue

            if resp.status_code in (403, 429):
                self._slow_down(f"HTTP {resp.status_code}")
                continue
            if resp.status_code != 200:
                self.logger.warning(
                    "[%s] HTTP %d on attempt %d",
                    self.source_id,
                    resp.status_code,
                    attempt,
                )
                continue
            if check_html:
                marker = self._blocked_by(resp.text)
                if marker:
                    self._slow_down(f"Bot wall ('{marker}')")
                    continue

            self.breaker.record_success()
            self.delay = self.settings.REQUEST_DELAY
            return resp

        if self.breaker.record_failure():
            self.logger.error(
                "[%s] Circuit breaker opened after %d failed fetches",
                self.source_id,
                self.breaker.failures,
            )
        return None

    # ── Fetch paths ──────────────────────────────────────

    def _get_json(
        self, url: str, params: dict[str, str] | None = None
    ) -> Any | None:
        """Fetch and decode a JSON API response.

        Raises ``ValueError`` when the body is not valid JSON.
        """
        resp = self._request(
            url, {"Accept": "application/json"}, params=params
        )
        if resp is None:
            return None
        return json.loads(resp.text)

    def _get_page(self, url: str) -> BeautifulSoup | None:
        """Fetch an HTML page, retrying through cloudscraper on failure."""
        if not self.breaker.allows_request():
            return None
        headers = {
            **self.settings.DEFAULT_HEADERS,
            "Referer": self.homepage,
        }
        time.sleep(self.delay)

        resp = self._request(url, headers, check_html=True)
        if resp is not None:
            return BeautifulSoup(resp.text, "lxml")

        self.logger.info(
            "[%s] Session gave up on %s, trying cloudscraper",
            self.source_id,
            url,
        )
        try:
            fallback = cloudscraper.create_scraper().get(
                url, headers=headers, timeout=self.settings.REQUEST_TIMEOUT
            )
        except Exception as exc:
            self.logger.error(
                "[%s] cloudscraper failed: %s",
                self.source_id,
                exc,
                exc_info=True,
            )
            return None
        if fallback.status_code != 200 or self._blocked_by(fallback.text):
            return None
        return BeautifulSoup(fallback.text, "lxml")

    @abstractmethod
    def search(self, query: str) -> list[dict[str, Any]]:
        """Search the source and return raw, source-shaped records."""
        ...
