# shopcompare/config/settings.py

"""Central configuration for the shopcompare engine."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the shopcompare engine."""

    # --- Scraping ---
    REQUEST_DELAY: float = 1.0          # Seconds between requests
    REQUEST_TIMEOUT: int = 15           # Seconds before a request times out
    MAX_RETRIES: int = 3                # Retry count on transient failures
    MAX_PAGES: int = 1                  # Result sets stay in the tens

    # --- Resilience ---
    CIRCUIT_BREAKER_THRESHOLD: int = 3  # Consecutive failures to trip
    CIRCUIT_BREAKER_COOLDOWN: float = 60.0
    MAX_DELAY_MULTIPLIER: int = 8       # Cap for adaptive backoff
    CAPTCHA_KEYWORDS: list[str] = [
        "captcha",
        "verify you are human",
        "unusual traffic",
        "automated requests",
    ]

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "Upgrade-Insecure-Requests": "1",
    }

    # --- External services ---
    REDIS_URL: str = os.getenv("REDIS_URL", "")
    GOOGLE_API_KEY: str = os.getenv("GOOGLE_API_KEY", "")
    GOOGLE_SEARCH_ENGINE_ID: str = os.getenv(
        "GOOGLE_SEARCH_ENGINE_ID", ""
    )
    AMAZON_ASSOCIATE_TAG: str = os.getenv("AMAZON_ASSOCIATE_TAG", "")
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4.1-mini")

    # --- Cache ---
    CACHE_BACKENDS: tuple[str, ...] = ("redis", "memory", "none")
    CACHE_BACKEND: str = os.getenv("CACHE_BACKEND", "redis")
    CACHE_KEY_PREFIX: str = "cache:"
    SEARCH_CACHE_TTL: int = 3600        # Seconds
    ANALYSIS_CACHE_TTL: int = 7200      # Seconds

    # --- Pipeline ---
    ANALYSIS_TOP_N: int = 10            # Products handed to the analyser
    RESPONSE_TOP_N: int = 20            # Products returned to the caller
    MAX_QUERY_LENGTH: int = 500
    DEFAULT_CURRENCY: str = "USD"

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = (
        BASE_DIR / "shopcompare" / "config" / "selectors.json"
    )
    LOGS_DIR: Path = BASE_DIR / "logs"

    # --- Sources (registry, loaded by dotted path) ---
    AVAILABLE_SOURCES: list[dict[str, str]] = [
        {
            "id": "google",
            "label": "Google Search",
            "adapter": "shopcompare.sources.google_source.GoogleSearchSource",
        },
        {
            "id": "amazon",
            "label": "Amazon",
            "adapter": "shopcompare.sources.amazon_source.AmazonSource",
        },
    ]

    # Source whose affiliate links earn a ranking bonus
    AFFILIATE_SOURCE: str = "amazon"
