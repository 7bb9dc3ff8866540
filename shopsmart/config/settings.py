# shopsmart/config/settings.py

"""Central configuration for the shopsmart search core."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

logger = logging.getLogger("shopsmart.config")


class Settings:
    """Static defaults shared by every component."""

    # --- Scraping ---
    THROTTLE_MS: int = 2000             # Min spacing between requests
    REQUEST_TIMEOUT_MS: int = 15000     # Per-request HTTP timeout
    MAX_RETRIES: int = 3                # Attempts on transient failures
    RETRY_DELAY_MS: int = 1000          # Base delay for exponential backoff
    THROTTLE_WINDOW: int = 10           # Request timestamps kept per adapter
    DEFAULT_LIMIT: int = 24             # Results per search page

    # --- Cache ---
    PRODUCT_TTL_MS: int = 24 * 60 * 60 * 1000
    MAX_PRODUCTS_PER_SEARCH: int = 50

    # --- Marketplaces ---
    DEFAULT_MARKETPLACE: str = "jumia"
    JUMIA_BASE_URL: str = "https://www.jumia.com.gh"
    USER_AGENT: str = "Mozilla/5.0 (compatible; ECommerceBot/1.0)"
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.5",
        "Upgrade-Insecure-Requests": "1",
    }
    CHALLENGE_MARKERS: list[str] = [
        "challenges.cloudflare.com",
        "cdn-cgi/challenge-platform",
        "cf-turnstile",
        "cf_chl_opt",
    ]

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = Path(__file__).resolve().parent / "selectors.json"
    CACHE_DB_PATH: Path = BASE_DIR / "data" / "product_cache.db"
    LOGS_DIR: Path = BASE_DIR / "logs"

    # --- Sources (registry of marketplace adapters) ---
    AVAILABLE_SOURCES: list[dict[str, str]] = [
        {
            "id": "jumia",
            "label": "Jumia Ghana",
            "scraper": "shopsmart.scrapers.jumia_scraper.JumiaScraper",
        },
    ]


def _env_int(name: str, default: int) -> int:
    """Read a positive integer from the environment, else the default."""
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(
            "Ignoring non-integer %s=%r, using %d", name, raw, default,
        )
        return default
    if value < 0:
        logger.warning(
            "Ignoring negative %s=%r, using %d", name, raw, default,
        )
        return default
    return value


# Short env names for the listing selectors, e.g. JUMIA_SELECTOR_PRICE.
# The full key name (JUMIA_SELECTOR_PRODUCT_PRICE) wins when both are set.
_SELECTOR_ALIASES: dict[str, str] = {
    "product_container": "CONTAINER",
    "product_name": "NAME",
    "product_price": "PRICE",
    "product_image": "IMAGE",
    "product_link": "LINK",
    "product_rating": "RATING",
    "product_reviews": "REVIEWS",
}


def load_selectors(
    marketplace: str, path: Path | None = None,
) -> dict[str, str]:
    """Load CSS selectors for one marketplace from selectors.json."""
    with open(path or Settings.SELECTORS_PATH, encoding="utf-8") as f:
        all_selectors: dict[str, Any] = json.load(f)
    result: dict[str, str] = dict(all_selectors.get(marketplace, {}))
    return result


@dataclass
class ScraperConfig:
    """Explicit per-marketplace adapter configuration."""

    marketplace: str = Settings.DEFAULT_MARKETPLACE
    base_url: str = Settings.JUMIA_BASE_URL
    user_agent: str = Settings.USER_AGENT
    throttle_ms: int = Settings.THROTTLE_MS
    timeout_ms: int = Settings.REQUEST_TIMEOUT_MS
    max_retries: int = Settings.MAX_RETRIES
    retry_delay_ms: int = Settings.RETRY_DELAY_MS
    default_limit: int = Settings.DEFAULT_LIMIT
    headers: dict[str, str] = field(
        default_factory=lambda: dict(Settings.DEFAULT_HEADERS)
    )
    selectors: dict[str, str] = field(
        default_factory=lambda: dict[str, str]()
    )

    def __post_init__(self) -> None:
        if not self.selectors:
            self.selectors = load_selectors(self.marketplace)

    @classmethod
    def from_env(cls, marketplace: str = "jumia") -> "ScraperConfig":
        """Build a config from environment variables (and ``.env``).

        Every selector may be overridden with
        ``<MARKETPLACE>_SELECTOR_<NAME>``, e.g.
        ``JUMIA_SELECTOR_PRODUCT_PRICE``.  The listing selectors also
        accept the short names (``JUMIA_SELECTOR_PRICE``).
        """
        load_dotenv()
        prefix = marketplace.upper()
        selectors = load_selectors(marketplace)
        for name in list(selectors):
            override = os.environ.get(f"{prefix}_SELECTOR_{name.upper()}")
            alias = _SELECTOR_ALIASES.get(name)
            if not override and alias:
                override = os.environ.get(f"{prefix}_SELECTOR_{alias}")
            if override:
                selectors[name] = override

        return cls(
            marketplace=marketplace,
            base_url=os.environ.get(
                f"{prefix}_BASE_URL", Settings.JUMIA_BASE_URL
            ).rstrip("/"),
            user_agent=os.environ.get(
                f"{prefix}_SCRAPER_USER_AGENT", Settings.USER_AGENT
            ),
            throttle_ms=_env_int(
                "SCRAPER_THROTTLE_MS", Settings.THROTTLE_MS
            ),
            timeout_ms=_env_int(
                "SCRAPER_TIMEOUT_MS", Settings.REQUEST_TIMEOUT_MS
            ),
            max_retries=max(
                1,
                _env_int("SCRAPER_MAX_RETRIES", Settings.MAX_RETRIES),
            ),
            retry_delay_ms=_env_int(
                "SCRAPER_RETRY_DELAY_MS", Settings.RETRY_DELAY_MS
            ),
            default_limit=max(
                1,
                _env_int("SCRAPER_DEFAULT_LIMIT", Settings.DEFAULT_LIMIT),
            ),
            selectors=selectors,
        )


@dataclass
class CacheConfig:
    """Explicit configuration for the product cache."""

    db_path: Path = Settings.CACHE_DB_PATH
    product_ttl_ms: int = Settings.PRODUCT_TTL_MS
    max_products_per_search: int = Settings.MAX_PRODUCTS_PER_SEARCH

    @classmethod
    def from_env(cls) -> "CacheConfig":
        """Build the cache config from environment variables."""
        load_dotenv()
        raw_path = os.environ.get("SHOPSMART_CACHE_DB")
        return cls(
            db_path=Path(raw_path) if raw_path else Settings.CACHE_DB_PATH,
            product_ttl_ms=_env_int(
                "PRODUCT_CACHE_TTL_MS", Settings.PRODUCT_TTL_MS
            ),
            max_products_per_search=max(
                1,
                _env_int(
                    "MAX_PRODUCTS_PER_SEARCH",
                    Settings.MAX_PRODUCTS_PER_SEARCH,
                ),
            ),
        )
