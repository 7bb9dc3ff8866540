# shopsmart/scrapers/base_scraper.py

"""Abstract base class for all marketplace adapters."""

import logging
import re
from abc import ABC, abstractmethod
from typing import Any
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag
from curl_cffi.requests import AsyncSession

from shopsmart.config.settings import ScraperConfig, Settings
from shopsmart.core.exceptions import (
    ExternalServiceError,
    RateLimitedError,
    ScrapingError,
)
from shopsmart.models.product import ScrapedProduct
from shopsmart.models.search_request import SearchRequest
from shopsmart.scrapers.retry import retry_with_backoff
from shopsmart.scrapers.throttle import ThrottleGovernor

_PRICE_RE = re.compile(r"\d+(?:\.\d+)?")
_RATING_CLASS_RE = re.compile(r"_(\d+)(?:-(\d+))?")
_RATING_TEXT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*out of\s*5", re.I)
_DIGITS_RE = re.compile(r"\d+")


class BaseScraper(ABC):
    """Uniform adapter contract over one marketplace.

    Subclasses provide the URL shapes and the per-card extraction;
    this class owns throttling, retries, HTTP status mapping and the
    fault-tolerant parse loop.
    """

    marketplace: str = "base"
    currency: str = ""
    # Tried in order against a listing URL; group 1 is the product id
    PRODUCT_ID_PATTERNS: list[re.Pattern[str]] = []

    def __init__(
        self,
        config: ScraperConfig | None = None,
        session: AsyncSession | None = None,
        throttle: ThrottleGovernor | None = None,
    ) -> None:
        self.config = config or ScraperConfig.from_env(self.marketplace)
        self.logger = logging.getLogger(
            f"shopsmart.{self.marketplace}"
        )
        self.selectors: dict[str, str] = self.config.selectors
        self.session: Any = session
        self._owns_session = session is None
        self.throttle = throttle or ThrottleGovernor(
            self.config.throttle_ms
        )

    # ── HTTP ─────────────────────────────────────────────

    def get_headers(self) -> dict[str, str]:
        """Default request headers for this marketplace."""
        return {
            **self.config.headers,
            "User-Agent": self.config.user_agent,
            "Referer": self._get_homepage(),
        }

    def _get_session(self) -> Any:
        """Return the HTTP session, creating it on first use."""
        if self.session is None:
            self.session = AsyncSession(
                impersonate=Settings.IMPERSONATE_BROWSER
            )
        return self.session

    def _validate_response(self, text: str) -> bool:
        """Return False when the body is a bot-challenge page."""
        lower = text.lower()
        for marker in Settings.CHALLENGE_MARKERS:
            if marker in lower:
                self.logger.warning(
                    "[%s] Bot challenge detected (marker: '%s')",
                    self.marketplace,
                    marker,
                )
                return False
        return True

    async def _request(self, url: str) -> str:
        """Perform a single GET and map failures onto the error taxonomy."""
        session = self._get_session()
        try:
            resp = await session.get(
                url,
                headers=self.get_headers(),
                timeout=self.config.timeout_ms / 1000,
            )
        except Exception as exc:
            raise ScrapingError(
                self.marketplace, f"request failed: {exc}"
            ) from exc

        status: int = resp.status_code
        if status == 429:
            self.logger.warning(
                "[%s] Rate limited (HTTP 429) on %s",
                self.marketplace,
                url,
            )
            raise RateLimitedError(self.marketplace)
        if status != 200:
            raise ScrapingError(
                self.marketplace,
                f"returned status {status}",
                status,
            )
        text: str = resp.text
        if not self._validate_response(text):
            raise ScrapingError(
                self.marketplace, "blocked by a bot challenge page"
            )
        return text

    async def fetch_html(self, url: str) -> str:
        """GET a page with exponential-backoff retries.

        Rate-limit responses are not retried here; they surface to the
        caller straight away so the next attempt happens later.
        """
        return await retry_with_backoff(
            lambda: self._request(url),
            max_attempts=self.config.max_retries,
            base_delay_ms=self.config.retry_delay_ms,
            retry_on=(ExternalServiceError,),
            give_up_on=(RateLimitedError,),
            label=self.marketplace,
        )

    async def close(self) -> None:
        """Close the HTTP session if this adapter created it."""
        if self.session is not None and self._owns_session:
            await self.session.close()
            self.session = None

    # ── Search ───────────────────────────────────────────

    async def search(
        self,
        query: str,
        page: int = 1,
        limit: int | None = None,
    ) -> list[ScrapedProduct]:
        """Search the marketplace and return at most ``limit`` listings.

        Listings keep the order the marketplace returned them in.

        Raises:
            ValidationError: blank query or bad paging, before any I/O.
            RateLimitedError: the marketplace answered HTTP 429.
            ExternalServiceError: retries exhausted on any other failure.
        """
        request = SearchRequest(
            query=query,
            marketplace=self.marketplace,
            page=page,
            limit=(
                limit if limit is not None else self.config.default_limit
            ),
        )
        cleaned = request.validate()

        await self.throttle.throttle()
        url = self.build_search_url(cleaned, request.page)
        self.logger.info(
            "[%s] Searching: %s", self.marketplace, url,
        )

        html = await self.fetch_html(url)
        products, skipped = self.parse_search_page(html)
        limited = products[: request.limit]
        self.logger.info(
            "[%s] Found %d products for '%s' (%d skipped)",
            self.marketplace,
            len(limited),
            cleaned,
            skipped,
        )
        return limited

    def parse_search_page(
        self, html: str,
    ) -> tuple[list[ScrapedProduct], int]:
        """Parse a search page into listings.

        Returns the parsed listings and the number of candidate nodes
        that were skipped (missing title/id, or extraction errors).
        A bad node never aborts the rest of the page.

        Raises:
            ScrapingError: the product container selector cannot be
                compiled.
        """
        soup = BeautifulSoup(html or "", "lxml")
        products: list[ScrapedProduct] = []
        skipped = 0

        container = self.selectors["product_container"]
        try:
            cards = soup.select(container)
        except Exception as exc:
            self.logger.error(
                "[%s] Product container selector %r is unusable: %s",
                self.marketplace,
                container,
                exc,
            )
            raise ScrapingError(
                self.marketplace,
                f"invalid product container selector {container!r}",
            ) from exc

        for card in cards:
            try:
                product = self._parse_card(card)
            except Exception as exc:
                self.logger.warning(
                    "[%s] Error parsing product element: %s",
                    self.marketplace,
                    exc,
                    exc_info=True,
                )
                skipped += 1
                continue
            if product is None:
                skipped += 1
                continue
            products.append(product)

        if skipped:
            self.logger.debug(
                "[%s] Skipped %d malformed listings",
                self.marketplace,
                skipped,
            )
        return products, skipped

    def parse_search_results(self, html: str) -> list[ScrapedProduct]:
        """Parse a search page into listings, dropping malformed nodes."""
        products, _ = self.parse_search_page(html)
        return products

    # ── Field helpers ────────────────────────────────────

    @staticmethod
    def parse_price(text: str | None) -> float:
        """Extract a numeric price from a string like 'GH₵ 1,234.56'.

        Currency symbols, thousands separators and whitespace are
        ignored; unparseable input yields ``0.0``.
        """
        if not text:
            return 0.0
        cleaned = re.sub(r"[,\s]", "", text)
        match = _PRICE_RE.search(cleaned)
        return float(match.group(0)) if match else 0.0

    @staticmethod
    def extract_rating(class_text: str | None) -> float | None:
        """Decode a class-style rating such as ``_4-5`` into 4.5."""
        if not class_text:
            return None
        match = _RATING_CLASS_RE.search(class_text)
        if not match:
            return None
        whole, fraction = match.group(1), match.group(2)
        return float(f"{whole}.{fraction}" if fraction else whole)

    @staticmethod
    def extract_rating_text(text: str | None) -> float | None:
        """Decode a textual rating such as '4.5 out of 5'."""
        if not text:
            return None
        match = _RATING_TEXT_RE.search(text)
        return float(match.group(1)) if match else None

    @staticmethod
    def parse_reviews_count(text: str | None) -> int:
        """Return the first integer in ``text`` (e.g. '(128)'), else 0."""
        if not text:
            return 0
        match = _DIGITS_RE.search(text.replace(",", ""))
        return int(match.group(0)) if match else 0

    def extract_product_id(self, url: str) -> str:
        """Derive the marketplace product id from a listing URL.

        Tries the marketplace patterns in order, then falls back to the
        last segment of the URL path. A URL with no path segment, such
        as the marketplace root, yields ``"unknown"``.
        """
        if not url:
            return "unknown"
        for pattern in self.PRODUCT_ID_PATTERNS:
            match = pattern.search(url)
            if match:
                return match.group(1)
        path = urlparse(url).path.rstrip("/")
        last = path.rsplit("/", 1)[-1]
        return last or "unknown"

    def absolute_url(self, href: str) -> str:
        """Resolve a possibly relative marketplace link."""
        if not href:
            return ""
        if href.startswith("http"):
            return href
        if href.startswith("//"):
            return f"https:{href}"
        return f"{self.config.base_url}/{href.lstrip('/')}"

    # ── Marketplace specifics ────────────────────────────

    @abstractmethod
    def _get_homepage(self) -> str:
        """Return the homepage URL for the Referer header."""
        ...

    @abstractmethod
    def build_search_url(self, query: str, page: int = 1) -> str:
        """Return the search URL for ``query`` on ``page``."""
        ...

    @abstractmethod
    def _parse_card(self, card: Tag) -> ScrapedProduct | None:
        """Parse one listing node; ``None`` when title or id is missing."""
        ...

    @abstractmethod
    async def get_product_details(
        self,
        product_id: str,
        product_url: str | None = None,
    ) -> ScrapedProduct:
        """Fetch fresh data for one product."""
        ...
