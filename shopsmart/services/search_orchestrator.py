# shopsmart/services/search_orchestrator.py

"""Live-first product search with cache write-through and cache fallback."""

import asyncio
import logging
from dataclasses import dataclass, field

from shopsmart.config.settings import CacheConfig, Settings
from shopsmart.core.exceptions import (
    ConfigurationError,
    NotFoundError,
    ValidationError,
    user_message,
)
from shopsmart.models.product import CachedProduct, ScrapedProduct
from shopsmart.models.search_request import SearchRequest
from shopsmart.scrapers.registry import ScraperRegistry
from shopsmart.services.normalizer import ProductNormalizer
from shopsmart.storage.cache_store import CacheStore, CacheWriteResult

logger = logging.getLogger("shopsmart.orchestrator")

SOURCE_LIVE = "live"
SOURCE_CACHE = "cache"

# Errors that describe the request itself; the cache cannot fix them
_NO_FALLBACK = (ValidationError, ConfigurationError)


@dataclass
class SearchResult:
    """Outcome of one orchestrated search."""

    query: str
    marketplace: str
    products: list[ScrapedProduct] = field(
        default_factory=lambda: list[ScrapedProduct]()
    )
    source: str = SOURCE_LIVE
    cache_write: CacheWriteResult | None = None
    error: str | None = None

    @property
    def degraded(self) -> bool:
        """True when results came from the cache after a live failure."""
        return self.source == SOURCE_CACHE


class SearchOrchestrator:
    """Coordinates the marketplace adapters and the product cache.

    Live results are always preferred.  A successful scrape is written
    through to the cache; a failed one falls back to cached rows for
    the same query, and only when the cache has nothing is the live
    error raised.
    """

    def __init__(
        self,
        registry: ScraperRegistry | None = None,
        cache_store: CacheStore | None = None,
        config: CacheConfig | None = None,
    ) -> None:
        self.config = config or CacheConfig.from_env()
        self.registry = registry or ScraperRegistry()
        self.cache = cache_store or CacheStore(self.config.db_path)

    def _cap(self, limit: int) -> int:
        return min(limit, self.config.max_products_per_search)

    # ── Search ───────────────────────────────────────────

    async def search(
        self,
        query: str,
        marketplace: str = Settings.DEFAULT_MARKETPLACE,
        page: int = 1,
        limit: int = Settings.DEFAULT_LIMIT,
    ) -> SearchResult:
        """Search one marketplace, falling back to the cache on failure.

        Raises:
            ValidationError: blank query or bad paging.
            ConfigurationError: ``marketplace`` has no adapter.
            Exception: the live search failed and the cache had no
                matching rows; the live error is re-raised as is.
        """
        request = SearchRequest(
            query=query, marketplace=marketplace, page=page, limit=limit,
        )
        cleaned = request.validate()
        capped = self._cap(request.limit)
        adapter = self.registry.get(marketplace)
        name = adapter.marketplace

        try:
            products = await adapter.search(
                cleaned, page=request.page, limit=capped,
            )
        except _NO_FALLBACK:
            raise
        except Exception as exc:
            logger.warning(
                "Live search on %s failed for '%s': %s",
                name,
                cleaned,
                exc,
            )
            cached = await self.get_cached_search_results(
                cleaned, name, capped,
            )
            if not cached:
                logger.error(
                    "No cached fallback for '%s' on %s", cleaned, name,
                )
                raise
            logger.info(
                "Serving %d cached products for '%s' on %s",
                len(cached),
                cleaned,
                name,
            )
            return SearchResult(
                query=cleaned,
                marketplace=name,
                products=cached,
                source=SOURCE_CACHE,
                error=user_message(exc),
            )

        write = await self.cache_products(products)
        return SearchResult(
            query=cleaned,
            marketplace=name,
            products=products,
            source=SOURCE_LIVE,
            cache_write=write,
        )

    async def search_products(
        self,
        query: str,
        marketplace: str = Settings.DEFAULT_MARKETPLACE,
        page: int = 1,
        limit: int = Settings.DEFAULT_LIMIT,
    ) -> list[ScrapedProduct]:
        """Return just the products of :meth:`search`."""
        result = await self.search(query, marketplace, page, limit)
        return result.products

    # ── Cache access ─────────────────────────────────────

    async def cache_products(
        self, products: list[ScrapedProduct],
    ) -> CacheWriteResult:
        """Upsert ``products``; failures are reported, never raised."""
        if not products:
            return CacheWriteResult()
        try:
            result = await asyncio.to_thread(self.cache.upsert, products)
        except Exception as exc:
            logger.error(
                "Cache write-through of %d products raised: %s",
                len(products),
                exc,
                exc_info=True,
            )
            return CacheWriteResult(
                failed=len(products), error=str(exc),
            )
        if not result.ok:
            logger.error(
                "Cache write-through lost %d products: %s",
                result.failed,
                result.error,
            )
        return result

    async def get_cached_search_results(
        self,
        query: str,
        marketplace: str = Settings.DEFAULT_MARKETPLACE,
        limit: int = Settings.DEFAULT_LIMIT,
    ) -> list[ScrapedProduct]:
        """Cached rows matching ``query``, as listings; ``[]`` on error."""
        try:
            rows = await asyncio.to_thread(
                self.cache.query_by_text,
                query,
                marketplace,
                self._cap(limit),
            )
        except Exception as exc:
            logger.error(
                "Cache read for '%s' failed: %s", query, exc, exc_info=True,
            )
            return []
        return [ProductNormalizer.to_scraped(row) for row in rows]

    async def get_product_by_marketplace_id(
        self, marketplace: str, product_id: str,
    ) -> CachedProduct:
        """Return the cached row for one product.

        Raises:
            NotFoundError: the product has never been cached.
        """
        row = await asyncio.to_thread(
            self.cache.find_by_key, marketplace, product_id,
        )
        if row is None:
            raise NotFoundError("Product", f"{marketplace}/{product_id}")
        return row

    async def refresh_product_data(
        self, marketplace: str, product_id: str,
    ) -> CachedProduct:
        """Re-scrape one cached product and store the fresh data.

        The adapter's detail path is used with the cached URL.  If the
        adapter fails, its error propagates and the cached row keeps its
        old timestamps.

        Raises:
            NotFoundError: the product has never been cached.
        """
        existing = await self.get_product_by_marketplace_id(
            marketplace, product_id,
        )
        adapter = self.registry.get(existing.marketplace)
        fresh = await adapter.get_product_details(
            existing.product_id, existing.product_url or None,
        )
        if fresh.product_id != existing.product_id:
            # Keep the cache key stable if the page reports another id
            fresh.product_id = existing.product_id

        write = await self.cache_products([fresh])
        if not write.ok:
            logger.warning(
                "Refreshed %s/%s but could not store it",
                existing.marketplace,
                product_id,
            )
        return await self.get_product_by_marketplace_id(
            existing.marketplace, product_id,
        )

    async def touch_product(
        self, marketplace: str, product_id: str,
    ) -> CachedProduct:
        """Mark a cached product as freshly synced without re-scraping.

        Raises:
            NotFoundError: the product has never been cached.
        """
        row = await asyncio.to_thread(
            self.cache.touch, marketplace, product_id,
        )
        if row is None:
            raise NotFoundError("Product", f"{marketplace}/{product_id}")
        return row

    def is_cache_fresh(self, product: CachedProduct | None) -> bool:
        """True when ``product`` is younger than the configured TTL."""
        return CacheStore.is_fresh(product, self.config.product_ttl_ms)

    async def close(self) -> None:
        """Release adapter sessions and the cache connection."""
        await self.registry.close()
        await asyncio.to_thread(self.cache.close)
