# shopsmart/services/normalizer.py

"""Mapping between scraped listings and durable cache rows."""

from datetime import datetime

from shopsmart.models.product import CachedProduct, ScrapedProduct

DEFAULT_CATEGORY = "Other"
DEFAULT_AVAILABILITY = "Unknown"


class ProductNormalizer:
    """Convert ScrapedProduct to CachedProduct and back.

    Missing optional fields are defaulted, never rejected, so a
    partial listing can always be cached.
    """

    @staticmethod
    def to_cached(
        product: ScrapedProduct, now: datetime | None = None,
    ) -> CachedProduct:
        """Build the cache row for ``product`` stamped at ``now``."""
        stamp = now or datetime.now()
        description = str(product.raw.get("description") or "")
        return CachedProduct(
            marketplace=product.marketplace.lower(),
            product_id=product.product_id,
            name=product.title,
            description=description or product.title,
            price=product.price,
            currency=product.currency,
            product_url=product.product_url,
            images=[img for img in [product.image] if img],
            rating=product.rating,
            num_reviews=product.reviews_count,
            availability=DEFAULT_AVAILABILITY,
            category=DEFAULT_CATEGORY,
            scraped_at=stamp,
            last_synced_at=stamp,
            raw=dict(product.raw),
        )

    @staticmethod
    def to_scraped(cached: CachedProduct) -> ScrapedProduct:
        """Project a cache row back onto the listing shape."""
        return ScrapedProduct(
            marketplace=cached.marketplace,
            product_id=cached.product_id,
            title=cached.name,
            price=cached.price,
            currency=cached.currency,
            image=cached.images[0] if cached.images else "",
            rating=cached.rating,
            reviews_count=cached.num_reviews,
            product_url=cached.product_url,
            raw=dict(cached.raw),
        )
