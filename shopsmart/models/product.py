# shopsmart/models/product.py

"""Product records flowing between adapters, the normalizer and the cache."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class ScrapedProduct:
    """A single listing as extracted from a marketplace search page."""

    marketplace: str
    product_id: str
    title: str
    price: float = 0.0
    currency: str = "GHS"
    image: str = ""
    rating: float | None = None
    reviews_count: int = 0
    product_url: str = ""
    raw: dict[str, Any] = field(
        default_factory=lambda: dict[str, Any]()
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the camelCase shape used by chat clients."""
        return {
            "marketplace": self.marketplace,
            "productId": self.product_id,
            "title": self.title,
            "price": self.price,
            "currency": self.currency,
            "image": self.image,
            "rating": self.rating,
            "reviewsCount": self.reviews_count,
            "productUrl": self.product_url,
        }


@dataclass
class CachedProduct:
    """Durable cache row keyed by ``(marketplace, product_id)``."""

    marketplace: str
    product_id: str
    name: str
    description: str
    price: float
    currency: str
    product_url: str
    scraped_at: datetime
    last_synced_at: datetime
    images: list[str] = field(
        default_factory=lambda: list[str]()
    )
    rating: float | None = None
    num_reviews: int = 0
    availability: str = "Unknown"
    category: str = "Other"
    raw: dict[str, Any] = field(
        default_factory=lambda: dict[str, Any]()
    )

    @property
    def key(self) -> tuple[str, str]:
        """The natural identity of this record."""
        return self.marketplace, self.product_id

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the camelCase shape of a cache document."""
        return {
            "marketplace": self.marketplace,
            "marketplaceProductId": self.product_id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "currency": self.currency,
            "images": list(self.images),
            "rating": self.rating,
            "numReviews": self.num_reviews,
            "availability": self.availability,
            "category": self.category,
            "productUrl": self.product_url,
            "scrapedAt": self.scraped_at.isoformat(),
            "lastSyncedAt": self.last_synced_at.isoformat(),
        }
