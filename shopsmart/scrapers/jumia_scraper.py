# shopsmart/scrapers/jumia_scraper.py

"""Adapter for jumia.com.gh (Ghana) via server-rendered catalog HTML."""

import re
import urllib.parse

from bs4 import BeautifulSoup, Tag

from shopsmart.core.exceptions import NotFoundError, ScrapingError
from shopsmart.models.product import ScrapedProduct
from shopsmart.scrapers.base_scraper import BaseScraper

_REVIEWS_RE = re.compile(r"\(([\d,]+)\)")


class JumiaScraper(BaseScraper):
    """Adapter for Jumia Ghana.

    Search results are ``.prd`` cards on ``/catalog/?q=...`` pages.
    Product ids come from the listing URL, e.g.
    ``/apple-iphone-13-128gb-blue-12345678.html`` -> ``12345678``.
    Ratings are carried both as a class fragment (``_4-5``) and as
    '4.5 out of 5' text; the class form wins when present.
    """

    marketplace = "jumia"
    currency = "GHS"
    PRODUCT_ID_PATTERNS = [
        re.compile(r"[-_]([a-zA-Z0-9]+)\.html"),
        re.compile(r"/(\d+)(?:/|$|\?)"),
    ]

    def _get_homepage(self) -> str:
        """Return the Jumia homepage URL."""
        return f"{self.config.base_url}/"

    def build_search_url(self, query: str, page: int = 1) -> str:
        """Return the catalog search URL for ``query``."""
        encoded = urllib.parse.quote(query, safe="")
        return f"{self.config.base_url}/catalog/?q={encoded}&page={page}"

    @staticmethod
    def _image_src(img: Tag | None) -> str:
        """Prefer the lazy-load ``data-src`` over ``src``."""
        if img is None:
            return ""
        return str(img.get("data-src") or img.get("src") or "")

    def _rating_from(self, el: Tag | None) -> tuple[float | None, str]:
        """Return the decoded rating and the raw markup it came from."""
        if el is None:
            return None, ""
        classes = el.get("class") or []
        class_text = " ".join(classes)
        rating = self.extract_rating(class_text)
        if rating is None:
            rating = self.extract_rating_text(el.get_text(" ", strip=True))
        return rating, class_text

    def _reviews_from(self, el: Tag | None) -> tuple[int, str]:
        if el is None:
            return 0, ""
        text = el.get_text(" ", strip=True)
        match = _REVIEWS_RE.search(text)
        if match:
            return int(match.group(1).replace(",", "")), text
        return self.parse_reviews_count(text), text

    def _parse_card(self, card: Tag) -> ScrapedProduct | None:
        """Parse a single ``.prd`` card into a ScrapedProduct."""
        title_el = card.select_one(self.selectors["product_name"])
        title = title_el.get_text(strip=True) if title_el else ""

        price_el = card.select_one(self.selectors["product_price"])
        price_text = price_el.get_text(strip=True) if price_el else ""

        link_el = card.select_one(self.selectors["product_link"])
        href = str(link_el.get("href") or "") if link_el else ""
        product_url = self.absolute_url(href)
        product_id = self.extract_product_id(product_url)

        rating, rating_text = self._rating_from(
            card.select_one(self.selectors["product_rating"])
        )
        reviews_count, reviews_text = self._reviews_from(
            card.select_one(self.selectors["product_reviews"])
        )

        if not title or not product_id or product_id == "unknown":
            self.logger.debug(
                "[jumia] Skipping card without title/id (url=%s)",
                product_url,
            )
            return None

        return ScrapedProduct(
            marketplace=self.marketplace,
            product_id=product_id,
            title=title,
            price=self.parse_price(price_text),
            currency=self.currency,
            image=self._image_src(
                card.select_one(self.selectors["product_image"])
            ),
            rating=rating,
            reviews_count=reviews_count,
            product_url=product_url,
            raw={
                "price_text": price_text,
                "rating_text": rating_text,
                "reviews_text": reviews_text,
            },
        )

    def parse_product_page(
        self, html: str, product_id: str, product_url: str,
    ) -> ScrapedProduct:
        """Parse a product detail page.

        Raises:
            ScrapingError: the page has no product name.
        """
        soup = BeautifulSoup(html or "", "lxml")
        name_el = soup.select_one(self.selectors["detail_name"])
        title = name_el.get_text(strip=True) if name_el else ""
        if not title:
            raise ScrapingError(
                self.marketplace,
                f"product page for {product_id} could not be parsed",
            )

        price_el = soup.select_one(self.selectors["detail_price"])
        price_text = price_el.get_text(strip=True) if price_el else ""
        rating, rating_text = self._rating_from(
            soup.select_one(self.selectors["detail_rating"])
        )
        reviews_count, reviews_text = self._reviews_from(
            soup.select_one(self.selectors["detail_reviews"])
        )
        desc_el = soup.select_one(self.selectors["detail_description"])

        return ScrapedProduct(
            marketplace=self.marketplace,
            product_id=product_id,
            title=title,
            price=self.parse_price(price_text),
            currency=self.currency,
            image=self._image_src(
                soup.select_one(self.selectors["detail_image"])
            ),
            rating=rating,
            reviews_count=reviews_count,
            product_url=product_url,
            raw={
                "price_text": price_text,
                "rating_text": rating_text,
                "reviews_text": reviews_text,
                "description": (
                    desc_el.get_text(" ", strip=True) if desc_el else ""
                ),
            },
        )

    async def get_product_details(
        self,
        product_id: str,
        product_url: str | None = None,
    ) -> ScrapedProduct:
        """Fetch fresh data for one product.

        With a known ``product_url`` the detail page is scraped.
        Otherwise the catalog is searched for the id and the listing
        carrying that id is returned.

        Raises:
            NotFoundError: no listing with ``product_id`` was found.
        """
        if product_url:
            await self.throttle.throttle()
            self.logger.info(
                "[jumia] Fetching details: %s", product_url,
            )
            html = await self.fetch_html(product_url)
            return self.parse_product_page(html, product_id, product_url)

        for product in await self.search(product_id):
            if product.product_id == product_id:
                return product
        raise NotFoundError("Product", f"{self.marketplace}/{product_id}")
