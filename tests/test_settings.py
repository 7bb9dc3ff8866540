# tests/test_settings.py

"""Tests for Settings constants and the env-driven config dataclasses."""

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from shopsmart.config.settings import (
    CacheConfig,
    ScraperConfig,
    Settings,
    load_selectors,
)


class TestSettings(unittest.TestCase):
    """Verify Settings constants and the marketplace registry."""

    def test_timing_defaults(self) -> None:
        """Scraping defaults match the documented values."""
        self.assertEqual(Settings.THROTTLE_MS, 2000)
        self.assertEqual(Settings.REQUEST_TIMEOUT_MS, 15000)
        self.assertEqual(Settings.MAX_RETRIES, 3)
        self.assertEqual(Settings.RETRY_DELAY_MS, 1000)
        self.assertEqual(Settings.DEFAULT_LIMIT, 24)

    def test_cache_defaults(self) -> None:
        """The product TTL is one day and searches cap at 50."""
        self.assertEqual(Settings.PRODUCT_TTL_MS, 86_400_000)
        self.assertEqual(Settings.MAX_PRODUCTS_PER_SEARCH, 50)

    def test_each_source_has_required_keys(self) -> None:
        """Every source must have id, label, and scraper keys."""
        for src in Settings.AVAILABLE_SOURCES:
            with self.subTest(src=src.get("id", "?")):
                self.assertIn("id", src)
                self.assertIn("label", src)
                self.assertIn("scraper", src)

    def test_default_marketplace_is_registered(self) -> None:
        """The default marketplace has an adapter entry."""
        ids = {s["id"] for s in Settings.AVAILABLE_SOURCES}
        self.assertIn(Settings.DEFAULT_MARKETPLACE, ids)

    def test_selectors_path_exists(self) -> None:
        """The selectors.json file must exist on disk."""
        self.assertIsInstance(Settings.SELECTORS_PATH, Path)
        self.assertTrue(Settings.SELECTORS_PATH.exists())

    def test_default_headers_has_accept_language(self) -> None:
        """DEFAULT_HEADERS must include Accept-Language."""
        self.assertIn("Accept-Language", Settings.DEFAULT_HEADERS)


class TestLoadSelectors(unittest.TestCase):
    """Tests for selectors.json loading."""

    def test_jumia_selectors_complete(self) -> None:
        """Listing and detail selectors are all present."""
        selectors = load_selectors("jumia")
        for key in (
            "product_container",
            "product_name",
            "product_price",
            "product_link",
            "detail_name",
            "detail_price",
        ):
            with self.subTest(key=key):
                self.assertTrue(selectors.get(key))

    def test_unknown_marketplace_is_empty(self) -> None:
        """An unknown marketplace has no selectors."""
        self.assertEqual(load_selectors("nowhere"), {})


class TestScraperConfig(unittest.TestCase):
    """Tests for ScraperConfig.from_env()."""

    def test_defaults_without_env(self) -> None:
        """With no variables set the Settings defaults apply."""
        config = ScraperConfig.from_env("jumia")
        self.assertEqual(config.base_url, "https://www.jumia.com.gh")
        self.assertEqual(config.throttle_ms, 2000)
        self.assertEqual(config.max_retries, 3)
        self.assertEqual(config.selectors["product_container"], ".prd")

    def test_env_overrides(self) -> None:
        """Numeric and URL settings are read from the environment."""
        env = {
            "JUMIA_BASE_URL": "https://example.test/",
            "SCRAPER_THROTTLE_MS": "500",
            "SCRAPER_MAX_RETRIES": "5",
            "JUMIA_SCRAPER_USER_AGENT": "TestAgent/1.0",
        }
        with patch.dict(os.environ, env):
            config = ScraperConfig.from_env("jumia")
        self.assertEqual(config.base_url, "https://example.test")
        self.assertEqual(config.throttle_ms, 500)
        self.assertEqual(config.max_retries, 5)
        self.assertEqual(config.user_agent, "TestAgent/1.0")

    def test_invalid_number_falls_back(self) -> None:
        """Garbage and negative values keep the defaults."""
        env = {
            "SCRAPER_THROTTLE_MS": "soon",
            "SCRAPER_TIMEOUT_MS": "-1",
        }
        with patch.dict(os.environ, env):
            config = ScraperConfig.from_env("jumia")
        self.assertEqual(config.throttle_ms, 2000)
        self.assertEqual(config.timeout_ms, 15000)

    def test_selector_override(self) -> None:
        """JUMIA_SELECTOR_<NAME> replaces one selector."""
        with patch.dict(
            os.environ, {"JUMIA_SELECTOR_PRODUCT_PRICE": ".price-now"},
        ):
            config = ScraperConfig.from_env("jumia")
        self.assertEqual(config.selectors["product_price"], ".price-now")
        self.assertEqual(config.selectors["product_name"], ".name")

    def test_short_selector_names(self) -> None:
        """JUMIA_SELECTOR_CONTAINER and friends map to the listing keys."""
        env = {
            "JUMIA_SELECTOR_CONTAINER": ".card",
            "JUMIA_SELECTOR_NAME": ".title",
            "JUMIA_SELECTOR_REVIEWS": ".count",
        }
        with patch.dict(os.environ, env):
            config = ScraperConfig.from_env("jumia")
        self.assertEqual(config.selectors["product_container"], ".card")
        self.assertEqual(config.selectors["product_name"], ".title")
        self.assertEqual(config.selectors["product_reviews"], ".count")
        self.assertEqual(config.selectors["detail_name"], "h1")

    def test_full_selector_name_wins_over_short(self) -> None:
        env = {
            "JUMIA_SELECTOR_PRICE": ".short",
            "JUMIA_SELECTOR_PRODUCT_PRICE": ".full",
        }
        with patch.dict(os.environ, env):
            config = ScraperConfig.from_env("jumia")
        self.assertEqual(config.selectors["product_price"], ".full")

    def test_explicit_construction_loads_selectors(self) -> None:
        """A hand-built config still gets the file selectors."""
        config = ScraperConfig(throttle_ms=0)
        self.assertEqual(config.selectors["product_link"], "a.core")


class TestCacheConfig(unittest.TestCase):
    """Tests for CacheConfig.from_env()."""

    def test_env_overrides(self) -> None:
        """Path, TTL and cap are read from the environment."""
        with tempfile.TemporaryDirectory() as tmp:
            db = str(Path(tmp) / "c.db")
            env = {
                "SHOPSMART_CACHE_DB": db,
                "PRODUCT_CACHE_TTL_MS": "1000",
                "MAX_PRODUCTS_PER_SEARCH": "10",
            }
            with patch.dict(os.environ, env):
                config = CacheConfig.from_env()
            self.assertEqual(config.db_path, Path(db))
        self.assertEqual(config.product_ttl_ms, 1000)
        self.assertEqual(config.max_products_per_search, 10)

    def test_defaults(self) -> None:
        """Without env the Settings defaults are used."""
        config = CacheConfig.from_env()
        self.assertEqual(config.db_path, Settings.CACHE_DB_PATH)
        self.assertEqual(config.max_products_per_search, 50)


if __name__ == "__main__":
    unittest.main()
