# tests/conftest.py

"""Shared pytest fixtures for all shopsmart tests."""

import os
from collections.abc import Generator
from unittest.mock import patch

import pytest

_ENV_PREFIXES = ("JUMIA_", "SCRAPER_", "SHOPSMART_")
_ENV_NAMES = ("PRODUCT_CACHE_TTL_MS", "MAX_PRODUCTS_PER_SEARCH")


@pytest.fixture(autouse=True)
def isolated_env(
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[None, None, None]:
    """Strip shopsmart variables and stop ``.env`` from leaking in."""
    for name in list(os.environ):
        if name.startswith(_ENV_PREFIXES) or name in _ENV_NAMES:
            monkeypatch.delenv(name, raising=False)
    with patch("shopsmart.config.settings.load_dotenv"):
        yield
