# shopsmart/scrapers/registry.py

"""Single factory mapping marketplace names to adapter instances."""

import importlib
import logging
from typing import Any

from shopsmart.config.settings import ScraperConfig, Settings
from shopsmart.core.exceptions import ConfigurationError
from shopsmart.scrapers.base_scraper import BaseScraper

logger = logging.getLogger("shopsmart.registry")


def _load_scraper_class(dotted_path: str) -> type[Any]:
    """Dynamically import a scraper class from its dotted module path."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls: type[Any] = getattr(module, class_name)
    return cls


class ScraperRegistry:
    """Holds one adapter per marketplace.

    Adapters are built lazily from ``Settings.AVAILABLE_SOURCES`` and
    then reused, so each marketplace keeps a single throttle window.
    """

    def __init__(
        self,
        sources: list[dict[str, str]] | None = None,
        configs: dict[str, ScraperConfig] | None = None,
    ) -> None:
        self._sources: dict[str, dict[str, str]] = {
            s["id"]: s
            for s in (
                sources
                if sources is not None
                else Settings.AVAILABLE_SOURCES
            )
        }
        self._configs = configs or {}
        self._instances: dict[str, BaseScraper] = {}

    @property
    def marketplaces(self) -> list[str]:
        """Names of every marketplace that can be resolved."""
        return sorted(set(self._sources) | set(self._instances))

    def register(self, marketplace: str, adapter: BaseScraper) -> None:
        """Install a ready-made adapter under ``marketplace``."""
        self._instances[marketplace.lower()] = adapter

    def get(self, marketplace: str) -> BaseScraper:
        """Return the adapter for ``marketplace``.

        Raises:
            ConfigurationError: no adapter is registered under that name.
        """
        name = (marketplace or "").strip().lower()
        if name in self._instances:
            return self._instances[name]

        source = self._sources.get(name)
        if source is None:
            raise ConfigurationError(
                f"Unsupported marketplace: {marketplace}"
            )

        try:
            scraper_cls = _load_scraper_class(source["scraper"])
        except (ImportError, AttributeError) as exc:
            raise ConfigurationError(
                f"Cannot load adapter for {name}: {exc}"
            ) from exc

        config = self._configs.get(name) or ScraperConfig.from_env(name)
        adapter: BaseScraper = scraper_cls(config=config)
        self._instances[name] = adapter
        logger.info(
            "Registered %s adapter for '%s'",
            scraper_cls.__name__,
            name,
        )
        return adapter

    async def close(self) -> None:
        """Close every adapter that was built."""
        for adapter in self._instances.values():
            await adapter.close()
