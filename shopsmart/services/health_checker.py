# shopsmart/services/health_checker.py

"""Marketplace connectivity health checker."""

import asyncio
import logging
import time
from dataclasses import dataclass

from shopsmart.core.exceptions import ShopSmartError
from shopsmart.scrapers.registry import ScraperRegistry

logger = logging.getLogger("shopsmart.health")

_HEALTH_TIMEOUT = 10  # seconds per marketplace
_SLOW_MS = 5000


@dataclass
class HealthResult:
    """Result of a single marketplace health check."""

    marketplace: str
    status: str  # "ok", "slow", "down"
    latency_ms: float
    message: str


async def probe_marketplace(
    registry: ScraperRegistry, marketplace: str,
) -> HealthResult:
    """GET the marketplace homepage once, without retries."""
    try:
        adapter = registry.get(marketplace)
    except ShopSmartError as exc:
        return HealthResult(
            marketplace=marketplace,
            status="down",
            latency_ms=0.0,
            message=f"Failed to load adapter: {exc.message}",
        )

    start = time.monotonic()
    try:
        resp = await adapter._get_session().get(
            adapter._get_homepage(),
            headers=adapter.get_headers(),
            timeout=_HEALTH_TIMEOUT,
        )
    except Exception as exc:
        return HealthResult(
            marketplace=marketplace,
            status="down",
            latency_ms=(time.monotonic() - start) * 1000,
            message=str(exc)[:80],
        )

    elapsed_ms = (time.monotonic() - start) * 1000
    if resp.status_code != 200:
        return HealthResult(
            marketplace=marketplace,
            status="down",
            latency_ms=elapsed_ms,
            message=f"HTTP {resp.status_code}",
        )
    if elapsed_ms > _SLOW_MS:
        return HealthResult(
            marketplace=marketplace,
            status="slow",
            latency_ms=elapsed_ms,
            message="High latency",
        )
    return HealthResult(
        marketplace=marketplace,
        status="ok",
        latency_ms=elapsed_ms,
        message="",
    )


class HealthChecker:
    """Runs concurrent health probes against every marketplace."""

    def __init__(self, registry: ScraperRegistry | None = None) -> None:
        self.registry = registry or ScraperRegistry()

    async def check_all(self) -> list[HealthResult]:
        """Probe every registered marketplace concurrently."""
        results: list[HealthResult] = list(
            await asyncio.gather(
                *(
                    probe_marketplace(self.registry, name)
                    for name in self.registry.marketplaces
                )
            )
        )
        for r in results:
            logger.info(
                "Health check %s: %s (%.0fms) %s",
                r.marketplace,
                r.status,
                r.latency_ms,
                r.message,
            )
        return results
