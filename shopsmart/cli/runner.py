# shopsmart/cli/runner.py

"""Headless CLI runner over the search orchestrator."""

import json
import logging
import sys
from typing import Any

from rich.console import Console
from rich.table import Table

from shopsmart.core.exceptions import ValidationError, user_message
from shopsmart.models.product import CachedProduct, ScrapedProduct
from shopsmart.services.search_orchestrator import SearchOrchestrator

logger = logging.getLogger("shopsmart.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def parse_product_ref(ref: str) -> tuple[str, str]:
    """Split ``MARKETPLACE:ID`` into its two parts.

    Raises:
        ValidationError: either part is missing.
    """
    marketplace, sep, product_id = (ref or "").partition(":")
    if not sep or not marketplace.strip() or not product_id.strip():
        raise ValidationError(
            f"Expected MARKETPLACE:ID, got '{ref}'", field="product"
        )
    return marketplace.strip().lower(), product_id.strip()


def _dump_json(payload: Any) -> None:
    json.dump(payload, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")


def _print_table(products: list[ScrapedProduct], title: str) -> None:
    """Render a Rich table of listings to stdout."""
    table = Table(title=title, show_lines=True, title_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", max_width=60)
    table.add_column("Price", justify="right", style="green")
    table.add_column("Rating", justify="center")
    table.add_column("Reviews", justify="right")
    table.add_column("ID", style="magenta")
    table.add_column("URL", overflow="fold", style="dim")

    for idx, p in enumerate(products, 1):
        price_str = (
            f"{p.currency} {p.price:,.2f}" if p.price > 0 else "N/A"
        )
        table.add_row(
            str(idx),
            p.title[:60],
            price_str,
            f"{p.rating:.1f}" if p.rating is not None else "-",
            str(p.reviews_count),
            p.product_id,
            p.product_url,
        )

    Console().print(table)


def _print_cached(product: CachedProduct, fresh: bool) -> None:
    """Render one cache row as a two-column table."""
    table = Table(
        title=f"{product.marketplace}/{product.product_id}",
        show_header=False,
        title_style="bold cyan",
    )
    table.add_column("Field", style="bold")
    table.add_column("Value", overflow="fold")
    table.add_row("Name", product.name)
    table.add_row("Price", f"{product.currency} {product.price:,.2f}")
    table.add_row(
        "Rating",
        f"{product.rating:.1f}" if product.rating is not None else "-",
    )
    table.add_row("Reviews", str(product.num_reviews))
    table.add_row("URL", product.product_url)
    table.add_row("Scraped", product.scraped_at.isoformat())
    table.add_row(
        "Fresh", "[green]yes[/green]" if fresh else "[yellow]no[/yellow]"
    )
    Console().print(table)


async def cli_search(
    query: str,
    marketplace: str,
    page: int,
    limit: int,
    output_format: str,
    orchestrator: SearchOrchestrator | None = None,
) -> int:
    """Run a search and return an exit code (0=ok, 1=fail)."""
    orch = orchestrator or SearchOrchestrator()
    _err.print(
        f"[bold]Searching:[/bold] {query}  "
        f"[dim]marketplace={marketplace} page={page}[/dim]"
    )
    try:
        result = await orch.search(query, marketplace, page, limit)
    except Exception as exc:
        logger.error("Search failed: %s", exc, exc_info=True)
        _err.print(f"[red]Error: {user_message(exc)}[/red]")
        return 1
    finally:
        await orch.close()

    if result.degraded:
        _err.print(
            f"[yellow]Live search failed ({result.error}); "
            "showing cached results[/yellow]"
        )
    if result.cache_write is not None and not result.cache_write.ok:
        _err.print(
            f"[yellow]Results not cached: {result.cache_write.error}"
            "[/yellow]"
        )
    if not result.products:
        _err.print("[yellow]No products found.[/yellow]")
        return 1

    _err.print(
        f"[green]✓ {len(result.products)} products "
        f"({result.source})[/green]"
    )
    if output_format == "table":
        _print_table(result.products, f"Results for '{result.query}'")
    else:
        _dump_json([p.to_dict() for p in result.products])
    return 0


async def cli_product(
    ref: str,
    refresh: bool,
    output_format: str,
    orchestrator: SearchOrchestrator | None = None,
) -> int:
    """Show (and optionally re-scrape) one cached product."""
    orch = orchestrator or SearchOrchestrator()
    try:
        marketplace, product_id = parse_product_ref(ref)
        if refresh:
            product = await orch.refresh_product_data(
                marketplace, product_id,
            )
        else:
            product = await orch.get_product_by_marketplace_id(
                marketplace, product_id,
            )
    except Exception as exc:
        logger.error("Product lookup failed: %s", exc, exc_info=True)
        _err.print(f"[red]Error: {user_message(exc)}[/red]")
        return 1
    finally:
        await orch.close()

    fresh = orch.is_cache_fresh(product)
    if output_format == "table":
        _print_cached(product, fresh)
    else:
        _dump_json({**product.to_dict(), "fresh": fresh})
    return 0


async def run_health_check() -> int:
    """Run a connectivity health check on every marketplace."""
    from shopsmart.services.health_checker import HealthChecker

    _err.print("[bold]Running marketplace health check...[/bold]")
    checker = HealthChecker()
    try:
        results = await checker.check_all()
    finally:
        await checker.registry.close()

    table = Table(
        title="Marketplace Health Check",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Marketplace", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Latency", justify="right")
    table.add_column("Notes", style="dim")

    any_down = False
    for r in results:
        if r.status == "ok":
            status = "[green]✅ OK[/green]"
        elif r.status == "slow":
            status = "[yellow]⚠️  SLOW[/yellow]"
        else:
            status = "[red]❌ DOWN[/red]"
            any_down = True

        latency = f"{r.latency_ms:.0f}ms" if r.latency_ms > 0 else "-"
        table.add_row(r.marketplace, status, latency, r.message)

    Console().print(table)
    return 1 if any_down else 0
