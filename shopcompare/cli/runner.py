# shopcompare/cli/runner.py

"""Headless CLI search runner built on the async search service."""

import json
import logging
import sys
from typing import Any

from rich.console import Console
from rich.table import Table

from shopcompare.config.settings import Settings
from shopcompare.models.product import Budget, Product, UserPreferences
from shopcompare.services.analysis import (
    AnalysisGenerator,
    OpenAIAnalysisGenerator,
)
from shopcompare.services.search_service import (
    InvalidQueryError,
    NoResultsError,
    SearchResult,
    SearchService,
    load_sources,
)
from shopcompare.storage.cache import CacheClient
from shopcompare.storage.memory_store import InMemoryCacheStore
from shopcompare.storage.redis_store import build_cache_store

logger = logging.getLogger("shopcompare.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def resolve_sources(source_csv: str | None) -> list[dict[str, str]]:
    """Map a comma-separated list of source IDs to their config dicts.

    Returns all sources when *source_csv* is ``None``.
    Raises ``SystemExit`` on unknown IDs.
    """
    available = {s["id"]: s for s in Settings.AVAILABLE_SOURCES}
    if source_csv is None:
        return Settings.AVAILABLE_SOURCES

    requested = _split_csv(source_csv)
    unknown = [r for r in requested if r not in available]
    if unknown:
        valid = ", ".join(sorted(available))
        _err.print(f"[red]Unknown source(s): {', '.join(unknown)}[/red]")
        _err.print(f"[dim]Available: {valid}[/dim]")
        raise SystemExit(1)

    return [available[r] for r in requested]


def parse_budget(budget: str | None) -> Budget | None:
    """Parse ``'MIN-MAX'`` into a :class:`Budget`.

    Raises ``SystemExit`` on malformed input.
    """
    if not budget:
        return None
    low, sep, high = budget.partition("-")
    try:
        if not sep:
            raise ValueError(budget)
        parsed = Budget(min=float(low), max=float(high))
    except ValueError:
        _err.print(f"[red]Invalid budget '{budget}', expected MIN-MAX[/red]")
        raise SystemExit(1) from None
    if parsed.min > parsed.max:
        _err.print("[red]Budget minimum exceeds maximum[/red]")
        raise SystemExit(1)
    return parsed


def build_preferences(
    priorities_csv: str | None,
    exclude_csv: str | None,
    budget: str | None,
) -> UserPreferences | None:
    """Assemble preferences from CLI flags; ``None`` when none were given."""
    if not (priorities_csv or exclude_csv or budget):
        return None
    return UserPreferences(
        priorities=_split_csv(priorities_csv),
        budget=parse_budget(budget),
        excluded_items=_split_csv(exclude_csv),
    )


def build_cache(backend: str | None = None) -> CacheClient:
    """Cache client for *backend* (``redis``, ``memory`` or ``none``).

    Falls back to ``Settings.CACHE_BACKEND`` when *backend* is ``None``.
    Raises ``SystemExit`` on an unknown backend name.
    """
    name = (backend or Settings.CACHE_BACKEND).strip().lower()
    if name == "memory":
        return CacheClient(InMemoryCacheStore())
    if name == "redis":
        return CacheClient(build_cache_store(Settings.REDIS_URL))
    if name == "none":
        return CacheClient()
    valid = ", ".join(Settings.CACHE_BACKENDS)
    _err.print(f"[red]Unknown cache backend '{name}'[/red]")
    _err.print(f"[dim]Available: {valid}[/dim]")
    raise SystemExit(1)


def build_service(
    sources: list[dict[str, str]], cache_backend: str | None = None
) -> SearchService:
    """Wire the search service from settings."""
    generators: list[AnalysisGenerator] = []
    if Settings.OPENAI_API_KEY:
        generators.append(OpenAIAnalysisGenerator())
    return SearchService(
        sources=load_sources(sources),
        cache=build_cache(cache_backend),
        generators=generators,
    )


def _print_table(products: list[Product]) -> None:
    """Render a Rich table of ranked products to stdout."""
    table = Table(
        title="Search Results",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", max_width=50)
    table.add_column("Price", justify="right", style="green")
    table.add_column("Rating", justify="center")
    table.add_column("Source", style="magenta")
    table.add_column("Highlights", max_width=40)

    for idx, p in enumerate(products, 1):
        price_str = (
            f"{p.currency} {p.price:,.2f}" if p.price > 0 else "N/A"
        )
        rating_str = (
            f"{p.rating:.1f} ({p.review_count:,})" if p.rating else "—"
        )
        table.add_row(
            str(idx),
            p.title[:50],
            price_str,
            rating_str,
            p.source,
            "; ".join((p.pros or [])[:2]),
        )

    Console().print(table)


def _print_summary(result: SearchResult) -> None:
    """Status line and analysis headline to stderr."""
    parts: list[str] = []
    if result.deduplicated_count:
        parts.append(f"{result.deduplicated_count} merged")
    if result.excluded_count:
        parts.append(f"{result.excluded_count} excluded")
    if result.cache_hits:
        parts.append("cached")
    detail = f" ({', '.join(parts)})" if parts else ""
    _err.print(
        f"[green]✓ {len(result.products)} products"
        f" from {result.total_candidates} candidates{detail}[/green]"
    )
    summary = result.analysis.get("executive_summary")
    if summary:
        _err.print(f"[bold]Summary:[/bold] {summary}")


async def cli_search(
    query: str,
    source_csv: str | None,
    exclude_csv: str | None,
    priorities_csv: str | None,
    budget: str | None,
    output_format: str,
    cache_backend: str | None = None,
) -> int:
    """Run a headless search and return an exit code (0=ok, 1=fail)."""
    sources = resolve_sources(source_csv)
    preferences = build_preferences(priorities_csv, exclude_csv, budget)
    service = build_service(sources, cache_backend)

    source_labels = ", ".join(s["label"] for s in sources)
    _err.print(
        f"[bold]Searching:[/bold] {query}  [dim]sources={source_labels}[/dim]"
    )

    try:
        result = await service.search(query, preferences)
    except InvalidQueryError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1
    except NoResultsError as exc:
        for error_msg in exc.errors:
            _err.print(f"[red]Error: {error_msg}[/red]")
        _err.print("[yellow]No products found.[/yellow]")
        return 1

    for error_msg in result.errors:
        _err.print(f"[red]Error: {error_msg}[/red]")
    _print_summary(result)

    if output_format == "table":
        _print_table(result.products)
    else:
        payload: dict[str, Any] = result.to_dict()
        json.dump(payload, sys.stdout, ensure_ascii=False, indent=2)
        sys.stdout.write("\n")

    return 0
