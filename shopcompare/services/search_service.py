# shopcompare/services/search_service.py

"""Orchestrates cached, multi-source product searches and analyses."""

import asyncio
import importlib
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from shopcompare.config.settings import Settings
from shopcompare.filters.normalizer import ProductNormalizer
from shopcompare.filters.product_filter import ProductFilter
from shopcompare.models.product import Product, UserPreferences
from shopcompare.services.aggregator import ProductAggregator
from shopcompare.services.analysis import AnalysisGenerator, generate_report
from shopcompare.storage.cache import CacheClient, generate_cache_key

logger = logging.getLogger("shopcompare.search")

DEFAULT_ANALYSIS_PRIORITIES: list[str] = ["value", "quality", "features"]


class InvalidQueryError(ValueError):
    """The search query is empty after sanitising."""


class NoResultsError(Exception):
    """No source returned a single candidate for the query."""

    def __init__(self, query: str, errors: list[str] | None = None) -> None:
        self.query = query
        self.errors = errors or []
        super().__init__(f"No products found for '{query}'")


class SearchSource(Protocol):
    """Anything that turns a query into raw, source-shaped records."""

    source_id: str

    def search(self, query: str) -> list[dict[str, Any]]:
        ...


@dataclass
class SearchResult:
    """Container for a completed, analysed search."""

    query: str
    products: list[Product] = field(
        default_factory=lambda: list[Product]()
    )
    analysis: dict[str, Any] = field(
        default_factory=lambda: dict[str, Any]()
    )
    cache_key: str = ""
    total_candidates: int = 0
    deduplicated_count: int = 0
    excluded_count: int = 0
    cache_hits: int = 0
    errors: list[str] = field(default_factory=lambda: list[str]())

    def to_dict(self) -> dict[str, Any]:
        """Serialise for the cache; hit counters are not persisted."""
        return {
            "query": self.query,
            "products": [p.to_dict() for p in self.products],
            "analysis": self.analysis,
            "cache_key": self.cache_key,
            "total_candidates": self.total_candidates,
            "deduplicated_count": self.deduplicated_count,
            "excluded_count": self.excluded_count,
            "errors": list(self.errors),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SearchResult":
        """Rebuild a result from :meth:`to_dict` output."""
        return cls(
            query=str(data.get("query", "")),
            products=[
                Product.from_dict(p) for p in data.get("products", [])
            ],
            analysis=dict(data.get("analysis") or {}),
            cache_key=str(data.get("cache_key", "")),
            total_candidates=int(data.get("total_candidates", 0)),
            deduplicated_count=int(data.get("deduplicated_count", 0)),
            excluded_count=int(data.get("excluded_count", 0)),
            errors=list(data.get("errors") or []),
        )


def sanitize_query(query: str) -> str:
    """Trim, strip angle brackets, collapse whitespace, cap the length."""
    cleaned = query.strip().replace("<", "").replace(">", "")
    cleaned = re.sub(r"\s+", " ", cleaned)
    return cleaned[: Settings.MAX_QUERY_LENGTH]


def _load_source_class(dotted_path: str) -> type[Any]:
    """Dynamically import a source adapter class from its dotted path."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls: type[Any] = getattr(module, class_name)
    return cls


def load_sources(
    source_configs: Sequence[dict[str, str]],
) -> list[SearchSource]:
    """Instantiate the adapters named in the source registry entries."""
    return [
        _load_source_class(cfg["adapter"])() for cfg in source_configs
    ]


class SearchService:
    """Coordinates fan-out, aggregation, analysis and caching.

    Sources, cache and analysis generators are injected; nothing is
    constructed at import time.
    """

    def __init__(
        self,
        sources: Sequence[SearchSource],
        cache: CacheClient | None = None,
        aggregator: ProductAggregator | None = None,
        generators: Sequence[AnalysisGenerator] = (),
    ) -> None:
        self.sources = list(sources)
        self.cache = cache or CacheClient()
        self.aggregator = aggregator or ProductAggregator()
        self.generators = list(generators)

    # ── Private helpers ──────────────────────────────────

    async def _run_sources(
        self, query: str
    ) -> tuple[list[list[Product]], list[str]]:
        """Query every source concurrently and normalise what comes back.

        A failing source contributes an empty batch and an error
        message; it never cancels the others.
        """

        async def run_one(source: SearchSource) -> list[Product]:
            records = await asyncio.to_thread(source.search, query)
            return ProductNormalizer.normalize_many(
                source.source_id, records
            )

        outcomes = await asyncio.gather(
            *(run_one(src) for src in self.sources),
            return_exceptions=True,
        )

        batches: list[list[Product]] = []
        errors: list[str] = []
        for source, outcome in zip(self.sources, outcomes):
            if isinstance(outcome, BaseException):
                errors.append(f"{source.source_id}: {outcome}")
                logger.error(
                    "Source %s failed for query '%s': %s",
                    source.source_id,
                    query,
                    outcome,
                    exc_info=outcome,
                )
                batches.append([])
            else:
                batches.append(outcome)

        return batches, errors

    # ── Public operations ────────────────────────────────

    async def search(
        self,
        query: str,
        preferences: UserPreferences | None = None,
    ) -> SearchResult:
        """Run a full search: cache lookup, fan-out, aggregate, analyse.

        Raises :class:`InvalidQueryError` for a blank query and
        :class:`NoResultsError` when no source yields a candidate.
        """
        cleaned = sanitize_query(query)
        if not cleaned:
            raise InvalidQueryError("Search query is required")

        cache_key = generate_cache_key(
            {"query": cleaned, "preferences": preferences}
        )
        cached = await asyncio.to_thread(
            self.cache.get_cached_results, cache_key
        )
        if cached is not None:
            result = SearchResult.from_dict(cached)
            result.cache_hits = 1
            return result

        batches, errors = await self._run_sources(cleaned)
        total = sum(len(batch) for batch in batches)
        if total == 0:
            logger.warning("No candidates for query '%s'", cleaned)
            raise NoResultsError(cleaned, errors)

        ranked, merged = self.aggregator.aggregate_with_count(*batches)

        prefs = preferences or UserPreferences()
        ranked, excluded = ProductFilter.filter_by_keywords(
            ranked, prefs.excluded_items
        )
        if not ranked:
            raise NoResultsError(cleaned, errors)

        analysis = await asyncio.to_thread(
            generate_report,
            self.generators,
            cleaned,
            ranked[: Settings.ANALYSIS_TOP_N],
            prefs,
        )

        result = SearchResult(
            query=cleaned,
            products=ranked[: Settings.RESPONSE_TOP_N],
            analysis=analysis,
            cache_key=cache_key,
            total_candidates=total,
            deduplicated_count=merged,
            excluded_count=excluded,
            errors=errors,
        )
        await asyncio.to_thread(
            self.cache.cache_results,
            cache_key,
            result.to_dict(),
            Settings.SEARCH_CACHE_TTL,
        )
        return result

    async def analyze(
        self,
        products: list[Product],
        preferences: UserPreferences | None = None,
    ) -> dict[str, Any]:
        """Produce (or fetch) a comparison report for given products."""
        if not products:
            raise ValueError("Products data is required for analysis")

        cache_key = generate_cache_key(
            {
                "productIds": [p.id for p in products],
                "preferences": preferences,
            }
        )
        cached = await asyncio.to_thread(
            self.cache.get_cached_results, cache_key
        )
        if cached is not None:
            report: dict[str, Any] = cached
            return report

        prefs = preferences or UserPreferences(
            priorities=list(DEFAULT_ANALYSIS_PRIORITIES)
        )
        report = await asyncio.to_thread(
            generate_report, self.generators, "", products, prefs
        )
        await asyncio.to_thread(
            self.cache.cache_results,
            cache_key,
            report,
            Settings.ANALYSIS_CACHE_TTL,
        )
        return report
