# shopcompare/services/aggregator.py

"""Combine per-source product lists into one ranked list."""

import logging

from shopcompare.filters.deduplicator import ProductDeduplicator
from shopcompare.filters.enricher import ProductEnricher
from shopcompare.filters.scorer import ProductScorer
from shopcompare.filters.similarity import ProductMatcher
from shopcompare.models.product import Product

logger = logging.getLogger("shopcompare.aggregator")


class ProductAggregator:
    """Dedupe, enrich and rank products drawn from several sources.

    Holds only the matcher; every call builds its own working state, so
    one instance can serve concurrent searches.
    """

    def __init__(self, matcher: ProductMatcher | None = None) -> None:
        self.matcher = matcher

    def aggregate_with_count(
        self, *product_lists: list[Product]
    ) -> tuple[list[Product], int]:
        """Like :meth:`aggregate`, also returning the merged-dupe count."""
        combined = [p for products in product_lists for p in products]
        if not combined:
            return [], 0

        unique, merged = ProductDeduplicator.deduplicate(
            combined, self.matcher
        )
        ranked = ProductScorer.rank(ProductEnricher.enrich_all(unique))

        logger.info(
            "Aggregated %d candidates into %d products",
            len(combined),
            len(ranked),
        )
        return ranked, merged

    def aggregate(self, *product_lists: list[Product]) -> list[Product]:
        """Return one fully ordered list from any number of source lists.

        Lists are concatenated in argument order, which decides the
        first-seen anchor for each duplicate group.  Empty input yields
        an empty list.
        """
        ranked, _merged = self.aggregate_with_count(*product_lists)
        return ranked
