# shopcompare/filters/product_filter.py

"""Post-aggregation filtering by user exclusion terms."""

import logging

from shopcompare.models.product import Product

logger = logging.getLogger("shopcompare.filters")


class ProductFilter:
    """Filter aggregated products based on user-defined exclusions."""

    @staticmethod
    def filter_by_keywords(
        products: list[Product],
        excluded_terms: list[str],
    ) -> tuple[list[Product], int]:
        """Remove products whose title contains any excluded term.

        Returns the filtered list and the count of excluded products.
        """
        lowered_terms = [
            t.strip().lower() for t in excluded_terms if t.strip()
        ]
        if not lowered_terms:
            return products, 0

        kept: list[Product] = []
        excluded = 0
        for product in products:
            title_lower = product.title.lower()
            if any(term in title_lower for term in lowered_terms):
                excluded += 1
            else:
                kept.append(product)

        if excluded:
            logger.info(
                "Filtered out %d products matching excluded terms",
                excluded,
            )

        return kept, excluded
