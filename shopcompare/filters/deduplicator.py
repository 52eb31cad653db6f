# shopcompare/filters/deduplicator.py

"""Product deduplication across multiple search sources."""

import hashlib
import logging
import re

from shopcompare.filters.merger import merge_products
from shopcompare.filters.similarity import (
    IdentifierThenTitleMatcher,
    ProductMatcher,
)
from shopcompare.models.product import Product

logger = logging.getLogger("shopcompare.filters")


class ProductDeduplicator:
    """Collapse near-duplicate listings into one record per product."""

    _NON_ALNUM_RE = re.compile(r"[^a-z0-9]")

    @staticmethod
    def product_key(product: Product) -> str:
        """Synthetic dedup key for a new representative.

        MD5 of the first 30 alphanumeric characters of the lower-cased
        title, followed by the brand.
        """
        normalised = ProductDeduplicator._NON_ALNUM_RE.sub(
            "", product.title.lower()
        )[:30]
        return hashlib.md5(
            (normalised + product.brand).encode("utf-8")
        ).hexdigest()

    @staticmethod
    def _fold_matches(
        representatives: dict[str, Product],
        changed_key: str,
        same: ProductMatcher,
    ) -> int:
        """Fold representatives that a merge has made identical.

        A merge can hand a representative new identifying data (an
        adopted ASIN), so it may now match a representative it did not
        match before.  The earlier of each such pair absorbs the later
        one, repeating until no two representatives match.

        Returns the number of representatives folded away.
        """
        folded = 0
        pending = [changed_key]
        while pending:
            key = pending.pop()
            if key not in representatives:
                continue
            other_key = next(
                (
                    k
                    for k, existing in representatives.items()
                    if k != key
                    and same.is_same_product(representatives[key], existing)
                ),
                None,
            )
            if other_key is None:
                continue

            order = list(representatives)
            keep, drop = sorted((key, other_key), key=order.index)
            representatives[keep] = merge_products(
                representatives[keep], representatives.pop(drop)
            )
            folded += 1
            pending.append(keep)

        return folded

    @staticmethod
    def deduplicate(
        products: list[Product],
        matcher: ProductMatcher | None = None,
    ) -> tuple[list[Product], int]:
        """Merge duplicates into the first-seen listing of each product.

        Every incoming listing is compared against all current
        representatives in arrival order; the first match absorbs it via
        :func:`merge_products`.  Unmatched listings become new
        representatives.  Output keeps first-seen order and no two
        output products match each other, so deduplicating the output
        again changes nothing.

        Returns the deduplicated list and the count of merged dupes.
        """
        if not products:
            return [], 0

        same = matcher or IdentifierThenTitleMatcher()
        representatives: dict[str, Product] = {}
        merged_count = 0

        for product in products:
            match_key = next(
                (
                    key
                    for key, existing in representatives.items()
                    if same.is_same_product(product, existing)
                ),
                None,
            )
            if match_key is not None:
                representatives[match_key] = merge_products(
                    representatives[match_key], product
                )
                merged_count += 1
                merged_count += ProductDeduplicator._fold_matches(
                    representatives, match_key, same
                )
                continue

            key = ProductDeduplicator.product_key(product)
            # Distinct products can share a title prefix and brand
            suffix = 1
            base_key = key
            while key in representatives:
                key = f"{base_key}#{suffix}"
                suffix += 1
            representatives[key] = product

        if merged_count:
            logger.info(
                "Deduplication merged %d duplicate products",
                merged_count,
            )

        return list(representatives.values()), merged_count
