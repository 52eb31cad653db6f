# shopcompare/filters/merger.py

"""Field-level merge policy for two listings of the same product."""

import logging
from dataclasses import replace

from shopcompare.config.settings import Settings
from shopcompare.models.product import Product

logger = logging.getLogger("shopcompare.merger")


def merge_products(base: Product, other: Product) -> Product:
    """Fold *other* into *base* and return the merged listing.

    *base* supplies every field not named below.  Argument order
    matters for tie-breaks, so callers pass the first-seen listing as
    *base*:

    - Rating: adopt *other*'s when *base* has none; average when both
      do, keeping the larger review count.
    - Features: order-preserving union, only when *other* lists
      strictly more features than *base* did.
    - Description: filled only when *base*'s is empty.
    - Images: order-preserving union.
    - Affiliate data: an Amazon listing with an affiliate link always
      wins, whichever arrived first.
    - Pricing: the cheaper non-zero offer's price, original price and
      discount move together.  Equal prices keep *base*'s triple.

    Neither input is mutated.
    """
    merged = replace(
        base,
        images=list(base.images),
        features=list(base.features),
    )

    if not merged.rating and other.rating:
        merged.rating = other.rating
        merged.review_count = other.review_count
    elif merged.rating and other.rating:
        merged.rating = (merged.rating + other.rating) / 2
        merged.review_count = max(
            merged.review_count, other.review_count
        )

    if len(other.features) > len(base.features):
        merged.features = list(
            dict.fromkeys([*base.features, *other.features])
        )

    if not merged.description and other.description:
        merged.description = other.description

    if other.images:
        merged.images = list(
            dict.fromkeys([*base.images, *other.images])
        )

    if (
        other.source == Settings.AFFILIATE_SOURCE
        and other.affiliate_link
    ):
        merged.affiliate_link = other.affiliate_link
        merged.asin = other.asin

    if other.price > 0 and (
        merged.price <= 0 or other.price < merged.price
    ):
        logger.debug(
            "Cheaper offer %.2f (%s) replaces %.2f for '%s'",
            other.price,
            other.source,
            merged.price,
            base.title,
        )
        merged.price = other.price
        merged.original_price = other.original_price
        merged.discount = other.discount

    return merged
