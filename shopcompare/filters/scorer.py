# shopcompare/filters/scorer.py

"""Heuristic desirability score and final ordering."""

from shopcompare.config.settings import Settings
from shopcompare.models.product import Product


class ProductScorer:
    """Composite score: rating, reviews, discount, features, price, source."""

    @staticmethod
    def price_tier_bonus(price: float) -> int:
        """+5 under 100, +3 under 300, nothing for unpriced or dearer items."""
        if 0 < price < 100:
            return 5
        if 0 < price < 300:
            return 3
        return 0

    @staticmethod
    def source_bonus(product: Product) -> int:
        """+5 for affiliate-bearing listings from the affiliate source."""
        if (
            product.source == Settings.AFFILIATE_SOURCE
            and product.affiliate_link
        ):
            return 5
        return 0

    @staticmethod
    def score(product: Product) -> float:
        """Compute the composite score for one product."""
        total = product.rating * 20
        total += min(product.review_count / 100, 10)
        total += (product.discount or 0) / 2
        total += min(len(product.features) * 2, 10)
        total += ProductScorer.price_tier_bonus(product.price)
        total += ProductScorer.source_bonus(product)
        return total

    @staticmethod
    def rank(products: list[Product]) -> list[Product]:
        """Sort by score, highest first; ties keep input order."""
        return sorted(products, key=ProductScorer.score, reverse=True)
