# shopcompare/filters/enricher.py

"""Rule-based pros/cons and promotional tags for listings."""

from dataclasses import replace

from shopcompare.models.product import Product

FALLBACK_PRO = "Good value for money"
FALLBACK_CON = "May have better alternatives"
TOP_RATED_TAG = "Top Rated by Customers"


class ProductEnricher:
    """Fill in missing pros/cons and prepend promotional feature tags."""

    @staticmethod
    def generate_pros(product: Product) -> list[str]:
        """Evaluate every pro rule in order; fallback when none fire."""
        pros: list[str] = []
        if product.rating >= 4.5:
            pros.append("Highly rated by customers")
        if product.review_count > 1000:
            pros.append("Extensively reviewed and tested")
        if product.discount and product.discount > 15:
            pros.append(
                f"Great value with {product.discount}% discount"
            )
        if len(product.features) > 5:
            pros.append("Feature-rich product")
        if product.brand:
            pros.append(f"Trusted {product.brand} brand")
        return pros or [FALLBACK_PRO]

    @staticmethod
    def generate_cons(product: Product) -> list[str]:
        """Evaluate every con rule in order; fallback when none fire."""
        cons: list[str] = []
        if 0 < product.rating < 3.5:
            cons.append("Mixed customer reviews")
        if 0 < product.review_count < 100:
            cons.append("Limited customer feedback")
        if product.price > 500:
            cons.append("Premium pricing")
        if not product.discount or product.discount < 5:
            cons.append("No significant discounts available")
        if len(product.features) < 3:
            cons.append("Basic feature set")
        return cons or [FALLBACK_CON]

    @staticmethod
    def enrich(product: Product) -> Product:
        """Return an enriched copy of *product*.

        Pros and cons are derived from the listing as received.  The
        discount tag is prepended first and the top-rated tag second,
        so when both apply the top-rated tag leads the feature list.
        """
        features = list(product.features)
        if product.discount and product.discount > 10:
            features.insert(
                0, f"{product.discount}% OFF - Limited Time"
            )
        if product.rating >= 4.5 and product.review_count > 1000:
            features.insert(0, TOP_RATED_TAG)

        return replace(
            product,
            pros=(
                list(product.pros)
                if product.pros
                else ProductEnricher.generate_pros(product)
            ),
            cons=(
                list(product.cons)
                if product.cons
                else ProductEnricher.generate_cons(product)
            ),
            features=features,
        )

    @staticmethod
    def enrich_all(products: list[Product]) -> list[Product]:
        """Enrich every product, keeping order."""
        return [ProductEnricher.enrich(p) for p in products]
