# shopcompare/filters/similarity.py

"""Decide whether two listings describe the same physical product."""

from typing import Protocol

from shopcompare.models.product import Product

# Fixed; not exposed as configuration
TITLE_SIMILARITY_THRESHOLD = 0.8

# Generic listing words that say nothing about product identity
_DESCRIPTOR_TOKENS: frozenset[str] = frozenset({
    "-", "|", "&", "+", "/",
    "a", "an", "and", "the", "for", "with", "by",
    "new", "latest", "brand-new", "original", "genuine", "official",
    "wireless", "bluetooth", "cordless",
})


def title_tokens(title: str) -> frozenset[str]:
    """Lower-cased whitespace tokens of *title*, minus generic descriptors.

    Falls back to the raw token set when a title consists only of
    descriptors, so such titles still compare against each other.
    """
    raw = frozenset(title.lower().split())
    meaningful = raw - _DESCRIPTOR_TOKENS
    return meaningful or raw


def jaccard_similarity(
    tokens_a: frozenset[str], tokens_b: frozenset[str]
) -> float:
    """Intersection over union of two token sets (0.0 when both empty)."""
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)


class ProductMatcher(Protocol):
    """Pluggable same-product oracle used by the deduplicator."""

    def is_same_product(self, a: Product, b: Product) -> bool:
        ...


class TitleSimilarityMatcher:
    """Match on title-token Jaccard similarity alone."""

    def __init__(
        self, threshold: float = TITLE_SIMILARITY_THRESHOLD
    ) -> None:
        self.threshold = threshold

    def is_same_product(self, a: Product, b: Product) -> bool:
        similarity = jaccard_similarity(
            title_tokens(a.title), title_tokens(b.title)
        )
        return similarity >= self.threshold


class IdentifierThenTitleMatcher:
    """Equal ASINs match outright; everything else falls back to titles."""

    def __init__(self) -> None:
        self._titles = TitleSimilarityMatcher()

    def is_same_product(self, a: Product, b: Product) -> bool:
        if a.asin and a.asin == b.asin:
            return True
        return self._titles.is_same_product(a, b)
