# tests/test_normalizer.py

"""Tests for raw-record normalisation into Products."""

import unittest

from shopcompare.filters.normalizer import (
    DEFAULT_TITLE,
    ProductNormalizer,
    clean_title,
    detect_category,
    extract_brand,
    extract_price_from_text,
    extract_text_features,
    parse_number,
    to_float,
)


class TestCoercion(unittest.TestCase):
    """Best-effort number coercion."""

    def test_parse_number_with_symbols(self) -> None:
        """Currency symbols and thousands separators are ignored."""
        self.assertEqual(parse_number("$1,299.00"), 1299.0)

    def test_parse_number_empty(self) -> None:
        """Empty or missing text gives 0."""
        self.assertEqual(parse_number(""), 0.0)
        self.assertEqual(parse_number(None), 0.0)

    def test_to_float_variants(self) -> None:
        """Strings, nested amounts and junk all coerce."""
        self.assertEqual(to_float("4.5 out of 5 stars"), 4.5)
        self.assertEqual(to_float({"value": "19.99"}), 19.99)
        self.assertEqual(to_float({"Amount": 42}), 42.0)
        self.assertEqual(to_float(True), 0.0)
        self.assertEqual(to_float(float("nan")), 0.0)
        self.assertEqual(to_float(["12"]), 0.0)


class TestTextMining(unittest.TestCase):
    """Helpers that dig structure out of free text."""

    def test_price_from_text(self) -> None:
        """A dollar price in a snippet is found."""
        self.assertEqual(
            extract_price_from_text("Now only $349.99 with free shipping"),
            (349.99, "USD"),
        )

    def test_implausible_price_ignored(self) -> None:
        """Numbers outside the plausible window are not prices."""
        self.assertEqual(extract_price_from_text("Only $5 today"), (0.0, ""))

    def test_brand_and_category(self) -> None:
        """Known brands and category keywords are detected."""
        self.assertEqual(extract_brand("Sony WH-1000XM5 Headphones"), "Sony")
        self.assertEqual(extract_brand("Generic Cable"), "")
        self.assertEqual(detect_category("Sony Headphones"), "Audio")
        self.assertEqual(detect_category("USB Hub"), "Electronics")

    def test_text_features(self) -> None:
        """Storage, RAM and 5G tags are extracted."""
        features = extract_text_features("Galaxy S24 256GB 8GB RAM 5G")
        self.assertIn("256GB Storage", features)
        self.assertIn("8GB RAM", features)
        self.assertIn("5G Support", features)

    def test_clean_title(self) -> None:
        """Retailer suffixes are stripped."""
        self.assertEqual(
            clean_title("Sony XM5 - Amazon.com"), "Sony XM5"
        )
        self.assertEqual(clean_title("Sony XM5 | Best Deals"), "Sony XM5")


class TestNormalizeAmazon(unittest.TestCase):
    """Amazon records, flat and nested."""

    def test_flat_scraped_card(self) -> None:
        """Scraped card strings are coerced into typed fields."""
        p = ProductNormalizer.normalize(
            "amazon",
            {
                "asin": "B0TEST",
                "title": "Sony Headphones XM5",
                "price": "$350.00",
                "list_price": "$400.00",
                "rating": "4.4 out of 5 stars",
                "review_count": "(1,234)",
                "link": "https://www.amazon.com/dp/B0TEST",
                "affiliate_link": "https://www.amazon.com/dp/B0TEST?tag=t",
            },
        )
        self.assertEqual(p.id, "amazon-B0TEST")
        self.assertEqual(p.source, "amazon")
        self.assertEqual(p.price, 350.0)
        self.assertEqual(p.original_price, 400.0)
        self.assertEqual(p.discount, 13)
        self.assertEqual(p.rating, 4.4)
        self.assertEqual(p.review_count, 1234)
        self.assertEqual(p.asin, "B0TEST")

    def test_nested_api_item(self) -> None:
        """PA-API style nesting resolves through the alias table."""
        p = ProductNormalizer.normalize(
            "amazon",
            {
                "ASIN": "B0API",
                "ItemInfo": {
                    "Title": {"DisplayValue": "Echo Dot"},
                    "Features": {"DisplayValues": ["Alexa", "Compact"]},
                },
                "Offers": {
                    "Listings": [
                        {
                            "Price": {"Amount": 29.99, "Currency": "USD"},
                            "SavingBasis": {"Amount": 49.99},
                        }
                    ]
                },
                "Images": {
                    "Primary": {"Large": {"URL": "https://img/1.jpg"}},
                    "Variants": [{"Large": {"URL": "https://img/2.jpg"}}],
                },
            },
        )
        self.assertEqual(p.title, "Echo Dot")
        self.assertEqual(p.price, 29.99)
        self.assertEqual(p.discount, 40)
        self.assertEqual(p.features, ["Alexa", "Compact"])
        self.assertEqual(p.description, "Alexa. Compact")
        self.assertEqual(p.images, ["https://img/1.jpg", "https://img/2.jpg"])


class TestNormalizeGoogle(unittest.TestCase):
    """Google Shopping offers and Custom Search results."""

    def test_shopping_offer(self) -> None:
        """Structured price objects and specifications are used."""
        p = ProductNormalizer.normalize(
            "google",
            {
                "offerId": "offer-9",
                "title": "Pixel 9",
                "price": {"value": "799.00", "currency": "USD"},
                "specifications": {"storage": "128GB", "ram": "12GB"},
            },
        )
        self.assertEqual(p.id, "google-offer-9")
        self.assertEqual(p.price, 799.0)
        self.assertEqual(p.features, ["128GB storage", "12GB RAM"])

    def test_search_result_uses_pagemap_and_snippet(self) -> None:
        """Search results fall back to pagemap and snippet text."""
        p = ProductNormalizer.normalize(
            "google",
            {
                "title": "Sony WH-1000XM5 Headphones - Best Buy",
                "link": "https://www.bestbuy.com/site/sony-xm5",
                "snippet": "Save now, only $329.99 while stocks last.",
                "pagemap": {"cse_image": [{"src": "https://img/xm5.jpg"}]},
            },
            index=3,
        )
        self.assertEqual(p.id, "google-3")
        self.assertEqual(p.title, "Sony WH-1000XM5 Headphones")
        self.assertEqual(p.price, 329.99)
        self.assertEqual(p.image, "https://img/xm5.jpg")
        self.assertEqual(p.brand, "Sony")
        self.assertEqual(p.category, "Audio")


class TestNormalizeDefaults(unittest.TestCase):
    """Bad input degrades to defaults instead of raising."""

    def test_non_dict_record(self) -> None:
        """A non-mapping record still produces a Product."""
        p = ProductNormalizer.normalize("amazon", None, index=7)
        self.assertEqual(p.id, "amazon-7")
        self.assertEqual(p.title, DEFAULT_TITLE)
        self.assertEqual(p.price, 0.0)
        self.assertEqual(p.currency, "USD")

    def test_values_are_clamped(self) -> None:
        """Negative prices and out-of-range ratings are clamped."""
        p = ProductNormalizer.normalize(
            "other", {"title": "Thing", "price": -5, "rating": 9}
        )
        self.assertEqual(p.price, 0.0)
        self.assertEqual(p.rating, 5.0)

    def test_explicit_discount_capped(self) -> None:
        """An explicit discount above 100 is capped."""
        p = ProductNormalizer.normalize(
            "other", {"title": "Thing", "discount": 250}
        )
        self.assertEqual(p.discount, 100)

    def test_normalize_many_keeps_order(self) -> None:
        """Batch normalisation keeps order and indexes ids."""
        products = ProductNormalizer.normalize_many(
            "google", [{"title": "A"}, {"title": "B"}]
        )
        self.assertEqual([p.title for p in products], ["A", "B"])
        self.assertEqual([p.id for p in products], ["google-0", "google-1"])


if __name__ == "__main__":
    unittest.main()
