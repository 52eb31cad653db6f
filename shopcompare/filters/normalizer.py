# shopcompare/filters/normalizer.py

"""Convert source-shaped raw records into canonical Products.

Every source speaks its own dialect: the Amazon adapter yields either
PA-API style nested items or flat scraped cards, Google yields Shopping
Content offers or Custom Search results whose price hides somewhere in
``pagemap``.  Each dialect gets an extraction function that resolves
fields through a fixed alias table; the shared builder then coerces
types and clamps values into the ranges a Product allows.

Missing or wrong-typed fields never raise and never drop a record.
They degrade to the defaults below.
"""

import logging
import math
import re
from collections.abc import Callable, Sequence
from typing import Any

from shopcompare.config.settings import Settings
from shopcompare.models.product import (
    SOURCE_AMAZON,
    SOURCE_GOOGLE,
    Product,
    calculate_discount,
)

logger = logging.getLogger("shopcompare.normalizer")

DEFAULT_TITLE = "Unknown Product"

KeyPath = tuple[str | int, ...]

# ── Alias tables ─────────────────────────────────────────

_AMAZON_ALIASES: dict[str, tuple[KeyPath, ...]] = {
    "title": (("ItemInfo", "Title", "DisplayValue"), ("title",)),
    "price": (
        ("Offers", "Listings", 0, "Price", "Amount"),
        ("price",),
    ),
    "original_price": (
        ("Offers", "Listings", 0, "SavingBasis", "Amount"),
        ("original_price",),
        ("list_price",),
    ),
    "currency": (
        ("Offers", "Listings", 0, "Price", "Currency"),
        ("currency",),
    ),
    "image": (("Images", "Primary", "Large", "URL"), ("image",)),
    "rating": (("CustomerReviews", "StarRating", "Value"), ("rating",)),
    "review_count": (("CustomerReviews", "Count"), ("review_count",)),
    "features": (("ItemInfo", "Features", "DisplayValues"), ("features",)),
    "brand": (("ItemInfo", "ByLineInfo", "Brand", "DisplayValue"), ("brand",)),
    "link": (("DetailPageURL",), ("link",), ("url",)),
    "affiliate_link": (("affiliate_link",), ("affiliateLink",)),
    "asin": (("ASIN",), ("asin",)),
    "availability": (("availability",),),
    "description": (("description",),),
}

_GOOGLE_ALIASES: dict[str, tuple[KeyPath, ...]] = {
    "title": (("title",),),
    "description": (("description",), ("snippet",)),
    "price": (
        ("price", "value"),
        ("price",),
        ("pagemap", "offer", 0, "price"),
        ("pagemap", "product", 0, "offers", "price"),
        ("pagemap", "metatags", 0, "og:price:amount"),
        ("pagemap", "metatags", 0, "product:price:amount"),
    ),
    "currency": (
        ("price", "currency"),
        ("pagemap", "offer", 0, "pricecurrency"),
        ("pagemap", "metatags", 0, "og:price:currency"),
        ("pagemap", "metatags", 0, "product:price:currency"),
    ),
    "image": (
        ("imageLink",),
        ("pagemap", "cse_image", 0, "src"),
        ("pagemap", "metatags", 0, "og:image"),
        ("pagemap", "product", 0, "image"),
        ("pagemap", "cse_thumbnail", 0, "src"),
    ),
    "link": (("link",),),
    "brand": (("brand",), ("pagemap", "product", 0, "brand")),
    "availability": (
        ("availability",),
        ("pagemap", "offer", 0, "availability"),
    ),
    "offer_id": (("offerId",),),
    "gtin": (("gtin",),),
}

# Fallback for sources without a dedicated dialect
_GENERIC_ALIASES: dict[str, tuple[KeyPath, ...]] = {
    "title": (("title",), ("name",), ("product_title",)),
    "description": (("description",), ("snippet",)),
    "price": (
        ("price", "value"),
        ("price",),
        ("sale_price",),
        ("extracted_price",),
        ("offer", "price"),
    ),
    "original_price": (
        ("original_price",),
        ("originalPrice",),
        ("list_price",),
    ),
    "currency": (("currency",), ("price", "currency")),
    "image": (("image",), ("image_url",), ("thumbnail",)),
    "images": (("images",),),
    "rating": (("rating",), ("stars",)),
    "review_count": (("review_count",), ("reviewCount",), ("reviews",)),
    "features": (("features",),),
    "link": (("link",), ("url",)),
    "affiliate_link": (("affiliate_link",), ("affiliateLink",)),
    "brand": (("brand",),),
    "category": (("category",),),
    "availability": (("availability",),),
    "discount": (("discount",),),
}

_KNOWN_BRANDS: tuple[str, ...] = (
    "Apple", "Samsung", "Google", "OnePlus", "Xiaomi", "OPPO", "Vivo",
    "Realme", "Nothing", "Sony", "LG", "Motorola", "Nokia", "ASUS",
    "Huawei", "Honor", "Lenovo", "HP", "Dell", "Microsoft", "Amazon",
    "Bose", "JBL", "Beats", "Sennheiser", "Audio-Technica", "Marshall",
    "Anker", "Belkin", "Logitech", "Razer", "Corsair", "SteelSeries",
)

# First matching keyword group wins; "headphone" contains "phone"
_CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Audio", ("airpod", "headphone", "earbud", "headset")),
    ("Smartphones", ("phone", "iphone", "galaxy", "pixel")),
    ("Laptops", ("laptop", "macbook", "notebook")),
    ("Tablets", ("tablet", "ipad")),
    ("Wearables", ("watch", "smartwatch")),
    ("TVs", ("tv", "television")),
    ("Cameras", ("camera",)),
)

_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")

_PRICE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\$\s*([0-9,]+(?:\.[0-9]+)?)"), "USD"),
    (re.compile(r"(?:USD)\s*([0-9,]+(?:\.[0-9]+)?)", re.I), "USD"),
    (re.compile(r"([0-9,]+(?:\.[0-9]+)?)\s*USD", re.I), "USD"),
    (re.compile(r"£\s*([0-9,]+(?:\.[0-9]+)?)"), "GBP"),
    (re.compile(r"€\s*([0-9,]+(?:\.[0-9]+)?)"), "EUR"),
    (re.compile(r"(?:SAR|SR)\s*([0-9,]+(?:\.[0-9]+)?)", re.I), "SAR"),
    (re.compile(r"([0-9,]+(?:\.[0-9]+)?)\s*(?:SAR|SR)\b", re.I), "SAR"),
    (re.compile(r"(?:AED)\s*([0-9,]+(?:\.[0-9]+)?)", re.I), "AED"),
    (re.compile(r"([0-9,]+(?:\.[0-9]+)?)\s*AED", re.I), "AED"),
    (re.compile(r"Price:\s*([0-9,]+(?:\.[0-9]+)?)", re.I), ""),
)

# Plausible price window for prices scraped out of free text
_TEXT_PRICE_MIN = 10.0
_TEXT_PRICE_MAX = 100_000.0

_TITLE_SUFFIX_RE = re.compile(
    r"\s*-\s*(noon|Amazon|Jarir|Apple|Best Buy|Walmart).*$", re.I
)
_TITLE_PIPE_RE = re.compile(r"\s*\|.*$")


# ── Coercion helpers ─────────────────────────────────────


def _resolve(record: Any, path: KeyPath) -> Any:
    """Walk *path* through nested dicts/lists, ``None`` if any hop fails."""
    current = record
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, list) or len(current) <= key:
                return None
            current = current[key]
        else:
            if not isinstance(current, dict):
                return None
            current = current.get(key)
        if current is None:
            return None
    return current


def _first(
    record: dict[str, Any],
    aliases: dict[str, tuple[KeyPath, ...]],
    name: str,
) -> Any:
    """Return the first non-empty value among the aliases for *name*."""
    for path in aliases.get(name, ()):
        value = _resolve(record, path)
        if value not in (None, "", [], {}):
            return value
    return None


def parse_number(text: str | None) -> float:
    """Extract the first number from text like ``'$1,299.00'``."""
    if not text:
        return 0.0
    match = _NUMBER_RE.search(text.replace(",", ""))
    return float(match.group()) if match else 0.0


def to_float(value: Any) -> float:
    """Best-effort float coercion; 0.0 when nothing usable is found."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        number = parse_number(value)
    elif isinstance(value, dict):
        inner = value.get("value", value.get("Amount"))
        return to_float(inner) if inner is not None else 0.0
    else:
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def to_int(value: Any) -> int:
    """Best-effort non-negative integer coercion."""
    return max(int(to_float(value)), 0)


def to_str(value: Any) -> str:
    """Strings pass through stripped; numbers are formatted; rest is ``''``."""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def to_str_list(value: Any) -> list[str]:
    """Coerce to a list of non-empty strings, preserving order."""
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if not isinstance(value, (list, tuple)):
        return []
    items = [to_str(v) for v in value]
    return [item for item in items if item]


# ── Text mining helpers ──────────────────────────────────


def extract_price_from_text(text: str) -> tuple[float, str]:
    """Find a currency-tagged price in free text.

    Returns ``(price, currency)``; ``(0.0, "")`` when nothing plausible
    is found.  Numbers outside the plausible window are ignored so model
    numbers like "XM5" or "2024" do not masquerade as prices.
    """
    for pattern, currency in _PRICE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        price = parse_number(match.group(1))
        if _TEXT_PRICE_MIN < price < _TEXT_PRICE_MAX:
            return price, currency
    return 0.0, ""


def extract_brand(title: str) -> str:
    """Return the first known brand mentioned in *title*."""
    for brand in _KNOWN_BRANDS:
        if brand in title:
            return brand
    return ""


def detect_category(title: str) -> str:
    """Guess a coarse category from title keywords."""
    lowered = title.lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(kw in lowered for kw in keywords):
            return category
    return "Electronics"


def extract_text_features(text: str) -> list[str]:
    """Pull hardware feature tags out of a title/snippet blob."""
    lowered = text.lower()
    features: list[str] = []

    storage = re.search(r"(\d+)\s*(gb|tb)\b(?!\s*ram)", lowered)
    if storage:
        features.append(
            f"{storage.group(1)}{storage.group(2).upper()} Storage"
        )
    ram = re.search(r"(\d+)\s*gb\s*ram", lowered)
    if ram:
        features.append(f"{ram.group(1)}GB RAM")
    display = re.search(r"(\d+(?:\.\d+)?)\s*(?:inch|\")", lowered)
    if display:
        features.append(f'{display.group(1)}" Display')
    camera = re.search(r"(\d+)\s*mp\b", lowered)
    if camera:
        features.append(f"{camera.group(1)}MP Camera")
    battery = re.search(r"(\d{3,5})\s*mah", lowered)
    if battery:
        features.append(f"{battery.group(1)} mAh Battery")
    if "5g" in lowered:
        features.append("5G Support")
    return features


def _features_from_specs(specs: Any) -> list[str]:
    """Turn a Shopping ``specifications`` mapping into feature strings."""
    if not isinstance(specs, dict):
        return []
    labelled = (
        ("screenSize", "{} display"),
        ("processor", "{}"),
        ("storage", "{} storage"),
        ("ram", "{} RAM"),
        ("camera", "{} camera"),
        ("battery", "{} battery"),
        ("resolution", "{} resolution"),
    )
    return [
        template.format(to_str(specs[key]))
        for key, template in labelled
        if to_str(specs.get(key))
    ]


def clean_title(title: str) -> str:
    """Strip retailer suffixes such as ``' - noon'`` or ``' | Store'``."""
    cleaned = _TITLE_SUFFIX_RE.sub("", title)
    cleaned = _TITLE_PIPE_RE.sub("", cleaned)
    return cleaned.strip()


# ── Per-source extractors ────────────────────────────────


def _extract_amazon(record: dict[str, Any]) -> dict[str, Any]:
    """Amazon PA-API items and flat scraped cards."""
    fields = {
        name: _first(record, _AMAZON_ALIASES, name)
        for name in _AMAZON_ALIASES
    }
    features = to_str_list(fields["features"])

    images: list[str] = []
    primary = to_str(fields["image"])
    if primary:
        images.append(primary)
    variants = _resolve(record, ("Images", "Variants"))
    if isinstance(variants, list):
        for variant in variants:
            url = to_str(_resolve(variant, ("Large", "URL")))
            if url:
                images.append(url)
    images.extend(to_str_list(record.get("images")))

    fields["features"] = features
    fields["images"] = list(dict.fromkeys(images))
    if not fields["description"]:
        fields["description"] = ". ".join(features[:3])
    fields["id_hint"] = fields["asin"]
    return fields


def _extract_google(record: dict[str, Any]) -> dict[str, Any]:
    """Google Shopping offers and Custom Search results."""
    fields = {
        name: _first(record, _GOOGLE_ALIASES, name)
        for name in _GOOGLE_ALIASES
    }
    is_search_result = "pagemap" in record or "snippet" in record
    title = to_str(fields["title"])
    if is_search_result:
        title = clean_title(title)
    fields["title"] = title
    snippet = to_str(fields["description"])

    if to_float(fields["price"]) <= 0 and is_search_result:
        text_price, text_currency = extract_price_from_text(snippet)
        if text_price <= 0:
            text_price, text_currency = extract_price_from_text(title)
        fields["price"] = text_price
        if text_currency and not fields["currency"]:
            fields["currency"] = text_currency

    images: list[str] = []
    primary = to_str(fields["image"])
    if primary:
        images.append(primary)
    images.extend(to_str_list(record.get("additionalImageLinks")))
    fields["images"] = list(dict.fromkeys(images))

    features = _features_from_specs(record.get("specifications"))
    if not features and is_search_result:
        features = extract_text_features(f"{title} {snippet}")
    fields["features"] = features

    if not fields["brand"]:
        fields["brand"] = extract_brand(title)
    if is_search_result:
        fields["category"] = detect_category(title)
    fields["id_hint"] = fields["offer_id"]
    return fields


def _extract_generic(record: dict[str, Any]) -> dict[str, Any]:
    """Any other source, resolved through the generic alias table."""
    fields = {
        name: _first(record, _GENERIC_ALIASES, name)
        for name in _GENERIC_ALIASES
    }
    images = to_str_list(fields["images"])
    primary = to_str(fields["image"])
    if primary and primary not in images:
        images.insert(0, primary)
    fields["images"] = images
    fields["features"] = to_str_list(fields["features"])
    fields["id_hint"] = _first(
        record, {"id": (("id",), ("sku",), ("asin",))}, "id"
    )
    return fields


_EXTRACTORS: dict[str, Callable[[dict[str, Any]], dict[str, Any]]] = {
    SOURCE_AMAZON: _extract_amazon,
    SOURCE_GOOGLE: _extract_google,
}


# ── Public API ───────────────────────────────────────────


class ProductNormalizer:
    """Build canonical Products from raw source records."""

    @staticmethod
    def normalize(
        source: str,
        record: Any,
        index: int = 0,
    ) -> Product:
        """Normalise a single raw record from *source*.

        *index* is the record's position in its source batch and backs
        the id when the record carries no identifier of its own.
        """
        raw: dict[str, Any] = record if isinstance(record, dict) else {}
        extractor = _EXTRACTORS.get(source, _extract_generic)
        fields = extractor(raw)

        price = max(to_float(fields.get("price")), 0.0)
        original = to_float(fields.get("original_price"))
        original_price = original if original > 0 else None
        discount: int | None = None
        if original_price is not None:
            discount = calculate_discount(original_price, price) or None
        if discount is None and fields.get("discount") is not None:
            explicit = min(to_int(fields.get("discount")), 100)
            discount = explicit or None

        rating = min(max(to_float(fields.get("rating")), 0.0), 5.0)
        id_hint = to_str(fields.get("id_hint")) or str(index)

        return Product(
            id=f"{source}-{id_hint}",
            title=to_str(fields.get("title")) or DEFAULT_TITLE,
            description=to_str(fields.get("description")),
            price=price,
            currency=(
                to_str(fields.get("currency"))
                or Settings.DEFAULT_CURRENCY
            ),
            image=to_str(fields.get("image")),
            images=to_str_list(fields.get("images")),
            rating=rating,
            review_count=to_int(fields.get("review_count")),
            features=to_str_list(fields.get("features")),
            source=source,
            link=to_str(fields.get("link")),
            affiliate_link=to_str(fields.get("affiliate_link")),
            asin=to_str(fields.get("asin")),
            brand=to_str(fields.get("brand")),
            category=to_str(fields.get("category")),
            availability=to_str(fields.get("availability")),
            original_price=original_price,
            discount=discount,
        )

    @staticmethod
    def normalize_many(
        source: str,
        records: Sequence[Any],
    ) -> list[Product]:
        """Normalise a whole source batch, keeping input order."""
        products = [
            ProductNormalizer.normalize(source, record, idx)
            for idx, record in enumerate(records)
        ]
        defaulted = sum(
            1 for p in products if p.title == DEFAULT_TITLE
        )
        if defaulted:
            logger.debug(
                "[%s] %d records had no usable title", source, defaulted
            )
        logger.info(
            "[%s] Normalised %d raw records", source, len(products)
        )
        return products
