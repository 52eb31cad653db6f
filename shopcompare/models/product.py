# shopcompare/models/product.py

"""Product data model for inter-module data flow."""

import math
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Literal

SourceId = Literal["google", "amazon"]

SOURCE_GOOGLE: SourceId = "google"
SOURCE_AMAZON: SourceId = "amazon"


def calculate_discount(original_price: float, current_price: float) -> int:
    """Return the whole-percent saving of *current_price* vs *original_price*.

    Rounds half up, so ``(100, 80)`` gives exactly ``20``.  Returns 0
    when either price is missing or there is no saving.
    """
    if (
        original_price <= 0
        or current_price <= 0
        or current_price >= original_price
    ):
        return 0
    ratio = (original_price - current_price) / original_price
    return int(math.floor(ratio * 100 + 0.5))


@dataclass
class Product:
    """Canonical listing from any source, after normalisation."""

    id: str
    title: str
    price: float = 0.0
    currency: str = "USD"
    description: str = ""
    image: str = ""
    images: list[str] = field(default_factory=lambda: list[str]())
    rating: float = 0.0
    review_count: int = 0
    features: list[str] = field(default_factory=lambda: list[str]())
    pros: list[str] | None = None
    cons: list[str] | None = None
    source: str = ""
    link: str = ""
    affiliate_link: str = ""
    asin: str = ""
    brand: str = ""
    category: str = ""
    availability: str = ""
    original_price: float | None = None
    discount: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a JSON-safe dict."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        """Rebuild a Product from :meth:`to_dict` output.

        Unknown keys are ignored so older cache payloads still load.
        """
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class Budget:
    """Inclusive price window the user is willing to spend."""

    min: float
    max: float


@dataclass
class UserPreferences:
    """What the user cares about when comparing products."""

    priorities: list[str] = field(default_factory=lambda: list[str]())
    budget: Budget | None = None
    required_features: list[str] = field(
        default_factory=lambda: list[str]()
    )
    excluded_items: list[str] = field(
        default_factory=lambda: list[str]()
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a JSON-safe dict."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserPreferences":
        """Rebuild preferences from :meth:`to_dict` output."""
        budget_data = data.get("budget")
        budget = (
            Budget(
                min=float(budget_data.get("min", 0)),
                max=float(budget_data.get("max", 0)),
            )
            if isinstance(budget_data, dict)
            else None
        )
        return cls(
            priorities=list(data.get("priorities") or []),
            budget=budget,
            required_features=list(
                data.get("required_features") or []
            ),
            excluded_items=list(data.get("excluded_items") or []),
        )
