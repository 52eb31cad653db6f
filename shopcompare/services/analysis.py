# shopcompare/services/analysis.py

"""Comparison report generation with a deterministic fallback.

The LLM-backed generator is an external collaborator: it may be slow,
misconfigured or return garbage.  :func:`generate_report` walks the
configured generators in order and always ends with
:class:`FallbackAnalysisGenerator`, so a search never fails for want of
a report.
"""

import json
import logging
from collections.abc import Sequence
from typing import Any, Protocol

from openai import OpenAI

from shopcompare.config.settings import Settings
from shopcompare.models.product import Product, UserPreferences

logger = logging.getLogger("shopcompare.analysis")

Report = dict[str, Any]


class AnalysisGenerator(Protocol):
    """Produces a structured comparison report for ranked products."""

    name: str

    def generate(
        self,
        query: str,
        products: list[Product],
        preferences: UserPreferences,
    ) -> Report:
        ...


class FallbackAnalysisGenerator:
    """Rule-based report built only from listing fields."""

    name = "fallback"

    @staticmethod
    def _pick_winner(
        products: list[Product], preferences: UserPreferences
    ) -> tuple[Product, float]:
        """Weight price, rating and feature count by the user's priorities."""
        prices = [p.price for p in products]
        low, high = min(prices), max(prices)
        span = high - low
        max_features = max(len(p.features) for p in products)
        priorities = {p.lower() for p in preferences.priorities}

        winner, best = products[0], 0.0
        for product in products:
            score = 0.0
            if "value" in priorities:
                price_score = (
                    100 - (product.price - low) / span * 100
                    if span
                    else 100.0
                )
                score += price_score * 0.4
            if "quality" in priorities:
                score += (product.rating / 5) * 100 * 0.3
            if "features" in priorities and max_features:
                score += len(product.features) / max_features * 100 * 0.3
            if score > best:
                winner, best = product, score
        return winner, best

    def generate(
        self,
        query: str,
        products: list[Product],
        preferences: UserPreferences,
    ) -> Report:
        if not products:
            raise ValueError("Cannot analyse an empty product list")

        by_price = sorted(products, key=lambda p: p.price)
        by_rating = sorted(products, key=lambda p: p.rating, reverse=True)
        by_features = sorted(
            products, key=lambda p: len(p.features), reverse=True
        )
        cheapest, dearest = by_price[0], by_price[-1]
        top_rated, richest = by_rating[0], by_features[0]
        currency = cheapest.currency
        avg_rating = sum(p.rating for p in products) / len(products)
        winner, winner_score = self._pick_winner(products, preferences)

        subject = f'"{query}"' if query else f"{len(products)} products"
        summary = (
            f"Analysis of {subject}: {len(products)} products priced from "
            f"{currency} {cheapest.price:.2f} to {currency} "
            f"{dearest.price:.2f} with an average rating of "
            f"{avg_rating:.1f}/5. {winner.title} emerges as the top "
            "choice based on your preferences."
        )

        guide: list[str] = []
        budget = preferences.budget
        if budget is not None:
            in_budget = sum(
                1 for p in products if budget.min <= p.price <= budget.max
            )
            guide.append(
                f"Your budget range of {currency} {budget.min:g}-"
                f"{budget.max:g} gives you {in_budget} options to "
                "choose from."
            )
        if avg_rating >= 4:
            guide.append(
                "All products have strong customer ratings, so focus on "
                "the specific features that matter most to you."
            )
        else:
            guide.append(
                "Pay close attention to customer reviews as ratings vary "
                "significantly across products."
            )
        if dearest.price - cheapest.price > 100:
            guide.append(
                "There's a significant price range; consider whether "
                "premium features justify the extra cost."
            )
        guide.append(
            "Check for current promotions and seasonal sales that might "
            "affect final pricing."
        )
        guide.append(
            "Verify warranty terms and return policies before buying."
        )

        priorities = ", ".join(preferences.priorities) or (
            "price, quality, and features"
        )
        return {
            "generated_by": self.name,
            "executive_summary": summary,
            "overall_recommendation": {
                "product_id": winner.id,
                "reasoning": (
                    f"Best balance of {priorities} based on your "
                    "preferences."
                ),
                "confidence_score": 85,
            },
            "category_winners": {
                "best_value": {
                    "product_id": cheapest.id,
                    "reasoning": (
                        f"Lowest price at {currency} {cheapest.price:.2f}."
                    ),
                },
                "best_rated": {
                    "product_id": top_rated.id,
                    "reasoning": (
                        f"Highest rated at {top_rated.rating:.1f}/5 from "
                        f"{top_rated.review_count} reviews."
                    ),
                },
                "most_features": {
                    "product_id": richest.id,
                    "reasoning": (
                        f"{len(richest.features)} listed features."
                    ),
                },
            },
            "detailed_comparison": {
                "Price": {
                    "winner": cheapest.title,
                    "comparison": (
                        f"{cheapest.title} offers the best value at "
                        f"{currency} {cheapest.price:.2f}, while "
                        f"{dearest.title} is the premium option at "
                        f"{currency} {dearest.price:.2f}."
                    ),
                },
                "Customer Satisfaction": {
                    "winner": top_rated.title,
                    "comparison": (
                        f"{top_rated.title} leads with "
                        f"{top_rated.rating:.1f}/5 stars from "
                        f"{top_rated.review_count} reviews."
                    ),
                },
                "Features": {
                    "winner": richest.title,
                    "comparison": (
                        f"{richest.title} offers the most comprehensive "
                        f"feature set with {len(richest.features)} key "
                        "features."
                    ),
                },
            },
            "pros_and_cons": {
                p.id: {"pros": p.pros or [], "cons": p.cons or []}
                for p in products
            },
            "final_verdict": {
                "overall_winner": winner.title,
                "percentage_score": round(winner_score),
                "scenarios": [
                    {
                        "scenario": "Best Overall",
                        "winner": winner.title,
                        "reasoning": "Top choice for most users",
                    },
                    {
                        "scenario": "Budget Option",
                        "winner": cheapest.title,
                        "reasoning": "Most affordable choice",
                    },
                ],
            },
            "buying_guide": guide,
        }


_SYSTEM_PROMPT = (
    "You are a product comparison analyst. Compare the listed products "
    "for the shopper's query and preferences. Reply with a single JSON "
    "object with the keys executive_summary, overall_recommendation "
    "(product_id, reasoning, confidence_score 0-100), category_winners, "
    "detailed_comparison, pros_and_cons, final_verdict and buying_guide. "
    "Only refer to products by the ids given."
)


class OpenAIAnalysisGenerator:
    """Report written by an OpenAI model via the Responses API."""

    name = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client: OpenAI | None = None,
    ) -> None:
        self.model = model or Settings.OPENAI_MODEL
        self.client = client or OpenAI(
            api_key=api_key or Settings.OPENAI_API_KEY
        )

    @staticmethod
    def _product_brief(product: Product) -> dict[str, Any]:
        return {
            "id": product.id,
            "title": product.title,
            "price": product.price,
            "currency": product.currency,
            "rating": product.rating,
            "review_count": product.review_count,
            "features": product.features[:8],
            "brand": product.brand,
            "source": product.source,
            "discount": product.discount,
        }

    def generate(
        self,
        query: str,
        products: list[Product],
        preferences: UserPreferences,
    ) -> Report:
        user_payload = {
            "query": query,
            "preferences": preferences.to_dict(),
            "products": [self._product_brief(p) for p in products],
        }
        resp = self.client.responses.create(
            model=self.model,
            input=[
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user", "content": json.dumps(user_payload)},
            ],
            text={"format": {"type": "json_object"}},
            max_output_tokens=4096,
        )
        text = getattr(resp, "output_text", "") or ""
        report = json.loads(text)
        if not isinstance(report, dict):
            raise ValueError("Model reply is not a JSON object")
        report["generated_by"] = self.name
        return report


def generate_report(
    generators: Sequence[AnalysisGenerator],
    query: str,
    products: list[Product],
    preferences: UserPreferences,
) -> Report:
    """Try each generator in turn; the rule-based report is the last resort."""
    for generator in generators:
        try:
            return generator.generate(query, products, preferences)
        except Exception as exc:
            logger.warning(
                "Analysis generator '%s' failed: %s",
                generator.name,
                exc,
                exc_info=True,
            )
    return FallbackAnalysisGenerator().generate(
        query, products, preferences
    )
