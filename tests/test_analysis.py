# tests/test_analysis.py

"""Tests for comparison report generation."""

import json
import unittest
from typing import Any
from unittest.mock import MagicMock

from shopcompare.models.product import Budget, Product, UserPreferences
from shopcompare.services.analysis import (
    FallbackAnalysisGenerator,
    OpenAIAnalysisGenerator,
    generate_report,
)


def _products() -> list[Product]:
    """Three products with distinct category winners."""
    return [
        Product(
            id="cheap",
            title="Budget Buds",
            price=49.0,
            rating=3.9,
            review_count=120,
            features=["a"],
        ),
        Product(
            id="rated",
            title="Sony Headphones XM5",
            price=350.0,
            rating=4.8,
            review_count=4000,
            features=["a", "b"],
        ),
        Product(
            id="loaded",
            title="Bose QuietComfort Ultra",
            price=429.0,
            rating=4.5,
            review_count=900,
            features=["a", "b", "c", "d"],
        ),
    ]


class _Failing:
    name = "broken"

    def generate(
        self,
        query: str,
        products: list[Product],
        preferences: UserPreferences,
    ) -> dict[str, Any]:
        raise RuntimeError("model unavailable")


class TestFallbackAnalysis(unittest.TestCase):
    """Rule-based report contents."""

    def setUp(self) -> None:
        self.report = FallbackAnalysisGenerator().generate(
            "headphones",
            _products(),
            UserPreferences(
                priorities=["quality"], budget=Budget(min=0, max=400)
            ),
        )

    def test_category_winners(self) -> None:
        winners = self.report["category_winners"]
        self.assertEqual(winners["best_value"]["product_id"], "cheap")
        self.assertEqual(winners["best_rated"]["product_id"], "rated")
        self.assertEqual(winners["most_features"]["product_id"], "loaded")

    def test_quality_priority_picks_top_rated(self) -> None:
        self.assertEqual(
            self.report["overall_recommendation"]["product_id"], "rated"
        )

    def test_budget_in_buying_guide(self) -> None:
        self.assertIn(
            "gives you 2 options", self.report["buying_guide"][0]
        )

    def test_marked_as_fallback(self) -> None:
        self.assertEqual(self.report["generated_by"], "fallback")
        self.assertIn('"headphones"', self.report["executive_summary"])

    def test_report_is_json_serialisable(self) -> None:
        json.dumps(self.report)

    def test_empty_products_rejected(self) -> None:
        with self.assertRaises(ValueError):
            FallbackAnalysisGenerator().generate("q", [], UserPreferences())

    def test_no_priorities_defaults_to_first(self) -> None:
        report = FallbackAnalysisGenerator().generate(
            "q", _products(), UserPreferences()
        )
        self.assertEqual(
            report["overall_recommendation"]["product_id"], "cheap"
        )


class TestOpenAIAnalysis(unittest.TestCase):
    """OpenAI generator with a mocked client."""

    def test_parses_json_reply(self) -> None:
        client = MagicMock()
        client.responses.create.return_value.output_text = json.dumps(
            {"executive_summary": "Go with the XM5."}
        )
        generator = OpenAIAnalysisGenerator(model="test-model", client=client)
        report = generator.generate(
            "headphones", _products(), UserPreferences()
        )
        self.assertEqual(report["executive_summary"], "Go with the XM5.")
        self.assertEqual(report["generated_by"], "openai")
        kwargs = client.responses.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "test-model")
        payload = json.loads(kwargs["input"][1]["content"])
        self.assertEqual(
            [p["id"] for p in payload["products"]],
            ["cheap", "rated", "loaded"],
        )

    def test_non_object_reply_rejected(self) -> None:
        client = MagicMock()
        client.responses.create.return_value.output_text = "[1, 2]"
        generator = OpenAIAnalysisGenerator(client=client)
        with self.assertRaises(ValueError):
            generator.generate("q", _products(), UserPreferences())


class TestGenerateReport(unittest.TestCase):
    """Generator chain with fallback."""

    def test_falls_back_when_generator_fails(self) -> None:
        report = generate_report(
            [_Failing()], "q", _products(), UserPreferences()
        )
        self.assertEqual(report["generated_by"], "fallback")

    def test_first_working_generator_wins(self) -> None:
        good = MagicMock()
        good.generate.return_value = {"generated_by": "stub"}
        report = generate_report(
            [_Failing(), good], "q", _products(), UserPreferences()
        )
        self.assertEqual(report, {"generated_by": "stub"})

    def test_no_generators_uses_fallback(self) -> None:
        report = generate_report([], "q", _products(), UserPreferences())
        self.assertEqual(report["generated_by"], "fallback")


if __name__ == "__main__":
    unittest.main()
