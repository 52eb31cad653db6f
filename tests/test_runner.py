# tests/test_runner.py

"""Tests for the headless CLI runner."""

import io
import json
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from shopcompare.cli.runner import (
    build_cache,
    build_preferences,
    cli_search,
    parse_budget,
    resolve_sources,
)
from shopcompare.config.settings import Settings
from shopcompare.models.product import Budget, Product
from shopcompare.services.search_service import NoResultsError, SearchResult
from shopcompare.storage.memory_store import InMemoryCacheStore

BUILD_PATH = "shopcompare.cli.runner.build_service"
REDIS_BUILD_PATH = "shopcompare.cli.runner.build_cache_store"


class TestResolveSources(unittest.TestCase):
    """Source selection from --sources."""

    def test_default_is_all(self) -> None:
        self.assertEqual(resolve_sources(None), Settings.AVAILABLE_SOURCES)

    def test_subset_in_requested_order(self) -> None:
        picked = resolve_sources("amazon, google")
        self.assertEqual([s["id"] for s in picked], ["amazon", "google"])

    def test_unknown_source_exits(self) -> None:
        with self.assertRaises(SystemExit):
            resolve_sources("amazon,ebay")


class TestPreferencesFromFlags(unittest.TestCase):
    """--budget, --priorities and --exclude parsing."""

    def test_parse_budget(self) -> None:
        self.assertEqual(parse_budget("100-400"), Budget(min=100, max=400))
        self.assertIsNone(parse_budget(None))

    def test_bad_budget_exits(self) -> None:
        for value in ("cheap", "400-100", "10-x"):
            with self.subTest(value=value):
                with self.assertRaises(SystemExit):
                    parse_budget(value)

    def test_no_flags_no_preferences(self) -> None:
        self.assertIsNone(build_preferences(None, None, None))

    def test_flags_combined(self) -> None:
        prefs = build_preferences("value,quality", "refurbished", "0-500")
        assert prefs is not None
        self.assertEqual(prefs.priorities, ["value", "quality"])
        self.assertEqual(prefs.excluded_items, ["refurbished"])
        self.assertEqual(prefs.budget, Budget(min=0, max=500))


class TestBuildCache(unittest.TestCase):
    """--cache backend selection."""

    def test_memory_backend(self) -> None:
        client = build_cache("memory")
        self.assertIsInstance(client.store, InMemoryCacheStore)
        client.cache_results("cache:q", {"products": []}, 60)
        self.assertEqual(
            client.get_cached_results("cache:q"), {"products": []}
        )

    def test_none_backend_disables_cache(self) -> None:
        self.assertFalse(build_cache("none").enabled)

    def test_redis_backend_uses_redis_url(self) -> None:
        store = MagicMock()
        with patch(REDIS_BUILD_PATH, return_value=store) as build_store:
            client = build_cache("redis")
        build_store.assert_called_once_with(Settings.REDIS_URL)
        self.assertIs(client.store, store)

    def test_default_comes_from_settings(self) -> None:
        with patch.object(Settings, "CACHE_BACKEND", "memory"):
            client = build_cache(None)
        self.assertIsInstance(client.store, InMemoryCacheStore)

    def test_unknown_backend_exits(self) -> None:
        with self.assertRaises(SystemExit):
            build_cache("memcached")


class TestCliSearch(unittest.IsolatedAsyncioTestCase):
    """cli_search exit codes and output."""

    def _service(self, **kwargs: object) -> MagicMock:
        service = MagicMock()
        service.search = AsyncMock(**kwargs)
        return service

    async def test_json_output(self) -> None:
        result = SearchResult(
            query="xm5",
            products=[Product(id="amazon-1", title="Sony XM5", price=350)],
            analysis={"executive_summary": "Buy it."},
        )
        service = self._service(return_value=result)
        out = io.StringIO()
        with patch(BUILD_PATH, return_value=service), patch(
            "sys.stdout", out
        ):
            code = await cli_search("xm5", None, None, None, None, "json")

        self.assertEqual(code, 0)
        payload = json.loads(out.getvalue())
        self.assertEqual(payload["products"][0]["id"], "amazon-1")

    async def test_cache_backend_passed_to_service(self) -> None:
        result = SearchResult(query="xm5", products=[])
        service = self._service(return_value=result)
        with patch(BUILD_PATH, return_value=service) as build, patch(
            "sys.stdout", io.StringIO()
        ):
            await cli_search(
                "xm5", "amazon", None, None, None, "json",
                cache_backend="memory",
            )
        self.assertEqual(build.call_args.args[1], "memory")

    async def test_no_results_exit_code(self) -> None:
        service = self._service(
            side_effect=NoResultsError("xm5", ["amazon: timeout"])
        )
        with patch(BUILD_PATH, return_value=service):
            code = await cli_search("xm5", None, None, None, None, "json")
        self.assertEqual(code, 1)

    async def test_table_output(self) -> None:
        result = SearchResult(
            query="xm5",
            products=[
                Product(
                    id="amazon-1",
                    title="Sony XM5",
                    price=350,
                    rating=4.4,
                    review_count=10,
                    source="amazon",
                    pros=["Trusted Sony brand"],
                )
            ],
        )
        service = self._service(return_value=result)
        with patch(BUILD_PATH, return_value=service), patch(
            "shopcompare.cli.runner.Console"
        ) as console_cls:
            code = await cli_search(
                "xm5", "amazon", None, "quality", None, "table"
            )

        self.assertEqual(code, 0)
        console_cls.return_value.print.assert_called_once()
        args = service.search.call_args.args
        self.assertEqual(args[0], "xm5")
        self.assertEqual(args[1].priorities, ["quality"])


if __name__ == "__main__":
    unittest.main()
