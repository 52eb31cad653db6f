# tests/test_redis_store.py

"""Tests for the Redis-backed store and its factory."""

import unittest
from unittest.mock import MagicMock, patch

import redis

from shopcompare.storage.redis_store import RedisCacheStore, build_cache_store

FROM_URL_PATH = "shopcompare.storage.redis_store.redis.Redis.from_url"


class TestRedisCacheStore(unittest.TestCase):
    """Adapter calls map onto the Redis client."""

    def setUp(self) -> None:
        self.client = MagicMock()
        self.store = RedisCacheStore(self.client)

    def test_set_uses_setex(self) -> None:
        self.store.set("cache:k", "payload", 3600)
        self.client.setex.assert_called_once_with("cache:k", 3600, "payload")

    def test_get_hit_and_miss(self) -> None:
        self.client.get.return_value = "payload"
        self.assertEqual(self.store.get("cache:k"), "payload")
        self.client.get.return_value = None
        self.assertIsNone(self.store.get("cache:k"))

    def test_delete(self) -> None:
        self.store.delete("cache:k")
        self.client.delete.assert_called_once_with("cache:k")


class TestBuildCacheStore(unittest.TestCase):
    """build_cache_store connection handling."""

    def test_empty_url_disables(self) -> None:
        self.assertIsNone(build_cache_store(""))
        self.assertIsNone(build_cache_store(None))

    @patch(FROM_URL_PATH)
    def test_connects_with_decoded_responses(
        self, mock_from_url: MagicMock,
    ) -> None:
        store = build_cache_store("redis://localhost:6379/0")
        self.assertIsNotNone(store)
        mock_from_url.assert_called_once_with(
            "redis://localhost:6379/0", decode_responses=True
        )
        mock_from_url.return_value.ping.assert_called_once()

    @patch(FROM_URL_PATH)
    def test_unreachable_server_disables(
        self, mock_from_url: MagicMock,
    ) -> None:
        mock_from_url.return_value.ping.side_effect = (
            redis.ConnectionError("refused")
        )
        self.assertIsNone(build_cache_store("redis://nowhere:6379/0"))


if __name__ == "__main__":
    unittest.main()
