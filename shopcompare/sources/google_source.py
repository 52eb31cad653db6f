# shopcompare/sources/google_source.py

"""Search source backed by the Google Custom Search JSON API."""

from typing import Any

from shopcompare.sources.base_source import BaseSource


class GoogleSearchSource(BaseSource):
    """Queries Google Custom Search and keeps product-looking results.

    Results arrive as raw Custom Search items; price, image and brand
    are dug out of their ``pagemap`` by the normaliser.
    """

    SEARCH_API = "https://www.googleapis.com/customsearch/v1"
    RESULTS_PER_QUERY = 10

    # URL fragments of listing, help and editorial pages
    _NON_PRODUCT_PATHS: tuple[str, ...] = (
        "/category/", "/categories/", "/collections/",
        "/search", "/deals", "/support", "/education",
        "/carrier", "/help", "/about", "/contact",
    )
    _NON_PRODUCT_TITLES: tuple[str, ...] = (
        "deals", "shop all", "category", "collection",
    )

    def __init__(self) -> None:
        super().__init__("google")

    @classmethod
    def is_product_page(cls, url: str, title: str) -> bool:
        """Heuristically reject category, search and support pages."""
        url_lower = url.lower()
        if any(fragment in url_lower for fragment in cls._NON_PRODUCT_PATHS):
            return False
        title_lower = title.lower()
        return not any(
            word in title_lower for word in cls._NON_PRODUCT_TITLES
        )

    def search(self, query: str) -> list[dict[str, Any]]:
        """Search Google for product pages matching the query."""
        api_key = self.settings.GOOGLE_API_KEY
        engine_id = self.settings.GOOGLE_SEARCH_ENGINE_ID
        if not api_key or not engine_id:
            self.logger.warning(
                "[google] GOOGLE_API_KEY / GOOGLE_SEARCH_ENGINE_ID "
                "not configured, skipping source"
            )
            return []

        try:
            data: dict[str, Any] | None = self._get_json(
                self.SEARCH_API,
                params={
                    "key": api_key,
                    "cx": engine_id,
                    "q": f"{query} buy price",
                    "num": str(self.RESULTS_PER_QUERY),
                },
            )
            if data is None:
                self.logger.warning(
                    "[google] No response for query '%s'", query
                )
                return []

            items: list[dict[str, Any]] = data.get("items") or []
            records = [
                item
                for item in items
                if self.is_product_page(
                    str(item.get("link", "")),
                    str(item.get("title", "")),
                )
            ]
            self.logger.info(
                "[google] %d of %d results look like product pages",
                len(records),
                len(items),
            )
            return records
        except Exception as e:
            self.logger.error(
                "[google] Search failed: %s", e, exc_info=True
            )
            return []
