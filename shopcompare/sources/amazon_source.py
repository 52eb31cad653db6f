# shopcompare/sources/amazon_source.py

"""Search source for amazon.com result pages."""

import json
from typing import Any
from urllib.parse import quote_plus

from bs4 import Tag

from shopcompare.sources.base_source import BaseSource

_BASE_URL = "https://www.amazon.com"


class AmazonSource(BaseSource):
    """Scrapes Amazon search results into flat raw records."""

    homepage = f"{_BASE_URL}/"

    def __init__(self) -> None:
        super().__init__("amazon")
        self.selectors: dict[str, str] = self._load_selectors()

    def _load_selectors(self) -> dict[str, str]:
        """Load the result-card CSS selectors from selectors.json."""
        with open(self.settings.SELECTORS_PATH) as f:
            all_selectors: dict[str, Any] = json.load(f)
        result: dict[str, str] = all_selectors.get(self.source_id, {})
        return result

    def affiliate_link(self, asin: str, fallback: str) -> str:
        """Tagged ``/dp/`` link, or *fallback* without a tag or ASIN."""
        tag = self.settings.AMAZON_ASSOCIATE_TAG
        if not tag or not asin:
            return fallback
        return f"{_BASE_URL}/dp/{asin}?tag={tag}"

    def _text(self, card: Tag, key: str) -> str:
        selector = self.selectors.get(key, "")
        if not selector:
            return ""
        el = card.select_one(selector)
        return el.get_text(strip=True) if el else ""

    def _parse_card(self, card: Tag) -> dict[str, Any]:
        """Parse a single result card into a raw Amazon record."""
        asin = str(card.get("data-asin", "") or "")
        url_el = card.select_one(self.selectors["url"])
        href = str(url_el["href"]) if url_el and url_el.get("href") else ""
        link = f"{_BASE_URL}{href}" if href.startswith("/") else href
        image_el = card.select_one(self.selectors.get("image", "img"))
        image = str(image_el.get("src", "")) if image_el else ""

        return {
            "asin": asin,
            "title": self._text(card, "title"),
            "price": self._text(card, "price"),
            "list_price": self._text(card, "list_price"),
            "currency": "USD",
            "rating": self._text(card, "rating"),
            "review_count": self._text(card, "review_count"),
            "image": image,
            "link": link,
            "affiliate_link": self.affiliate_link(asin, link),
        }

    def search(self, query: str) -> list[dict[str, Any]]:
        """Search Amazon for products matching the query."""
        try:
            records: list[dict[str, Any]] = []
            url = f"{_BASE_URL}/s?k={quote_plus(query)}"

            for page in range(1, self.settings.MAX_PAGES + 1):
                self.logger.info(
                    "[amazon] Fetching page %d (%d so far)",
                    page,
                    len(records),
                )
                soup = self._get_page(url)
                if not soup:
                    break

                for card in soup.select(self.selectors["product_card"]):
                    if card.get("data-asin"):
                        records.append(self._parse_card(card))

                next_btn = soup.select_one("a.s-pagination-next")
                if next_btn and next_btn.get("href"):
                    url = f"{_BASE_URL}{next_btn['href']}"
                else:
                    break

            return records
        except Exception as e:
            self.logger.error(
                "[amazon] Search failed: %s", e, exc_info=True
            )
            return []
