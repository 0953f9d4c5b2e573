from __future__ import annotations

import logging
from urllib.parse import quote

import httpx
from bs4 import BeautifulSoup, Tag

from gitlytics.domain.entities import TrendingRepo
from gitlytics.domain.errors import FetchError, TransportError
from gitlytics.domain.interfaces import ITrendingSource
from gitlytics.infrastructure.github_client import REQUEST_TIMEOUT, raise_for_status

log = logging.getLogger(__name__)

TRENDING_URL = "https://github.com/trending"
SINCE_VALUES = ("daily", "weekly", "monthly")


def _text(node: Tag | None) -> str:
    return node.get_text(strip=True) if node is not None else ""


def _parse_count(raw: str) -> int:
    try:
        return int(raw.replace(",", "").strip())
    except ValueError:
        return 0


def parse_trending_html(html: str) -> list[TrendingRepo]:
    """
    Pull repository cards out of the trending page.

    The page is not an API, so every field is optional: a card without a
    name is skipped, anything else missing becomes "" or 0.
    """
    soup = BeautifulSoup(html, "html.parser")
    items: list[TrendingRepo] = []
    for card in soup.select("article.Box-row"):
        full_name = "".join(_text(card.select_one("h2 a")).split())
        if not full_name:
            continue
        items.append(TrendingRepo(
            full_name   = full_name,
            description = _text(card.select_one("p")),
            stars       = _parse_count(_text(card.select_one("a.Link--muted[href$='stargazers']"))),
            language    = _text(card.select_one("span[itemprop='programmingLanguage']")),
            url         = f"https://github.com/{full_name}",
        ))
    return items


class TrendingScraper(ITrendingSource):
    """Scrapes github.com/trending. Uses the same error taxonomy as the REST client."""

    def __init__(self, client: httpx.AsyncClient, base_url: str = TRENDING_URL,
                 timeout: float = REQUEST_TIMEOUT) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def build_url(self, language: str = "") -> str:
        return f"{self._base_url}/{quote(language, safe='')}" if language else self._base_url

    async def fetch_trending(self, language: str = "", since: str = "daily") -> list[TrendingRepo]:
        if since not in SINCE_VALUES:
            raise ValueError(f"since must be one of {', '.join(SINCE_VALUES)}, got {since!r}")
        url = self.build_url(language)
        try:
            response = await self._client.get(url, params={"since": since}, timeout=self._timeout)
        except httpx.RequestError as exc:
            raise TransportError(f"Request to {url} failed: {exc}", url) from exc
        raise_for_status(response)
        try:
            items = parse_trending_html(response.text)
        except (AttributeError, TypeError) as exc:
            raise FetchError(f"Could not parse trending page {url}", url) from exc
        log.debug("Trending %s/%s: %d repos", language or "all", since, len(items))
        return items
