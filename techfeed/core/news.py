"""newsapi.org client with a static fallback feed."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

import httpx

from techfeed.core.config import Settings
from techfeed.core.errors import UpstreamFeedUnavailable
from techfeed.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Article:
    title: str
    description: str | None
    url: str
    url_to_image: str | None = None
    source: str | None = None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Article":
        source = raw.get("source") or {}
        return cls(
            title=raw.get("title") or "",
            description=raw.get("description") or raw.get("content"),
            url=raw.get("url") or "#",
            url_to_image=raw.get("urlToImage"),
            source=source.get("name") if isinstance(source, dict) else None,
        )


@dataclass(frozen=True)
class NewsPage:
    articles: list[Article]
    current_page: int = 1
    total_pages: int = 1
    query: str = ""
    fallback: bool = False
    total_results: int = field(default=0)


FALLBACK_ARTICLES: tuple[Article, ...] = (
    Article(title="Notícia de teste 1", description="Descrição da notícia 1", url="#"),
    Article(title="Notícia de teste 2", description="Descrição da notícia 2", url="#"),
)


def fallback_page(query: str = "") -> NewsPage:
    return NewsPage(articles=list(FALLBACK_ARTICLES), query=query, fallback=True)


class NewsClient:
    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://newsapi.org/v2/everything",
        default_query: str = "tecnologia",
        language: str = "pt",
        page_size: int = 20,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url
        self.default_query = default_query
        self.language = language
        self.page_size = page_size
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> "NewsClient":
        return cls(
            settings.news_api_key,
            base_url=settings.news_api_url,
            default_query=settings.news_query,
            language=settings.news_language,
            page_size=settings.news_page_size,
            timeout=settings.news_timeout,
            transport=transport,
        )

    async def fetch(self, query: str | None = None, page: int = 1) -> NewsPage:
        """Fetch one page of articles. Raises UpstreamFeedUnavailable on any failure."""
        if not self.api_key:
            raise UpstreamFeedUnavailable("NEWS_API_KEY is not configured")

        page = max(page, 1)
        search = (query or "").strip()
        params = {
            "q": search or self.default_query,
            "language": self.language,
            "page": page,
            "pageSize": self.page_size,
            "apiKey": self.api_key,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(self.base_url, params=params)
                resp.raise_for_status()
                data = resp.json()
            raw_articles = data["articles"]
            total_results = int(data.get("totalResults") or 0)
        except httpx.HTTPError as exc:
            raise UpstreamFeedUnavailable(f"News API request failed: {exc}") from exc
        except (ValueError, KeyError, TypeError) as exc:
            raise UpstreamFeedUnavailable(f"Unexpected News API payload: {exc}") from exc

        return NewsPage(
            articles=[Article.from_api(a) for a in raw_articles if isinstance(a, dict)],
            current_page=page,
            total_pages=max(1, math.ceil(total_results / self.page_size)),
            query=search,
            total_results=total_results,
        )

    async def load_feed(self, query: str | None = None, page: int = 1) -> NewsPage:
        """Like fetch(), but never fails: returns the fallback page instead."""
        try:
            result = await self.fetch(query, page)
        except UpstreamFeedUnavailable as exc:
            logger.warning("News feed unavailable, serving fallback", error=str(exc))
            return fallback_page((query or "").strip())
        if not result.articles:
            logger.info("News API returned no articles, serving fallback", query=result.query)
            return fallback_page(result.query)
        return result
