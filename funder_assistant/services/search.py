"""Web search through the Tavily API."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tavily import TavilyClient

from funder_assistant.services.metrics import timed

logger = logging.getLogger(__name__)


class SearchUnavailableError(Exception):
    """Raised when searching without a configured Tavily API key."""


@dataclass
class SearchResult:
    title: str
    url: str
    content: str


class SearchClient:
    """Wraps :class:`tavily.TavilyClient`; available only with an API key."""

    def __init__(self, api_key: str | None, *, metrics=None) -> None:
        self._metrics = metrics
        self._client = TavilyClient(api_key=api_key) if api_key else None
        if self._client is None:
            logger.info("TAVILY_API_KEY not set, web search disabled")

    @property
    def available(self) -> bool:
        return self._client is not None

    def search(self, query: str, max_results: int = 5) -> list[SearchResult]:
        if self._client is None:
            raise SearchUnavailableError("TAVILY_API_KEY not found in environment variables.")

        with timed(self._metrics, "tavily", "search"):
            response = self._client.search(
                query=query,
                max_results=max_results,
                search_depth="advanced",
            )

        return [
            SearchResult(
                title=item.get("title") or "No title",
                url=item.get("url") or "No URL",
                content=item.get("content") or "No content",
            )
            for item in response.get("results", [])
        ]
