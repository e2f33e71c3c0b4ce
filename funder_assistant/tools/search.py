"""LangChain tools for web search via Tavily."""

from __future__ import annotations

import logging

from langchain_core.tools import BaseTool, tool

from funder_assistant.services.search import SearchClient, SearchUnavailableError

logger = logging.getLogger(__name__)

WEB_SEARCH_RESULTS = 5
QUICK_SEARCH_RESULTS = 3
QUICK_SNIPPET_LENGTH = 150


def build_search_tools(search_client: SearchClient) -> list[BaseTool]:
    """Create the SEARCH tool set bound to *search_client*."""

    def _search(query: str, max_results: int):
        try:
            return search_client.search(query, max_results=max_results), None
        except SearchUnavailableError as exc:
            return None, f"❌ Error: {exc} Please set your Tavily API key."
        except Exception as exc:
            logger.warning("Tavily search failed: %s", exc)
            return None, f"❌ Search failed: {exc}"

    @tool
    def web_search(query: str) -> str:
        """Search the web using the Tavily API to get current information from the internet.

        Args:
            query: The search query to look up on the web.
        """
        results, error = _search(query, WEB_SEARCH_RESULTS)
        if error:
            return error
        if not results:
            return f'🔍 No search results found for query: "{query}"'

        lines = [f'🔍 Search results for: "{query}"', ""]
        for index, result in enumerate(results, start=1):
            lines += [
                f"{index}. **{result.title}**",
                f"   URL: {result.url}",
                f"   Summary: {result.content}",
                "",
            ]
        return "\n".join(lines)

    @tool
    def quick_search(query: str) -> str:
        """Quick web search returning the top 3 results with short snippets.

        Args:
            query: The search query.
        """
        results, error = _search(query, QUICK_SEARCH_RESULTS)
        if error:
            return error
        if not results:
            return f'🔍 No quick search results found for: "{query}"'

        lines = [f'⚡ Quick search results for: "{query}"', ""]
        for index, result in enumerate(results, start=1):
            snippet = result.content[:QUICK_SNIPPET_LENGTH]
            if len(result.content) > QUICK_SNIPPET_LENGTH:
                snippet += "..."
            lines += [f"{index}. {result.title}", f"   {result.url}", f"   {snippet}", ""]
        return "\n".join(lines)

    return [web_search, quick_search]
