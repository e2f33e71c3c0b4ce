"""Tool sets grouped by :class:`~funder_assistant.categories.ToolCategory`."""

from __future__ import annotations

from langchain_core.tools import BaseTool

from funder_assistant.categories import ToolCategory
from funder_assistant.services.backend_client import BackendClient
from funder_assistant.services.search import SearchClient
from funder_assistant.store.auth import AuthStore
from funder_assistant.tools.auth import build_auth_tools
from funder_assistant.tools.calculator import build_math_tools
from funder_assistant.tools.data import build_data_tools
from funder_assistant.tools.files import build_file_tools
from funder_assistant.tools.http_requests import build_http_tools
from funder_assistant.tools.search import build_search_tools
from funder_assistant.tools.text import build_text_tools


def build_toolsets(
    backend: BackendClient,
    auth_store: AuthStore,
    search_client: SearchClient,
) -> dict[ToolCategory, list[BaseTool]]:
    """Build every tool set.  GENERAL has no tools and answers directly."""
    return {
        ToolCategory.AUTH: build_auth_tools(backend, auth_store),
        ToolCategory.DATA: build_data_tools(backend, auth_store),
        ToolCategory.SEARCH: build_search_tools(search_client),
        ToolCategory.FILE: build_file_tools(),
        ToolCategory.TEXT: build_text_tools(),
        ToolCategory.MATH: build_math_tools(),
        ToolCategory.HTTP: build_http_tools(),
        ToolCategory.GENERAL: [],
    }


def all_tools(toolsets: dict[ToolCategory, list[BaseTool]]) -> list[BaseTool]:
    return [t for tools in toolsets.values() for t in tools]
