"""LangChain tools for reading funder data from the backend (login required)."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx
from langchain_core.tools import BaseTool, tool

from funder_assistant.services.backend_client import BackendAPIError, BackendClient
from funder_assistant.store.auth import AuthStore

logger = logging.getLogger(__name__)

NOT_LOGGED_IN = "❌ not logged in, cannot get funders list. please login first."

_STATUS_SUGGESTIONS = {
    401: "💡 suggestion: please login again to get valid auth information",
    403: "💡 suggestion: current user may not have access to funders",
    404: "💡 suggestion: check if the API endpoint is correct",
}


def _format_funder(index: int, funder: dict[str, Any]) -> list[str]:
    lines = [f"\n{index}. {funder.get('name') or 'unnamed'}"]
    if funder.get("id"):
        lines.append(f"   ID: {funder['id']}")
    if funder.get("description"):
        lines.append(f"   description: {funder['description']}")
    if funder.get("status") is not None:
        lines.append(f"   status: {'active' if funder['status'] else 'inactive'}")
    if funder.get("created_at"):
        lines.append(f"   created at: {funder['created_at']}")
    return lines


def format_funders(data: Any) -> str:
    """Render a ``/funders`` payload (paginated object or bare list)."""
    lines: list[str] = []
    funders = None
    if isinstance(data, dict):
        pagination = data.get("pagination")
        if isinstance(pagination, dict):
            lines += [
                "\n📄 pagination info:",
                f"  - current page: {pagination.get('page', 'N/A')}",
                f"  - limit per page: {pagination.get('limit', 'N/A')}",
                f"  - total count: {pagination.get('total', 'N/A')}",
                f"  - total pages: {pagination.get('pages', 'N/A')}",
            ]
        if isinstance(data.get("data"), list):
            funders = data["data"]
    elif isinstance(data, list):
        funders = data

    if funders is None:
        lines.append(f"\n📋 raw response data:\n{json.dumps(data, indent=2, ensure_ascii=False, default=str)}")
        return "\n".join(lines)

    lines.append(f"\n🏢 funders list (total {len(funders)} funders):")
    for index, funder in enumerate(funders, start=1):
        if isinstance(funder, dict):
            lines += _format_funder(index, funder)
    return "\n".join(lines)


def _failure_message(exc: Exception, *, with_suggestions: bool) -> str:
    lines = ["❌ get funders list failed!"]
    if isinstance(exc, BackendAPIError) and exc.status_code is not None:
        lines.append(f"status code: {exc.status_code}")
        payload = exc.payload if exc.payload is not None else str(exc)
        if not isinstance(payload, str):
            payload = json.dumps(payload, indent=2, ensure_ascii=False)
        lines.append(f"error message: {payload}")
        if with_suggestions and exc.status_code in _STATUS_SUGGESTIONS:
            lines.append(_STATUS_SUGGESTIONS[exc.status_code])
    else:
        lines.append("network error: cannot connect to server")
        if with_suggestions:
            lines.append("💡 suggestion: check if the backend server is running")
    return "\n".join(lines)


def build_data_tools(backend: BackendClient, auth_store: AuthStore) -> list[BaseTool]:
    """Create the DATA tool set bound to *backend* and *auth_store*."""

    def _fetch(params: dict[str, Any]):
        auth = auth_store.load()
        if not auth["isLoggedIn"]:
            return None, NOT_LOGGED_IN
        return backend.list_funders(params, token=auth["token"], cookies=auth["cookies"]), None

    @tool
    def get_funders_list(
        page: int | None = None,
        limit: int | None = None,
        search: str | None = None,
        include_inactive: bool | None = None,
        sort: str | None = None,
    ) -> str:
        """Get the funders list with pagination, search and sorting. Requires login.

        Args:
            page: Page number, default is 1.
            limit: Items per page, default is 10.
            search: Keyword matched against funder names.
            include_inactive: Whether to include inactive funders, default is true.
            sort: Sort order, e.g. '-name' (descending) or '+name' (ascending).
        """
        params = {
            "page": page,
            "limit": limit,
            "search": search or None,
            "include_inactive": include_inactive,
            "sort": sort or None,
        }
        params = {k: v for k, v in params.items() if v is not None}
        try:
            response, error = _fetch(params)
        except (BackendAPIError, httpx.HTTPError) as exc:
            logger.warning("get_funders_list failed: %s", exc)
            return _failure_message(exc, with_suggestions=False)
        if error:
            return error

        return (
            "✅ funders list get successful!\n"
            f"📊 request params: {json.dumps(params, indent=2)}\n"
            f"📈 response status: {response.status_code}\n"
            f"{format_funders(response.data)}\n"
            "💾 using auth data from persistent storage"
        )

    @tool
    def interactive_get_funders(
        page: int | None = None,
        limit: int | None = None,
        search: str | None = None,
        include_inactive: bool | None = None,
        sort: str | None = None,
    ) -> str:
        """Get the latest funders with smart defaults (2 newest, inactive included)
        and return the raw data with the query used. Requires login.

        Args:
            page: Page number, default is 1.
            limit: Items per page, default is 2.
            search: Keyword matched against funder name or description.
            include_inactive: Whether to include inactive funders, default is true.
            sort: Sort order, default '-created_at' (newest first).
        """
        params: dict[str, Any] = {
            "page": page or 1,
            "limit": limit or 2,
            "include_inactive": True if include_inactive is None else include_inactive,
            "sort": (sort or "").strip() or "-created_at",
        }
        if search and search.strip():
            params["search"] = search.strip()

        try:
            response, error = _fetch(params)
        except (BackendAPIError, httpx.HTTPError) as exc:
            logger.warning("interactive_get_funders failed: %s", exc)
            return _failure_message(exc, with_suggestions=True)
        if error:
            return error

        lines = [
            "✅ funders list get successful!",
            f"📈 response status: {response.status_code}",
            "📋 used query parameters:",
            f"  - page number: {params['page']}",
            f"  - limit per page: {params['limit']}",
        ]
        if "search" in params:
            lines.append(f'  - search keyword: "{params["search"]}"')
        lines.append(f"  - include inactive: {'yes' if params['include_inactive'] else 'no'}")
        lines.append(f'  - sorting method: "{params["sort"]}"')
        if response.data:
            lines.append(
                "\n📋 raw response data:\n"
                + json.dumps(response.data, indent=2, ensure_ascii=False, default=str)
            )
        lines.append("💾 using auth data from persistent storage")
        return "\n".join(lines)

    return [get_funders_list, interactive_get_funders]
