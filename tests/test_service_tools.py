"""Tests for the tool sets bound to services: auth, funder data and search."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from funder_assistant.categories import ToolCategory
from funder_assistant.services.backend_client import BackendAPIError, BackendResponse
from funder_assistant.services.search import SearchResult, SearchUnavailableError
from funder_assistant.store.auth import AuthStore
from funder_assistant.tools import all_tools, build_toolsets
from funder_assistant.tools.auth import build_auth_tools
from funder_assistant.tools.data import NOT_LOGGED_IN, build_data_tools, format_funders
from funder_assistant.tools.search import build_search_tools


def _tools_by_name(tools) -> dict:
    return {t.name: t for t in tools}


@pytest.fixture
def auth_store(data_dir):
    return AuthStore(data_dir)


@pytest.fixture
def logged_in(auth_store):
    auth_store.save({
        "isLoggedIn": True,
        "token": "tok",
        "cookies": ["sid=abc"],
        "userData": {"user": {"email": "grants@funder.org"}},
    })
    return auth_store


# ── Auth ─────────────────────────────────────────────────────────────


class TestAuthTools:
    def test_login_saves_auth(self, auth_store):
        backend = MagicMock()
        backend.login.return_value = BackendResponse(
            200, {"token": "tok", "user": {"email": "grants@funder.org"}}, ["sid=abc; HttpOnly"],
        )
        tools = _tools_by_name(build_auth_tools(backend, auth_store))

        result = tools["login_funder"].invoke({"email": "grants@funder.org", "password": "pw"})

        assert result.startswith("✅ login successful!")
        assert "user: grants@funder.org" in result
        data = auth_store.load()
        assert data["isLoggedIn"] is True
        assert data["token"] == "tok"
        assert data["cookies"] == ["sid=abc; HttpOnly"]

    def test_login_rejected_clears_auth(self, logged_in):
        backend = MagicMock()
        backend.login.side_effect = BackendAPIError(
            "Client error 401", status_code=401, payload={"message": "Invalid credentials"},
        )
        tools = _tools_by_name(build_auth_tools(backend, logged_in))

        result = tools["login_funder"].invoke({"email": "a@b.org", "password": "wrong"})

        assert "status code: 401" in result
        assert "Invalid credentials" in result
        assert not logged_in.has_valid_auth()

    def test_login_network_error(self, auth_store):
        backend = MagicMock()
        backend.login.side_effect = BackendAPIError("failed after 3 retries")
        tools = _tools_by_name(build_auth_tools(backend, auth_store))
        result = tools["login_funder"].invoke({"email": "a@b.org", "password": "pw"})
        assert result.startswith("❌ login failed! network error")

    def test_status_logged_out(self, auth_store):
        tools = _tools_by_name(build_auth_tools(MagicMock(), auth_store))
        assert tools["check_auth_status"].invoke({}).startswith("❌ not logged in")
        assert tools["get_auth_data"].invoke({}) == "❌ not logged in, cannot get auth data"

    def test_status_logged_in(self, logged_in):
        tools = _tools_by_name(build_auth_tools(MagicMock(), logged_in))
        status = tools["check_auth_status"].invoke({})
        assert status.startswith("✅ current logged in")
        assert "  - cookies count: 1" in status
        assert "  - user: grants@funder.org" in status

    def test_authenticated_request_uses_saved_auth(self, logged_in):
        backend = MagicMock()
        backend.get.return_value = BackendResponse(200, {"id": 7})
        tools = _tools_by_name(build_auth_tools(backend, logged_in))

        result = tools["authenticated_request"].invoke({"url": "/profile"})

        backend.get.assert_called_once_with("/profile", token="tok", cookies=["sid=abc"])
        assert '"id": 7' in result


# ── Funder data ──────────────────────────────────────────────────────


class TestDataTools:
    def test_requires_login(self, auth_store):
        backend = MagicMock()
        tools = _tools_by_name(build_data_tools(backend, auth_store))
        assert tools["get_funders_list"].invoke({}) == NOT_LOGGED_IN
        backend.list_funders.assert_not_called()

    def test_get_funders_list(self, logged_in):
        backend = MagicMock()
        backend.list_funders.return_value = BackendResponse(200, {
            "data": [{"id": 1, "name": "Green Fund", "status": True}],
            "pagination": {"page": 1, "limit": 10, "total": 1, "pages": 1},
        })
        tools = _tools_by_name(build_data_tools(backend, logged_in))

        result = tools["get_funders_list"].invoke({"page": 1, "search": "green"})

        backend.list_funders.assert_called_once_with(
            {"page": 1, "search": "green"}, token="tok", cookies=["sid=abc"],
        )
        assert "1. Green Fund" in result
        assert "status: active" in result
        assert "  - total count: 1" in result

    def test_interactive_defaults(self, logged_in):
        backend = MagicMock()
        backend.list_funders.return_value = BackendResponse(200, [])
        tools = _tools_by_name(build_data_tools(backend, logged_in))

        result = tools["interactive_get_funders"].invoke({})

        params = backend.list_funders.call_args[0][0]
        assert params == {"page": 1, "limit": 2, "include_inactive": True, "sort": "-created_at"}
        assert '  - sorting method: "-created_at"' in result

    def test_unauthorized_has_suggestion(self, logged_in):
        backend = MagicMock()
        backend.list_funders.side_effect = BackendAPIError(
            "Client error 401", status_code=401, payload={"message": "expired"},
        )
        tools = _tools_by_name(build_data_tools(backend, logged_in))

        result = tools["interactive_get_funders"].invoke({})

        assert "status code: 401" in result
        assert "please login again" in result

    def test_format_raw_payload(self):
        assert "raw response data" in format_funders({"unexpected": True})


# ── Search ───────────────────────────────────────────────────────────


class TestSearchTools:
    def test_web_search(self):
        client = MagicMock()
        client.search.return_value = [
            SearchResult("Grant news", "https://news.example/1", "New grants announced"),
        ]
        tools = _tools_by_name(build_search_tools(client))

        result = tools["web_search"].invoke({"query": "grant news"})

        client.search.assert_called_once_with("grant news", max_results=5)
        assert "1. **Grant news**" in result
        assert "   URL: https://news.example/1" in result

    def test_quick_search_truncates(self):
        client = MagicMock()
        client.search.return_value = [SearchResult("t", "u", "x" * 300)]
        tools = _tools_by_name(build_search_tools(client))

        result = tools["quick_search"].invoke({"query": "q"})

        client.search.assert_called_once_with("q", max_results=3)
        assert "x" * 150 + "..." in result

    def test_unavailable(self):
        client = MagicMock()
        client.search.side_effect = SearchUnavailableError("TAVILY_API_KEY not found in environment variables.")
        tools = _tools_by_name(build_search_tools(client))
        assert tools["web_search"].invoke({"query": "q"}).startswith("❌ Error: TAVILY_API_KEY not found")

    def test_no_results(self):
        client = MagicMock()
        client.search.return_value = []
        tools = _tools_by_name(build_search_tools(client))
        assert tools["web_search"].invoke({"query": "zzz"}) == '🔍 No search results found for query: "zzz"'


# ── Registry ─────────────────────────────────────────────────────────


class TestToolsets:
    def test_every_category_present(self, auth_store):
        toolsets = build_toolsets(MagicMock(), auth_store, MagicMock())
        assert set(toolsets) == set(ToolCategory)
        assert toolsets[ToolCategory.GENERAL] == []

    def test_tool_names_unique(self, auth_store):
        names = [t.name for t in all_tools(build_toolsets(MagicMock(), auth_store, MagicMock()))]
        assert len(names) == len(set(names))
        assert "login_funder" in names
        assert "calculator" in names
