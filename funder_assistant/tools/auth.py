"""LangChain tools for funder backend authentication.

Login state lives in the :class:`~funder_assistant.store.auth.AuthStore`
so it survives restarts (for 24 hours).  Every tool returns a
human-readable string; failures are reported in the string, never raised.
"""

from __future__ import annotations

import json
import logging

import httpx
from langchain_core.tools import BaseTool, tool

from funder_assistant.services.backend_client import BackendAPIError, BackendClient
from funder_assistant.store.auth import AuthStore

logger = logging.getLogger(__name__)


def _user_label(user_data) -> str | None:
    if not isinstance(user_data, dict):
        return None
    user = user_data.get("user")
    if isinstance(user, dict):
        return user.get("email") or user.get("username") or "N/A"
    return None


def _extract_token(data) -> str | None:
    if not isinstance(data, dict):
        return None
    return data.get("token") or data.get("accessToken") or data.get("access_token")


def _error_details(exc: BackendAPIError) -> str:
    if exc.payload is None:
        return str(exc)
    if isinstance(exc.payload, str):
        return exc.payload
    return json.dumps(exc.payload, indent=2, ensure_ascii=False)


def build_auth_tools(backend: BackendClient, auth_store: AuthStore) -> list[BaseTool]:
    """Create the AUTH tool set bound to *backend* and *auth_store*."""

    @tool
    def login_funder(email: str, password: str) -> str:
        """Log in a funder account with email and password and save the auth data
        (token and session cookies) to persistent storage.

        Args:
            email: Login email address.
            password: Login password.
        """
        try:
            response = backend.login(email, password)
        except BackendAPIError as exc:
            auth_store.clear()
            if exc.status_code is None:
                return f"❌ login failed! network error: cannot connect to server ({exc})"
            return (
                f"❌ login failed!\nstatus code: {exc.status_code}\n"
                f"error message: {_error_details(exc)}"
            )
        except httpx.HTTPError as exc:
            auth_store.clear()
            return f"❌ login failed! request error: {exc}"

        auth_store.save({
            "isLoggedIn": True,
            "cookies": response.cookies,
            "token": _extract_token(response.data),
            "userData": response.data if isinstance(response.data, dict) else None,
        })
        logger.info("Funder login succeeded (status %d)", response.status_code)

        lines = ["✅ login successful!", f"status code: {response.status_code}"]
        user = _user_label(response.data)
        if user:
            lines.append(f"user: {user}")
        lines.append("📋 auth data saved to persistent storage, can be used for subsequent requests")
        return "\n".join(lines)

    @tool
    def check_auth_status() -> str:
        """Check the current login status and the persisted auth data."""
        data = auth_store.load()
        if not data["isLoggedIn"]:
            return "❌ not logged in\nplease login first"

        lines = [
            "✅ current logged in",
            "📊 auth data overview:",
            "  - login status: logged in",
            f"  - cookies count: {len(data['cookies'] or [])}",
            f"  - token: {'got' if data['token'] else 'none'}",
        ]
        if data["userData"]:
            lines.append("  - user data: saved")
            user = _user_label(data["userData"])
            if user:
                lines.append(f"  - user: {user}")
        if data["lastLoginTime"]:
            lines.append(f"  - last login: {data['lastLoginTime']}")
        lines.append("💾 auth data saved to persistent storage, still valid after restart")
        return "\n".join(lines)

    @tool
    def get_auth_data() -> str:
        """Get detailed auth data: cookies, token availability and last login time."""
        data = auth_store.load()
        if not data["isLoggedIn"]:
            return "❌ not logged in, cannot get auth data"

        lines = [
            "🔑 current auth data:",
            "📋 data overview:",
            "  - login status: logged in",
            f"  - cookies count: {len(data['cookies'] or [])}",
            f"  - token: {'available' if data['token'] else 'none'}",
        ]
        user = _user_label(data["userData"])
        if user:
            lines.append(f"  - user: {user}")
        if data["lastLoginTime"]:
            lines.append(f"⏰ last login time: {data['lastLoginTime']}")
        lines.append("💾 data source: persistent storage")
        return "\n".join(lines)

    @tool
    def authenticated_request(url: str) -> str:
        """Send a GET request using the saved auth data.

        Args:
            url: Absolute URL, or a path relative to the backend API base URL.
        """
        data = auth_store.load()
        if not data["isLoggedIn"]:
            return "❌ not logged in, cannot send auth request. please login first."

        try:
            response = backend.get(url, token=data["token"], cookies=data["cookies"])
        except BackendAPIError as exc:
            if exc.status_code is None:
                return f"❌ request failed: {exc}"
            return (
                f"❌ auth request failed!\nstatus code: {exc.status_code}\n"
                f"error message: {_error_details(exc)}"
            )
        except httpx.HTTPError as exc:
            return f"❌ request failed: {exc}"

        body = json.dumps(response.data, ensure_ascii=False, default=str)
        return (
            "✅ auth request successful!\n"
            f"status code: {response.status_code}\n"
            f"response size: {len(body)} characters\n"
            f"response: {body[:1000]}\n"
            "💾 using auth data from persistent storage"
        )

    return [login_funder, check_auth_status, get_auth_data, authenticated_request]
