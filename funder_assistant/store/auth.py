"""Funder backend login state persisted as ``auth.json``.

Stored data older than ``AUTH_TTL`` is treated as expired and replaced by
the logged-out default at load time.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from funder_assistant.store.storage import JsonFileStorage

logger = logging.getLogger(__name__)

AUTH_FILE = "auth.json"
AUTH_TTL = timedelta(hours=24)


def default_auth_data() -> dict[str, Any]:
    return {
        "isLoggedIn": False,
        "cookies": [],
        "token": None,
        "userData": None,
        "lastLoginTime": None,
    }


class AuthStore:
    """Load/save wrapper around the auth document."""

    def __init__(self, data_dir: str, *, now=None) -> None:
        self.storage = JsonFileStorage(AUTH_FILE, data_dir)
        self._now = now or (lambda: datetime.now(UTC))

    def _is_expired(self, last_login: Any) -> bool:
        """Whether the stored login is too old; an unreadable time counts as expired."""
        if not last_login:
            return False
        try:
            logged_in_at = datetime.fromisoformat(last_login)
        except (TypeError, ValueError):
            logger.warning("Unreadable lastLoginTime %r in %s", last_login, self.storage.file_path)
            return True
        if logged_in_at.tzinfo is None:
            logged_in_at = logged_in_at.replace(tzinfo=UTC)
        return self._now() - logged_in_at > AUTH_TTL

    def load(self) -> dict[str, Any]:
        data = self.storage.load(default_auth_data())
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed auth file %s", self.storage.file_path)
            return default_auth_data()

        if self._is_expired(data.get("lastLoginTime")):
            logger.info("Stored auth data expired, using logged-out defaults")
            return default_auth_data()

        return {**default_auth_data(), **data}

    def save(self, auth_data: dict[str, Any]) -> bool:
        """Persist *auth_data*, stamping ``lastLoginTime`` with the current time."""
        data = {
            **default_auth_data(),
            **auth_data,
            "lastLoginTime": self._now().isoformat(),
        }
        return self.storage.save(data)

    def clear(self) -> bool:
        return self.storage.save(default_auth_data())

    def has_valid_auth(self) -> bool:
        data = self.load()
        return bool(data["isLoggedIn"] and (data["token"] or data["cookies"]))

    def summary(self) -> str:
        data = self.load()
        if not data["isLoggedIn"]:
            return "🔒 Not logged in"

        user = data.get("userData")
        if isinstance(user, dict):
            name = user.get("email") or user.get("name") or "unknown user"
        else:
            name = str(user) if user else "unknown user"
        cookies = data["cookies"] if isinstance(data["cookies"], list) else []
        return (
            f"🔓 Logged in as {name} "
            f"(token: {'yes' if data['token'] else 'no'}, "
            f"cookies: {len(cookies)}, "
            f"since: {data['lastLoginTime']})"
        )
