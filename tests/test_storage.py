"""Tests for JSON file storage and the auth store."""

from __future__ import annotations

import json
import os
from datetime import UTC, datetime, timedelta

from funder_assistant.store.auth import AuthStore, default_auth_data
from funder_assistant.store.storage import JsonFileStorage

NOW = datetime(2025, 7, 17, 12, 0, tzinfo=UTC)


class TestJsonFileStorage:
    def test_missing_file_returns_default(self, data_dir):
        storage = JsonFileStorage("missing.json", data_dir)
        assert storage.load({"a": 1}) == {"a": 1}
        assert not storage.exists()

    def test_save_creates_directory(self, data_dir):
        storage = JsonFileStorage("doc.json", data_dir)
        assert storage.save({"name": "Jürgen"})
        assert os.path.isdir(data_dir)
        assert storage.load() == {"name": "Jürgen"}

    def test_corrupt_file_returns_default(self, data_dir):
        os.makedirs(data_dir)
        with open(os.path.join(data_dir, "doc.json"), "w", encoding="utf-8") as fh:
            fh.write("{not json")
        assert JsonFileStorage("doc.json", data_dir).load([]) == []

    def test_unserializable_data_reports_false(self, data_dir):
        assert not JsonFileStorage("doc.json", data_dir).save({"bad": object()})

    def test_clear(self, data_dir):
        storage = JsonFileStorage("doc.json", data_dir)
        storage.save([1, 2])
        assert storage.clear()
        assert not storage.exists()
        assert storage.clear()


class TestAuthStore:
    def _store(self, data_dir, now=NOW) -> AuthStore:
        return AuthStore(data_dir, now=lambda: now)

    def test_defaults_when_empty(self, data_dir):
        store = self._store(data_dir)
        assert store.load() == default_auth_data()
        assert not store.has_valid_auth()
        assert store.summary() == "🔒 Not logged in"

    def test_save_stamps_login_time(self, data_dir):
        store = self._store(data_dir)
        store.save({"isLoggedIn": True, "token": "tok", "userData": {"email": "a@b.org"}})

        data = store.load()
        assert data["lastLoginTime"] == NOW.isoformat()
        assert data["cookies"] == []
        assert store.has_valid_auth()
        assert "a@b.org" in store.summary()

    def test_cookies_alone_count_as_valid(self, data_dir):
        store = self._store(data_dir)
        store.save({"isLoggedIn": True, "cookies": ["sid=1"]})
        assert store.has_valid_auth()

    def test_expires_after_24_hours(self, data_dir):
        self._store(data_dir, now=NOW - timedelta(hours=30)).save(
            {"isLoggedIn": True, "token": "tok"}
        )
        store = self._store(data_dir)
        assert store.load() == default_auth_data()
        assert not store.has_valid_auth()

    def test_still_valid_within_24_hours(self, data_dir):
        self._store(data_dir, now=NOW - timedelta(hours=23)).save(
            {"isLoggedIn": True, "token": "tok"}
        )
        assert self._store(data_dir).has_valid_auth()

    def test_clear_logs_out(self, data_dir):
        store = self._store(data_dir)
        store.save({"isLoggedIn": True, "token": "tok"})
        store.clear()
        assert not store.has_valid_auth()

    def test_file_shape(self, data_dir):
        self._store(data_dir).save({"isLoggedIn": True, "token": "tok"})
        with open(os.path.join(data_dir, "auth.json"), encoding="utf-8") as fh:
            raw = json.load(fh)
        assert set(raw) == {"isLoggedIn", "cookies", "token", "userData", "lastLoginTime"}

    def _write_raw(self, data_dir, data) -> None:
        os.makedirs(data_dir, exist_ok=True)
        with open(os.path.join(data_dir, "auth.json"), "w", encoding="utf-8") as fh:
            json.dump(data, fh)

    def test_numeric_login_time_loads_defaults(self, data_dir):
        self._write_raw(data_dir, {"isLoggedIn": True, "token": "tok", "lastLoginTime": 1752780277309})
        store = self._store(data_dir)
        assert store.load() == default_auth_data()
        assert store.summary() == "🔒 Not logged in"

    def test_summary_with_unexpected_user_data(self, data_dir):
        self._write_raw(data_dir, {
            "isLoggedIn": True,
            "token": "tok",
            "cookies": "sid=1",
            "userData": "funder@example.org",
            "lastLoginTime": NOW.isoformat(),
        })
        summary = self._store(data_dir).summary()
        assert summary.startswith("🔓 Logged in as funder@example.org")
        assert "cookies: 0" in summary
