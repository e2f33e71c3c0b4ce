"""JSON file persistence shared by the conversation and auth stores.

Every save rewrites the whole document; there is no locking or merging,
so the last writer wins.  Failures never propagate: loads fall back to
the caller's default and saves report ``False``.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

logger = logging.getLogger(__name__)


class JsonFileStorage:
    """A single JSON document on disk."""

    def __init__(self, filename: str, data_dir: str) -> None:
        self.data_dir = data_dir
        self.file_path = os.path.join(data_dir, filename)

    def _ensure_data_dir(self) -> None:
        os.makedirs(self.data_dir, exist_ok=True)

    def load(self, default: Any = None) -> Any:
        """Return the parsed document, or *default* if missing or unreadable."""
        try:
            if not os.path.exists(self.file_path):
                return default
            with open(self.file_path, encoding="utf-8") as fh:
                return json.load(fh)
        except (OSError, ValueError) as exc:
            logger.warning("Failed to load %s: %s", self.file_path, exc)
            return default

    def save(self, data: Any) -> bool:
        try:
            self._ensure_data_dir()
            with open(self.file_path, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, ensure_ascii=False)
            return True
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Failed to save %s: %s", self.file_path, exc)
            return False

    def clear(self) -> bool:
        """Delete the backing file.  Returns ``False`` only on I/O failure."""
        try:
            if os.path.exists(self.file_path):
                os.remove(self.file_path)
            return True
        except OSError as exc:
            logger.warning("Failed to clear %s: %s", self.file_path, exc)
            return False

    def exists(self) -> bool:
        return os.path.exists(self.file_path)
