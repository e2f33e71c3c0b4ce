"""Tool categories the router can choose between.

The router model is asked for one of the category labels (``AUTH_TOOLS``,
``DATA_TOOLS`` …).  Its answer is one input to classification, not the
final word:

  1. :meth:`ToolCategory.parse` maps the model output to a category;
  2. if that fails, :func:`classify_by_keywords` looks at the user's text;
  3. if that fails too, :attr:`ToolCategory.GENERAL` answers without tools.
"""

from __future__ import annotations

import re
from enum import Enum


class ToolCategory(Enum):
    AUTH = "AUTH_TOOLS"
    DATA = "DATA_TOOLS"
    SEARCH = "SEARCH_TOOLS"
    FILE = "FILE_TOOLS"
    TEXT = "TEXT_TOOLS"
    MATH = "MATH_TOOLS"
    HTTP = "HTTP_TOOLS"
    GENERAL = "GENERAL"

    @property
    def label(self) -> str:
        return self.value

    @property
    def node_name(self) -> str:
        """Graph node executing this category's tool calls."""
        return f"{self.name.lower()}_tools"

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    @classmethod
    def routable(cls) -> list[ToolCategory]:
        """Categories offered to the router (everything except the fallback)."""
        return [c for c in cls if c is not cls.GENERAL]

    @classmethod
    def parse(cls, raw: str | None) -> ToolCategory | None:
        """Map router output such as ``"DATA_TOOLS"`` or ``"data"`` to a category.

        Returns ``None`` when the text names no category or names several.
        """
        if not raw:
            return None
        text = raw.strip().upper()

        for category in cls:
            if text in (category.value, category.name):
                return category

        mentioned = {
            category
            for category in cls.routable()
            if re.search(rf"\b{category.value}\b", text)
        }
        if len(mentioned) == 1:
            return mentioned.pop()
        return None


_DESCRIPTIONS = {
    ToolCategory.AUTH: "For authentication, login, auth status checks, user credentials",
    ToolCategory.DATA: "For data retrieval, funder information, data operations, information display",
    ToolCategory.SEARCH: "For web search, internet information retrieval, current news, online research",
    ToolCategory.FILE: "For file operations, reading/writing files, directory listing, file management",
    ToolCategory.TEXT: "For text processing, analysis, transformation, extraction, string manipulation",
    ToolCategory.MATH: "For mathematical calculations, statistics, unit conversions, numerical analysis",
    ToolCategory.HTTP: "For HTTP requests, API calls, URL analysis, network connectivity testing",
    ToolCategory.GENERAL: "General conversation that needs no tools",
}

# Checked in order; the first category with a matching keyword wins
_KEYWORDS: tuple[tuple[ToolCategory, tuple[str, ...]], ...] = (
    (ToolCategory.AUTH, ("login", "log in", "logout", "password", "sign in", "auth", "credential")),
    (ToolCategory.DATA, ("funder", "funders")),
    (ToolCategory.FILE, ("file", "directory", "folder")),
    (ToolCategory.HTTP, ("http", "url", "ping", "endpoint", "api call")),
    (ToolCategory.MATH, (
        "calculate", "calculation", "statistics", "average", "mean", "median",
        "convert", "sqrt", "sum of",
    )),
    (ToolCategory.TEXT, ("uppercase", "lowercase", "word count", "extract", "replace", "text")),
    (ToolCategory.SEARCH, ("search", "news", "latest", "look up", "google", "web")),
)


def classify_by_keywords(text: str) -> ToolCategory | None:
    """Best-effort category from the user's own words."""
    lowered = (text or "").lower()
    for category, keywords in _KEYWORDS:
        if any(re.search(rf"\b{re.escape(k)}\b", lowered) for k in keywords):
            return category
    return None
