"""Conversation history persisted as ``conversations.json``.

The document holds a newest-first list of conversations.  Each mutation
loads the whole file, edits it in memory and rewrites it; once more than
``max_conversations`` are stored the oldest ones fall off the end.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from langchain_core.messages import AnyMessage

from funder_assistant.store.messages import (
    content_text,
    deserialize_messages,
    is_human,
    serialize_message,
)
from funder_assistant.store.storage import JsonFileStorage

logger = logging.getLogger(__name__)

CONVERSATIONS_FILE = "conversations.json"
DEFAULT_MAX_CONVERSATIONS = 100
TITLE_LENGTH = 30
SUMMARY_LIMIT = 5


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class Conversation:
    """A stored conversation thread."""

    id: str
    title: str
    messages: list[AnyMessage] = field(default_factory=list)
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "messages": [serialize_message(m) for m in self.messages],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Conversation:
        return cls(
            id=str(data["id"]),
            title=data.get("title") or "New conversation",
            messages=deserialize_messages(data.get("messages", [])),
            created_at=data.get("createdAt") or _now_iso(),
            updated_at=data.get("updatedAt") or _now_iso(),
        )


def generate_title(messages: list[AnyMessage]) -> str:
    """Title from the first human message, cut to 30 characters."""
    if not messages:
        return "New conversation"

    for message in messages:
        if is_human(message):
            text = content_text(message)
            title = text[:TITLE_LENGTH]
            if len(text) > TITLE_LENGTH:
                title += "..."
            return title

    return f"Conversation {datetime.now().strftime('%Y-%m-%d %H:%M')}"


class ConversationStore:
    """CRUD over the conversation history file."""

    def __init__(
        self,
        data_dir: str,
        max_conversations: int = DEFAULT_MAX_CONVERSATIONS,
    ) -> None:
        self.storage = JsonFileStorage(CONVERSATIONS_FILE, data_dir)
        self.max_conversations = max_conversations

    # ── Load / save ──────────────────────────────────────────────────

    def load_conversations(self) -> list[Conversation]:
        data = self.storage.load({"conversations": []})
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed conversation file %s", self.storage.file_path)
            return []

        conversations = []
        for item in data.get("conversations", []):
            try:
                conversations.append(Conversation.from_dict(item))
            except (KeyError, TypeError) as exc:
                logger.warning("Skipping malformed conversation entry: %s", exc)
        return conversations

    def save_conversations(self, conversations: list[Conversation]) -> bool:
        return self.storage.save({"conversations": [c.to_dict() for c in conversations]})

    # ── Mutations ────────────────────────────────────────────────────

    def add_conversation(
        self,
        messages: list[AnyMessage],
        title: str | None = None,
        conversation_id: str | None = None,
    ) -> str:
        """Insert a conversation at the front and return its id.

        An existing entry with the same id is replaced (keeping its
        creation time), so an id is never stored twice.
        """
        conversations = self.load_conversations()
        conversation = Conversation(
            id=conversation_id or str(int(time.time() * 1000)),
            title=title or generate_title(messages),
            messages=list(messages),
        )
        for existing in conversations:
            if existing.id == conversation.id:
                conversation.created_at = existing.created_at
                conversations.remove(existing)
                break
        conversations.insert(0, conversation)
        del conversations[self.max_conversations:]

        self.save_conversations(conversations)
        return conversation.id

    def update_conversation(self, conversation_id: str, messages: list[AnyMessage]) -> bool:
        """Replace a conversation's messages.

        ``False`` if the id is unknown or the file could not be written.
        """
        conversations = self.load_conversations()
        for conversation in conversations:
            if conversation.id == conversation_id:
                conversation.messages = list(messages)
                conversation.updated_at = _now_iso()
                return self.save_conversations(conversations)
        return False

    def clear_all(self) -> bool:
        return self.storage.save({"conversations": []})

    # ── Queries ──────────────────────────────────────────────────────

    def get_recent_conversation(self) -> Conversation | None:
        conversations = self.load_conversations()
        return conversations[0] if conversations else None

    def get_conversation_by_id(self, conversation_id: str) -> Conversation | None:
        for conversation in self.load_conversations():
            if conversation.id == conversation_id:
                return conversation
        return None

    def find_by_title(self, title: str) -> Conversation | None:
        for conversation in self.load_conversations():
            if conversation.title == title:
                return conversation
        return None

    def get_all_conversations(self) -> list[Conversation]:
        return self.load_conversations()

    def summary(self) -> str:
        conversations = self.load_conversations()
        if not conversations:
            return "📝 No conversation history"

        lines = [f"📚 {len(conversations)} conversations:"]
        for index, conv in enumerate(conversations[:SUMMARY_LIMIT], start=1):
            lines.append(
                f"{index}. {conv.title} ({len(conv.messages)} messages, "
                f"{_display_time(conv.updated_at)})"
            )
        if len(conversations) > SUMMARY_LIMIT:
            lines.append(f"... {len(conversations) - SUMMARY_LIMIT} more earlier conversations")
        return "\n".join(lines)


def _display_time(iso_value: str) -> str:
    try:
        return datetime.fromisoformat(iso_value).astimezone().strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return iso_value
