"""In-memory state of the active conversation, persisted through the store."""

from __future__ import annotations

import logging
from typing import Callable

from langchain_core.messages import AIMessage, AnyMessage, HumanMessage

from funder_assistant.store.conversations import Conversation, ConversationStore
from funder_assistant.store.messages import format_message, is_human, message_timestamp

logger = logging.getLogger(__name__)

DEFAULT_AUTOSAVE_INTERVAL = 10


class ConversationManager:
    """Current message list plus the id it is stored under.

    The id doubles as the LangSmith thread id, so a conversation saved here
    can be matched to its traces.
    """

    def __init__(
        self,
        store: ConversationStore,
        *,
        autosave_interval: int = DEFAULT_AUTOSAVE_INTERVAL,
        conversation_id: str | None = None,
    ) -> None:
        self.store = store
        self.autosave_interval = autosave_interval
        self.conversation_id = conversation_id
        self.messages: list[AnyMessage] = []

    @property
    def message_count(self) -> int:
        return len(self.messages)

    # ── Messages ─────────────────────────────────────────────────────

    def add_user_message(self, content: str) -> HumanMessage:
        message = HumanMessage(content=content)
        message_timestamp(message)
        self.messages.append(message)
        return message

    def add_ai_message(self, content: str) -> AIMessage:
        message = AIMessage(content=content)
        message_timestamp(message)
        self.messages.append(message)
        return message

    def rollback_last_user_message(self) -> bool:
        """Drop the trailing user message of a turn that failed."""
        if self.messages and is_human(self.messages[-1]):
            self.messages.pop()
            return True
        return False

    def recent_lines(self, count: int = 4) -> list[str]:
        return [format_message(m, 100) for m in self.messages[-count:]]

    # ── Persistence ──────────────────────────────────────────────────

    def save(self) -> str | None:
        """Create the stored conversation on first save, update it afterwards.

        Returns the conversation id, or ``None`` when there was nothing to save
        or the write failed (the store has already logged why).
        """
        if not self.messages:
            return None
        if self.conversation_id and self.store.get_conversation_by_id(self.conversation_id) is not None:
            saved = self.store.update_conversation(self.conversation_id, self.messages)
        else:
            self.conversation_id = self.store.add_conversation(
                self.messages, conversation_id=self.conversation_id,
            )
            saved = self.store.get_conversation_by_id(self.conversation_id) is not None
        if not saved:
            logger.warning("Conversation %s was not saved", self.conversation_id)
            return None
        return self.conversation_id

    def autosave_if_needed(self) -> bool:
        if self.messages and len(self.messages) % self.autosave_interval == 0:
            if self.save() is not None:
                logger.info("Conversation auto saved (%d messages)", len(self.messages))
                return True
        return False

    def clear(self, new_conversation_id: str | None = None) -> None:
        """Save what we have, then start an empty conversation."""
        if self.messages:
            self.save()
        self.messages = []
        self.conversation_id = new_conversation_id

    def load(self, conversation: Conversation) -> None:
        self.messages = list(conversation.messages)
        self.conversation_id = conversation.id

    def restore_recent(self, confirm: Callable[[Conversation], bool]) -> Conversation | None:
        """Offer the most recent stored conversation; load it if *confirm* agrees."""
        recent = self.store.get_recent_conversation()
        if recent is None or not recent.messages:
            return None
        if not confirm(recent):
            return None
        self.load(recent)
        return recent
