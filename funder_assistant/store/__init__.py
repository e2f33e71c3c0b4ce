"""File-backed persistence: conversations and backend auth state."""

from funder_assistant.store.auth import AuthStore
from funder_assistant.store.conversations import Conversation, ConversationStore
from funder_assistant.store.storage import JsonFileStorage

__all__ = ["AuthStore", "Conversation", "ConversationStore", "JsonFileStorage"]
