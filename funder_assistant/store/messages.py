"""Conversion between LangChain messages and their on-disk form.

Stored shape::

    {"type": "human" | "ai" | "tool" | "system",
     "content": ...,
     "timestamp": "<ISO 8601>",   # first time the message was seen
     "tool_calls": [...] | None,
     "tool_call_id": "..." | None}
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from langchain_core.messages import (
    AIMessage,
    AnyMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

logger = logging.getLogger(__name__)

_SPEAKERS = {"human": "User", "ai": "AI", "tool": "Tool", "system": "System"}


def message_type(message: BaseMessage | dict[str, Any]) -> str:
    """Return ``human``, ``ai``, ``tool``, ``system`` or ``unknown``."""
    if isinstance(message, BaseMessage):
        return message.type
    if isinstance(message, dict):
        return message.get("type") or message.get("role") or "unknown"
    return "unknown"


def is_human(message: BaseMessage | dict[str, Any]) -> bool:
    return message_type(message) == "human"


def is_ai(message: BaseMessage | dict[str, Any]) -> bool:
    return message_type(message) == "ai"


def speaker(message: BaseMessage | dict[str, Any]) -> str:
    """Display label for a message author."""
    return _SPEAKERS.get(message_type(message), "Unknown")


def content_text(message: BaseMessage) -> str:
    """Flatten message content (string or content blocks) to plain text."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def format_message(message: BaseMessage, max_length: int = 100) -> str:
    """One-line ``Speaker: content`` preview, truncated to *max_length*."""
    text = content_text(message)
    if len(text) > max_length:
        text = text[:max_length] + "..."
    return f"{speaker(message)}: {text}"


def message_timestamp(message: BaseMessage) -> str:
    """ISO time the message was first seen, stamped on first use and kept after that."""
    return message.response_metadata.setdefault("timestamp", datetime.now(UTC).isoformat())


def serialize_message(message: BaseMessage) -> dict[str, Any]:
    tool_calls = getattr(message, "tool_calls", None) or None
    return {
        "type": message_type(message),
        "content": message.content,
        "timestamp": message_timestamp(message),
        "tool_calls": [dict(call) for call in tool_calls] if tool_calls else None,
        "tool_call_id": getattr(message, "tool_call_id", None),
    }


def deserialize_message(data: dict[str, Any]) -> AnyMessage | None:
    """Rebuild a LangChain message; unknown types are dropped (``None``)."""
    kind = data.get("type")
    content = data.get("content", "")
    metadata = {"timestamp": data["timestamp"]} if data.get("timestamp") else {}

    if kind == "human":
        return HumanMessage(content=content, response_metadata=metadata)
    if kind == "ai":
        return AIMessage(content=content, tool_calls=data.get("tool_calls") or [], response_metadata=metadata)
    if kind == "tool":
        return ToolMessage(content=content, tool_call_id=data.get("tool_call_id") or "", response_metadata=metadata)
    if kind == "system":
        return SystemMessage(content=content, response_metadata=metadata)

    logger.warning("Skipping stored message with unknown type %r", kind)
    return None


def deserialize_messages(items: list[dict[str, Any]]) -> list[AnyMessage]:
    messages = (deserialize_message(item) for item in items)
    return [m for m in messages if m is not None]
