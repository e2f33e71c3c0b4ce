"""Thread identity and LangSmith-backed thread history.

A thread is the unit LangSmith groups runs by: every workflow invocation
carries the thread id under the ``session_id``, ``thread_id`` and
``conversation_id`` metadata keys, so the LangSmith *Threads* view and
:meth:`ThreadManager.get_thread_history` can find it again later.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from langchain_core.messages import AIMessage, AnyMessage, HumanMessage
from langsmith import Client

from funder_assistant.services.metrics import MetricsClient, timed
from funder_assistant.store.messages import content_text, is_ai

logger = logging.getLogger(__name__)

THREAD_METADATA_KEYS = ("session_id", "conversation_id", "thread_id")
WORKFLOW_RUN_NAME = "Agent Workflow Execution"
WORKFLOW_TAGS = ["workflow", "thread"]

# LangChain serialised message class → chat role
_LC_ROLES = {
    "HumanMessage": "user",
    "HumanMessageChunk": "user",
    "AIMessage": "assistant",
    "AIMessageChunk": "assistant",
    "SystemMessage": "system",
    "ToolMessage": "tool",
}
_TYPE_ROLES = {"human": "user", "user": "user", "ai": "assistant", "assistant": "assistant",
               "system": "system", "tool": "tool"}


def new_thread_id() -> str:
    return f"thread-{int(time.time() * 1000)}"


def thread_filter(thread_id: str) -> str:
    """LangSmith filter matching runs tagged with *thread_id* under any thread key."""
    keys = ",".join(f'"{k}"' for k in THREAD_METADATA_KEYS)
    return f'and(in(metadata_key, [{keys}]), eq(metadata_value, "{thread_id}"))'


@dataclass
class TurnResult:
    response: str
    thread_id: str
    run_id: str
    feedback_requested: bool = False
    messages: list[AnyMessage] = field(default_factory=list)


# ── Run payload conversion ───────────────────────────────────────────


def _flatten(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            block if isinstance(block, str) else block.get("text", "")
            for block in content
            if isinstance(block, (str, dict))
        )
    return "" if content is None else str(content)


def _to_chat_entry(item: Any) -> dict[str, str] | None:
    """Convert one logged message (OpenAI dict or LangChain-serialised) to ``{role, content}``."""
    if not isinstance(item, dict):
        return None
    if item.get("lc") and isinstance(item.get("id"), list):
        role = _LC_ROLES.get(item["id"][-1])
        kwargs = item.get("kwargs") or {}
        if role is None:
            return None
        return {"role": role, "content": _flatten(kwargs.get("content"))}
    role = item.get("role") or item.get("type")
    if role not in _TYPE_ROLES:
        return None
    return {"role": _TYPE_ROLES[role], "content": _flatten(item.get("content"))}


def run_to_messages(inputs: dict[str, Any] | None, outputs: dict[str, Any] | None) -> list[dict[str, str]]:
    """Rebuild the conversation seen by one LLM run: its inputs plus its reply.

    Returns ``[]`` when the run lacks either half.
    """
    if not inputs or not outputs or not inputs.get("messages"):
        return []

    raw_inputs = inputs["messages"]
    # Chat model runs log a batch: a list of message lists
    if raw_inputs and isinstance(raw_inputs[0], list):
        raw_inputs = raw_inputs[0]

    reply = None
    if outputs.get("choices"):
        reply = _to_chat_entry(outputs["choices"][0].get("message"))
    elif outputs.get("generations"):
        generation = outputs["generations"][0]
        if isinstance(generation, list):
            generation = generation[0] if generation else {}
        reply = _to_chat_entry(generation.get("message"))
        if reply is None and generation.get("text"):
            reply = {"role": "assistant", "content": generation["text"]}
    if reply is None:
        return []

    entries = [entry for entry in map(_to_chat_entry, raw_inputs) if entry is not None]
    return entries + [reply]


def chat_entries_to_messages(entries: list[dict[str, str]]) -> list[AnyMessage]:
    """User and assistant entries as LangChain messages; other roles are dropped."""
    messages: list[AnyMessage] = []
    for entry in entries:
        if entry["role"] == "user":
            messages.append(HumanMessage(content=entry["content"]))
        elif entry["role"] == "assistant" and entry["content"]:
            messages.append(AIMessage(content=entry["content"]))
    return messages


# ── Manager ──────────────────────────────────────────────────────────


class ThreadManager:
    """Owns the current thread id and runs workflow turns inside it."""

    def __init__(
        self,
        workflow,
        langsmith_client: Client | None = None,
        *,
        project_name: str = "agent-project",
        metrics: MetricsClient | None = None,
    ) -> None:
        self._workflow = workflow
        self._client = langsmith_client
        self._metrics = metrics
        self.project_name = project_name
        self.current_thread_id = new_thread_id()
        self.last_run_id: str | None = None
        self._last_runs: dict[str, str] = {}

    @property
    def has_remote(self) -> bool:
        return self._client is not None

    def create_thread(self, thread_id: str | None = None) -> str:
        """Make *thread_id* (or a fresh ``thread-<ms>`` id) the current thread."""
        self.current_thread_id = thread_id or new_thread_id()
        self.last_run_id = self._last_runs.get(self.current_thread_id)
        logger.debug("Current thread: %s", self.current_thread_id)
        return self.current_thread_id

    def last_run_for(self, thread_id: str) -> str | None:
        """Run id of the latest turn traced under *thread_id*, if any."""
        return self._last_runs.get(thread_id)

    def run_config(self, run_id: str, thread_id: str | None = None) -> dict[str, Any]:
        thread_id = thread_id or self.current_thread_id
        return {
            "run_id": uuid.UUID(run_id),
            "run_name": WORKFLOW_RUN_NAME,
            "tags": list(WORKFLOW_TAGS),
            "metadata": {key: thread_id for key in THREAD_METADATA_KEYS},
        }

    def run_turn(self, messages: list[AnyMessage], thread_id: str | None = None) -> TurnResult:
        """Invoke the workflow on *messages* (full history, newest last).

        The turn is traced under *thread_id* (the current thread by default).
        The run id is allocated up front and remembered per thread, so
        feedback given after the turn attaches to this trace.
        """
        thread_id = thread_id or self.current_thread_id
        run_id = str(uuid.uuid4())
        self._last_runs[thread_id] = run_id
        if thread_id == self.current_thread_id:
            self.last_run_id = run_id
        with timed(self._metrics, "workflow", "invoke"):
            result = self._workflow.invoke(
                {"messages": messages, "category": "", "feedback_requested": False},
                config=self.run_config(run_id, thread_id),
            )

        result_messages = result.get("messages", [])
        ai_messages = [m for m in result_messages if is_ai(m)]
        response = content_text(ai_messages[-1]) if ai_messages else "No response generated"
        logger.info(
            "Turn completed (thread=%s, run=%s, category=%s)",
            thread_id, run_id, result.get("category") or "n/a",
        )
        return TurnResult(
            response=response,
            thread_id=thread_id,
            run_id=run_id,
            feedback_requested=bool(result.get("feedback_requested")),
            messages=result_messages,
        )

    # ── LangSmith history ────────────────────────────────────────────

    def get_thread_history(self, thread_id: str, project_name: str | None = None) -> list[dict[str, str]]:
        """Conversation of the most recent LLM run in *thread_id* as ``{role, content}`` dicts.

        Returns ``[]`` without a LangSmith client or when nothing is found.
        """
        if self._client is None:
            logger.warning("LangSmith client not available, returning empty history")
            return []

        try:
            with timed(self._metrics, "langsmith", "list_runs"):
                runs = list(self._client.list_runs(
                    project_name=project_name or self.project_name,
                    filter=thread_filter(thread_id),
                    run_type="llm",
                ))
        except Exception as exc:
            logger.warning("Failed to get thread history: %s", exc)
            return []

        if not runs:
            logger.info("No runs found for thread: %s", thread_id)
            return []

        latest = max(runs, key=lambda run: run.start_time)
        history = run_to_messages(latest.inputs, latest.outputs)
        if not history:
            logger.info("Run structure incomplete for thread: %s", thread_id)
        return history

    def fetch_remote_conversation(self, thread_id: str) -> list[AnyMessage]:
        return chat_entries_to_messages(self.get_thread_history(thread_id))
