"""Application root: builds every collaborator once and wires them together.

Nothing in the package is a module-level singleton; the CLI and the HTTP
server each create one :class:`Application` and reach the stores, the
feedback service and the workflow through it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

from langsmith import Client

from funder_assistant import config
from funder_assistant.conversation import ConversationManager
from funder_assistant.feedback.service import FeedbackResult, FeedbackService, build_langsmith_client
from funder_assistant.services.backend_client import BackendClient
from funder_assistant.services.metrics import MetricsClient
from funder_assistant.services.search import SearchClient
from funder_assistant.store.auth import AuthStore
from funder_assistant.store.conversations import Conversation, ConversationStore
from funder_assistant.threads import ThreadManager, TurnResult

logger = logging.getLogger(__name__)

THREAD_PREFIX = "thread-"
THREAD_TITLE_PREFIX = "Thread: "


class WorkflowTimeoutError(Exception):
    """A conversation turn did not finish within the configured budget."""


@dataclass
class SwitchResult:
    thread_id: str
    conversation: Conversation | None
    source: str | None  # "local", "langsmith" or None when not found

    @property
    def found(self) -> bool:
        return self.conversation is not None


class Application:
    """Owns the stores, clients, feedback service, workflow and thread state."""

    def __init__(
        self,
        *,
        data_dir: str = config.DATA_DIR,
        workflow=None,
        metrics: MetricsClient | None = None,
        langsmith_client_factory: Callable[[], Client | None] | None = None,
        backend: BackendClient | None = None,
        search_client: SearchClient | None = None,
        timeout_seconds: float = config.WORKFLOW_TIMEOUT_SECONDS,
        autosave_interval: int = config.AUTOSAVE_INTERVAL,
        max_conversations: int = config.MAX_CONVERSATIONS,
        project_name: str = config.LANGSMITH_PROJECT,
    ) -> None:
        self.metrics = metrics or MetricsClient()
        self.timeout_seconds = timeout_seconds

        if langsmith_client_factory is None:
            def langsmith_client_factory():
                return build_langsmith_client(config.LANGSMITH_API_KEY, config.LANGSMITH_ENDPOINT)

        self.auth_store = AuthStore(data_dir)
        self.conversation_store = ConversationStore(data_dir, max_conversations=max_conversations)
        self.backend = backend or BackendClient(config.BACKEND_BASE_URL, metrics=self.metrics)
        self.search_client = search_client or SearchClient(config.TAVILY_API_KEY, metrics=self.metrics)
        self.feedback_service = FeedbackService(
            langsmith_client_factory, project_name=project_name, metrics=self.metrics,
        )
        self.feedback_service.initialize()

        if workflow is None:
            from funder_assistant.agent import create_workflow
            from funder_assistant.tools import build_toolsets

            toolsets = build_toolsets(self.backend, self.auth_store, self.search_client)
            workflow = create_workflow(toolsets, metrics=self.metrics)
        self.workflow = workflow

        self.thread_manager = ThreadManager(
            workflow,
            self._langsmith_client(langsmith_client_factory),
            project_name=project_name,
            metrics=self.metrics,
        )
        self.conversation = ConversationManager(
            self.conversation_store,
            autosave_interval=autosave_interval,
            conversation_id=self.thread_manager.current_thread_id,
        )
        self._turn_lock = asyncio.Lock()

    @staticmethod
    def _langsmith_client(factory: Callable[[], Client | None]) -> Client | None:
        try:
            return factory()
        except Exception:
            logger.warning("LangSmith client creation failed, thread history disabled", exc_info=True)
            return None

    # ── Status ───────────────────────────────────────────────────────

    @property
    def current_thread_id(self) -> str:
        return self.thread_manager.current_thread_id

    def status_summary(self) -> dict[str, str]:
        return {
            "auth": self.auth_store.summary(),
            "conversations": self.conversation_store.summary(),
        }

    # ── Turns ────────────────────────────────────────────────────────

    async def process_message(self, text: str, thread_id: str | None = None) -> TurnResult:
        """Run one conversation turn for *text* within the turn budget.

        With *thread_id* the turn runs in that thread, which is resumed
        (locally or from LangSmith) or started fresh.  Selecting the thread
        and running the turn happen under one lock, so concurrent callers
        never see each other's conversation.

        On any failure the user message is rolled back so the stored
        transcript never holds an unanswered question.
        """
        async with self._turn_lock:
            if thread_id and thread_id != self.current_thread_id:
                await asyncio.to_thread(self._activate_thread, thread_id)
            thread_id = self.current_thread_id
            conversation = self.conversation

            conversation.add_user_message(text)
            history = list(conversation.messages)
            try:
                result = await asyncio.wait_for(
                    asyncio.to_thread(self.thread_manager.run_turn, history, thread_id),
                    timeout=self.timeout_seconds,
                )
            except TimeoutError as exc:
                conversation.rollback_last_user_message()
                logger.warning("Turn timed out after %.0fs (thread=%s)", self.timeout_seconds, thread_id)
                raise WorkflowTimeoutError(f"Request timeout ({self.timeout_seconds:g} seconds)") from exc
            except Exception:
                conversation.rollback_last_user_message()
                raise

            conversation.add_ai_message(result.response)
            conversation.autosave_if_needed()
            return result

    def _activate_thread(self, thread_id: str) -> SwitchResult:
        switched = self.switch_thread(thread_id)
        if not switched.found:
            self.new_conversation(thread_id)
            logger.info("Started new thread %s", thread_id)
        return switched

    def record_exchange(self, user_text: str, ai_text: str) -> None:
        """Append an exchange that did not go through the workflow (e.g. a rating)."""
        self.conversation.add_user_message(user_text)
        self.conversation.add_ai_message(ai_text)
        self.conversation.autosave_if_needed()

    # ── Feedback ─────────────────────────────────────────────────────

    def submit_feedback(
        self,
        rating: int,
        comment: str = "",
        trace_id: str | None = None,
        thread_id: str | None = None,
    ) -> FeedbackResult:
        """Rate *trace_id*, or the latest turn of *thread_id* (the current thread by default)."""
        thread_id = thread_id or self.current_thread_id
        return self.feedback_service.collect_feedback_with_context(
            rating,
            comment,
            trace_id=trace_id or self.thread_manager.last_run_for(thread_id),
            thread_id=thread_id,
        )

    # ── Threads ──────────────────────────────────────────────────────

    def thread_history(self, thread_id: str | None = None) -> list[dict[str, str]]:
        return self.thread_manager.get_thread_history(thread_id or self.current_thread_id)

    def list_threads(self) -> list[Conversation]:
        return self.conversation_store.get_all_conversations()

    def new_conversation(self, thread_id: str | None = None) -> str:
        """Save the current conversation and start a fresh thread."""
        thread_id = self.thread_manager.create_thread(thread_id)
        self.conversation.clear(new_conversation_id=thread_id)
        return thread_id

    def restore_recent(self, confirm: Callable[[Conversation], bool]) -> Conversation | None:
        restored = self.conversation.restore_recent(confirm)
        if restored is not None:
            self.thread_manager.create_thread(restored.id)
        return restored

    def _find_local(self, token: str) -> Conversation | None:
        store = self.conversation_store
        conversation = store.get_conversation_by_id(token)
        if conversation is not None:
            return conversation
        if token.startswith(THREAD_PREFIX):
            conversation = store.find_by_title(f"{THREAD_TITLE_PREFIX}{token}")
            if conversation is None:
                conversation = store.get_conversation_by_id(token[len(THREAD_PREFIX):])
        else:
            conversation = store.get_conversation_by_id(f"{THREAD_PREFIX}{token}")
        return conversation

    def switch_thread(self, token: str) -> SwitchResult:
        """Make the thread named by *token* current.

        Looks locally first (exact id, then ``Thread: <token>`` title or the
        id without the ``thread-`` prefix, or ``thread-<token>`` for a bare
        id), then in LangSmith.  A thread found only in LangSmith is stored
        locally under its id.
        """
        token = token.strip()
        self.conversation.save()

        conversation = self._find_local(token)
        if conversation is not None:
            self.conversation.load(conversation)
            self.thread_manager.create_thread(conversation.id)
            logger.info("Switched to local thread %s", conversation.id)
            return SwitchResult(conversation.id, conversation, "local")

        messages = self.thread_manager.fetch_remote_conversation(token)
        if not messages:
            return SwitchResult(token, None, None)

        title = f"{THREAD_TITLE_PREFIX}{token}"
        self.conversation_store.add_conversation(messages, title=title, conversation_id=token)
        conversation = Conversation(id=token, title=title, messages=messages)
        self.conversation.load(conversation)
        self.thread_manager.create_thread(token)
        logger.info("Switched to thread %s fetched from LangSmith (%d messages)", token, len(messages))
        return SwitchResult(token, conversation, "langsmith")

    # ── Lifecycle ────────────────────────────────────────────────────

    def shutdown(self) -> None:
        self.conversation.save()
        self.metrics.close()
        self.backend.close()
