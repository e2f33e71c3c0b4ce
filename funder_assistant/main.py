"""CLI entry point for the Funder Assistant.

An interactive terminal chat with local conversation history, LangSmith
thread switching and 1-5 star feedback after every answer.  For HTTP
access, use the FastAPI server (funder_assistant/server.py).

Usage:
    python -m funder_assistant.main            # normal mode (quiet)
    python -m funder_assistant.main --debug    # debug mode (shows API calls)
    python -m funder_assistant.main --evaluate local --suite calculator
    python -m funder_assistant.main --evaluate langsmith --suite routing
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from typing import TYPE_CHECKING, Callable

from funder_assistant.evaluation.datasets import custom_dataset
from funder_assistant.evaluation.runner import SUITES, run_langsmith, run_local
from funder_assistant.feedback.flow import COMMENT_PROMPT, RATING_REPROMPT, FeedbackFlow, FlowAction
from funder_assistant.feedback.parser import star_display
from funder_assistant.feedback.service import format_confirmation

if TYPE_CHECKING:
    from funder_assistant.application import Application
    from funder_assistant.store.conversations import Conversation

logger = logging.getLogger(__name__)

TIMEOUT_SUGGESTIONS = (
    "Check network connection",
    "Check if backend service is running",
    "View LangSmith tracking information",
)

WELCOME = """
=== 🚀 Welcome to Agent Interactive Mode ===
💡 Tips: You can directly input questions, auth information and conversation history will be automatically saved
📌 Input 'exit' to exit program, 'clear' to clear current conversation, 'history' to view conversation history
🧵 Thread commands:
   - 'thread' to show current thread
   - 'threads' to list all available threads
   - 'switch-thread' to interactively switch threads
   - 'thread-<ID>' to switch to specific thread (e.g., 'thread-1752780277309')
   - 'thread-history' to view current thread history
⭐ 'feedback-summary' to view ratings not yet sent to LangSmith"""


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    root_level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=root_level,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )

    if not debug:
        # Silence chatty HTTP loggers even if root is WARNING
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    # Our own logger stays at INFO so turn and feedback outcomes are visible
    logging.getLogger("funder_assistant").setLevel(logging.DEBUG if debug else logging.INFO)


def _local_time(iso_value: str) -> str:
    try:
        return datetime.fromisoformat(iso_value).astimezone().strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return iso_value


class ChatCLI:
    """Interactive loop: commands, conversation turns and the rating flow."""

    def __init__(
        self,
        app: Application,
        *,
        input_func: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
    ) -> None:
        self.app = app
        self.flow = FeedbackFlow()
        self.running = False
        self._input = input_func
        self._out = output

    async def ask(self, prompt: str) -> str:
        return await asyncio.to_thread(self._input, prompt)

    # ── Startup ──────────────────────────────────────────────────────

    def show_status(self) -> None:
        status = self.app.status_summary()
        self._out(f"🔐 Auth status: {status['auth']}")
        self._out(f"💬 {status['conversations']}")

    def _confirm_restore(self, conversation: Conversation) -> bool:
        self._out(f'\n📋 Found recent conversation: "{conversation.title}"')
        self._out(
            f"   Contains {len(conversation.messages)} messages, "
            f"last updated: {_local_time(conversation.updated_at)}"
        )
        answer = self._input("Continue this conversation? (y/n, default y): ")
        return answer.strip().lower() != "n"

    async def restore(self) -> None:
        restored = await asyncio.to_thread(self.app.restore_recent, self._confirm_restore)
        if restored is not None:
            self._show_recent(4)
            self._out("✅ Conversation history restored")

    def _show_recent(self, count: int) -> None:
        self._out("\n📝 Recent conversation content:")
        for line in self.app.conversation.recent_lines(count):
            self._out(f"  {line}")

    async def run(self) -> None:
        self.show_status()
        await self.restore()
        self._out(WELCOME)

        self.running = True
        while self.running:
            try:
                user_input = await self.ask("\nYou: ")
            except (KeyboardInterrupt, EOFError):
                self.shutdown()
                break
            try:
                await self.handle_input(user_input)
            except Exception as exc:
                logger.exception("Error in main loop")
                self._out(f"❌ Error in main loop: {exc}")

    # ── Dispatch ─────────────────────────────────────────────────────

    async def handle_input(self, user_input: str) -> None:
        if await self.handle_command(user_input):
            return
        if not self.flow.is_idle:
            await self.handle_feedback(user_input)
            return
        if user_input.strip():
            await self.process_turn(user_input)

    async def handle_command(self, user_input: str) -> bool:
        """Run a special command; ``False`` means the input is not one."""
        command = user_input.strip().lower()

        if command == "exit":
            self.shutdown()
        elif command == "clear":
            self.flow.reset()
            self.app.new_conversation()
            self._out("🗑️ Current conversation cleared, starting new conversation")
        elif command == "history":
            self._out(f"\n{self.app.conversation_store.summary()}")
        elif command == "thread":
            self._out(f"\n🧵 Current Thread ID: {self.app.current_thread_id}")
        elif command == "thread-history":
            await self.show_thread_history()
        elif command == "threads":
            self.list_threads()
        elif command == "switch-thread":
            await self.switch_thread_interactive()
        elif command == "feedback-summary":
            self._out(f"\n{self.app.feedback_service.pending_summary()}")
        elif command.startswith("thread-"):
            await self.switch_thread(user_input.strip())
        else:
            return False
        return True

    # ── Conversation turns ───────────────────────────────────────────

    async def process_turn(self, user_input: str) -> None:
        from funder_assistant.application import WorkflowTimeoutError

        self._out("🔄 Processing request...")
        logger.info("Processing message in thread: %s", self.app.current_thread_id)
        try:
            result = await self.app.process_message(user_input)
        except WorkflowTimeoutError as exc:
            self._out(f"\n❌ Error: {exc}")
            self._out("💡 Suggestions:")
            for suggestion in TIMEOUT_SUGGESTIONS:
                self._out(f"  - {suggestion}")
            return
        except Exception as exc:
            logger.exception("Error processing message")
            self._out(f"\n❌ Error: {exc}")
            return

        self._out("✅ Request processed")
        self._out(f"\n🤖: {result.response}")
        if result.feedback_requested:
            self.flow.request_rating()

    async def handle_feedback(self, user_input: str) -> None:
        transition = self.flow.handle(user_input)

        if transition.action is FlowAction.REPROMPT:
            self._out(f"\n🤖: {RATING_REPROMPT}")
        elif transition.action is FlowAction.AWAIT_COMMENT:
            self._out("✅ Rating received")
            self._out(f"\n🤖: Great! You rated this {transition.rating} stars.")
            self._out(COMMENT_PROMPT)
        elif transition.action is FlowAction.SKIP:
            self._out("\n🤖: 👍 No problem, feedback skipped.")
        elif transition.action is FlowAction.SUBMIT:
            result = await asyncio.to_thread(
                self.app.submit_feedback, transition.rating, transition.comment,
            )
            self._out("✅ Feedback processed")
            confirmation = format_confirmation(result)
            self._out(f"\n🤖: {confirmation}")
            rating_text = f"{star_display(transition.rating)} {transition.rating} stars"
            if transition.comment:
                rating_text += f" - {transition.comment}"
            self.app.record_exchange(rating_text, confirmation)

    # ── Threads ──────────────────────────────────────────────────────

    async def show_thread_history(self) -> None:
        history = await asyncio.to_thread(self.app.thread_history)
        if not history:
            self._out("\n📜 No thread history available")
            return
        self._out("\n📜 Thread History:")
        for index, message in enumerate(history, start=1):
            role = "👤" if message["role"] == "user" else "🤖"
            self._out(f"{index}. {role} {message['content']}")

    def _print_threads(self, conversations: list[Conversation], *, details: bool) -> None:
        current = self.app.current_thread_id
        for index, conv in enumerate(conversations, start=1):
            status = " (current)" if conv.id == current else ""
            self._out(f"{index}. {conv.title}{status}")
            if details:
                self._out(f"   Thread ID: {conv.id}")
                self._out(f"   Messages: {len(conv.messages)}")
                self._out(f"   Last updated: {_local_time(conv.updated_at)}")
                self._out("")
            else:
                self._out(f"   ID: {conv.id}")

    def list_threads(self) -> None:
        conversations = self.app.list_threads()
        if not conversations:
            self._out("\n📋 No saved conversations found")
            return
        self._out("\n📋 Available Threads:")
        self._print_threads(conversations, details=True)
        self._out("💡 To switch to a thread, use:")
        self._out("   - 'switch-thread' for interactive selection")
        self._out("   - 'thread-<ID>' to switch directly (e.g., 'thread-1752780277309')")

    async def switch_thread_interactive(self) -> None:
        conversations = self.app.list_threads()
        if not conversations:
            self._out("\n📋 No saved conversations found")
            return

        self._out("\n📋 Select a thread to switch to:")
        self._print_threads(conversations, details=False)
        selection = (await self.ask("\nEnter thread number (or 'cancel'): ")).strip()

        if selection.lower() == "cancel":
            self._out("❌ Thread switch cancelled")
            return
        if selection.startswith("thread-") or any(c.id in (selection, f"thread-{selection}") for c in conversations):
            await self.switch_thread(selection)
            return
        if selection.isdigit() and 1 <= int(selection) <= len(conversations):
            await self.switch_thread(conversations[int(selection) - 1].id)
            return

        self._out("❌ Invalid thread number or ID")
        self._out("💡 You can enter:")
        self._out(f"   - A number (1-{len(conversations)}) to select by position")
        self._out("   - A thread ID (e.g., '1752781137674')")
        self._out("   - A full thread ID (e.g., 'thread-1752781137674')")

    async def switch_thread(self, token: str) -> None:
        self._out(f"🔄 Switching to thread: {token}")
        self.flow.reset()
        result = await asyncio.to_thread(self.app.switch_thread, token)
        if not result.found:
            self._out(f"❌ Thread {token} not found locally or in LangSmith")
            self._out("💡 This thread might not exist or be accessible")
            return

        where = "local store" if result.source == "local" else "LangSmith"
        self._out(f"✅ Switched to thread: {result.conversation.title}")
        self._out(f"📝 Loaded {len(result.conversation.messages)} messages from {where}")
        self._out(f"🔗 Thread ID set for future tracing: {result.thread_id}")
        self._show_recent(3)

    # ── Shutdown ─────────────────────────────────────────────────────

    def shutdown(self) -> None:
        self.running = False
        had_messages = self.app.conversation.message_count > 0
        self.app.shutdown()
        if had_messages:
            self._out("💾 Conversation saved")
        self._out("👋 Goodbye!")


# ── Evaluation mode ──────────────────────────────────────────────────


def _load_examples(path: str | None, suite: str) -> list[dict] | None:
    if path is None:
        return None
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    examples = raw.get("examples", []) if isinstance(raw, dict) else raw
    return custom_dataset(f"{suite}-custom", examples)["examples"]


def run_evaluation(
    mode: str,
    suites: list[str],
    *,
    dataset: str | None = None,
    examples_path: str | None = None,
    output: Callable[[str], None] = print,
    app_factory: Callable[[], Application] | None = None,
    client_factory: Callable[[], object] | None = None,
) -> int:
    """Run *suites* offline (``local``) or as LangSmith experiments; returns an exit code."""
    client = None
    if mode == "langsmith":
        if client_factory is None:
            from funder_assistant import config
            from funder_assistant.feedback.service import build_langsmith_client

            def client_factory():
                return build_langsmith_client(config.LANGSMITH_API_KEY, config.LANGSMITH_ENDPOINT)

        client = client_factory()
        if client is None:
            output("❌ LANGSMITH_API_KEY is required for LangSmith evaluation")
            return 1

    app = None
    if any(SUITES[name].needs_workflow for name in suites):
        if app_factory is None:
            from funder_assistant.application import Application

            app_factory = Application
        app = app_factory()

    try:
        for name in suites:
            output(f"🔍 Running {mode} evaluation: {name}")
            examples = _load_examples(examples_path, name)
            workflow = app.workflow if app is not None else None
            if mode == "local":
                report = run_local(name, workflow=workflow, examples=examples)
                for line in report.summary_lines():
                    output(line)
            else:
                results = run_langsmith(
                    name, client, workflow=workflow, examples=examples, dataset_name=dataset,
                )
                output(f"✅ Experiment {results.experiment_name} completed")
                output("📊 Results available in the LangSmith dashboard")
    except Exception as exc:
        logger.exception("Evaluation failed")
        output(f"❌ Evaluation failed: {exc}")
        return 1
    finally:
        if app is not None:
            app.shutdown()
    return 0


def main():
    """Run the interactive CLI chat loop, or an evaluation with --evaluate."""
    parser = argparse.ArgumentParser(description="Funder Assistant CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    parser.add_argument(
        "--evaluate", choices=("local", "langsmith"),
        help="Run evaluation suites instead of the chat, offline or as LangSmith experiments",
    )
    parser.add_argument(
        "--suite", choices=(*SUITES, "all"), default="all",
        help="Evaluation suite to run (default: all)",
    )
    parser.add_argument(
        "--dataset",
        help="LangSmith dataset name for a single suite (default: funder-assistant-<suite>)",
    )
    parser.add_argument(
        "--examples",
        help="JSON file with custom examples ({inputs, outputs} objects) for a single suite",
    )
    args = parser.parse_args()
    _configure_logging(debug=args.debug)

    if args.evaluate:
        if args.suite == "all" and (args.dataset or args.examples):
            parser.error("--dataset and --examples need a single --suite")
        suites = list(SUITES) if args.suite == "all" else [args.suite]
        sys.exit(run_evaluation(args.evaluate, suites, dataset=args.dataset, examples_path=args.examples))

    try:
        from funder_assistant.application import Application

        app = Application()
    except OSError as exc:
        print(f"❌ Failed to start application: {exc}")
        sys.exit(1)

    try:
        asyncio.run(ChatCLI(app).run())
    except KeyboardInterrupt:
        print("\n\nGoodbye!")


if __name__ == "__main__":
    main()
