"""User rating collection and submission to LangSmith.

A rating is attached to a LangSmith run as feedback (score on a 0-1
scale, categorical ``"<n>_stars"`` value, ``"n/5 stars: comment"``).  When
LangSmith is not configured or the call fails, the record goes into the
in-process *pending* collection instead.  Submission never raises: the
caller always gets a :class:`FeedbackResult` with a user-facing message.
"""

from __future__ import annotations

import logging
import random
import string
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from langsmith import Client, get_current_run_tree, traceable

from funder_assistant.feedback.parser import (
    is_valid_rating,
    normalized_score,
    parse_feedback,
    star_display,
)

logger = logging.getLogger(__name__)

DEFAULT_FEEDBACK_KEY = "user_rating"
RATING_SCALE = "1-5_stars"

PARSE_ERROR = "Please use format like '5', '4 stars', or '3 - comment'"

RATING_HELP = (
    "**Please rate using one of these formats:**\n"
    '• **Simple:** "5", "4", "3", etc.\n'
    '• **With stars:** "5 stars", "4 stars"\n'
    '• **With comment:** "4 - Very helpful!", "3 - Could be better"\n'
    '• **Formal:** "Rating: 5", "Score: 4"\n\n'
    "**Rating scale:**\n"
    "⭐⭐⭐⭐⭐ 5 = Excellent\n"
    "⭐⭐⭐⭐☆ 4 = Good\n"
    "⭐⭐⭐☆☆ 3 = Average\n"
    "⭐⭐☆☆☆ 2 = Poor\n"
    "⭐☆☆☆☆ 1 = Very Poor"
)


# ── Value objects ────────────────────────────────────────────────────


@dataclass(frozen=True)
class FeedbackRecord:
    """One user rating.  Immutable once created."""

    rating: int
    comment: str
    key: str
    trace_id: str
    thread_id: str | None
    timestamp: str
    submitted: bool

    @property
    def score(self) -> float:
        return normalized_score(self.rating)


@dataclass(frozen=True)
class FeedbackResult:
    """Outcome of :meth:`FeedbackService.collect_feedback`.

    Exactly one of ``feedback_id`` (remote) and ``local_id`` (pending) is set.
    """

    record: FeedbackRecord
    message: str
    feedback_id: str | None = None
    local_id: str | None = None
    error: str | None = None

    @property
    def submitted(self) -> bool:
        return self.record.submitted


@dataclass(frozen=True)
class FeedbackOutcome:
    """Outcome of parsing and collecting a free-text rating."""

    success: bool
    message: str
    result: FeedbackResult | None = None
    error: str | None = None

    @property
    def submitted(self) -> bool:
        return bool(self.result and self.result.submitted)


# ── Helpers ──────────────────────────────────────────────────────────


def is_valid_uuid(value: str | None) -> bool:
    if not value:
        return False
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


def _local_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"local_{int(time.time() * 1000)}_{suffix}"


def build_langsmith_client(api_key: str | None, api_url: str) -> Client | None:
    """Return a LangSmith client, or ``None`` when no API key is configured."""
    if not api_key:
        logger.info("LangSmith API key not set, feedback will be collected locally only")
        return None
    return Client(api_key=api_key, api_url=api_url)


# ── Service ──────────────────────────────────────────────────────────


class FeedbackService:
    """Collects 1-5 star ratings and forwards them to LangSmith."""

    def __init__(
        self,
        client_factory: Callable[[], Client | None],
        *,
        project_name: str = "agent-project",
        metrics=None,
    ) -> None:
        self._client_factory = client_factory
        self._client: Client | None = None
        self._initialized = False
        self._metrics = metrics
        self.project_name = project_name
        self.pending: dict[str, FeedbackRecord] = {}

    # ── Initialisation ───────────────────────────────────────────────

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def has_remote(self) -> bool:
        return self._client is not None

    def initialize(self, *, force: bool = False) -> None:
        if self._initialized and not force:
            return
        try:
            self._client = self._client_factory()
            if self._client is not None:
                logger.info("FeedbackService initialized with LangSmith")
        except Exception:
            logger.warning("LangSmith client creation failed, using local feedback only", exc_info=True)
            self._client = None
        self._initialized = True

    # ── Trace resolution ─────────────────────────────────────────────

    @staticmethod
    def current_run_id() -> str | None:
        """Id of the active LangSmith run tree, if one is in context."""
        try:
            run_tree = get_current_run_tree()
        except Exception:
            logger.debug("No LangSmith run tree available", exc_info=True)
            return None
        if run_tree is not None and is_valid_uuid(str(run_tree.id)):
            return str(run_tree.id)
        return None

    def resolve_trace_id(self, trace_id: str | None = None, thread_id: str | None = None) -> str:
        """Explicit id, then active run, then a UUID-shaped thread id, then a fresh UUID."""
        if trace_id:
            return str(trace_id)

        run_id = self.current_run_id()
        if run_id:
            return run_id

        if is_valid_uuid(thread_id):
            return str(thread_id)

        fallback = str(uuid.uuid4())
        logger.debug("No run context for feedback, generated trace id %s", fallback)
        return fallback

    # ── Submission ───────────────────────────────────────────────────

    def _submit_remote(
        self,
        *,
        rating: int,
        comment: str,
        key: str,
        trace_id: str,
        thread_id: str | None,
        timestamp: str,
    ) -> str:
        score = normalized_score(rating)
        t0 = time.perf_counter()
        try:
            feedback = self._client.create_feedback(
                trace_id,
                key,
                score=score,
                value=f"{rating}_stars",
                comment=f"{rating}/5 stars: {comment}" if comment else f"{rating}/5 stars",
                source_info={
                    "rating_scale": RATING_SCALE,
                    "converted_score": score,
                    "original_rating": rating,
                    "timestamp": timestamp,
                    "thread_id": thread_id,
                    "session_id": thread_id,
                    "conversation_id": thread_id,
                },
            )
        except Exception as exc:
            if self._metrics is not None:
                self._metrics.record_failure(
                    "langsmith", "create_feedback",
                    error_type=type(exc).__name__,
                    latency_ms=(time.perf_counter() - t0) * 1000,
                )
            raise

        if self._metrics is not None:
            self._metrics.record_success(
                "langsmith", "create_feedback",
                latency_ms=(time.perf_counter() - t0) * 1000,
            )
        return str(getattr(feedback, "id", "") or "unknown")

    def collect_feedback(
        self,
        rating: int,
        comment: str = "",
        key: str = DEFAULT_FEEDBACK_KEY,
        trace_id: str | None = None,
        thread_id: str | None = None,
    ) -> FeedbackResult:
        """Attach a rating to a trace, falling back to the pending collection.

        Raises :class:`ValueError` only for a rating outside 1-5; every
        remote failure is logged and downgraded to local storage.
        """
        if not is_valid_rating(rating):
            raise ValueError(f"Star rating must be between 1 and 5, got {rating!r}")

        self.initialize()
        comment = (comment or "").strip()
        resolved_trace_id = self.resolve_trace_id(trace_id, thread_id)
        timestamp = datetime.now(UTC).isoformat()
        fields: dict[str, Any] = {
            "rating": rating,
            "comment": comment,
            "key": key,
            "trace_id": resolved_trace_id,
            "thread_id": thread_id,
            "timestamp": timestamp,
        }

        reason = "LangSmith not initialized"
        if self._client is None:
            # One lazy re-initialisation per call, e.g. after the key was set
            self.initialize(force=True)

        error: str | None = None
        if self._client is not None:
            try:
                feedback_id = self._submit_remote(**fields)
            except Exception as exc:
                logger.warning("LangSmith feedback submission failed: %s", exc)
                error = str(exc)
                reason = f"LangSmith submission failed: {exc}"
            else:
                record = FeedbackRecord(**fields, submitted=True)
                self._record_metric(record)
                logger.info(
                    "Rating %d/5 submitted to LangSmith (trace %s, feedback %s)",
                    rating, resolved_trace_id, feedback_id,
                )
                return FeedbackResult(
                    record=record,
                    feedback_id=feedback_id,
                    message=(
                        f"✅ Thank you! Your {rating}-star rating has been submitted "
                        "to improve our AI system."
                    ),
                )

        record = FeedbackRecord(**fields, submitted=False)
        local_id = _local_id()
        self.pending[local_id] = record
        self._record_metric(record)
        logger.info("Rating %d/5 stored locally as %s (%s)", rating, local_id, reason)
        return FeedbackResult(
            record=record,
            local_id=local_id,
            error=error,
            message=f"📝 Thank you! Your {rating}-star rating has been recorded locally ({reason}).",
        )

    def collect_feedback_with_context(
        self,
        rating: int,
        comment: str = "",
        key: str = DEFAULT_FEEDBACK_KEY,
        trace_id: str | None = None,
        thread_id: str | None = None,
    ) -> FeedbackResult:
        """Like :meth:`collect_feedback`, inside a traced "User Feedback Collection" span."""
        traced = traceable(
            name="User Feedback Collection",
            project_name=self.project_name,
            metadata={
                "session_id": thread_id,
                "thread_id": thread_id,
                "conversation_id": thread_id,
                "feedback_type": key,
                "rating_scale": RATING_SCALE,
            },
            tags=["feedback", "user_rating", "thread", "conversation"],
        )(self.collect_feedback)
        return traced(rating, comment, key=key, trace_id=trace_id, thread_id=thread_id)

    def process_user_feedback(
        self,
        text: str,
        trace_id: str | None = None,
        thread_id: str | None = None,
    ) -> FeedbackOutcome:
        """Parse a free-text rating and collect it."""
        parsed = parse_feedback(text)
        if parsed is None:
            return FeedbackOutcome(
                success=False,
                error=PARSE_ERROR,
                message=f"❌ {PARSE_ERROR}\n\n{RATING_HELP}\n\n*Please try again with your rating:*",
            )

        collect = self.collect_feedback_with_context if thread_id else self.collect_feedback
        result = collect(
            parsed.rating, parsed.comment, trace_id=trace_id, thread_id=thread_id,
        )
        return FeedbackOutcome(
            success=True,
            result=result,
            message=format_confirmation(result),
        )

    # ── Pending collection ───────────────────────────────────────────

    def pending_summary(self) -> str:
        if not self.pending:
            return "No pending feedback."

        records = list(self.pending.values())
        average = sum(r.rating for r in records) / len(records)
        distribution = " ".join(
            f"{stars}⭐({count})"
            for stars in range(5, 0, -1)
            if (count := sum(1 for r in records if r.rating == stars))
        )
        return (
            "📊 **Pending Feedback Summary:**\n"
            f"• Total ratings: {len(records)}\n"
            f"• Average: {average:.1f} stars\n"
            f"• Distribution: {distribution}\n"
            f"• Most recent: {records[-1].timestamp}"
        )

    def clear_pending(self) -> str:
        count = len(self.pending)
        self.pending.clear()
        return f"🗑️ Cleared {count} pending feedback items."

    def _record_metric(self, record: FeedbackRecord) -> None:
        if self._metrics is not None:
            self._metrics.record_feedback(record.rating, submitted=record.submitted)


# ── User-facing text ─────────────────────────────────────────────────


def format_confirmation(result: FeedbackResult) -> str:
    record = result.record
    lines = [f"{star_display(record.rating)} Thank you for your {record.rating}-star rating!"]
    if record.comment:
        lines.append(f'Comment: "{record.comment}"')
    if result.submitted:
        lines.append("✅ Feedback submitted to LangSmith for AI improvement.")
    else:
        lines.append("📝 Feedback recorded locally.")
    return "\n".join(lines)


def feedback_prompt(ai_response: str = "", context: str = "") -> str:
    """Interactive rating request shown after an AI answer."""
    parts = ["📝 **Please Rate This Response**", ""]
    if ai_response:
        preview = ai_response[:200] + ("..." if len(ai_response) > 200 else "")
        parts += [f'🤖 **AI Output:** "{preview}"', ""]
    if context:
        parts += [f"📋 **Context:** {context}", ""]
    parts += [
        "**⭐ Please rate from 1 to 5 stars:**",
        "• **5 stars** ⭐⭐⭐⭐⭐ - Excellent (Perfect, exactly what you needed)",
        "• **4 stars** ⭐⭐⭐⭐☆ - Good (Very helpful, minor improvements possible)",
        "• **3 stars** ⭐⭐⭐☆☆ - Average (Adequate, some issues)",
        "• **2 stars** ⭐⭐☆☆☆ - Poor (Limited help, major issues)",
        "• **1 star**  ⭐☆☆☆☆ - Very Poor (Not helpful at all)",
        "",
        "**💬 Optional:** Add comments to help us improve",
        "",
        "**Examples:**",
        '• "5" or "5 stars"',
        '• "4 - Very helpful but could be more detailed"',
        '• "Rating: 2"',
    ]
    return "\n".join(parts)
