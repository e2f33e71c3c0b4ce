"""Tests for FeedbackService: LangSmith submission and the pending fallback."""

from __future__ import annotations

import uuid
from unittest.mock import MagicMock, patch

import pytest

from funder_assistant.feedback.service import (
    DEFAULT_FEEDBACK_KEY,
    FeedbackService,
    build_langsmith_client,
    format_confirmation,
    is_valid_uuid,
)

TRACE_ID = "6f1c2a4e-8a3b-4c55-9d0e-1f2a3b4c5d6e"


def _make_service(client=None, *, factory=None, metrics=None) -> FeedbackService:
    if factory is None:
        factory = MagicMock(return_value=client)
    service = FeedbackService(factory, project_name="test-project", metrics=metrics)
    service.initialize()
    return service


def _mock_client(feedback_id: str = "fb-123") -> MagicMock:
    client = MagicMock()
    client.create_feedback.return_value = MagicMock(id=feedback_id)
    return client


class TestRemoteSubmission:
    def test_submits_to_langsmith(self):
        client = _mock_client()
        service = _make_service(client)

        result = service.collect_feedback(5, "very helpful!", trace_id=TRACE_ID, thread_id="thread-1")

        assert result.submitted
        assert result.feedback_id == "fb-123"
        assert result.local_id is None
        assert service.pending == {}

        args, kwargs = client.create_feedback.call_args
        assert args == (TRACE_ID, DEFAULT_FEEDBACK_KEY)
        assert kwargs["score"] == 1.0
        assert kwargs["value"] == "5_stars"
        assert kwargs["comment"] == "5/5 stars: very helpful!"
        assert kwargs["source_info"]["original_rating"] == 5
        assert kwargs["source_info"]["thread_id"] == "thread-1"

    def test_comment_omitted_when_empty(self):
        client = _mock_client()
        service = _make_service(client)
        service.collect_feedback(3, trace_id=TRACE_ID)
        assert client.create_feedback.call_args[1]["comment"] == "3/5 stars"
        assert client.create_feedback.call_args[1]["score"] == 0.5

    def test_success_records_metrics(self):
        metrics = MagicMock()
        service = _make_service(_mock_client(), metrics=metrics)
        service.collect_feedback(4, trace_id=TRACE_ID)
        metrics.record_success.assert_called_once()
        metrics.record_feedback.assert_called_once_with(4, submitted=True)


class TestLocalFallback:
    def test_no_client_stores_pending(self):
        service = _make_service(None)

        result = service.collect_feedback(4, "ok", trace_id=TRACE_ID)

        assert not result.submitted
        assert result.feedback_id is None
        assert result.local_id.startswith("local_")
        assert service.pending[result.local_id].rating == 4
        assert "recorded locally" in result.message

    def test_remote_failure_stores_pending(self):
        client = MagicMock()
        client.create_feedback.side_effect = RuntimeError("503 from LangSmith")
        metrics = MagicMock()
        service = _make_service(client, metrics=metrics)

        result = service.collect_feedback(2, trace_id=TRACE_ID)

        assert not result.submitted
        assert result.error == "503 from LangSmith"
        assert len(service.pending) == 1
        metrics.record_failure.assert_called_once()
        metrics.record_feedback.assert_called_once_with(2, submitted=False)

    def test_lazy_reinitialisation_picks_up_client(self):
        client = _mock_client()
        factory = MagicMock(side_effect=[None, client])
        service = _make_service(factory=factory)
        assert not service.has_remote

        result = service.collect_feedback(5, trace_id=TRACE_ID)

        assert result.submitted
        assert factory.call_count == 2

    def test_factory_error_is_not_fatal(self):
        factory = MagicMock(side_effect=RuntimeError("bad key"))
        service = _make_service(factory=factory)
        assert service.is_initialized
        assert not service.collect_feedback(1).submitted


class TestValidation:
    @pytest.mark.parametrize("rating", [0, 6, -3, 10])
    def test_invalid_rating_raises(self, rating):
        service = _make_service(_mock_client())
        with pytest.raises(ValueError):
            service.collect_feedback(rating)
        assert service.pending == {}

    def test_is_valid_uuid(self):
        assert is_valid_uuid(TRACE_ID)
        assert not is_valid_uuid("thread-1752780277309")
        assert not is_valid_uuid(None)


class TestTraceResolution:
    def test_explicit_trace_id_wins(self):
        service = _make_service(None)
        assert service.resolve_trace_id("abc", "thread-1") == "abc"

    @patch("funder_assistant.feedback.service.get_current_run_tree")
    def test_active_run_tree(self, mock_run_tree):
        mock_run_tree.return_value = MagicMock(id=uuid.UUID(TRACE_ID))
        service = _make_service(None)
        assert service.resolve_trace_id(None, "thread-1") == TRACE_ID

    @patch("funder_assistant.feedback.service.get_current_run_tree", return_value=None)
    def test_uuid_thread_id(self, _mock_run_tree):
        service = _make_service(None)
        thread_id = str(uuid.uuid4())
        assert service.resolve_trace_id(None, thread_id) == thread_id

    @patch("funder_assistant.feedback.service.get_current_run_tree", return_value=None)
    def test_generated_uuid(self, _mock_run_tree):
        service = _make_service(None)
        assert is_valid_uuid(service.resolve_trace_id(None, "thread-1"))


class TestProcessUserFeedback:
    def test_parses_and_submits(self):
        client = _mock_client()
        service = _make_service(client)

        outcome = service.process_user_feedback("4 - could be more detailed", trace_id=TRACE_ID)

        assert outcome.success
        assert outcome.submitted
        assert client.create_feedback.call_args[1]["score"] == 0.75
        assert 'Comment: "could be more detailed"' in outcome.message

    def test_with_thread_uses_traced_collection(self):
        client = _mock_client()
        service = _make_service(client)

        outcome = service.process_user_feedback("5", trace_id=TRACE_ID, thread_id="thread-9")

        assert outcome.submitted
        assert client.create_feedback.call_args[1]["source_info"]["session_id"] == "thread-9"

    def test_unparseable_text(self):
        service = _make_service(None)
        outcome = service.process_user_feedback("banana")
        assert not outcome.success
        assert outcome.result is None
        assert "Please use format like" in outcome.message
        assert service.pending == {}


class TestPendingCollection:
    def test_empty_summary(self):
        assert _make_service(None).pending_summary() == "No pending feedback."

    def test_summary_and_clear(self):
        service = _make_service(None)
        service.collect_feedback(5)
        service.collect_feedback(3)

        summary = service.pending_summary()
        assert "Total ratings: 2" in summary
        assert "Average: 4.0 stars" in summary
        assert "5⭐(1) 3⭐(1)" in summary

        assert service.clear_pending() == "🗑️ Cleared 2 pending feedback items."
        assert service.pending == {}


class TestHelpers:
    def test_build_client_without_key(self):
        assert build_langsmith_client(None, "https://api.smith.langchain.com") is None

    def test_format_confirmation(self):
        service = _make_service(None)
        text = format_confirmation(service.collect_feedback(3, "fine"))
        assert text.startswith("⭐⭐⭐☆☆ Thank you for your 3-star rating!")
        assert 'Comment: "fine"' in text
        assert text.endswith("📝 Feedback recorded locally.")
