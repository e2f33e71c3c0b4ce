"""Tests for the FastAPI endpoints."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from langchain_core.messages import HumanMessage

from funder_assistant.application import WorkflowTimeoutError
from funder_assistant.feedback.service import FeedbackRecord, FeedbackResult
from funder_assistant.server import app
from funder_assistant.store.conversations import Conversation
from funder_assistant.threads import TurnResult

RUN_ID = "6f1c2a4e-8a3b-4c55-9d0e-1f2a3b4c5d6e"


@pytest.fixture
def mock_application():
    """Create a mock Application and attach it to app state (mirrors the lifespan)."""
    application = MagicMock()
    application.current_thread_id = "thread-1"
    application.process_message = AsyncMock(return_value=TurnResult(
        response="Here are your funders.",
        thread_id="thread-1",
        run_id=RUN_ID,
        feedback_requested=True,
    ))

    # Attach to app state the same way the lifespan does
    app.state.application = application
    yield application
    # Clean up
    app.state.application = None


@pytest.fixture
def client(mock_application):
    """FastAPI test client with the mock application wired up."""
    return TestClient(app)


class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "funder-assistant"

    def test_request_id_echoed(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"


class TestChatEndpoint:
    def test_chat_returns_response(self, client, mock_application):
        response = client.post("/api/chat", json={"message": "list funders"})
        assert response.status_code == 200
        data = response.json()
        assert data["reply"] == "Here are your funders."
        assert data["session_id"] == "thread-1"
        assert data["run_id"] == RUN_ID
        assert data["feedback_requested"] is True
        mock_application.process_message.assert_awaited_once_with("list funders", thread_id=None)
        mock_application.switch_thread.assert_not_called()

    def test_session_is_passed_to_the_turn(self, client, mock_application):
        client.post("/api/chat", json={"message": "hi", "session_id": "thread-9"})

        mock_application.process_message.assert_awaited_once_with("hi", thread_id="thread-9")
        # Thread selection happens inside the turn, never in the route
        mock_application.switch_thread.assert_not_called()
        mock_application.new_conversation.assert_not_called()

    def test_chat_validates_empty_message(self, client):
        response = client.post("/api/chat", json={"message": ""})
        assert response.status_code == 422  # Pydantic validation error

    def test_chat_timeout_returns_504(self, client, mock_application):
        mock_application.process_message.side_effect = WorkflowTimeoutError("Request timeout (30 seconds)")
        response = client.post("/api/chat", json={"message": "slow"})
        assert response.status_code == 504

    def test_chat_handles_agent_error(self, client, mock_application):
        mock_application.process_message.side_effect = RuntimeError("LLM exploded")
        response = client.post("/api/chat", json={"message": "Hello!"})
        assert response.status_code == 500
        # Internal details must not leak
        assert "LLM exploded" not in response.text

    def test_not_ready_returns_503(self):
        app.state.application = None
        response = TestClient(app).post("/api/chat", json={"message": "Hello!"})
        assert response.status_code == 503


class TestFeedbackEndpoint:
    def _result(self, submitted: bool) -> FeedbackResult:
        record = FeedbackRecord(
            rating=4, comment="", key="user_rating", trace_id=RUN_ID,
            thread_id="thread-1", timestamp="2025-07-17T12:00:00+00:00", submitted=submitted,
        )
        if submitted:
            return FeedbackResult(record=record, message="sent", feedback_id="fb-1")
        return FeedbackResult(record=record, message="kept", local_id="local_1_abc")

    def test_submitted(self, client, mock_application):
        mock_application.submit_feedback.return_value = self._result(True)

        response = client.post("/api/feedback", json={"rating": 4, "run_id": RUN_ID})

        assert response.status_code == 200
        assert response.json()["submitted"] is True
        assert response.json()["feedback_id"] == "fb-1"
        mock_application.submit_feedback.assert_called_once_with(4, "", RUN_ID, None)

    def test_session_latest_turn_is_rated(self, client, mock_application):
        mock_application.submit_feedback.return_value = self._result(True)

        client.post("/api/feedback", json={"rating": 4, "comment": "ok", "session_id": "sess-A"})

        mock_application.submit_feedback.assert_called_once_with(4, "ok", None, "sess-A")

    def test_kept_locally(self, client, mock_application):
        mock_application.submit_feedback.return_value = self._result(False)
        data = client.post("/api/feedback", json={"rating": 4}).json()
        assert data["submitted"] is False
        assert data["local_id"] == "local_1_abc"

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range(self, client, rating):
        assert client.post("/api/feedback", json={"rating": rating}).status_code == 422


class TestThreadsEndpoint:
    def test_lists_threads(self, client, mock_application):
        mock_application.list_threads.return_value = [
            Conversation(id="thread-1", title="Funders", messages=[HumanMessage(content="q")]),
            Conversation(id="thread-0", title="Older"),
        ]
        data = client.get("/api/threads").json()
        assert [t["id"] for t in data] == ["thread-1", "thread-0"]
        assert data[0]["current"] is True
        assert data[0]["message_count"] == 1
        assert data[1]["current"] is False

    def test_thread_history(self, client, mock_application):
        mock_application.thread_history.return_value = [
            {"role": "user", "content": "list funders"},
            {"role": "assistant", "content": "Here are your funders."},
        ]
        response = client.get("/api/threads/thread-7/history")
        assert response.status_code == 200
        assert response.json()[1] == {"role": "assistant", "content": "Here are your funders."}
        mock_application.thread_history.assert_called_once_with("thread-7")

    def test_thread_history_empty(self, client, mock_application):
        mock_application.thread_history.return_value = []
        assert client.get("/api/threads/thread-7/history").json() == []


class TestPendingFeedbackEndpoint:
    def test_reports_pending_ratings(self, client, mock_application):
        service = mock_application.feedback_service
        service.pending = {"local-1": MagicMock(), "local-2": MagicMock()}
        service.pending_summary.return_value = "📋 2 pending feedback records"

        data = client.get("/api/feedback/pending").json()
        assert data == {"count": 2, "summary": "📋 2 pending feedback records"}


class TestRootEndpoint:
    def test_lists_endpoints(self, client):
        data = client.get("/").json()
        assert data["service"] == "Funder Assistant"
        assert data["endpoints"]["thread_history"] == "/api/threads/{thread_id}/history"
        assert data["endpoints"]["pending_feedback"] == "/api/feedback/pending"
