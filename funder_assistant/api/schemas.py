"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    """Incoming chat message from the frontend."""

    message: str = Field(..., min_length=1, max_length=4000, description="The user's message")
    session_id: str | None = Field(
        None,
        min_length=1,
        max_length=100,
        description="Thread to continue; the current thread is used when omitted",
    )


class ChatResponse(BaseModel):
    """Response from the agent."""

    reply: str = Field(..., description="The agent's response message")
    session_id: str = Field(..., description="The thread ID this turn was traced under")
    run_id: str = Field(..., description="LangSmith run ID, used to attach feedback")
    feedback_requested: bool = Field(False, description="Whether the reply asks for a rating")


class FeedbackRequest(BaseModel):
    """A 1-5 star rating for a previous reply."""

    rating: int = Field(..., ge=1, le=5, description="Star rating from 1 to 5")
    comment: str = Field("", max_length=2000, description="Optional free-text comment")
    run_id: str | None = Field(None, description="Run to rate; defaults to the latest turn of the session")
    session_id: str | None = Field(
        None,
        min_length=1,
        max_length=100,
        description="Thread whose latest turn is rated; the current thread is used when omitted",
    )


class FeedbackResponse(BaseModel):
    submitted: bool = Field(..., description="True when the rating reached LangSmith")
    message: str
    feedback_id: str | None = None
    local_id: str | None = None


class ThreadSummary(BaseModel):
    id: str
    title: str
    message_count: int
    updated_at: str
    current: bool = False


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "funder-assistant"


class PendingFeedbackResponse(BaseModel):
    """Ratings kept locally because they could not reach LangSmith."""

    count: int
    summary: str


class ThreadMessage(BaseModel):
    role: str = Field(..., description="user, assistant, system or tool")
    content: str
