"""FastAPI route definitions for the funder assistant API."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Request

from funder_assistant.api.schemas import (
    ChatRequest,
    ChatResponse,
    FeedbackRequest,
    FeedbackResponse,
    HealthResponse,
    PendingFeedbackResponse,
    ThreadMessage,
    ThreadSummary,
)
from funder_assistant.application import Application, WorkflowTimeoutError

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_application(request: Request) -> Application:
    """Retrieve the :class:`Application` created during the FastAPI lifespan."""
    application = getattr(request.app.state, "application", None)
    if application is None:
        raise HTTPException(
            status_code=503,
            detail="The agent is still starting up. Please try again in a moment.",
        )
    return application


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse()


@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, http_request: Request):
    """Send a message to the assistant and get a response.

    ``session_id`` selects the thread: a known thread (local or in
    LangSmith) is resumed, an unknown one is started fresh under that id.
    """
    application = _get_application(http_request)
    request_id = getattr(http_request.state, "request_id", "?")

    try:
        result = await application.process_message(request.message, thread_id=request.session_id)
        return ChatResponse(
            reply=result.response,
            session_id=result.thread_id,
            run_id=result.run_id,
            feedback_requested=result.feedback_requested,
        )

    except WorkflowTimeoutError as e:
        logger.warning("[%s] %s", request_id, e)
        raise HTTPException(
            status_code=504,
            detail="The request timed out. Please try again.",
        ) from e
    except Exception as e:
        # Full traceback stays server-side
        logger.exception("[%s] Error processing chat request", request_id)
        raise HTTPException(
            status_code=500,
            detail="An internal error occurred. Please try again.",
        ) from e


@router.post("/feedback", response_model=FeedbackResponse)
async def feedback(request: FeedbackRequest, http_request: Request):
    """Rate a reply.  Ratings that cannot reach LangSmith are kept locally.

    Without ``run_id`` the latest turn of ``session_id`` is rated.
    """
    application = _get_application(http_request)
    result = await asyncio.to_thread(
        application.submit_feedback,
        request.rating,
        request.comment,
        request.run_id,
        request.session_id,
    )
    return FeedbackResponse(
        submitted=result.submitted,
        message=result.message,
        feedback_id=result.feedback_id,
        local_id=result.local_id,
    )


@router.get("/feedback/pending", response_model=PendingFeedbackResponse)
async def pending_feedback(http_request: Request):
    application = _get_application(http_request)
    service = application.feedback_service
    return PendingFeedbackResponse(count=len(service.pending), summary=service.pending_summary())


@router.get("/threads", response_model=list[ThreadSummary])
async def list_threads(http_request: Request):
    """Locally stored threads, newest first."""
    application = _get_application(http_request)
    current = application.current_thread_id
    return [
        ThreadSummary(
            id=conv.id,
            title=conv.title,
            message_count=len(conv.messages),
            updated_at=conv.updated_at,
            current=conv.id == current,
        )
        for conv in application.list_threads()
    ]


@router.get("/threads/{thread_id}/history", response_model=list[ThreadMessage])
async def thread_history(thread_id: str, http_request: Request):
    """Conversation of the thread's latest traced LLM run, read from LangSmith.

    Empty when LangSmith is not configured or holds no runs for the thread.
    """
    application = _get_application(http_request)
    history = await asyncio.to_thread(application.thread_history, thread_id)
    return [ThreadMessage(**entry) for entry in history]
