"""FastAPI server for the Funder Assistant.

Run with:
    funder-assistant-server --port 8000
    uvicorn funder_assistant.server:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from funder_assistant.api.routes import router
from funder_assistant.application import Application
from funder_assistant.config import CORS_ORIGINS, SERVER_HOST, SERVER_PORT

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: one Application per process ────────────────────────────
@asynccontextmanager
async def lifespan(api: FastAPI):
    """Build the :class:`Application` (stores, clients, compiled workflow) once.

    Every request shares it; turns are serialised by its internal lock.
    On shutdown the current conversation is saved and metrics are flushed.
    """
    logger.info("Building application and compiling workflow…")
    application = Application()
    logger.info(
        "Application ready (thread=%s, langsmith=%s, search=%s)",
        application.current_thread_id,
        "on" if application.thread_manager.has_remote else "off",
        "on" if application.search_client.available else "off",
    )
    api.state.application = application
    yield
    await asyncio.to_thread(application.shutdown)
    api.state.application = None


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title="Funder Assistant",
    description=(
        "Conversational assistant for the funder platform with tool routing, "
        "LangSmith tracing and 1-5 star feedback."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Tag each request with an ID for log correlation, echoed as ``X-Request-ID``."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info("[%s] %s %s", request_id, request.method, request.url.path)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Service info and the endpoint index."""
    return {
        "service": "Funder Assistant",
        "version": "1.0.0",
        "docs": "/docs",
        "endpoints": {
            "health": "/api/health",
            "chat": "/api/chat",
            "feedback": "/api/feedback",
            "pending_feedback": "/api/feedback/pending",
            "threads": "/api/threads",
            "thread_history": "/api/threads/{thread_id}/history",
        },
    }


def main():
    """Serve the API with uvicorn."""
    parser = argparse.ArgumentParser(description="Funder Assistant API server")
    parser.add_argument("--host", default=SERVER_HOST)
    parser.add_argument("--port", type=int, default=SERVER_PORT)
    parser.add_argument("--reload", action="store_true", help="Restart on code changes")
    args = parser.parse_args()

    logger.info("Starting Funder Assistant API server on %s:%d", args.host, args.port)
    uvicorn.run("funder_assistant.server:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
