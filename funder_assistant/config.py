"""Centralized configuration for the Funder Assistant.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/funder-assistant/<VARIABLE_NAME>``.
Optional integrations (LangSmith, Tavily) resolve to ``None`` when absent;
the components that need them degrade instead of failing at start-up.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# ── Feature flag: running on AWS? ────────────────────────────────────
_ON_AWS = bool(os.getenv("AWS_EXECUTION_ENV"))
_SSM_PREFIX = "/funder-assistant"


# ── Secret resolution ────────────────────────────────────────────────

def _get_ssm_parameter(name: str) -> str | None:
    """Read ``<prefix>/<name>`` from SSM, or ``None`` on any failure (logged at DEBUG)."""
    try:
        import boto3  # noqa: PLC0415

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"{_SSM_PREFIX}/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed (expected locally)", name)
        return None


def _optional_env(*names: str) -> str | None:
    """Return the first non-placeholder value among *names*, then SSM."""
    for name in names:
        value = os.getenv(name)
        if value and not value.startswith("your_"):
            return value

    if _ON_AWS:
        for name in names:
            ssm_value = _get_ssm_parameter(name)
            if ssm_value:
                return ssm_value
    return None


def _require_env(name: str) -> str:
    """Return a config value from env-var or SSM, or raise a clear error."""
    value = _optional_env(name)
    if value:
        return value

    raise OSError(
        f"Missing required configuration: {name}. "
        f"Set it in .env (local) or SSM Parameter Store {_SSM_PREFIX}/{name} (AWS)."
    )


# ── LLM ─────────────────────────────────────────────────────────────
ANTHROPIC_API_KEY: str = _require_env("ANTHROPIC_API_KEY")
MODEL_NAME: str = os.getenv("MODEL_NAME", "claude-sonnet-4-5")

# Router classification and the turn conclusion run on the cheap model
ROUTER_MODEL_NAME: str = os.getenv("ROUTER_MODEL_NAME", "claude-haiku-4-5")
FAST_MODEL_NAME: str = os.getenv("FAST_MODEL_NAME", "claude-haiku-4-5")

# ── LangSmith (tracing, feedback, thread history) ───────────────────
LANGSMITH_API_KEY: str | None = _optional_env("LANGSMITH_API_KEY", "LANGCHAIN_API_KEY")
LANGSMITH_ENDPOINT: str = (
    os.getenv("LANGSMITH_ENDPOINT")
    or os.getenv("LANGCHAIN_ENDPOINT")
    or "https://api.smith.langchain.com"
)
LANGSMITH_PROJECT: str = (
    os.getenv("LANGSMITH_PROJECT") or os.getenv("LANGCHAIN_PROJECT") or "agent-project"
)

# ── Tavily web search ───────────────────────────────────────────────
TAVILY_API_KEY: str | None = _optional_env("TAVILY_API_KEY")

# ── Funder backend ──────────────────────────────────────────────────
BACKEND_BASE_URL: str = os.getenv("BACKEND_BASE_URL", "http://localhost:5001/api/v1")

# ── Local persistence ───────────────────────────────────────────────
DATA_DIR: str = os.getenv("DATA_DIR", os.path.join(os.getcwd(), "data"))
AUTOSAVE_INTERVAL: int = int(os.getenv("AUTOSAVE_INTERVAL", "10"))
MAX_CONVERSATIONS: int = int(os.getenv("MAX_CONVERSATIONS", "100"))

# ── Turn budget ─────────────────────────────────────────────────────
WORKFLOW_TIMEOUT_SECONDS: float = float(os.getenv("WORKFLOW_TIMEOUT_SECONDS", "30"))

# ── Server ──────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8000"))
CORS_ORIGINS: list[str] = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if origin.strip()
]
