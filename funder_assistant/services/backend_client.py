"""HTTP client for the funder backend API with retry logic and timeout handling.

Endpoints used:
  ``POST /auth/login/funder``  (email + password, returns token and/or cookies)
  ``GET  /funders``            (paginated funders list, requires auth)

Authentication is carried per request: a Bearer token when the backend
returned one, plus the session cookies it set at login.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# ── Retry configuration ─────────────────────────────────────────────
MAX_RETRIES = 3
INITIAL_BACKOFF_SECONDS = 1.0
REQUEST_TIMEOUT_SECONDS = 15.0


class BackendAPIError(Exception):
    """Raised when a backend call fails (4xx immediately, 5xx after retries)."""

    def __init__(self, message: str, status_code: int | None = None, payload: Any = None):
        self.status_code = status_code
        self.payload = payload
        super().__init__(message)


@dataclass
class BackendResponse:
    status_code: int
    data: Any
    cookies: list[str] = field(default_factory=list)


def _cookie_header(cookies: list[str] | None) -> str | None:
    """Turn stored ``Set-Cookie`` values into a ``Cookie`` request header."""
    if not cookies:
        return None
    pairs = [c.split(";", 1)[0].strip() for c in cookies if c]
    return "; ".join(p for p in pairs if p) or None


def _auth_headers(token: str | None, cookies: list[str] | None) -> dict[str, str]:
    headers = {}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    cookie = _cookie_header(cookies)
    if cookie:
        headers["Cookie"] = cookie
    return headers


def _payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class BackendClient:
    """Thin wrapper around the funder backend REST API with automatic retries."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        metrics=None,
    ):
        self.base_url = base_url.rstrip("/")
        self._metrics = metrics
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )

    def close(self) -> None:
        self._client.close()

    # ── Internal helpers ─────────────────────────────────────────────

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> BackendResponse:
        """Execute an HTTP request with exponential-backoff retries."""
        operation = f"{method} {path}"
        last_error: Exception | None = None
        for attempt in range(1, MAX_RETRIES + 1):
            t0 = time.perf_counter()
            try:
                response = self._client.request(
                    method,
                    path,
                    params=params,
                    json=json_body,
                    headers=headers,
                )
                if response.status_code >= 400:
                    raise BackendAPIError(
                        f"{'Server' if response.status_code >= 500 else 'Client'} error "
                        f"{response.status_code}: {response.text}",
                        status_code=response.status_code,
                        payload=_payload(response),
                    )
                self._record_success(operation, t0)
                return BackendResponse(
                    status_code=response.status_code,
                    data=_payload(response),
                    cookies=response.headers.get_list("set-cookie"),
                )

            except (httpx.TimeoutException, httpx.ConnectError) as exc:
                self._record_failure(operation, exc, t0)
                last_error = exc
                logger.warning(
                    "Backend API attempt %d/%d failed (%s). Retrying in %.1fs…",
                    attempt,
                    MAX_RETRIES,
                    type(exc).__name__,
                    INITIAL_BACKOFF_SECONDS * (2 ** (attempt - 1)),
                )
            except BackendAPIError as exc:
                self._record_failure(operation, exc, t0)
                if exc.status_code and exc.status_code >= 500:
                    last_error = exc
                    logger.warning(
                        "Backend API server error on attempt %d/%d. Retrying…",
                        attempt,
                        MAX_RETRIES,
                    )
                else:
                    raise  # 4xx errors are not retried

            if attempt < MAX_RETRIES:
                time.sleep(INITIAL_BACKOFF_SECONDS * (2 ** (attempt - 1)))

        status_code = getattr(last_error, "status_code", None)
        raise BackendAPIError(
            f"Backend API request failed after {MAX_RETRIES} retries: {last_error}",
            status_code=status_code,
            payload=getattr(last_error, "payload", None),
        )

    def _record_success(self, operation: str, t0: float) -> None:
        if self._metrics is not None:
            self._metrics.record_success(
                "backend", operation, latency_ms=(time.perf_counter() - t0) * 1000,
            )

    def _record_failure(self, operation: str, exc: Exception, t0: float) -> None:
        if self._metrics is not None:
            self._metrics.record_failure(
                "backend", operation,
                error_type=type(exc).__name__,
                latency_ms=(time.perf_counter() - t0) * 1000,
            )

    # ── Endpoints ────────────────────────────────────────────────────

    def login(self, email: str, password: str) -> BackendResponse:
        """Log in a funder account.  Raises :class:`BackendAPIError` on rejection."""
        return self._request(
            "POST", "/auth/login/funder",
            json_body={"email": email, "password": password},
        )

    def list_funders(
        self,
        params: dict[str, Any] | None = None,
        *,
        token: str | None = None,
        cookies: list[str] | None = None,
    ) -> BackendResponse:
        """``GET /funders`` with pagination/search/sort query parameters."""
        query = {k: v for k, v in (params or {}).items() if v is not None}
        for key, value in query.items():
            if isinstance(value, bool):
                query[key] = str(value).lower()
        return self._request(
            "GET", "/funders", params=query, headers=_auth_headers(token, cookies),
        )

    def get(
        self,
        url: str,
        *,
        token: str | None = None,
        cookies: list[str] | None = None,
    ) -> BackendResponse:
        """Authenticated GET.  *url* may be absolute or relative to the base URL."""
        return self._request("GET", url, headers=_auth_headers(token, cookies))
