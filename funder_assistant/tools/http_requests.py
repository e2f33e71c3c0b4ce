"""LangChain tools for ad-hoc HTTP requests and connectivity checks."""

from __future__ import annotations

import json
import logging
import time
from typing import Any
from urllib.parse import urlparse

import httpx
from langchain_core.tools import BaseTool, tool

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
ANALYZE_TIMEOUT_SECONDS = 10.0
PING_TIMEOUT_SECONDS = 5.0
PING_INTERVAL_SECONDS = 1.0
MAX_PING_COUNT = 10
PREVIEW_LENGTH = 1000


def _valid_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _preview(response: httpx.Response) -> str:
    try:
        body = json.dumps(response.json(), indent=2, ensure_ascii=False)
    except ValueError:
        body = response.text
    if len(body) > PREVIEW_LENGTH:
        return body[:PREVIEW_LENGTH] + "\n... (truncated)"
    return body


def _format_response(method: str, url: str, response: httpx.Response) -> str:
    return (
        f"🌐 HTTP {method} Response:\n\n"
        f"📍 URL: {url}\n"
        f"📊 Status: {response.status_code} {response.reason_phrase}\n"
        f"📋 Headers: {json.dumps(dict(response.headers), indent=2)}\n\n"
        f"📄 Response Data:\n{_preview(response)}"
    )


def _request_error(method: str, url: str, timeout: float, exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return f"❌ Error: Request timeout after {timeout:g}s"
    if isinstance(exc, httpx.ConnectError):
        return f"❌ Error: Connection failed to {url} ({exc})"
    return f"❌ Error making HTTP {method} request: {exc}"


@tool
def http_get(url: str, headers: dict[str, str] | None = None, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> str:
    """Make an HTTP GET request to a URL with optional headers and timeout.

    Args:
        url: The URL to send the GET request to.
        headers: Optional HTTP headers as key-value pairs.
        timeout: Request timeout in seconds (default: 30).
    """
    if not url:
        return "❌ Error: URL is required for HTTP GET request"
    if not _valid_url(url):
        return f"❌ Error: Invalid URL format: {url}"
    try:
        response = httpx.get(url, headers=headers or {}, timeout=timeout)
    except httpx.HTTPError as exc:
        logger.warning("GET %s failed: %s", url, exc)
        return _request_error("GET", url, timeout, exc)
    return _format_response("GET", url, response)


@tool
def http_post(
    url: str,
    data: Any = None,
    headers: dict[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> str:
    """Make an HTTP POST request with a JSON body, headers and timeout.

    Args:
        url: The URL to send the POST request to.
        data: The data to send in the request body.
        headers: Optional HTTP headers as key-value pairs.
        timeout: Request timeout in seconds (default: 30).
    """
    if not url:
        return "❌ Error: URL is required for HTTP POST request"
    if not _valid_url(url):
        return f"❌ Error: Invalid URL format: {url}"
    request_headers = dict(headers or {})
    if not any(key.lower() == "content-type" for key in request_headers):
        request_headers["Content-Type"] = "application/json"
    try:
        response = httpx.post(
            url,
            json=data if data is not None else {},
            headers=request_headers,
            timeout=timeout,
        )
    except httpx.HTTPError as exc:
        logger.warning("POST %s failed: %s", url, exc)
        return _request_error("POST", url, timeout, exc)
    return _format_response("POST", url, response)


def _url_components(url: str) -> list[str]:
    parsed = urlparse(url)
    port = parsed.port or (443 if parsed.scheme == "https" else 80)
    return [
        "🌐 URL Components:",
        f"  • Protocol: {parsed.scheme}:",
        f"  • Hostname: {parsed.hostname}",
        f"  • Port: {port}",
        f"  • Path: {parsed.path or '/'}",
        f"  • Query: {'?' + parsed.query if parsed.query else 'None'}",
        f"  • Fragment: {'#' + parsed.fragment if parsed.fragment else 'None'}",
    ]


@tool
def url_analyzer(url: str) -> str:
    """Analyze a URL: its components plus the server's HEAD response.

    Args:
        url: The URL to analyze.
    """
    if not url:
        return "❌ Error: URL is required for analysis"
    if not _valid_url(url):
        return f"❌ Error: Invalid URL format: {url}"

    lines = ["🔍 URL Analysis Results:", "", *_url_components(url), ""]
    try:
        response = httpx.head(url, timeout=ANALYZE_TIMEOUT_SECONDS)
    except httpx.HTTPError as exc:
        lines += ["⚠️ Server Response: Could not connect to server", f"Error: {exc}"]
        return "\n".join(lines)

    headers = response.headers
    lines += [
        "📊 Server Response:",
        f"  • Status: {response.status_code} {response.reason_phrase}",
        f"  • Content Type: {headers.get('content-type', 'Unknown')}",
        f"  • Content Length: {headers.get('content-length', 'Unknown')}",
        f"  • Last Modified: {headers.get('last-modified', 'Unknown')}",
        f"  • Server: {headers.get('server', 'Unknown')}",
    ]
    return "\n".join(lines)


@tool
def ping(url: str, count: int = 1) -> str:
    """Test connectivity to a URL or hostname with HEAD requests and report response times.

    Args:
        url: The URL or hostname to ping.
        count: Number of attempts (default: 1, max: 10).
    """
    if not url:
        return "❌ Error: URL is required for ping test"
    target = url if url.startswith(("http://", "https://")) else f"https://{url}"
    if not _valid_url(target):
        return f"❌ Error: Invalid URL or hostname: {url}"

    attempts = max(1, min(count, MAX_PING_COUNT))
    lines = [f"🏓 Ping Test Results for {target}:", ""]
    successes = 0
    total_ms = 0

    for attempt in range(1, attempts + 1):
        start = time.perf_counter()
        try:
            response = httpx.head(target, timeout=PING_TIMEOUT_SECONDS)
        except httpx.HTTPError as exc:
            elapsed = round((time.perf_counter() - start) * 1000)
            lines.append(f"  {attempt}. ❌ Error - {elapsed}ms ({exc})")
        else:
            elapsed = round((time.perf_counter() - start) * 1000)
            ok = response.status_code < 400
            lines.append(f"  {attempt}. {'✅' if ok else '❌'} {response.status_code} - {elapsed}ms")
            if ok:
                successes += 1
                total_ms += elapsed
        if attempt < attempts:
            time.sleep(PING_INTERVAL_SECONDS)

    average = f"{total_ms / successes:.2f}" if successes else "N/A"
    lines += [
        "",
        "📊 Summary:",
        f"  • Success Rate: {successes / attempts * 100:.1f}% ({successes}/{attempts})",
        f"  • Average Response Time: {average}ms",
    ]
    return "\n".join(lines)


def build_http_tools() -> list[BaseTool]:
    return [http_get, http_post, url_analyzer, ping]
