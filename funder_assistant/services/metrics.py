"""CloudWatch custom metrics emitter with background batching.

Publishes per-call metrics (count, latency, errors) for every external
service the assistant talks to (Anthropic, LangSmith, the funder backend,
Tavily) plus a rating counter for user feedback.

* Data points are collected in a thread-safe in-memory buffer.
* When enabled (``METRICS_ENABLED=true``), a daemon thread flushes the
  buffer to CloudWatch every ``FLUSH_INTERVAL_SECONDS``.
* Otherwise metrics are logged at DEBUG level and dropped on flush.

The client is created once by the application and passed to the
components that report through it.

>>> metrics = MetricsClient()
>>> metrics.record_success("backend", "GET /funders", latency_ms=123.4)
>>> metrics.record_feedback(5, submitted=True)
"""

from __future__ import annotations

import atexit
import logging
import os
import threading
import time
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

NAMESPACE = "FunderAssistant"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # CloudWatch API limit per PutMetricData call


class MetricsClient:
    """Batched CloudWatch metrics publisher."""

    def __init__(self, enabled: bool | None = None) -> None:
        if enabled is None:
            enabled = os.getenv("METRICS_ENABLED", "false").lower() == "true"
        self._enabled = enabled
        self._buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._cw_client = None

        if self._enabled:
            self._start_flush_thread()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _get_cw_client(self):
        if self._cw_client is None:
            import boto3

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    # ── Public API ────────────────────────────────────────────────────

    def record_success(self, service: str, operation: str, latency_ms: float) -> None:
        """Record a successful external call."""
        now = datetime.now(UTC)
        self._add("ExternalAPI/RequestCount", now, Service=service, Status="success")
        self._add("ExternalAPI/Latency", now, latency_ms, "Milliseconds", Service=service, Operation=operation)
        logger.debug("Metric: %s %s success latency=%.1fms", service, operation, latency_ms)

    def record_failure(
        self,
        service: str,
        operation: str,
        error_type: str,
        latency_ms: float = 0,
    ) -> None:
        """Record a failed external call; latency is only kept when measured."""
        now = datetime.now(UTC)
        self._add("ExternalAPI/RequestCount", now, Service=service, Status="failure")
        self._add("ExternalAPI/ErrorCount", now, Service=service, ErrorType=error_type)
        if latency_ms > 0:
            self._add("ExternalAPI/Latency", now, latency_ms, "Milliseconds", Service=service, Operation=operation)
        logger.debug(
            "Metric: %s %s failure error=%s latency=%.1fms",
            service, operation, error_type, latency_ms,
        )

    def record_feedback(self, rating: int, submitted: bool) -> None:
        """Count one user rating, split by stars and destination."""
        self._add(
            "Feedback/RatingCount",
            datetime.now(UTC),
            Stars=str(rating),
            Destination="langsmith" if submitted else "local",
        )
        logger.debug("Metric: feedback rating=%d submitted=%s", rating, submitted)

    def flush(self) -> int:
        """Push everything buffered to CloudWatch and return how many points went out.

        The buffer is emptied either way; when publishing is disabled the
        points are simply dropped.
        """
        with self._lock:
            batch, self._buffer = self._buffer, []
        if not batch:
            return 0
        if not self._enabled:
            logger.debug("Dropping %d metric points (publishing disabled)", len(batch))
            return 0

        sent = 0
        try:
            cw = self._get_cw_client()
            while sent < len(batch):
                chunk = batch[sent : sent + MAX_BATCH_SIZE]
                cw.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
            logger.info("Flushed %d metrics to CloudWatch", sent)
        except Exception:
            logger.exception("Failed to flush metrics to CloudWatch (%d of %d sent)", sent, len(batch))
        return sent

    def close(self) -> None:
        """Stop the background thread and send what is left."""
        self._stop.set()
        self.flush()

    # ── Internal ──────────────────────────────────────────────────────

    def _add(
        self,
        name: str,
        timestamp: datetime,
        value: float = 1,
        unit: str = "Count",
        **dimensions: str,
    ) -> None:
        datum = {
            "MetricName": name,
            "Dimensions": [{"Name": key, "Value": val} for key, val in dimensions.items()],
            "Timestamp": timestamp,
            "Value": value,
            "Unit": unit,
        }
        with self._lock:
            self._buffer.append(datum)

    def _start_flush_thread(self) -> None:
        def _loop():
            while not self._stop.wait(FLUSH_INTERVAL_SECONDS):
                try:
                    self.flush()
                except Exception:
                    logger.exception("Metrics flush thread error")

        threading.Thread(target=_loop, daemon=True, name="metrics-flush").start()
        atexit.register(self.close)
        logger.info("Metrics flush thread started (interval=%ds)", FLUSH_INTERVAL_SECONDS)


class timed:
    """Context manager that reports one external call to a metrics client.

    >>> with timed(metrics, "tavily", "search"):
    ...     client.search(query)

    ``metrics`` may be ``None``, in which case nothing is recorded.
    Exceptions are recorded as failures and re-raised.
    """

    def __init__(self, metrics: MetricsClient | None, service: str, operation: str) -> None:
        self.metrics = metrics
        self.service = service
        self.operation = operation
        self.elapsed_ms = 0.0
        self._t0 = 0.0

    def __enter__(self) -> timed:
        self._t0 = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.elapsed_ms = (time.perf_counter() - self._t0) * 1000
        if self.metrics is not None:
            if exc_type is None:
                self.metrics.record_success(self.service, self.operation, latency_ms=self.elapsed_ms)
            else:
                self.metrics.record_failure(
                    self.service, self.operation,
                    error_type=exc_type.__name__, latency_ms=self.elapsed_ms,
                )
        return False
