"""Model-call metrics with batched CloudWatch publishing.

Every call to the hosted model (plain generation and each agent step) is
recorded as a request count plus a latency sample, tagged with the
``Service`` and ``Operation`` it belongs to.  Failures additionally record
an ``ErrorCount`` tagged with the exception type.

Data points are buffered in memory.  When ``METRICS_ENABLED=true`` a daemon
thread pushes them to CloudWatch every ``FLUSH_INTERVAL_SECONDS``;
otherwise they are only logged at DEBUG level and never buffered.

Usage
-----
>>> from src.services.metrics import metrics
>>> with metrics.timed("anthropic", "generate"):
...     llm.invoke(messages)
"""

from __future__ import annotations

import atexit
import logging
import os
import threading
import time
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any, Iterator

logger = logging.getLogger(__name__)

NAMESPACE = "BlogAgentChat"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # CloudWatch API limit per PutMetricData call


def _datum(name: str, value: float, unit: str, **dimensions: str) -> dict[str, Any]:
    return {
        "MetricName": name,
        "Dimensions": [{"Name": k, "Value": v} for k, v in dimensions.items()],
        "Timestamp": datetime.now(UTC),
        "Value": value,
        "Unit": unit,
    }


class MetricsClient:
    """Buffers model-call metrics and ships them to CloudWatch in batches."""

    def __init__(self, enabled: bool | None = None) -> None:
        if enabled is None:
            enabled = os.getenv("METRICS_ENABLED", "false").lower() == "true"
        self._enabled = enabled
        self._buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self._cw_client = None

        if self._enabled:
            self._start_flush_thread()

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._buffer)

    def record_success(self, service: str, operation: str, latency_ms: float) -> None:
        self._extend(
            _datum("ModelCall/RequestCount", 1, "Count", Service=service, Status="success"),
            _datum("ModelCall/Latency", latency_ms, "Milliseconds", Service=service, Operation=operation),
        )
        logger.debug("Metric: %s %s ok %.1fms", service, operation, latency_ms)

    def record_failure(
        self,
        service: str,
        operation: str,
        error_type: str,
        latency_ms: float = 0,
    ) -> None:
        points = [
            _datum("ModelCall/RequestCount", 1, "Count", Service=service, Status="failure"),
            _datum("ModelCall/ErrorCount", 1, "Count", Service=service, ErrorType=error_type),
        ]
        if latency_ms > 0:
            points.append(
                _datum("ModelCall/Latency", latency_ms, "Milliseconds", Service=service, Operation=operation)
            )
        self._extend(*points)
        logger.debug("Metric: %s %s failed (%s) %.1fms", service, operation, error_type, latency_ms)

    @contextmanager
    def timed(self, service: str, operation: str) -> Iterator[None]:
        """Record latency and outcome of the wrapped block.  Exceptions propagate."""
        t0 = time.perf_counter()
        try:
            yield
        except Exception as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            self.record_failure(service, operation, type(exc).__name__, latency_ms=elapsed)
            raise
        self.record_success(service, operation, (time.perf_counter() - t0) * 1000)

    def flush(self) -> int:
        """Send buffered metrics to CloudWatch.  Returns count sent."""
        with self._lock:
            batch, self._buffer = self._buffer, []

        if not batch:
            return 0
        if not self._enabled:
            logger.debug("Metrics disabled, dropping %d data points", len(batch))
            return 0

        sent = 0
        try:
            if self._cw_client is None:
                import boto3

                self._cw_client = boto3.client("cloudwatch")
            for i in range(0, len(batch), MAX_BATCH_SIZE):
                chunk = batch[i : i + MAX_BATCH_SIZE]
                self._cw_client.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
            logger.info("Flushed %d metrics to CloudWatch", sent)
        except Exception:
            logger.exception("Failed to flush metrics to CloudWatch")
        return sent

    def _extend(self, *points: dict[str, Any]) -> None:
        if not self._enabled:
            return
        with self._lock:
            self._buffer.extend(points)

    def _start_flush_thread(self) -> None:
        def _loop():
            while True:
                time.sleep(FLUSH_INTERVAL_SECONDS)
                try:
                    self.flush()
                except Exception:
                    logger.exception("Metrics flush thread error")

        threading.Thread(target=_loop, daemon=True, name="metrics-flush").start()
        atexit.register(self.flush)
        logger.info("Metrics flush thread started (interval=%ds)", FLUSH_INTERVAL_SECONDS)


# ── Module-level singleton ──────────────────────────────────────────
metrics = MetricsClient()
