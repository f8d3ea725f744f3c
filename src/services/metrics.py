"""CloudWatch custom metrics emitter with background batching.

Two kinds of data points are published:

* **Completion calls**: count, latency and errors for every request the
  service makes to the text-completion model (``intent_classify`` and
  ``chat``).
* **Routing events**: conversation mode transitions and the specialty
  suggested by each triage, so the handoff funnel can be charted.

Metrics are buffered in memory and flushed by a daemon thread every
``FLUSH_INTERVAL_SECONDS`` when ``METRICS_ENABLED=true``.  Otherwise they
are only logged at DEBUG level and dropped on flush.

Usage
-----
>>> from src.services.metrics import metrics
>>> metrics.record_success("anthropic", "chat", latency_ms=812.0)
>>> metrics.record_transition("generic", "doctor_handoff_pending")
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

NAMESPACE = "Mediverse"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # CloudWatch API limit per PutMetricData call


def _dims(**pairs: str) -> list[dict[str, str]]:
    return [{"Name": name, "Value": value} for name, value in pairs.items()]


class MetricsClient:
    """Batched CloudWatch metrics publisher."""

    def __init__(self) -> None:
        self._enabled = os.getenv("METRICS_ENABLED", "false").lower() == "true"
        self._buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self._cw_client = None  # lazy-init

        if self._enabled:
            self._start_flush_thread()

    def _get_cw_client(self):
        if self._cw_client is None:
            import boto3  # noqa: PLC0415 optional dependency (``aws`` extra)

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    # ── Completion calls ──────────────────────────────────────────────

    def record_success(self, service: str, operation: str, latency_ms: float) -> None:
        """Record a successful completion call."""
        self._put("Completion/RequestCount", _dims(Service=service, Status="success"))
        self._put(
            "Completion/Latency",
            _dims(Service=service, Operation=operation),
            value=latency_ms,
            unit="Milliseconds",
        )
        logger.debug("Metric: %s %s success latency=%.1fms", service, operation, latency_ms)

    def record_failure(
        self,
        service: str,
        operation: str,
        error_type: str,
        latency_ms: float = 0,
    ) -> None:
        """Record a failed completion call."""
        self._put("Completion/RequestCount", _dims(Service=service, Status="failure"))
        self._put("Completion/ErrorCount", _dims(Service=service, ErrorType=error_type))
        if latency_ms > 0:
            self._put(
                "Completion/Latency",
                _dims(Service=service, Operation=operation),
                value=latency_ms,
                unit="Milliseconds",
            )
        logger.debug(
            "Metric: %s %s failure error=%s latency=%.1fms",
            service, operation, error_type, latency_ms,
        )

    # ── Routing events ────────────────────────────────────────────────

    def record_transition(self, from_mode: str, to_mode: str) -> None:
        """Record a conversation moving from one mode to another."""
        self._put("Routing/ModeTransition", _dims(From=str(from_mode), To=str(to_mode)))
        logger.debug("Metric: transition %s -> %s", from_mode, to_mode)

    def record_triage(self, specialty: str, doctor_found: bool) -> None:
        """Record the specialty suggested by a triage and whether a doctor matched."""
        self._put(
            "Routing/TriageCount",
            _dims(Specialty=str(specialty), DoctorFound=str(doctor_found).lower()),
        )
        logger.debug("Metric: triage %s doctor_found=%s", specialty, doctor_found)

    # ── Flushing ──────────────────────────────────────────────────────

    def flush(self) -> int:
        """Send buffered metrics to CloudWatch.  Returns count sent."""
        with self._lock:
            if not self._buffer:
                return 0
            batch = self._buffer[:]
            self._buffer.clear()

        if not self._enabled:
            logger.debug("Metrics flush skipped (not enabled): %d items", len(batch))
            return 0

        sent = 0
        try:
            cw = self._get_cw_client()
            for i in range(0, len(batch), MAX_BATCH_SIZE):
                chunk = batch[i : i + MAX_BATCH_SIZE]
                cw.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
            logger.info("Flushed %d metrics to CloudWatch", sent)
        except Exception:
            logger.exception("Failed to flush metrics to CloudWatch")
        return sent

    # ── Internal ──────────────────────────────────────────────────────

    def _put(
        self,
        name: str,
        dimensions: list[dict[str, str]],
        *,
        value: float = 1,
        unit: str = "Count",
    ) -> None:
        datum = {
            "MetricName": name,
            "Dimensions": dimensions,
            "Timestamp": datetime.now(UTC),
            "Value": value,
            "Unit": unit,
        }
        with self._lock:
            self._buffer.append(datum)

    def _start_flush_thread(self) -> None:
        def _loop():
            while True:
                time.sleep(FLUSH_INTERVAL_SECONDS)
                try:
                    self.flush()
                except Exception:
                    logger.exception("Metrics flush thread error")

        t = threading.Thread(target=_loop, daemon=True, name="metrics-flush")
        t.start()
        atexit.register(self.flush)
        logger.info("Metrics flush thread started (interval=%ds)", FLUSH_INTERVAL_SECONDS)


# ── Module-level singleton ──────────────────────────────────────────
metrics = MetricsClient()
