"""Counters, gauges and timings for the portal, logged and optionally sent to StatsD."""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from statsd import StatsClient

from app.config import settings

logger = logging.getLogger("app.metrics")

Tags = dict[str, Any]


class MetricsReporter:
    """Emit portal metrics as ``mentor_portal.metric`` log events.

    With ``backend="statsd"`` each sample is also forwarded to a StatsD agent.
    Counters and timings honour ``sample_rate``; gauges are always sent.
    """

    def __init__(
        self,
        *,
        namespace: str = "mentor_portal",
        backend: str = "stdout",
        sample_rate: float = 1.0,
        disabled: bool = False,
        statsd_client: StatsClient | None = None,
    ) -> None:
        self.namespace = namespace.strip(".") or "mentor_portal"
        self.backend = backend.lower()
        self.sample_rate = min(max(sample_rate, 0.0), 1.0)
        self.disabled = disabled
        self._statsd = statsd_client

    @classmethod
    def from_settings(cls) -> "MetricsReporter":
        backend = (settings.metrics_backend or "stdout").lower()
        client = None
        if backend == "statsd" and not settings.metrics_disable:
            client = StatsClient(
                host=settings.metrics_statsd_host,
                port=settings.metrics_statsd_port,
                prefix=None,
            )
        return cls(
            namespace=settings.metrics_namespace or "mentor_portal",
            backend=backend,
            sample_rate=settings.metrics_sample_rate,
            disabled=settings.metrics_disable,
            statsd_client=client,
        )

    def increment(self, metric: str, value: float = 1.0, *, tags: Tags | None = None) -> None:
        self._record("counter", metric, value, tags)

    def gauge(self, metric: str, value: float, *, tags: Tags | None = None) -> None:
        self._record("gauge", metric, value, tags)

    def timing(self, metric: str, value: float, *, tags: Tags | None = None) -> None:
        self._record("timing", metric, value, tags)

    @contextmanager
    def timed(self, metric: str, *, tags: Tags | None = None) -> Iterator[None]:
        """Record the wall-clock duration of the block in milliseconds."""
        started = time.perf_counter()
        try:
            yield
        finally:
            self.timing(metric, (time.perf_counter() - started) * 1000, tags=tags)

    def qualified(self, metric: str) -> str:
        name = metric.strip().strip(".")
        if not name:
            return self.namespace
        if name.startswith(f"{self.namespace}."):
            return name
        return f"{self.namespace}.{name}"

    def _record(self, kind: str, metric: str, value: float, tags: Tags | None) -> None:
        if self.disabled:
            return
        rate = 1.0 if kind == "gauge" else self.sample_rate
        if rate < 1.0 and random.random() >= rate:
            return
        name = self.qualified(metric)
        event = {"metric": name, "type": kind, "value": round(float(value), 4), "tags": dict(tags or {})}
        if rate < 1.0:
            event["sample_rate"] = rate
        logger.info("mentor_portal.metric", extra={"metrics": event})
        if self._statsd is None:
            return
        try:
            if kind == "counter":
                self._statsd.incr(name, value, rate=rate)
            elif kind == "gauge":
                self._statsd.gauge(name, value)
            else:
                self._statsd.timing(name, value, rate=rate)
        except OSError as exc:
            logger.warning(
                "metrics.backend_error",
                extra={"metric": name, "backend": self.backend, "error": type(exc).__name__},
            )


metrics = MetricsReporter.from_settings()
