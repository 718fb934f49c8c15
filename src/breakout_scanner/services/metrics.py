"""Prometheus metrics helpers used across the scanner."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)


@dataclass
class MetricsRegistry:
    """Container owning all Prometheus collectors exposed by the API.

    * ``provider_errors_total`` counts market data failures per provider and
      reason so operators can watch for a degraded data source.
    * ``rate_limit_retries_total`` counts HTTP 429 retries issued by the
      candle fetcher.
    * ``scan_duration_seconds`` records how long complete scans take, labelled
      by outcome.
    * ``symbols_analyzed_total`` counts per-symbol analyses by outcome.
    """

    registry: CollectorRegistry = field(init=False)
    provider_errors: Counter = field(init=False)
    rate_limit_retries: Counter = field(init=False)
    scan_duration: Histogram = field(init=False)
    symbols_analyzed: Counter = field(init=False)

    def __post_init__(self) -> None:
        self._initialise()

    def _initialise(self) -> None:
        """Instantiate collectors on a fresh registry."""
        # A private registry keeps unit tests isolated from the process-wide
        # default registry.
        self.registry = CollectorRegistry()
        self.provider_errors = Counter(
            "provider_errors_total",
            "Number of market data provider errors grouped by provider and reason.",
            ("provider", "reason"),
            registry=self.registry,
        )
        self.rate_limit_retries = Counter(
            "rate_limit_retries_total",
            "Number of requests retried after an HTTP 429 answer.",
            ("provider",),
            registry=self.registry,
        )
        self.scan_duration = Histogram(
            "scan_duration_seconds",
            "Observed duration of complete scans in seconds.",
            ("outcome",),
            registry=self.registry,
            buckets=(1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 600.0, float("inf")),
        )
        self.symbols_analyzed = Counter(
            "symbols_analyzed_total",
            "Number of symbols analysed during scans grouped by outcome.",
            ("outcome",),
            registry=self.registry,
        )

    def reset(self) -> None:
        """Reset all collectors to an empty state (useful for deterministic tests)."""
        self._initialise()

    def record_provider_error(self, provider: str, reason: str) -> None:
        """Increment the provider error counter for the supplied context."""
        self.provider_errors.labels(provider=provider, reason=reason or "unknown").inc()

    def record_rate_limit_retry(self, provider: str) -> None:
        """Increment the 429 retry counter."""
        self.rate_limit_retries.labels(provider=provider).inc()

    def observe_scan_duration(self, outcome: str, seconds: float) -> None:
        """Record how long a scan took in seconds (clamped to >= 0)."""
        self.scan_duration.labels(outcome=outcome).observe(max(0.0, float(seconds)))

    def record_symbol(self, outcome: str) -> None:
        """Increment the per-symbol analysis counter."""
        self.symbols_analyzed.labels(outcome=outcome).inc()

    def render(self) -> bytes:
        """Return the latest metrics snapshot in Prometheus exposition format."""
        return generate_latest(self.registry)

    @property
    def content_type(self) -> str:
        """Expose the canonical content type for the Prometheus text format."""
        return CONTENT_TYPE_LATEST


# Singleton used across the application. Tests call ``metrics.reset()`` for a
# blank slate.
metrics: Final[MetricsRegistry] = MetricsRegistry()


__all__ = ["metrics", "MetricsRegistry"]
