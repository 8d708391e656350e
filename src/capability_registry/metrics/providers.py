"""Provider resolution metrics for the capability registry."""

from __future__ import annotations

from typing import Any, Protocol

from capability_registry.conf import metrics_enabled
from capability_registry.logging import get_logger

logger = get_logger("metrics.providers")

OUTCOME_CREATED = "created"
OUTCOME_CACHED = "cached"
OUTCOME_FAILED = "failed"


class ProviderMetricsBackend(Protocol):
    def record_resolution(self, *, provider_key: str, outcome: str) -> None: ...

    def record_factory_duration(self, *, provider_key: str, duration: float) -> None: ...


class NoopProviderMetricsBackend:
    def record_resolution(self, *, provider_key: str, outcome: str) -> None:
        return None

    def record_factory_duration(self, *, provider_key: str, duration: float) -> None:
        return None


class PrometheusProviderMetricsBackend:
    _initialized = False
    _resolution_counter: Any
    _factory_duration: Any

    def __init__(self) -> None:
        self._ensure_metrics()

    @classmethod
    def _ensure_metrics(cls) -> None:
        if cls._initialized:
            return

        from prometheus_client import Counter, Histogram, REGISTRY

        def _get_or_create(
            collector_cls: type, name: str, desc: str, labels: list[str]
        ):
            existing = REGISTRY._names_to_collectors.get(name)  # type: ignore[attr-defined]
            if existing is not None:
                return existing
            return collector_cls(name, desc, labels)

        cls._resolution_counter = _get_or_create(
            Counter,
            "capability_registry_provider_resolutions_total",
            "Capability provider resolutions by outcome.",
            ["provider_key", "outcome"],
        )
        cls._factory_duration = _get_or_create(
            Histogram,
            "capability_registry_provider_factory_seconds",
            "Capability provider factory duration in seconds.",
            ["provider_key"],
        )
        cls._initialized = True

    def record_resolution(self, *, provider_key: str, outcome: str) -> None:
        self._resolution_counter.labels(
            provider_key=provider_key, outcome=outcome
        ).inc()

    def record_factory_duration(self, *, provider_key: str, duration: float) -> None:
        self._factory_duration.labels(provider_key=provider_key).observe(
            max(duration, 0.0)
        )


_metrics_backend: ProviderMetricsBackend | None = None


def reset_provider_metrics_backend_for_tests() -> None:
    global _metrics_backend
    _metrics_backend = None


def get_provider_metrics_backend() -> ProviderMetricsBackend:
    """Return the process-wide metrics backend, choosing it from settings once."""
    global _metrics_backend
    if _metrics_backend is not None:
        return _metrics_backend
    if metrics_enabled():
        _metrics_backend = PrometheusProviderMetricsBackend()
        logger.debug("prometheus provider metrics enabled")
    else:
        _metrics_backend = NoopProviderMetricsBackend()
    return _metrics_backend
