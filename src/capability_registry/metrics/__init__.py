"""Metrics helpers for the capability registry."""

from .providers import (
    NoopProviderMetricsBackend,
    PrometheusProviderMetricsBackend,
    ProviderMetricsBackend,
    get_provider_metrics_backend,
    reset_provider_metrics_backend_for_tests,
)

__all__ = [
    "NoopProviderMetricsBackend",
    "PrometheusProviderMetricsBackend",
    "ProviderMetricsBackend",
    "get_provider_metrics_backend",
    "reset_provider_metrics_backend_for_tests",
]
