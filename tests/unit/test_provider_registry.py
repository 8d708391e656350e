"""Tests for lazy, single-flight provider resolution."""

from __future__ import annotations

import threading
import time
from unittest import mock

import pytest

from capability_registry.metrics.providers import (
    OUTCOME_CACHED,
    OUTCOME_CREATED,
    OUTCOME_FAILED,
)
from capability_registry.registry.exceptions import (
    AlreadyFrozenError,
    CapabilityLookupError,
    DuplicateProviderKeyError,
    FactoryFailedError,
    UnknownProviderKeyError,
)
from capability_registry.registry.providers import CapabilityProviderRegistry
from tests.example_shipping import ExpressCalculator


class CountingFactory:
    def __init__(self, delay: float = 0.0) -> None:
        self.calls = 0
        self.delay = delay
        self._lock = threading.Lock()

    def __call__(self) -> object:
        with self._lock:
            self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        return object()


def test_resolve_invokes_factory_once_and_caches():
    providers = CapabilityProviderRegistry()
    factory = CountingFactory()
    providers.register_provider("auth.token", factory)

    first = providers.resolve("auth.token")
    second = providers.resolve("auth.token")

    assert first is second
    assert factory.calls == 1
    assert providers.is_resolved("auth.token")


def test_registration_does_not_invoke_factory():
    providers = CapabilityProviderRegistry()
    factory = CountingFactory()
    providers.register_provider("auth.token", factory)

    assert factory.calls == 0
    assert not providers.is_resolved("auth.token")


def test_duplicate_provider_key_fails():
    providers = CapabilityProviderRegistry()
    providers.register_provider("auth.token", object)

    with pytest.raises(DuplicateProviderKeyError) as exc_info:
        providers.register_provider("auth.token", dict)

    assert exc_info.value.provider_key == "auth.token"


def test_unknown_provider_key_fails():
    providers = CapabilityProviderRegistry()

    with pytest.raises(UnknownProviderKeyError) as exc_info:
        providers.resolve("missing")

    assert isinstance(exc_info.value, CapabilityLookupError)
    assert isinstance(exc_info.value, LookupError)


def test_factory_must_be_callable_or_dotted_path():
    providers = CapabilityProviderRegistry()

    with pytest.raises(TypeError):
        providers.register_provider("broken", 42)  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        providers.register_provider("", dict)


def test_concurrent_first_resolution_is_single_flight():
    providers = CapabilityProviderRegistry()
    factory = CountingFactory(delay=0.05)
    providers.register_provider("shared.strategy", factory)
    callers = 16
    barrier = threading.Barrier(callers)
    results: list[object] = []
    results_lock = threading.Lock()

    def _resolve() -> None:
        barrier.wait()
        value = providers.resolve("shared.strategy")
        with results_lock:
            results.append(value)

    threads = [threading.Thread(target=_resolve) for _ in range(callers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert factory.calls == 1
    assert len(results) == callers
    assert all(value is results[0] for value in results)


def test_failed_factory_is_not_cached_and_retries():
    providers = CapabilityProviderRegistry()
    attempts = {"count": 0}
    sentinel = object()

    def _flaky() -> object:
        attempts["count"] += 1
        if attempts["count"] == 1:
            raise ConnectionError("backend not ready")
        return sentinel

    providers.register_provider("flaky", _flaky)

    with pytest.raises(FactoryFailedError) as exc_info:
        providers.resolve("flaky")

    assert isinstance(exc_info.value.cause, ConnectionError)
    assert exc_info.value.__cause__ is exc_info.value.cause
    assert not providers.is_resolved("flaky")

    assert providers.resolve("flaky") is sentinel
    assert providers.resolve("flaky") is sentinel
    assert attempts["count"] == 2


def test_cached_none_value_is_not_recomputed():
    providers = CapabilityProviderRegistry()
    factory = mock.Mock(return_value=None)
    providers.register_provider("nothing", factory)

    assert providers.resolve("nothing") is None
    assert providers.resolve("nothing") is None
    factory.assert_called_once_with()


def test_dotted_path_factory_instantiates_class():
    providers = CapabilityProviderRegistry()
    providers.register_provider(
        "shipping.express", "tests.example_shipping.ExpressCalculator"
    )

    value = providers.resolve("shipping.express")

    assert isinstance(value, ExpressCalculator)
    assert providers.resolve("shipping.express") is value


def test_dotted_path_to_plain_object_returns_object():
    providers = CapabilityProviderRegistry()
    providers.register_provider("settings.key", "tests.settings.SECRET_KEY")

    assert providers.resolve("settings.key") == "capability-registry-tests"


def test_dotted_path_is_imported_lazily():
    providers = CapabilityProviderRegistry()
    providers.register_provider("ghost", "tests.does_not_exist.Provider")

    with pytest.raises(FactoryFailedError) as exc_info:
        providers.resolve("ghost")

    assert isinstance(exc_info.value.cause, ImportError)


def test_frozen_registry_rejects_new_providers():
    providers = CapabilityProviderRegistry()
    providers.freeze()

    with pytest.raises(AlreadyFrozenError):
        providers.register_provider("late", dict)


def test_keys_and_contains():
    providers = CapabilityProviderRegistry()
    providers.register_provider("b", dict)
    providers.register_provider("a", list)

    assert providers.keys() == ("b", "a")
    assert providers.contains("a")
    assert not providers.contains("c")
    assert len(providers) == 2
    assert providers.entry("a").describe() == "builtins.list"


def test_metrics_record_each_outcome():
    metrics = mock.MagicMock()
    providers = CapabilityProviderRegistry(metrics=metrics)
    providers.register_provider("ok", dict)
    providers.register_provider("boom", mock.Mock(side_effect=RuntimeError("x")))

    providers.resolve("ok")
    providers.resolve("ok")
    with pytest.raises(FactoryFailedError):
        providers.resolve("boom")

    outcomes = [
        call.kwargs["outcome"] for call in metrics.record_resolution.call_args_list
    ]
    assert outcomes == [OUTCOME_CREATED, OUTCOME_CACHED, OUTCOME_FAILED]
    metrics.record_factory_duration.assert_called_once()
    assert metrics.record_factory_duration.call_args.kwargs["provider_key"] == "ok"
