"""Provider registry resolving capability factories lazily and exactly once."""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock, RLock
from typing import Any, Callable, TypeAlias

from django.utils.module_loading import import_string

from capability_registry.logging import get_logger
from capability_registry.metrics.providers import (
    OUTCOME_CACHED,
    OUTCOME_CREATED,
    OUTCOME_FAILED,
    ProviderMetricsBackend,
    get_provider_metrics_backend,
)

from .exceptions import (
    AlreadyFrozenError,
    DuplicateProviderKeyError,
    FactoryFailedError,
    UnknownProviderKeyError,
)

logger = get_logger("registry.providers")

ProviderFactory: TypeAlias = Callable[[], Any] | str
"""Zero-argument callable, or dotted import path resolved on first use."""

_MISSING = object()


@dataclass(frozen=True, slots=True)
class ProviderEntry:
    """Registered factory for one provider key."""

    provider_key: str
    factory: ProviderFactory

    def materialize(self) -> Any:
        """
        Produce the provider value.

        Dotted paths are imported here rather than at registration time so a
        provider's module is only loaded when something actually needs it.
        Imported classes and callables are invoked without arguments; any other
        imported object is used as the value itself.
        """
        if isinstance(self.factory, str):
            resolved = import_string(self.factory)
            if isinstance(resolved, type) or callable(resolved):
                return resolved()
            return resolved
        return self.factory()

    def describe(self) -> str:
        if isinstance(self.factory, str):
            return self.factory
        module = getattr(self.factory, "__module__", "")
        qualname = getattr(self.factory, "__qualname__", "")
        if module and qualname:
            return f"{module}.{qualname}"
        return repr(self.factory)


class CapabilityProviderRegistry:
    """
    Map provider keys to factories and memoize the produced values.

    First resolution of a key is single-flight: concurrent callers wait on a
    per-key lock so the factory runs once and everybody receives the same
    object. Cached reads do not lock. A factory that raises is not cached.
    """

    def __init__(self, *, metrics: ProviderMetricsBackend | None = None) -> None:
        self._entries: dict[str, ProviderEntry] = {}
        self._cache: dict[str, Any] = {}
        self._key_locks: dict[str, Lock] = {}
        self._lock = RLock()
        self._frozen = False
        self._metrics = metrics

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def register_provider(self, provider_key: str, factory: ProviderFactory) -> None:
        """
        Register the factory for ``provider_key``.

        Raises:
            DuplicateProviderKeyError: If ``provider_key`` is already registered.
            AlreadyFrozenError: If the registry has been frozen.
            TypeError: If ``factory`` is neither callable nor a dotted path.
        """
        if not isinstance(provider_key, str) or not provider_key:
            raise ValueError("Provider keys must be non-empty strings.")  # noqa: TRY003
        if not (callable(factory) or (isinstance(factory, str) and factory)):
            raise TypeError(  # noqa: TRY003
                f"Factory for provider '{provider_key}' must be callable or a dotted path."
            )
        entry = ProviderEntry(provider_key, factory)
        with self._lock:
            if self._frozen:
                raise AlreadyFrozenError("register a provider")
            if provider_key in self._entries:
                raise DuplicateProviderKeyError(provider_key)
            self._entries[provider_key] = entry
            self._key_locks[provider_key] = Lock()
        logger.debug(
            "provider registered",
            context={"provider_key": provider_key, "factory": entry.describe()},
        )

    def freeze(self) -> None:
        with self._lock:
            self._frozen = True

    def contains(self, provider_key: object) -> bool:
        return isinstance(provider_key, str) and provider_key in self._entries

    def keys(self) -> tuple[str, ...]:
        return tuple(self._entries)

    def entry(self, provider_key: str) -> ProviderEntry:
        try:
            return self._entries[provider_key]
        except KeyError:
            raise UnknownProviderKeyError(provider_key) from None

    def is_resolved(self, provider_key: str) -> bool:
        return provider_key in self._cache

    def resolve(self, provider_key: str) -> Any:
        """
        Return the value for ``provider_key``, invoking its factory on first use.

        Raises:
            UnknownProviderKeyError: If the key was never registered.
            FactoryFailedError: If the factory raised; the next call retries.
        """
        value = self._cache.get(provider_key, _MISSING)
        if value is not _MISSING:
            self._backend().record_resolution(
                provider_key=provider_key, outcome=OUTCOME_CACHED
            )
            return value

        entry = self.entry(provider_key)
        with self._key_locks[provider_key]:
            value = self._cache.get(provider_key, _MISSING)
            if value is not _MISSING:
                self._backend().record_resolution(
                    provider_key=provider_key, outcome=OUTCOME_CACHED
                )
                return value
            value = self._materialize(entry)
            self._cache[provider_key] = value
        return value

    def _materialize(self, entry: ProviderEntry) -> Any:
        backend = self._backend()
        started = time.perf_counter()
        try:
            value = entry.materialize()
        except Exception as exc:
            backend.record_resolution(
                provider_key=entry.provider_key, outcome=OUTCOME_FAILED
            )
            logger.exception(
                "provider factory failed",
                context={
                    "provider_key": entry.provider_key,
                    "factory": entry.describe(),
                },
            )
            raise FactoryFailedError(entry.provider_key, exc) from exc
        duration = time.perf_counter() - started
        backend.record_factory_duration(
            provider_key=entry.provider_key, duration=duration
        )
        backend.record_resolution(
            provider_key=entry.provider_key, outcome=OUTCOME_CREATED
        )
        logger.debug(
            "provider resolved",
            context={
                "provider_key": entry.provider_key,
                "value_type": type(value).__name__,
                "duration": round(duration, 6),
            },
        )
        return value

    def _backend(self) -> ProviderMetricsBackend:
        if self._metrics is None:
            self._metrics = get_provider_metrics_backend()
        return self._metrics

    def __len__(self) -> int:
        return len(self._entries)
