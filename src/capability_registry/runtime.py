"""Process-wide capability registry configuration and lookup helpers."""

from __future__ import annotations

from threading import Lock
from typing import Any, Callable

from django.conf import settings
from django.utils.module_loading import import_string

from capability_registry.conf import (
    default_fallback,
    provider_definitions,
    registrars,
    slot_definitions,
)
from capability_registry.logging import get_logger
from capability_registry.registry.descriptors import TypeDescriptorRegistry
from capability_registry.registry.dispatcher import Dispatcher

logger = get_logger("runtime")

Registrar = Callable[[TypeDescriptorRegistry], None]

_registry: TypeDescriptorRegistry | None = None
_dispatcher: Dispatcher | None = None
_init_lock = Lock()


def configure_type_registry(registry: TypeDescriptorRegistry | None) -> None:
    """Set the active registry; ``None`` resets to lazy initialization from settings."""
    global _registry, _dispatcher
    _registry = registry
    _dispatcher = None


def _resolve_registrar(value: Any) -> Registrar:
    resolved = import_string(value) if isinstance(value, str) else value
    if not callable(resolved):
        raise TypeError(f"Registrar {value!r} is not callable.")  # noqa: TRY003
    return resolved


def build_registry_from_settings(django_settings: Any = settings) -> TypeDescriptorRegistry:
    """
    Build an unfrozen registry from ``CAPABILITY_REGISTRY`` settings.

    Slots are declared first, then providers, then each registrar runs in the
    configured order with the registry as its only argument.
    """
    registry = TypeDescriptorRegistry()
    for name, definition in slot_definitions(django_settings).items():
        registry.declare_slot(
            name,
            required=bool(definition.get("required", False)),
            kind=definition.get("kind", "scalar"),
        )
    for provider_key, factory in provider_definitions(django_settings).items():
        registry.register_provider(provider_key, factory)
    for value in registrars(django_settings):
        registrar = _resolve_registrar(value)
        logger.debug(
            "running capability registrar",
            context={"registrar": getattr(registrar, "__qualname__", repr(registrar))},
        )
        registrar(registry)
    return registry


def initialize_registry(django_settings: Any = settings) -> TypeDescriptorRegistry:
    """
    Build, freeze and install the process-wide registry.

    Raises:
        AggregateCompletenessError: If the configured registrations are incomplete;
            nothing is installed in that case.
    """
    registry = build_registry_from_settings(django_settings)
    registry.freeze()
    configure_type_registry(registry)
    return registry


def get_type_registry() -> TypeDescriptorRegistry:
    """
    Return the active registry, initializing it from settings on first use.

    Concurrent first callers wait for a single initialization and share its result.
    """
    registry = _registry
    if registry is not None:
        return registry
    with _init_lock:
        if _registry is not None:
            return _registry
        return initialize_registry(settings)


def get_dispatcher() -> Dispatcher:
    """Return the dispatcher bound to the active registry."""
    global _dispatcher
    registry = get_type_registry()
    dispatcher = _dispatcher
    if dispatcher is not None:
        return dispatcher
    with _init_lock:
        if _dispatcher is None:
            _dispatcher = Dispatcher(registry, default=default_fallback())
        return _dispatcher
