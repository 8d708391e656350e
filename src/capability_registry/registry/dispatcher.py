"""Façade business code uses to obtain capabilities for a runtime type."""

from __future__ import annotations

from typing import Any

from capability_registry.logging import get_logger

from .descriptors import TypeDescriptorRegistry
from .exceptions import (
    CapabilityLookupError,
    RegistryInvariantError,
    UnboundSlotError,
)
from .keys import TypeKey

logger = get_logger("registry.dispatcher")

_UNSET: Any = object()


class Dispatcher:
    """
    Resolve ``(type, slot)`` requests against a frozen descriptor registry.

    Callers never see provider keys or binding objects. Absent optional slots
    fall back to the per-call ``fallback`` or the dispatcher ``default``; an
    absent required slot means the registry broke its completeness guarantee
    and raises ``RegistryInvariantError``.
    """

    def __init__(self, registry: TypeDescriptorRegistry, *, default: Any = None) -> None:
        self._registry = registry
        self._default = default

    @property
    def default(self) -> Any:
        return self._default

    def resolve_capability(
        self,
        type_key: TypeKey,
        slot: str,
        fallback: Any = _UNSET,
    ) -> Any:
        """
        Return capability ``slot`` of ``type_key``.

        Parameters:
            type_key: Runtime type identifier, e.g. read from a record.
            slot: Capability slot name.
            fallback: Value returned when an optional slot is unbound for this
                type; defaults to the dispatcher's configured default.

        Raises:
            UnknownTypeKeyError: Unknown type; recoverable, the caller decides.
            UnknownSlotError: Undeclared slot.
            NotFrozenYetError: Registry not frozen yet.
            FactoryFailedError: A lazily resolved provider raised.
            RegistryInvariantError: A required slot is unbound after freeze.
        """
        try:
            return self._registry.lookup(type_key, slot)
        except UnboundSlotError as exc:
            if exc.required:
                logger.critical(
                    "required capability missing from frozen registry",
                    context={"type_key": type_key, "slot": slot},
                )
                raise RegistryInvariantError(type_key, slot) from exc
            return self._default if fallback is _UNSET else fallback
        except CapabilityLookupError as exc:
            logger.warning(
                "capability lookup failed",
                context={
                    "type_key": type_key,
                    "slot": slot,
                    "error": type(exc).__name__,
                },
            )
            raise

    def resolve_bundle(self, type_key: TypeKey) -> dict[str, Any]:
        """
        Return every declared slot for ``type_key``; absent optional slots hold the default.
        """
        return {
            slot: self.resolve_capability(type_key, slot)
            for slot in self._registry.schema.slots()
        }

    def available_types(self) -> tuple[TypeKey, ...]:
        return self._registry.keys.all()

    def supports(self, type_key: object) -> bool:
        return type_key in self._registry

    def has_capability(self, type_key: TypeKey, slot: str) -> bool:
        """Return True when ``type_key`` is registered and binds ``slot``."""
        if not self.supports(type_key):
            return False
        return self._registry.descriptor(type_key).binding(slot) is not None
