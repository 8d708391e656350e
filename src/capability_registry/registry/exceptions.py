"""Exception types raised by the type capability registry."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

__all__ = [
    "AggregateCompletenessError",
    "AlreadyFrozenError",
    "CapabilityLookupError",
    "CapabilityRegistryError",
    "DuplicateKeyError",
    "DuplicateProviderKeyError",
    "DuplicateTypeKeyError",
    "FactoryFailedError",
    "InvalidTypeMappingError",
    "NotFrozenYetError",
    "ProviderError",
    "RegistrationError",
    "RegistryInvariantError",
    "SlotKindConflictError",
    "UnboundSlotError",
    "UnknownProviderKeyError",
    "UnknownSlotError",
    "UnknownTypeKeyError",
    "Violation",
    "ViolationReason",
]


class CapabilityRegistryError(Exception):
    """Base class for every recoverable or startup error raised by the registry."""


class RegistrationError(CapabilityRegistryError):
    """Raised when a build-phase registration call is rejected."""


class CapabilityLookupError(CapabilityRegistryError, LookupError):
    """Raised when a runtime lookup cannot be served."""


class ProviderError(CapabilityRegistryError):
    """Raised when a capability provider cannot produce its value."""


class DuplicateKeyError(RegistrationError, ValueError):
    """Raised when a type key is added to a key set twice."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Type key '{key}' is already registered.")


class DuplicateTypeKeyError(DuplicateKeyError):
    """Raised when a type descriptor is registered twice for the same key."""


class DuplicateProviderKeyError(RegistrationError, ValueError):
    """Raised when a provider key is registered twice."""

    def __init__(self, provider_key: str) -> None:
        self.provider_key = provider_key
        super().__init__(f"Provider '{provider_key}' is already registered.")


class SlotKindConflictError(RegistrationError, TypeError):
    """Raised when a slot is redeclared with a different value kind."""

    def __init__(self, slot: str, declared: str, requested: str) -> None:
        self.slot = slot
        self.declared = declared
        self.requested = requested
        super().__init__(
            f"Slot '{slot}' is declared as '{declared}' and cannot be "
            f"redeclared as '{requested}'."
        )


class AlreadyFrozenError(RegistrationError, RuntimeError):
    """Raised when a registry is mutated after it has been frozen."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Cannot {operation}: the registry is frozen.")


class UnknownSlotError(RegistrationError, CapabilityLookupError):
    """Raised when a slot name is not declared in the capability schema."""

    def __init__(self, slot: str, type_key: str | None = None) -> None:
        self.slot = slot
        self.type_key = type_key
        if type_key is None:
            message = f"Slot '{slot}' is not declared in the capability schema."
        else:
            message = (
                f"Slot '{slot}' referenced by type '{type_key}' is not declared "
                "in the capability schema."
            )
        super().__init__(message)


class UnboundSlotError(UnknownSlotError):
    """Raised when a declared slot carries no binding for the requested type."""

    def __init__(self, slot: str, type_key: str, *, required: bool) -> None:
        self.required = required
        super().__init__(slot, type_key)
        self.args = (f"Type '{type_key}' provides no binding for slot '{slot}'.",)


class UnknownTypeKeyError(CapabilityLookupError):
    """Raised when a type key is not registered."""

    def __init__(self, key: object) -> None:
        self.key = key
        super().__init__(f"Unknown type key '{key}'.")


class NotFrozenYetError(CapabilityLookupError):
    """Raised when a lookup is attempted before the registry has been frozen."""

    def __init__(self) -> None:
        super().__init__("The registry must be frozen before lookups are served.")


class UnknownProviderKeyError(ProviderError, CapabilityLookupError):
    """Raised when resolving a provider key that was never registered."""

    def __init__(self, provider_key: str) -> None:
        self.provider_key = provider_key
        super().__init__(f"Unknown provider key '{provider_key}'.")


class FactoryFailedError(ProviderError):
    """Raised when a provider factory raises; the failure is never cached."""

    def __init__(self, provider_key: str, cause: BaseException) -> None:
        self.provider_key = provider_key
        self.cause = cause
        super().__init__(
            f"Provider '{provider_key}' failed: {type(cause).__name__}: {cause}"
        )


class ViolationReason(str, Enum):
    """Why a binding failed completeness validation."""

    MISSING = "missing"
    KIND_MISMATCH = "kind_mismatch"
    UNKNOWN_PROVIDER = "unknown_provider"


@dataclass(frozen=True, slots=True)
class Violation:
    """A single ``(type, slot)`` problem found while freezing."""

    type_key: str
    slot: str
    reason: ViolationReason = ViolationReason.MISSING
    detail: str = ""

    def as_pair(self) -> tuple[str, str]:
        return (self.type_key, self.slot)

    def describe(self) -> str:
        text = f"{self.type_key}.{self.slot}: {self.reason.value}"
        if self.detail:
            text = f"{text} ({self.detail})"
        return text


class AggregateCompletenessError(CapabilityRegistryError):
    """Raised by ``freeze()`` with every violation found across every type."""

    def __init__(self, violations: Iterable[Violation]) -> None:
        self.violations: tuple[Violation, ...] = tuple(violations)
        lines = "\n".join(f"  - {violation.describe()}" for violation in self.violations)
        super().__init__(
            f"Capability registry is incomplete ({len(self.violations)} "
            f"violation(s)):\n{lines}"
        )

    @property
    def pairs(self) -> list[tuple[str, str]]:
        """Return the violations as ``(type_key, slot)`` pairs in discovery order."""
        return [violation.as_pair() for violation in self.violations]


class InvalidTypeMappingError(CapabilityRegistryError, ValueError):
    """Raised when a cross-type mapping references keys outside its domains."""

    def __init__(self, problems: Iterable[str]) -> None:
        self.problems: tuple[str, ...] = tuple(problems)
        super().__init__("Invalid type mapping: " + "; ".join(self.problems))


class RegistryInvariantError(RuntimeError):
    """
    Raised when the frozen registry contradicts its own completeness guarantee.

    Not a ``CapabilityRegistryError``: it signals a defect, not a condition
    callers are expected to recover from.
    """

    def __init__(self, type_key: str, slot: str) -> None:
        self.type_key = type_key
        self.slot = slot
        super().__init__(
            f"Required slot '{slot}' is unbound for type '{type_key}' in a "
            "frozen registry."
        )
