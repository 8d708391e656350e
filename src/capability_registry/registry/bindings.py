"""Binding representations: direct values and lazy provider references."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeAlias


class SlotKind(str, Enum):
    """Value kind a capability slot accepts."""

    SCALAR = "scalar"
    LIST = "list"
    REFERENCE = "reference"

    @classmethod
    def coerce(cls, value: "SlotKind | str") -> "SlotKind":
        """Accept either an enum member or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(kind.value for kind in cls)
            raise ValueError(  # noqa: TRY003
                f"Unknown slot kind '{value}'; expected one of: {allowed}."
            ) from None


@dataclass(frozen=True, slots=True)
class ProviderReference:
    """Lazy binding naming the provider that produces the slot value."""

    provider_key: str

    def __post_init__(self) -> None:
        if not isinstance(self.provider_key, str) or not self.provider_key:
            raise ValueError("Provider references need a non-empty string key.")  # noqa: TRY003

    @property
    def kind(self) -> SlotKind:
        return SlotKind.REFERENCE

    def describe(self) -> str:
        return f"provider:{self.provider_key}"


@dataclass(frozen=True, slots=True)
class DirectBinding:
    """Literal binding; list values are stored as tuples and copied on read."""

    value: Any
    kind: SlotKind = SlotKind.SCALAR

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", SlotKind.coerce(self.kind))
        if self.kind is SlotKind.REFERENCE:
            raise ValueError("Use ProviderReference for reference bindings.")  # noqa: TRY003
        if self.kind is SlotKind.LIST:
            object.__setattr__(self, "value", tuple(self.value))
        elif isinstance(self.value, (dict, set)):
            object.__setattr__(self, "value", self.value.copy())

    @classmethod
    def of(cls, value: Any) -> "DirectBinding":
        if isinstance(value, (list, tuple)):
            return cls(value, SlotKind.LIST)
        return cls(value, SlotKind.SCALAR)

    def read(self) -> Any:
        """Return a value the caller may mutate without touching registry state."""
        if self.kind is SlotKind.LIST:
            return list(self.value)
        if isinstance(self.value, (dict, set)):
            return self.value.copy()
        return self.value

    def describe(self) -> str:
        return repr(self.read())


CapabilityBinding: TypeAlias = DirectBinding | ProviderReference


def lazy(provider_key: str) -> ProviderReference:
    """Reference a provider by key instead of binding a concrete object."""
    return ProviderReference(provider_key)


def to_binding(value: Any) -> CapabilityBinding:
    """Normalize a registration value into a binding."""
    if isinstance(value, (DirectBinding, ProviderReference)):
        return value
    return DirectBinding.of(value)
