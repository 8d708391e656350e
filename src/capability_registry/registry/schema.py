"""Capability slot declarations and per-descriptor validation."""

from __future__ import annotations

from dataclasses import dataclass
from threading import RLock
from types import MappingProxyType
from typing import Iterable, Mapping

from .bindings import CapabilityBinding, SlotKind
from .exceptions import (
    AlreadyFrozenError,
    SlotKindConflictError,
    Violation,
    ViolationReason,
)


@dataclass(frozen=True, slots=True)
class CapabilitySlot:
    """Named capability a type may provide."""

    name: str
    required: bool = False
    kind: SlotKind = SlotKind.SCALAR

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("Slot names must be non-empty strings.")  # noqa: TRY003
        object.__setattr__(self, "kind", SlotKind.coerce(self.kind))
        object.__setattr__(self, "required", bool(self.required))


class CapabilitySchema:
    """Declares which slots exist, which are required, and their kinds."""

    def __init__(
        self,
        slots: Iterable[CapabilitySlot] = (),
        *,
        lock: RLock | None = None,
    ) -> None:
        self._lock = lock or RLock()
        self._slots: dict[str, CapabilitySlot] = {}
        self._frozen = False
        for slot in slots:
            self.declare_slot(slot.name, required=slot.required, kind=slot.kind)

    @property
    def lock(self) -> RLock:
        """Lock guarding build-phase mutations; shared with the owning registry."""
        return self._lock

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def declare_slot(
        self,
        name: str,
        required: bool = False,
        kind: SlotKind | str = SlotKind.SCALAR,
    ) -> CapabilitySlot:
        """
        Declare a slot, or confirm an existing declaration.

        Redeclaring with the same kind is accepted; ``required`` can only be
        tightened, never relaxed.

        Raises:
            SlotKindConflictError: If ``name`` was declared with another kind.
            AlreadyFrozenError: If the owning registry has been frozen.
        """
        candidate = CapabilitySlot(name, required, kind)
        with self._lock:
            if self._frozen:
                raise AlreadyFrozenError("declare a slot")
            existing = self._slots.get(name)
            if existing is not None:
                if existing.kind is not candidate.kind:
                    raise SlotKindConflictError(
                        name, existing.kind.value, candidate.kind.value
                    )
                if existing.required or not candidate.required:
                    return existing
            self._slots[name] = candidate
            return candidate

    def freeze(self) -> None:
        with self._lock:
            self._frozen = True

    def is_declared(self, name: object) -> bool:
        return isinstance(name, str) and name in self._slots

    def slot(self, name: str) -> CapabilitySlot | None:
        return self._slots.get(name)

    def slots(self) -> Mapping[str, CapabilitySlot]:
        """Return a read-only view of the declared slots in declaration order."""
        return MappingProxyType(dict(self._slots))

    def required_slots(self) -> tuple[CapabilitySlot, ...]:
        return tuple(slot for slot in self._slots.values() if slot.required)

    def validate(
        self,
        descriptor: Mapping[str, CapabilityBinding],
        *,
        type_key: str = "",
    ) -> list[Violation]:
        """
        Collect every violation for one descriptor.

        Parameters:
            descriptor: Mapping of slot name to binding for a single type.
            type_key: Key reported in the returned violations.

        Returns:
            list[Violation]: Missing required slots in declaration order,
            followed by kind mismatches in binding order. Empty when valid.
        """
        violations: list[Violation] = []
        for slot in self._slots.values():
            if slot.required and slot.name not in descriptor:
                violations.append(
                    Violation(type_key, slot.name, ViolationReason.MISSING)
                )
        for name, binding in descriptor.items():
            slot = self._slots.get(name)
            if slot is None:
                continue
            if binding.kind is not slot.kind:
                violations.append(
                    Violation(
                        type_key,
                        name,
                        ViolationReason.KIND_MISMATCH,
                        f"expected {slot.kind.value}, got {binding.kind.value}",
                    )
                )
        return violations

    def __repr__(self) -> str:
        return f"CapabilitySchema({list(self._slots.values())!r})"
