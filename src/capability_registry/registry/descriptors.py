"""Per-type capability descriptors with a build/freeze lifecycle."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from capability_registry.logging import get_logger

from .bindings import CapabilityBinding, ProviderReference, SlotKind, to_binding
from .exceptions import (
    AggregateCompletenessError,
    AlreadyFrozenError,
    DuplicateTypeKeyError,
    NotFrozenYetError,
    UnboundSlotError,
    UnknownSlotError,
    UnknownTypeKeyError,
    Violation,
    ViolationReason,
)
from .keys import TypeKey, TypeKeySet, validate_type_key
from .providers import CapabilityProviderRegistry, ProviderFactory
from .schema import CapabilitySchema, CapabilitySlot

logger = get_logger("registry.descriptors")


class RegistryState(str, Enum):
    """Lifecycle state of a descriptor registry."""

    BUILDING = "building"
    FROZEN = "frozen"


@dataclass(frozen=True, slots=True)
class TypeDescriptor:
    """Immutable slot-to-binding table for one type key."""

    key: TypeKey
    bindings: Mapping[str, CapabilityBinding] = field(default_factory=dict)
    label: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "bindings", MappingProxyType(dict(self.bindings)))

    def binding(self, slot: str) -> CapabilityBinding | None:
        return self.bindings.get(slot)

    def describe(self) -> Mapping[str, str]:
        """Return a printable view of the bindings without resolving providers."""
        return MappingProxyType(
            {slot: binding.describe() for slot, binding in self.bindings.items()}
        )


class TypeDescriptorRegistry:
    """
    Assemble type keys and the capability schema into per-type bindings.

    The registry starts in ``BUILDING``: slots, providers and types may be
    registered. ``freeze()`` validates every descriptor at once and, on
    success, moves to ``FROZEN`` for good, after which only lookups are
    allowed. Build-phase mutations of the key set, the schema and the
    descriptor table share a single lock; frozen reads are lock-free.
    """

    def __init__(
        self,
        schema: CapabilitySchema | None = None,
        providers: CapabilityProviderRegistry | None = None,
    ) -> None:
        self._schema = schema if schema is not None else CapabilitySchema()
        self._providers = (
            providers if providers is not None else CapabilityProviderRegistry()
        )
        self._lock = self._schema.lock
        self._keys = TypeKeySet(lock=self._lock)
        self._descriptors: dict[TypeKey, TypeDescriptor] = {}
        self._state = RegistryState.BUILDING

    @property
    def schema(self) -> CapabilitySchema:
        return self._schema

    @property
    def providers(self) -> CapabilityProviderRegistry:
        return self._providers

    @property
    def keys(self) -> TypeKeySet:
        return self._keys

    @property
    def state(self) -> RegistryState:
        return self._state

    @property
    def is_frozen(self) -> bool:
        return self._state is RegistryState.FROZEN

    # Build phase -----------------------------------------------------------

    def declare_slot(
        self,
        name: str,
        required: bool = False,
        kind: SlotKind | str = SlotKind.SCALAR,
    ) -> CapabilitySlot:
        """Declare a capability slot on the underlying schema."""
        with self._lock:
            if self.is_frozen:
                raise AlreadyFrozenError("declare a slot")
            return self._schema.declare_slot(name, required=required, kind=kind)

    def register_provider(self, provider_key: str, factory: ProviderFactory) -> None:
        """Register a provider on the underlying provider registry."""
        if self.is_frozen:
            raise AlreadyFrozenError("register a provider")
        self._providers.register_provider(provider_key, factory)

    def register_type(
        self,
        key: TypeKey,
        bindings: Mapping[str, Any],
        *,
        label: str | None = None,
    ) -> TypeDescriptor:
        """
        Register the capability bindings for one type.

        Parameters:
            key: Type key, unique within this registry.
            bindings: Slot name to literal value or ``lazy("provider.key")``.
            label: Optional human readable name for the type.

        Returns:
            TypeDescriptor: The stored, immutable descriptor.

        Raises:
            AlreadyFrozenError: If the registry has been frozen.
            DuplicateTypeKeyError: If ``key`` is already registered.
            UnknownSlotError: If a binding names an undeclared slot.
        """
        validate_type_key(key)
        if not isinstance(bindings, Mapping):
            raise TypeError(  # noqa: TRY003
                f"Bindings for type '{key}' must be a mapping of slot names."
            )
        with self._lock:
            if self.is_frozen:
                raise AlreadyFrozenError("register a type")
            if key in self._keys:
                raise DuplicateTypeKeyError(key)
            normalized: dict[str, CapabilityBinding] = {}
            for slot_name, value in bindings.items():
                if not self._schema.is_declared(slot_name):
                    raise UnknownSlotError(slot_name, key)
                normalized[slot_name] = to_binding(value)
            descriptor = TypeDescriptor(key, normalized, label)
            self._keys.register(key)
            self._descriptors[key] = descriptor
        logger.debug(
            "type registered",
            context={"type_key": key, "slots": sorted(normalized)},
        )
        return descriptor

    def freeze(self) -> None:
        """
        Validate every descriptor and switch to read-only serving state.

        Raises:
            AggregateCompletenessError: With every violation across every type;
                the registry stays in ``BUILDING`` so registrations can be fixed.
        """
        with self._lock:
            if self.is_frozen:
                return
            violations = list(self._collect_violations())
            if violations:
                logger.error(
                    "capability registry failed to freeze",
                    context={
                        "violations": [violation.describe() for violation in violations]
                    },
                )
                raise AggregateCompletenessError(violations)
            self._keys.freeze()
            self._schema.freeze()
            self._providers.freeze()
            self._state = RegistryState.FROZEN
        logger.info(
            "capability registry frozen",
            context={
                "types": len(self._keys),
                "slots": len(self._schema.slots()),
                "providers": len(self._providers),
            },
        )

    def _collect_violations(self) -> Iterable[Violation]:
        for key in self._keys:
            descriptor = self._descriptors[key]
            yield from self._schema.validate(descriptor.bindings, type_key=key)
            for slot_name, binding in descriptor.bindings.items():
                if isinstance(binding, ProviderReference) and not self._providers.contains(
                    binding.provider_key
                ):
                    yield Violation(
                        key,
                        slot_name,
                        ViolationReason.UNKNOWN_PROVIDER,
                        f"provider '{binding.provider_key}' is not registered",
                    )

    # Serving phase ---------------------------------------------------------

    def lookup(self, key: TypeKey, slot: str) -> Any:
        """
        Return the value bound to ``slot`` for type ``key``.

        Direct list values are returned as fresh lists; lazy bindings are
        resolved (once) through the provider registry.

        Raises:
            NotFrozenYetError: If called before ``freeze()`` succeeded.
            UnknownTypeKeyError: If ``key`` is not registered.
            UnknownSlotError: If ``slot`` is not declared.
            UnboundSlotError: If ``slot`` is declared but not bound for ``key``.
        """
        self._ensure_frozen()
        return self._materialize(self._binding(key, slot))

    def lookup_all(self, key: TypeKey) -> dict[str, Any]:
        """Materialize every bound slot for ``key`` in schema declaration order."""
        self._ensure_frozen()
        descriptor = self._descriptor(key)
        return {
            name: self._materialize(descriptor.bindings[name])
            for name in self._schema.slots()
            if name in descriptor.bindings
        }

    def descriptor(self, key: TypeKey) -> TypeDescriptor:
        return self._descriptor(key)

    def snapshot(self) -> Mapping[TypeKey, Mapping[str, str]]:
        """Expose a read-only description of every descriptor; providers stay unresolved."""
        return MappingProxyType(
            {key: self._descriptors[key].describe() for key in self._keys}
        )

    def _ensure_frozen(self) -> None:
        if not self.is_frozen:
            raise NotFrozenYetError()

    def _descriptor(self, key: TypeKey) -> TypeDescriptor:
        descriptor = self._descriptors.get(key) if isinstance(key, str) else None
        if descriptor is None:
            raise UnknownTypeKeyError(key)
        return descriptor

    def _binding(self, key: TypeKey, slot: str) -> CapabilityBinding:
        descriptor = self._descriptor(key)
        declared = self._schema.slot(slot) if isinstance(slot, str) else None
        if declared is None:
            raise UnknownSlotError(str(slot), key)
        binding = descriptor.binding(slot)
        if binding is None:
            raise UnboundSlotError(slot, key, required=declared.required)
        return binding

    def _materialize(self, binding: CapabilityBinding) -> Any:
        if isinstance(binding, ProviderReference):
            return self._providers.resolve(binding.provider_key)
        return binding.read()

    def __contains__(self, key: object) -> bool:
        return self._keys.contains(key)

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return (
            f"TypeDescriptorRegistry(state={self._state.value!r}, "
            f"types={list(self._keys)!r})"
        )
