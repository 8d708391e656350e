"""Lazy public exports of the capability registry packages.

Each export map entry maps a public name to either a module path string or a
``(module_path, attribute_name)`` tuple. A plain string means that the public
name and the attribute name are identical. Package ``__init__`` modules bind
their ``__all__``, ``__getattr__`` and ``__dir__`` through ``lazy_exports`` so
submodules (and Django settings access) load only when an export is used.
"""

from __future__ import annotations

import sys
from importlib import import_module
from typing import Any, Callable, Mapping

LazyExportMap = Mapping[str, str | tuple[str, str]]


class UnknownExportError(AttributeError):
    """Raised when a package is asked for a name outside its export map."""

    def __init__(self, module_name: str, name: str) -> None:
        super().__init__(f"module {module_name!r} has no attribute {name!r}")
        self.module_name = module_name
        self.name = name


def export_target(name: str, target: str | tuple[str, str]) -> tuple[str, str]:
    """Return ``(module_path, attribute_name)`` for one export map entry."""
    if isinstance(target, tuple):
        return target
    return target, name


def lazy_exports(
    module_name: str, exports: LazyExportMap
) -> tuple[list[str], Callable[[str], Any], Callable[[], list[str]]]:
    """
    Build the ``__all__``, ``__getattr__`` and ``__dir__`` of a package.

    A resolved export is stored on the package module, so its import happens
    once and later attribute access bypasses ``__getattr__``.
    """

    def module_getattr(name: str) -> Any:
        target = exports.get(name)
        if target is None:
            raise UnknownExportError(module_name, name)
        module_path, attribute = export_target(name, target)
        value = getattr(import_module(module_path), attribute)
        setattr(sys.modules[module_name], name, value)
        return value

    def module_dir() -> list[str]:
        return sorted(set(vars(sys.modules[module_name])) | set(exports))

    return list(exports), module_getattr, module_dir


CAPABILITY_REGISTRY_EXPORTS: LazyExportMap = {
    "CapabilityProviderRegistry": (
        "capability_registry.registry.providers",
        "CapabilityProviderRegistry",
    ),
    "CapabilitySchema": ("capability_registry.registry.schema", "CapabilitySchema"),
    "CapabilitySlot": ("capability_registry.registry.schema", "CapabilitySlot"),
    "Dispatcher": ("capability_registry.registry.dispatcher", "Dispatcher"),
    "SlotKind": ("capability_registry.registry.bindings", "SlotKind"),
    "TypeDescriptorRegistry": (
        "capability_registry.registry.descriptors",
        "TypeDescriptorRegistry",
    ),
    "TypeKeySet": ("capability_registry.registry.keys", "TypeKeySet"),
    "TypeMapping": ("capability_registry.registry.mapping", "TypeMapping"),
    "get_dispatcher": ("capability_registry.runtime", "get_dispatcher"),
    "get_type_registry": ("capability_registry.runtime", "get_type_registry"),
    "lazy": ("capability_registry.registry.bindings", "lazy"),
}


REGISTRY_EXPORTS: LazyExportMap = {
    "AggregateCompletenessError": "capability_registry.registry.exceptions",
    "AlreadyFrozenError": "capability_registry.registry.exceptions",
    "CapabilityBinding": "capability_registry.registry.bindings",
    "CapabilityLookupError": "capability_registry.registry.exceptions",
    "CapabilityProviderRegistry": "capability_registry.registry.providers",
    "CapabilityRegistryError": "capability_registry.registry.exceptions",
    "CapabilitySchema": "capability_registry.registry.schema",
    "CapabilitySlot": "capability_registry.registry.schema",
    "DirectBinding": "capability_registry.registry.bindings",
    "Dispatcher": "capability_registry.registry.dispatcher",
    "DuplicateKeyError": "capability_registry.registry.exceptions",
    "DuplicateProviderKeyError": "capability_registry.registry.exceptions",
    "DuplicateTypeKeyError": "capability_registry.registry.exceptions",
    "FactoryFailedError": "capability_registry.registry.exceptions",
    "InvalidTypeMappingError": "capability_registry.registry.exceptions",
    "NotFrozenYetError": "capability_registry.registry.exceptions",
    "ProviderError": "capability_registry.registry.exceptions",
    "ProviderReference": "capability_registry.registry.bindings",
    "RegistrationError": "capability_registry.registry.exceptions",
    "RegistryInvariantError": "capability_registry.registry.exceptions",
    "RegistryState": "capability_registry.registry.descriptors",
    "SlotKind": "capability_registry.registry.bindings",
    "SlotKindConflictError": "capability_registry.registry.exceptions",
    "TypeDescriptor": "capability_registry.registry.descriptors",
    "TypeDescriptorRegistry": "capability_registry.registry.descriptors",
    "TypeKeySet": "capability_registry.registry.keys",
    "TypeMapping": "capability_registry.registry.mapping",
    "UnboundSlotError": "capability_registry.registry.exceptions",
    "UnknownProviderKeyError": "capability_registry.registry.exceptions",
    "UnknownSlotError": "capability_registry.registry.exceptions",
    "UnknownTypeKeyError": "capability_registry.registry.exceptions",
    "Violation": "capability_registry.registry.exceptions",
    "ViolationReason": "capability_registry.registry.exceptions",
    "lazy": "capability_registry.registry.bindings",
}


UTILS_EXPORTS: LazyExportMap = {
    "isolated_type_registry": (
        "capability_registry.utils.testing",
        "isolated_type_registry",
    ),
}
