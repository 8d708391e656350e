"""Helpers for isolating the process-wide registry in tests."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from capability_registry import runtime
from capability_registry.registry.descriptors import TypeDescriptorRegistry


@contextmanager
def isolated_type_registry(
    registry: TypeDescriptorRegistry | None = None,
) -> Iterator[TypeDescriptorRegistry]:
    """
    Install a fresh registry for the duration of the block.

    The previously active registry (or lazy-from-settings state) is restored
    on exit, so registrations made in one test never leak into another.

    Parameters:
        registry: Registry to install; a new empty one is created when omitted.

    Yields:
        TypeDescriptorRegistry: The installed registry, still in building state
        unless the caller passed a frozen one.
    """
    previous = runtime._registry
    installed = registry if registry is not None else TypeDescriptorRegistry()
    runtime.configure_type_registry(installed)
    try:
        yield installed
    finally:
        runtime.configure_type_registry(previous)
