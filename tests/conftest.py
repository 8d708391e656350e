from __future__ import annotations

import pytest

from capability_registry.metrics import reset_provider_metrics_backend_for_tests
from capability_registry.registry.bindings import SlotKind
from capability_registry.registry.descriptors import TypeDescriptorRegistry
from capability_registry.utils.testing import isolated_type_registry


@pytest.fixture
def registry() -> TypeDescriptorRegistry:
    """Fresh registry declaring the ``form``/``limit`` schema used across tests."""
    fresh = TypeDescriptorRegistry()
    fresh.declare_slot("form", required=True, kind=SlotKind.SCALAR)
    fresh.declare_slot("limit", required=True, kind=SlotKind.SCALAR)
    return fresh


@pytest.fixture
def isolated_registry():
    with isolated_type_registry() as installed:
        yield installed


@pytest.fixture(autouse=True)
def _reset_metrics_backend():
    reset_provider_metrics_backend_for_tests()
    yield
    reset_provider_metrics_backend_for_tests()
