from __future__ import annotations

from typing import Any

from django.apps import AppConfig
from django.conf import settings
from django.core import checks
from django.core.exceptions import ImproperlyConfigured

from capability_registry.conf import freeze_on_ready
from capability_registry.logging import get_logger
from capability_registry.registry.exceptions import (
    AggregateCompletenessError,
    CapabilityRegistryError,
)

logger = get_logger("apps")

_CONFIGURATION_ERRORS = (CapabilityRegistryError, ImportError, TypeError, ValueError)


def check_capability_registry(app_configs: Any = None, **kwargs: Any) -> list[checks.CheckMessage]:
    """
    Report every completeness violation of the configured registry.

    A registry that is already frozen is known to be complete. Otherwise a
    throwaway registry is built from settings and frozen to collect errors.
    """
    from capability_registry import runtime

    current = runtime._registry
    if current is not None and current.is_frozen:
        return []
    try:
        runtime.build_registry_from_settings(settings).freeze()
    except AggregateCompletenessError as exc:
        return [
            checks.Error(
                violation.describe(),
                hint="Bind the slot for this type or register the missing provider.",
                obj=violation.type_key,
                id="capability_registry.E001",
            )
            for violation in exc.violations
        ]
    except _CONFIGURATION_ERRORS as exc:
        return [
            checks.Error(
                str(exc),
                obj="CAPABILITY_REGISTRY",
                id="capability_registry.E002",
            )
        ]
    return []


class CapabilityRegistryConfig(AppConfig):
    name = "capability_registry"
    verbose_name = "Capability Registry"

    def ready(self) -> None:
        checks.register(check_capability_registry, "capability_registry")
        if freeze_on_ready():
            self.initialize_registry()

    @staticmethod
    def initialize_registry() -> None:
        """
        Build and freeze the process-wide registry.

        Raises:
            ImproperlyConfigured: If the settings are invalid or registration
                or freezing fails, so the project never starts with partial
                capability state.
        """
        from capability_registry.runtime import initialize_registry

        logger.debug("initializing capability registry...")
        try:
            registry = initialize_registry(settings)
        except _CONFIGURATION_ERRORS as exc:
            raise ImproperlyConfigured(str(exc)) from exc
        logger.debug(
            "capability registry ready",
            context={"types": list(registry.keys)},
        )
