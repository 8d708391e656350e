"""Component-aware logging helpers used across the capability registry."""

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping
from typing import Any

__all__ = ["CapabilityRegistryLoggerAdapter", "get_logger"]

LOGGER_NAMESPACE = "capability_registry"


class CapabilityRegistryLoggerAdapter(logging.LoggerAdapter):
    """
    Attach the owning component and structured ``context`` to log records.

    Callers pass ``context={...}`` to any logging method; the mapping is merged
    with an existing ``extra["context"]`` and exposed as ``record.context``.
    """

    def log(self, level: int, msg: Any, *args: Any, **kwargs: Any) -> None:
        context = kwargs.get("context")
        if context is not None and not isinstance(context, Mapping):
            raise TypeError("context must be a mapping")  # noqa: TRY003
        super().log(level, msg, *args, **kwargs)

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        context = kwargs.pop("context", None)
        extra = dict(self.extra or {})
        extra.update(kwargs.get("extra") or {})
        merged: dict[str, Any] = {}
        existing = extra.get("context")
        if isinstance(existing, Mapping):
            merged.update(existing)
        if context:
            merged.update(context)
        extra["context"] = merged
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(component: str) -> CapabilityRegistryLoggerAdapter:
    """
    Return a logger adapter for a registry component.

    Parameters:
        component: Dotted component name, e.g. ``"registry.providers"``.

    Returns:
        CapabilityRegistryLoggerAdapter: Adapter bound to
        ``capability_registry.<component>`` that tags records with the component.
    """
    logger = logging.getLogger(f"{LOGGER_NAMESPACE}.{component}")
    return CapabilityRegistryLoggerAdapter(logger, {"component": component})
