"""Settings helpers for the capability registry."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from django.conf import settings

_SETTINGS_KEY = "CAPABILITY_REGISTRY"
_UNSET = object()


def _config(django_settings: Any = settings) -> Mapping[str, Any]:
    if django_settings is settings and not settings.configured:
        return {}
    value = getattr(django_settings, _SETTINGS_KEY, {})
    if isinstance(value, Mapping):
        return value
    return {}


def _option(name: str, default: Any, django_settings: Any = settings) -> Any:
    """Read ``CAPABILITY_REGISTRY[name]``, falling back to ``CAPABILITY_REGISTRY_<name>``."""
    value = _config(django_settings).get(name, _UNSET)
    if value is _UNSET:
        if django_settings is settings and not settings.configured:
            return default
        value = getattr(django_settings, f"{_SETTINGS_KEY}_{name}", default)
    return value


def slot_definitions(django_settings: Any = settings) -> Mapping[str, Mapping[str, Any]]:
    """
    Return the declarative slot table.

    Each entry maps a slot name to ``{"kind": ..., "required": ...}``; a bare
    string value is shorthand for the kind of an optional slot.
    """
    raw = _option("SLOTS", {}, django_settings)
    if not isinstance(raw, Mapping):
        raise TypeError(f"{_SETTINGS_KEY}['SLOTS'] must be a mapping.")  # noqa: TRY003
    definitions: dict[str, Mapping[str, Any]] = {}
    for name, definition in raw.items():
        if isinstance(definition, str):
            definitions[name] = {"kind": definition, "required": False}
        elif isinstance(definition, Mapping):
            definitions[name] = definition
        else:
            raise TypeError(  # noqa: TRY003
                f"Slot definition for '{name}' must be a mapping or a kind string."
            )
    return definitions


def provider_definitions(django_settings: Any = settings) -> Mapping[str, Any]:
    raw = _option("PROVIDERS", {}, django_settings)
    if not isinstance(raw, Mapping):
        raise TypeError(f"{_SETTINGS_KEY}['PROVIDERS'] must be a mapping.")  # noqa: TRY003
    return raw


def registrars(django_settings: Any = settings) -> Sequence[Any]:
    raw = _option("REGISTRARS", (), django_settings)
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        raise TypeError(f"{_SETTINGS_KEY}['REGISTRARS'] must be a list.")  # noqa: TRY003
    return tuple(raw)


def default_fallback(django_settings: Any = settings) -> Any:
    return _option("DEFAULT_FALLBACK", None, django_settings)


def freeze_on_ready(django_settings: Any = settings) -> bool:
    return bool(_option("FREEZE_ON_READY", True, django_settings))


def metrics_enabled(django_settings: Any = settings) -> bool:
    return bool(_option("METRICS_ENABLED", False, django_settings))
