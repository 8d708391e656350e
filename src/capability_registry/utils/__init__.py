"""Shared helpers for the capability registry package."""

from __future__ import annotations

from capability_registry.public_api_registry import UTILS_EXPORTS, lazy_exports

__all__, __getattr__, __dir__ = lazy_exports(__name__, UTILS_EXPORTS)
