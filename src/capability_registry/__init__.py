"""Convenience access to the type capability registry core components."""

from __future__ import annotations

from capability_registry.public_api_registry import CAPABILITY_REGISTRY_EXPORTS, lazy_exports

__all__, __getattr__, __dir__ = lazy_exports(__name__, CAPABILITY_REGISTRY_EXPORTS)
