"""Ordered set of valid type keys."""

from __future__ import annotations

from threading import RLock
from typing import Iterable, Iterator

from .exceptions import AlreadyFrozenError, DuplicateKeyError

TypeKey = str


def validate_type_key(key: object) -> TypeKey:
    """Return ``key`` unchanged when it is a usable type key."""
    if not isinstance(key, str):
        raise TypeError(f"Type keys must be strings, got {type(key).__name__}.")  # noqa: TRY003
    if not key.strip():
        raise ValueError("Type keys must not be empty.")  # noqa: TRY003
    return key


class TypeKeySet:
    """Canonical, insertion-ordered, deduplicated set of type keys."""

    def __init__(
        self, keys: Iterable[TypeKey] = (), *, lock: RLock | None = None
    ) -> None:
        self._lock = lock or RLock()
        self._keys: dict[TypeKey, None] = {}
        self._frozen = False
        for key in keys:
            self.register(key)

    def register(self, key: TypeKey) -> None:
        """
        Add a type key.

        Raises:
            DuplicateKeyError: If ``key`` is already present.
            AlreadyFrozenError: If the set has been frozen.
        """
        validate_type_key(key)
        with self._lock:
            if self._frozen:
                raise AlreadyFrozenError("register a type key")
            if key in self._keys:
                raise DuplicateKeyError(key)
            self._keys[key] = None

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        with self._lock:
            self._frozen = True

    def contains(self, key: object) -> bool:
        return isinstance(key, str) and key in self._keys

    def all(self) -> tuple[TypeKey, ...]:
        """Return the keys in registration order as an independent sequence."""
        return tuple(self._keys)

    def __contains__(self, key: object) -> bool:
        return self.contains(key)

    def __iter__(self) -> Iterator[TypeKey]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return f"TypeKeySet({list(self._keys)!r})"
