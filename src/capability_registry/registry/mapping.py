"""Explicit mapping tables between two type-key domains."""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping

from .exceptions import InvalidTypeMappingError, UnknownTypeKeyError
from .keys import TypeKey, TypeKeySet


def _as_domain(keys: TypeKeySet | Iterable[TypeKey]) -> tuple[TypeKey, ...]:
    if isinstance(keys, TypeKeySet):
        return keys.all()
    return tuple(dict.fromkeys(keys))


class TypeMapping:
    """
    Map each key of a source domain to one key of a target domain.

    The table lives outside both domains' registries, so neither side needs
    to know about the other. All inconsistencies are reported together when
    the mapping is built.
    """

    def __init__(
        self,
        source_keys: TypeKeySet | Iterable[TypeKey],
        target_keys: TypeKeySet | Iterable[TypeKey],
        mapping: Mapping[TypeKey, TypeKey],
        *,
        total: bool = False,
        name: str = "",
    ) -> None:
        self._source = _as_domain(source_keys)
        self._target = _as_domain(target_keys)
        self._name = name
        source_set = set(self._source)
        target_set = set(self._target)

        problems: list[str] = []
        for source, target in mapping.items():
            if source not in source_set:
                problems.append(f"unknown source key '{source}'")
            if target not in target_set:
                problems.append(f"unknown target key '{target}' for '{source}'")
        if total:
            problems.extend(
                f"source key '{source}' is not mapped"
                for source in self._source
                if source not in mapping
            )
        if problems:
            if name:
                problems.insert(0, f"mapping '{name}'")
            raise InvalidTypeMappingError(problems)

        ordered = {source: mapping[source] for source in self._source if source in mapping}
        self._mapping: Mapping[TypeKey, TypeKey] = MappingProxyType(ordered)

    @property
    def name(self) -> str:
        return self._name

    def map(self, key: TypeKey) -> TypeKey:
        """
        Return the target key for ``key``.

        Raises:
            UnknownTypeKeyError: If ``key`` has no entry in the mapping.
        """
        try:
            return self._mapping[key]
        except (KeyError, TypeError):
            raise UnknownTypeKeyError(key) from None

    def get(self, key: TypeKey, default: TypeKey | None = None) -> TypeKey | None:
        try:
            return self.map(key)
        except UnknownTypeKeyError:
            return default

    def sources_for(self, target: TypeKey) -> tuple[TypeKey, ...]:
        """Return the source keys mapped onto ``target`` in source-domain order."""
        return tuple(source for source, mapped in self._mapping.items() if mapped == target)

    def as_dict(self) -> dict[TypeKey, TypeKey]:
        return dict(self._mapping)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key in self._mapping

    def __len__(self) -> int:
        return len(self._mapping)
