#!/usr/bin/env python3

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from typing_extensions import Self


@dataclass
class IndexRegistry:
    """
    A growth-only mapping from names to dense, zero-based ordinals.

    Ordinals are handed out in first-seen order and are never reused or reassigned, so
    a row or column position taken from the registry stays valid for as long as the
    registry lives. There is no removal operation.
    """

    _ordinals: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_names(cls, names: Iterable[str]) -> Self:
        registry = cls()
        for name in names:
            registry.register_if_absent(name)
        return registry

    def register_if_absent(self, name: str) -> int:
        """
        Return the ordinal for `name`, assigning the next free one if it is unseen.
        """
        existing = self._ordinals.get(name)
        if existing is not None:
            return existing
        ordinal = len(self._ordinals)
        self._ordinals[name] = ordinal
        return ordinal

    def lookup(self, name: str) -> int | None:
        return self._ordinals.get(name)

    def names(self) -> list[str]:
        # dicts preserve insertion order, which is also ordinal order here
        return list(self._ordinals)

    def copy(self) -> Self:
        return type(self)(dict(self._ordinals))

    def __contains__(self, name: object) -> bool:
        return name in self._ordinals

    def __len__(self) -> int:
        return len(self._ordinals)

    def __iter__(self) -> Iterator[str]:
        return iter(self._ordinals)
