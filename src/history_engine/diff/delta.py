"""Immutable delta records produced by the diff engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, ClassVar, Hashable, Mapping, Union


class _Sentinel:
    __slots__ = ("_name",)

    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name

    def __reduce__(self) -> str:
        return self._name


MISSING: Any = _Sentinel("MISSING")
"""Marks an optional field that was never filled (``None`` is a real value)."""

UNKNOWN: Any = _Sentinel("UNKNOWN")
"""Placeholder for a deleted value the delta never observed."""


class UnknownDeltaShape(ValueError):
    """Raised when a delta is none of the structural shapes."""

    def __init__(self, delta: object) -> None:
        super().__init__(f"Unknown delta shape: {type(delta).__name__}")
        self.delta = delta


@dataclass(frozen=True, slots=True)
class ValueDelta:
    """Full replacement of a leaf, a null transition, or a shape change."""

    kind: ClassVar[str] = "value"

    before: Any
    after: Any


@dataclass(frozen=True, slots=True)
class ObjectDelta:
    """Key-level changes between two mappings."""

    kind: ClassVar[str] = "object"

    changed: Mapping[Hashable, "Delta"] = field(default_factory=dict)
    added: Mapping[Hashable, Any] = field(default_factory=dict)
    deleted: tuple[Hashable, ...] = ()
    deleted_values: Mapping[Hashable, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "changed", MappingProxyType(dict(self.changed)))
        object.__setattr__(self, "added", MappingProxyType(dict(self.added)))
        object.__setattr__(self, "deleted", tuple(self.deleted))
        object.__setattr__(
            self, "deleted_values", MappingProxyType(dict(self.deleted_values))
        )

    def is_empty(self) -> bool:
        return not self.changed and not self.added and not self.deleted


@dataclass(frozen=True, slots=True)
class ArrayItem:
    """One changed index inside an :class:`ArrayDelta`.

    ``added``/``removed`` flag positional inserts and deletes; an item with
    neither flag is a plain replacement whose old element is kept in
    ``previous``.
    """

    index: int
    value: Any = MISSING
    added: bool = False
    removed: bool = False
    previous: Any = MISSING

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError("index cannot be negative")
        if self.added and self.removed:
            raise ValueError("an item cannot be both added and removed")

    @property
    def is_replacement(self) -> bool:
        return not self.added and not self.removed


@dataclass(frozen=True, slots=True)
class ArrayDelta:
    """Positional changes between two sequences."""

    kind: ClassVar[str] = "array"

    items: tuple[ArrayItem, ...] = ()

    def __post_init__(self) -> None:
        items = tuple(self.items)
        seen: set[int] = set()
        for item in items:
            if item.index in seen:
                raise ValueError(f"index {item.index} appears more than once")
            seen.add(item.index)
        object.__setattr__(self, "items", items)


@dataclass(frozen=True, slots=True)
class OpaqueDelta:
    """Caller-defined diff payload stored and moved but never interpreted."""

    kind: ClassVar[str] = "opaque"

    payload: Any


Delta = Union[ValueDelta, ObjectDelta, ArrayDelta]
AnyDelta = Union[ValueDelta, ObjectDelta, ArrayDelta, OpaqueDelta]

STRUCTURAL_DELTAS = (ValueDelta, ObjectDelta, ArrayDelta)


def is_structural(delta: object) -> bool:
    return isinstance(delta, STRUCTURAL_DELTAS)


__all__ = [
    "MISSING",
    "UNKNOWN",
    "UnknownDeltaShape",
    "ValueDelta",
    "ObjectDelta",
    "ArrayItem",
    "ArrayDelta",
    "OpaqueDelta",
    "Delta",
    "AnyDelta",
    "STRUCTURAL_DELTAS",
    "is_structural",
]
