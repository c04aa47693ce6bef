"""Entries and steps stored on the past/future stacks."""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Any, Iterator, List, Union

from history_engine.diff import MISSING, AnyDelta


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """One recorded change of one cell.

    When ``full_value`` is set it wins over ``delta`` during replay.
    """

    cell_id: str
    delta: AnyDelta
    timestamp: int
    full_value: Any = MISSING

    @property
    def has_full_value(self) -> bool:
        return self.full_value is not MISSING

    def moved(self, *, timestamp: int, full_value: Any = MISSING) -> "HistoryEntry":
        """Copy for the opposite stack with a fresh timestamp."""

        return replace(self, timestamp=timestamp, full_value=full_value)


@dataclass(frozen=True, slots=True)
class HistoryGroup:
    """Entries recorded by one group operation, undone as a single step."""

    entries: tuple[HistoryEntry, ...]

    def __post_init__(self) -> None:
        if not self.entries:
            raise ValueError("HistoryGroup requires at least one entry")
        object.__setattr__(self, "entries", tuple(self.entries))

    @property
    def timestamp(self) -> int:
        return self.entries[-1].timestamp

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


HistoryStep = Union[HistoryEntry, HistoryGroup]


@dataclass(slots=True)
class HistoryStack:
    past: List[HistoryStep] = field(default_factory=list)
    future: List[HistoryStep] = field(default_factory=list)


@dataclass(slots=True)
class StackStats:
    """Lightweight snapshot of stack sizes."""

    past: int
    future: int
    grouping: bool


__all__ = [
    "HistoryEntry",
    "HistoryGroup",
    "HistoryStack",
    "HistoryStep",
    "StackStats",
    "now_ms",
]
