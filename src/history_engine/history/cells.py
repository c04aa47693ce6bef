"""Tracked cells: value holders that record their changes in a session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Generic, Optional, TypeVar

from .registry import generate_cell_id
from .stack import EntryPolicy

if TYPE_CHECKING:
    from .session import HistorySession

V = TypeVar("V")


def _identity_changed(prev: object, next_: object) -> bool:
    return prev is not next_


@dataclass(frozen=True, slots=True)
class CellOptions(Generic[V]):
    """Per-cell tracking configuration."""

    id: Optional[str] = None
    history_limit: Optional[int] = None
    should_track: Optional[Callable[[V, V], bool]] = None
    custom_diff: Optional[Callable[[V, V], Any]] = None
    custom_patch: Optional[Callable[[V, Any], V]] = None
    use_full_value_instead: bool = False

    def __post_init__(self) -> None:
        if self.history_limit is not None and self.history_limit <= 0:
            raise ValueError("history_limit must be positive")

    def policy(self) -> EntryPolicy:
        return EntryPolicy(
            history_limit=self.history_limit,
            use_full_value=self.use_full_value_instead,
            custom_diff=self.custom_diff,
        )


class TrackedCell(Generic[V]):
    """A value whose writes are pushed onto the session's history.

    Writes made while the session is replaying an undo/redo are stored
    without being recorded and without consulting ``should_track``.
    """

    def __init__(
        self,
        session: "HistorySession",
        initial: V,
        options: Optional[CellOptions[V]] = None,
    ) -> None:
        self.options: CellOptions[V] = options or CellOptions()
        self.id = self.options.id or generate_cell_id()
        self._session = session
        self._value = initial
        self._policy = self.options.policy()
        self._should_track = self.options.should_track or _identity_changed
        session.registry.register(self.id, self)

    @property
    def value(self) -> V:
        return self._value

    def get(self) -> V:
        return self._value

    def set(self, value: V) -> None:
        # Same lock as replay, so a write from another thread waits for it.
        with self._session.stack.lock:
            if self._session.replaying:
                self._value = value
                return
            prev = self._value
            if not self._should_track(prev, value):
                return
            self._session.stack.push_entry(self.id, prev, value, self._policy)
            self._value = value

    def update(self, fn: Callable[[V], V]) -> None:
        self.set(fn(self._value))

    def patch(self, diff: Any) -> None:
        """Apply ``custom_patch`` to the current value as a tracked write."""

        if self.options.custom_patch is None:
            raise RuntimeError(f"Cell '{self.id}' has no custom_patch configured")
        self.set(self.options.custom_patch(self._value, diff))

    # CellHandle
    def read(self) -> V:
        return self._value

    def write(self, value: V) -> None:
        self.set(value)

    def detach(self) -> None:
        self._session.registry.unregister(self.id)

    def __repr__(self) -> str:
        return f"TrackedCell(id={self.id!r}, value={self._value!r})"


__all__ = ["CellOptions", "TrackedCell"]
