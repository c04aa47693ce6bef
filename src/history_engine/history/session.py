"""Session handle owning one registry, one stack, and one controller."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, ContextManager, Optional, TypeVar

from .cells import CellOptions, TrackedCell
from .controller import ReplayGuard, UndoRedoController
from .registry import CellHandle, CellRegistry
from .stack import DEFAULT_HISTORY_LIMIT, HistoryStackManager

T = TypeVar("T")
V = TypeVar("V")


@dataclass(slots=True)
class HistoryStatus:
    """What a UI needs to render undo/redo affordances."""

    can_undo: bool
    can_redo: bool
    past: int
    future: int


class HistorySession:
    """One independent undo/redo timeline.

    A host builds a session once and threads it through the code that
    creates cells; separate sessions never share history.
    """

    def __init__(
        self,
        *,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Optional[Callable[[], int]] = None,
        logger_name: str | None = None,
    ) -> None:
        self.registry = CellRegistry(logger_name=logger_name)
        self.stack = HistoryStackManager(
            default_limit=history_limit, clock=clock, logger_name=logger_name
        )
        self.guard = ReplayGuard()
        self.controller = UndoRedoController(
            self.stack, self.registry, guard=self.guard, logger_name=logger_name
        )

    @property
    def replaying(self) -> bool:
        return self.guard.active

    @property
    def can_undo(self) -> bool:
        return self.stack.can_undo()

    @property
    def can_redo(self) -> bool:
        return self.stack.can_redo()

    def cell(
        self,
        initial: V,
        options: Optional[CellOptions[V]] = None,
        **overrides: Any,
    ) -> TrackedCell[V]:
        """Create a tracked cell; keyword overrides patch ``options``."""

        resolved = options or CellOptions()
        if overrides:
            resolved = replace(resolved, **overrides)
        return TrackedCell(self, initial, resolved)

    def register(self, cell_id: str, handle: CellHandle) -> CellHandle:
        return self.registry.register(cell_id, handle)

    def unregister(self, cell_id: str) -> Optional[CellHandle]:
        return self.registry.unregister(cell_id)

    def undo(self) -> bool:
        return self.controller.undo()

    def redo(self) -> bool:
        return self.controller.redo()

    def clear(self) -> None:
        self.stack.clear()

    def group_operations(self, fn: Callable[[], T]) -> T:
        return self.controller.group_operations(fn)

    def grouped(self) -> ContextManager[None]:
        return self.controller.grouped()

    def status(self) -> HistoryStatus:
        stats = self.stack.stats()
        return HistoryStatus(
            can_undo=stats.past > 0,
            can_redo=stats.future > 0,
            past=stats.past,
            future=stats.future,
        )


__all__ = ["HistorySession", "HistoryStatus"]
