"""Undo/redo replay: pop a step, resolve its cells, write, move the step."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, TypeVar

from history_engine.diff import MISSING, AnyDelta, ValueDelta, apply_diff, reverse_diff
from history_engine.runtime import telemetry

from .entries import HistoryEntry, HistoryGroup, HistoryStep
from .registry import CellRegistry
from .stack import HistoryStackManager

T = TypeVar("T")

UNDO = "undo"
REDO = "redo"


class ReplayGuard:
    """Scoped "replay in progress" token, owned by the replaying thread.

    Cells consult ``active`` before recording; ``hold`` releases the token on
    every exit path, including exceptions raised by the write. Writes from
    other threads never see the token.
    """

    def __init__(self) -> None:
        self._local = threading.local()

    @property
    def active(self) -> bool:
        return getattr(self._local, "depth", 0) > 0

    @contextmanager
    def hold(self) -> Iterator[None]:
        self._local.depth = getattr(self._local, "depth", 0) + 1
        try:
            yield
        finally:
            self._local.depth -= 1


class UndoRedoController:
    """Moves steps between the past and future stacks.

    Both directions return ``True`` when at least one cell was restored and
    ``False`` for every no-op path (empty stack, orphaned or unreplayable
    entries).
    """

    def __init__(
        self,
        stack: HistoryStackManager,
        registry: CellRegistry,
        *,
        guard: Optional[ReplayGuard] = None,
        logger_name: str | None = None,
    ) -> None:
        self.stack = stack
        self.registry = registry
        self.guard = guard or ReplayGuard()
        self._logger_name = logger_name

    def undo(self) -> bool:
        return self._replay(UNDO)

    def redo(self) -> bool:
        return self._replay(REDO)

    def group_operations(self, fn: Callable[[], T]) -> T:
        """Run ``fn`` with every push collapsed into one undo step."""

        with self.grouped():
            return fn()

    @contextmanager
    def grouped(self) -> Iterator[None]:
        self.stack.start_group()
        try:
            yield
        finally:
            self.stack.end_group()

    def _replay(self, direction: str) -> bool:
        if direction == UNDO:
            pop, push = self.stack.pop_past, self.stack.push_future
        else:
            pop, push = self.stack.pop_future, self.stack.push_past

        with self.stack.lock, telemetry.span(
            f"history::{direction}",
            logger_name=self._logger_name,
            component="history",
        ) as trace:
            step = pop()
            if step is None:
                return False

            # Undo walks a group newest-first, redo oldest-first.
            entries = list(step) if isinstance(step, HistoryGroup) else [step]
            if direction == UNDO:
                entries.reverse()

            moved = []
            for entry in entries:
                restored = self._replay_entry(entry, direction)
                if restored is not None:
                    moved.append(restored)

            if not moved:
                trace.add_metadata("dropped", len(entries))
                return False

            if direction == UNDO:
                moved.reverse()
            push(_rebuild(step, moved))
            return True

    def _replay_entry(
        self, entry: HistoryEntry, direction: str
    ) -> Optional[HistoryEntry]:
        handle = self.registry.lookup(entry.cell_id)
        if handle is None:
            self._warn("history.orphaned_entry", entry, direction)
            return None

        current = handle.read()
        if entry.has_full_value:
            target = entry.full_value
        else:
            target = self._resolve(entry.delta, current, direction)
            if target is MISSING:
                self._warn("history.replay_failed", entry, direction)
                return None

        try:
            with self.guard.hold():
                handle.write(target)
        except Exception as exc:
            self._warn("history.replay_failed", entry, direction, error=repr(exc))
            return None

        # A full value only describes one side of the change, so the moved
        # entry keeps the side this replay just overwrote.
        full_value = current if entry.has_full_value else MISSING
        return entry.moved(timestamp=self.stack.timestamp(), full_value=full_value)

    def _resolve(self, delta: AnyDelta, current: Any, direction: str) -> Any:
        try:
            if direction == UNDO:
                return apply_diff(current, reverse_diff(delta))
            return apply_diff(current, delta)
        except Exception as exc:
            telemetry.record_event(
                "history.apply_failed",
                level="warning",
                data={"direction": direction, "error": repr(exc)},
                logger_name=self._logger_name,
            )
            if isinstance(delta, ValueDelta):
                return delta.before if direction == UNDO else delta.after
            return MISSING

    def _warn(
        self, event: str, entry: HistoryEntry, direction: str, **extra: Any
    ) -> None:
        telemetry.record_event(
            event,
            level="warning",
            data={
                "cell_id": entry.cell_id,
                "direction": direction,
                "delta": entry.delta.kind,
                **extra,
            },
            logger_name=self._logger_name,
        )


def _rebuild(step: HistoryStep, entries: list[HistoryEntry]) -> HistoryStep:
    if isinstance(step, HistoryGroup):
        return HistoryGroup(entries=tuple(entries))
    return entries[0]


__all__ = [
    "REDO",
    "UNDO",
    "ReplayGuard",
    "UndoRedoController",
]
