"""Past/future stacks, entry construction, eviction, and group batching."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from history_engine.diff import OpaqueDelta, create_diff, is_complex, is_structural
from history_engine.runtime import telemetry

from .entries import (
    HistoryEntry,
    HistoryGroup,
    HistoryStack,
    HistoryStep,
    StackStats,
    now_ms,
)

DEFAULT_HISTORY_LIMIT = 50

CustomDiff = Callable[[Any, Any], Any]


@dataclass(frozen=True, slots=True)
class EntryPolicy:
    """How ``push_entry`` turns a change into an entry."""

    history_limit: Optional[int] = None
    use_full_value: bool = False
    custom_diff: Optional[CustomDiff] = None

    def __post_init__(self) -> None:
        if self.history_limit is not None and self.history_limit <= 0:
            raise ValueError("history_limit must be positive")
        if self.custom_diff is not None and not callable(self.custom_diff):
            raise TypeError("custom_diff must be callable")


class HistoryStackManager:
    """Owns the past/future stacks and the optional group buffer.

    Every public method holds ``lock``; the controller takes the same lock
    so a multi-threaded host never observes a half-moved step.
    """

    def __init__(
        self,
        *,
        default_limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Optional[Callable[[], int]] = None,
        logger_name: str | None = None,
    ) -> None:
        if default_limit <= 0:
            raise ValueError("default_limit must be positive")
        self.default_limit = default_limit
        self.lock = threading.RLock()
        self._clock = clock or now_ms
        self._logger_name = logger_name
        self._stack = HistoryStack()
        self._group: Optional[List[HistoryEntry]] = None
        self._group_depth = 0
        self._group_limit: Optional[int] = None

    @property
    def past(self) -> tuple[HistoryStep, ...]:
        return tuple(self._stack.past)

    @property
    def future(self) -> tuple[HistoryStep, ...]:
        return tuple(self._stack.future)

    @property
    def grouping(self) -> bool:
        return self._group is not None

    def can_undo(self) -> bool:
        return bool(self._stack.past)

    def can_redo(self) -> bool:
        return bool(self._stack.future)

    def timestamp(self) -> int:
        return self._clock()

    def stats(self) -> StackStats:
        with self.lock:
            return StackStats(
                past=len(self._stack.past),
                future=len(self._stack.future),
                grouping=self.grouping,
            )

    def build_entry(
        self,
        cell_id: str,
        prev_value: Any,
        next_value: Any,
        policy: Optional[EntryPolicy] = None,
    ) -> Optional[HistoryEntry]:
        """Build the entry for a change, or ``None`` when nothing changed."""

        policy = policy or EntryPolicy()
        timestamp = self._clock()

        if policy.use_full_value:
            # The delta slot holds the old value too; it is never diffed.
            return HistoryEntry(
                cell_id=cell_id,
                delta=OpaqueDelta(prev_value),
                timestamp=timestamp,
                full_value=prev_value,
            )

        if policy.custom_diff is not None:
            result = policy.custom_diff(prev_value, next_value)
            if result is None:
                return None
            delta = result if is_structural(result) else OpaqueDelta(result)
            return HistoryEntry(cell_id=cell_id, delta=delta, timestamp=timestamp)

        diff = create_diff(prev_value, next_value)
        if diff is None:
            return None
        if is_complex(diff):
            return HistoryEntry(
                cell_id=cell_id, delta=diff, timestamp=timestamp, full_value=prev_value
            )
        return HistoryEntry(cell_id=cell_id, delta=diff, timestamp=timestamp)

    def push_entry(
        self,
        cell_id: str,
        prev_value: Any,
        next_value: Any,
        policy: Optional[EntryPolicy] = None,
    ) -> Optional[HistoryEntry]:
        """Record a change made by application code.

        Inside a group the entry is buffered; otherwise it lands on ``past``,
        the oldest steps are evicted past the limit, and ``future`` is cleared.
        """

        policy = policy or EntryPolicy()
        limit = policy.history_limit or self.default_limit
        with self.lock:
            entry = self.build_entry(cell_id, prev_value, next_value, policy)
            if entry is None:
                return None
            if self._group is not None:
                self._group.append(entry)
                if self._group_limit is None or limit < self._group_limit:
                    self._group_limit = limit
                return entry
            self._commit(entry, limit)
            return entry

    def start_group(self) -> None:
        with self.lock:
            self._group_depth += 1
            if self._group is None:
                self._group = []
                self._group_limit = None

    def end_group(self) -> Optional[HistoryGroup]:
        """Close the group; the outermost call commits the buffer as one step."""

        with self.lock:
            if self._group_depth == 0:
                return None
            self._group_depth -= 1
            if self._group_depth > 0:
                return None

            entries = self._group or []
            limit = self._group_limit or self.default_limit
            self._group = None
            self._group_limit = None
            if not entries:
                return None
            group = HistoryGroup(entries=tuple(entries))
            self._commit(group, limit)
            return group

    def clear(self) -> None:
        with self.lock:
            self._stack.past.clear()
            self._stack.future.clear()

    def pop_past(self) -> Optional[HistoryStep]:
        with self.lock:
            return self._stack.past.pop() if self._stack.past else None

    def pop_future(self) -> Optional[HistoryStep]:
        with self.lock:
            return self._stack.future.pop() if self._stack.future else None

    def push_past(self, step: HistoryStep) -> None:
        """Place a replayed step back on ``past`` without touching ``future``."""

        with self.lock:
            self._stack.past.append(step)

    def push_future(self, step: HistoryStep) -> None:
        with self.lock:
            self._stack.future.append(step)

    def _commit(self, step: HistoryStep, limit: int) -> None:
        self._stack.past.append(step)
        self._evict(limit)
        self._stack.future.clear()

    def _evict(self, limit: int) -> None:
        past = self._stack.past
        overflow = len(past) - limit
        if overflow <= 0:
            return
        del past[:overflow]
        telemetry.record_event(
            "history.evicted",
            level="debug",
            data={"count": overflow, "limit": limit},
            logger_name=self._logger_name,
        )


__all__ = [
    "DEFAULT_HISTORY_LIMIT",
    "EntryPolicy",
    "HistoryStackManager",
]
