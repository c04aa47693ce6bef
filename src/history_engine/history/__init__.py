"""History stacks, cell registry, and undo/redo replay."""

from .cells import CellOptions, TrackedCell
from .controller import ReplayGuard, UndoRedoController
from .entries import HistoryEntry, HistoryGroup, HistoryStack, HistoryStep, StackStats
from .registry import CallbackHandle, CellHandle, CellRegistry, generate_cell_id
from .session import HistorySession, HistoryStatus
from .stack import DEFAULT_HISTORY_LIMIT, EntryPolicy, HistoryStackManager

__all__ = [
    "CellOptions",
    "TrackedCell",
    "ReplayGuard",
    "UndoRedoController",
    "HistoryEntry",
    "HistoryGroup",
    "HistoryStack",
    "HistoryStep",
    "StackStats",
    "CallbackHandle",
    "CellHandle",
    "CellRegistry",
    "generate_cell_id",
    "HistorySession",
    "HistoryStatus",
    "DEFAULT_HISTORY_LIMIT",
    "EntryPolicy",
    "HistoryStackManager",
]
