"""Textual adapter for undo/redo key chords."""

from .controller import (
    REDO_CHORDS,
    UNDO_CHORDS,
    TextualHistoryAdapter,
    TextualHistoryHooks,
    normalize_chord,
)

__all__ = [
    "REDO_CHORDS",
    "UNDO_CHORDS",
    "TextualHistoryAdapter",
    "TextualHistoryHooks",
    "normalize_chord",
]
