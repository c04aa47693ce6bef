"""Textual adapter translating undo/redo key chords into session calls."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from history_engine.history import HistorySession, HistoryStatus


def _noop(*_args, **_kwargs) -> None:  # pragma: no cover - default hook
    return None


UNDO_CHORDS = frozenset({"ctrl+z"})
REDO_CHORDS = frozenset({"ctrl+y", "ctrl+shift+z"})


@dataclass(slots=True)
class TextualHistoryHooks:
    """Callbacks the adapter uses to refresh Textual widgets."""

    update_status: Callable[[str], None] = _noop
    update_state: Callable[[HistoryStatus], None] = _noop
    log: Callable[[str], None] = _noop


def normalize_chord(key: str, modifiers: Iterable[str] = ()) -> str:
    """Fold ``key`` plus modifiers into Textual's ``ctrl+shift+z`` form."""

    parts = [part for part in key.lower().split("+") if part]
    base = parts[-1] if parts else ""
    mods = {part for part in parts[:-1]}
    mods.update(str(mod).lower() for mod in modifiers)
    ordered = [mod for mod in ("ctrl", "alt", "shift") if mod in mods]
    return "+".join([*ordered, base])


class TextualHistoryAdapter:
    """Bridges a :class:`HistorySession` to a Textual-friendly surface."""

    def __init__(self, session: HistorySession, hooks: TextualHistoryHooks) -> None:
        self.session = session
        self.hooks = hooks
        self._refresh_state()

    def handle_textual_key(
        self, key: str, *, modifiers: Iterable[str] = ()
    ) -> bool:
        """Return ``True`` when the key was an undo/redo chord."""

        chord = normalize_chord(key, modifiers)
        if chord in UNDO_CHORDS:
            self.undo()
            return True
        if chord in REDO_CHORDS:
            self.redo()
            return True
        return False

    def undo(self) -> bool:
        restored = self.session.undo()
        self._after_replay("undo", restored)
        return restored

    def redo(self) -> bool:
        restored = self.session.redo()
        self._after_replay("redo", restored)
        return restored

    def refresh(self) -> HistoryStatus:
        return self._refresh_state()

    def _after_replay(self, action: str, restored: bool) -> None:
        status = action if restored else f"nothing to {action}"
        self.hooks.update_status(status)
        state = self._refresh_state()
        self.hooks.log(
            f"{action} -> restored={restored} past={state.past} future={state.future}"
        )

    def _refresh_state(self) -> HistoryStatus:
        state = self.session.status()
        self.hooks.update_state(state)
        return state


__all__ = [
    "REDO_CHORDS",
    "UNDO_CHORDS",
    "TextualHistoryAdapter",
    "TextualHistoryHooks",
    "normalize_chord",
]
