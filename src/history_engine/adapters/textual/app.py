"""Executable Textual demo: two tracked cells sharing one undo timeline."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import List, Optional, Sequence

from textual import events
from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.widgets import Footer, Header, Static

from history_engine.history import HistorySession, HistoryStatus, TrackedCell
from history_engine.runtime import telemetry

from .controller import TextualHistoryAdapter, TextualHistoryHooks


@dataclass
class UIState:
    status_text: str = ""
    history_text: str = ""


class HistoryDemoApp(App[None]):
    """Counter plus tag list; every edit is undoable with ctrl+z / ctrl+y."""

    CSS = """
	#cells-view {
		height: 1fr;
		border: round $accent;
		padding: 1 1;
	}

	#status-line {
		height: 1;
		background: $surface-darken-1;
		padding: 0 1;
	}
	"""

    BINDINGS = [
        ("plus", "increment", "+1"),
        ("minus", "decrement", "-1"),
        ("t", "add_tag", "Add tag"),
        ("x", "drop_tag", "Drop tag"),
        ("g", "bump_and_tag", "Grouped edit"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, *, history_limit: int = 50) -> None:
        super().__init__()
        self._state = UIState()
        self.session = HistorySession(history_limit=history_limit)
        self.counter: TrackedCell[int] = self.session.cell(0, id="counter")
        self.tags: TrackedCell[List[str]] = self.session.cell([], id="tags")
        self.adapter: TextualHistoryAdapter | None = None
        self._cells_widget: Static | None = None
        self._status_widget: Static | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Vertical(id="cells-area"):
            self._cells_widget = Static("", id="cells-view")
            yield self._cells_widget
        self._status_widget = Static("", id="status-line")
        yield self._status_widget
        yield Footer()

    def on_mount(self) -> None:
        hooks = TextualHistoryHooks(
            update_status=self._update_status,
            update_state=self._update_history,
            log=lambda line: telemetry.record_event(
                "demo.replay", level="debug", data={"line": line}
            ),
        )
        self.adapter = TextualHistoryAdapter(self.session, hooks)
        self._render_cells()

    def on_key(self, event: events.Key) -> None:
        if self.adapter and self.adapter.handle_textual_key(event.key):
            self._render_cells()
            event.stop()

    def action_increment(self) -> None:
        self.counter.update(lambda value: value + 1)
        self._after_edit("counter +1")

    def action_decrement(self) -> None:
        self.counter.update(lambda value: value - 1)
        self._after_edit("counter -1")

    def action_add_tag(self) -> None:
        tags = self.tags.get()
        self.tags.set([*tags, f"tag-{len(tags) + 1}"])
        self._after_edit("tag added")

    def action_drop_tag(self) -> None:
        tags = self.tags.get()
        if tags:
            self.tags.set(tags[:-1])
            self._after_edit("tag dropped")

    def action_bump_and_tag(self) -> None:
        with self.session.grouped():
            self.action_increment()
            self.action_add_tag()
        self._after_edit("grouped edit")

    def _after_edit(self, status: str) -> None:
        self._update_status(status)
        if self.adapter:
            self.adapter.refresh()
        self._render_cells()

    def _render_cells(self) -> None:
        text = (
            f"counter: {self.counter.get()}\n"
            f"tags: {', '.join(self.tags.get()) or '-'}\n\n"
            f"{self._state.history_text}"
        )
        if self._cells_widget:
            self._cells_widget.update(text)

    def _update_status(self, status: str) -> None:
        self._state.status_text = status
        if self._status_widget:
            self._status_widget.update(status)

    def _update_history(self, state: HistoryStatus) -> None:
        self._state.history_text = f"undo: {state.past}  redo: {state.future}"


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the undo/redo Textual demo.")
    parser.add_argument(
        "--history-limit",
        type=int,
        default=50,
        help="Maximum number of undo steps kept (default: 50)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    HistoryDemoApp(history_limit=args.history_limit).run()


if __name__ == "__main__":  # pragma: no cover - manual demo
    main()
