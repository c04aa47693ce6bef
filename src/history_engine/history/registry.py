"""Registry mapping cell ids to live cell handles."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional, Protocol

from history_engine.runtime.telemetry import span


class CellHandle(Protocol):
    """Read/write capability the controller needs from a cell."""

    def read(self) -> Any:
        """Return the cell's current value."""
        ...

    def write(self, value: Any) -> None:
        """Replace the cell's current value."""
        ...


@dataclass(frozen=True, slots=True)
class CallbackHandle:
    """Adapts a getter/setter pair to :class:`CellHandle`."""

    getter: Callable[[], Any]
    setter: Callable[[Any], None]

    def read(self) -> Any:
        return self.getter()

    def write(self, value: Any) -> None:
        self.setter(value)


def generate_cell_id() -> str:
    return uuid.uuid4().hex[:12]


class CellRegistry:
    """Dict-backed lookup of cells by id.

    The registry never owns a cell: unregistering only breaks the mapping,
    and history entries naming that id become unresolvable.
    """

    def __init__(self, *, logger_name: str | None = None) -> None:
        self._cells: Dict[str, CellHandle] = {}
        self._logger_name = logger_name

    def register(self, cell_id: str, handle: CellHandle) -> CellHandle:
        if not cell_id:
            raise ValueError("cell id cannot be empty")
        with span(
            "registry::register",
            logger_name=self._logger_name,
            component="registry",
            metadata={"cell_id": cell_id},
        ) as trace:
            if cell_id in self._cells:
                trace.add_metadata("replaced", True)
            self._cells[cell_id] = handle
            return handle

    def unregister(self, cell_id: str) -> Optional[CellHandle]:
        with span(
            "registry::unregister",
            logger_name=self._logger_name,
            component="registry",
            metadata={"cell_id": cell_id},
        ):
            return self._cells.pop(cell_id, None)

    def lookup(self, cell_id: str) -> Optional[CellHandle]:
        return self._cells.get(cell_id)

    def ids(self) -> Iterator[str]:
        yield from self._cells

    def __contains__(self, cell_id: object) -> bool:
        return cell_id in self._cells

    def __len__(self) -> int:
        return len(self._cells)


__all__ = [
    "CallbackHandle",
    "CellHandle",
    "CellRegistry",
    "generate_cell_id",
]
