"""Delta-based global undo/redo for independently mutated state cells."""

__all__ = [
    "adapters",
    "diff",
    "history",
    "runtime",
]

__version__ = "0.1.0"
