"""Delta types and the pure diff/patch/reverse functions."""

from .delta import (
    MISSING,
    UNKNOWN,
    AnyDelta,
    ArrayDelta,
    ArrayItem,
    Delta,
    ObjectDelta,
    OpaqueDelta,
    UnknownDeltaShape,
    ValueDelta,
    is_structural,
)
from .engine import (
    COMPLEX_ARRAY_THRESHOLD,
    COMPLEX_OBJECT_THRESHOLD,
    apply_diff,
    create_diff,
    is_complex,
    reverse_diff,
)

__all__ = [
    "MISSING",
    "UNKNOWN",
    "AnyDelta",
    "ArrayDelta",
    "ArrayItem",
    "Delta",
    "ObjectDelta",
    "OpaqueDelta",
    "UnknownDeltaShape",
    "ValueDelta",
    "is_structural",
    "COMPLEX_ARRAY_THRESHOLD",
    "COMPLEX_OBJECT_THRESHOLD",
    "apply_diff",
    "create_diff",
    "is_complex",
    "reverse_diff",
]
