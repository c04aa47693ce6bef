"""Structural diff, patch, and reversal over plain Python values.

Mappings are diffed key by key, lists and tuples position by position, and
everything else is treated as an opaque leaf replaced wholesale. The array
diff is positional: inserting into the middle of a list reports every later
index as changed rather than shifted.
"""

from __future__ import annotations

import copy
from typing import Any, Mapping, Optional, Sequence

from history_engine.runtime import telemetry

from .delta import (
    MISSING,
    UNKNOWN,
    ArrayDelta,
    ArrayItem,
    Delta,
    ObjectDelta,
    UnknownDeltaShape,
    ValueDelta,
)

COMPLEX_OBJECT_THRESHOLD = 10
COMPLEX_ARRAY_THRESHOLD = 20

_LOGGER_NAME = "history_engine.diff"


def _is_array(value: object) -> bool:
    return isinstance(value, (list, tuple))


def _is_composite(value: object) -> bool:
    return isinstance(value, Mapping) or _is_array(value)


def _same_leaf(old: object, new: object) -> bool:
    # 1 == True and 1 == 1.0, but swapping them is still a change.
    return type(old) is type(new) and bool(old == new)


def create_diff(old_value: Any, new_value: Any) -> Optional[Delta]:
    """Return the delta turning ``old_value`` into ``new_value``.

    ``None`` means there is no observable difference.
    """

    if old_value is new_value:
        return None

    if (
        not _is_composite(old_value)
        or not _is_composite(new_value)
        or _is_array(old_value) != _is_array(new_value)
    ):
        if _same_leaf(old_value, new_value):
            return None
        return ValueDelta(before=old_value, after=new_value)

    if _is_array(old_value):
        return _diff_arrays(old_value, new_value)
    return _diff_objects(old_value, new_value)


def _diff_objects(
    old_obj: Mapping[Any, Any], new_obj: Mapping[Any, Any]
) -> Optional[ObjectDelta]:
    changed: dict[Any, Delta] = {}
    added: dict[Any, Any] = {}
    deleted: list[Any] = []
    deleted_values: dict[Any, Any] = {}

    for key, old_item in old_obj.items():
        if key not in new_obj:
            deleted.append(key)
            deleted_values[key] = old_item
            continue
        child = create_diff(old_item, new_obj[key])
        if child is not None:
            changed[key] = child

    for key, new_item in new_obj.items():
        if key not in old_obj:
            added[key] = new_item

    if not changed and not added and not deleted:
        return None
    return ObjectDelta(
        changed=changed,
        added=added,
        deleted=tuple(deleted),
        deleted_values=deleted_values,
    )


def _diff_arrays(old_seq: Sequence[Any], new_seq: Sequence[Any]) -> Optional[ArrayDelta]:
    items: list[ArrayItem] = []
    old_len = len(old_seq)
    new_len = len(new_seq)

    for index in range(max(old_len, new_len)):
        if index >= old_len:
            items.append(ArrayItem(index=index, value=new_seq[index], added=True))
        elif index >= new_len:
            items.append(ArrayItem(index=index, value=old_seq[index], removed=True))
        elif create_diff(old_seq[index], new_seq[index]) is not None:
            items.append(
                ArrayItem(index=index, value=new_seq[index], previous=old_seq[index])
            )

    if not items:
        return None
    return ArrayDelta(items=tuple(items))


def apply_diff(value: Any, delta: Delta) -> Any:
    """Return ``value`` with ``delta`` applied; ``value`` itself is not mutated."""

    if isinstance(delta, ValueDelta):
        return delta.after
    if isinstance(delta, ArrayDelta):
        if _is_array(value):
            return _apply_array(value, delta)
        return _mismatch(value, delta)
    if isinstance(delta, ObjectDelta):
        if isinstance(value, Mapping):
            return _apply_object(value, delta)
        return _mismatch(value, delta)
    raise UnknownDeltaShape(delta)


def _apply_object(obj: Mapping[Any, Any], delta: ObjectDelta) -> Mapping[Any, Any]:
    result = copy.copy(obj) if isinstance(obj, dict) else dict(obj)

    for key, child in delta.changed.items():
        if key in result:
            result[key] = apply_diff(result[key], child)

    for key, item in delta.added.items():
        result[key] = item

    for key in delta.deleted:
        result.pop(key, None)

    return result


def _apply_array(seq: Sequence[Any], delta: ArrayDelta) -> Sequence[Any]:
    result = list(seq)

    # Descending order keeps the remaining removal indices valid.
    removals = sorted(
        (item for item in delta.items if item.removed),
        key=lambda item: item.index,
        reverse=True,
    )
    for item in removals:
        if item.index < len(result):
            del result[item.index]
        else:
            _out_of_range(item, len(result))

    for item in delta.items:
        if item.added:
            result.insert(item.index, item.value)

    for item in delta.items:
        if not item.is_replacement or item.value is MISSING:
            continue
        if item.index < len(result):
            result[item.index] = item.value
        else:
            _out_of_range(item, len(result))

    if isinstance(seq, tuple):
        return tuple(result)
    return result


def _mismatch(value: Any, delta: Delta) -> Any:
    telemetry.record_event(
        "diff.apply_mismatch",
        level="warning",
        data={"delta": delta.kind, "value_type": type(value).__name__},
        logger_name=_LOGGER_NAME,
    )
    return value


def _out_of_range(item: ArrayItem, length: int) -> None:
    telemetry.record_event(
        "diff.index_out_of_range",
        level="warning",
        data={"index": item.index, "length": length},
        logger_name=_LOGGER_NAME,
    )


def reverse_diff(delta: Delta) -> Delta:
    """Return the delta that undoes ``delta``.

    Deleted keys and replaced array elements are restored from the values
    captured by :func:`create_diff`. A hand-built object delta that lists a
    deleted key without its value re-adds that key as :data:`UNKNOWN`.
    """

    if isinstance(delta, ValueDelta):
        return ValueDelta(before=delta.after, after=delta.before)

    if isinstance(delta, ArrayDelta):
        return ArrayDelta(items=tuple(_reverse_item(item) for item in delta.items))

    if isinstance(delta, ObjectDelta):
        return ObjectDelta(
            changed={key: reverse_diff(child) for key, child in delta.changed.items()},
            added={key: delta.deleted_values.get(key, UNKNOWN) for key in delta.deleted},
            deleted=tuple(delta.added),
            deleted_values=dict(delta.added),
        )

    raise UnknownDeltaShape(delta)


def _reverse_item(item: ArrayItem) -> ArrayItem:
    if item.is_replacement and item.previous is not MISSING:
        return ArrayItem(index=item.index, value=item.previous, previous=item.value)
    return ArrayItem(
        index=item.index,
        value=item.value,
        added=item.removed,
        removed=item.added,
        previous=item.previous,
    )


def is_complex(delta: object) -> bool:
    """True when replaying ``delta`` should fall back to a stored full value."""

    if isinstance(delta, ObjectDelta):
        return len(delta.changed) > COMPLEX_OBJECT_THRESHOLD
    if isinstance(delta, ArrayDelta):
        return len(delta.items) > COMPLEX_ARRAY_THRESHOLD
    return False


__all__ = [
    "COMPLEX_ARRAY_THRESHOLD",
    "COMPLEX_OBJECT_THRESHOLD",
    "apply_diff",
    "create_diff",
    "is_complex",
    "reverse_diff",
]
