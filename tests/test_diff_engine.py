from __future__ import annotations

from typing import Any

import pytest

from history_engine.diff import (
    UNKNOWN,
    ArrayDelta,
    ArrayItem,
    ObjectDelta,
    OpaqueDelta,
    UnknownDeltaShape,
    ValueDelta,
    apply_diff,
    create_diff,
    is_complex,
    reverse_diff,
)


ROUND_TRIP_PAIRS = [
    ({"a": 1, "b": {"c": [1, 2]}}, {"b": {"c": [1, 3, 4]}, "d": None}),
    ([1, 2, 3], [4]),
    ([1], [4, 5, 6]),
    ([1, 2, 3], [1, 3]),
    ((1, 2), (1, 3)),
    ({"k": [{"x": 1}]}, {"k": [{"x": 2}, {"y": 0}]}),
    ({"flag": True}, {"flag": 1}),
    ("before", "after"),
    (None, {"a": 1}),
    ([1, 2], {"a": 1}),
]


def test_create_diff_object_completeness() -> None:
    delta = create_diff({"a": 1, "b": 2}, {"b": 3, "c": 4})

    assert isinstance(delta, ObjectDelta)
    assert delta.changed == {"b": ValueDelta(before=2, after=3)}
    assert delta.added == {"c": 4}
    assert delta.deleted == ("a",)
    assert delta.deleted_values == {"a": 1}


def test_apply_object_delta_does_not_mutate_input() -> None:
    original = {"a": 1, "b": 2}
    delta = create_diff(original, {"b": 3, "c": 4})
    assert delta is not None

    result = apply_diff(original, delta)

    assert result == {"b": 3, "c": 4}
    assert original == {"a": 1, "b": 2}


def test_create_diff_array_is_positional() -> None:
    delta = create_diff([1, 2, 3], [1, 5, 3, 9])

    assert isinstance(delta, ArrayDelta)
    assert [(item.index, item.value, item.added) for item in delta.items] == [
        (1, 5, False),
        (3, 9, True),
    ]
    assert delta.items[0].previous == 2
    assert apply_diff([1, 2, 3], delta) == [1, 5, 3, 9]


def test_added_keys_are_not_recursively_diffed() -> None:
    delta = create_diff({}, {"nested": {"a": [1]}})

    assert isinstance(delta, ObjectDelta)
    assert delta.added == {"nested": {"a": [1]}}
    assert not delta.changed


@pytest.mark.parametrize(
    "value",
    [0, "", "text", 3.5, None, True, [1, 2], {"a": {"b": [1]}}, (1, 2)],
)
def test_create_diff_same_value_is_none(value: Any) -> None:
    assert create_diff(value, value) is None


def test_create_diff_deep_equal_copies_is_none() -> None:
    assert create_diff({"a": [1, {"b": 2}]}, {"a": [1, {"b": 2}]}) is None
    assert create_diff([1, 2, 3], [1, 2, 3]) is None


def test_create_diff_distinguishes_leaf_types() -> None:
    assert create_diff(1, True) == ValueDelta(before=1, after=True)
    assert create_diff(1, 1.0) == ValueDelta(before=1, after=1.0)


def test_shape_mismatch_is_full_replacement() -> None:
    assert create_diff([1], {"a": 1}) == ValueDelta(before=[1], after={"a": 1})
    assert create_diff(None, {"a": 1}) == ValueDelta(before=None, after={"a": 1})
    assert create_diff("abc", ["a", "b", "c"]) == ValueDelta(
        before="abc", after=["a", "b", "c"]
    )


@pytest.mark.parametrize("old, new", ROUND_TRIP_PAIRS)
def test_round_trip_forward_and_reverse(old: Any, new: Any) -> None:
    delta = create_diff(old, new)
    assert delta is not None

    assert apply_diff(old, delta) == new
    assert apply_diff(new, reverse_diff(delta)) == old


def test_apply_array_keeps_tuple_type() -> None:
    delta = create_diff((1, 2), (1, 3, 4))
    assert delta is not None

    assert apply_diff((1, 2), delta) == (1, 3, 4)


def test_apply_array_removes_in_descending_order() -> None:
    delta = ArrayDelta(
        items=(
            ArrayItem(index=1, value="b", removed=True),
            ArrayItem(index=3, value="d", removed=True),
        )
    )

    assert apply_diff(["a", "b", "c", "d", "e"], delta) == ["a", "c", "e"]


def test_apply_value_delta_ignores_current_value() -> None:
    assert apply_diff("anything", ValueDelta(before=1, after=2)) == 2


def test_apply_shape_mismatch_returns_value_unchanged() -> None:
    array_delta = ArrayDelta(items=(ArrayItem(index=0, value=1),))
    object_delta = ObjectDelta(added={"a": 1})

    assert apply_diff(5, array_delta) == 5
    assert apply_diff([1, 2], object_delta) == [1, 2]


def test_apply_object_changed_skips_missing_keys() -> None:
    delta = ObjectDelta(changed={"gone": ValueDelta(before=1, after=2)})

    assert apply_diff({"other": 0}, delta) == {"other": 0}


def test_reverse_value_delta_swaps_sides() -> None:
    assert reverse_diff(ValueDelta(before=1, after=2)) == ValueDelta(before=2, after=1)


def test_reverse_array_swaps_added_and_removed() -> None:
    delta = ArrayDelta(items=(ArrayItem(index=2, value=9, added=True),))

    reversed_delta = reverse_diff(delta)

    assert reversed_delta.items == (ArrayItem(index=2, value=9, removed=True),)


def test_reverse_restores_deleted_values() -> None:
    delta = create_diff({"a": 1, "b": 2}, {"b": 2})
    assert delta is not None

    reversed_delta = reverse_diff(delta)

    assert isinstance(reversed_delta, ObjectDelta)
    assert reversed_delta.added == {"a": 1}
    assert reversed_delta.deleted == ()


def test_reverse_hand_built_deletion_uses_placeholder() -> None:
    reversed_delta = reverse_diff(ObjectDelta(deleted=("a",)))

    assert isinstance(reversed_delta, ObjectDelta)
    assert reversed_delta.added == {"a": UNKNOWN}


def test_unknown_delta_shapes_raise() -> None:
    with pytest.raises(UnknownDeltaShape):
        reverse_diff(OpaqueDelta(payload={"custom": True}))  # type: ignore[arg-type]
    with pytest.raises(UnknownDeltaShape):
        apply_diff([1], OpaqueDelta(payload=None))  # type: ignore[arg-type]
    with pytest.raises(UnknownDeltaShape):
        reverse_diff({"type": "value"})  # type: ignore[arg-type]


def test_array_delta_rejects_duplicate_index() -> None:
    with pytest.raises(ValueError):
        ArrayDelta(items=(ArrayItem(index=0, value=1), ArrayItem(index=0, value=2)))


def test_is_complex_thresholds() -> None:
    wide_old = {f"k{i}": i for i in range(11)}
    wide_new = {f"k{i}": i + 1 for i in range(11)}
    narrow_new = dict(wide_old, **{f"k{i}": -1 for i in range(10)})

    assert is_complex(create_diff(wide_old, wide_new))
    assert not is_complex(create_diff(wide_old, narrow_new))
    assert is_complex(create_diff([], list(range(21))))
    assert not is_complex(create_diff([], list(range(20))))
    assert not is_complex(ValueDelta(before=1, after=2))
