"""Unit tests for column discovery, numeric coercion and chart aggregation."""

from __future__ import annotations

import copy
from decimal import Decimal
from statistics import mean

import pytest
from pytest import approx

from analysis import build_chart_data, extract_columns
from analysis.aggregations import aggregate_rows, mean_by_group
from analysis.coercion import NULL_GROUP_KEY, coerce_number, group_key
from analysis.dto import AxisSelection

pytestmark = pytest.mark.unit


def test_extract_columns_uses_first_row_order() -> None:
    """Column order follows the keys of row 0; later rows are ignored."""

    rows = [{"b": 1, "a": 2}, {"c": 3}]

    assert extract_columns(rows) == ("b", "a")


def test_extract_columns_empty_result() -> None:
    """An empty result has no columns."""

    assert extract_columns([]) == ()


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (42, 42.0),
        (2.5, 2.5),
        ("10", 10.0),
        ("  -3.5", -3.5),
        ("12.5kg", 12.5),
        ("1e3 units", 1000.0),
        (".5", 0.5),
        (Decimal("7.25"), 7.25),
        ("abc", 0.0),
        ("", 0.0),
        (None, 0.0),
        (True, 0.0),
        (float("nan"), 0.0),
        (float("inf"), 0.0),
        ("1e999", 0.0),
        (Decimal("NaN"), 0.0),
        ("\u0663", 0.0),
        ("7\u0663", 7.0),
    ],
)
def test_coerce_number_is_total(value: object, expected: float) -> None:
    """Coercion reads numeric prefixes and defaults to zero."""

    assert coerce_number(value) == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (1, "1"),
        (1.0, "1"),
        ("1", "1"),
        (1.5, "1.5"),
        (None, NULL_GROUP_KEY),
        (Decimal("3.00"), "3"),
        ("North", "North"),
    ],
)
def test_group_key_canonical_form(value: object, expected: str) -> None:
    """Equal-looking grouping values share one key."""

    assert group_key(value) == expected


def test_ungrouped_rows_coerce_y_per_row() -> None:
    """Without grouping each row becomes one point with a numeric y."""

    rows = [{"month": "Jan", "total": "100"}, {"month": "Feb", "total": "n/a"}]

    points = build_chart_data(rows, AxisSelection(x_axis="month", y_axis="total"))

    assert points == [{"month": "Jan", "total": 100.0}, {"month": "Feb", "total": 0.0}]


def test_grouped_rows_average_per_group() -> None:
    """Grouping averages y per group in order of first appearance."""

    rows = [
        {"region": "A", "sales": "10"},
        {"region": "A", "sales": "20"},
        {"region": "B", "sales": "5"},
    ]
    selection = AxisSelection(x_axis="region", y_axis="sales", group_by="region")

    points = build_chart_data(rows, selection)

    assert points == [{"region": "A", "sales": 15.0}, {"region": "B", "sales": 5.0}]


def test_grouped_points_keep_first_seen_x_value() -> None:
    """A group's x value is the one seen on its first row."""

    rows = [
        {"day": "Mon", "team": "red", "score": 4},
        {"day": "Tue", "team": "blue", "score": 6},
        {"day": "Wed", "team": "red", "score": "8"},
    ]
    selection = AxisSelection(x_axis="day", y_axis="score", group_by="team")

    points = mean_by_group(rows, selection=selection)

    assert points == [
        {"day": "Mon", "team": "red", "score": 6.0},
        {"day": "Tue", "team": "blue", "score": 6.0},
    ]
    assert list(points[0].keys()) == ["day", "team", "score"]


def test_unparseable_values_still_count_toward_the_mean() -> None:
    """A non-numeric y adds zero but is part of the divisor."""

    rows = [{"k": "x", "v": "9"}, {"k": "x", "v": "oops"}, {"k": "x", "v": None}]
    selection = AxisSelection(x_axis="k", y_axis="v", group_by="k")

    points = build_chart_data(rows, selection)

    assert points == [{"k": "x", "v": approx(3.0)}]


def test_numeric_and_string_group_values_merge() -> None:
    """`1`, `1.0` and `"1"` fall into the same group."""

    rows = [
        {"x": "a", "g": 1, "y": 2},
        {"x": "b", "g": 1.0, "y": 4},
        {"x": "c", "g": "1", "y": 6},
        {"x": "d", "g": None, "y": 1},
    ]
    selection = AxisSelection(x_axis="x", y_axis="y", group_by="g")

    points = build_chart_data(rows, selection)

    assert len(points) == 2
    assert points[0] == {"x": "a", "g": 1, "y": 4.0}
    assert points[1] == {"x": "d", "g": None, "y": 1.0}


def test_group_count_matches_distinct_keys_and_y_is_the_group_mean() -> None:
    """Grouped output has one point per key holding the mean of its rows."""

    rows = [{"x": i, "g": i % 3, "y": i * 1.5} for i in range(30)]
    selection = AxisSelection(x_axis="x", y_axis="y", group_by="g")

    points = build_chart_data(rows, selection)

    assert [point["g"] for point in points] == [0, 1, 2]
    for point in points:
        values = [row["y"] for row in rows if row["g"] == point["g"]]
        assert abs(point["y"] - mean(values)) < 1e-9


@pytest.mark.parametrize(
    "selection",
    [
        AxisSelection(),
        AxisSelection(x_axis="region"),
        AxisSelection(y_axis="sales"),
        AxisSelection(group_by="region"),
    ],
)
def test_incomplete_selection_yields_no_chart(selection: AxisSelection) -> None:
    """Chart data stays empty until both axes are selected."""

    rows = [{"region": "A", "sales": 1}]

    assert build_chart_data(rows, selection) == []


def test_empty_rows_yield_no_chart() -> None:
    """No rows means no points, even with a complete selection."""

    assert build_chart_data([], AxisSelection(x_axis="a", y_axis="b")) == []


def test_build_chart_data_is_repeatable_and_does_not_mutate_rows() -> None:
    """Deriving twice gives equal output and leaves the inputs untouched."""

    rows = [{"region": "A", "sales": "10"}, {"region": "B", "sales": "x"}]
    original = copy.deepcopy(rows)
    selection = AxisSelection(x_axis="region", y_axis="sales")

    first = build_chart_data(rows, selection)
    second = build_chart_data(rows, selection)

    assert first == second
    assert rows == original
    assert first[0] is not rows[0]


def test_aggregate_rows_requires_both_axes() -> None:
    """The lower-level aggregation refuses an incomplete selection."""

    with pytest.raises(ValueError):
        aggregate_rows([{"a": 1}], AxisSelection(x_axis="a"))


def test_missing_columns_read_as_null() -> None:
    """Rows without the y column coerce to zero instead of failing."""

    points = build_chart_data([{"x": "a"}], AxisSelection(x_axis="x", y_axis="y"))

    assert points == [{"x": "a", "y": 0.0}]
