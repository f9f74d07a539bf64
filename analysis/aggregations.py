"""Aggregation helpers for the chart pipeline.

This module turns query rows into chart points, either one point per row or
one averaged point per group, without introducing Django dependencies.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .coercion import coerce_number, group_key
from .dto import AxisSelection, CellValue, ChartPoint, ResultRow


@dataclass(slots=True)
class _GroupAccumulator:
    """Running totals for one group while rows are folded."""

    x_value: CellValue
    group_value: CellValue
    total: float = 0.0
    count: int = 0


def aggregate_rows(rows: Iterable[ResultRow], selection: AxisSelection) -> list[ChartPoint]:
    """Aggregate result rows into chart points for the given selection.

    Args:
        rows: Result rows; missing keys read as None.
        selection: Axis selection with non-empty `x_axis` and `y_axis`.

    Returns:
        Without grouping, one point per row (a copy with the y field coerced
        to a number). With grouping, one point per distinct group key in
        order of first appearance, holding the first-seen x and group values
        and the mean of the coerced y values.

    Raises:
        ValueError: If x or y is not selected.
    """

    if not selection.is_complete:
        raise ValueError("aggregate_rows requires both x_axis and y_axis to be selected.")
    if not selection.is_grouped:
        return [coerce_point(row, y_axis=selection.y_axis) for row in rows]
    return mean_by_group(rows, selection=selection)


def coerce_point(row: ResultRow, *, y_axis: str) -> ChartPoint:
    """Return a copy of a row with its y field coerced to a number."""

    point: ChartPoint = dict(row)
    point[y_axis] = coerce_number(row.get(y_axis))
    return point


def mean_by_group(rows: Iterable[ResultRow], *, selection: AxisSelection) -> list[ChartPoint]:
    """Average the y column per distinct value of the grouping column.

    Args:
        rows: Result rows to fold.
        selection: Complete, grouped axis selection.

    Returns:
        One chart point per group, keyed by x, group_by, then y.

    Notes:
        Unparseable y values add 0 to the group total but still count toward
        the mean.
    """

    groups: dict[str, _GroupAccumulator] = {}
    for row in rows:
        key_value = row.get(selection.group_by)
        key = group_key(key_value)
        acc = groups.get(key)
        if acc is None:
            acc = _GroupAccumulator(x_value=row.get(selection.x_axis), group_value=key_value)
            groups[key] = acc
        acc.total += coerce_number(row.get(selection.y_axis))
        acc.count += 1

    points: list[ChartPoint] = []
    for acc in groups.values():
        point: ChartPoint = {
            selection.x_axis: acc.x_value,
            selection.group_by: acc.group_value,
        }
        point[selection.y_axis] = acc.total / acc.count
        points.append(point)
    return points
