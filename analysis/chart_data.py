"""Chart dataset derivation from a result set and an axis selection."""

from __future__ import annotations

from collections.abc import Sequence

from .aggregations import aggregate_rows
from .dto import AxisSelection, ChartPoint, ResultRow


def build_chart_data(rows: Sequence[ResultRow], selection: AxisSelection) -> list[ChartPoint]:
    """Return the dataset handed to the charting layer.

    The result depends only on the inputs, so deriving it twice from the same
    rows and selection yields equal output. Input rows are never mutated.

    Args:
        rows: Current query result.
        selection: Current axis selection.

    Returns:
        An empty list until both axes are selected and rows exist, otherwise
        the aggregated chart points.
    """

    if not rows or not selection.is_complete:
        return []
    return aggregate_rows(rows, selection)
