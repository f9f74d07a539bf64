"""Save-time validation for chart selections.

The validator is a pure function so it can be exercised without a workflow
or a request. It only reports flags; the workflow decides what to do with
them.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from analysis.dto import AxisSelection, ChartPoint


@dataclass(frozen=True, slots=True)
class SelectionValidationResult:
    """Field-level validation flags for a save attempt.

    Args:
        title_error: True when the trimmed title is empty.
        visualization_error: True when there is no chart to save.
    """

    title_error: bool
    visualization_error: bool

    @property
    def can_save(self) -> bool:
        """Return True when neither flag is raised."""

        return not self.title_error and not self.visualization_error


def validate_selection(
    title: str,
    chart_data: Sequence[ChartPoint],
    selection: AxisSelection,
) -> SelectionValidationResult:
    """Validate a chart before it is persisted.

    Args:
        title: Chart title as typed by the user.
        chart_data: Current derived chart dataset.
        selection: Current axis selection.

    Returns:
        SelectionValidationResult. Grouping and description are optional and
        never raise a flag.
    """

    title_error = not (title or "").strip()
    visualization_error = not chart_data or not selection.x_axis or not selection.y_axis
    return SelectionValidationResult(title_error=title_error, visualization_error=visualization_error)
