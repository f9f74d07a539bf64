"""DTO types shared by the chart pipeline.

DTOs are plain data containers used to move query results and chart
selections between the analysis functions and the web layer. They
intentionally avoid any Django/ORM dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Literal, Union

CellValue = Union[str, int, float, None]
ResultRow = dict[str, CellValue]
ResultSet = list[ResultRow]
ChartPoint = dict[str, CellValue]

ChartType = Literal["bar", "line", "pie", "scatter"]
CHART_TYPES: Final[tuple[ChartType, ...]] = ("bar", "line", "pie", "scatter")
DEFAULT_CHART_TYPE: Final[ChartType] = "bar"


@dataclass(frozen=True, slots=True)
class AxisSelection:
    """Columns currently bound to the chart axes.

    Attributes:
        x_axis: Column used for the x axis (or category for pie charts).
        y_axis: Column holding the plotted numeric value.
        group_by: Optional grouping column; empty string when unused.
    """

    x_axis: str = ""
    y_axis: str = ""
    group_by: str = ""

    @classmethod
    def empty(cls) -> AxisSelection:
        """Return the selection used right after a query or reset."""

        return cls()

    @property
    def is_complete(self) -> bool:
        """Return True when both x and y columns are selected."""

        return bool(self.x_axis) and bool(self.y_axis)

    @property
    def is_grouped(self) -> bool:
        """Return True when a grouping column is selected."""

        return bool(self.group_by)

    @property
    def is_parameterized(self) -> bool:
        """Return True when any of the axis controls carries a column."""

        return bool(self.x_axis) or bool(self.y_axis) or bool(self.group_by)


@dataclass(frozen=True, slots=True)
class ChartDefinition:
    """Chart definition as handed to the persistence collaborator.

    Attributes:
        title: Required, non-empty display title.
        description: Optional free-text description.
        chart_type: One of `CHART_TYPES`.
        sql_query: SQL text that produced the charted result.
        is_parameterized: True when an axis or grouping column is bound.
        chart_data: JSON-encoded list of chart points.
    """

    title: str
    description: str
    chart_type: ChartType
    sql_query: str
    is_parameterized: bool
    chart_data: str


@dataclass(frozen=True, slots=True)
class ChartParameters:
    """Axis bindings persisted alongside a ChartDefinition."""

    param_x: str
    param_y: str
    group_by: str | None = None


@dataclass(frozen=True, slots=True)
class SaveOutcome:
    """Result reported by the persistence collaborator.

    Attributes:
        ok: True for a 2xx-equivalent acknowledgment.
        message: Failure message when `ok` is False.
        record_id: Identifier of the stored definition on success.
    """

    ok: bool
    message: str = ""
    record_id: int | None = None
