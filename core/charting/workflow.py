"""Save workflow for query-driven charts.

`SaveWorkflow` owns one user's chart-building state: the source catalog, the
SQL text and its result, the axis selection, and the title/description of
the chart being built. Saving runs as a small state machine:

    IDLE -> VALIDATING -> REJECTED -> IDLE
    IDLE -> VALIDATING -> PERSISTING -> PERSIST_FAILED -> IDLE
    IDLE -> VALIDATING -> PERSISTING -> PERSIST_SUCCEEDED
    PERSIST_SUCCEEDED -> KEEP_QUERY_RESET | FULL_RESET -> IDLE

While a successful save awaits the keep-query/full-reset decision, query,
source and save actions are refused.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from enum import Enum
from typing import Protocol

from analysis.chart_data import build_chart_data
from analysis.columns import extract_columns
from analysis.dto import (
    CHART_TYPES,
    DEFAULT_CHART_TYPE,
    AxisSelection,
    ChartDefinition,
    ChartParameters,
    ChartPoint,
    ChartType,
    ResultSet,
    SaveOutcome,
)

from .catalog import SourceCatalog
from .errors import InputError, PersistenceError, QueryExecutionError, WorkflowBlockedError
from .validator import SelectionValidationResult, validate_selection

logger = logging.getLogger(__name__)

DEFAULT_BANNER_SECONDS = 3.0


class ChartBackend(Protocol):
    """Collaborators consumed by the workflow."""

    def list_tables(self) -> list[str]:
        """Return selectable source table names."""

    def fetch_table(self, name: str) -> ResultSet:
        """Return preview rows for a source table."""

    def execute_query(self, sql: str) -> ResultSet:
        """Run SQL text and return its rows, raising QueryExecutionError."""

    def save_chart(self, definition: ChartDefinition, parameters: ChartParameters) -> SaveOutcome:
        """Persist a definition and its parameters as one unit."""


class WorkflowState(str, Enum):
    """States of the save workflow."""

    IDLE = "idle"
    VALIDATING = "validating"
    REJECTED = "rejected"
    PERSISTING = "persisting"
    PERSIST_FAILED = "persist_failed"
    PERSIST_SUCCEEDED = "persist_succeeded"
    KEEP_QUERY_RESET = "keep_query_reset"
    FULL_RESET = "full_reset"


@dataclass(frozen=True, slots=True)
class WorkflowSnapshot:
    """Derived view state recomputed after every input change."""

    state: WorkflowState
    available_columns: tuple[str, ...]
    chart_data: tuple[ChartPoint, ...]
    title_error: bool
    visualization_error: bool
    save_error: bool
    save_success: bool
    query_error: str | None
    query_success: bool
    awaiting_confirmation: bool


class SaveWorkflow:
    """Coordinate query results, chart parameters, and persistence.

    Args:
        backend: Collaborator implementing `ChartBackend`.
        clock: Wall-clock callable used for the transient success banners.
        banner_seconds: How long success banners stay visible.
    """

    def __init__(
        self,
        backend: ChartBackend,
        *,
        clock: Callable[[], float] = time.time,
        banner_seconds: float = DEFAULT_BANNER_SECONDS,
    ) -> None:
        self.backend = backend
        self._clock = clock
        self.banner_seconds = banner_seconds

        self.catalog = SourceCatalog()
        self.sql_query = ""
        self.result_set: ResultSet = []
        self.selection = AxisSelection.empty()
        self.chart_type: ChartType = DEFAULT_CHART_TYPE
        self.title = ""
        self.description = ""

        self.title_error = False
        self.visualization_error = False
        self.save_error = False
        self.query_error: str | None = None
        self.query_succeeded_at: float | None = None
        self.save_succeeded_at: float | None = None
        self.last_record_id: int | None = None

        self.state = WorkflowState.IDLE
        self.history: list[WorkflowState] = [WorkflowState.IDLE]

    # Derived state

    @property
    def available_columns(self) -> tuple[str, ...]:
        """Return the columns of the current result set."""

        return extract_columns(self.result_set)

    @property
    def chart_data(self) -> list[ChartPoint]:
        """Return the chart dataset for the current result and selection."""

        return build_chart_data(self.result_set, self.selection)

    @property
    def awaiting_confirmation(self) -> bool:
        """Return True while a saved chart waits for the next-step decision."""

        return self.state is WorkflowState.PERSIST_SUCCEEDED

    @property
    def save_success(self) -> bool:
        """Return True while the save-success banner should be shown."""

        return self._banner_visible(self.save_succeeded_at)

    @property
    def query_success(self) -> bool:
        """Return True while the query-success banner should be shown."""

        return self._banner_visible(self.query_succeeded_at)

    def snapshot(self) -> WorkflowSnapshot:
        """Return the derived state consumed by the view layer."""

        return WorkflowSnapshot(
            state=self.state,
            available_columns=self.available_columns,
            chart_data=tuple(self.chart_data),
            title_error=self.title_error,
            visualization_error=self.visualization_error,
            save_error=self.save_error,
            save_success=self.save_success,
            query_error=self.query_error,
            query_success=self.query_success,
            awaiting_confirmation=self.awaiting_confirmation,
        )

    # Sources

    def load_sources(self) -> SourceCatalog:
        """Replace the catalog with a fresh, all-unchecked table listing."""

        self.catalog = SourceCatalog.from_tables(self.backend.list_tables())
        return self.catalog

    def toggle_source(self, name: str) -> SourceCatalog:
        """Check or uncheck a source table, fetching its preview when checked."""

        self.ensure_accepting("toggle a source table")
        self.catalog = self.catalog.toggled(name, fetch=self.backend.fetch_table)
        return self.catalog

    # Query

    def run_query(self, sql: str | None = None) -> bool:
        """Execute the SQL text and install its result.

        Chart-related state (selection, chart type, title, description and
        validation flags) is reset before the new result becomes visible.

        Args:
            sql: Optional new SQL text; the current text is used when omitted.

        Returns:
            True when the query ran, False when an error was recorded in
            `query_error`.

        Raises:
            WorkflowBlockedError: While a save is persisting or awaiting
                confirmation.
        """

        self.ensure_accepting("run a query")
        if sql is not None:
            self.sql_query = sql

        try:
            if not self.sql_query.strip():
                raise InputError("Query is required.", field="sql_query")
            self.query_error = None
            rows = self.backend.execute_query(self.sql_query)
        except InputError as exc:
            self.query_error = exc.message
            return False
        except QueryExecutionError as exc:
            logger.warning("Query failed: %s", exc.message)
            self.query_error = exc.message
            self.result_set = []
            return False

        self._reset_chart_state()
        self.chart_type = DEFAULT_CHART_TYPE
        self.save_error = False
        self.save_succeeded_at = None
        self.result_set = [dict(row) for row in rows]
        self.query_succeeded_at = self._clock()
        return True

    # Chart parameters

    def select_axes(
        self,
        *,
        x_axis: str | None = None,
        y_axis: str | None = None,
        group_by: str | None = None,
    ) -> AxisSelection:
        """Update one or more axis bindings; None leaves a binding unchanged."""

        changes = {
            key: value
            for key, value in (("x_axis", x_axis), ("y_axis", y_axis), ("group_by", group_by))
            if value is not None
        }
        self.selection = replace(self.selection, **changes)
        if self.visualization_error and self.chart_data:
            self.visualization_error = False
        return self.selection

    def set_chart_type(self, chart_type: str) -> None:
        """Set the chart type.

        Raises:
            InputError: If the chart type is not supported.
        """

        if chart_type not in CHART_TYPES:
            raise InputError(f"Unsupported chart type: {chart_type!r}.", field="chart_type")
        self.chart_type = chart_type  # type: ignore[assignment]

    def set_title(self, title: str) -> None:
        """Set the chart title, clearing the title flag once it is non-blank."""

        self.title = title
        if self.title_error and title.strip():
            self.title_error = False

    def set_description(self, description: str) -> None:
        """Set the optional chart description."""

        self.description = description

    # Save

    def validate(self) -> SelectionValidationResult:
        """Run the save-time validator against the current state."""

        return validate_selection(self.title, self.chart_data, self.selection)

    def build_records(self, chart_data: Sequence[ChartPoint]) -> tuple[ChartDefinition, ChartParameters]:
        """Materialize the records submitted to the persistence collaborator."""

        definition = ChartDefinition(
            title=self.title,
            description=self.description,
            chart_type=self.chart_type,
            sql_query=self.sql_query,
            is_parameterized=self.selection.is_parameterized,
            chart_data=json.dumps(list(chart_data)),
        )
        parameters = ChartParameters(
            param_x=self.selection.x_axis,
            param_y=self.selection.y_axis,
            group_by=self.selection.group_by or None,
        )
        return definition, parameters

    def request_save(self) -> SaveOutcome | None:
        """Validate and persist the current chart.

        Returns:
            None when validation rejected the save (no collaborator call),
            otherwise the collaborator's SaveOutcome.

        Raises:
            WorkflowBlockedError: If a save is already persisting or a previous
                save still awaits confirmation.
        """

        self.ensure_accepting("save a visualization")
        self.save_error = False
        self.save_succeeded_at = None

        self._transition(WorkflowState.VALIDATING)
        chart_data = self.chart_data
        result = validate_selection(self.title, chart_data, self.selection)
        self.title_error = result.title_error
        self.visualization_error = result.visualization_error
        if not result.can_save:
            self._transition(WorkflowState.REJECTED)
            self._transition(WorkflowState.IDLE)
            return None

        definition, parameters = self.build_records(chart_data)
        self._transition(WorkflowState.PERSISTING)
        try:
            outcome = self.backend.save_chart(definition, parameters)
        except PersistenceError as exc:
            logger.exception("Error saving visualization %r", definition.title)
            outcome = SaveOutcome(ok=False, message=exc.message)
        except Exception as exc:
            logger.exception("Unexpected error saving visualization %r", definition.title)
            outcome = SaveOutcome(ok=False, message=str(exc) or PersistenceError().message)

        if not outcome.ok:
            logger.error("Error saving visualization %r: %s", definition.title, outcome.message)
            self.save_error = True
            self._transition(WorkflowState.PERSIST_FAILED)
            self._transition(WorkflowState.IDLE)
            return outcome

        logger.info("Saved visualization %r (id=%s)", definition.title, outcome.record_id)
        self.last_record_id = outcome.record_id
        self.save_succeeded_at = self._clock()
        self._transition(WorkflowState.PERSIST_SUCCEEDED)
        return outcome

    def confirm(self, *, keep_query: bool) -> None:
        """Resolve the post-save decision.

        Args:
            keep_query: True to keep the SQL text and result for another
                chart, False to start over from an empty workflow.

        Raises:
            WorkflowBlockedError: If no saved chart is awaiting confirmation.
        """

        if not self.awaiting_confirmation:
            raise WorkflowBlockedError(
                "No saved visualization is awaiting confirmation.",
                state=self.state.value,
            )

        self._reset_chart_state()
        if keep_query:
            self._transition(WorkflowState.KEEP_QUERY_RESET)
        else:
            self.sql_query = ""
            self.result_set = []
            self.chart_type = DEFAULT_CHART_TYPE
            self._transition(WorkflowState.FULL_RESET)
        self._transition(WorkflowState.IDLE)

    # Internals

    def _reset_chart_state(self) -> None:
        self.selection = AxisSelection.empty()
        self.title = ""
        self.description = ""
        self.title_error = False
        self.visualization_error = False

    def ensure_accepting(self, action: str) -> None:
        """Raise WorkflowBlockedError while persisting or awaiting confirmation."""

        if self.state is WorkflowState.PERSISTING:
            raise WorkflowBlockedError(f"Cannot {action} while a save is in progress.", state=self.state.value)
        if self.awaiting_confirmation:
            raise WorkflowBlockedError(
                f"Cannot {action} before choosing whether to keep the current query.",
                state=self.state.value,
            )

    def _banner_visible(self, started_at: float | None) -> bool:
        if started_at is None:
            return False
        return self._clock() - started_at < self.banner_seconds

    def _transition(self, state: WorkflowState) -> None:
        logger.debug("Chart workflow transition %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)
