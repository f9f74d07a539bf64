"""Service-layer functions for the core app.

Services in `core` coordinate Django persistence concerns (ORM, raw cursors,
transactions) with the pure chart pipeline. `DjangoChartBackend` bundles them
into the collaborator consumed by `core.charting.workflow.SaveWorkflow`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import date, datetime, time
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError, connections, transaction

from analysis.dto import CellValue, ChartDefinition, ChartParameters, ResultSet, SaveOutcome
from core.charting.catalog import selectable_tables
from core.charting.errors import PersistenceError, QueryExecutionError
from core.models import Visualization, VisualizationParameter

logger = logging.getLogger(__name__)

FRAMEWORK_TABLE_PREFIXES = ("django_", "auth_", "sqlite_")


def create_visualization(
    definition: ChartDefinition,
    parameters: ChartParameters,
    *,
    using: str = "default",
) -> Visualization:
    """Persist a chart definition and its parameters atomically.

    Args:
        definition: Chart definition to store.
        parameters: Axis bindings stored one-to-one with the definition.
        using: Database alias.

    Returns:
        The created Visualization.

    Raises:
        PersistenceError: When either row cannot be written; nothing is stored.
    """

    try:
        with transaction.atomic(using=using):
            visualization = Visualization.objects.using(using).create(
                title=definition.title,
                description=definition.description,
                chart_type=definition.chart_type,
                sql_query=definition.sql_query,
                is_parameterized=definition.is_parameterized,
                chart_data=definition.chart_data,
            )
            VisualizationParameter.objects.using(using).create(
                visualization=visualization,
                param_x=parameters.param_x,
                param_y=parameters.param_y,
                group_by=parameters.group_by,
            )
    except (DatabaseError, ValidationError) as exc:
        raise PersistenceError(f"Could not save the visualization: {exc}") from exc
    return visualization


def normalize_cell(value: object) -> CellValue:
    """Normalize a database value into a JSON-friendly result cell.

    Args:
        value: Raw value returned by the DB-API cursor.

    Returns:
        str, int, float or None. Dates and times become ISO strings, decimals
        become floats, and bytes are decoded as UTF-8 with replacement.
    """

    if value is None or isinstance(value, (str, int, float)):
        return value  # type: ignore[return-value]
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


class DjangoChartBackend:
    """Chart collaborators backed by a Django database connection.

    Args:
        using: Database alias used for catalog listing, queries and saves.
        preview_limit: Maximum rows returned by `fetch_table`.
        excluded: Extra table names hidden from the catalog.
    """

    def __init__(
        self,
        *,
        using: str = "default",
        preview_limit: int | None = None,
        excluded: Iterable[str] | None = None,
    ) -> None:
        self.using = using
        self.preview_limit = (
            preview_limit if preview_limit is not None else int(settings.CHART_STUDIO_PREVIEW_ROW_LIMIT)
        )
        self.excluded = tuple(excluded if excluded is not None else settings.CHART_STUDIO_EXCLUDED_TABLES)

    def list_tables(self) -> list[str]:
        """Return user-selectable tables, hiding bookkeeping and framework tables."""

        connection = connections[self.using]
        with connection.cursor() as cursor:
            names = connection.introspection.table_names(cursor)
        names = [name for name in names if not name.startswith(FRAMEWORK_TABLE_PREFIXES)]
        return list(selectable_tables(names, excluded=self.excluded))

    def fetch_table(self, name: str) -> ResultSet:
        """Return up to `preview_limit` rows of a selectable table.

        Raises:
            QueryExecutionError: If the table is not selectable or the read fails.
        """

        if name not in self.list_tables():
            raise QueryExecutionError(f"Unknown source table: {name!r}.")
        quoted = connections[self.using].ops.quote_name(name)
        return self._run(f"SELECT * FROM {quoted} LIMIT %s", [self.preview_limit])

    def execute_query(self, sql: str) -> ResultSet:
        """Run user SQL and return its rows.

        Raises:
            QueryExecutionError: With the database's message when the SQL fails.
        """

        return self._run(sql)

    def save_chart(self, definition: ChartDefinition, parameters: ChartParameters) -> SaveOutcome:
        """Persist a chart and report the outcome instead of raising."""

        try:
            visualization = create_visualization(definition, parameters, using=self.using)
        except PersistenceError as exc:
            logger.exception("Error saving visualization %r", definition.title)
            return SaveOutcome(ok=False, message=exc.message)
        return SaveOutcome(ok=True, record_id=visualization.pk)

    def _run(self, sql: str, params: Sequence[object] | None = None) -> ResultSet:
        connection = connections[self.using]
        try:
            with transaction.atomic(using=self.using):
                with connection.cursor() as cursor:
                    cursor.execute(sql, params)
                    if cursor.description is None:
                        return []
                    columns = [column[0] for column in cursor.description]
                    rows = cursor.fetchall()
        except DatabaseError as exc:
            raise QueryExecutionError(str(exc), query=sql) from exc
        return [dict(zip(columns, (normalize_cell(value) for value in row))) for row in rows]
