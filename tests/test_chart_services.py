"""Integration tests for the Django-backed chart collaborators."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError
from django.db import DatabaseError, connection

from analysis.dto import ChartDefinition, ChartParameters
from core.charting.errors import PersistenceError, QueryExecutionError
from core.models import Visualization, VisualizationParameter
from core.services import DjangoChartBackend, create_visualization, normalize_cell

pytestmark = pytest.mark.integration


def _create_sales_table(rows: int = 3) -> None:
    with connection.cursor() as cursor:
        cursor.execute("CREATE TABLE sales (region TEXT, amount REAL)")
        for index in range(rows):
            cursor.execute("INSERT INTO sales (region, amount) VALUES (%s, %s)", [f"R{index % 2}", index * 2.5])


def _definition(title: str = "Sales") -> ChartDefinition:
    return ChartDefinition(
        title=title,
        description="",
        chart_type="bar",
        sql_query="SELECT region, amount FROM sales",
        is_parameterized=True,
        chart_data='[{"region": "R0", "amount": 1.0}]',
    )


@pytest.mark.django_db
def test_list_tables_hides_framework_and_bookkeeping_tables() -> None:
    """Only user data tables are listed as sources."""

    _create_sales_table()

    tables = DjangoChartBackend().list_tables()

    assert "sales" in tables
    assert "visualisasi" not in tables
    assert "parameter_visualisasi" not in tables
    assert not any(name.startswith(("django_", "auth_", "sqlite_")) for name in tables)


@pytest.mark.django_db
def test_fetch_table_limits_preview_rows() -> None:
    """Previews return at most the configured number of rows."""

    _create_sales_table(rows=15)

    rows = DjangoChartBackend().fetch_table("sales")

    assert len(rows) == 10
    assert list(rows[0].keys()) == ["region", "amount"]
    assert len(DjangoChartBackend(preview_limit=4).fetch_table("sales")) == 4


@pytest.mark.django_db
def test_fetch_table_rejects_unlisted_tables() -> None:
    """Hidden or unknown tables cannot be previewed."""

    backend = DjangoChartBackend()

    with pytest.raises(QueryExecutionError):
        backend.fetch_table("visualisasi")
    with pytest.raises(QueryExecutionError):
        backend.fetch_table("missing; DROP TABLE sales")


@pytest.mark.django_db
def test_execute_query_returns_rows_as_dicts() -> None:
    """User SQL results come back keyed by column name."""

    _create_sales_table()

    rows = DjangoChartBackend().execute_query("SELECT region, amount FROM sales ORDER BY amount")

    assert rows == [
        {"region": "R0", "amount": 0.0},
        {"region": "R1", "amount": 2.5},
        {"region": "R0", "amount": 5.0},
    ]


@pytest.mark.django_db
def test_execute_query_reports_database_errors() -> None:
    """Broken SQL raises QueryExecutionError with the database message."""

    with pytest.raises(QueryExecutionError) as excinfo:
        DjangoChartBackend().execute_query("SELEC 1")

    assert excinfo.value.code == "QUERY_ERROR"
    assert excinfo.value.message
    assert excinfo.value.details["query"] == "SELEC 1"


@pytest.mark.django_db
def test_create_visualization_stores_both_records() -> None:
    """A definition and its parameters are written together."""

    visualization = create_visualization(_definition(), ChartParameters("region", "amount", "region"))

    stored = Visualization.objects.select_related("parameter").get(pk=visualization.pk)
    assert stored.title == "Sales"
    assert stored.chart_type == "bar"
    assert stored.is_parameterized is True
    assert stored.parameter.param_x == "region"
    assert stored.parameter.group_by == "region"


@pytest.mark.django_db
def test_create_visualization_is_atomic(monkeypatch) -> None:
    """A failed parameter insert leaves no definition behind."""

    def _fail(self, *args, **kwargs):
        raise DatabaseError("parameter insert failed")

    monkeypatch.setattr(VisualizationParameter, "save", _fail)

    with pytest.raises(PersistenceError):
        create_visualization(_definition(), ChartParameters("region", "amount"))

    assert Visualization.objects.count() == 0


@pytest.mark.django_db
def test_save_chart_reports_outcomes(monkeypatch) -> None:
    """The backend turns persistence errors into a failed outcome."""

    backend = DjangoChartBackend()

    ok = backend.save_chart(_definition(), ChartParameters("region", "amount"))
    assert ok.ok
    assert ok.record_id == Visualization.objects.get().pk

    def _fail(self, *args, **kwargs):
        raise DatabaseError("disk full")

    monkeypatch.setattr(VisualizationParameter, "save", _fail)
    failed = backend.save_chart(_definition("Other"), ChartParameters("region", "amount"))

    assert not failed.ok
    assert "disk full" in failed.message
    assert Visualization.objects.count() == 1


@pytest.mark.django_db
def test_saved_visualizations_are_write_once() -> None:
    """Updating a stored visualization is refused."""

    visualization = create_visualization(_definition(), ChartParameters("region", "amount"))
    visualization.title = "Renamed"

    with pytest.raises(ValidationError):
        visualization.save()


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, None),
        (3, 3),
        ("x", "x"),
        (Decimal("1.50"), 1.5),
        (date(2025, 1, 2), "2025-01-02"),
        (b"abc", "abc"),
    ],
)
def test_normalize_cell(value: object, expected: object) -> None:
    """Database values become JSON-friendly cells."""

    assert normalize_cell(value) == expected
