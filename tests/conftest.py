"""Pytest fixtures shared across unit and Django integration tests."""

from __future__ import annotations

from collections.abc import Sequence

import pytest
from django.contrib.auth import get_user_model

from analysis.dto import ChartDefinition, ChartParameters, ResultSet, SaveOutcome
from core.charting.errors import QueryExecutionError


class FakeChartBackend:
    """In-memory ChartBackend recording every collaborator call."""

    def __init__(
        self,
        *,
        tables: dict[str, ResultSet] | None = None,
        queries: dict[str, ResultSet] | None = None,
        save_outcome: SaveOutcome | None = None,
    ) -> None:
        self.tables = dict(tables or {})
        self.queries = dict(queries or {})
        self.save_outcome = save_outcome or SaveOutcome(ok=True, record_id=1)
        self.saved: list[tuple[ChartDefinition, ChartParameters]] = []
        self.fetched: list[str] = []
        self.executed: list[str] = []

    def list_tables(self) -> list[str]:
        return list(self.tables)

    def fetch_table(self, name: str) -> ResultSet:
        self.fetched.append(name)
        if name not in self.tables:
            raise QueryExecutionError(f"Unknown source table: {name!r}.")
        return [dict(row) for row in self.tables[name]]

    def execute_query(self, sql: str) -> ResultSet:
        self.executed.append(sql)
        if sql not in self.queries:
            raise QueryExecutionError(f"near {sql!r}: syntax error", query=sql)
        return [dict(row) for row in self.queries[sql]]

    def save_chart(self, definition: ChartDefinition, parameters: ChartParameters) -> SaveOutcome:
        self.saved.append((definition, parameters))
        return self.save_outcome


class FakeClock:
    """Manually advanced clock for banner timing."""

    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


SALES_SQL = "SELECT region, sales FROM sales"
SALES_ROWS: ResultSet = [
    {"region": "A", "sales": "10"},
    {"region": "A", "sales": "20"},
    {"region": "B", "sales": "5"},
]


@pytest.fixture
def backend() -> FakeChartBackend:
    """Return a fake backend that knows the sales query and two tables."""

    return FakeChartBackend(
        tables={
            "sales": [dict(row) for row in SALES_ROWS],
            "visualisasi": [],
            "customers": [{"id": 1, "name": "Ana"}],
        },
        queries={SALES_SQL: [dict(row) for row in SALES_ROWS], "SELECT 1 WHERE 0": []},
    )


@pytest.fixture
def clock() -> FakeClock:
    """Return a manually advanced clock."""

    return FakeClock()


@pytest.fixture
def user(db):
    """Return a user that can log in to the builder."""

    user_model = get_user_model()
    return user_model.objects.create_user(username="alice", password="password")


@pytest.fixture
def auth_client(client, user):
    """Return a Django test client authenticated as the default test user."""

    client.force_login(user)
    return client


def pytest_collection_modifyitems(items: Sequence[pytest.Item]) -> None:
    """Enforce that every test has exactly one speed marker.

    - `unit`: pure, fast tests with no database access.
    - `integration`: tests touching Django, database, views, commands, or IO.
    """

    invalid: list[str] = []
    for item in items:
        has_unit = item.get_closest_marker("unit") is not None
        has_integration = item.get_closest_marker("integration") is not None
        if has_unit == has_integration:
            markers = []
            if has_unit:
                markers.append("unit")
            if has_integration:
                markers.append("integration")
            invalid.append(f"{item.nodeid} (markers={markers or 'none'})")

    if invalid:
        joined = "\n".join(f"- {nodeid}" for nodeid in invalid)
        raise pytest.UsageError(
            "Each test must have exactly one speed marker: `@pytest.mark.unit` or "
            "`@pytest.mark.integration`.\n"
            f"Offending tests:\n{joined}"
        )
