"""Source table catalog with per-table selection and preview rows.

The catalog is immutable: toggling a source returns a new catalog instead of
flipping a flag in place, so a snapshot handed to the view layer can never
change underneath it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Final

from analysis.columns import extract_columns
from analysis.dto import ResultRow, ResultSet

from .errors import ChartWorkflowError

logger = logging.getLogger(__name__)

EXCLUDED_TABLES: Final[frozenset[str]] = frozenset(
    {"visualisasi", "parameter_visualisasi", "analisis", "analisis_visualisasi"}
)


def selectable_tables(names: Iterable[str], *, excluded: Iterable[str] = ()) -> tuple[str, ...]:
    """Filter a table listing down to user-selectable sources.

    Args:
        names: Table names reported by the data catalog.
        excluded: Extra names to hide in addition to `EXCLUDED_TABLES`.

    Returns:
        Names in their original order, without bookkeeping tables.
    """

    hidden = EXCLUDED_TABLES | frozenset(excluded)
    return tuple(name for name in names if name not in hidden)


def frozen_map(values: Mapping | None = None) -> Mapping:
    return MappingProxyType(dict(values or {}))


@dataclass(frozen=True)
class SourceCatalog:
    """Selectable source tables and the previews of the checked ones.

    Attributes:
        checked: Read-only map of table name to selection state.
        previews: Read-only map of checked table name to preview rows.
    """

    checked: Mapping[str, bool] = field(default_factory=frozen_map)
    previews: Mapping[str, tuple[ResultRow, ...]] = field(default_factory=frozen_map)

    @classmethod
    def from_tables(cls, names: Iterable[str], *, excluded: Iterable[str] = ()) -> SourceCatalog:
        """Build an all-unchecked catalog from a table listing."""

        return cls(checked=frozen_map({name: False for name in selectable_tables(names, excluded=excluded)}))

    @property
    def names(self) -> tuple[str, ...]:
        """Return table names in listing order."""

        return tuple(self.checked.keys())

    def is_checked(self, name: str) -> bool:
        """Return True when the table is currently selected."""

        return bool(self.checked.get(name, False))

    def preview_columns(self, name: str) -> tuple[str, ...]:
        """Return the column names of a checked table's preview."""

        return extract_columns(self.previews.get(name, ()))

    def toggled(self, name: str, *, fetch: Callable[[str], ResultSet]) -> SourceCatalog:
        """Return a catalog with `name` flipped.

        Checking a table fetches its preview rows; unchecking drops them.

        Args:
            name: Table to toggle.
            fetch: Collaborator returning preview rows for a table.

        Returns:
            The new catalog, or this catalog unchanged when the name is unknown
            or the preview fetch fails.
        """

        if name not in self.checked:
            logger.warning("Ignoring toggle for unknown source table %r", name)
            return self

        checked = dict(self.checked)
        previews = dict(self.previews)
        if self.is_checked(name):
            checked[name] = False
            previews.pop(name, None)
        else:
            try:
                rows = fetch(name)
            except ChartWorkflowError:
                logger.exception("Error fetching preview rows for source table %r", name)
                return self
            checked[name] = True
            previews[name] = tuple(dict(row) for row in rows)
        return SourceCatalog(checked=frozen_map(checked), previews=frozen_map(previews))
