"""Column discovery for query result sets."""

from __future__ import annotations

from collections.abc import Sequence

from .dto import ResultRow


def extract_columns(rows: Sequence[ResultRow]) -> tuple[str, ...]:
    """Return the ordered column names of a result set.

    The first row defines the schema for the whole set; later rows are not
    inspected.

    Args:
        rows: Result rows as returned by a query or table preview.

    Returns:
        Column names of row 0 in order, or an empty tuple for an empty set.
    """

    if not rows:
        return ()
    return tuple(rows[0].keys())
