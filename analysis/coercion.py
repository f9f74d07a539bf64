"""Best-effort numeric coercion for query result cells.

Query results arrive with loosely typed cells: numbers, numeric strings,
free text, or NULL. Charting needs a number for the y axis, so this module
provides a total conversion that:
- never raises,
- reads the leading numeric prefix of a string (`"12.5kg"` -> 12.5),
- falls back to 0.0 for anything it cannot read.

The zero default is lossy on purpose; callers rely on it rather than on an
error path.
"""

from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Final

_NUMERIC_PREFIX: Final[re.Pattern[str]] = re.compile(
    r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?",
    re.ASCII,
)

NULL_GROUP_KEY: Final[str] = "null"


def coerce_number(value: object) -> float:
    """Convert a result cell to a float, defaulting to 0.0.

    Args:
        value: Raw cell value (str, int, float, Decimal, None, ...).

    Returns:
        The parsed number, or 0.0 when the value has no numeric reading.

    Notes:
        Booleans are not treated as numbers. Non-finite results (NaN,
        overflowing exponents) also collapse to 0.0 so chart payloads stay
        JSON-serializable.
    """

    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, Decimal) and not value.is_finite():
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        try:
            return _finite_or_zero(float(value))
        except OverflowError:
            return 0.0
    match = _NUMERIC_PREFIX.match(str(value))
    if match is None:
        return 0.0
    return _finite_or_zero(float(match.group(0)))


def group_key(value: object) -> str:
    """Return the canonical string form used to compare grouping values.

    Args:
        value: Raw cell value from the grouping column.

    Returns:
        A string key. Integral floats render without a fractional part so
        `1`, `1.0`, and `"1"` share one group; None maps to `"null"`.
    """

    if value is None:
        return NULL_GROUP_KEY
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, Decimal) and value.is_finite() and value == value.to_integral_value():
        return str(int(value))
    return str(value)


def _finite_or_zero(number: float) -> float:
    """Map NaN and infinities to 0.0."""

    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number
