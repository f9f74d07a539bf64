"""Pure analysis package for chartStudio.

This package contains deterministic, testable computations that turn query
results into chart datasets. It must not import Django or perform any
database I/O.
"""

from .chart_data import build_chart_data
from .columns import extract_columns

__all__ = ["build_chart_data", "extract_columns"]
