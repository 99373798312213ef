"""Sheet Engine - the data transformations behind the spreadsheet editor.

This module handles:
1. A1-style address parsing and formatting
2. Range extraction from sparse sheet grids
3. Filtering and multi-key sorting of rows
4. Pivot table grouping, aggregation and projection
5. Bounded undo/redo history of sheet snapshots
6. Cell validation rules and chart data shaping
"""

from .addressing import (
    column_index_to_name,
    column_name_to_index,
    format_address,
    format_range,
    parse_address,
    parse_range,
    range_contains,
)
from .extraction import extract_range
from .filtering import (
    FilterResult,
    FilterState,
    apply_filters,
    apply_sort,
    matches_filter,
)
from .pivot import PivotState, generate_pivot_table
from .history import DEFAULT_MAX_SIZE, HistoryStack
from .validation import validate_cell
from .charts import chart_data

__all__ = [
    # Addresses
    "column_index_to_name",
    "column_name_to_index",
    "format_address",
    "format_range",
    "parse_address",
    "parse_range",
    "range_contains",
    "extract_range",
    # Filter / sort
    "FilterResult",
    "FilterState",
    "apply_filters",
    "apply_sort",
    "matches_filter",
    # Pivot
    "PivotState",
    "generate_pivot_table",
    # History
    "DEFAULT_MAX_SIZE",
    "HistoryStack",
    # Validation / charts
    "validate_cell",
    "chart_data",
]
