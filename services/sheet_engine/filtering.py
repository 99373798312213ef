"""Filtering and sorting of sheet rows.

Rows may hold raw values or `Cell` objects; both engines read through
`cell_value` so they work on plain 2D lists as well as sheet grids.

FilterEngine semantics:
- A row is kept only if it satisfies every condition (AND), checked in
  list order and stopping at the first failure.
- Hidden rows are reported by their index in the input, not the output.

SortEngine semantics:
- Lexicographic multi-key sort; later conditions only break ties.
- Stable: rows equal on every key keep their input order.
"""
from __future__ import annotations

import logging
import math
import unicodedata
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any, List, Optional, Sequence, Set

from models.schemas import (
    Cell,
    FilterCondition,
    FilterOperator,
    Sheet,
    SheetDimensions,
    SortCondition,
    SortDirection,
)

from .coercion import is_number, strict_equals, to_number, to_text

logger = logging.getLogger(__name__)


def cell_value(row: Sequence[Any], col: int) -> Any:
    """Raw value at `col`, or None when the row is too short."""
    if col < 0 or col >= len(row):
        return None
    item = row[col]
    return item.value if isinstance(item, Cell) else item


# =============================================================================
# FILTERING
# =============================================================================

@dataclass
class FilterResult:
    """Rows kept by a filter pass plus the input indices that were hidden."""
    retained: List[Any] = field(default_factory=list)
    hidden_indices: Set[int] = field(default_factory=set)


def matches_filter(value: Any, condition: FilterCondition) -> bool:
    """Evaluate one condition against a raw cell value."""
    op = condition.operator

    if op == FilterOperator.EQUALS:
        return strict_equals(value, condition.value1)

    if op == FilterOperator.CONTAINS:
        return to_text(condition.value1) in to_text(value)

    # Numeric operators: NaN on either side makes every comparison False.
    number = to_number(value)
    if op == FilterOperator.GREATER_THAN:
        return number > to_number(condition.value1)
    if op == FilterOperator.LESS_THAN:
        return number < to_number(condition.value1)
    if op == FilterOperator.BETWEEN:
        low = to_number(condition.value1)
        upper = condition.value2 if condition.value2 is not None else condition.value1
        high = to_number(upper)
        return low <= number <= high

    return True


def first_failing_filter(row: Sequence[Any], filters: Sequence[FilterCondition]) -> Optional[int]:
    """Index of the first condition the row fails, or None if it passes all."""
    for index, condition in enumerate(filters):
        if not matches_filter(cell_value(row, condition.column), condition):
            return index
    return None


def apply_filters(rows: Sequence[Sequence[Any]], filters: Sequence[FilterCondition]) -> FilterResult:
    """Split `rows` into retained rows and hidden input indices."""
    result = FilterResult()
    if not filters:
        result.retained = list(rows)
        return result

    failures = [0] * len(filters)
    for index, row in enumerate(rows):
        failed = first_failing_filter(row, filters)
        if failed is None:
            result.retained.append(row)
        else:
            failures[failed] += 1
            result.hidden_indices.add(index)

    logger.debug(
        f"[FILTER] kept {len(result.retained)}/{len(rows)} rows; "
        f"failures by condition: {failures}"
    )
    return result


# =============================================================================
# SORTING
# =============================================================================

def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _collation_key(text: str):
    # Base letters first, then accents, then lower-case before upper-case.
    return (
        _strip_accents(text).casefold(),
        unicodedata.normalize("NFKD", text).casefold(),
        text.swapcase(),
    )


def compare_values(left: Any, right: Any) -> int:
    """Numeric comparison for two numbers, collated text comparison otherwise."""
    if is_number(left) and is_number(right):
        diff = left - right
        if math.isnan(diff):
            return 0
        return (diff > 0) - (diff < 0)

    left_key = _collation_key(to_text(left))
    right_key = _collation_key(to_text(right))
    return (left_key > right_key) - (left_key < right_key)


def compare_rows(
    row_a: Sequence[Any],
    row_b: Sequence[Any],
    conditions: Sequence[SortCondition],
) -> int:
    for condition in conditions:
        comparison = compare_values(
            cell_value(row_a, condition.column),
            cell_value(row_b, condition.column),
        )
        if comparison != 0:
            return -comparison if condition.direction == SortDirection.DESC else comparison
    return 0


def apply_sort(rows: Sequence[Sequence[Any]], conditions: Sequence[SortCondition]) -> List[Any]:
    """Return a new, stably sorted list of rows. The input is not mutated."""
    if not conditions:
        return list(rows)
    return sorted(rows, key=cmp_to_key(lambda a, b: compare_rows(a, b, conditions)))


# =============================================================================
# FILTER STATE (active conditions for a sheet view)
# =============================================================================

class FilterState:
    """Active filter and sort conditions for one editing session.

    Keeps the snapshot taken on the first apply so the unfiltered sheet can
    be restored with `reset_to_original`.
    """

    def __init__(self):
        self.filters: List[FilterCondition] = []
        self.sort_conditions: List[SortCondition] = []
        self.hidden_rows: Set[int] = set()
        self.original_data: Optional[Sheet] = None

    def add_filter(self, condition: FilterCondition) -> None:
        self.filters.append(condition)

    def remove_filter(self, column: int) -> None:
        self.filters = [f for f in self.filters if f.column != column]

    def add_sort(self, condition: SortCondition) -> None:
        """Add a sort key. An existing key on the same column is replaced and
        the new key goes to the end (lowest priority)."""
        self.sort_conditions = [s for s in self.sort_conditions if s.column != condition.column]
        self.sort_conditions.append(condition)

    def remove_sort(self, column: int) -> None:
        self.sort_conditions = [s for s in self.sort_conditions if s.column != column]

    def clear_all(self) -> None:
        self.filters = []
        self.sort_conditions = []
        self.hidden_rows.clear()

    def apply(self, sheet: Sheet) -> Sheet:
        """Return a filtered then sorted copy of `sheet`.

        `hidden_rows` is replaced with the indices hidden by this pass.
        """
        if self.original_data is None:
            self.original_data = sheet.clone()

        view = sheet.clone()
        result = apply_filters(view.grid, self.filters)
        self.hidden_rows = set(result.hidden_indices)

        view.grid = apply_sort(result.retained, self.sort_conditions)
        view.dimensions = SheetDimensions(
            rows=len(view.grid),
            cols=max((len(row) for row in view.grid), default=0),
        )
        return view

    def reset_to_original(self) -> Optional[Sheet]:
        return self.original_data.clone() if self.original_data is not None else None
