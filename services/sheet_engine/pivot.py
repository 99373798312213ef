"""Pivot table generation.

A pivot is regenerated wholesale from (config, sheet) in four stages:

1. Extract  - read the configured range as raw values.
2. Group    - bucket rows by "<rowKey>|<colKey>", where each key joins the
              configured columns' values with "|".
3. Aggregate - reduce each value column per group into
              {rowKey: {colKey: {valueColumn: number}}}.
4. Project  - lay the aggregates out as a header row, one row per row key
              and a trailing "Total" row.

Known limitations:
- "|" inside a key value is not escaped, so distinct key tuples can collide
  into one group. The first (rowKey, colKey) pair seen owns the group.
- Only the first value column is projected into the grid.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from models.schemas import Aggregation, PivotConfig, PivotTable, Sheet

from .coercion import to_number_or_zero, to_text
from .extraction import extract_range

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "|"
TOTAL_LABEL = "Total"

# rowKey -> colKey -> value column index -> aggregated number
AggregatedData = Dict[str, Dict[str, Dict[int, float]]]


@dataclass
class PivotGroup:
    """Source rows sharing one composite key."""
    row_key: str
    col_key: str
    rows: List[List[Any]] = field(default_factory=list)


def make_key(row: Sequence[Any], columns: Sequence[int]) -> str:
    """Join the values of `columns` with "|". Missing values join as ""."""
    return KEY_SEPARATOR.join(
        to_text(row[col]) if 0 <= col < len(row) else ""
        for col in columns
    )


def group_rows(data: Sequence[List[Any]], config: PivotConfig) -> Dict[str, PivotGroup]:
    grouped: Dict[str, PivotGroup] = {}

    for row in data:
        row_key = make_key(row, config.rows)
        col_key = make_key(row, config.columns)
        composite_key = f"{row_key}{KEY_SEPARATOR}{col_key}"

        group = grouped.get(composite_key)
        if group is None:
            group = grouped[composite_key] = PivotGroup(row_key=row_key, col_key=col_key)
        group.rows.append(row)

    return grouped


def calculate_aggregation(values: Sequence[float], aggregation: Aggregation) -> float:
    """Reduce coerced values. Empty input yields 0 for every aggregation."""
    if not values:
        return 0.0

    if aggregation == Aggregation.SUM:
        return float(sum(values))
    if aggregation == Aggregation.AVERAGE:
        return sum(values) / len(values)
    if aggregation == Aggregation.COUNT:
        return float(len(values))
    if aggregation == Aggregation.MAX:
        return float(max(values))
    if aggregation == Aggregation.MIN:
        return float(min(values))
    return 0.0


def aggregate_groups(groups: Dict[str, PivotGroup], config: PivotConfig) -> AggregatedData:
    result: AggregatedData = {}

    for group in groups.values():
        by_column = result.setdefault(group.row_key, {})
        cells = by_column.setdefault(group.col_key, {})

        for value_col in config.values:
            values = [
                to_number_or_zero(row[value_col]) if 0 <= value_col < len(row) else 0.0
                for row in group.rows
            ]
            cells[value_col] = calculate_aggregation(values, config.aggregation)

    return result


def format_value(value: float, aggregation: Aggregation) -> str:
    if aggregation == Aggregation.AVERAGE:
        return f"{value:.2f}"
    if aggregation == Aggregation.COUNT:
        return str(int(value))
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"


def unique_column_headers(aggregated: AggregatedData) -> List[str]:
    """Column keys in first-seen order, scanning row keys then their columns."""
    headers: Dict[str, None] = {}
    for by_column in aggregated.values():
        for col_key in by_column:
            headers.setdefault(col_key, None)
    return list(headers)


def project(aggregated: AggregatedData, config: PivotConfig) -> PivotTable:
    row_headers = list(aggregated)
    column_headers = unique_column_headers(aggregated)
    value_index: Optional[int] = config.values[0] if config.values else None

    grid: List[List[str]] = [["", *column_headers]]
    values: List[List[float]] = []

    for row_header in row_headers:
        by_column = aggregated[row_header]
        row_values = []
        for column_header in column_headers:
            cell = by_column.get(column_header, {})
            row_values.append(cell.get(value_index, 0.0) if value_index is not None else 0.0)
        values.append(row_values)
        grid.append([row_header, *(format_value(v, config.aggregation) for v in row_values)])

    totals: List[float] = []
    if row_headers:
        totals = [
            sum(row[i] for row in values)
            for i in range(len(column_headers))
        ]
        grid.append([TOTAL_LABEL, *(format_value(v, config.aggregation) for v in totals)])

    return PivotTable(
        config=config,
        grid=grid,
        row_headers=row_headers,
        column_headers=column_headers,
        values=values,
        totals=totals,
    )


def generate_pivot_table(config: PivotConfig, sheet: Sheet) -> PivotTable:
    """Run all four stages against the current sheet contents."""
    data = extract_range(sheet, config.data_range)
    groups = group_rows(data, config)
    aggregated = aggregate_groups(groups, config)
    table = project(aggregated, config)

    logger.debug(
        f"[PIVOT] {config.id}: {len(data)} source rows, {len(groups)} groups, "
        f"{len(table.row_headers)}x{len(table.column_headers)} table"
    )
    return table


class PivotState:
    """Pivot tables created in one editing session."""

    def __init__(self):
        self.pivot_tables: List[PivotTable] = []
        self.active_pivot: Optional[PivotTable] = None

    def get(self, pivot_id: str) -> Optional[PivotTable]:
        for table in self.pivot_tables:
            if table.config.id == pivot_id:
                return table
        return None

    def create(self, config: PivotConfig, sheet: Sheet) -> PivotTable:
        table = generate_pivot_table(config, sheet)
        self.pivot_tables.append(table)
        self.active_pivot = table
        return table

    def update(self, pivot_id: str, config: PivotConfig, sheet: Sheet) -> Optional[PivotTable]:
        """Regenerate the pivot with `pivot_id` from a new config."""
        for index, table in enumerate(self.pivot_tables):
            if table.config.id == pivot_id:
                regenerated = generate_pivot_table(config, sheet)
                self.pivot_tables[index] = regenerated
                if self.active_pivot is not None and self.active_pivot.config.id == pivot_id:
                    self.active_pivot = regenerated
                return regenerated
        return None

    def delete(self, pivot_id: str) -> None:
        self.pivot_tables = [p for p in self.pivot_tables if p.config.id != pivot_id]
        if self.active_pivot is not None and self.active_pivot.config.id == pivot_id:
            self.active_pivot = None

    def clear(self) -> None:
        self.pivot_tables = []
        self.active_pivot = None
