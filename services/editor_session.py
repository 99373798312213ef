"""Editor Session - stateful orchestration for one open workbook.

This service ties the sheet engine together the way the editor UI uses it:
1. Cell edits and row/column insertion on the active worksheet
2. Undo/redo checkpoints taken before every user mutation
3. Filter and sort views over the active worksheet
4. Pivot tables, validation rules and charts bound to the workbook

Flow:
    HTTP → Route → EditorSession → sheet_engine (pure transformations)
                                 → HistoryStack (snapshots)
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from models.schemas import (
    Cell,
    ChartConfig,
    ChartData,
    FilterCondition,
    PivotConfig,
    PivotTable,
    Sheet,
    SortCondition,
    ValidationRule,
    Workbook,
)
from services.performance import PerformanceMonitor
from services.sheet_engine import (
    DEFAULT_MAX_SIZE,
    FilterState,
    HistoryStack,
    PivotState,
    chart_data,
    validate_cell,
)

logger = logging.getLogger(__name__)


class EditorSession:
    """All editor state for one workbook.

    Single responsibility: keep workbook, history and derived views in step.
    Does NOT handle HTTP concerns or DB persistence.
    """

    def __init__(
        self,
        workbook: Workbook | None = None,
        monitor: PerformanceMonitor | None = None,
        history_max_size: int = DEFAULT_MAX_SIZE,
    ):
        self.workbook = workbook
        self.monitor = monitor or PerformanceMonitor()
        self.history = HistoryStack(max_size=history_max_size)
        self.filters = FilterState()
        self.pivots = PivotState()
        self.validation_rules: List[ValidationRule] = []
        self.charts: List[ChartConfig] = []

    # -------------------------------------------------------------------------
    # Workbook lifecycle
    # -------------------------------------------------------------------------

    @property
    def active_sheet(self) -> Optional[Sheet]:
        return self.workbook.active_sheet if self.workbook else None

    @property
    def has_file(self) -> bool:
        return self.workbook is not None

    def new_file(self, name: str = "New File.xlsx") -> Workbook:
        self.close_file()
        self.workbook = Workbook.new(name)
        return self.workbook

    def close_file(self) -> None:
        self.workbook = None
        self.history.clear()
        self.filters = FilterState()
        self.pivots.clear()
        self.validation_rules = []
        self.charts = []

    def switch_worksheet(self, index: int) -> bool:
        """Activate worksheet `index`. Out-of-range indices are ignored."""
        if self.workbook and 0 <= index < len(self.workbook.worksheets):
            self.workbook.active_sheet_index = index
            return True
        return False

    def _replace_active_sheet(self, sheet: Sheet) -> None:
        self.workbook.worksheets[self.workbook.active_sheet_index] = sheet

    # -------------------------------------------------------------------------
    # Mutations (each one checkpoints history first)
    # -------------------------------------------------------------------------

    def update_cell(self, row: int, col: int, value: Any) -> Optional[Cell]:
        """Write a value into the active sheet. A formula on the cell is cleared."""
        sheet = self.active_sheet
        if sheet is None:
            return None

        self.history.save_state(sheet)
        cell = sheet.set_cell(row, col, value)
        cell.formula = None
        return cell

    def insert_row(self, index: int) -> bool:
        sheet = self.active_sheet
        if sheet is None:
            return False
        self.history.save_state(sheet)
        sheet.insert_row(index)
        return True

    def insert_column(self, index: int) -> bool:
        sheet = self.active_sheet
        if sheet is None:
            return False
        self.history.save_state(sheet)
        sheet.insert_column(index)
        return True

    def undo(self) -> bool:
        """Restore the previous snapshot. False when there is nothing to undo."""
        sheet = self.active_sheet
        if sheet is None:
            return False
        snapshot = self.history.undo(sheet)
        if snapshot is None:
            return False
        self._replace_active_sheet(snapshot)
        return True

    def redo(self) -> bool:
        sheet = self.active_sheet
        if sheet is None:
            return False
        snapshot = self.history.redo(sheet)
        if snapshot is None:
            return False
        self._replace_active_sheet(snapshot)
        return True

    # -------------------------------------------------------------------------
    # Filter / sort
    # -------------------------------------------------------------------------

    def add_filter(self, condition: FilterCondition) -> None:
        self.filters.add_filter(condition)

    def remove_filter(self, column: int) -> None:
        self.filters.remove_filter(column)

    def add_sort(self, condition: SortCondition) -> None:
        self.filters.add_sort(condition)

    def remove_sort(self, column: int) -> None:
        self.filters.remove_sort(column)

    def apply_filters_and_sort(self, commit: bool = False) -> Tuple[Optional[Sheet], List[int]]:
        """Compute the filtered, sorted view of the active sheet.

        With `commit`, the view replaces the active sheet (undoable).
        Returns the view and the hidden original row indices.
        """
        sheet = self.active_sheet
        if sheet is None:
            return None, []

        with self.monitor.track("filter-sort"):
            view = self.filters.apply(sheet)
        hidden = sorted(self.filters.hidden_rows)

        if commit:
            self.history.save_state(sheet)
            self._replace_active_sheet(view.clone())
            logger.info(f"[FILTER] committed view: {len(view.grid)} rows, {len(hidden)} hidden")
        return view, hidden

    def clear_filters(self) -> Optional[Sheet]:
        """Drop all conditions and restore the sheet captured before the first apply."""
        original = self.filters.reset_to_original()
        self.filters = FilterState()
        if original is not None and self.active_sheet is not None and original != self.active_sheet:
            self.history.save_state(self.active_sheet)
            self._replace_active_sheet(original)
        return self.active_sheet

    # -------------------------------------------------------------------------
    # Pivot tables
    # -------------------------------------------------------------------------

    def create_pivot(self, config: PivotConfig) -> Optional[PivotTable]:
        sheet = self.active_sheet
        if sheet is None:
            return None
        with self.monitor.track(f"pivot:{config.id}"):
            return self.pivots.create(config, sheet.clone())

    def update_pivot(self, pivot_id: str, config: PivotConfig) -> Optional[PivotTable]:
        sheet = self.active_sheet
        if sheet is None:
            return None
        with self.monitor.track(f"pivot:{pivot_id}"):
            return self.pivots.update(pivot_id, config, sheet.clone())

    def delete_pivot(self, pivot_id: str) -> None:
        self.pivots.delete(pivot_id)

    def add_pivot_sheet(self, pivot_id: str) -> Optional[Sheet]:
        """Append the pivot's grid to the workbook as a new worksheet."""
        table = self.pivots.get(pivot_id)
        if table is None or self.workbook is None:
            return None
        sheet = Sheet.from_values(table.config.name or f"Pivot {pivot_id}", table.grid)
        self.workbook.worksheets.append(sheet)
        return sheet

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def add_rule(self, rule: ValidationRule) -> None:
        self.validation_rules.append(rule)

    def remove_rule(self, rule_id: str) -> None:
        self.validation_rules = [r for r in self.validation_rules if r.id != rule_id]

    def validate(self, row: int, col: int) -> Optional[str]:
        """Error message for the active sheet's cell at (row, col), or None."""
        sheet = self.active_sheet
        if sheet is None:
            return None
        cell = sheet.get_cell(row, col) or Cell()
        return validate_cell(self.validation_rules, cell, row, col)

    # -------------------------------------------------------------------------
    # Charts
    # -------------------------------------------------------------------------

    def get_chart(self, chart_id: str) -> Optional[ChartConfig]:
        for chart in self.charts:
            if chart.id == chart_id:
                return chart
        return None

    def add_chart(self, config: ChartConfig) -> None:
        self.charts.append(config)

    def update_chart(self, chart_id: str, updates: Dict[str, Any]) -> Optional[ChartConfig]:
        chart = self.get_chart(chart_id)
        if chart is None:
            return None
        updated = ChartConfig.model_validate({**chart.model_dump(), **updates, "id": chart_id})
        self.charts = [updated if c.id == chart_id else c for c in self.charts]
        return updated

    def delete_chart(self, chart_id: str) -> None:
        self.charts = [c for c in self.charts if c.id != chart_id]

    def get_chart_data(self, chart_id: str) -> Optional[ChartData]:
        chart = self.get_chart(chart_id)
        sheet = self.active_sheet
        if chart is None or sheet is None:
            return None
        with self.monitor.track(f"chart:{chart_id}"):
            return chart_data(sheet, chart)
