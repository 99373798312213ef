"""Tests for EditorSession: edits, history checkpoints and derived views."""

import pytest

from models.schemas import (
    ChartConfig,
    FilterCondition,
    PivotConfig,
    Sheet,
    SortCondition,
    ValidationRule,
    Workbook,
)
from services.editor_session import EditorSession
from services.performance import PerformanceMonitor


@pytest.fixture
def session(sales_sheet) -> EditorSession:
    workbook = Workbook(name="sales.xlsx", worksheets=[sales_sheet, Sheet(name="Notes")])
    return EditorSession(workbook=workbook, monitor=PerformanceMonitor())


class TestWorkbookLifecycle:
    """Test opening, switching and closing workbooks."""

    def test_new_file(self):
        """A new file has one empty sheet."""
        session = EditorSession()
        assert not session.has_file
        assert session.active_sheet is None

        session.new_file()
        assert session.has_file
        assert session.workbook.name == "New File.xlsx"
        assert [s.name for s in session.workbook.worksheets] == ["Sheet1"]

    def test_switch_worksheet(self, session):
        """Switching ignores out-of-range indices."""
        assert session.switch_worksheet(1)
        assert session.active_sheet.name == "Notes"
        assert not session.switch_worksheet(5)
        assert session.workbook.active_sheet_index == 1

    def test_workbook_clone_is_independent(self, session):
        """A cloned workbook does not share cells with the open one."""
        copy = session.workbook.clone()
        session.update_cell(1, 3, 0)
        assert copy.worksheets[0].get_cell(1, 3).value == 100
        assert copy.name == "sales.xlsx"

    def test_close_file_resets_state(self, session):
        """Closing drops workbook, history and filters."""
        session.update_cell(0, 0, "x")
        session.add_filter(FilterCondition(column=0, operator="equals", value1="East"))
        session.close_file()
        assert session.workbook is None
        assert not session.history.can_undo()
        assert session.filters.filters == []

    def test_operations_without_file_are_noops(self):
        """Operations without an open file do nothing."""
        session = EditorSession()
        assert session.update_cell(0, 0, 1) is None
        assert not session.undo()
        assert session.apply_filters_and_sort() == (None, [])
        assert session.validate(0, 0) is None


class TestEditing:
    """Test cell edits and their history checkpoints."""

    def test_update_cell_grows_dimensions(self, session):
        """Editing past the grid pads it and grows dimensions."""
        session.switch_worksheet(1)
        session.update_cell(4, 2, "hello")
        sheet = session.active_sheet
        assert sheet.dimensions.rows == 5
        assert sheet.dimensions.cols == 3
        assert sheet.get_cell(4, 2).value == "hello"
        assert sheet.get_cell(4, 0).value == ""

    def test_update_cell_clears_formula(self, session):
        """Editing a cell clears its formula."""
        session.active_sheet.grid[1][3].formula = "=SUM(A1:A2)"
        cell = session.update_cell(1, 3, 7)
        assert cell.formula is None

    def test_insert_row_and_column(self, session):
        """Row and column insertion shift cells."""
        rows, cols = session.active_sheet.dimensions.rows, session.active_sheet.dimensions.cols
        session.insert_row(1)
        session.insert_column(0)
        sheet = session.active_sheet
        assert sheet.dimensions.rows == rows + 1
        assert sheet.dimensions.cols == cols + 1
        assert sheet.grid[1] == []
        assert sheet.get_cell(0, 1).value == "Region"

    def test_undo_redo_edits(self, session):
        """Undo and redo walk through successive edits."""
        session.update_cell(1, 3, 999)
        session.update_cell(1, 3, 1000)

        assert session.undo()
        assert session.active_sheet.get_cell(1, 3).value == 999
        assert session.undo()
        assert session.active_sheet.get_cell(1, 3).value == 100
        assert not session.undo()

        assert session.redo()
        assert session.active_sheet.get_cell(1, 3).value == 999
        assert session.redo()
        assert session.active_sheet.get_cell(1, 3).value == 1000
        assert not session.redo()

    def test_new_edit_invalidates_redo(self, session):
        """A new edit after undo clears redo."""
        session.update_cell(0, 0, "a")
        session.undo()
        session.update_cell(0, 0, "b")
        assert not session.redo()

    def test_history_bound(self):
        """The session honors its history bound."""
        session = EditorSession(workbook=Workbook.new(), history_max_size=3)
        for i in range(10):
            session.update_cell(0, 0, i)
        assert len(session.history.undo_stack) == 3


class TestViews:
    """Test filter/sort previews and committed views."""

    def test_preview_does_not_mutate(self, session):
        """Previewing a view leaves the sheet and history alone."""
        session.add_filter(FilterCondition(column=3, operator="greaterThan", value1=60))
        before = session.active_sheet.clone()

        view, hidden = session.apply_filters_and_sort()

        assert [row[3] for row in view.values()] == [100, 80]
        assert hidden == [0, 3, 4, 5, 6]
        assert session.active_sheet == before
        assert not session.history.can_undo()
        assert session.monitor.get_measure("filter-sort") is not None

    def test_commit_is_undoable(self, session):
        """A committed view can be undone."""
        session.add_filter(FilterCondition(column=0, operator="equals", value1="West"))
        session.add_sort(SortCondition(column=3, direction="asc"))
        session.apply_filters_and_sort(commit=True)

        assert [row[0] for row in session.active_sheet.values()] == ["West", "West"]
        assert session.undo()
        assert session.active_sheet.dimensions.rows == 7

    def test_clear_filters_restores_original(self, session, sales_sheet):
        """Clearing filters restores the unfiltered sheet."""
        session.add_filter(FilterCondition(column=0, operator="equals", value1="West"))
        session.apply_filters_and_sort(commit=True)
        session.clear_filters()
        assert session.active_sheet == sales_sheet
        assert session.filters.filters == []


class TestPivotsValidationCharts:
    """Test pivots, validation rules and charts on the session."""

    def test_pivot_lifecycle(self, session):
        """A pivot can be copied into a new sheet and deleted."""
        config = PivotConfig(id="by-region", name="By Region", data_range="A2:D7", rows=[0], values=[3])
        table = session.create_pivot(config)
        assert table.row_headers == ["East", "West", "North"]

        sheet = session.add_pivot_sheet("by-region")
        assert sheet.name == "By Region"
        assert sheet.values()[-1][0] == "Total"

        session.delete_pivot("by-region")
        assert session.pivots.active_pivot is None
        assert session.add_pivot_sheet("by-region") is None

    def test_validate_active_cell(self, session):
        """Rules validate cells of the active sheet."""
        session.add_rule(ValidationRule(id="amt", type="number", range="D2:D7", error_message="Amount must be numeric"))
        assert session.validate(1, 3) is None
        assert session.validate(5, 3) == "Amount must be numeric"
        session.remove_rule("amt")
        assert session.validate(5, 3) is None

    def test_chart_data_and_update(self, session):
        """Chart updates keep the chart id."""
        session.add_chart(ChartConfig(id="c", type="bar", data_range="A2:D4", y_axis_columns=[3]))
        data = session.get_chart_data("c")
        assert data.labels == ["East", "West", "East"]
        assert data.datasets[0]["data"] == [100.0, 80.0, 50.0]

        updated = session.update_chart("c", {"type": "pie", "id": "ignored"})
        assert updated.id == "c"
        assert updated.type.value == "pie"

        session.delete_chart("c")
        assert session.get_chart_data("c") is None
