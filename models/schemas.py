"""Pydantic schemas for the spreadsheet editor.

These schemas model the in-memory representation of a workbook and the
configuration objects that drive the derived views:
- Cells, sheets and workbooks
- Cell addresses and rectangular ranges
- Filter / sort conditions
- Pivot table configuration and output
- Validation rules and chart configuration
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


# =============================================================================
# CELLS AND SHEETS
# =============================================================================

class CellFont(BaseModel):
    """Font styling for a cell."""
    bold: bool = False
    italic: bool = False
    color: Optional[str] = None  # Hex color e.g. "#FF0000"
    size: Optional[float] = None


class CellAlignment(BaseModel):
    """Text alignment in a cell."""
    horizontal: Optional[Literal["left", "center", "right"]] = None
    vertical: Optional[Literal["top", "middle", "bottom"]] = None


class CellStyle(BaseModel):
    """Presentation-only style attached to a cell."""
    font: Optional[CellFont] = None
    alignment: Optional[CellAlignment] = None
    background_color: Optional[str] = None


class Cell(BaseModel):
    """A single spreadsheet entry.

    `value` is the display/computed value; `formula` keeps the source text
    when the cell was computed.
    """
    value: Any = None  # str, int, float, bool or None
    formula: Optional[str] = None
    style: Optional[CellStyle] = None


class SheetDimensions(BaseModel):
    """Cached upper bound on the populated area of a sheet."""
    rows: int = 0
    cols: int = 0


class Sheet(BaseModel):
    """A named 2D grid of cells (rows outer, columns inner)."""
    name: str
    grid: List[List[Cell]] = []
    dimensions: SheetDimensions = Field(default_factory=SheetDimensions)

    @classmethod
    def from_values(cls, name: str, values: List[List[Any]]) -> "Sheet":
        """Build a sheet from a plain 2D list of values."""
        grid = [[Cell(value=v) for v in row] for row in values]
        return cls(
            name=name,
            grid=grid,
            dimensions=SheetDimensions(
                rows=len(grid),
                cols=max((len(row) for row in grid), default=0),
            ),
        )

    def get_cell(self, row: int, col: int) -> Optional[Cell]:
        """Get the cell at zero-based (row, col), or None outside the grid."""
        if 0 <= row < len(self.grid) and 0 <= col < len(self.grid[row]):
            return self.grid[row][col]
        return None

    def values(self) -> List[List[Any]]:
        """Plain 2D list of the cell values."""
        return [[cell.value for cell in row] for row in self.grid]

    def set_cell(self, row: int, col: int, value: Any) -> Cell:
        """Write a value, growing the grid and dimensions as needed."""
        while len(self.grid) <= row:
            self.grid.append([])
        cells = self.grid[row]
        while len(cells) <= col:
            cells.append(Cell(value=""))

        cell = cells[col]
        cell.value = value

        self.dimensions.rows = max(self.dimensions.rows, row + 1)
        self.dimensions.cols = max(self.dimensions.cols, col + 1)
        return cell

    def insert_row(self, index: int) -> None:
        """Insert an empty row before `index` (appends past the end)."""
        index = max(0, min(index, len(self.grid)))
        self.grid.insert(index, [])
        self.dimensions.rows = max(self.dimensions.rows + 1, len(self.grid))

    def insert_column(self, index: int) -> None:
        """Insert an empty column before `index` in every populated row."""
        index = max(0, index)
        for cells in self.grid:
            if index < len(cells):
                cells.insert(index, Cell(value=""))
        self.dimensions.cols = max(self.dimensions.cols + 1, index + 1)

    def clone(self) -> "Sheet":
        """Structural deep copy used for snapshots."""
        return self.model_copy(deep=True)


class Workbook(BaseModel):
    """An open spreadsheet file."""
    name: str
    worksheets: List[Sheet] = []
    active_sheet_index: int = 0

    @classmethod
    def new(cls, name: str = "New File.xlsx") -> "Workbook":
        return cls(name=name, worksheets=[Sheet(name="Sheet1")])

    @property
    def active_sheet(self) -> Optional[Sheet]:
        if 0 <= self.active_sheet_index < len(self.worksheets):
            return self.worksheets[self.active_sheet_index]
        return None

    def clone(self) -> "Workbook":
        return self.model_copy(deep=True)


# =============================================================================
# ADDRESSES
# =============================================================================

class CellAddress(BaseModel):
    """Zero-based (row, col) coordinate. col == -1 marks a malformed address."""
    row: int
    col: int


class CellRange(BaseModel):
    """Axis-aligned rectangle between two addresses (inclusive)."""
    start: CellAddress
    end: CellAddress


# =============================================================================
# FILTER / SORT
# =============================================================================

class FilterOperator(str, Enum):
    EQUALS = "equals"
    CONTAINS = "contains"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    BETWEEN = "between"


class FilterCondition(BaseModel):
    """A predicate on a single column."""
    column: int
    operator: FilterOperator
    value1: Any = None
    value2: Any = None  # Upper bound for "between"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class SortCondition(BaseModel):
    column: int
    direction: SortDirection = SortDirection.ASC


# =============================================================================
# PIVOT TABLES
# =============================================================================

class Aggregation(str, Enum):
    SUM = "sum"
    AVERAGE = "average"
    COUNT = "count"
    MAX = "max"
    MIN = "min"


class PivotConfig(BaseModel):
    """Pivot definition over a source range of the active sheet."""
    id: str = "pivot"
    name: Optional[str] = None
    data_range: Union[str, CellRange]  # "A1:C10" or a parsed range
    rows: List[int] = []  # Source column indices forming the row key
    columns: List[int] = []  # Source column indices forming the column key
    values: List[int] = []  # Source column indices to aggregate
    aggregation: Aggregation = Aggregation.SUM


class PivotTable(BaseModel):
    """Derived, read-only pivot output. Regenerated, never patched."""
    config: PivotConfig
    grid: List[List[str]] = []  # Header row, data rows, then the "Total" row
    row_headers: List[str] = []
    column_headers: List[str] = []
    values: List[List[float]] = []  # One row per row header
    totals: List[float] = []  # Column totals across data rows


# =============================================================================
# VALIDATION
# =============================================================================

class ValidationType(str, Enum):
    NUMBER = "number"
    TEXT = "text"
    DATE = "date"
    LIST = "list"
    CUSTOM = "custom"


class ValidationRule(BaseModel):
    """Input constraint applied to every cell in `range`."""
    id: str
    type: ValidationType
    range: str  # "A1:B10"
    condition: Optional[str] = None  # "notEmpty", "length" for text rules
    error_message: Optional[str] = None
    list_values: List[str] = []
    min_value: Optional[Union[float, str]] = None  # Dates accept ISO strings
    max_value: Optional[Union[float, str]] = None


# =============================================================================
# CHARTS
# =============================================================================

class ChartType(str, Enum):
    BAR = "bar"
    LINE = "line"
    PIE = "pie"
    SCATTER = "scatter"
    AREA = "area"


class ChartConfig(BaseModel):
    id: str
    type: ChartType
    title: str = ""
    data_range: str
    x_axis_column: Optional[int] = None
    y_axis_columns: List[int] = []
    width: int = 600
    height: int = 400
    colors: List[str] = ["#409EFF"]


class ChartData(BaseModel):
    """Chart-library-ready labels and datasets."""
    labels: List[Any] = []
    datasets: List[Dict[str, Any]] = []
