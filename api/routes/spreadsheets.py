"""API routes for the spreadsheet editor.

Each UI event maps to one call on the session's EditorSession:
- Create / fetch / close workbooks
- Edit cells, insert rows and columns
- Filter and sort views
- Pivot tables, validation rules, charts
- Undo / redo
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ValidationError

from models.schemas import (
    ChartConfig,
    FilterCondition,
    PivotConfig,
    Sheet,
    SortCondition,
    ValidationRule,
    Workbook,
)
from services.db import load_workbook, save_workbook
from services.editor_session import EditorSession
from services.performance import PerformanceMonitor
from services.settings import get_settings
from services.sheet_engine import parse_address


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/spreadsheets", tags=["spreadsheets"])

# In-memory storage for open editing sessions
_active_sessions: dict[str, EditorSession] = {}


# =============================================================================
# MODELS
# =============================================================================

class SheetValues(BaseModel):
    """Initial contents of one worksheet."""
    name: str
    values: list[list[Any]] = []


class NewWorkbookRequest(BaseModel):
    """Request to open a new workbook, optionally pre-filled."""
    name: str = "New File.xlsx"
    sheets: list[SheetValues] = []


class CellEditRequest(BaseModel):
    """Request to edit a cell value."""
    cell: Optional[str] = None  # Cell reference e.g. "A1"
    row: Optional[int] = None  # Zero-based, used when `cell` is absent
    col: Optional[int] = None
    value: str | int | float | bool | None


class CellRefRequest(BaseModel):
    cell: str


class ViewRequest(BaseModel):
    commit: bool = False


class ChartUpdateRequest(BaseModel):
    updates: Dict[str, Any]


# =============================================================================
# HELPERS
# =============================================================================

def _monitor(request: Request) -> PerformanceMonitor:
    return request.app.state.performance_monitor


def _get_session(spreadsheet_id: str) -> EditorSession:
    session = _active_sessions.get(spreadsheet_id)
    if session is None or not session.has_file:
        raise HTTPException(404, "Spreadsheet not found")
    return session


def _sheet_summary(sheet: Sheet) -> dict:
    return {
        "name": sheet.name,
        "dimensions": sheet.dimensions.model_dump(),
        "values": sheet.values(),
    }


def _workbook_to_ui_summary(session: EditorSession, spreadsheet_id: str) -> dict:
    workbook = session.workbook
    return {
        "id": spreadsheet_id,
        "name": workbook.name,
        "active_sheet_index": workbook.active_sheet_index,
        "sheets": [_sheet_summary(s) for s in workbook.worksheets],
        "can_undo": session.history.can_undo(),
        "can_redo": session.history.can_redo(),
    }


def _open_session(request: Request, workbook: Workbook, spreadsheet_id: str) -> EditorSession:
    session = EditorSession(
        workbook=workbook,
        monitor=_monitor(request),
        history_max_size=get_settings().history_max_size,
    )
    _active_sessions[spreadsheet_id] = session
    return session


# =============================================================================
# WORKBOOK ENDPOINTS
# =============================================================================

@router.post("/", response_model=dict)
async def create_spreadsheet(request: Request, payload: NewWorkbookRequest | None = None):
    """Open a new workbook. Without sheets, a single empty "Sheet1" is created."""
    payload = payload or NewWorkbookRequest()
    workbook = Workbook.new(payload.name)
    if payload.sheets:
        workbook.worksheets = [Sheet.from_values(s.name, s.values) for s in payload.sheets]

    spreadsheet_id = uuid.uuid4().hex[:12]
    session = _open_session(request, workbook, spreadsheet_id)
    logger.info(f"[API] Opened spreadsheet {spreadsheet_id} ({len(workbook.worksheets)} sheets)")
    return _workbook_to_ui_summary(session, spreadsheet_id)


@router.get("/{spreadsheet_id}")
async def get_spreadsheet(spreadsheet_id: str):
    """Get the current state of a spreadsheet."""
    return _workbook_to_ui_summary(_get_session(spreadsheet_id), spreadsheet_id)


@router.delete("/{spreadsheet_id}")
async def close_spreadsheet(spreadsheet_id: str):
    session = _get_session(spreadsheet_id)
    session.close_file()
    del _active_sessions[spreadsheet_id]
    logger.info(f"[API] Closed spreadsheet {spreadsheet_id}")
    return {"closed": True}


@router.post("/{spreadsheet_id}/save")
async def save_spreadsheet(spreadsheet_id: str):
    session = _get_session(spreadsheet_id)
    version = save_workbook(spreadsheet_id, session.workbook)
    logger.info(f"[API] Saved spreadsheet {spreadsheet_id} (v{version})")
    return {"id": spreadsheet_id, "version": version}


@router.post("/{spreadsheet_id}/load")
async def load_spreadsheet(request: Request, spreadsheet_id: str):
    """Reopen a previously saved workbook in a fresh session."""
    workbook = load_workbook(spreadsheet_id)
    if workbook is None:
        raise HTTPException(404, "Saved spreadsheet not found")
    session = _open_session(request, workbook, spreadsheet_id)
    return _workbook_to_ui_summary(session, spreadsheet_id)


@router.post("/{spreadsheet_id}/worksheets/{index}/activate")
async def activate_worksheet(spreadsheet_id: str, index: int):
    session = _get_session(spreadsheet_id)
    if not session.switch_worksheet(index):
        raise HTTPException(400, f"Invalid worksheet index: {index}")
    return _workbook_to_ui_summary(session, spreadsheet_id)


# =============================================================================
# EDITING ENDPOINTS
# =============================================================================

@router.post("/{spreadsheet_id}/cell")
async def edit_cell(spreadsheet_id: str, edit: CellEditRequest):
    """Edit a single cell value.

    Returns the validation message for the new value, if any rule rejects it.
    The edit itself is kept either way.
    """
    session = _get_session(spreadsheet_id)

    if edit.cell:
        coord = parse_address(edit.cell)
        row, col = coord.row, coord.col
    elif edit.row is not None and edit.col is not None:
        row, col = edit.row, edit.col
    else:
        raise HTTPException(400, "Provide either 'cell' or both 'row' and 'col'")

    if row < 0 or col < 0:
        raise HTTPException(400, f"Invalid cell reference: {edit.cell}")

    session.update_cell(row, col, edit.value)
    return {
        "row": row,
        "col": col,
        "value": edit.value,
        "validation_error": session.validate(row, col),
        "dimensions": session.active_sheet.dimensions.model_dump(),
    }


@router.post("/{spreadsheet_id}/rows/{index}")
async def insert_row(spreadsheet_id: str, index: int):
    session = _get_session(spreadsheet_id)
    session.insert_row(index)
    return _workbook_to_ui_summary(session, spreadsheet_id)


@router.post("/{spreadsheet_id}/columns/{index}")
async def insert_column(spreadsheet_id: str, index: int):
    session = _get_session(spreadsheet_id)
    session.insert_column(index)
    return _workbook_to_ui_summary(session, spreadsheet_id)


@router.post("/{spreadsheet_id}/undo")
async def undo(spreadsheet_id: str):
    session = _get_session(spreadsheet_id)
    applied = session.undo()
    return {"applied": applied, **_workbook_to_ui_summary(session, spreadsheet_id)}


@router.post("/{spreadsheet_id}/redo")
async def redo(spreadsheet_id: str):
    session = _get_session(spreadsheet_id)
    applied = session.redo()
    return {"applied": applied, **_workbook_to_ui_summary(session, spreadsheet_id)}


# =============================================================================
# FILTER / SORT ENDPOINTS
# =============================================================================

@router.post("/{spreadsheet_id}/filters")
async def add_filter(spreadsheet_id: str, condition: FilterCondition):
    session = _get_session(spreadsheet_id)
    session.add_filter(condition)
    return {"filters": [f.model_dump() for f in session.filters.filters]}


@router.delete("/{spreadsheet_id}/filters/{column}")
async def remove_filter(spreadsheet_id: str, column: int):
    session = _get_session(spreadsheet_id)
    session.remove_filter(column)
    return {"filters": [f.model_dump() for f in session.filters.filters]}


@router.post("/{spreadsheet_id}/sorts")
async def add_sort(spreadsheet_id: str, condition: SortCondition):
    session = _get_session(spreadsheet_id)
    session.add_sort(condition)
    return {"sorts": [s.model_dump() for s in session.filters.sort_conditions]}


@router.delete("/{spreadsheet_id}/sorts/{column}")
async def remove_sort(spreadsheet_id: str, column: int):
    session = _get_session(spreadsheet_id)
    session.remove_sort(column)
    return {"sorts": [s.model_dump() for s in session.filters.sort_conditions]}


@router.post("/{spreadsheet_id}/view")
async def apply_view(spreadsheet_id: str, payload: ViewRequest | None = None):
    """Apply the active filters and sorts to the active sheet."""
    session = _get_session(spreadsheet_id)
    commit = payload.commit if payload else False
    view, hidden = session.apply_filters_and_sort(commit=commit)
    return {
        "sheet": _sheet_summary(view),
        "hidden_rows": hidden,
        "committed": commit,
    }


@router.post("/{spreadsheet_id}/view/clear")
async def clear_view(spreadsheet_id: str):
    session = _get_session(spreadsheet_id)
    session.clear_filters()
    return _workbook_to_ui_summary(session, spreadsheet_id)


# =============================================================================
# PIVOT ENDPOINTS
# =============================================================================

@router.post("/{spreadsheet_id}/pivots")
async def create_pivot(spreadsheet_id: str, config: PivotConfig):
    session = _get_session(spreadsheet_id)
    return session.create_pivot(config).model_dump(mode="json")


@router.put("/{spreadsheet_id}/pivots/{pivot_id}")
async def update_pivot(spreadsheet_id: str, pivot_id: str, config: PivotConfig):
    session = _get_session(spreadsheet_id)
    table = session.update_pivot(pivot_id, config)
    if table is None:
        raise HTTPException(404, f"Pivot table not found: {pivot_id}")
    return table.model_dump(mode="json")


@router.delete("/{spreadsheet_id}/pivots/{pivot_id}")
async def delete_pivot(spreadsheet_id: str, pivot_id: str):
    session = _get_session(spreadsheet_id)
    session.delete_pivot(pivot_id)
    return {"pivots": [p.config.id for p in session.pivots.pivot_tables]}


@router.post("/{spreadsheet_id}/pivots/{pivot_id}/sheet")
async def pivot_to_sheet(spreadsheet_id: str, pivot_id: str):
    """Copy a pivot table's grid into a new worksheet."""
    session = _get_session(spreadsheet_id)
    if session.add_pivot_sheet(pivot_id) is None:
        raise HTTPException(404, f"Pivot table not found: {pivot_id}")
    return _workbook_to_ui_summary(session, spreadsheet_id)


# =============================================================================
# VALIDATION ENDPOINTS
# =============================================================================

@router.post("/{spreadsheet_id}/validation-rules")
async def add_validation_rule(spreadsheet_id: str, rule: ValidationRule):
    session = _get_session(spreadsheet_id)
    session.add_rule(rule)
    return {"rules": [r.id for r in session.validation_rules]}


@router.delete("/{spreadsheet_id}/validation-rules/{rule_id}")
async def remove_validation_rule(spreadsheet_id: str, rule_id: str):
    session = _get_session(spreadsheet_id)
    session.remove_rule(rule_id)
    return {"rules": [r.id for r in session.validation_rules]}


@router.post("/{spreadsheet_id}/validate")
async def validate_cell(spreadsheet_id: str, payload: CellRefRequest):
    session = _get_session(spreadsheet_id)
    coord = parse_address(payload.cell)
    if coord.row < 0 or coord.col < 0:
        raise HTTPException(400, f"Invalid cell reference: {payload.cell}")
    error = session.validate(coord.row, coord.col)
    return {"cell": payload.cell, "valid": error is None, "error": error}


# =============================================================================
# CHART ENDPOINTS
# =============================================================================

@router.post("/{spreadsheet_id}/charts")
async def add_chart(spreadsheet_id: str, config: ChartConfig):
    session = _get_session(spreadsheet_id)
    session.add_chart(config)
    return {"charts": [c.id for c in session.charts]}


@router.patch("/{spreadsheet_id}/charts/{chart_id}")
async def update_chart(spreadsheet_id: str, chart_id: str, payload: ChartUpdateRequest):
    session = _get_session(spreadsheet_id)
    try:
        chart = session.update_chart(chart_id, payload.updates)
    except ValidationError as e:
        raise HTTPException(422, e.errors(include_url=False, include_context=False))
    if chart is None:
        raise HTTPException(404, f"Chart not found: {chart_id}")
    return chart.model_dump(mode="json")


@router.delete("/{spreadsheet_id}/charts/{chart_id}")
async def delete_chart(spreadsheet_id: str, chart_id: str):
    session = _get_session(spreadsheet_id)
    session.delete_chart(chart_id)
    return {"charts": [c.id for c in session.charts]}


@router.get("/{spreadsheet_id}/charts/{chart_id}/data")
async def get_chart_data(spreadsheet_id: str, chart_id: str):
    session = _get_session(spreadsheet_id)
    data = session.get_chart_data(chart_id)
    if data is None:
        raise HTTPException(404, f"Chart not found: {chart_id}")
    return data.model_dump()
