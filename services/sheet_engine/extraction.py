"""Rectangular range extraction from a sheet grid."""
from __future__ import annotations

from typing import Any, List, Union

from models.schemas import CellRange, Sheet

from .addressing import parse_range


def extract_range(sheet: Sheet, rng: Union[str, CellRange]) -> List[List[Any]]:
    """Return a dense 2D list of raw values covering `rng` (inclusive).

    The grid is treated as infinite and sparse: anything outside the
    populated area, including negative coordinates from malformed
    addresses, reads as None.
    """
    rng = parse_range(rng)
    data: List[List[Any]] = []

    for row in range(rng.start.row, rng.end.row + 1):
        row_data = []
        for col in range(rng.start.col, rng.end.col + 1):
            cell = sheet.get_cell(row, col)
            row_data.append(cell.value if cell is not None else None)
        data.append(row_data)

    return data
