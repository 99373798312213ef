"""Cell address arithmetic.

Converts between A1-style addresses and zero-based (row, col) coordinates.
Columns are bijective base-26 numerals with no zero digit:
A=0, Z=25, AA=26, ZZ=701, AAA=702.
Rows are displayed 1-based: row 0 <-> "1".

Malformed input never raises. A missing column decodes to col -1 and a
missing row defaults to "1"; callers must treat col -1 as invalid.
"""
from __future__ import annotations

import re
from typing import Union

from models.schemas import CellAddress, CellRange


_COLUMN_RUN = re.compile(r"[A-Z]+")
_ROW_RUN = re.compile(r"\d+")


def column_name_to_index(name: str) -> int:
    """Convert column letters to a zero-based index. "" -> -1."""
    result = 0
    for char in name.upper():
        result = result * 26 + (ord(char) - ord("A") + 1)
    return result - 1


def column_index_to_name(index: int) -> str:
    """Convert a zero-based column index to letters. Negative -> ""."""
    result = ""
    num = index
    while num >= 0:
        result = chr(ord("A") + num % 26) + result
        num = num // 26 - 1
    return result


def parse_address(address: str) -> CellAddress:
    """Parse "B12" into CellAddress(row=11, col=1)."""
    ref = address.split("!")[-1].upper()

    col_match = _COLUMN_RUN.search(ref)
    row_match = _ROW_RUN.search(ref)
    col_letters = col_match.group(0) if col_match else ""
    row_digits = row_match.group(0) if row_match else "1"

    return CellAddress(
        row=int(row_digits) - 1,
        col=column_name_to_index(col_letters),
    )


def format_address(coord: CellAddress) -> str:
    """Inverse of parse_address: CellAddress(row=11, col=1) -> "B12"."""
    return f"{column_index_to_name(coord.col)}{coord.row + 1}"


def parse_range(ref: Union[str, CellRange]) -> CellRange:
    """Parse "A1:C10" into a CellRange. A single address yields a 1x1 range.

    Start/end ordering is taken as given; callers pass ranges with
    start <= end on both axes.
    """
    if isinstance(ref, CellRange):
        return ref
    start_ref, _, end_ref = ref.strip().partition(":")
    start = parse_address(start_ref)
    end = parse_address(end_ref) if end_ref else start.model_copy()
    return CellRange(start=start, end=end)


def format_range(rng: CellRange) -> str:
    return f"{format_address(rng.start)}:{format_address(rng.end)}"


def range_contains(rng: CellRange, row: int, col: int) -> bool:
    """True if zero-based (row, col) lies inside the rectangle."""
    return (
        rng.start.row <= row <= rng.end.row
        and rng.start.col <= col <= rng.end.col
    )
