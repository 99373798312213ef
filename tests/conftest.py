"""Shared fixtures.

Environment is set before any application module is imported so the
settings singleton and the database engine pick up the test values.
"""
from __future__ import annotations

import os
import tempfile
from pathlib import Path

_TEST_DB_DIR = Path(tempfile.mkdtemp(prefix="sheet-editor-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DB_DIR / 'test.db'}"
os.environ["DISABLE_RATE_LIMIT"] = "1"

import pytest

from models.schemas import Sheet


@pytest.fixture
def sales_sheet() -> Sheet:
    """Header row plus six sales records: region, product, quarter, amount."""
    return Sheet.from_values(
        "Sales",
        [
            ["Region", "Product", "Quarter", "Amount"],
            ["East", "Widget", "Q1", 100],
            ["West", "Widget", "Q1", 80],
            ["East", "Gadget", "Q2", 50],
            ["East", "Widget", "Q2", 25.5],
            ["West", "Gadget", "Q1", "n/a"],
            ["North", "Widget", "Q2", 10],
        ],
    )
