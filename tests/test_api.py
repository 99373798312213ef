"""Tests for the spreadsheet API routes."""

import pytest
from fastapi.testclient import TestClient

from main import create_app


@pytest.fixture
def client():
    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def spreadsheet_id(client):
    response = client.post(
        "/spreadsheets/",
        json={
            "name": "sales.xlsx",
            "sheets": [
                {
                    "name": "Sales",
                    "values": [
                        ["Region", "Amount"],
                        ["East", 10],
                        ["West", 20],
                        ["East", 5],
                    ],
                }
            ],
        },
    )
    assert response.status_code == 200
    return response.json()["id"]


class TestWorkbookRoutes:
    """Test workbook lifecycle endpoints."""

    def test_health(self, client):
        """Root endpoint reports ok."""
        assert client.get("/").json() == {"status": "ok"}

    def test_create_empty_workbook(self, client):
        """A bare POST opens "New File.xlsx" with one sheet."""
        response = client.post("/spreadsheets/")
        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "New File.xlsx"
        assert body["sheets"][0]["name"] == "Sheet1"
        assert body["can_undo"] is False

    def test_get_and_close(self, client, spreadsheet_id):
        """A closed spreadsheet is no longer found."""
        body = client.get(f"/spreadsheets/{spreadsheet_id}").json()
        assert body["sheets"][0]["dimensions"] == {"rows": 4, "cols": 2}

        assert client.delete(f"/spreadsheets/{spreadsheet_id}").json() == {"closed": True}
        assert client.get(f"/spreadsheets/{spreadsheet_id}").status_code == 404

    def test_unknown_spreadsheet(self, client):
        """Unknown ids return 404."""
        assert client.post("/spreadsheets/nope/undo").status_code == 404

    def test_invalid_worksheet_index(self, client, spreadsheet_id):
        """Activating a missing worksheet returns 400."""
        response = client.post(f"/spreadsheets/{spreadsheet_id}/worksheets/3/activate")
        assert response.status_code == 400

    def test_save_and_load(self, client, spreadsheet_id):
        """Saved workbooks reopen with their edits and bump the version."""
        client.post(f"/spreadsheets/{spreadsheet_id}/cell", json={"cell": "A1", "value": "Area"})
        assert client.post(f"/spreadsheets/{spreadsheet_id}/save").json()["version"] == 1
        assert client.post(f"/spreadsheets/{spreadsheet_id}/save").json()["version"] == 2

        client.delete(f"/spreadsheets/{spreadsheet_id}")
        body = client.post(f"/spreadsheets/{spreadsheet_id}/load").json()
        assert body["sheets"][0]["values"][0] == ["Area", "Amount"]

    def test_load_unknown(self, client):
        """Loading an id that was never saved returns 404."""
        assert client.post("/spreadsheets/never-saved/load").status_code == 404


class TestEditingRoutes:
    """Test cell edits and undo/redo endpoints."""

    def test_edit_undo_redo(self, client, spreadsheet_id):
        """Edits are undoable and redoable through the API."""
        base = f"/spreadsheets/{spreadsheet_id}"
        response = client.post(f"{base}/cell", json={"cell": "C6", "value": 42})
        assert response.status_code == 200
        assert response.json()["dimensions"] == {"rows": 6, "cols": 3}

        undone = client.post(f"{base}/undo").json()
        assert undone["applied"] is True
        assert undone["sheets"][0]["dimensions"] == {"rows": 4, "cols": 2}
        assert undone["can_redo"] is True

        redone = client.post(f"{base}/redo").json()
        assert redone["applied"] is True
        assert redone["sheets"][0]["values"][5][2] == 42

        assert client.post(f"{base}/redo").json()["applied"] is False

    def test_edit_by_coordinates(self, client, spreadsheet_id):
        """Cells can be addressed by row and col."""
        response = client.post(
            f"/spreadsheets/{spreadsheet_id}/cell", json={"row": 0, "col": 0, "value": True}
        )
        assert response.json()["value"] is True

    def test_malformed_cell_reference(self, client, spreadsheet_id):
        """A reference without a column returns 400."""
        response = client.post(f"/spreadsheets/{spreadsheet_id}/cell", json={"cell": "12", "value": 1})
        assert response.status_code == 400

    def test_insert_row(self, client, spreadsheet_id):
        """Inserting a row is checkpointed."""
        body = client.post(f"/spreadsheets/{spreadsheet_id}/rows/1").json()
        assert body["sheets"][0]["values"][1] == []
        assert body["can_undo"] is True


class TestViewRoutes:
    """Test filter and sort view endpoints."""

    def test_filter_and_sort_view(self, client, spreadsheet_id):
        """The view endpoint previews filters and sorts."""
        base = f"/spreadsheets/{spreadsheet_id}"
        client.post(f"{base}/filters", json={"column": 1, "operator": "greaterThan", "value1": 6})
        client.post(f"{base}/sorts", json={"column": 1, "direction": "desc"})

        body = client.post(f"{base}/view").json()
        assert body["sheet"]["values"] == [["West", 20], ["East", 10]]
        assert body["hidden_rows"] == [0, 3]
        assert body["committed"] is False

    def test_commit_and_clear(self, client, spreadsheet_id):
        """A committed view can be cleared back to the original."""
        base = f"/spreadsheets/{spreadsheet_id}"
        client.post(f"{base}/filters", json={"column": 0, "operator": "equals", "value1": "East"})
        client.post(f"{base}/view", json={"commit": True})
        assert client.get(base).json()["sheets"][0]["dimensions"]["rows"] == 2

        restored = client.post(f"{base}/view/clear").json()
        assert restored["sheets"][0]["dimensions"]["rows"] == 4

    def test_invalid_operator(self, client, spreadsheet_id):
        """Unknown filter operators return 422."""
        response = client.post(
            f"/spreadsheets/{spreadsheet_id}/filters",
            json={"column": 0, "operator": "startsWith", "value1": "E"},
        )
        assert response.status_code == 422


class TestPivotAndChartRoutes:
    """Test pivot, chart and validation endpoints."""

    def test_pivot(self, client, spreadsheet_id):
        """Pivots are created, regenerated and deleted."""
        base = f"/spreadsheets/{spreadsheet_id}"
        config = {"id": "p", "data_range": "A2:B4", "rows": [0], "values": [1], "aggregation": "sum"}
        table = client.post(f"{base}/pivots", json=config).json()
        assert table["row_headers"] == ["East", "West"]
        assert table["values"] == [[15.0], [20.0]]
        assert table["totals"] == [35.0]

        config["aggregation"] = "count"
        table = client.put(f"{base}/pivots/p", json=config).json()
        assert table["grid"][-1] == ["Total", "3"]

        assert client.put(f"{base}/pivots/other", json=config).status_code == 404
        assert client.delete(f"{base}/pivots/p").json() == {"pivots": []}

    def test_chart_data(self, client, spreadsheet_id):
        """Chart data is shaped from the active sheet."""
        base = f"/spreadsheets/{spreadsheet_id}"
        chart = {"id": "c", "type": "bar", "data_range": "A2:B4", "y_axis_columns": [1]}
        client.post(f"{base}/charts", json=chart)

        data = client.get(f"{base}/charts/c/data").json()
        assert data["labels"] == ["East", "West", "East"]
        assert data["datasets"][0]["data"] == [10.0, 20.0, 5.0]
        assert client.get(f"{base}/charts/missing/data").status_code == 404

    def test_validation(self, client, spreadsheet_id):
        """List rules flag values outside the list."""
        base = f"/spreadsheets/{spreadsheet_id}"
        client.post(
            f"{base}/validation-rules",
            json={"id": "r", "type": "list", "range": "A2:A10", "list_values": ["East", "West"]},
        )
        assert client.post(f"{base}/validate", json={"cell": "A2"}).json()["valid"] is True

        edit = client.post(f"{base}/cell", json={"cell": "A3", "value": "South"}).json()
        assert edit["validation_error"] == "Data validation failed"

    def test_date_rule_with_offset_aware_edit(self, client, spreadsheet_id):
        """An offset-aware date edit is checked against a date-only bound."""
        base = f"/spreadsheets/{spreadsheet_id}"
        client.post(
            f"{base}/validation-rules",
            json={"id": "d", "type": "date", "range": "C1:C10", "min_value": "2023-01-01"},
        )
        response = client.post(f"{base}/cell", json={"cell": "C2", "value": "2024-01-01T00:00:00+00:00"})
        assert response.status_code == 200
        assert response.json()["validation_error"] is None

    def test_validate_malformed_cell_reference(self, client, spreadsheet_id):
        """A reference without a column is rejected instead of reported valid."""
        response = client.post(f"/spreadsheets/{spreadsheet_id}/validate", json={"cell": "12"})
        assert response.status_code == 400

    def test_chart_update_with_invalid_type(self, client, spreadsheet_id):
        """Bad chart updates are rejected with 422 and leave the chart as it was."""
        base = f"/spreadsheets/{spreadsheet_id}"
        client.post(f"{base}/charts", json={"id": "c", "type": "bar", "data_range": "A2:B4"})

        response = client.patch(f"{base}/charts/c", json={"updates": {"type": "donut"}})
        assert response.status_code == 422
        assert response.json()["detail"][0]["loc"] == ["type"]

        updated = client.patch(f"{base}/charts/c", json={"updates": {"type": "line"}})
        assert updated.status_code == 200
        assert updated.json()["type"] == "line"
