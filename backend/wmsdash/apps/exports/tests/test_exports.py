from __future__ import annotations

from datetime import date

import pytest
from fastapi import HTTPException

from wmsdash.apps.exports import services


ROWS = [
    {"id": 1, "name": 'Drill "XL"', "state": "assigned", "partner_id": [4, "Acme"], "date_done": "2024-03-05 14:07:00"},
    {"id": 2, "name": "Saw", "state": "done", "partner_id": False, "date_done": None},
    {"id": 3, "name": "Hammer", "state": "cancel", "partner_id": [5, "Beta"], "date_done": ""},
]

COLUMNS = services.field_columns(
    [
        {"id": "name", "label": "Reference"},
        {"id": "state", "label": "Status"},
        {"id": "partner_id", "label": "Contact"},
        {"id": "date_done", "label": "Done"},
    ]
)


def test_format_cell_value():
    assert services.format_cell_value([4, "Acme"], "partner_id") == "Acme"
    assert services.format_cell_value([[1, "A"], [2, "B"]], "tag_ids") == "A, B"
    assert services.format_cell_value([], "tag_ids") == "-"
    assert services.format_cell_value("confirmed", "state") == "Waiting"
    assert services.format_cell_value(True, "active") == "Yes"
    assert services.format_cell_value("2024-03-05 14:07:00", "scheduled_date") == "05/03/24 14:07"
    assert services.format_cell_value(None, "origin") == "-"


def test_generic_cell():
    assert services.generic_cell([3, "WH/Stock"]) == "WH/Stock"
    assert services.generic_cell([3]) == "3"
    assert services.generic_cell(False) == "-"
    assert services.generic_cell({"a": 1}) == '{"a": 1}'


def test_field_columns_put_id_first():
    assert [c.header for c in COLUMNS] == ["ID", "Reference", "Status", "Contact", "Done"]
    assert COLUMNS[0].accessor({"id": 9}) == "#9"
    assert COLUMNS[2].is_status is True


def test_select_scope():
    assert [r["id"] for r in services.select_scope(ROWS, "page", page=2, per_page=2)] == [3]
    assert [r["id"] for r in services.select_scope(ROWS, "selected", selected_ids=["2", 3])] == [2, 3]
    assert len(services.select_scope(ROWS, "all")) == 3


def test_export_filename():
    assert services.export_filename("Lots Serial", "csv", date(2024, 5, 1)) == "lots_serial_export_2024-05-01.csv"


def test_csv_quotes_every_cell():
    text = services.render_csv(ROWS[:2], COLUMNS).decode("utf-8")
    lines = text.splitlines()
    assert lines[0] == '"ID","Reference","Status","Contact","Done"'
    assert lines[1] == '"#1","Drill ""XL""","Ready","Acme","05/03/24 14:07"'
    assert lines[2] == '"#2","Saw","Done","No","-"'


def test_export_rows_pdf_has_pdf_header():
    export = services.export_rows(
        ROWS,
        COLUMNS,
        title="Receipts Export",
        fmt="pdf",
        summary=lambda data: [("Total Records", len(data))],
        date_range=("2024-01-01", "2024-01-31"),
    )
    assert export.media_type == "application/pdf"
    assert export.content.startswith(b"%PDF")
    assert export.filename.endswith(".pdf")


def test_export_rows_empty_selection_is_rejected():
    with pytest.raises(HTTPException) as exc_info:
        services.export_rows(ROWS, COLUMNS, title="X", scope="selected", selected_ids=[])
    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == services.NO_RECORDS
