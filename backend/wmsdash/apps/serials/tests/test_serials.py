from __future__ import annotations

import json

import pytest
from fastapi import HTTPException

from wmsdash.apps.serials import router, services

LOTS = [
    {
        "id": 9,
        "name": "SN-0009",
        "product_id": [4, "Laptop"],
        "location_id": [8, "WH/Stock"],
        "product_qty": 1,
        "ref": "LAP-9",
        "x_brand_id": [2, "Lenovo"],
        "state": "active",
    },
    {
        "id": 8,
        "name": "SN-0008",
        "product_id": [5, "Monitor"],
        "location_id": [10, "WH/Office"],
        "product_qty": 1,
        "ref": False,
        "x_brand_id": False,
        "state": "disposed",
    },
]


def test_default_visible_columns_picks_logical_fields():
    available = ["id", "name", "product_id", "location_id", "quantity", "ref", "x_brand_id", "x_rfid", "state"]
    assert services.default_visible_columns(available) == [
        "name",
        "location_id",
        "product_id",
        "quantity",
        "ref",
        "state",
    ]


def test_default_visible_columns_fills_with_id_and_others():
    available = ["x_rfid", "id", "name", "status", "x_brand_id", "x_model_id", "x_condition"]
    assert services.default_visible_columns(available) == [
        "name",
        "status",
        "id",
        "x_rfid",
        "x_brand_id",
        "x_model_id",
    ]


def test_filter_lots_searches_product_and_location():
    assert [lot["id"] for lot in services.filter_lots(LOTS, "monitor")] == [8]
    assert [lot["id"] for lot in services.filter_lots(LOTS, "wh/")] == [9, 8]
    assert services.filter_lots(LOTS, "nothing") == []


def test_list_serials_fetches_first_thousand_lots(data_store, fake_http):
    fake_http.json("GET", "/smart-fields/data/stock.lot", {"success": True, "records": LOTS})

    listing = services.list_serials(data_store, search="SN-0009")
    assert [lot["id"] for lot in listing["lots"]] == [9]
    assert listing["stats"] == {"total": 2, "active": 2}

    params = fake_http.calls_to("GET", "/smart-fields/data/stock.lot")[0]["params"]
    assert params["limit"] == "1000"
    assert params["order"] == "id desc"
    assert json.loads(params["domain"]) == []

    labels = {c["id"]: c["label"] for c in listing["columns"]}
    assert labels["name"] == "Serial Number"
    assert labels["x_brand_id"] == "Brand"


def test_list_without_records_uses_fixed_columns(data_store, fake_http):
    fake_http.json("GET", "/smart-fields/data/stock.lot", {"success": True, "records": []})
    listing = services.list_serials(data_store)
    assert listing["columns"] == services.SERIAL_NUMBER_COLUMNS


def test_list_endpoint_reports_fetch_failure(data_store, fake_http):
    fake_http.json("GET", "/smart-fields/data/stock.lot", {"success": False}, status_code=500)
    with pytest.raises(HTTPException) as exc_info:
        router.list_serials(search="", view="table", page=1, per_page=9, store=data_store)
    assert exc_info.value.status_code == 502
    assert exc_info.value.detail == "Failed to fetch serial numbers"


def test_export_columns_use_labels_and_generic_cells():
    columns = services.available_columns(LOTS)
    export = services.export_columns(columns, ["name", "x_brand_id", "ref"])
    assert [c.header for c in export] == ["Serial Number", "Brand", "Reference"]
    assert [c.accessor(LOTS[0]) for c in export] == ["SN-0009", "Lenovo", "LAP-9"]
    assert [c.accessor(LOTS[1]) for c in export] == ["SN-0008", "-", "-"]
