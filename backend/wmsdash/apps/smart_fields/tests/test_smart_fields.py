from __future__ import annotations

import json

import pytest

from wmsdash.apps.proxy import ProxyClient
from wmsdash.apps.smart_fields import services


def test_field_name_to_label():
    assert services.field_name_to_label("x_category_id") == "Category"
    assert services.field_name_to_label("product_qty") == "Product Qty"
    assert services.field_name_to_label("x_ams_item_id") == "Ams Item"


def test_extract_columns_orders_by_priority():
    records = [
        {
            "id": 1,
            "name": "SN-1",
            "display_name": "SN-1",
            "__last_update": "x",
            "write_date": "2024-01-01",
            "x_brand_id": [1, "Acme"],
            "product_id": [2, "Drill"],
            "location_id": [3, "WH/Stock"],
            "x_rfid": "E200",
        },
        {"id": 2, "company_id": [1, "Main"]},
    ]
    columns = services.extract_columns(records, {"name": "Lot/Serial"})
    assert [c["id"] for c in columns] == [
        "id",
        "name",
        "location_id",
        "product_id",
        "x_rfid",
        "x_brand_id",
        "company_id",
        "write_date",
    ]
    assert columns[1]["label"] == "Lot/Serial"
    assert columns[5]["label"] == "Brand"


def test_columns_from_fields_moves_id_first():
    fields = [
        {"name": "name", "label": "Reference"},
        {"field_name": "note", "field_label": "Note", "show_in_list": False},
        {"name": "id", "label": "ID"},
    ]
    assert services.columns_from_fields(fields) == [
        {"id": "id", "label": "ID"},
        {"id": "name", "label": "Reference"},
    ]


def test_fetch_records_requires_tenant(fake_http):
    client = ProxyClient(base_url="http://proxy.test/api", odoo_session_id="s", http=fake_http)
    with pytest.raises(services.SmartFieldsError) as exc_info:
        services.fetch_records(client, "stock.lot")
    assert exc_info.value.message == "Tenant ID is required"
    assert fake_http.calls == []


def test_load_model_builds_query_and_columns(proxy_client, fake_http):
    fake_http.json(
        "GET",
        "/smart-fields/data/stock.picking",
        {"success": True, "records": [{"id": 4, "name": "WH/IN/0001", "origin": "PO1"}]},
    )
    fake_http.json(
        "GET",
        "/smart-fields/stock.picking/selected",
        {"success": True, "data": {"fields": [{"name": "origin", "label": "Source Document"}]}},
    )

    result = services.load_model(proxy_client, "stock.picking", picking_type_code="incoming")

    params = fake_http.calls[0]["params"]
    assert json.loads(params["domain"]) == [["picking_type_code", "=", "incoming"]]
    assert params["limit"] == "1000"
    assert params["fetchAllFields"] == "true"
    assert fake_http.calls[0]["headers"]["X-Odoo-Session"] == "odoo-session-1"
    assert [c["label"] for c in result.columns] == ["ID", "Name", "Source Document"]
    assert result.fields[0]["name"] == "id"


def test_load_model_without_records_uses_configured_fields(proxy_client, fake_http):
    fake_http.json("GET", "/smart-fields/data/stock.lot", {"success": True, "records": []})
    fake_http.json(
        "GET",
        "/smart-fields/stock.lot/selected",
        {"success": True, "data": {"fields": [{"name": "name", "label": "Lot"}]}},
    )
    result = services.load_model(proxy_client, "stock.lot")
    assert result.columns == [{"id": "id", "label": "ID"}, {"id": "name", "label": "Lot"}]


def test_load_model_falls_back_to_default_columns(proxy_client, fake_http):
    fake_http.json("GET", "/smart-fields/data/stock.lot", {"success": True, "records": []})
    result = services.load_model(proxy_client, "stock.lot")
    assert result.columns == services.FALLBACK_COLUMNS


def test_fetch_records_error_message(proxy_client, fake_http):
    fake_http.json(
        "GET", "/smart-fields/data/stock.lot", {"success": False, "error": "Model not found"}, status_code=400
    )
    with pytest.raises(services.SmartFieldsError) as exc_info:
        services.fetch_records(proxy_client, "stock.lot")
    assert exc_info.value.message == "Model not found"
