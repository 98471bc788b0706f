from __future__ import annotations

import requests

from wmsdash.apps.data import resources
from wmsdash.apps.data.store import (
    CONNECTION_ERROR,
    NO_SESSION_ERROR,
    DataStore,
    filter_on_hand_quants,
)
from wmsdash.apps.proxy import ProxyClient


def test_registry_covers_every_resource_type():
    assert len(resources.RESOURCE_TYPES) == 35
    assert resources.get_endpoint("products") == "products-single/all"
    assert resources.get_endpoint("vendorBills") == "account-moves"
    assert resources.get_endpoint("somethingNew") == "somethingNew"
    assert resources.get_url("waves") == "/picking-transfers/waves"
    assert resources.get_url("somethingNew") == "/products/somethingNew"


def test_large_datasets_get_longer_timeout():
    assert resources.default_timeout_ms("stockMoveLines") == 60000
    assert resources.default_timeout_ms("uom") == 25000


def test_fetch_data_stores_records_and_clears_state(data_store, fake_http):
    fake_http.json("POST", "/uom", {"success": True, "uom": [{"id": 1, "name": "Units"}]})

    assert data_store.fetch_data("uom") is True
    assert data_store.get("uom") == [{"id": 1, "name": "Units"}]
    assert data_store.loading["uom"] is False
    assert data_store.errors["uom"] is None
    call = fake_http.calls[0]
    assert call["json"] == {"sessionId": "odoo-session-1"}
    assert call["timeout"] == 25


def test_fetch_data_missing_key_stores_empty_list(data_store, fake_http):
    fake_http.json("POST", "/scraps", {"success": True})
    assert data_store.fetch_data("scraps") is True
    assert data_store.get("scraps") == []
    assert data_store.is_loaded("scraps")


def test_fetch_without_session_records_error(fake_http):
    store = DataStore(ProxyClient(base_url="http://proxy.test/api", http=fake_http))
    assert store.fetch_data("lots") is False
    assert store.errors["lots"] == NO_SESSION_ERROR
    assert fake_http.calls == []


def test_http_errors_map_to_page_messages(data_store, fake_http, fake_response):
    fake_http.add("POST", "/lots", fake_response(500, text="traceback"))
    fake_http.add("POST", "/uom", fake_response(403, text="forbidden"))

    data_store.fetch_data("lots")
    data_store.fetch_data("uom")
    data_store.fetch_data("projects")  # no route -> 404

    assert data_store.errors["lots"] == "Server error: traceback. Please check the backend server logs."
    assert data_store.errors["uom"] == "HTTP error! status: 403 - forbidden"
    assert data_store.errors["projects"].startswith("Endpoint not found: projects.")


def test_success_false_uses_message_or_default(data_store, fake_http):
    fake_http.json("POST", "/lots", {"success": False, "message": "Model not installed"})
    fake_http.json("POST", "/uom", {"data": []})

    data_store.fetch_data("lots")
    data_store.fetch_data("uom")

    assert data_store.errors["lots"] == "Model not installed"
    assert data_store.errors["uom"] == "Failed to fetch uom"


def test_timeout_messages(data_store, fake_http):
    fake_http.add("POST", "/products-single/all", requests.Timeout("slow"))
    fake_http.add("POST", "/uom", requests.Timeout("slow"))

    data_store.fetch_data("products")
    data_store.fetch_data("uom", timeout_ms=2500)

    assert data_store.errors["products"] == (
        "Loading products is taking longer than expected. The dataset is large "
        "(60s timeout). Please wait or try refreshing the page."
    )
    assert data_store.errors["uom"] == (
        "Request timeout: uom took longer than 2.5s to load. "
        "This may be due to a large dataset or backend performance issues."
    )
    assert data_store.loading["products"] is False


def test_connection_error_message(data_store, fake_http):
    fake_http.add("POST", "/partners", requests.ConnectionError("refused"))
    data_store.fetch_data("partners")
    assert data_store.errors["partners"] == CONNECTION_ERROR


def test_quant_filter_keeps_internal_positive_stock():
    locations = [{"id": 8, "usage": "internal"}, {"id": 9, "usage": "customer"}]
    quants = [
        {"id": 1, "location_id": [8, "WH/Stock"], "available_quantity": 3},
        {"id": 2, "location_id": [8, "WH/Stock"], "available_quantity": 0, "quantity": 5},
        {"id": 3, "location_id": [8, "WH/Stock"], "quantity": 2},
        {"id": 4, "location_id": [9, "Customers"], "quantity": 10},
        {"id": 5, "location_id": 8, "quantity": -1},
    ]
    kept = filter_on_hand_quants(quants, locations)
    assert [q["id"] for q in kept] == [1, 3]


def test_quants_fetch_loads_locations_first(data_store, fake_http):
    fake_http.json("POST", "/locations", {"success": True, "locations": [{"id": 8, "usage": "internal"}]})
    fake_http.json(
        "POST",
        "/quants",
        {"success": True, "quants": [{"id": 1, "location_id": [8, "WH"], "quantity": 4}]},
    )

    data_store.fetch_data("quants")

    assert [c["path"] for c in fake_http.calls] == ["/locations", "/quants"]
    assert data_store.get("quants") == [{"id": 1, "location_id": [8, "WH"], "quantity": 4}]


def test_fetch_many_and_ensure(data_store, fake_http):
    fake_http.json("POST", "/uom", {"success": True, "uom": [{"id": 1}]})
    fake_http.json("POST", "/categories", {"success": True, "categories": [{"id": 2}]})

    results = data_store.fetch_many(["uom", "categories", "uom"])
    assert results == {"uom": True, "categories": True}

    data_store.ensure(["uom", "categories"])
    assert len(fake_http.calls) == 2


def test_retry_problematic_endpoints(data_store, fake_http):
    for path, key in (("/lots", "lots"), ("/inventory", "inventory"), ("/inventory-lines", "inventoryLines")):
        fake_http.json("POST", path, {"success": True, key: []})
    assert data_store.retry_problematic_endpoints() == {
        "lots": True,
        "inventory": True,
        "inventoryLines": True,
    }


def test_refresh_all_data_does_nothing(data_store, fake_http):
    data_store.refresh_all_data()
    assert fake_http.calls == []


def test_clear_data(data_store):
    data_store.records["uom"] = [{"id": 1}]
    data_store.errors["lots"] = "bad"
    data_store.landed_cost_lines[3] = [{"id": 9}]
    data_store.clear_data()
    assert data_store.snapshot() == {"loading": {}, "errors": {}, "counts": {}}


def test_landed_cost_lines_cached_by_cost(data_store, fake_http):
    fake_http.json("POST", "/landed-cost-lines/by-cost", {"success": True, "lines": [{"id": 11}]})
    assert data_store.fetch_landed_cost_lines(5) == [{"id": 11}]
    assert fake_http.calls[0]["json"] == {"sessionId": "odoo-session-1", "cost_id": 5}
    assert data_store.landed_cost_lines[5] == [{"id": 11}]
    assert data_store.fetch_landed_cost_lines(0) == []


def test_landed_cost_lines_failure_is_logged_only(data_store, fake_http, fake_response):
    fake_http.add("POST", "/landed-cost-lines/by-cost", fake_response(500, text="x"))
    assert data_store.fetch_landed_cost_lines(5) == []


def test_refresh_stock_rules_direct(data_store, fake_http, fake_response):
    fake_http.add(
        "POST",
        "/stock-rules",
        fake_response(200, {"success": True, "stockRules": [{"id": 1}]}),
        fake_response(200, {"success": False}),
    )
    assert data_store.refresh_stock_rules_direct() is True
    assert data_store.get("stockRules") == [{"id": 1}]

    assert data_store.refresh_stock_rules_direct() is False
    assert data_store.errors["stockRules"] == "Failed to refresh stock rules"
    assert data_store.get("stockRules") == [{"id": 1}]
    assert data_store.loading["stockRules"] is False
