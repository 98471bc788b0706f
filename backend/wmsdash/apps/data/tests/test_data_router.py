from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from wmsdash.apps.data import registry, router, schemas


def test_session_store_is_reused_per_session(dashboard_session, proxy_client):
    registry.clear_registry()
    first = registry.get_store(dashboard_session, client=proxy_client)
    assert router.get_session_store(dashboard_session) is first
    registry.drop_store(dashboard_session.id)
    assert router.get_session_store(dashboard_session) is not first
    registry.clear_registry()


def test_read_resource_fetches_once(data_store, fake_http):
    fake_http.json("POST", "/warehouses", {"success": True, "warehouses": [{"id": 1, "name": "WH"}]})

    state = router.read_resource("warehouses", refresh=False, store=data_store)
    assert state.count == 1
    router.read_resource("warehouses", refresh=False, store=data_store)
    assert len(fake_http.calls) == 1

    router.read_resource("warehouses", refresh=True, store=data_store)
    assert len(fake_http.calls) == 2


def test_unknown_resource_is_404(data_store):
    with pytest.raises(HTTPException) as exc_info:
        router.fetch_resource("nope", timeout_ms=None, store=data_store)
    assert exc_info.value.status_code == 404


def test_fetch_many_reports_errors(data_store, fake_http):
    fake_http.json("POST", "/uom", {"success": True, "uom": []})
    result = router.fetch_many(schemas.FetchManyRequest(data_types=["uom", "lots"]), store=data_store)
    assert result.results == {"uom": True, "lots": False}
    assert result.errors["lots"].startswith("Endpoint not found: lots.")


def test_state_lists_resource_types(data_store):
    data_store.records["uom"] = [{"id": 1}, {"id": 2}]
    state = router.read_state(store=data_store)
    assert "vendorBills" in state.resource_types
    assert state.counts == {"uom": 2}


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_idle_stores_expire(monkeypatch, dashboard_session, proxy_client):
    clock = _Clock()
    monkeypatch.setattr(registry, "_clock", clock)
    monkeypatch.setattr(registry, "DATA_STORE_IDLE_MINUTES", 30)
    registry.clear_registry()

    first = registry.get_store(dashboard_session, client=proxy_client)
    clock.now += 29 * 60
    assert registry.get_store(dashboard_session, client=proxy_client) is first

    clock.now += 31 * 60
    assert registry.evict_idle() == 0
    assert registry.has_store(dashboard_session.id) is False
    registry.clear_registry()


def test_least_recently_used_store_is_evicted(monkeypatch, proxy_client):
    clock = _Clock()
    monkeypatch.setattr(registry, "_clock", clock)
    monkeypatch.setattr(registry, "DATA_STORE_MAX_SESSIONS", 2)
    registry.clear_registry()
    sessions = [SimpleNamespace(id=f"session-{n}") for n in range(3)]

    registry.get_store(sessions[0], client=proxy_client)
    clock.now += 1
    registry.get_store(sessions[1], client=proxy_client)
    clock.now += 1
    registry.get_store(sessions[0], client=proxy_client)
    clock.now += 1
    registry.get_store(sessions[2], client=proxy_client)

    assert registry.has_store("session-0")
    assert not registry.has_store("session-1")
    assert registry.has_store("session-2")
    registry.clear_registry()
