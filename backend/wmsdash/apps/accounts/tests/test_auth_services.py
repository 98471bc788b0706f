from __future__ import annotations

import pytest
import requests
from fastapi import HTTPException
from jose import jwt

from wmsdash import security
from wmsdash.apps.accounts import models, services
from wmsdash.apps.data import registry


def _signin_ok(fake_http):
    fake_http.json(
        "GET",
        "/settings",
        {"success": True, "data": {"odoo_base_url": "https://erp.local", "odoo_db": "main"}},
    )
    fake_http.json(
        "POST",
        "/auth/signin",
        {"isAuthenticated": True, "uid": 7, "partner_id": 3, "name": "Mitchell", "sessionId": "s-1"},
    )


def test_sign_in_stores_session_and_issues_token(db_session, proxy_client, fake_http):
    _signin_ok(fake_http)

    outcome = services.sign_in(
        db_session,
        email=" Admin@Example.com ",
        password="secret",
        tenant_id="tenant-a",
        client=proxy_client,
    )

    stored = db_session.query(models.DashboardSession).one()
    assert stored.odoo_session_id == "s-1"
    assert stored.uid == "7"
    assert stored.partner_id == "3"
    assert stored.odoo_base == "https://erp.local"
    assert stored.email == "admin@example.com"

    claims = jwt.decode(outcome.access_token, security.SECRET_KEY, algorithms=[security.JWT_ALGORITHM])
    assert claims["sub"] == stored.id

    signin_call = fake_http.calls_to("POST", "/auth/signin")[0]
    assert signin_call["json"] == {"email": "admin@example.com", "password": "secret"}
    assert signin_call["headers"]["x-odoo-db"] == "main"


def test_sign_in_falls_back_to_configured_instance(db_session, proxy_client, fake_http):
    fake_http.json("GET", "/settings", {"success": False})
    fake_http.json(
        "POST",
        "/auth/signin",
        {"isAuthenticated": True, "uid": 1, "sessionId": "s-2"},
    )
    outcome = services.sign_in(db_session, email="a@b.c", password="x", client=proxy_client)
    assert outcome.session.odoo_base == "https://odoo.example.com"
    assert outcome.session.odoo_db == "prod"


def test_sign_in_setup_required(db_session, proxy_client, fake_http):
    fake_http.json(
        "POST",
        "/auth/signin",
        {"success": False, "redirectTo": "/setup", "message": "Please configure Odoo first"},
        status_code=400,
    )
    with pytest.raises(services.SignInError) as exc_info:
        services.sign_in(db_session, email="a@b.c", password="x", client=proxy_client)
    assert exc_info.value.setup_required is True
    assert exc_info.value.message == "Please configure Odoo first"
    assert db_session.query(models.DashboardSession).count() == 0


@pytest.mark.parametrize(
    "message, expected",
    [
        ("Wrong password", services.CREDENTIALS_ERROR),
        ("Odoo Server Error", services.CREDENTIALS_ERROR),
        ("Database not configured", "Database not configured"),
        ("Something odd", services.CREDENTIALS_ERROR),
        (None, services.CREDENTIALS_ERROR),
    ],
)
def test_friendly_sign_in_error(message, expected):
    assert services.friendly_sign_in_error(message) == expected


def test_sign_in_rejected_uses_friendly_message(db_session, proxy_client, fake_http):
    fake_http.json("POST", "/auth/signin", {"message": "Access Denied: invalid login"}, status_code=401)
    with pytest.raises(services.SignInError) as exc_info:
        services.sign_in(db_session, email="a@b.c", password="x", client=proxy_client)
    assert exc_info.value.message == services.CREDENTIALS_ERROR
    assert exc_info.value.setup_required is False


def test_sign_in_network_failure_reports_error(db_session, proxy_client, fake_http):
    fake_http.add("POST", "/auth/signin", requests.ConnectionError("refused"))
    with pytest.raises(services.SignInError) as exc_info:
        services.sign_in(db_session, email="a@b.c", password="x", client=proxy_client)
    assert "refused" in exc_info.value.message


def test_validate_session_records_timestamp(db_session, dashboard_session, proxy_client, fake_http):
    fake_http.json("POST", "/auth/session", {"isValid": True})
    assert services.validate_session(db_session, dashboard_session, client=proxy_client) is True
    assert dashboard_session.last_validated_at is not None
    assert fake_http.calls[0]["json"] == {"sessionId": "odoo-session-1"}


def test_validate_session_invalid_signs_out(db_session, dashboard_session, proxy_client, fake_http):
    store = registry.get_store(dashboard_session, client=proxy_client)
    store.records["products"] = [{"id": 1}]
    fake_http.json("POST", "/auth/session", {"isValid": False})

    assert services.validate_session(db_session, dashboard_session, client=proxy_client) is False
    assert dashboard_session.is_active is False
    assert dashboard_session.signed_out_at is not None
    assert registry.get_store(dashboard_session, client=proxy_client) is not store


def test_validate_session_keeps_session_when_proxy_unreachable(
    db_session, dashboard_session, proxy_client, fake_http
):
    fake_http.add("POST", "/auth/session", requests.ConnectionError("down"))
    assert services.validate_session(db_session, dashboard_session, client=proxy_client) is True
    assert dashboard_session.is_active is True


def test_validate_session_http_error_signs_out(
    db_session, dashboard_session, proxy_client, fake_http, fake_response
):
    fake_http.add("POST", "/auth/session", fake_response(401, {"isValid": False, "message": "expired"}))
    assert services.validate_session(db_session, dashboard_session, client=proxy_client) is False
    assert dashboard_session.is_active is False


@pytest.mark.parametrize(
    "status_code, payload",
    [(200, None), (500, None), (503, {"message": "proxy restarting"})],
)
def test_validate_session_keeps_session_on_unreadable_reply(
    db_session, dashboard_session, proxy_client, fake_http, fake_response, status_code, payload
):
    fake_http.add("POST", "/auth/session", fake_response(status_code, payload, text="<html>oops</html>"))
    assert services.validate_session(db_session, dashboard_session, client=proxy_client) is True
    assert dashboard_session.is_active is True


def test_security_resolves_active_session(db_session, dashboard_session):
    token, _ = services.issue_access_token(dashboard_session)
    resolved = security.get_current_session(token=token, db=db_session)
    assert resolved.id == dashboard_session.id
    assert security.get_current_active_session(resolved) is resolved


def test_security_rejects_signed_out_session(db_session, dashboard_session):
    services.sign_out(db_session, dashboard_session)
    token, _ = services.issue_access_token(dashboard_session)
    resolved = security.get_current_session(token=token, db=db_session)
    with pytest.raises(HTTPException) as exc_info:
        security.get_current_active_session(resolved)
    assert exc_info.value.status_code == 401


def test_security_rejects_bad_token(db_session):
    with pytest.raises(HTTPException) as exc_info:
        security.get_current_session(token="not-a-jwt", db=db_session)
    assert exc_info.value.status_code == 401


def test_deactivated_session_loses_its_data_store(db_session, dashboard_session, proxy_client):
    registry.clear_registry()
    registry.get_store(dashboard_session, client=proxy_client)
    dashboard_session.is_active = False
    db_session.commit()

    with pytest.raises(HTTPException):
        security.get_current_active_session(dashboard_session)
    assert registry.has_store(dashboard_session.id) is False
