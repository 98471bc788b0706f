from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from wmsdash import security
from wmsdash.apps.data import registry as data_registry
from wmsdash.apps.proxy import ProxyClient, ProxyError
from wmsdash.apps.proxy.client import RETRYABLE_STATUS
from . import models

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

CREDENTIALS_ERROR = "Invalid email or password. Please check your credentials and try again."
NETWORK_ERROR = "Network error. Please try again."

_CREDENTIAL_WORDS = (
    "authentication",
    "invalid",
    "credentials",
    "login",
    "password",
    "user not found",
    "wrong password",
    "incorrect",
)
_SERVER_ERROR_WORDS = ("odoo server error", "server error")
_SETUP_WORDS = ("setup", "configure")


class SignInError(Exception):
    """Raised when the proxy refuses the sign-in or cannot be reached."""

    def __init__(self, message: str, *, setup_required: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.setup_required = setup_required


@dataclass
class SignInOutcome:
    session: models.DashboardSession
    access_token: str
    expires_in: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _normalise_email(value: str) -> str:
    return value.strip().lower()


def friendly_sign_in_error(message: Optional[str]) -> str:
    """
    Map a proxy sign-in message to what the user is shown.

    Setup / configuration messages are passed through untouched since the
    user has to act on them; everything else becomes the generic
    credentials message so the proxy never leaks which part was wrong.
    """
    raw = (message or "").strip()
    lowered = raw.lower()
    if any(word in lowered for word in _CREDENTIAL_WORDS):
        return CREDENTIALS_ERROR
    if any(word in lowered for word in _SERVER_ERROR_WORDS):
        return CREDENTIALS_ERROR
    if raw and any(word in lowered for word in _SETUP_WORDS):
        return raw
    return CREDENTIALS_ERROR


def _resolve_instance(client: ProxyClient) -> Tuple[str, str]:
    """Odoo base/db from the proxy's app setup, env defaults otherwise."""
    odoo_base, odoo_db = client.fetch_app_settings()
    return odoo_base or client.odoo_base, odoo_db or client.odoo_db


# ---------------------------------------------------------------------------
# Sign in / validate / sign out
# ---------------------------------------------------------------------------


def issue_access_token(session: models.DashboardSession) -> Tuple[str, int]:
    """
    Returns (token_string, expires_in_seconds).
    """
    expires_delta = timedelta(minutes=security.ACCESS_TOKEN_EXPIRE_MINUTES)
    token = security.create_access_token(
        data={"sub": str(session.id), "uid": session.uid, "tenant_id": session.tenant_id},
        expires_delta=expires_delta,
    )
    return token, int(security.ACCESS_TOKEN_EXPIRE_MINUTES * 60)


def sign_in(
    db: Session,
    *,
    email: str,
    password: str,
    tenant_id: Optional[str] = None,
    client: Optional[ProxyClient] = None,
) -> SignInOutcome:
    client = client or ProxyClient(tenant_id=tenant_id)
    odoo_base, odoo_db = _resolve_instance(client)
    client.odoo_base, client.odoo_db = odoo_base, odoo_db
    email = _normalise_email(email)

    try:
        response = client.request(
            "POST",
            "/auth/signin",
            json={"email": email, "password": password},
            retries=0,
        )
    except ProxyError as exc:
        logger.warning("sign-in request failed", extra={"email": email, "error": str(exc)})
        raise SignInError(str(exc) or NETWORK_ERROR) from exc

    try:
        payload = response.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}

    if payload.get("setupRequired") or payload.get("redirectTo") == "/setup":
        message = payload.get("message") or "App setup not configured."
        raise SignInError(str(message), setup_required=True)

    if not response.ok or not payload.get("isAuthenticated"):
        logger.info(
            "sign-in rejected",
            extra={"email": email, "status": response.status_code},
        )
        raise SignInError(friendly_sign_in_error(payload.get("message")))

    session = models.DashboardSession(
        odoo_session_id=str(payload.get("sessionId") or ""),
        uid=str(payload.get("uid") or ""),
        partner_id=str(payload.get("partner_id") or ""),
        name=str(payload.get("name") or ""),
        email=email,
        tenant_id=tenant_id,
        odoo_base=odoo_base or None,
        odoo_db=odoo_db or None,
        is_active=True,
        last_validated_at=_utcnow(),
    )
    db.add(session)
    db.commit()
    db.refresh(session)

    token, expires_in = issue_access_token(session)
    logger.info("signed in", extra={"session_id": session.id, "uid": session.uid})
    return SignInOutcome(session=session, access_token=token, expires_in=expires_in)


def sign_out(db: Session, session: models.DashboardSession) -> None:
    session.is_active = False
    session.signed_out_at = _utcnow()
    db.add(session)
    db.commit()
    data_registry.drop_store(session.id)
    logger.info("signed out", extra={"session_id": session.id})


def validate_session(
    db: Session,
    session: models.DashboardSession,
    client: Optional[ProxyClient] = None,
) -> bool:
    """
    Ask the proxy whether the Odoo session is still alive.

    A definite "no" signs the dashboard session out. When the proxy cannot
    be reached the session is kept, so a flaky network does not log users
    out.
    """
    if not session.is_active:
        return False
    client = client or ProxyClient.for_session(session)
    try:
        response = client.request(
            "POST",
            "/auth/session",
            json={"sessionId": session.odoo_session_id},
            retries=0,
        )
        payload = response.json()
    except (ProxyError, ValueError) as exc:
        logger.warning(
            "session validation unavailable, keeping session",
            extra={"session_id": session.id, "error": str(exc)},
        )
        return True
    if response.status_code in RETRYABLE_STATUS:
        logger.warning(
            "proxy unavailable during session validation, keeping session",
            extra={"session_id": session.id, "status": response.status_code},
        )
        return True

    if not response.ok or not isinstance(payload, dict) or not payload.get("isValid"):
        logger.info(
            "session rejected by proxy",
            extra={"session_id": session.id, "status": response.status_code},
        )
        sign_out(db, session)
        return False

    session.last_validated_at = _utcnow()
    db.add(session)
    db.commit()
    return True
