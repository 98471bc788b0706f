# backend/wmsdash/security.py

"""
Security helpers for the dashboard.

Responsibilities:
- JWT access token creation and decoding
- FastAPI dependencies that resolve the current dashboard session

Passwords never touch this service's storage: they are forwarded to the
proxy, which signs in to Odoo. The JWT only names a row in
`dashboard_sessions`.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .database import get_db
from wmsdash.apps.accounts import models as account_models
from wmsdash.apps.data import registry as data_registry

# ---------------------------------------------------------------------------
# CONFIG
# ---------------------------------------------------------------------------

# In production, ALWAYS override these via environment variables.
SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME_IN_PRODUCTION")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

try:
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
        os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "480")
    )
except ValueError:
    ACCESS_TOKEN_EXPIRE_MINUTES = 480

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/signin")


# ---------------------------------------------------------------------------
# JWT TOKENS
# ---------------------------------------------------------------------------


def create_access_token(
    *,
    data: dict,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed JWT.

    The `data` dict should already include the subject, e.g.:
        {"sub": session.id, "uid": session.uid}
    """
    to_encode = data.copy()

    expire = datetime.now(timezone.utc) + (
        expires_delta
        if expires_delta is not None
        else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


# ---------------------------------------------------------------------------
# SESSION LOOKUP
# ---------------------------------------------------------------------------


def get_session_by_id(
    db: Session,
    session_id: Optional[str],
) -> Optional[account_models.DashboardSession]:
    if session_id is None:
        return None
    return (
        db.query(account_models.DashboardSession)
        .filter(account_models.DashboardSession.id == str(session_id).strip())
        .first()
    )


# ---------------------------------------------------------------------------
# FASTAPI DEPENDENCIES
# ---------------------------------------------------------------------------


def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_session(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> account_models.DashboardSession:
    """
    Decode the JWT access token and return the dashboard session it names.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
        session_id: Optional[str] = payload.get("sub")
        if session_id is None:
            raise _credentials_exception()
    except JWTError:
        raise _credentials_exception()

    session = get_session_by_id(db, session_id)
    if session is None:
        raise _credentials_exception()
    return session


def get_current_active_session(
    current_session: account_models.DashboardSession = Depends(get_current_session),
) -> account_models.DashboardSession:
    """
    Signed-out sessions keep their row for audit but can no longer be used.
    """
    if not current_session.is_active:
        data_registry.drop_store(current_session.id)
        raise _credentials_exception("Session has ended. Please sign in again.")
    return current_session
