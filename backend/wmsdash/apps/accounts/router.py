# backend/wmsdash/apps/accounts/router.py

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from wmsdash.database import get_db
from wmsdash.security import get_current_active_session
from . import models, schemas, services

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/signin",
    response_model=schemas.SignInResponse,
    summary="Sign in to Odoo through the proxy",
)
def signin(
    payload: schemas.SignInRequest,
    db: Session = Depends(get_db),
):
    """
    Sign in with the Odoo email and password.

    - 401 with a user-friendly message when the proxy rejects the credentials
    - 409 with `setupRequired` when the proxy has no Odoo instance configured
    """
    try:
        outcome = services.sign_in(
            db,
            email=payload.email,
            password=payload.password,
            tenant_id=payload.tenant_id,
        )
    except services.SignInError as exc:
        if exc.setup_required:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"message": exc.message, "setupRequired": True, "redirectTo": "/setup"},
            )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.message,
        )

    session = outcome.session
    return schemas.SignInResponse(
        access_token=outcome.access_token,
        expires_in=outcome.expires_in,
        uid=session.uid,
        partner_id=session.partner_id,
        name=session.name,
    )


@router.post("/session", response_model=schemas.SessionValidation)
def validate(
    db: Session = Depends(get_db),
    current_session: models.DashboardSession = Depends(get_current_active_session),
):
    return schemas.SessionValidation(is_valid=services.validate_session(db, current_session))


@router.post("/signout", status_code=status.HTTP_204_NO_CONTENT)
def signout(
    db: Session = Depends(get_db),
    current_session: models.DashboardSession = Depends(get_current_active_session),
):
    services.sign_out(db, current_session)


@router.get("/me", response_model=schemas.SessionRead)
def me(current_session: models.DashboardSession = Depends(get_current_active_session)):
    return current_session
