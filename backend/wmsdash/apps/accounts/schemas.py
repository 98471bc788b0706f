from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class SignInRequest(BaseModel):
    email: str
    password: str
    tenant_id: Optional[str] = None


class SignInResponse(BaseModel):
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    uid: str
    partner_id: str
    name: str


class SessionRead(BaseModel):
    id: str
    uid: str
    partner_id: str
    name: str
    email: Optional[str] = None
    tenant_id: Optional[str] = None
    is_active: bool
    created_at: datetime
    last_validated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SessionValidation(BaseModel):
    is_valid: bool
