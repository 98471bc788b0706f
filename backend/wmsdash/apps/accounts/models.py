from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Index, String

from ...database import Base
from ...utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DashboardSession(Base):
    """
    One signed-in dashboard user.

    The dashboard JWT carries this row's id; the row carries the Odoo session
    id and the Odoo instance headers the proxy needs for every call.
    """

    __tablename__ = "dashboard_sessions"
    __table_args__ = (
        Index("ix_dashboard_sessions_tenant_active", "tenant_id", "is_active"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    odoo_session_id = Column(String(255), nullable=False)
    uid = Column(String(32), nullable=False, default="")
    partner_id = Column(String(32), nullable=False, default="")
    name = Column(String(255), nullable=False, default="")
    email = Column(String(255), nullable=True)
    tenant_id = Column(String(64), nullable=True)
    odoo_base = Column(String(255), nullable=True)
    odoo_db = Column(String(128), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    last_validated_at = Column(DateTime(timezone=True), nullable=True)
    signed_out_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<DashboardSession id={self.id} uid={self.uid} active={self.is_active}>"
