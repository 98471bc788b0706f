from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, JSON, String, Text

from ...database import Base
from ...utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ImportJob(Base):
    """
    One run of an import wizard (OCR invoice or Excel serial numbers).

    `step` is where the wizard currently stands; `state` carries everything
    the next step needs (extracted invoice data, column mappings, ...).
    """

    __tablename__ = "import_jobs"
    __table_args__ = (
        Index("ix_import_jobs_session_kind", "session_id", "kind"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    session_id = Column(
        String(36),
        ForeignKey("dashboard_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    kind = Column(String(16), nullable=False)
    step = Column(String(16), nullable=False, default="upload")
    file_path = Column(String(512), nullable=True)
    original_filename = Column(String(255), nullable=True)
    state = Column(JSON, nullable=False, default=dict)
    result = Column(JSON, nullable=True)
    error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<ImportJob id={self.id} kind={self.kind} step={self.step}>"
