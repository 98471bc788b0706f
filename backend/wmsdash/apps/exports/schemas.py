from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from fastapi import Query


@dataclass
class ExportRequest:
    fmt: str = "csv"
    scope: str = "all"
    page: int = 1
    per_page: int = 9
    selected_ids: List[str] = field(default_factory=list)


def export_request(
    fmt: str = Query("csv", alias="format", pattern="^(csv|pdf)$"),
    scope: str = Query("all", pattern="^(all|page|selected)$"),
    page: int = Query(1, ge=1),
    per_page: int = Query(9, ge=1, le=500),
    selected: Optional[List[str]] = Query(None),
) -> ExportRequest:
    """Query parameters shared by every list export endpoint."""
    return ExportRequest(
        fmt=fmt,
        scope=scope,
        page=page,
        per_page=per_page,
        selected_ids=list(selected or []),
    )
