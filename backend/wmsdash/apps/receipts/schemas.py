from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel

from wmsdash.apps.smart_fields.schemas import Column


class ReceiptStats(BaseModel):
    total: int = 0
    draft: int = 0
    done: int = 0
    scheduled_today: int = 0


class ReceiptList(BaseModel):
    receipts: List[Dict[str, Any]] = []
    records: List[Dict[str, Any]] = []
    columns: List[Column] = []
    stats: ReceiptStats
    facets: Dict[str, List[str]] = {}
    total: int = 0
    page: int = 1
    total_pages: int = 1


class ActionResult(BaseModel):
    success: bool = True
    message: str


class BulkDeleteRequest(BaseModel):
    ids: List[int] = []
    # Delete every receipt matching the current filters instead of `ids`.
    select_all: bool = False


class BulkDeleteResult(BaseModel):
    deleted: int = 0
    failed: int = 0
    failed_ids: List[int] = []
    message: str
