from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel

from wmsdash.apps.smart_fields.schemas import Column


class SerialStats(BaseModel):
    total: int = 0
    active: int = 0


class SerialList(BaseModel):
    lots: List[Dict[str, Any]] = []
    columns: List[Column] = []
    visible_columns: List[str] = []
    stats: SerialStats
    total: int = 0
    page: int = 1
    total_pages: int = 1
