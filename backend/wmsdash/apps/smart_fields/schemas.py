from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel


class Column(BaseModel):
    id: str
    label: str


class SmartFieldRecords(BaseModel):
    model: str
    records: List[Dict[str, Any]] = []
    columns: List[Column] = []
    fields: List[Dict[str, Any]] = []
