from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class ResourceState(BaseModel):
    data_type: str
    records: List[Dict[str, Any]] = []
    count: int = 0
    loading: bool = False
    error: Optional[str] = None


class DataState(BaseModel):
    resource_types: List[str]
    loading: Dict[str, bool] = {}
    errors: Dict[str, str] = {}
    counts: Dict[str, int] = {}


class FetchManyRequest(BaseModel):
    data_types: List[str]


class FetchResults(BaseModel):
    results: Dict[str, bool]
    errors: Dict[str, str] = {}


class LandedCostLines(BaseModel):
    cost_id: int
    lines: List[Dict[str, Any]] = []
