from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class ValuationStats(BaseModel):
    total_value: float = 0.0
    total_items: int = 0
    average_value: float = 0.0
    highest_item: Optional[Dict[str, Any]] = None


class ValuationList(BaseModel):
    items: List[Dict[str, Any]] = []
    stats: ValuationStats
    categories: List[str] = []
    currency: str
    currencies: List[Dict[str, Any]] = []
    total: int = 0
    page: int = 1
    total_pages: int = 1
    errors: Dict[str, str] = {}
