"""
Helpers shared by the list screens: Odoo many2one handling, search,
date-range checks and page slicing.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, List, Optional, Sequence, Tuple


def many2one_id(value: Any) -> Any:
    """Odoo returns many2one fields as `[id, display_name]` or `False`."""
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    if value is False:
        return None
    return value


def many2one_name(value: Any, default: str = "") -> str:
    if isinstance(value, (list, tuple)):
        return str(value[1]) if len(value) > 1 and value[1] else default
    if isinstance(value, dict):
        return str(value.get("name") or value.get("display_name") or default)
    if value in (None, False):
        return default
    return str(value)


def matches_search(query: Optional[str], *values: Any) -> bool:
    q = (query or "").strip().lower()
    if not q:
        return True
    return any(q in str(v or "").lower() for v in values)


def in_selection(value: Any, selected: Optional[Sequence[str]]) -> bool:
    return not selected or value in selected


def in_date_range(date_value: Optional[str], date_from: Optional[str], date_to: Optional[str]) -> bool:
    """
    Inclusive check on the `YYYY-MM-DD` prefix. The range only applies when
    both bounds and the date are present.
    """
    if not (date_from and date_to and date_value):
        return True
    day = str(date_value)[:10]
    return date_from <= day <= date_to


def unique_values(values: Iterable[Any]) -> List[Any]:
    seen = []
    for value in values:
        if value not in (None, "", False) and value not in seen:
            seen.append(value)
    return seen


def paginate(items: Sequence[Any], page: int, per_page: int) -> Tuple[List[Any], int]:
    """Return the slice for 1-based `page` and the total page count."""
    total_pages = max(1, math.ceil(len(items) / per_page)) if per_page > 0 else 1
    page = min(max(page, 1), total_pages)
    start = (page - 1) * per_page
    return list(items[start:start + per_page]), total_pages
