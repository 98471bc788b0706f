from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from wmsdash.apps.data.router import get_session_store
from wmsdash.apps.data.store import DataStore
from wmsdash.apps.exports import services as exports
from wmsdash.apps.exports.schemas import ExportRequest, export_request

from . import schemas, services

router = APIRouter(prefix="/valuation", tags=["valuation"])


def valuation_filters(
    search: str = Query(""),
    category: Optional[List[str]] = Query(None),
    value_range: Optional[List[str]] = Query(None),
    date_from: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    date_to: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
) -> services.ValuationFilters:
    return services.ValuationFilters(
        search=search,
        categories=list(category or []),
        value_ranges=list(value_range or []),
        date_from=date_from,
        date_to=date_to,
    )


@router.get("", response_model=schemas.ValuationList)
def read_valuation(
    page: int = Query(1, ge=1),
    per_page: int = Query(services.CARDS_PER_PAGE, ge=1, le=200),
    filters: services.ValuationFilters = Depends(valuation_filters),
    store: DataStore = Depends(get_session_store),
):
    result = services.load_valuation(store, filters, page=page, per_page=per_page)
    result.pop("filtered")
    stats = schemas.ValuationStats(**result.pop("stats"))
    return schemas.ValuationList(stats=stats, **result)


@router.get("/export")
def export_valuation(
    columns: Optional[List[str]] = Query(None),
    export: ExportRequest = Depends(export_request),
    filters: services.ValuationFilters = Depends(valuation_filters),
    store: DataStore = Depends(get_session_store),
):
    result = services.load_valuation(store, filters)
    export_file = exports.export_rows(
        result["filtered"],
        services.export_columns(columns),
        title=services.EXPORT_TITLE,
        fmt=export.fmt,
        scope=export.scope,
        page=export.page,
        per_page=export.per_page,
        selected_ids=export.selected_ids,
        summary=services.export_summary,
        date_range=(filters.date_from, filters.date_to),
    )
    return exports.to_response(export_file)
