from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from wmsdash.apps.data.router import get_session_store
from wmsdash.apps.data.store import DataStore
from wmsdash.apps.exports import services as exports
from wmsdash.apps.exports.schemas import ExportRequest, export_request
from wmsdash.apps.smart_fields.services import SmartFieldsError

from . import schemas, services

router = APIRouter(prefix="/serials", tags=["serials"])


def _listing(store: DataStore, **kwargs) -> dict:
    try:
        return services.list_serials(store, **kwargs)
    except SmartFieldsError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)


@router.get("", response_model=schemas.SerialList)
def list_serials(
    search: str = Query(""),
    view: str = Query("table", pattern="^(table|cards)$"),
    page: int = Query(1, ge=1),
    per_page: int = Query(services.CARDS_PER_PAGE, ge=1, le=200),
    store: DataStore = Depends(get_session_store),
):
    listing = _listing(store, search=search, view=view, page=page, per_page=per_page)
    return schemas.SerialList(
        lots=listing["lots"],
        columns=listing["columns"],
        visible_columns=listing["visible_columns"],
        stats=schemas.SerialStats(**listing["stats"]),
        total=listing["total"],
        page=listing["page"],
        total_pages=listing["total_pages"],
    )


@router.get("/export")
def export_serials(
    search: str = Query(""),
    columns: Optional[List[str]] = Query(None),
    export: ExportRequest = Depends(export_request),
    store: DataStore = Depends(get_session_store),
):
    listing = _listing(store, search=search)
    export_file = exports.export_rows(
        listing["filtered"],
        services.export_columns(listing["columns"], columns),
        title=services.EXPORT_TITLE,
        fmt=export.fmt,
        scope=export.scope,
        page=export.page,
        per_page=export.per_page,
        selected_ids=export.selected_ids,
        summary=services.export_summary,
    )
    return exports.to_response(export_file)
