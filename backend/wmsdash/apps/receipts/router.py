from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from wmsdash.apps.data.router import get_session_store
from wmsdash.apps.data.store import DataStore
from wmsdash.apps.exports import services as exports
from wmsdash.apps.exports.schemas import ExportRequest, export_request
from wmsdash.apps.smart_fields.services import SmartFieldsError

from . import schemas, services

router = APIRouter(prefix="/receipts", tags=["receipts"])


def receipt_filters(
    search: str = Query(""),
    status_: Optional[List[str]] = Query(None, alias="status"),
    to: Optional[List[str]] = Query(None),
    from_: Optional[List[str]] = Query(None, alias="from"),
    date_from: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    date_to: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
) -> services.ReceiptFilters:
    return services.ReceiptFilters(
        search=search,
        statuses=list(status_ or []),
        to=list(to or []),
        from_=list(from_ or []),
        date_from=date_from,
        date_to=date_to,
    )


def _listing(store: DataStore, filters: services.ReceiptFilters, **kwargs) -> services.ReceiptListing:
    try:
        return services.list_receipts(store, filters, **kwargs)
    except SmartFieldsError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)


def _action_error(exc: services.PickingActionError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)


@router.get("", response_model=schemas.ReceiptList)
def list_receipts(
    view: str = Query("table", pattern="^(table|cards)$"),
    page: int = Query(1, ge=1),
    per_page: int = Query(services.CARDS_PER_PAGE, ge=1, le=200),
    filters: services.ReceiptFilters = Depends(receipt_filters),
    store: DataStore = Depends(get_session_store),
):
    listing = _listing(store, filters, view=view, page=page, per_page=per_page)
    return schemas.ReceiptList(
        receipts=listing.receipts,
        records=listing.records,
        columns=listing.columns,
        stats=schemas.ReceiptStats(**listing.stats),
        facets=listing.facets,
        total=listing.total,
        page=listing.page,
        total_pages=listing.total_pages,
    )


@router.get("/export")
def export_receipts(
    export: ExportRequest = Depends(export_request),
    filters: services.ReceiptFilters = Depends(receipt_filters),
    store: DataStore = Depends(get_session_store),
):
    listing = _listing(store, filters)
    rows = listing.records if export.scope == exports.SCOPE_PAGE else listing.all_records
    export_file = exports.export_rows(
        rows,
        services.export_columns(listing.columns),
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


@router.post("/bulk-delete", response_model=schemas.BulkDeleteResult)
def bulk_delete(
    payload: schemas.BulkDeleteRequest,
    filters: services.ReceiptFilters = Depends(receipt_filters),
    store: DataStore = Depends(get_session_store),
):
    ids = payload.ids
    if payload.select_all:
        ids = [r["id"] for r in _listing(store, filters).receipts]
    if not ids:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No records selected")
    result = services.bulk_delete(store, ids)
    return schemas.BulkDeleteResult(
        deleted=result.deleted,
        failed=result.failed,
        failed_ids=result.failed_ids,
        message=result.message,
    )


@router.post("/{picking_id}/validate", response_model=schemas.ActionResult)
def validate_receipt(picking_id: int, store: DataStore = Depends(get_session_store)):
    try:
        services.validate_picking(store, picking_id)
    except services.PickingActionError as exc:
        raise _action_error(exc)
    return schemas.ActionResult(message="Receipt validated")


@router.post("/{picking_id}/return", response_model=schemas.ActionResult)
def return_receipt(picking_id: int, store: DataStore = Depends(get_session_store)):
    try:
        services.return_picking(store, picking_id)
    except services.PickingActionError as exc:
        raise _action_error(exc)
    return schemas.ActionResult(message="Return created")


@router.post("/{picking_id}/cancel", response_model=schemas.ActionResult)
def cancel_receipt(picking_id: int, store: DataStore = Depends(get_session_store)):
    try:
        services.cancel_picking(store, picking_id)
    except services.PickingActionError as exc:
        raise _action_error(exc)
    return schemas.ActionResult(message="Receipt cancelled")


@router.delete("/{picking_id}", response_model=schemas.ActionResult)
def delete_receipt(picking_id: int, store: DataStore = Depends(get_session_store)):
    try:
        services.delete_picking(store, picking_id)
    except services.PickingActionError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to delete record")
    return schemas.ActionResult(message="Record deleted successfully")


@router.get("/{picking_id}/print")
def print_receipt(picking_id: int, store: DataStore = Depends(get_session_store)):
    try:
        content = services.print_picking(store, picking_id)
    except services.PickingActionError as exc:
        raise _action_error(exc)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=picking_{picking_id}.pdf"},
    )
