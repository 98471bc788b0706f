"""
Receipts (incoming pickings) screen.

Records come from the SmartFieldSelector routes filtered on
`picking_type_code = incoming`; cards, stats and facets are shaped here and
picking actions go through the legacy `/pickings/<id>/...` routes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from wmsdash.apps.data.store import DataStore
from wmsdash.apps.exports.services import ExportColumn, field_columns
from wmsdash.apps.proxy import ProxyError, error_message, payload_message
from wmsdash.apps.smart_fields import services as smart_fields
from wmsdash.utils.listing import (
    in_date_range,
    in_selection,
    many2one_name,
    matches_search,
    paginate,
    unique_values,
)

logger = logging.getLogger(__name__)

PICKING_MODEL = "stock.picking"
CARDS_PER_PAGE = 9

STATUS_MAP = {
    "draft": "draft",
    "confirmed": "ready",
    "assigned": "ready",
    "waiting": "ready",
    "done": "done",
    "cancel": "cancelled",
}

ACTIVE_STATES = ("assigned", "waiting", "confirmed")


class PickingActionError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass
class ReceiptFilters:
    search: str = ""
    statuses: List[str] = field(default_factory=list)
    to: List[str] = field(default_factory=list)
    from_: List[str] = field(default_factory=list)
    date_from: Optional[str] = None
    date_to: Optional[str] = None


@dataclass
class ReceiptListing:
    records: List[dict]
    receipts: List[dict]
    columns: List[dict]
    stats: Dict[str, int]
    facets: Dict[str, List[str]]
    total: int
    page: int
    total_pages: int
    # Every receipt record, before filters; "all" exports use these.
    all_records: List[dict] = field(default_factory=list)


@dataclass
class BulkDeleteResult:
    deleted: int = 0
    failed: int = 0
    failed_ids: List[int] = field(default_factory=list)

    @property
    def message(self) -> str:
        if not self.failed:
            return f"{self.deleted} records deleted successfully"
        return f"Deleted {self.deleted} records, {self.failed} failed"


# ---------------------------------------------------------------------------
# Shaping
# ---------------------------------------------------------------------------


def _operations_count(picking: dict) -> int:
    for key in ("move_line_ids", "move_lines"):
        if isinstance(picking.get(key), list):
            return len(picking[key])
    return 0


def map_picking_to_receipt(picking: dict) -> dict:
    state = picking.get("state")
    return {
        "id": picking.get("id"),
        "reference": picking.get("name") or "",
        "from": many2one_name(picking.get("location_id")),
        "to": many2one_name(picking.get("location_dest_id")),
        "contact": many2one_name(picking.get("partner_id")),
        "scheduledDate": picking.get("scheduled_date") or picking.get("scheduled_date_deadline") or "",
        "sourceDocument": picking.get("origin") or "",
        "batchTransfer": many2one_name(picking.get("batch_id")),
        "status": STATUS_MAP.get(state) or state or "draft",
        "operations": _operations_count(picking),
    }


def filter_receipts(receipts: Iterable[dict], filters: ReceiptFilters) -> List[dict]:
    out = []
    for r in receipts:
        if not matches_search(
            filters.search, r["reference"], r["contact"], r["from"], r["to"], r["sourceDocument"]
        ):
            continue
        if not in_selection(r["status"], filters.statuses):
            continue
        if not in_selection(r["to"], filters.to) or not in_selection(r["from"], filters.from_):
            continue
        if not in_date_range(r["scheduledDate"], filters.date_from, filters.date_to):
            continue
        out.append(r)
    return out


def receipt_stats(receipts: List[dict], today: Optional[date] = None) -> Dict[str, int]:
    today_str = (today or date.today()).isoformat()
    return {
        "total": len(receipts),
        "draft": sum(1 for r in receipts if r["status"] == "draft"),
        "done": sum(1 for r in receipts if r["status"] == "done"),
        "scheduled_today": sum(1 for r in receipts if (r["scheduledDate"] or "")[:10] == today_str),
    }


def receipt_facets(receipts: List[dict]) -> Dict[str, List[str]]:
    return {
        "statuses": unique_values(r["status"] for r in receipts),
        "to": unique_values(r["to"] for r in receipts),
        "from": unique_values(r["from"] for r in receipts),
    }


def list_receipts(
    store: DataStore,
    filters: ReceiptFilters,
    *,
    view: str = "table",
    page: int = 1,
    per_page: int = CARDS_PER_PAGE,
    today: Optional[date] = None,
) -> ReceiptListing:
    result = smart_fields.load_model(store.client, PICKING_MODEL, picking_type_code="incoming")
    receipts = [map_picking_to_receipt(p) for p in result.records]
    filtered = filter_receipts(receipts, filters)
    filtered_ids = {r["id"] for r in filtered}

    if view == "cards":
        shown, total_pages = paginate(filtered, page, per_page)
        page = min(max(page, 1), total_pages)
    else:
        shown, total_pages, page = filtered, 1, 1

    return ReceiptListing(
        records=[p for p in result.records if p.get("id") in filtered_ids],
        receipts=shown,
        columns=result.columns,
        stats=receipt_stats(receipts, today),
        facets=receipt_facets(receipts),
        total=len(filtered),
        page=page,
        total_pages=total_pages,
        all_records=list(result.records),
    )


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


def _picking_action(
    store: DataStore,
    picking_id: int,
    path: str,
    *,
    method: str = "POST",
    default_error: str,
    **extra: Any,
) -> None:
    client = store.client
    try:
        payload = client.call(
            method,
            path,
            json=client.session_body(**extra),
            retries=0,
            default_error=default_error,
        )
    except ProxyError as exc:
        logger.error(
            "picking action failed",
            extra={"picking_id": picking_id, "path": path, "error": str(exc)},
        )
        raise PickingActionError(error_message(exc, default_error)) from exc
    if not payload.get("success"):
        raise PickingActionError(payload_message(payload, default_error))
    store.fetch_data("pickings")


def validate_picking(store: DataStore, picking_id: int) -> None:
    _picking_action(store, picking_id, f"/pickings/{picking_id}/validate", default_error="Validate failed")


def return_picking(store: DataStore, picking_id: int) -> None:
    _picking_action(
        store, picking_id, f"/pickings/{picking_id}/return", default_error="Return failed", kwargs={}
    )


def cancel_picking(store: DataStore, picking_id: int) -> None:
    _picking_action(store, picking_id, f"/pickings/{picking_id}/cancel", default_error="Cancel failed")


def delete_picking(store: DataStore, picking_id: int) -> None:
    _picking_action(
        store, picking_id, f"/pickings/{picking_id}", method="DELETE", default_error="Delete failed"
    )


def print_picking(store: DataStore, picking_id: int) -> bytes:
    client = store.client
    try:
        return client.download("POST", f"/pickings/{picking_id}/print", json=client.session_body())
    except ProxyError as exc:
        logger.error("print failed", extra={"picking_id": picking_id, "error": str(exc)})
        raise PickingActionError("Failed to fetch PDF") from exc


def bulk_delete(store: DataStore, picking_ids: Iterable[int]) -> BulkDeleteResult:
    """Delete one by one, counting failures instead of stopping at the first."""
    client = store.client
    result = BulkDeleteResult()
    for picking_id in picking_ids:
        try:
            payload = client.call(
                "DELETE",
                f"/pickings/{picking_id}",
                json=client.session_body(),
                retries=0,
                default_error="Delete failed",
            )
            ok = bool(payload.get("success"))
        except ProxyError as exc:
            logger.error(
                "bulk delete item failed",
                extra={"picking_id": picking_id, "error": str(exc)},
            )
            ok = False
        if ok:
            result.deleted += 1
        else:
            result.failed += 1
            result.failed_ids.append(picking_id)
    store.fetch_data("pickings")
    return result


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

EXPORT_TITLE = "Receipts Export"


def export_columns(columns: List[dict]) -> List[ExportColumn]:
    return field_columns(columns)


def export_summary(records: List[dict]) -> List[tuple]:
    return [
        ("Total Records", len(records)),
        (
            "Total Items",
            sum(len(r["move_line_ids"]) for r in records if isinstance(r.get("move_line_ids"), list)),
        ),
        ("Active Items", sum(1 for r in records if r.get("state") in ACTIVE_STATES)),
        ("Completed", sum(1 for r in records if r.get("state") == "done")),
    ]
