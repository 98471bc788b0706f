from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from wmsdash.apps.data.store import DataStore
from wmsdash.apps.exports.services import ExportColumn, generic_cell
from wmsdash.apps.smart_fields import services as smart_fields
from wmsdash.utils.listing import many2one_name, matches_search, paginate

logger = logging.getLogger(__name__)

LOT_MODEL = "stock.lot"
CARDS_PER_PAGE = 9
MAX_DEFAULT_COLUMNS = 6
LOTS_LIMIT = 1000

SERIAL_NUMBER_COLUMNS = [
    {"id": "product_id", "label": "Product"},
    {"id": "name", "label": "Serial Number"},
    {"id": "location_id", "label": "Location"},
    {"id": "x_category_id", "label": "Category"},
    {"id": "x_subcategory_id", "label": "Subcategory"},
    {"id": "x_group_id", "label": "Group"},
    {"id": "x_subgroup_id", "label": "Subgroup"},
    {"id": "x_brand_id", "label": "Brand"},
    {"id": "x_manufacturer_id", "label": "Manufacturer"},
    {"id": "x_model_id", "label": "Model"},
    {"id": "x_custodian_id", "label": "Custodian"},
    {"id": "x_condition", "label": "Condition"},
    {"id": "x_disposal_status", "label": "Disposal Status"},
    {"id": "x_rfid", "label": "RFID Tag"},
    {"id": "product_qty", "label": "Quantity"},
    {"id": "ref", "label": "Reference"},
    {"id": "x_description", "label": "Description"},
    {"id": "x_original_barcode", "label": "Original Barcode"},
    {"id": "x_ams_item_id", "label": "AMS Item ID"},
    {"id": "x_disposal_date", "label": "Disposal Date"},
    {"id": "create_date", "label": "Created"},
    {"id": "write_date", "label": "Modified"},
]

DEFAULT_VISIBLE_COLUMNS = [
    "product_id",
    "name",
    "location_id",
    "x_category_id",
    "x_subcategory_id",
    "x_group_id",
    "x_subgroup_id",
    "x_brand_id",
    "x_manufacturer_id",
    "x_model_id",
    "x_custodian_id",
    "x_condition",
]

# Candidate field ids per logical column, in preference order.
_LOGICAL_COLUMNS = (
    ("name",),
    ("location_id",),
    ("product_id",),
    ("qty_available", "quantity", "on_hand_quantity"),
    ("default_code", "internal_reference", "ref"),
)
_STATUS_FIELDS = ("status", "state")


def default_visible_columns(available: Sequence[str]) -> List[str]:
    """
    Lot number, location, product, on-hand quantity, internal reference and
    status when present, then id and other columns up to six. The status
    field is never dropped.
    """
    available = list(available)
    chosen: List[str] = []

    def push_first(candidates: Iterable[str]) -> None:
        for candidate in candidates:
            if candidate in available and candidate not in chosen:
                chosen.append(candidate)
                return

    for candidates in _LOGICAL_COLUMNS:
        push_first(candidates)
    push_first(_STATUS_FIELDS)

    if len(chosen) < MAX_DEFAULT_COLUMNS and "id" in available and "id" not in chosen:
        chosen.append("id")
    for column in available:
        if len(chosen) >= MAX_DEFAULT_COLUMNS:
            break
        if column not in chosen and column not in _STATUS_FIELDS:
            chosen.append(column)
    push_first(_STATUS_FIELDS)
    return chosen


def fetch_lots(store: DataStore) -> List[dict]:
    return smart_fields.fetch_records(
        store.client,
        LOT_MODEL,
        limit=LOTS_LIMIT,
        order="id desc",
        default_error="Failed to fetch serial numbers",
    )


def filter_lots(lots: Iterable[dict], search: str) -> List[dict]:
    return [
        lot
        for lot in lots
        if matches_search(
            search,
            lot.get("name"),
            many2one_name(lot.get("product_id")),
            lot.get("default_code"),
            many2one_name(lot.get("location_id")),
        )
    ]


def available_columns(lots: List[dict]) -> List[dict]:
    if not lots:
        return list(SERIAL_NUMBER_COLUMNS)
    fixed = {c["id"]: c["label"] for c in SERIAL_NUMBER_COLUMNS}
    return smart_fields.extract_columns(lots, fixed)


def list_serials(
    store: DataStore,
    *,
    search: str = "",
    view: str = "table",
    page: int = 1,
    per_page: int = CARDS_PER_PAGE,
) -> dict:
    lots = fetch_lots(store)
    filtered = filter_lots(lots, search)
    columns = available_columns(lots)
    if view == "cards":
        shown, total_pages = paginate(filtered, page, per_page)
        page = min(max(page, 1), total_pages)
    else:
        shown, total_pages, page = filtered, 1, 1
    logger.info("serial numbers listed", extra={"records": len(lots), "filtered": len(filtered)})
    return {
        "lots": shown,
        "filtered": filtered,
        "columns": columns,
        "visible_columns": default_visible_columns([c["id"] for c in columns]),
        "stats": {"total": len(lots), "active": len(lots)},
        "total": len(filtered),
        "page": page,
        "total_pages": total_pages,
    }


EXPORT_TITLE = "Serial Numbers Export"


def export_columns(columns: List[dict], visible: Optional[List[str]] = None) -> List[ExportColumn]:
    by_id = {c["id"]: c for c in columns}
    visible = visible or default_visible_columns(list(by_id))
    return [
        ExportColumn(by_id[cid]["label"], lambda row, f=cid: generic_cell(row.get(f)))
        for cid in visible
        if cid in by_id
    ]


def export_summary(rows: List[dict]) -> List[tuple]:
    return [("Total Records", len(rows))]
