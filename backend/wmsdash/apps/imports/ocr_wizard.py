"""
OCR invoice import: turn a supplier invoice (image or PDF) into an Odoo
receipt.

Steps: upload -> review -> complete. The proxy does the OCR and the Odoo
writes; this module keeps the review state (vendor, picking type, line
items) between requests.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from wmsdash.apps.accounts import models as account_models
from wmsdash.apps.data.store import DataStore
from wmsdash.apps.proxy import ProxyClient, ProxyError, error_message, payload_message
from wmsdash.apps.proxy.client import LARGE_TIMEOUT_MS

from . import models, ocr
from . import services as jobs

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2
SEARCH_LIMIT = 10
UNSUPPORTED_FILE = "Unsupported file type. Upload a JPEG, PNG, WebP, TIFF or PDF file."


def initial_state() -> Dict[str, Any]:
    return {
        "ocr_data": None,
        "vendor_id": None,
        "vendor_name": "",
        "vendor_results": [],
        "picking_type_id": None,
    }


def _search(client: ProxyClient, path: str, key: str, query: str, limit: int) -> List[dict]:
    if not client.odoo_session_id or len((query or "").strip()) < MIN_SEARCH_LENGTH:
        return []
    try:
        payload = client.call(
            "POST",
            path,
            json=client.session_body(query=query, limit=limit),
            retries=0,
        )
    except ProxyError as exc:
        logger.error("ocr lookup failed", extra={"path": path, "query": query, "error": str(exc)})
        return []
    results = payload.get(key)
    return results if isinstance(results, list) else []


def search_vendors(client: ProxyClient, query: str, limit: int = SEARCH_LIMIT) -> List[dict]:
    return _search(client, "/ocr/search-vendors", "vendors", query, limit)


def search_products(client: ProxyClient, query: str, limit: int = SEARCH_LIMIT) -> List[dict]:
    return _search(client, "/ocr/search-products", "products", query, limit)


def default_picking_type(store: DataStore) -> Optional[int]:
    """First incoming operation type, the same default Odoo's receipt menu uses."""
    if not store.is_loaded("stockPickingTypes"):
        store.fetch_data("stockPickingTypes")
    for picking_type in store.get("stockPickingTypes"):
        if picking_type.get("code") == "incoming":
            return picking_type.get("id")
    return None


def start(
    db: Session,
    session: account_models.DashboardSession,
    store: DataStore,
    content: bytes,
    filename: Optional[str],
    content_type: Optional[str] = None,
) -> models.ImportJob:
    if ocr.detect_file_type(content, filename) not in ocr.OCR_FILE_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=UNSUPPORTED_FILE)
    job = jobs.create_job(db, session, jobs.KIND_OCR, initial_state())
    return upload(db, job, store, content, filename, content_type)


def upload(
    db: Session,
    job: models.ImportJob,
    store: DataStore,
    content: bytes,
    filename: Optional[str],
    content_type: Optional[str] = None,
) -> models.ImportJob:
    jobs.require_step(job, jobs.STEP_UPLOAD)
    file_type = ocr.detect_file_type(content, filename)
    if file_type not in ocr.OCR_FILE_TYPES:
        raise jobs.fail(db, job, status.HTTP_400_BAD_REQUEST, UNSUPPORTED_FILE)

    jobs.discard_upload(job)
    jobs.store_upload(job, content, filename)
    db.commit()
    process(db, job, store, content, content_type or ocr.image_media_type(filename, file_type))
    return job


def process(
    db: Session,
    job: models.ImportJob,
    store: DataStore,
    content: bytes,
    content_type: str,
) -> None:
    client = store.client
    files = {"file": (job.original_filename or "invoice", content, content_type)}
    try:
        payload = client.call(
            "POST",
            "/ocr/process",
            files=files,
            timeout_ms=LARGE_TIMEOUT_MS,
            retries=0,
            default_error="OCR processing failed",
        )
    except ProxyError as exc:
        jobs.discard_upload(job)
        raise jobs.fail(db, job, status.HTTP_502_BAD_GATEWAY, error_message(exc, "Failed to process invoice"))
    if not payload.get("success"):
        jobs.discard_upload(job)
        raise jobs.fail(db, job, status.HTTP_502_BAD_GATEWAY, payload_message(payload, "OCR processing failed"))

    ocr_data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
    if not isinstance(ocr_data.get("items"), list):
        ocr_data["items"] = []
    vendor = ocr_data.get("vendor") if isinstance(ocr_data.get("vendor"), dict) else {}
    vendor_name = str(vendor.get("name") or "")
    jobs.update_state(
        job,
        ocr_data=ocr_data,
        vendor_id=None,
        vendor_name=vendor_name,
        vendor_results=search_vendors(client, vendor_name) if vendor_name else [],
        picking_type_id=default_picking_type(store),
    )
    job.step = jobs.STEP_REVIEW
    job.error = None
    db.commit()
    logger.info(
        "invoice processed",
        extra={"job_id": job.id, "items": len(ocr_data["items"]), "vendor": vendor_name},
    )


# ---------------------------------------------------------------------------
# Review edits
# ---------------------------------------------------------------------------


def set_vendor_name(db: Session, job: models.ImportJob, client: ProxyClient, name: str) -> models.ImportJob:
    """Typing a vendor name drops the matched vendor and searches again."""
    jobs.require_step(job, jobs.STEP_REVIEW)
    jobs.update_state(job, vendor_name=name, vendor_id=None, vendor_results=search_vendors(client, name))
    db.commit()
    return job


def select_vendor(db: Session, job: models.ImportJob, vendor_id: int, vendor_name: str) -> models.ImportJob:
    jobs.require_step(job, jobs.STEP_REVIEW)
    jobs.update_state(job, vendor_id=vendor_id, vendor_name=vendor_name)
    db.commit()
    return job


def set_picking_type(db: Session, job: models.ImportJob, picking_type_id: Optional[int]) -> models.ImportJob:
    jobs.require_step(job, jobs.STEP_REVIEW)
    jobs.update_state(job, picking_type_id=picking_type_id)
    db.commit()
    return job


def _items(job: models.ImportJob, index: int) -> List[dict]:
    items = list(((job.state or {}).get("ocr_data") or {}).get("items") or [])
    if not 0 <= index < len(items):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    return items


def _save_items(job: models.ImportJob, items: List[dict]) -> None:
    ocr_data = dict(job.state["ocr_data"])
    ocr_data["items"] = items
    jobs.update_state(job, ocr_data=ocr_data)


def update_item(
    db: Session,
    job: models.ImportJob,
    index: int,
    *,
    quantity: Optional[float] = None,
    product_id: Optional[int] = None,
    product_name: Optional[str] = None,
) -> models.ImportJob:
    jobs.require_step(job, jobs.STEP_REVIEW)
    items = _items(job, index)
    item = dict(items[index])
    if quantity is not None:
        item["quantity"] = quantity
        item["subtotal"] = quantity * float(item.get("unit_price") or 0)
    if product_id is not None:
        item["matched_product_id"] = product_id
        item["matched_product_name"] = product_name or ""
    items[index] = item
    _save_items(job, items)
    db.commit()
    return job


def remove_item(db: Session, job: models.ImportJob, index: int) -> models.ImportJob:
    jobs.require_step(job, jobs.STEP_REVIEW)
    items = _items(job, index)
    del items[index]
    _save_items(job, items)
    db.commit()
    return job


# ---------------------------------------------------------------------------
# Create / reset
# ---------------------------------------------------------------------------


def create_receipt(db: Session, job: models.ImportJob, store: DataStore) -> models.ImportJob:
    jobs.require_step(job, jobs.STEP_REVIEW)
    state = job.state or {}
    ocr_data = state.get("ocr_data")
    if not ocr_data:
        raise jobs.fail(db, job, status.HTTP_400_BAD_REQUEST, "Missing required data")

    invoice = ocr_data.get("invoice") if isinstance(ocr_data.get("invoice"), dict) else {}
    client = store.client
    body = client.session_body(
        ocrData=ocr_data,
        vendorId=state.get("vendor_id"),
        pickingTypeId=state.get("picking_type_id"),
        scheduledDate=invoice.get("date"),
    )
    try:
        payload = client.call(
            "POST",
            "/ocr/create-receipt",
            json=body,
            retries=0,
            default_error="Failed to create receipt",
        )
    except ProxyError as exc:
        raise jobs.fail(db, job, status.HTTP_502_BAD_GATEWAY, error_message(exc, "Failed to create receipt"))
    if not payload.get("success"):
        raise jobs.fail(db, job, status.HTTP_502_BAD_GATEWAY, payload_message(payload, "Failed to create receipt"))

    job.result = {"pickingId": payload.get("pickingId")}
    job.step = jobs.STEP_COMPLETE
    job.error = None
    jobs.discard_upload(job)
    db.commit()
    logger.info("receipt created from invoice", extra={"job_id": job.id, "picking_id": payload.get("pickingId")})
    store.fetch_data("pickings")
    return job


def reset(db: Session, job: models.ImportJob) -> models.ImportJob:
    jobs.discard_upload(job)
    job.state = initial_state()
    job.result = None
    job.error = None
    job.step = jobs.STEP_UPLOAD
    db.commit()
    return job
