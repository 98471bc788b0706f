"""
Excel lot/serial number import.

Steps: upload -> mapping -> preview -> complete. The proxy keeps the
uploaded sheet: `/import/serial/analyze` stores it and returns its path and
columns, and preview/execute work from that path plus the column mappings.
The sheet is also opened locally with pandas so that unreadable or empty
workbooks are turned away before anything is sent.
"""

from __future__ import annotations

import logging
import math
import re
from io import BytesIO
from typing import Any, Dict, List, Optional

import pandas as pd
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from wmsdash.apps.accounts import models as account_models
from wmsdash.apps.data.store import DataStore
from wmsdash.apps.proxy import ProxyClient, ProxyError, error_message, payload_message
from wmsdash.apps.proxy.client import LARGE_TIMEOUT_MS

from . import models, ocr
from . import services as jobs

logger = logging.getLogger(__name__)

PREVIEW_LIMIT = 10
EXCEL_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

INVALID_FILE = "Please select a valid Excel file (.xlsx or .xls)"
UNREADABLE_FILE = "Unable to process file"
EMPTY_FILE = "Uploaded file contains no data."
TRANSFORM_NONE = "none"
TRANSFORM_LOCATION = "location_sanitize"

TARGET_FIELDS = [
    {"field": "name", "label": "Serial Number / Barcode", "required": True},
    {"field": "x_rfid", "label": "RFID Tag", "required": False},
    {"field": "location_code", "label": "Location Code", "required": False, "transform": TRANSFORM_LOCATION},
    {"field": "x_category", "label": "Category", "required": False},
    {"field": "x_subcategory", "label": "Subcategory", "required": False},
    {"field": "x_group", "label": "Group", "required": False},
    {"field": "x_subgroup", "label": "Subgroup", "required": False},
    {"field": "x_brand", "label": "Brand", "required": False},
    {"field": "x_manufacturer", "label": "Manufacturer", "required": False},
    {"field": "x_model", "label": "Model", "required": False},
    {"field": "x_custodian", "label": "Custodian", "required": False},
    {"field": "x_condition", "label": "Condition", "required": False},
    {"field": "x_description", "label": "Description", "required": False},
    {"field": "x_original_barcode", "label": "Original Barcode", "required": False},
]

_LOCATION_CODE = re.compile(r"^(\d)?([A-Z]{2})(\d{2})([A-Z]{2})(\d{2})$", re.IGNORECASE)


def sanitize_location_code(code: Any) -> str:
    """`4AV09AF01` -> `AV/09/AF/01`; the leading zone digit is dropped."""
    if not isinstance(code, str) or not code:
        return ""
    cleaned = code.strip()
    match = _LOCATION_CODE.match(cleaned)
    if not match:
        return cleaned
    _, aisle, row, shelf, bin_ = match.groups()
    return f"{aisle.upper()}/{row}/{shelf.upper()}/{bin_}"


def initial_mappings() -> List[Dict[str, Any]]:
    return [
        {
            "excelColumn": None,
            "targetField": f["field"],
            "label": f["label"],
            "required": f["required"],
            "transform": f.get("transform", TRANSFORM_NONE),
        }
        for f in TARGET_FIELDS
    ]


def initial_state() -> Dict[str, Any]:
    return {"file_path": None, "row_count": 0, "columns": [], "mappings": initial_mappings(), "preview": []}


# ---------------------------------------------------------------------------
# Local checks
# ---------------------------------------------------------------------------


def cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def count_rows(content: bytes) -> int:
    """
    Data rows in the first sheet. Anything pandas cannot open (a renamed
    document, a truncated zip, ...) raises ValueError.
    """
    try:
        df = pd.read_excel(BytesIO(content), dtype=object)
    except Exception as exc:
        raise ValueError(str(exc) or exc.__class__.__name__) from exc
    return int(len(df.dropna(how="all")))


# Header keyword rules, applied per column in order; a target keeps the
# first column that matches it.
def _matches(target: str, name: str) -> bool:
    if target == "name":
        return "barcode" in name or "serial" in name or name == "name"
    if target == "x_rfid":
        return "rfid" in name
    if target == "location_code":
        return "location" in name or "loc" in name
    if target == "x_category":
        return "category" in name and "sub" not in name
    if target == "x_subcategory":
        return any(k in name for k in ("subcategory", "sub_category", "sub category"))
    if target == "x_group":
        return "group" in name and "sub" not in name
    if target == "x_subgroup":
        return any(k in name for k in ("subgroup", "sub_group", "sub group"))
    if target == "x_brand":
        return "brand" in name
    if target == "x_manufacturer":
        return "manufacturer" in name or "mfr" in name
    if target == "x_model":
        return "model" in name
    if target == "x_custodian":
        return any(k in name for k in ("custodian", "owner", "assigned"))
    if target == "x_condition":
        return "condition" in name or "status" in name
    if target == "x_description":
        return any(k in name for k in ("description", "notes", "remarks"))
    return False


def with_examples(mappings: List[Dict[str, Any]], columns: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Location mappings show what the first sample value becomes once the
    proxy applies the location transform.
    """
    samples = {c.get("index"): c.get("sampleValues") or [] for c in columns}
    out = []
    for mapping in mappings:
        mapping = dict(mapping)
        mapping.pop("example", None)
        column_samples = samples.get(mapping["excelColumn"]) or []
        if mapping.get("transform") == TRANSFORM_LOCATION and column_samples:
            mapping["example"] = sanitize_location_code(cell_text(column_samples[0]))
        out.append(mapping)
    return out


def auto_map(columns: List[Dict[str, Any]], mappings: Optional[List[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
    mappings = [dict(m) for m in (mappings or initial_mappings())]
    for column in columns:
        name = str(column.get("name") or "").lower()
        for mapping in mappings:
            if mapping["excelColumn"] is None and _matches(mapping["targetField"], name):
                mapping["excelColumn"] = column.get("index")
    return with_examples(mappings, columns)


def unmapped_required(mappings: List[Dict[str, Any]]) -> List[str]:
    return [m["label"] for m in mappings if m["required"] and m["excelColumn"] is None]


def mapping_payload(mappings: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """The mapped columns in the shape the proxy import routes expect."""
    return [
        {"excelColumn": m["excelColumn"], "targetField": m["targetField"], "transform": m.get("transform")}
        for m in mappings
        if m["excelColumn"] is not None
    ]


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


def _post(
    db: Session,
    job: models.ImportJob,
    client: ProxyClient,
    path: str,
    default_error: str,
    **kwargs: Any,
) -> dict:
    try:
        payload = client.call(
            "POST",
            path,
            headers=client.import_headers(),
            retries=0,
            default_error=default_error,
            **kwargs,
        )
    except ProxyError as exc:
        logger.error("serial import call failed", extra={"job_id": job.id, "path": path, "error": str(exc)})
        raise jobs.fail(db, job, status.HTTP_502_BAD_GATEWAY, error_message(exc, default_error))
    if not payload.get("success"):
        raise jobs.fail(db, job, status.HTTP_502_BAD_GATEWAY, payload_message(payload, default_error))
    return payload


def start(
    db: Session,
    session: account_models.DashboardSession,
    store: DataStore,
    content: bytes,
    filename: Optional[str],
    content_type: Optional[str] = None,
) -> models.ImportJob:
    if ocr.detect_file_type(content, filename) != "excel":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_FILE)
    job = jobs.create_job(db, session, jobs.KIND_SERIAL, initial_state())
    return upload(db, job, store, content, filename, content_type)


def upload(
    db: Session,
    job: models.ImportJob,
    store: DataStore,
    content: bytes,
    filename: Optional[str],
    content_type: Optional[str] = None,
) -> models.ImportJob:
    """Check the workbook locally, then hand it to the proxy for analysis."""
    jobs.require_step(job, jobs.STEP_UPLOAD)
    if ocr.detect_file_type(content, filename) != "excel":
        raise jobs.fail(db, job, status.HTTP_400_BAD_REQUEST, INVALID_FILE)

    try:
        row_count = count_rows(content)
    except ValueError as exc:
        logger.warning("unreadable serial sheet", extra={"job_id": job.id, "error": str(exc)})
        raise jobs.fail(db, job, status.HTTP_400_BAD_REQUEST, UNREADABLE_FILE)
    if not row_count:
        raise jobs.fail(db, job, status.HTTP_400_BAD_REQUEST, EMPTY_FILE)

    client = store.client
    payload = _post(
        db,
        job,
        client,
        "/import/serial/analyze",
        "Failed to analyze file",
        files={"file": (filename or "import.xlsx", content, content_type or EXCEL_MEDIA_TYPE)},
        timeout_ms=LARGE_TIMEOUT_MS,
    )
    if not payload.get("filePath"):
        raise jobs.fail(db, job, status.HTTP_502_BAD_GATEWAY, "Failed to analyze file")

    columns = payload.get("columns") or []
    job.original_filename = filename
    jobs.update_state(
        job,
        file_path=payload["filePath"],
        row_count=row_count,
        columns=columns,
        mappings=auto_map(columns),
        preview=[],
    )
    job.step = jobs.STEP_MAPPING
    job.error = None
    db.commit()
    logger.info("serial sheet analyzed", extra={"job_id": job.id, "columns": len(columns), "rows": row_count})
    return job


def update_mapping(
    db: Session,
    job: models.ImportJob,
    target_field: str,
    excel_column: Optional[int],
) -> models.ImportJob:
    jobs.require_step(job, jobs.STEP_MAPPING, jobs.STEP_PREVIEW)
    columns = job.state.get("columns") or []
    if excel_column is not None and excel_column not in {c.get("index") for c in columns}:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown Excel column")

    mappings = [dict(m) for m in job.state.get("mappings") or initial_mappings()]
    for mapping in mappings:
        if mapping["targetField"] == target_field:
            mapping["excelColumn"] = excel_column
            break
    else:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown target field: {target_field}")

    jobs.update_state(job, mappings=with_examples(mappings, columns), preview=[])
    job.step = jobs.STEP_MAPPING
    db.commit()
    return job


def preview(db: Session, job: models.ImportJob, store: DataStore, limit: int = PREVIEW_LIMIT) -> models.ImportJob:
    jobs.require_step(job, jobs.STEP_MAPPING, jobs.STEP_PREVIEW)
    state = job.state or {}
    mappings = state.get("mappings") or []
    missing = unmapped_required(mappings)
    if missing:
        raise jobs.fail(
            db, job, status.HTTP_400_BAD_REQUEST, "Please map all required fields: " + ", ".join(missing)
        )

    payload = _post(
        db,
        job,
        store.client,
        "/import/serial/preview",
        "Failed to generate preview",
        json={"filePath": state.get("file_path"), "mappings": mapping_payload(mappings), "limit": limit},
    )
    jobs.update_state(job, preview=payload.get("preview") or [])
    job.step = jobs.STEP_PREVIEW
    job.error = None
    db.commit()
    return job


def _count(value: Any) -> int:
    """Result counters may come back as a number or as the list of records."""
    if isinstance(value, (list, tuple)):
        return len(value)
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def execute(db: Session, job: models.ImportJob, store: DataStore) -> models.ImportJob:
    """Run the import on the proxy; on failure the job stays on preview."""
    jobs.require_step(job, jobs.STEP_PREVIEW)
    state = job.state or {}
    if not state.get("file_path"):
        raise jobs.fail(db, job, status.HTTP_400_BAD_REQUEST, "Please upload a file first")

    payload = _post(
        db,
        job,
        store.client,
        "/import/serial/execute",
        "Import failed",
        json={"filePath": state["file_path"], "mappings": mapping_payload(state.get("mappings") or [])},
        timeout_ms=LARGE_TIMEOUT_MS,
    )

    result = {key: value for key, value in payload.items() if key != "success"}
    for key in ("created", "skipped", "errors"):
        result[key] = _count(payload.get(key))
    job.result = result
    job.step = jobs.STEP_COMPLETE
    job.error = None
    db.commit()
    logger.info(
        "serial import finished",
        extra={
            "job_id": job.id,
            "created": job.result["created"],
            "skipped": job.result["skipped"],
            "errors": job.result["errors"],
        },
    )
    store.fetch_data("lots")
    return job


def reset(db: Session, job: models.ImportJob) -> models.ImportJob:
    jobs.discard_upload(job)
    job.state = initial_state()
    job.result = None
    job.error = None
    job.step = jobs.STEP_UPLOAD
    db.commit()
    return job
