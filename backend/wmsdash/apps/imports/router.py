from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session

from wmsdash.database import get_db
from wmsdash.security import get_current_active_session
from wmsdash.apps.accounts import models as account_models
from wmsdash.apps.data.router import get_session_store
from wmsdash.apps.data.store import DataStore

from . import ocr_wizard, schemas, serial_wizard
from . import services as jobs

router = APIRouter(prefix="/imports", tags=["imports"])


# ---------------------------------------------------------------------------
# OCR invoices
# ---------------------------------------------------------------------------


@router.post("/ocr", response_model=schemas.ImportJobRead, status_code=status.HTTP_201_CREATED)
async def start_ocr_import(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_session: account_models.DashboardSession = Depends(get_current_active_session),
    store: DataStore = Depends(get_session_store),
):
    content = await file.read()
    return await asyncio.to_thread(
        ocr_wizard.start, db, current_session, store, content, file.filename, file.content_type
    )


@router.get("/ocr/vendors", response_model=schemas.LookupResults)
def search_vendors(query: str = Query(""), store: DataStore = Depends(get_session_store)):
    return schemas.LookupResults(results=ocr_wizard.search_vendors(store.client, query))


@router.get("/ocr/products", response_model=schemas.LookupResults)
def search_products(query: str = Query(""), store: DataStore = Depends(get_session_store)):
    return schemas.LookupResults(results=ocr_wizard.search_products(store.client, query))


@router.post("/{job_id}/ocr/upload", response_model=schemas.ImportJobRead)
async def upload_ocr_file(
    job_id: str,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_session: account_models.DashboardSession = Depends(get_current_active_session),
    store: DataStore = Depends(get_session_store),
):
    job = await asyncio.to_thread(jobs.get_job, db, current_session, job_id, jobs.KIND_OCR)
    content = await file.read()
    return await asyncio.to_thread(ocr_wizard.upload, db, job, store, content, file.filename, file.content_type)


@router.put("/{job_id}/ocr/vendor-name", response_model=schemas.ImportJobRead)
def set_vendor_name(
    job_id: str,
    payload: schemas.VendorName,
    db: Session = Depends(get_db),
    current_session: account_models.DashboardSession = Depends(get_current_active_session),
    store: DataStore = Depends(get_session_store),
):
    job = jobs.get_job(db, current_session, job_id, kind=jobs.KIND_OCR)
    return ocr_wizard.set_vendor_name(db, job, store.client, payload.name)


@router.put("/{job_id}/ocr/vendor", response_model=schemas.ImportJobRead)
def select_vendor(
    job_id: str,
    payload: schemas.VendorSelection,
    db: Session = Depends(get_db),
    current_session: account_models.DashboardSession = Depends(get_current_active_session),
):
    job = jobs.get_job(db, current_session, job_id, kind=jobs.KIND_OCR)
    return ocr_wizard.select_vendor(db, job, payload.vendor_id, payload.vendor_name)


@router.put("/{job_id}/ocr/picking-type", response_model=schemas.ImportJobRead)
def set_picking_type(
    job_id: str,
    payload: schemas.PickingTypeSelection,
    db: Session = Depends(get_db),
    current_session: account_models.DashboardSession = Depends(get_current_active_session),
):
    job = jobs.get_job(db, current_session, job_id, kind=jobs.KIND_OCR)
    return ocr_wizard.set_picking_type(db, job, payload.picking_type_id)


@router.patch("/{job_id}/ocr/items/{index}", response_model=schemas.ImportJobRead)
def update_item(
    job_id: str,
    index: int,
    payload: schemas.ItemUpdate,
    db: Session = Depends(get_db),
    current_session: account_models.DashboardSession = Depends(get_current_active_session),
):
    job = jobs.get_job(db, current_session, job_id, kind=jobs.KIND_OCR)
    return ocr_wizard.update_item(
        db,
        job,
        index,
        quantity=payload.quantity,
        product_id=payload.product_id,
        product_name=payload.product_name,
    )


@router.delete("/{job_id}/ocr/items/{index}", response_model=schemas.ImportJobRead)
def remove_item(
    job_id: str,
    index: int,
    db: Session = Depends(get_db),
    current_session: account_models.DashboardSession = Depends(get_current_active_session),
):
    job = jobs.get_job(db, current_session, job_id, kind=jobs.KIND_OCR)
    return ocr_wizard.remove_item(db, job, index)


@router.post("/{job_id}/ocr/create", response_model=schemas.ImportJobRead)
def create_receipt(
    job_id: str,
    db: Session = Depends(get_db),
    current_session: account_models.DashboardSession = Depends(get_current_active_session),
    store: DataStore = Depends(get_session_store),
):
    job = jobs.get_job(db, current_session, job_id, kind=jobs.KIND_OCR)
    return ocr_wizard.create_receipt(db, job, store)


# ---------------------------------------------------------------------------
# Excel serial numbers
# ---------------------------------------------------------------------------


@router.post("/serial", response_model=schemas.ImportJobRead, status_code=status.HTTP_201_CREATED)
async def start_serial_import(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_session: account_models.DashboardSession = Depends(get_current_active_session),
    store: DataStore = Depends(get_session_store),
):
    content = await file.read()
    return await asyncio.to_thread(
        serial_wizard.start, db, current_session, store, content, file.filename, file.content_type
    )


@router.put("/{job_id}/serial/mappings", response_model=schemas.ImportJobRead)
def update_mapping(
    job_id: str,
    payload: schemas.MappingUpdate,
    db: Session = Depends(get_db),
    current_session: account_models.DashboardSession = Depends(get_current_active_session),
):
    job = jobs.get_job(db, current_session, job_id, kind=jobs.KIND_SERIAL)
    return serial_wizard.update_mapping(db, job, payload.target_field, payload.excel_column)


@router.post("/{job_id}/serial/preview", response_model=schemas.ImportJobRead)
def preview_serial_import(
    job_id: str,
    db: Session = Depends(get_db),
    current_session: account_models.DashboardSession = Depends(get_current_active_session),
    store: DataStore = Depends(get_session_store),
):
    job = jobs.get_job(db, current_session, job_id, kind=jobs.KIND_SERIAL)
    return serial_wizard.preview(db, job, store)


@router.post("/{job_id}/serial/execute", response_model=schemas.ImportJobRead)
def execute_serial_import(
    job_id: str,
    db: Session = Depends(get_db),
    current_session: account_models.DashboardSession = Depends(get_current_active_session),
    store: DataStore = Depends(get_session_store),
):
    job = jobs.get_job(db, current_session, job_id, kind=jobs.KIND_SERIAL)
    return serial_wizard.execute(db, job, store)


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


@router.get("/{job_id}", response_model=schemas.ImportJobRead)
def read_job(
    job_id: str,
    db: Session = Depends(get_db),
    current_session: account_models.DashboardSession = Depends(get_current_active_session),
):
    return jobs.get_job(db, current_session, job_id)


@router.post("/{job_id}/reset", response_model=schemas.ImportJobRead)
def reset_job(
    job_id: str,
    db: Session = Depends(get_db),
    current_session: account_models.DashboardSession = Depends(get_current_active_session),
):
    job = jobs.get_job(db, current_session, job_id)
    if job.kind == jobs.KIND_OCR:
        return ocr_wizard.reset(db, job)
    return serial_wizard.reset(db, job)


@router.delete("/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_job(
    job_id: str,
    db: Session = Depends(get_db),
    current_session: account_models.DashboardSession = Depends(get_current_active_session),
):
    jobs.delete_job(db, jobs.get_job(db, current_session, job_id))
