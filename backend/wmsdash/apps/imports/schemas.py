from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ImportJobRead(BaseModel):
    id: str
    kind: str
    step: str
    original_filename: Optional[str] = None
    state: Dict[str, Any] = {}
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LookupResults(BaseModel):
    results: List[Dict[str, Any]] = []


# --- OCR review ---------------------------------------------------------------


class VendorName(BaseModel):
    name: str = ""


class VendorSelection(BaseModel):
    vendor_id: int
    vendor_name: str = ""


class PickingTypeSelection(BaseModel):
    picking_type_id: Optional[int] = None


class ItemUpdate(BaseModel):
    quantity: Optional[float] = Field(None, ge=0)
    product_id: Optional[int] = None
    product_name: Optional[str] = None


# --- Serial import ------------------------------------------------------------


class MappingUpdate(BaseModel):
    target_field: str
    excel_column: Optional[int] = None
