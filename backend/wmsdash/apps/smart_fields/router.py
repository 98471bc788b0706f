from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from wmsdash.apps.data.router import get_session_store
from wmsdash.apps.data.store import DataStore

from . import schemas, services

router = APIRouter(prefix="/smart-fields", tags=["smart-fields"])


@router.get("/{model}", response_model=schemas.SmartFieldRecords)
def read_model(
    model: str,
    picking_type_code: Optional[str] = Query(None, pattern="^(incoming|outgoing|internal|dropship)$"),
    store: DataStore = Depends(get_session_store),
):
    try:
        result = services.load_model(store.client, model, picking_type_code=picking_type_code)
    except services.SmartFieldsError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)
    return schemas.SmartFieldRecords(
        model=model,
        records=result.records,
        columns=result.columns,
        fields=result.fields,
    )
