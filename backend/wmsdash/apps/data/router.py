from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from wmsdash.security import get_current_active_session
from wmsdash.apps.accounts import models as account_models

from . import registry, resources, schemas
from .store import DataStore

router = APIRouter(prefix="/data", tags=["data"])


def get_session_store(
    current_session: account_models.DashboardSession = Depends(get_current_active_session),
) -> DataStore:
    """Dependency used by every page router to reach the session's cache."""
    return registry.get_store(current_session)


def _require_known(data_type: str) -> None:
    if not resources.is_known(data_type):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown data type: {data_type}",
        )


def _resource_state(store: DataStore, data_type: str) -> schemas.ResourceState:
    records = store.get(data_type)
    return schemas.ResourceState(
        data_type=data_type,
        records=records,
        count=len(records),
        loading=bool(store.loading.get(data_type)),
        error=store.errors.get(data_type),
    )


@router.get("/state", response_model=schemas.DataState)
def read_state(store: DataStore = Depends(get_session_store)):
    return schemas.DataState(resource_types=resources.RESOURCE_TYPES, **store.snapshot())


@router.post("/fetch", response_model=schemas.FetchResults)
def fetch_many(
    payload: schemas.FetchManyRequest,
    store: DataStore = Depends(get_session_store),
):
    for data_type in payload.data_types:
        _require_known(data_type)
    results = store.fetch_many(payload.data_types)
    errors = {t: store.errors[t] for t in results if store.errors.get(t)}
    return schemas.FetchResults(results=results, errors=errors)


@router.post("/retry", response_model=schemas.FetchResults)
def retry_problematic(store: DataStore = Depends(get_session_store)):
    results = store.retry_problematic_endpoints()
    errors = {t: store.errors[t] for t in results if store.errors.get(t)}
    return schemas.FetchResults(results=results, errors=errors)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def clear_data(store: DataStore = Depends(get_session_store)):
    store.clear_data()


@router.get("/landed-costs/{cost_id}/lines", response_model=schemas.LandedCostLines)
def landed_cost_lines(cost_id: int, store: DataStore = Depends(get_session_store)):
    return schemas.LandedCostLines(cost_id=cost_id, lines=store.fetch_landed_cost_lines(cost_id))


@router.post("/stock-rules/refresh", response_model=schemas.ResourceState)
def refresh_stock_rules(store: DataStore = Depends(get_session_store)):
    store.refresh_stock_rules_direct()
    return _resource_state(store, "stockRules")


@router.get("/{data_type}", response_model=schemas.ResourceState)
def read_resource(
    data_type: str,
    refresh: bool = Query(False, description="Fetch from Odoo even when cached"),
    store: DataStore = Depends(get_session_store),
):
    _require_known(data_type)
    if refresh or not store.is_loaded(data_type):
        store.fetch_data(data_type)
    return _resource_state(store, data_type)


@router.post("/{data_type}/fetch", response_model=schemas.ResourceState)
def fetch_resource(
    data_type: str,
    timeout_ms: Optional[int] = Query(None, ge=1000, le=300000),
    store: DataStore = Depends(get_session_store),
):
    _require_known(data_type)
    store.fetch_data(data_type, timeout_ms=timeout_ms)
    return _resource_state(store, data_type)
