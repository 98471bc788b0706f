from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from wmsdash.security import get_current_active_session
from wmsdash.apps.accounts import models as account_models
from wmsdash.apps.data.router import get_session_store
from wmsdash.apps.data.store import DataStore
from wmsdash.apps.exports import services as exports
from wmsdash.apps.exports.schemas import ExportRequest, export_request

from . import schemas, services

router = APIRouter(prefix="/rules", tags=["rules"])


def rule_filters(
    search: str = Query(""),
    action: Optional[List[str]] = Query(None),
    from_: Optional[List[str]] = Query(None, alias="from"),
    to: Optional[List[str]] = Query(None),
) -> services.RuleFilters:
    return services.RuleFilters(
        search=search,
        actions=list(action or []),
        from_=list(from_ or []),
        to=list(to or []),
    )


def _save_error(exc: services.RuleActionError) -> HTTPException:
    if isinstance(exc, services.RuleFormError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)


@router.get("", response_model=schemas.RuleList)
def list_rules(
    view: str = Query("table", pattern="^(table|cards)$"),
    page: int = Query(1, ge=1),
    per_page: int = Query(services.CARDS_PER_PAGE, ge=1, le=200),
    filters: services.RuleFilters = Depends(rule_filters),
    store: DataStore = Depends(get_session_store),
):
    listing = services.list_rules(store, filters, view=view, page=page, per_page=per_page)
    return schemas.RuleList(
        rules=listing["rules"],
        stats=schemas.RuleStats(**listing["stats"]),
        facets=listing["facets"],
        total=listing["total"],
        page=listing["page"],
        total_pages=listing["total_pages"],
        error=listing["error"],
    )


@router.get("/export")
def export_rules(
    columns: Optional[List[str]] = Query(None),
    export: ExportRequest = Depends(export_request),
    filters: services.RuleFilters = Depends(rule_filters),
    store: DataStore = Depends(get_session_store),
):
    listing = services.list_rules(store, filters)
    export_file = exports.export_rows(
        listing["filtered"],
        services.export_columns(columns),
        title=services.EXPORT_TITLE,
        fmt=export.fmt,
        scope=export.scope,
        page=export.page,
        per_page=export.per_page,
        selected_ids=export.selected_ids,
        summary=services.export_summary,
    )
    return exports.to_response(export_file)


@router.get("/form", response_model=schemas.RuleFormOptions)
def new_rule_form(store: DataStore = Depends(get_session_store)):
    return schemas.RuleFormOptions(form=schemas.RuleForm(**services.EMPTY_FORM), **services.form_options(store))


@router.get("/{rule_id}/form", response_model=schemas.RuleFormOptions)
def edit_rule_form(rule_id: int, store: DataStore = Depends(get_session_store)):
    raw = services.find_rule(store, rule_id)
    if raw is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Rule not found")
    return schemas.RuleFormOptions(
        form=schemas.RuleForm(**services.rule_form_from_raw(raw)),
        **services.form_options(store),
    )


@router.post("", response_model=schemas.RuleSaved, status_code=status.HTTP_201_CREATED)
def create_rule(
    payload: schemas.RuleForm,
    store: DataStore = Depends(get_session_store),
    current_session: account_models.DashboardSession = Depends(get_current_active_session),
):
    try:
        result = services.save_rule(store, payload.model_dump(), uid=current_session.uid)
    except services.RuleActionError as exc:
        raise _save_error(exc)
    return schemas.RuleSaved(id=result.get("id"), message="Rule created successfully")


@router.put("/{rule_id}", response_model=schemas.RuleSaved)
def update_rule(
    rule_id: int,
    payload: schemas.RuleForm,
    store: DataStore = Depends(get_session_store),
    current_session: account_models.DashboardSession = Depends(get_current_active_session),
):
    try:
        services.save_rule(store, payload.model_dump(), rule_id=rule_id, uid=current_session.uid)
    except services.RuleActionError as exc:
        raise _save_error(exc)
    return schemas.RuleSaved(id=rule_id, message="Rule updated successfully")


@router.delete("/{rule_id}", response_model=schemas.RuleSaved)
def delete_rule(
    rule_id: int,
    store: DataStore = Depends(get_session_store),
    current_session: account_models.DashboardSession = Depends(get_current_active_session),
):
    try:
        services.delete_rule(store, rule_id, uid=current_session.uid)
    except services.RuleActionError as exc:
        raise _save_error(exc)
    return schemas.RuleSaved(id=rule_id, message="Rule deleted successfully")
