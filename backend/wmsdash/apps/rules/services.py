from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from wmsdash.apps.data.store import DataStore
from wmsdash.apps.exports.services import ExportColumn
from wmsdash.apps.proxy import ProxyError, ProxyResponseError, error_message, payload_message
from wmsdash.utils.listing import in_selection, many2one_id, many2one_name, matches_search, paginate, unique_values

logger = logging.getLogger(__name__)

CARDS_PER_PAGE = 9
FORM_DATA_TYPES = ("stockRules", "stockRoutes", "stockPickingTypes", "locations")

ACTION_LABELS = {
    "pull": "Pull From",
    "push": "Push To",
    "buy": "Buy",
    "manufacture": "Manufacture",
}

PROCURE_METHOD_LABELS = {
    "make_to_stock": "Take From Stock",
    "make_to_order": "Trigger Another Rule",
    "mts_else_mto": "Take From Stock, if unavailable, Trigger Another Rule",
}

DEFAULT_VISIBLE_COLUMNS = [
    "id",
    "name",
    "action",
    "sourceLocation",
    "destinationLocation",
    "supplyMethod",
]

EMPTY_FORM: Dict[str, Any] = {
    "name": "",
    "action": "pull",
    "picking_type_id": "",
    "location_src_id": "",
    "location_dest_id": "",
    "procure_method": "make_to_stock",
    "auto": "manual",
    "route_id": "",
    "group_propagation_option": "none",
    "propagate_carrier": False,
    "delay": "",
}


class RuleActionError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RuleFormError(RuleActionError):
    """A form value that cannot be sent to Odoo."""


@dataclass
class RuleFilters:
    search: str = ""
    actions: List[str] = field(default_factory=list)
    from_: List[str] = field(default_factory=list)
    to: List[str] = field(default_factory=list)


def map_action(action: Optional[str]) -> str:
    if not action:
        return ""
    return ACTION_LABELS.get(action, action)


def map_procure_method(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return str(value[1]) if len(value) > 1 and value[1] else ""
    code = str(value or "")
    return PROCURE_METHOD_LABELS.get(code, code)


def map_rule(raw: dict, index: int = 0) -> dict:
    delay = raw.get("delay")
    return {
        "id": raw.get("id") if raw.get("id") is not None else index,
        "name": raw.get("name") or "",
        "action": map_action(raw.get("action")),
        "operationType": many2one_name(raw.get("picking_type_id")),
        "sourceLocation": many2one_name(raw.get("location_src_id")),
        "destinationLocation": many2one_name(raw.get("location_dest_id")),
        "supplyMethod": map_procure_method(raw.get("procure_method")),
        "route": many2one_name(raw.get("route_id")),
        "propagateGroup": raw.get("propagate"),
        "cancelNextMove": bool(raw.get("propagate_cancel")),
        "propagateCarrier": bool(raw.get("propagate_carrier")),
        "warehouseToPropagate": many2one_name(raw.get("warehouse_id")),
        "partnerAddress": many2one_name(raw.get("partner_address_id")),
        "leadTime": delay if isinstance(delay, (int, float)) and not isinstance(delay, bool) else 0,
        "raw": raw,
    }


def map_rules(raw_rules: Iterable[dict]) -> List[dict]:
    return [map_rule(r, idx) for idx, r in enumerate(raw_rules)]


def filter_rules(rules: Iterable[dict], filters: RuleFilters) -> List[dict]:
    return [
        r
        for r in rules
        if matches_search(filters.search, r["name"], r["action"], r["sourceLocation"], r["destinationLocation"])
        and in_selection(r["action"], filters.actions)
        and in_selection(r["sourceLocation"], filters.from_)
        and in_selection(r["destinationLocation"], filters.to)
    ]


def rule_stats(rules: List[dict]) -> Dict[str, int]:
    active = sum(1 for r in rules if r["action"] in ("Pull From", "Push To"))
    return {
        "total": len(rules),
        "active": active,
        "routes": len(unique_values(r["route"] for r in rules)),
        "inactive": len(rules) - active,
    }


def rule_facets(rules: List[dict]) -> Dict[str, List[str]]:
    return {
        "actions": unique_values(r["action"] for r in rules),
        "from": unique_values(r["sourceLocation"] for r in rules),
        "to": unique_values(r["destinationLocation"] for r in rules),
    }


def list_rules(
    store: DataStore,
    filters: RuleFilters,
    *,
    view: str = "table",
    page: int = 1,
    per_page: int = CARDS_PER_PAGE,
) -> dict:
    if not store.is_loaded("stockRules"):
        store.fetch_data("stockRules")
    rules = map_rules(store.get("stockRules"))
    filtered = filter_rules(rules, filters)
    if view == "cards":
        shown, total_pages = paginate(filtered, page, per_page)
        page = min(max(page, 1), total_pages)
    else:
        shown, total_pages, page = filtered, 1, 1
    return {
        "rules": shown,
        "filtered": filtered,
        "stats": rule_stats(rules),
        "facets": rule_facets(rules),
        "total": len(filtered),
        "page": page,
        "total_pages": total_pages,
        "error": store.errors.get("stockRules"),
    }


def form_options(store: DataStore) -> Dict[str, List[dict]]:
    """Choices for the rule form's many2one selects."""
    store.ensure(FORM_DATA_TYPES)
    return {
        "routes": store.get("stockRoutes"),
        "picking_types": store.get("stockPickingTypes"),
        "locations": store.get("locations"),
    }


# ---------------------------------------------------------------------------
# Form
# ---------------------------------------------------------------------------


def _form_id(value: Any) -> str:
    value = many2one_id(value)
    return "" if value is None else str(value)


def rule_form_from_raw(raw: dict) -> Dict[str, Any]:
    """Edit form state for an existing stock.rule record."""
    delay = raw.get("delay")
    return {
        "name": str(raw.get("name") or ""),
        "action": str(raw.get("action") or "pull"),
        "picking_type_id": _form_id(raw.get("picking_type_id")),
        "location_src_id": _form_id(raw.get("location_src_id")),
        "location_dest_id": _form_id(raw.get("location_dest_id")),
        "procure_method": str(raw.get("procure_method") or "make_to_stock"),
        "auto": str(raw.get("auto") or "manual"),
        "route_id": _form_id(raw.get("route_id")),
        "group_propagation_option": str(raw.get("group_propagation_option") or "none"),
        "propagate_carrier": bool(raw.get("propagate_carrier")),
        "delay": "" if delay is None or delay is False else str(delay),
    }


FORM_LABELS = {
    "picking_type_id": "Operation Type",
    "location_src_id": "Source Location",
    "location_dest_id": "Destination Location",
    "route_id": "Route",
    "delay": "Lead Time",
}


def _as_number(key: str, value: Any) -> Any:
    if isinstance(value, bool):
        raise RuleFormError(f"Invalid value for {FORM_LABELS[key]}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise RuleFormError(f"Invalid value for {FORM_LABELS[key]}") from None
    if not math.isfinite(number):
        raise RuleFormError(f"Invalid value for {FORM_LABELS[key]}")
    return int(number) if number.is_integer() else number


def build_rule_values(form: Dict[str, Any]) -> Dict[str, Any]:
    """
    Odoo write values for the rule form. Empty many2one selects and an
    empty delay are left out so Odoo keeps its defaults.
    """
    values: Dict[str, Any] = {
        "name": form.get("name", ""),
        "action": form.get("action", "pull"),
        "procure_method": form.get("procure_method", "make_to_stock"),
        "auto": form.get("auto", "manual"),
        "group_propagation_option": form.get("group_propagation_option", "none"),
        "propagate_carrier": bool(form.get("propagate_carrier")),
    }
    for key in ("picking_type_id", "location_src_id", "location_dest_id", "route_id"):
        if form.get(key) in (None, "", 0, False):
            continue
        record_id = _as_number(key, form[key])
        if not isinstance(record_id, int) or record_id < 0:
            raise RuleFormError(f"Invalid value for {FORM_LABELS[key]}")
        if record_id:
            values[key] = record_id
    if form.get("delay") not in (None, ""):
        values["delay"] = _as_number("delay", form["delay"])
    return values


def find_rule(store: DataStore, rule_id: int) -> Optional[dict]:
    if not store.is_loaded("stockRules"):
        store.fetch_data("stockRules")
    for raw in store.get("stockRules"):
        if raw.get("id") == rule_id:
            return raw
    return None


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


def _user_id(uid: Any) -> Optional[int]:
    try:
        return int(uid) if uid not in (None, "") else None
    except (TypeError, ValueError):
        return None


def save_rule(
    store: DataStore,
    form: Dict[str, Any],
    *,
    rule_id: Optional[int] = None,
    uid: Any = None,
) -> dict:
    """Create (no `rule_id`) or update a rule, then reload the rule list."""
    client = store.client
    body = client.session_body(values=build_rule_values(form), userId=_user_id(uid))
    if rule_id is None:
        method, path = "POST", "/stock-rules/create"
    else:
        method, path = "PUT", f"/stock-rules/{rule_id}"

    try:
        payload = client.call(method, path, json=body, retries=0)
    except ProxyResponseError as exc:
        # A record id in the reply still means the write went through.
        if not exc.payload.get("id"):
            raise RuleActionError(exc.message) from exc
        payload = exc.payload
    except ProxyError as exc:
        logger.error("save rule failed", extra={"rule_id": rule_id, "error": str(exc)})
        raise RuleActionError(error_message(exc, "Failed to save rule")) from exc
    if not payload.get("success") and not payload.get("id"):
        raise RuleActionError(payload_message(payload, "Operation failed"))

    logger.info("stock rule saved", extra={"rule_id": rule_id or payload.get("id")})
    store.refresh_stock_rules_direct()
    return payload


def delete_rule(store: DataStore, rule_id: int, *, uid: Any = None) -> None:
    client = store.client
    try:
        payload = client.call(
            "DELETE",
            f"/stock-rules/{rule_id}",
            json=client.session_body(userId=_user_id(uid)),
            retries=0,
            default_error="Delete failed",
        )
    except ProxyError as exc:
        logger.error("delete rule failed", extra={"rule_id": rule_id, "error": str(exc)})
        raise RuleActionError(error_message(exc, "Failed to delete rule")) from exc
    if not payload.get("success"):
        raise RuleActionError(payload_message(payload, "Delete failed"))
    store.refresh_stock_rules_direct()


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

EXPORT_TITLE = "Rules Export"


def _text(key: str):
    return lambda row: row.get(key) or "-"


EXPORT_COLUMNS: Dict[str, ExportColumn] = {
    "id": ExportColumn("ID", lambda row: f"#{row.get('id')}", is_monospace=True, is_bold=True),
    "name": ExportColumn("Rule Name", _text("name"), is_bold=True),
    "action": ExportColumn("Action", _text("action"), is_status=True),
    "sourceLocation": ExportColumn("Source Location", _text("sourceLocation")),
    "destinationLocation": ExportColumn("Destination Location", _text("destinationLocation")),
    "supplyMethod": ExportColumn("Supply Method", _text("supplyMethod")),
    "pickingType": ExportColumn("Picking Type", _text("operationType")),
    "route": ExportColumn("Route", _text("route")),
    "auto": ExportColumn("Auto", lambda row: (row.get("raw") or {}).get("auto") or "-"),
}


def export_columns(visible: Optional[List[str]] = None) -> List[ExportColumn]:
    return [EXPORT_COLUMNS[c] for c in (visible or DEFAULT_VISIBLE_COLUMNS) if c in EXPORT_COLUMNS]


def export_summary(rows: List[dict]) -> List[tuple]:
    def count(word: str) -> int:
        return sum(1 for r in rows if word in (r.get("action") or "").lower())

    return [
        ("Total Records", len(rows)),
        ("Pull Rules", count("pull")),
        ("Push Rules", count("push")),
        ("Buy Rules", count("buy")),
    ]
