from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from wmsdash.apps.proxy import ProxyClient, ProxyError

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 1000

# Column order after id / name; unlisted custom (x_) fields come next and
# everything else last.
_COLUMN_PRIORITY = {
    "location_id": 1,
    "product_id": 2,
    "x_rfid": 3,
    "product_qty": 4,
}
_CUSTOM_PRIORITY = 10
_OTHER_PRIORITY = 100

FALLBACK_COLUMNS = [{"id": "id", "label": "ID"}, {"id": "name", "label": "Name"}]


class SmartFieldsError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass
class SmartFieldResult:
    records: List[dict] = field(default_factory=list)
    columns: List[dict] = field(default_factory=list)
    fields: List[dict] = field(default_factory=list)


def field_name_to_label(field_name: str) -> str:
    """`x_category_id` -> `Category`, `product_qty` -> `Product Qty`."""
    label = re.sub(r"^x_", "", field_name)
    label = re.sub(r"_id$", "", label)
    return " ".join(word[:1].upper() + word[1:] for word in label.split("_"))


def _field_name(f: dict) -> Optional[str]:
    return f.get("name") or f.get("field_name")


def _field_label(f: dict) -> Optional[str]:
    return f.get("label") or f.get("field_label")


def label_map(fields: Iterable[dict]) -> Dict[str, str]:
    labels = {}
    for f in fields:
        name, label = _field_name(f), _field_label(f)
        if name and label:
            labels[name] = label
    return labels


def extract_columns(records: List[dict], labels: Optional[Dict[str, str]] = None) -> List[dict]:
    """
    Columns discovered from the records themselves, so fields missing from
    the SmartFieldSelector configuration still show up.
    """
    labels = labels or {}
    names = set()
    for record in records:
        for key in record:
            if not key.startswith("__") and key != "display_name":
                names.add(key)

    columns = []
    if "id" in names:
        columns.append({"id": "id", "label": "ID"})
        names.discard("id")
    if "name" in names:
        columns.append({"id": "name", "label": labels.get("name") or "Name"})
        names.discard("name")

    def _sort_key(name: str):
        priority = _COLUMN_PRIORITY.get(name)
        if priority is None:
            priority = _CUSTOM_PRIORITY if name.startswith("x_") else _OTHER_PRIORITY
        return (priority, name.lower(), name)

    for name in sorted(names, key=_sort_key):
        columns.append({"id": name, "label": labels.get(name) or field_name_to_label(name)})
    return columns


def columns_from_fields(fields: List[dict]) -> List[dict]:
    columns = [
        {"id": _field_name(f), "label": _field_label(f) or _field_name(f)}
        for f in fields
        if f.get("show_in_list") is not False and _field_name(f)
    ]
    ids = [c["id"] for c in columns]
    if "id" not in ids:
        columns.insert(0, {"id": "id", "label": "ID"})
    elif ids.index("id") > 0:
        columns.insert(0, columns.pop(ids.index("id")))
    return columns


def _require_tenant(client: ProxyClient) -> None:
    if not client.tenant_id:
        raise SmartFieldsError("Tenant ID is required")


def _decode(response) -> dict:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def fetch_records(
    client: ProxyClient,
    model: str,
    *,
    domain: Optional[list] = None,
    limit: int = DEFAULT_LIMIT,
    order: Optional[str] = None,
    default_error: str = "Failed to fetch records",
) -> List[dict]:
    _require_tenant(client)
    params: Dict[str, Any] = {
        "domain": json.dumps(domain or []),
        "limit": str(limit),
        "context": "list",
        "fetchAllFields": "true",
    }
    if order:
        params["order"] = order

    try:
        response = client.request("GET", f"/smart-fields/data/{model}", params=params)
    except ProxyError as exc:
        raise SmartFieldsError(str(exc) or default_error) from exc
    payload = _decode(response)
    if not response.ok or not payload.get("success"):
        message = payload.get("error") or payload.get("message") or default_error
        logger.warning(
            "smart field records failed",
            extra={"model": model, "status": response.status_code, "error": message},
        )
        raise SmartFieldsError(str(message))
    return payload.get("records") or []


def fetch_selected_fields(client: ProxyClient, model: str) -> Optional[List[dict]]:
    """
    Fields configured for the list view, with `id` always present.
    Returns None when the configuration cannot be read.
    """
    try:
        response = client.request(
            "GET", f"/smart-fields/{model}/selected", params={"context": "list"}
        )
    except ProxyError as exc:
        logger.warning("smart field config unavailable", extra={"model": model, "error": str(exc)})
        return None
    payload = _decode(response)
    if not response.ok or not payload.get("success"):
        return None
    fields = list((payload.get("data") or {}).get("fields") or [])
    if not any(_field_name(f) == "id" for f in fields):
        fields.insert(0, {"name": "id", "label": "ID", "type": "integer", "show_in_list": True})
    return fields


def load_model(
    client: ProxyClient,
    model: str,
    *,
    picking_type_code: Optional[str] = None,
    extract_from_data: bool = True,
    limit: int = DEFAULT_LIMIT,
) -> SmartFieldResult:
    domain = [["picking_type_code", "=", picking_type_code]] if picking_type_code else []
    records = fetch_records(client, model, domain=domain, limit=limit)
    fields = fetch_selected_fields(client, model)

    if extract_from_data and records:
        columns = extract_columns(records, label_map(fields or []))
    elif fields is not None:
        columns = columns_from_fields(fields)
    else:
        columns = list(FALLBACK_COLUMNS)
    return SmartFieldResult(records=records, columns=columns, fields=fields or [])
