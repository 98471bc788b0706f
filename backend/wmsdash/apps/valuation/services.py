from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from wmsdash.apps.data.store import DataStore
from wmsdash.apps.exports.services import ExportColumn
from wmsdash.apps.proxy import ProxyError
from wmsdash.utils.listing import in_date_range, in_selection, many2one_id, matches_search, paginate, unique_values

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY_SYMBOL = os.getenv("DEFAULT_CURRENCY_SYMBOL", "LE")
UNCATEGORIZED = "Uncategorized"
CARDS_PER_PAGE = 9
VALUE_RANGES = ("high", "low")

DEFAULT_VISIBLE_COLUMNS = ["product", "category", "quantity", "unitValue", "totalValue", "date"]


@dataclass
class ValuationFilters:
    search: str = ""
    categories: List[str] = field(default_factory=list)
    value_ranges: List[str] = field(default_factory=list)
    date_from: Optional[str] = None
    date_to: Optional[str] = None


# ---------------------------------------------------------------------------
# Currencies
# ---------------------------------------------------------------------------


def fetch_currencies(store: DataStore) -> List[dict]:
    """`res.currency` records; an empty list when the proxy cannot serve them."""
    client = store.client
    if not client.odoo_session_id:
        return []
    try:
        payload = client.call("POST", "/currencies", json=client.session_body(), retries=0)
    except ProxyError as exc:
        logger.error("fetch currencies failed", extra={"error": str(exc)})
        return []
    currencies = payload.get("currencies")
    return currencies if isinstance(currencies, list) else []


def default_currency(currencies: List[dict]) -> str:
    if not currencies:
        return DEFAULT_CURRENCY_SYMBOL
    chosen = next((c for c in currencies if c.get("id") == 1), currencies[0])
    return chosen.get("symbol") or chosen.get("name") or DEFAULT_CURRENCY_SYMBOL


def currency_symbol(currency_id: Any, currencies: List[dict], fallback: str) -> str:
    if isinstance(currency_id, dict):
        wanted = currency_id.get("id")
    else:
        wanted = many2one_id(currency_id)
    if wanted:
        for currency in currencies:
            if currency.get("id") == wanted:
                return currency.get("symbol") or currency.get("name") or fallback
    return fallback


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


def _number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def quantity_by_product(quants: Iterable[dict]) -> Dict[int, float]:
    totals: Dict[int, float] = {}
    for quant in quants:
        pid = many2one_id(quant.get("product_id"))
        try:
            pid = int(pid)
        except (TypeError, ValueError):
            continue
        if not pid:
            continue
        qty = quant.get("available_quantity")
        if qty is None:
            qty = quant.get("quantity")
        totals[pid] = totals.get(pid, 0.0) + _number(qty)
    return totals


def _category(product: dict) -> str:
    categ = product.get("categ_id")
    if isinstance(categ, (list, tuple)):
        name = categ[1] if len(categ) > 1 else ""
    elif isinstance(categ, dict):
        name = categ.get("name")
    else:
        name = categ
    return str(name) if name else UNCATEGORIZED


def valuation_items(
    products: Iterable[dict],
    quants: Iterable[dict],
    currencies: Optional[List[dict]] = None,
) -> List[dict]:
    """On-hand items with a positive quantity, highest total value first."""
    currencies = currencies or []
    fallback = default_currency(currencies)
    qty_by_product = quantity_by_product(quants)

    items = []
    for product in products:
        pid = many2one_id(product.get("id"))
        try:
            pid = int(pid)
        except (TypeError, ValueError):
            continue
        qty = qty_by_product.get(pid, 0.0)
        if not pid or qty <= 0:
            continue
        unit = product.get("standard_price")
        if unit is None:
            unit = product.get("cost")
        unit = _number(unit)
        items.append(
            {
                "id": pid,
                "date": str(product.get("write_date") or product.get("create_date") or ""),
                "reference": "On Hand",
                "product": str(product.get("display_name") or product.get("name") or ""),
                "quantity": qty,
                "unitValue": unit,
                "totalValue": unit * qty,
                "category": _category(product),
                "currency": currency_symbol(product.get("currency_id"), currencies, fallback),
            }
        )
    items.sort(key=lambda item: item["totalValue"], reverse=True)
    return items


def median_value(items: List[dict]) -> float:
    values = sorted(item["totalValue"] for item in items)
    return values[len(values) // 2] if values else 0.0


def filter_items(items: List[dict], filters: ValuationFilters) -> List[dict]:
    median = median_value(items)

    def in_value_range(item: dict) -> bool:
        if not filters.value_ranges:
            return True
        for value_range in filters.value_ranges:
            if value_range == "high" and item["totalValue"] >= median:
                return True
            if value_range == "low" and item["totalValue"] < median:
                return True
            if value_range not in VALUE_RANGES:
                return True
        return False

    return [
        item
        for item in items
        if matches_search(filters.search, item["product"])
        and in_selection(item["category"], filters.categories)
        and in_value_range(item)
        and in_date_range(item["date"], filters.date_from, filters.date_to)
    ]


def valuation_stats(items: List[dict]) -> Dict[str, Any]:
    total = sum(item["totalValue"] for item in items)
    highest = max(items, key=lambda item: item["totalValue"]) if items else None
    return {
        "total_value": total,
        "total_items": len(items),
        "average_value": total / len(items) if items else 0.0,
        "highest_item": highest,
    }


def load_valuation(
    store: DataStore,
    filters: ValuationFilters,
    *,
    page: int = 1,
    per_page: int = CARDS_PER_PAGE,
) -> dict:
    store.ensure(["products", "quants"])
    currencies = fetch_currencies(store)
    items = valuation_items(store.get("products"), store.get("quants"), currencies)
    filtered = filter_items(items, filters)
    shown, total_pages = paginate(filtered, page, per_page)
    logger.info(
        "valuation computed",
        extra={"items": len(items), "filtered": len(filtered)},
    )
    return {
        "items": shown,
        "filtered": filtered,
        "stats": valuation_stats(items),
        "categories": unique_values(item["category"] for item in items),
        "currency": default_currency(currencies),
        "currencies": currencies,
        "total": len(filtered),
        "page": min(max(page, 1), total_pages),
        "total_pages": total_pages,
        "errors": {t: store.errors[t] for t in ("products", "quants") if store.errors.get(t)},
    }


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

EXPORT_TITLE = "Valuation Export"


def format_amount(value: Any) -> str:
    """Thousands separators and at most three decimals: `1234.5` -> `1,234.5`."""
    text = f"{_number(value):,.3f}".rstrip("0").rstrip(".")
    return text or "0"


def format_day(value: Any) -> str:
    if not value:
        return "-"
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).strftime("%d/%m/%y")
    except ValueError:
        return str(value)


def _product_label(row: dict) -> str:
    product = row.get("product") or ""
    if "]" in product:
        return product.split("]", 1)[1].strip() or product
    return product or "-"


EXPORT_COLUMNS: Dict[str, ExportColumn] = {
    "product": ExportColumn("Product", _product_label, is_bold=True),
    "category": ExportColumn("Category", lambda row: row.get("category") or "-"),
    "quantity": ExportColumn("Quantity", lambda row: format_amount(row.get("quantity")), align="right"),
    "unitValue": ExportColumn("Unit Value", lambda row: format_amount(row.get("unitValue")), align="right"),
    "totalValue": ExportColumn(
        "Total Value", lambda row: format_amount(row.get("totalValue")), is_bold=True, align="right"
    ),
    "date": ExportColumn("Date", lambda row: format_day(row.get("date"))),
}


def export_columns(visible: Optional[List[str]] = None) -> List[ExportColumn]:
    return [EXPORT_COLUMNS[c] for c in (visible or DEFAULT_VISIBLE_COLUMNS) if c in EXPORT_COLUMNS]


def export_summary(rows: List[dict]) -> List[tuple]:
    total = sum(r.get("totalValue") or 0 for r in rows)
    return [
        ("Total Records", len(rows)),
        ("Total Items", format_amount(sum(r.get("quantity") or 0 for r in rows))),
        ("Total Value", format_amount(total)),
        ("Average Value", format_amount(total / len(rows)) if rows else "0"),
    ]
