"""
Per-session cache of Odoo datasets.

A `DataStore` is what every page reads from: one list of records per
resource type plus a loading flag and an error message for each. Fetch
failures never raise; they are recorded in `errors` so pages can show them
next to whatever data is already cached.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional

from wmsdash.apps.proxy import (
    ProxyClient,
    ProxyConnectionError,
    ProxyError,
    ProxyHTTPError,
    ProxyResponseError,
    ProxyTimeoutError,
)
from wmsdash.utils.listing import many2one_id

from . import resources

logger = logging.getLogger(__name__)

NO_SESSION_ERROR = "No session ID found. Please log in again."
CONNECTION_ERROR = (
    "Unable to connect to the server. Please ensure the backend server is running and accessible."
)
MAX_PARALLEL_FETCHES = 6


def _seconds(timeout_ms: int) -> str:
    value = timeout_ms / 1000
    return str(int(value)) if value == int(value) else str(value)


def describe_fetch_error(data_type: str, exc: Exception, timeout_ms: int) -> str:
    """Message shown on a page when fetching `data_type` failed."""
    if isinstance(exc, ProxyTimeoutError):
        if data_type == "products":
            return (
                "Loading products is taking longer than expected. The dataset is large "
                f"({_seconds(timeout_ms)}s timeout). Please wait or try refreshing the page."
            )
        return (
            f"Request timeout: {data_type} took longer than {_seconds(timeout_ms)}s to load. "
            "This may be due to a large dataset or backend performance issues."
        )
    if isinstance(exc, ProxyConnectionError):
        return CONNECTION_ERROR
    if isinstance(exc, ProxyHTTPError):
        if exc.status_code == 404:
            return (
                f"Endpoint not found: {resources.get_endpoint(data_type)}. Please check if the "
                "backend server is running and the route is configured correctly."
            )
        if exc.status_code == 500:
            return f"Server error: {exc.body}. Please check the backend server logs."
        return f"HTTP error! status: {exc.status_code} - {exc.body}"
    return str(exc) or "Unknown error"


def filter_on_hand_quants(quants: List[dict], locations: List[dict]) -> List[dict]:
    """
    Odoo's default "On Hand" view: quants in internal locations with a
    positive available quantity.
    """
    usage_by_id: Dict[Any, Any] = {}
    for loc in locations or []:
        loc_id = many2one_id(loc.get("id"))
        if isinstance(loc_id, int):
            usage_by_id[loc_id] = loc.get("usage")

    kept = []
    for quant in quants:
        usage = usage_by_id.get(many2one_id(quant.get("location_id")))
        available = quant.get("available_quantity")
        if available is None:
            available = quant.get("quantity")
        try:
            available = float(available or 0)
        except (TypeError, ValueError):
            available = 0.0
        if usage == "internal" and available > 0:
            kept.append(quant)
    return kept


class DataStore:
    def __init__(self, client: ProxyClient) -> None:
        self.client = client
        self.records: Dict[str, List[dict]] = {}
        self.loading: Dict[str, bool] = {}
        self.errors: Dict[str, Optional[str]] = {}
        self.landed_cost_lines: Dict[int, List[dict]] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def get(self, data_type: str) -> List[dict]:
        with self._lock:
            return list(self.records.get(data_type, []))

    def is_loaded(self, data_type: str) -> bool:
        with self._lock:
            return data_type in self.records

    def _set(self, data_type: str, *, records=None, loading=None, error=...) -> None:
        with self._lock:
            if records is not None:
                self.records[data_type] = records
            if loading is not None:
                self.loading[data_type] = loading
            if error is not ...:
                self.errors[data_type] = error

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "loading": {k: v for k, v in self.loading.items() if v},
                "errors": {k: v for k, v in self.errors.items() if v},
                "counts": {k: len(v) for k, v in self.records.items()},
            }

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def fetch_data(self, data_type: str, timeout_ms: Optional[int] = None) -> bool:
        """
        Load one dataset from the proxy. Returns True when records were stored.
        """
        timeout_ms = timeout_ms or resources.default_timeout_ms(data_type)
        if not self.client.odoo_session_id:
            logger.error("fetch without session", extra={"data_type": data_type})
            self._set(data_type, error=NO_SESSION_ERROR)
            return False

        if data_type == "quants" and not self.get("locations"):
            self.fetch_data("locations")

        self._set(data_type, loading=True, error=None)
        try:
            payload = self.client.call(
                "POST",
                resources.get_url(data_type),
                json=self.client.session_body(),
                timeout_ms=timeout_ms,
                default_error=f"Failed to fetch {data_type}",
            )
            if not payload.get("success"):
                raise ProxyResponseError(
                    str(payload.get("message") or f"Failed to fetch {data_type}"), payload
                )
            records = payload.get(data_type) or []
            if data_type == "quants" and isinstance(records, list):
                records = filter_on_hand_quants(records, self.get("locations"))
            self._set(data_type, records=records)
            return True
        except ProxyError as exc:
            message = describe_fetch_error(data_type, exc, timeout_ms)
            log = logger.warning if isinstance(exc, ProxyTimeoutError) else logger.error
            log(
                "fetch failed",
                extra={"data_type": data_type, "error": str(exc), "timeout_ms": timeout_ms},
            )
            self._set(data_type, error=message)
            return False
        finally:
            self._set(data_type, loading=False)

    def fetch_many(self, data_types: Iterable[str]) -> Dict[str, bool]:
        """Fetch several independent datasets concurrently."""
        data_types = list(dict.fromkeys(data_types))
        results: Dict[str, bool] = {}
        if not data_types:
            return results
        # Quants are filtered against locations, so those go first.
        if "quants" in data_types and "locations" in data_types:
            results["locations"] = self.fetch_data("locations")
            data_types.remove("locations")

        workers = min(len(data_types), MAX_PARALLEL_FETCHES)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = pool.map(self.fetch_data, data_types)
            results.update(zip(data_types, outcomes))
        return results

    def ensure(self, data_types: Iterable[str]) -> Dict[str, bool]:
        """Fetch only the datasets that have not been loaded yet."""
        missing = [t for t in data_types if not self.is_loaded(t)]
        return self.fetch_many(missing)

    def refresh_all_data(self) -> None:
        logger.warning(
            "refresh_all_data() is deprecated. Use fetch_data() for specific data types "
            "instead to avoid server overload."
        )

    def retry_problematic_endpoints(self) -> Dict[str, bool]:
        results = {}
        for data_type in resources.PROBLEMATIC_TYPES:
            results[data_type] = self.fetch_data(data_type)
            if not results[data_type]:
                logger.error("still failing to fetch", extra={"data_type": data_type})
        return results

    def clear_data(self) -> None:
        with self._lock:
            self.records.clear()
            self.errors.clear()
            self.landed_cost_lines.clear()

    def fetch_landed_cost_lines(self, cost_id: int) -> List[dict]:
        if not self.client.odoo_session_id or not cost_id:
            return []
        try:
            payload = self.client.call(
                "POST",
                "/landed-cost-lines/by-cost",
                json=self.client.session_body(cost_id=cost_id),
            )
        except ProxyError as exc:
            logger.error(
                "fetch landed cost lines failed",
                extra={"cost_id": cost_id, "error": str(exc)},
            )
        else:
            if payload.get("success"):
                with self._lock:
                    self.landed_cost_lines[cost_id] = payload.get("lines") or []
        with self._lock:
            return list(self.landed_cost_lines.get(cost_id, []))

    def refresh_stock_rules_direct(self) -> bool:
        if not self.client.odoo_session_id:
            return False
        self._set("stockRules", loading=True, error=None)
        try:
            payload = self.client.call(
                "POST",
                "/stock-rules",
                json=self.client.session_body(),
                default_error="Failed to refresh stock rules",
            )
            if not payload.get("success"):
                raise ProxyResponseError("Failed to refresh stock rules", payload)
            self._set("stockRules", records=payload.get("stockRules") or [])
            return True
        except ProxyHTTPError as exc:
            logger.error("refresh stock rules failed", extra={"status": exc.status_code})
            self._set("stockRules", error="Failed to refresh stock rules")
            return False
        except ProxyError as exc:
            logger.error("refresh stock rules failed", extra={"error": str(exc)})
            self._set("stockRules", error=str(exc) or "Unknown error")
            return False
        finally:
            self._set("stockRules", loading=False)
