"""
HTTP client for the backend proxy API that fronts Odoo.

Every screen of the dashboard talks to Odoo through this one seam. The
proxy expects the Odoo session id either in the JSON body (`sessionId`,
the legacy per-model routes) or in the `X-Odoo-Session` header (the
SmartFieldSelector routes), plus `x-odoo-base` / `x-odoo-db` to pick the
Odoo instance and `X-Tenant-ID` for multi-tenant installs.
"""

from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Callable, Dict, Optional, Tuple

import requests

logger = logging.getLogger(__name__)

PROXY_API_BASE_URL = os.getenv("PROXY_API_BASE_URL", "http://localhost:3006/api")
ODOO_BASE_URL = os.getenv("ODOO_BASE_URL", "")
ODOO_DB = os.getenv("ODOO_DB", "")

DEFAULT_TIMEOUT_MS = int(os.getenv("PROXY_TIMEOUT_MS", "25000"))
LARGE_TIMEOUT_MS = int(os.getenv("PROXY_LARGE_TIMEOUT_MS", "60000"))
MAX_RETRIES = int(os.getenv("PROXY_MAX_RETRIES", "2"))
BASE_BACKOFF_SEC = float(os.getenv("PROXY_BACKOFF_SEC", "0.5"))

RETRYABLE_STATUS = {502, 503, 504}


class ProxyError(Exception):
    """Base class for failures talking to the proxy API."""


class ProxyTimeoutError(ProxyError):
    def __init__(self, url: str, timeout_ms: int):
        super().__init__(f"Request to {url} timed out after {timeout_ms}ms")
        self.url = url
        self.timeout_ms = timeout_ms


class ProxyConnectionError(ProxyError):
    def __init__(self, url: str, reason: str):
        super().__init__(f"Unable to connect to {url}: {reason}")
        self.url = url
        self.reason = reason


class ProxyHTTPError(ProxyError):
    def __init__(self, status_code: int, body: str, url: str = ""):
        super().__init__(f"HTTP error! status: {status_code} - {body}")
        self.status_code = status_code
        self.body = body
        self.url = url


class ProxyResponseError(ProxyError):
    """The proxy answered 2xx but reported `success: false`."""

    def __init__(self, message: str, payload: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.payload = payload or {}


def _compute_backoff(attempt: int, base: float) -> float:
    return base * (2 ** max(attempt - 1, 0))


def payload_message(payload: Any, default: str) -> str:
    if isinstance(payload, dict):
        return str(payload.get("message") or payload.get("error") or default)
    return default


def error_message(exc: ProxyError, default: str) -> str:
    """
    User-facing message for a failed mutation: the proxy's own `message`
    when it sent one, `default` otherwise.
    """
    if isinstance(exc, ProxyResponseError):
        return exc.message or default
    if isinstance(exc, ProxyHTTPError):
        try:
            body = json.loads(exc.body or "")
        except ValueError:
            return default
        return payload_message(body, default)
    return default


class ProxyClient:
    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        odoo_base: Optional[str] = None,
        odoo_db: Optional[str] = None,
        tenant_id: Optional[str] = None,
        odoo_session_id: Optional[str] = None,
        http: Optional[requests.Session] = None,
        max_retries: Optional[int] = None,
        backoff_sec: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = (base_url or PROXY_API_BASE_URL).rstrip("/")
        self.odoo_base = odoo_base if odoo_base is not None else ODOO_BASE_URL
        self.odoo_db = odoo_db if odoo_db is not None else ODOO_DB
        self.tenant_id = tenant_id
        self.odoo_session_id = odoo_session_id
        self.http = http or requests.Session()
        self.max_retries = MAX_RETRIES if max_retries is None else max_retries
        self.backoff_sec = BASE_BACKOFF_SEC if backoff_sec is None else backoff_sec
        self._sleep = sleep

    @classmethod
    def for_session(cls, session: Any, **kwargs: Any) -> "ProxyClient":
        """Client bound to a stored dashboard session (see accounts.models)."""
        return cls(
            odoo_base=session.odoo_base or None,
            odoo_db=session.odoo_db or None,
            tenant_id=session.tenant_id,
            odoo_session_id=session.odoo_session_id,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def odoo_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self.odoo_base:
            headers["x-odoo-base"] = self.odoo_base
        if self.odoo_db:
            headers["x-odoo-db"] = self.odoo_db
        if self.tenant_id:
            headers["X-Tenant-ID"] = str(self.tenant_id)
        return headers

    def headers(self, *, json_body: bool = True) -> Dict[str, str]:
        headers = self.odoo_headers()
        if json_body:
            headers["Content-Type"] = "application/json"
        if self.odoo_session_id:
            headers["X-Odoo-Session"] = self.odoo_session_id
        return headers

    def session_body(self, **extra: Any) -> Dict[str, Any]:
        body: Dict[str, Any] = {"sessionId": self.odoo_session_id}
        body.update(extra)
        return body

    def import_headers(self) -> Dict[str, str]:
        """The import routes read the session and tenant from these two headers."""
        return {
            "X-Session-ID": self.odoo_session_id or "",
            "X-Tenant-ID": str(self.tenant_id or ""),
        }

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict] = None,
        files: Optional[dict] = None,
        timeout_ms: Optional[int] = None,
        retries: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        url = self.url(path)
        timeout_ms = timeout_ms or DEFAULT_TIMEOUT_MS
        retries = self.max_retries if retries is None else retries
        request_headers = self.headers(json_body=files is None)
        request_headers.update(headers or {})

        attempt = 0
        while True:
            attempt += 1
            try:
                response = self.http.request(
                    method,
                    url,
                    json=json,
                    params=params,
                    files=files,
                    headers=request_headers,
                    timeout=timeout_ms / 1000,
                )
            except requests.Timeout:
                if attempt > retries:
                    raise ProxyTimeoutError(url, timeout_ms)
                logger.warning(
                    "proxy request timed out, retrying",
                    extra={"url": url, "attempt": attempt, "timeout_ms": timeout_ms},
                )
            except requests.ConnectionError as exc:
                if attempt > retries:
                    raise ProxyConnectionError(url, str(exc)) from exc
                logger.warning(
                    "proxy connection failed, retrying",
                    extra={"url": url, "attempt": attempt, "error": str(exc)},
                )
            else:
                if response.status_code not in RETRYABLE_STATUS or attempt > retries:
                    return response
                logger.warning(
                    "proxy returned retryable status",
                    extra={"url": url, "attempt": attempt, "status": response.status_code},
                )
            self._sleep(_compute_backoff(attempt, self.backoff_sec))

    def call(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict] = None,
        files: Optional[dict] = None,
        timeout_ms: Optional[int] = None,
        retries: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
        default_error: str = "Operation failed",
    ) -> dict:
        """
        Send a request and return the decoded JSON body.

        Raises ProxyHTTPError for non-2xx answers and ProxyResponseError when
        the proxy reports `success: false`.
        """
        response = self.request(
            method,
            path,
            json=json,
            params=params,
            files=files,
            timeout_ms=timeout_ms,
            retries=retries,
            headers=headers,
        )
        if not response.ok:
            raise ProxyHTTPError(response.status_code, response.text, url=self.url(path))
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {"data": payload}
        if payload.get("success") is False:
            raise ProxyResponseError(payload_message(payload, default_error), payload)
        return payload

    def download(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        timeout_ms: Optional[int] = None,
    ) -> bytes:
        response = self.request(method, path, json=json, timeout_ms=timeout_ms, retries=0)
        if not response.ok:
            raise ProxyHTTPError(response.status_code, response.text, url=self.url(path))
        return response.content

    def fetch_app_settings(self) -> Tuple[str, str]:
        """
        Odoo instance configured in the proxy's app setup.

        Returns empty strings when setup is missing or unreachable; the proxy
        then answers sign-in with `setupRequired`.
        """
        try:
            response = self.request("GET", "/settings", retries=0)
            payload = response.json() if response.ok else {}
        except (ProxyError, ValueError) as exc:
            logger.warning("could not read proxy app settings", extra={"error": str(exc)})
            return "", ""
        data = payload.get("data") if isinstance(payload, dict) and payload.get("success") else None
        if not isinstance(data, dict):
            return "", ""
        return str(data.get("odoo_base_url") or ""), str(data.get("odoo_db") or "")
