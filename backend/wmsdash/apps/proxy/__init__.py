"""
Proxy module.

The single HTTP seam between the dashboard and the Odoo backend proxy API.
"""

from .client import (  # noqa: F401
    ProxyClient,
    ProxyConnectionError,
    ProxyError,
    ProxyHTTPError,
    ProxyResponseError,
    ProxyTimeoutError,
    error_message,
    payload_message,
)
