# backend/wmsdash/apps/accounts/__init__.py
"""
Accounts app (the auth context)

Responsible for:
- Signing in against the proxy (which signs in to Odoo)
- Storing the Odoo session behind a dashboard JWT
- Validating and ending sessions

Every other app reaches Odoo with the session stored here.
"""

from . import models, schemas, services  # noqa: F401

__all__ = ["models", "schemas", "services"]
