# backend/wmsdash/__init__.py
"""
Import ORM models from each app so that Base.metadata.create_all() sees
every table.

The model classes live in wmsdash/apps/*/models.py.
"""

from .apps.accounts import models as accounts_models  # dashboard sessions
from .apps.imports import models as imports_models    # import wizard jobs

__all__ = [
    "accounts_models",
    "imports_models",
]
