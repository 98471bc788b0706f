"""
Data module (the data context).

Caches Odoo datasets per dashboard session, routes each dataset to its
proxy endpoint, and records loading / error state for the pages.
"""

from . import registry, resources, store  # noqa: F401

__all__ = ["registry", "resources", "store"]
