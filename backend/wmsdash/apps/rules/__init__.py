"""
Rules module.

Odoo stock rules (stock.rule): listing, stats, create/edit/delete and export.
"""

from . import services  # noqa: F401
