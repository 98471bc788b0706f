"""
Valuation module.

Inventory value per product from on-hand quants and product cost.
"""

from . import services  # noqa: F401
