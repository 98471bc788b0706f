"""
Serials module.

Lot / serial number tracking (stock.lot) read through smart fields.
"""

from . import services  # noqa: F401
