"""
Receipts module.

Incoming pickings: listing, stats, picking actions and exports.
"""

from . import services  # noqa: F401
