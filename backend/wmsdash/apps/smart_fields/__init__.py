"""
Smart fields module.

Reads records and list columns for any Odoo model through the proxy's
SmartFieldSelector routes.
"""

from . import services  # noqa: F401
