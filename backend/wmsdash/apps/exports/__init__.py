"""
Exports module.

CSV and PDF exports of the list screens.
"""

from . import services  # noqa: F401
