"""
Imports module.

Step-by-step import wizards: receipts from OCR'd supplier invoices and
lot/serial numbers from Excel sheets.
"""

from . import models, services  # noqa: F401
