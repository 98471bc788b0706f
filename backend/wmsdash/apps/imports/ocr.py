"""
Upload type detection for the import wizards.

Content sniffing comes first (PDF magic bytes, Pillow for images); the
filename suffix decides only when the bytes are not conclusive.
"""

from __future__ import annotations

from io import BytesIO
from pathlib import Path

from PIL import Image, UnidentifiedImageError

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".tif", ".tiff", ".webp"}
EXCEL_SUFFIXES = {".xlsx", ".xls"}

OCR_FILE_TYPES = {"pdf", "image"}


def detect_file_type(content: bytes, filename: str | None) -> str:
    if content.startswith(b"%PDF"):
        return "pdf"

    suffix = Path(filename or "").suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        return "excel"

    try:
        Image.open(BytesIO(content))
    except (UnidentifiedImageError, OSError, ValueError):
        pass
    else:
        return "image"

    if suffix in IMAGE_SUFFIXES:
        return "image"
    return "unknown"


def image_media_type(filename: str | None, file_type: str) -> str:
    if file_type == "pdf":
        return "application/pdf"
    suffix = Path(filename or "").suffix.lower().lstrip(".")
    if suffix in ("jpg", "jpeg"):
        return "image/jpeg"
    if suffix in ("tif", "tiff"):
        return "image/tiff"
    return f"image/{suffix or 'png'}"
