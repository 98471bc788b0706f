from __future__ import annotations

import os
import time
import uuid


def generate_uuid7() -> str:
    """
    Time-ordered UUIDv7 string used as the primary key of dashboard
    sessions and import jobs, so rows sort by creation without an index
    on created_at.
    """
    ts_ms = int(time.time() * 1000)
    raw = bytearray(ts_ms.to_bytes(6, "big", signed=False) + os.urandom(10))
    raw[6] = (raw[6] & 0x0F) | 0x70
    raw[8] = (raw[8] & 0x3F) | 0x80
    return str(uuid.UUID(bytes=bytes(raw)))


def upload_filename(job_id: str, original_name: str | None) -> str:
    """Name an uploaded wizard file after its job, keeping the extension."""
    _, ext = os.path.splitext(original_name or "")
    return f"{job_id}{ext.lower()}"
