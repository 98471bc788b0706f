"""
Import job storage shared by the OCR and Excel serial wizards.

Uploaded files are kept under IMPORT_UPLOAD_DIR, named after their job, for
as long as the job needs them.
"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from wmsdash.apps.accounts import models as account_models
from wmsdash.utils.identifiers import upload_filename

from . import models

logger = logging.getLogger(__name__)

IMPORT_UPLOAD_DIR = Path(os.getenv("IMPORT_UPLOAD_DIR", "uploads/imports"))

KIND_OCR = "ocr"
KIND_SERIAL = "serial"

STEP_UPLOAD = "upload"
STEP_REVIEW = "review"
STEP_MAPPING = "mapping"
STEP_PREVIEW = "preview"
STEP_COMPLETE = "complete"


def create_job(
    db: Session,
    session: account_models.DashboardSession,
    kind: str,
    state: Optional[Dict[str, Any]] = None,
) -> models.ImportJob:
    job = models.ImportJob(session_id=session.id, kind=kind, step=STEP_UPLOAD, state=state or {})
    db.add(job)
    db.flush()
    return job


def get_job(
    db: Session,
    session: account_models.DashboardSession,
    job_id: str,
    kind: Optional[str] = None,
) -> models.ImportJob:
    """Jobs are only visible to the session that started them."""
    job = db.get(models.ImportJob, job_id)
    if not job or job.session_id != session.id or (kind and job.kind != kind):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Import job not found")
    return job


def require_step(job: models.ImportJob, *steps: str) -> None:
    if job.step not in steps:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Import is at step '{job.step}', expected {' or '.join(steps)}",
        )


def update_state(job: models.ImportJob, **changes: Any) -> Dict[str, Any]:
    """
    Replace the JSON state with an updated copy; in-place edits of a JSON
    column are not picked up by the session.
    """
    state = copy.deepcopy(job.state or {})
    state.update(changes)
    job.state = state
    return state


def store_upload(job: models.ImportJob, content: bytes, filename: Optional[str]) -> Path:
    IMPORT_UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    path = IMPORT_UPLOAD_DIR / upload_filename(job.id, filename)
    path.write_bytes(content)
    job.file_path = str(path)
    job.original_filename = filename
    return path


def discard_upload(job: models.ImportJob) -> None:
    if job.file_path:
        try:
            Path(job.file_path).unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning(
                "could not remove import upload",
                extra={"job_id": job.id, "path": job.file_path, "error": str(exc)},
            )
    job.file_path = None
    job.original_filename = None


def fail(db: Session, job: models.ImportJob, status_code: int, message: str) -> HTTPException:
    """Record the error on the job and return the exception to raise."""
    job.error = message
    db.commit()
    logger.warning(
        "import step failed",
        extra={"job_id": job.id, "kind": job.kind, "step": job.step, "error": message},
    )
    return HTTPException(status_code=status_code, detail=message)


def delete_job(db: Session, job: models.ImportJob) -> None:
    discard_upload(job)
    db.delete(job)
    db.commit()
