from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from .db import session_scope
from .models import JobRun

GLOBAL_SCOPE = "__global__"


def normalize_scope(scope: Optional[str]) -> str:
    cleaned = (scope or "").strip()
    return cleaned or GLOBAL_SCOPE


def resolve_batch_size(limit: Optional[int], default: int) -> Optional[int]:
    # None -> configured default, <= 0 -> no limit
    if limit is None:
        return default
    if limit <= 0:
        return None
    return limit


def start_job(session: Session, job_name: str, scope: Optional[str] = None, details: Optional[dict] = None) -> JobRun:
    run = JobRun(job_name=job_name, scope=normalize_scope(scope), status="running", details=details)
    session.add(run)
    session.flush()
    return run


def complete_job(session: Session, run: JobRun, processed_count: int = 0, details: Optional[dict] = None) -> None:
    run.status = "success"
    run.processed_count = processed_count
    run.finished_at = datetime.now(timezone.utc)
    if details is not None:
        run.details = details


def fail_job(session: Session, run: JobRun, error: str, details: Optional[dict] = None) -> None:
    run.status = "failed"
    run.error = error[:4000]
    run.finished_at = datetime.now(timezone.utc)
    if details is not None:
        run.details = details


# Batch workers commit each record in its own transaction, so the run row is
# written and closed in short sessions of its own.

def record_job_start(job_name: str, scope: Optional[str] = None, details: Optional[dict] = None) -> uuid.UUID:
    with session_scope() as session:
        return start_job(session, job_name, scope=scope, details=details).id


def record_job_success(run_id: uuid.UUID, processed_count: int = 0, details: Optional[dict] = None) -> None:
    with session_scope() as session:
        run = session.get(JobRun, run_id)
        if run is not None:
            complete_job(session, run, processed_count=processed_count, details=details)


def record_job_failure(run_id: uuid.UUID, error: str, details: Optional[dict] = None) -> None:
    with session_scope() as session:
        run = session.get(JobRun, run_id)
        if run is not None:
            fail_job(session, run, error=error, details=details)
