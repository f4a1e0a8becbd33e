"""Submission gateway - idempotent submit, poll and cancel for scan jobs."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.scan_job import ScanJob, ScanJobState, TERMINAL_STATES
from app.services.result_sink import ResultSink, SqlResultSink
from app.services.scan.errors import EnqueueError
from app.services.scan.fingerprint import compute_fingerprint, normalize_request

logger = logging.getLogger(__name__)

Enqueue = Callable[[str], None]


def enqueue_scan(job_id: str) -> None:
    from app.workers.scan_tasks import run_competitor_scan

    run_competitor_scan.apply_async(args=[job_id], task_id=job_id)


def submit_scan(
    db: Session,
    brand_name: Any,
    category: Any,
    competitor_urls: Any,
    enqueue: Optional[Enqueue] = None,
) -> str:
    """
    Validate, fingerprint and enqueue. Returns the job id immediately.

    Identical normalized input resolves to the same job while it is queued,
    active or completed; a failed job is reset and enqueued again.
    """
    request = normalize_request(brand_name, category, competitor_urls)
    job_id = compute_fingerprint(request)

    job = db.get(ScanJob, job_id)
    if job is not None and job.state != ScanJobState.failed:
        logger.info("Duplicate submission for job %s (state=%s)", job_id, job.state.value)
        return job_id

    if job is None:
        job = ScanJob(
            id=job_id,
            brand_name=request.brand_name,
            category=request.category,
            competitor_urls=list(request.competitor_urls),
            state=ScanJobState.queued,
            progress=0,
        )
        db.add(job)
        try:
            db.commit()
        except IntegrityError:
            # A concurrent identical submission inserted first.
            db.rollback()
            logger.info("Concurrent duplicate submission for job %s", job_id)
            return job_id
    else:
        logger.info("Resubmitting failed job %s", job_id)
        job.state = ScanJobState.queued
        job.competitor_urls = list(request.competitor_urls)
        job.progress = 0
        job.progress_message = None
        job.error_message = None
        job.result_json = None
        job.cancel_requested = False
        job.lock_owner = None
        job.locked_until = None
        job.started_at = None
        job.finished_at = None
        db.commit()

    try:
        (enqueue or enqueue_scan)(job_id)
    except Exception as exc:
        # A queued row with no message behind it would never run; failed rows are re-enqueued on resubmission.
        logger.error("Enqueue failed for job %s: %s", job_id, exc)
        db.rollback()
        job = db.get(ScanJob, job_id)
        if job is not None and job.state == ScanJobState.queued:
            job.state = ScanJobState.failed
            job.error_message = f"enqueue failed: {exc}"
            db.commit()
        raise EnqueueError(f"Could not enqueue job {job_id}: {exc}") from exc
    return job_id


def get_scan_status(
    db: Session,
    job_id: str,
    sink: Optional[ResultSink] = None,
) -> Optional[Dict[str, Any]]:
    job = db.get(ScanJob, job_id)
    if job is None:
        return None
    response: Dict[str, Any] = {
        "jobId": job.id,
        "state": job.state.value,
        "progress": int(job.progress or 0),
    }
    if job.state == ScanJobState.completed:
        document = (sink or SqlResultSink()).read(db, job_id)
        response["result"] = document if document is not None else job.result_json
    elif job.state == ScanJobState.failed:
        response["error"] = job.error_message or "unknown error"
    return response


def cancel_scan(db: Session, job_id: str) -> Optional[bool]:
    """Request cancellation. None for an unknown job, False if already terminal."""
    job = db.get(ScanJob, job_id)
    if job is None:
        return None
    if job.state in TERMINAL_STATES:
        return False
    job.cancel_requested = True
    db.commit()
    logger.info("Cancellation requested for job %s", job_id)
    return True
