"""Celery tasks for competitor scans."""
import socket
from typing import Callable, Optional

from celery.utils.log import get_task_logger

from app.workers.celery_app import celery_app
from app.config import get_settings
from app.models.base import SessionLocal
from app.services.job_lock import JobLock
from app.services.rate_limit import JobStartLimiter
from app.services.result_sink import ResultSink, SqlResultSink, build_result_document
from app.services.scan import (
    PipelineContext,
    ScanPipeline,
    ScanRequest,
    run_pipeline_sync,
)

logger = get_task_logger(__name__)


def _owner_id(task_request) -> str:
    return f"{getattr(task_request, 'hostname', None) or socket.gethostname()}:{task_request.id}"


def execute_scan(
    job_id: str,
    owner: str,
    *,
    session_factory=SessionLocal,
    pipeline_factory: Optional[Callable[[], ScanPipeline]] = None,
    sink: Optional[ResultSink] = None,
) -> dict:
    """Claim the job, run the pipeline, and record the outcome."""
    settings = get_settings()
    lock = JobLock(session_factory, job_id, owner, lock_seconds=settings.scan_job_lock_seconds)
    job = lock.claim()
    if job is None:
        held_for = lock.seconds_until_free()
        if held_for is not None:
            # Redelivered while another lock is live; the owner may have died, so retry after expiry.
            retry_in = int(held_for) + 1
            logger.info("Job %s locked by another worker, retrying in %ss", job_id, retry_in)
            return {"deferred": True, "job_id": job_id, "retry_in": retry_in}
        logger.info("Job %s not claimable (missing or terminal)", job_id)
        return {"skipped": True, "job_id": job_id}

    if job.cancel_requested:
        lock.fail("cancelled by caller")
        return {"error": "cancelled by caller", "job_id": job_id}

    request = ScanRequest(
        brand_name=job.brand_name,
        category=job.category,
        competitor_urls=list(job.competitor_urls or []),
    )
    ctx = PipelineContext(
        job_id=job_id,
        is_cancelled=lock.cancel_requested,
        progress_callback=lock.record_progress,
    )
    logger.info("Job %s claimed by %s (attempt %s)", job_id, owner, job.attempts)

    try:
        pipeline = pipeline_factory() if pipeline_factory else ScanPipeline.from_settings(settings)
        report = run_pipeline_sync(pipeline, request, ctx)
    except Exception as e:
        logger.error("Job %s failed: %s", job_id, e)
        lock.fail(str(e))
        return {"error": str(e), "job_id": job_id}

    result = report.to_dict()
    document = build_result_document(request, report)
    if not lock.complete(result, document, sink or SqlResultSink()):
        return {"error": "lock lost", "job_id": job_id}
    logger.info(
        "Job %s completed: %d competitors analyzed, %d failed",
        job_id,
        len(report.competitors),
        len(report.failed_sites),
    )
    return {"success": True, "job_id": job_id, "competitors_analyzed": len(report.competitors)}


@celery_app.task(
    bind=True,
    name="app.workers.scan_tasks.run_competitor_scan",
    max_retries=None,
)
def run_competitor_scan(self, job_id: str):
    """Run one competitor scan job once the start-rate window admits it."""
    wait_seconds = JobStartLimiter().try_acquire()
    if wait_seconds > 0:
        logger.info("Job %s deferred %.1fs by start-rate limit", job_id, wait_seconds)
        # Deferring the start, not retrying a failed run.
        raise self.retry(countdown=wait_seconds)
    outcome = execute_scan(job_id, _owner_id(self.request))
    if outcome.get("deferred"):
        raise self.retry(countdown=outcome["retry_in"])
    return outcome
