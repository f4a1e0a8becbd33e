"""Exclusive per-job execution lock with expiry-based reclaim."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from app.models.scan_job import ScanJob, ScanJobState
from app.services.result_sink import ResultSink

logger = logging.getLogger(__name__)


class JobLock:
    """
    Claim / extend / release for one job run.

    A job can be claimed when it is queued, or when it is active but its lock
    has expired (the previous worker died without reporting). Every write
    after the claim is conditional on still owning the lock.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        job_id: str,
        owner: str,
        lock_seconds: int = 900,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self._session_factory = session_factory
        self.job_id = job_id
        self.owner = owner
        self.lock_seconds = max(1, int(lock_seconds))
        self._clock = clock

    def _load(self, db: Session) -> Optional[ScanJob]:
        return (
            db.query(ScanJob)
            .filter(ScanJob.id == self.job_id)
            .with_for_update()
            .first()
        )

    def _owned(self, job: Optional[ScanJob]) -> bool:
        return job is not None and job.state == ScanJobState.active and job.lock_owner == self.owner

    def claim(self) -> Optional[ScanJob]:
        with self._session_factory() as db:
            job = self._load(db)
            if job is None:
                return None
            now = self._clock()
            reclaimable = job.state == ScanJobState.active and (job.locked_until is None or job.locked_until < now)
            if job.state != ScanJobState.queued and not reclaimable:
                return None
            if reclaimable:
                logger.warning("Reclaiming job %s from expired lock owner %s", job.id, job.lock_owner)
            job.state = ScanJobState.active
            job.lock_owner = self.owner
            job.locked_until = now + timedelta(seconds=self.lock_seconds)
            job.attempts = (job.attempts or 0) + 1
            job.progress_message = "Starting scan..."
            job.error_message = None
            job.result_json = None
            job.started_at = now
            job.finished_at = None
            db.commit()
            db.refresh(job)
            return job

    def seconds_until_free(self) -> Optional[float]:
        """Seconds until another worker's unexpired lock lapses, or None if the job is not held."""
        with self._session_factory() as db:
            job = db.get(ScanJob, self.job_id)
            if job is None or job.state != ScanJobState.active or job.locked_until is None:
                return None
            remaining = (job.locked_until - self._clock()).total_seconds()
            return remaining if remaining > 0 else None

    def record_progress(self, percent: int, message: str = "") -> bool:
        """Raise progress (never lower it) and extend the lock."""
        with self._session_factory() as db:
            job = self._load(db)
            if not self._owned(job):
                return False
            job.progress = max(int(job.progress or 0), min(100, int(percent)))
            if message:
                job.progress_message = message[:255]
            job.locked_until = self._clock() + timedelta(seconds=self.lock_seconds)
            db.commit()
            return True

    def extend(self) -> bool:
        with self._session_factory() as db:
            job = self._load(db)
            if not self._owned(job):
                return False
            job.locked_until = self._clock() + timedelta(seconds=self.lock_seconds)
            db.commit()
            return True

    def cancel_requested(self) -> bool:
        with self._session_factory() as db:
            job = db.get(ScanJob, self.job_id)
            return bool(job is not None and job.cancel_requested)

    def complete(self, result: Dict[str, Any], document: Dict[str, Any], sink: ResultSink) -> bool:
        """Write the result document and mark completed in one transaction."""
        with self._session_factory() as db:
            job = self._load(db)
            if not self._owned(job):
                logger.warning("Job %s lock lost before completion; result discarded", self.job_id)
                return False
            sink.write(db, self.job_id, document)
            job.state = ScanJobState.completed
            job.progress = 100
            job.progress_message = "Complete"
            job.result_json = result
            job.error_message = None
            self._release(job)
            db.commit()
            return True

    def fail(self, reason: str) -> bool:
        with self._session_factory() as db:
            job = self._load(db)
            if not self._owned(job):
                logger.warning("Job %s lock lost before failure could be recorded", self.job_id)
                return False
            job.state = ScanJobState.failed
            job.progress = 100
            job.progress_message = "Failed"
            job.error_message = reason
            job.result_json = None
            self._release(job)
            db.commit()
            return True

    def _release(self, job: ScanJob) -> None:
        job.lock_owner = None
        job.locked_until = None
        job.finished_at = self._clock()
