from datetime import datetime, timedelta

from app.models.scan_job import ScanJob, ScanJobState
from app.models.scan_result import ScanResult
from app.services.job_lock import JobLock
from app.services.result_sink import SqlResultSink


class _Clock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


def _queued_job(session_factory, job_id="job-1"):
    with session_factory() as db:
        db.add(
            ScanJob(
                id=job_id,
                brand_name="Acme",
                category="Retail",
                competitor_urls=["https://a.com"],
                state=ScanJobState.queued,
                progress=0,
            )
        )
        db.commit()
    return job_id


def _load(session_factory, job_id):
    with session_factory() as db:
        return db.get(ScanJob, job_id)


def test_claim_marks_job_active_for_one_owner(session_factory):
    job_id = _queued_job(session_factory)
    clock = _Clock()
    first = JobLock(session_factory, job_id, "worker-a", lock_seconds=60, clock=clock)
    second = JobLock(session_factory, job_id, "worker-b", lock_seconds=60, clock=clock)

    claimed = first.claim()
    assert claimed is not None
    assert claimed.state == ScanJobState.active
    assert claimed.lock_owner == "worker-a"
    assert claimed.attempts == 1
    assert second.claim() is None


def test_expired_lock_can_be_reclaimed(session_factory):
    job_id = _queued_job(session_factory)
    clock = _Clock()
    dead = JobLock(session_factory, job_id, "worker-a", lock_seconds=60, clock=clock)
    assert dead.claim() is not None
    assert dead.record_progress(40, "Acquired https://a.com")

    clock.advance(61)
    survivor = JobLock(session_factory, job_id, "worker-b", lock_seconds=60, clock=clock)
    reclaimed = survivor.claim()
    assert reclaimed is not None
    assert reclaimed.lock_owner == "worker-b"
    assert reclaimed.attempts == 2
    # A reclaimed run never reports lower progress than the dead one did.
    assert reclaimed.progress == 40

    # The previous owner can no longer write.
    assert dead.record_progress(90) is False
    assert dead.fail("late failure") is False


def test_progress_never_decreases_and_extends_the_lock(session_factory):
    job_id = _queued_job(session_factory)
    clock = _Clock()
    lock = JobLock(session_factory, job_id, "worker-a", lock_seconds=60, clock=clock)
    lock.claim()

    clock.advance(50)
    lock.record_progress(50, "halfway")
    lock.record_progress(30)
    job = _load(session_factory, job_id)
    assert job.progress == 50
    assert job.progress_message == "halfway"
    assert job.locked_until == clock.now + timedelta(seconds=60)


def test_completed_and_failed_jobs_cannot_be_claimed(session_factory):
    job_id = _queued_job(session_factory)
    lock = JobLock(session_factory, job_id, "worker-a", lock_seconds=60, clock=_Clock())
    lock.claim()
    assert lock.fail("boom")
    assert JobLock(session_factory, job_id, "worker-b", clock=_Clock()).claim() is None
    assert JobLock(session_factory, "missing", "worker-b").claim() is None


def test_complete_writes_document_and_releases_lock(session_factory):
    job_id = _queued_job(session_factory)
    lock = JobLock(session_factory, job_id, "worker-a", lock_seconds=60, clock=_Clock())
    lock.claim()

    assert lock.complete({"analysis": "ok"}, {"analysis": "ok", "success": True}, SqlResultSink())

    job = _load(session_factory, job_id)
    assert job.state == ScanJobState.completed
    assert job.progress == 100
    assert job.lock_owner is None
    assert job.finished_at is not None
    with session_factory() as db:
        assert db.get(ScanResult, job_id).document == {"analysis": "ok", "success": True}


def test_fail_records_reason_without_document(session_factory):
    job_id = _queued_job(session_factory)
    lock = JobLock(session_factory, job_id, "worker-a", lock_seconds=60, clock=_Clock())
    lock.claim()

    assert lock.fail("No competitor data could be analyzed.")

    job = _load(session_factory, job_id)
    assert job.state == ScanJobState.failed
    assert job.progress == 100
    assert job.error_message == "No competitor data could be analyzed."
    with session_factory() as db:
        assert db.get(ScanResult, job_id) is None


def test_seconds_until_free_reports_only_live_foreign_locks(session_factory):
    clock = _Clock()
    job_id = _queued_job(session_factory)
    observer = JobLock(session_factory, job_id, "worker-b", lock_seconds=60, clock=clock)
    assert observer.seconds_until_free() is None

    JobLock(session_factory, job_id, "worker-a", lock_seconds=60, clock=clock).claim()
    clock.advance(20)
    assert observer.seconds_until_free() == 40

    clock.advance(41)
    assert observer.seconds_until_free() is None
    assert observer.claim() is not None
