from conftest import FakeOrchestrator, make_snapshot, orchestration_error
from app.models.scan_job import ScanJob, ScanJobState
from app.models.scan_result import ScanResult
from app.services.gateway import submit_scan
from app.services.job_lock import JobLock
from app.services.llm.types import LLMStage
from app.services.scan.errors import AcquisitionError
from app.services.scan.pipeline import ScanPipeline
from app.workers import scan_tasks


class _SiteAnalyzer:
    def __init__(self, down=()):
        self.down = set(down)

    async def analyze(self, url, ctx):
        await ctx.raise_if_cancelled()
        if url in self.down:
            raise AcquisitionError(url, primary_error=TimeoutError("timeout"), fallback_error=OSError("refused"))
        return make_snapshot(url=url)


def _submit(session_factory, urls):
    with session_factory() as db:
        return submit_scan(db, "Acme", "Retail", urls, enqueue=lambda _job_id: None)


def _factory(down=(), orchestrator=None):
    return lambda: ScanPipeline(site_analyzer=_SiteAnalyzer(down), orchestrator=orchestrator or FakeOrchestrator())


def _job(session_factory, job_id):
    with session_factory() as db:
        job = db.get(ScanJob, job_id)
        document = db.get(ScanResult, job_id)
        return job, (document.document if document else None)


def test_successful_run_writes_document_and_completes(session_factory):
    job_id = _submit(session_factory, ["https://a.com", "https://b.com"])

    outcome = scan_tasks.execute_scan(job_id, "worker-a", session_factory=session_factory, pipeline_factory=_factory())

    assert outcome["success"] is True
    job, document = _job(session_factory, job_id)
    assert job.state == ScanJobState.completed
    assert job.progress == 100
    assert document["success"] is True
    assert document["brandName"] == "Acme"
    assert document["competitorUrls"] == ["https://a.com", "https://b.com"]
    assert [c["sourceUrl"] for c in document["competitorsAnalyzed"]] == ["https://a.com", "https://b.com"]
    assert document["analysis"].startswith("## Market Overview")


def test_total_failure_marks_failed_without_document(session_factory):
    job_id = _submit(session_factory, ["https://a.com"])

    outcome = scan_tasks.execute_scan(
        job_id, "worker-a", session_factory=session_factory, pipeline_factory=_factory(down={"https://a.com"})
    )

    assert "No competitor data could be analyzed" in outcome["error"]
    job, document = _job(session_factory, job_id)
    assert job.state == ScanJobState.failed
    assert job.progress == 100
    assert job.error_message.startswith("No competitor data could be analyzed. All 1 attempts failed")
    assert document is None


def test_synthesis_failure_marks_failed(session_factory):
    job_id = _submit(session_factory, ["https://a.com"])
    orchestrator = FakeOrchestrator({LLMStage.synthesis: orchestration_error()})

    scan_tasks.execute_scan(
        job_id, "worker-a", session_factory=session_factory, pipeline_factory=_factory(orchestrator=orchestrator)
    )

    job, document = _job(session_factory, job_id)
    assert job.state == ScanJobState.failed
    assert job.error_message.startswith("Failed to generate comparative report")
    assert document is None


def test_redelivered_message_for_finished_job_is_skipped(session_factory):
    job_id = _submit(session_factory, ["https://a.com"])
    scan_tasks.execute_scan(job_id, "worker-a", session_factory=session_factory, pipeline_factory=_factory())

    def _must_not_build():
        raise AssertionError("pipeline must not run twice")

    outcome = scan_tasks.execute_scan(
        job_id, "worker-b", session_factory=session_factory, pipeline_factory=_must_not_build
    )
    assert outcome == {"skipped": True, "job_id": job_id}


def test_redelivery_while_lock_is_live_defers_until_expiry(session_factory):
    job_id = _submit(session_factory, ["https://a.com"])
    assert JobLock(session_factory, job_id, "worker-a", lock_seconds=900).claim() is not None

    def _must_not_build():
        raise AssertionError("pipeline must not run while another worker holds the lock")

    outcome = scan_tasks.execute_scan(
        job_id, "worker-b", session_factory=session_factory, pipeline_factory=_must_not_build
    )

    assert outcome["deferred"] is True
    assert 0 < outcome["retry_in"] <= 901
    job, _document = _job(session_factory, job_id)
    assert job.state == ScanJobState.active
    assert job.lock_owner == "worker-a"

def test_cancel_before_start_fails_the_job(session_factory):
    job_id = _submit(session_factory, ["https://a.com"])
    with session_factory() as db:
        db.get(ScanJob, job_id).cancel_requested = True
        db.commit()

    outcome = scan_tasks.execute_scan(job_id, "worker-a", session_factory=session_factory, pipeline_factory=_factory())

    assert outcome["error"] == "cancelled by caller"
    job, document = _job(session_factory, job_id)
    assert job.state == ScanJobState.failed
    assert job.error_message == "cancelled by caller"
    assert document is None


def test_task_defers_when_start_window_is_full(monkeypatch):
    class _FullLimiter:
        def try_acquire(self):
            return 12.5

    class _Deferred(Exception):
        pass

    captured = {}

    def fake_retry(countdown=None, **_kwargs):
        captured["countdown"] = countdown
        return _Deferred()

    def fake_execute(*_args, **_kwargs):
        raise AssertionError("job must not start while the window is full")

    monkeypatch.setattr(scan_tasks, "JobStartLimiter", _FullLimiter)
    monkeypatch.setattr(scan_tasks, "execute_scan", fake_execute)
    monkeypatch.setattr(scan_tasks.run_competitor_scan, "retry", fake_retry)

    try:
        scan_tasks.run_competitor_scan.run("job-1")
    except _Deferred:
        pass
    else:  # pragma: no cover - defensive
        raise AssertionError("Expected the start to be deferred")
    assert captured["countdown"] == 12.5


def test_task_runs_when_start_is_admitted(monkeypatch):
    class _OpenLimiter:
        def try_acquire(self):
            return 0.0

    calls = []

    def fake_execute(job_id, owner):
        calls.append((job_id, owner))
        return {"ok": True}

    monkeypatch.setattr(scan_tasks, "JobStartLimiter", _OpenLimiter)
    monkeypatch.setattr(scan_tasks, "execute_scan", fake_execute)

    assert scan_tasks.run_competitor_scan.run("job-1") == {"ok": True}
    assert calls[0][0] == "job-1"


def test_task_retries_when_lock_is_held_elsewhere(monkeypatch):
    class _OpenLimiter:
        def try_acquire(self):
            return 0.0

    class _Deferred(Exception):
        pass

    captured = {}

    def fake_retry(countdown=None, **_kwargs):
        captured["countdown"] = countdown
        return _Deferred()

    monkeypatch.setattr(scan_tasks, "JobStartLimiter", _OpenLimiter)
    monkeypatch.setattr(
        scan_tasks, "execute_scan", lambda job_id, owner: {"deferred": True, "job_id": job_id, "retry_in": 301}
    )
    monkeypatch.setattr(scan_tasks.run_competitor_scan, "retry", fake_retry)

    try:
        scan_tasks.run_competitor_scan.run("job-1")
    except _Deferred:
        pass
    else:  # pragma: no cover - defensive
        raise AssertionError("Expected the task to retry after the lock expires")
    assert captured["countdown"] == 301
