import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.models.base import get_db
from app.models.scan_job import ScanJob, ScanJobState
from app.services import gateway


@pytest.fixture
def client(session_factory, monkeypatch):
    enqueued = []
    monkeypatch.setattr(gateway, "enqueue_scan", enqueued.append)

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)
    test_client.enqueued = enqueued
    yield test_client
    app.dependency_overrides.clear()


def test_submit_returns_202_with_job_id(client):
    body = {"brandName": "Acme", "category": "Retail", "competitorUrls": ["https://a.com"]}
    first = client.post("/scans", json=body)
    second = client.post("/scans", json=body)

    assert first.status_code == 202
    assert first.json()["jobId"] == second.json()["jobId"]
    assert len(first.json()["jobId"]) == 32
    assert client.enqueued == [first.json()["jobId"]]


def test_submit_rejects_invalid_input_with_400(client):
    response = client.post("/scans", json={"brandName": "Acme", "competitorUrls": []})
    assert response.status_code == 400
    assert response.json()["detail"] == "competitorUrls must be a non-empty array."
    assert client.enqueued == []


def test_submit_returns_503_when_broker_is_unreachable(client, monkeypatch):
    def broken_queue(job_id):
        raise ConnectionError("broker unreachable")

    monkeypatch.setattr(gateway, "enqueue_scan", broken_queue)
    body = {"brandName": "Acme", "category": "Retail", "competitorUrls": ["https://a.com"]}
    response = client.post("/scans", json=body)

    assert response.status_code == 503
    assert "broker unreachable" in response.json()["detail"]


def test_poll_reports_state_and_progress(client, session_factory):
    job_id = client.post("/scans", json={"brandName": "Acme", "competitorUrls": ["a.com"]}).json()["jobId"]

    response = client.get(f"/scans/{job_id}")
    assert response.status_code == 200
    assert response.json() == {"state": "queued", "progress": 0}

    with session_factory() as db:
        job = db.get(ScanJob, job_id)
        job.state = ScanJobState.failed
        job.progress = 100
        job.error_message = "No competitor data could be analyzed."
        db.commit()
    assert client.get(f"/scans/{job_id}").json() == {
        "state": "failed",
        "progress": 100,
        "error": "No competitor data could be analyzed.",
    }


def test_unknown_job_is_404(client):
    assert client.get("/scans/does-not-exist").status_code == 404
    assert client.post("/scans/does-not-exist/cancel").status_code == 404


def test_cancel_marks_live_job(client):
    job_id = client.post("/scans", json={"brandName": "Acme", "competitorUrls": ["a.com"]}).json()["jobId"]
    response = client.post(f"/scans/{job_id}/cancel")
    assert response.json() == {"jobId": job_id, "cancelRequested": True}


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
