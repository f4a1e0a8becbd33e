import os

# Settings are read at import time by app.models.base / app.workers.celery_app.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("STAGE_RETRY_BACKOFF_SECONDS", "0")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.models.base import Base
from app.services.llm.types import LLMOrchestrationError, LLMResponse, LLMStage
from app.services.scan.models import AcquisitionMethod, SiteSnapshot, VisualCapture


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


FINDINGS_JSON = '{"strengths": ["Fast first paint"], "weaknesses": ["No structured data"]}'


class FakeOrchestrator:
    """Answers run_stage by stage; an Exception value is raised instead."""

    def __init__(self, responses=None):
        self.responses = {
            LLMStage.technology_detection: '{"technologies": ["React"]}',
            LLMStage.technical_analysis: FINDINGS_JSON,
            LLMStage.content_analysis: FINDINGS_JSON,
            LLMStage.visual_analysis: FINDINGS_JSON,
            LLMStage.synthesis: "## Market Overview\nCompetitors are strong on speed.",
        }
        self.responses.update(responses or {})
        self.requests = []

    def run_stage(self, request):
        self.requests.append(request)
        value = self.responses[request.stage]
        if callable(value) and not isinstance(value, Exception):
            value = value(request)
        if isinstance(value, Exception):
            raise value
        return LLMResponse(text=value, provider="fake", model="fake-model")


def orchestration_error(stage: str = "synthesis") -> LLMOrchestrationError:
    return LLMOrchestrationError(f"All model routes failed for stage={stage}")


def make_snapshot(url="https://acme.com/", capture=True, method=AcquisitionMethod.primary):
    return SiteSnapshot(
        url=url,
        requested_url=url,
        title="Acme",
        meta_description="Shoes",
        h1="Run further",
        h2_count=2,
        h3_count=1,
        word_count=250,
        internal_links=10,
        external_links=2,
        images=4,
        images_with_alt=3,
        schema_markup=True,
        canonical_url=url,
        meta_robots=None,
        performance=None,
        technology_stack=["Shopify"],
        acquisition_method=method,
        visual_capture=VisualCapture(media_type="image/jpeg", data_base64="aGk=") if capture else None,
    )


@pytest.fixture
def fake_orchestrator():
    return FakeOrchestrator()
