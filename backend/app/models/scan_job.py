"""Scan job model - one row per request fingerprint."""
from sqlalchemy import Column, Integer, String, DateTime, JSON, Text, Boolean, Enum
from datetime import datetime
import enum

from app.models.base import Base


class ScanJobState(enum.Enum):
    queued = "queued"
    active = "active"
    completed = "completed"
    failed = "failed"


TERMINAL_STATES = (ScanJobState.completed, ScanJobState.failed)


class ScanJob(Base):
    """Competitor scan job keyed by its request fingerprint."""
    __tablename__ = "scan_jobs"

    id = Column(String(64), primary_key=True)

    # Request (as submitted)
    brand_name = Column(String(255), nullable=False)
    category = Column(String(255), nullable=False, default="General")
    competitor_urls = Column(JSON, nullable=False, default=list)

    state = Column(Enum(ScanJobState), nullable=False, default=ScanJobState.queued)

    # Progress tracking (0 - 100, never decreasing within a run)
    progress = Column(Integer, nullable=False, default=0)
    progress_message = Column(String(255), nullable=True)

    # Results
    result_json = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)

    # Execution lock (claim / extend / release)
    lock_owner = Column(String(255), nullable=True)
    locked_until = Column(DateTime, nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    cancel_requested = Column(Boolean, nullable=False, default=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    started_at = Column(DateTime, nullable=True)
    finished_at = Column(DateTime, nullable=True)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES
