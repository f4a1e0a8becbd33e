from sqlalchemy import Column, String, DateTime, JSON
from datetime import datetime

from app.models.base import Base


class ScanResult(Base):
    """Result document written once a scan completes."""
    __tablename__ = "scan_results"

    job_id = Column(String(64), primary_key=True)
    document = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
