"""Result Sink - stores the finished scan document keyed by job id."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Protocol

from sqlalchemy.orm import Session

from app.models.scan_result import ScanResult
from app.services.scan.fingerprint import ScanRequest
from app.services.scan.models import FinalReport


class ResultSink(Protocol):
    def write(self, db: Session, job_id: str, document: Dict[str, Any]) -> None:
        ...

    def read(self, db: Session, job_id: str) -> Optional[Dict[str, Any]]:
        ...


def build_result_document(request: ScanRequest, report: FinalReport) -> Dict[str, Any]:
    """{...original inputs, ...FinalReport, success: true}"""
    return {
        "brandName": request.brand_name,
        "category": request.category,
        "competitorUrls": list(request.competitor_urls),
        **report.to_dict(),
        "success": True,
    }


class SqlResultSink:
    """Upserts into ``scan_results``; a re-run overwrites the previous document."""

    def write(self, db: Session, job_id: str, document: Dict[str, Any]) -> None:
        row = db.get(ScanResult, job_id)
        if row is None:
            db.add(ScanResult(job_id=job_id, document=document))
        else:
            row.document = document
            row.updated_at = datetime.utcnow()
        db.flush()

    def read(self, db: Session, job_id: str) -> Optional[Dict[str, Any]]:
        row = db.get(ScanResult, job_id)
        return dict(row.document) if row is not None else None
