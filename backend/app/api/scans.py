"""Scan API routes - submit, poll and cancel."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional

from app.models.base import get_db
from app.services.gateway import cancel_scan, get_scan_status, submit_scan
from app.services.scan.errors import EnqueueError, ValidationError

router = APIRouter()


# ============================================================================
# Pydantic Schemas
# ============================================================================

class ScanSubmitRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Loosely typed so the gateway owns validation and its error messages.
    brand_name: Any = Field(default=None, alias="brandName")
    category: Optional[Any] = None
    competitor_urls: Any = Field(default=None, alias="competitorUrls")


class ScanSubmitResponse(BaseModel):
    jobId: str


class ScanStatusResponse(BaseModel):
    state: str
    progress: int
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class ScanCancelResponse(BaseModel):
    jobId: str
    cancelRequested: bool


# ============================================================================
# Routes
# ============================================================================

@router.post("", response_model=ScanSubmitResponse, status_code=status.HTTP_202_ACCEPTED)
def create_scan(payload: ScanSubmitRequest, db: Session = Depends(get_db)):
    try:
        job_id = submit_scan(db, payload.brand_name, payload.category, payload.competitor_urls)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except EnqueueError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return ScanSubmitResponse(jobId=job_id)


@router.get("/{job_id}", response_model=ScanStatusResponse, response_model_exclude_none=True)
def get_scan(job_id: str, db: Session = Depends(get_db)):
    result = get_scan_status(db, job_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return ScanStatusResponse(
        state=result["state"],
        progress=result["progress"],
        result=result.get("result"),
        error=result.get("error"),
    )


@router.post("/{job_id}/cancel", response_model=ScanCancelResponse)
def request_cancel(job_id: str, db: Session = Depends(get_db)):
    recorded = cancel_scan(db, job_id)
    if recorded is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return ScanCancelResponse(jobId=job_id, cancelRequested=recorded)
