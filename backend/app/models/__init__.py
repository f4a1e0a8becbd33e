from app.models.base import Base
from app.models.scan_job import ScanJob, ScanJobState, TERMINAL_STATES
from app.models.scan_result import ScanResult

__all__ = [
    "Base",
    "ScanJob", "ScanJobState", "TERMINAL_STATES",
    "ScanResult",
]
