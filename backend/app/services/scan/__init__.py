"""Competitor scan package: acquisition, specialist analysis and synthesis."""

from .models import (
    AcquisitionMethod,
    AnalyzerKind,
    SpecialistStatus,
    PerformanceTimings,
    VisualCapture,
    PageContent,
    SiteSnapshot,
    SpecialistReport,
    CompetitorReport,
    SiteFailure,
    FinalReport,
)
from .errors import (
    ScanError,
    ValidationError,
    AcquisitionError,
    AnalysisError,
    SynthesisError,
    TotalFailureError,
    ScanCancelledError,
    EnqueueError,
)
from .context import PipelineContext
from .fingerprint import ScanRequest, normalize_request, compute_fingerprint
from .dedup import deduplicate_by_domain, root_domain
from .acquisition import BrowserAcquirer, HttpAcquirer, SiteAnalyzer
from .technology import TechnologyDetector
from .specialists import SpecialistStage
from .synthesis import SynthesisStage
from .progress import ProgressTracker
from .pipeline import ScanPipeline, run_pipeline_sync

__all__ = [
    # Main entry points
    "ScanPipeline",
    "run_pipeline_sync",
    "PipelineContext",

    # Submission
    "ScanRequest",
    "normalize_request",
    "compute_fingerprint",

    # Stage components
    "deduplicate_by_domain",
    "root_domain",
    "BrowserAcquirer",
    "HttpAcquirer",
    "SiteAnalyzer",
    "TechnologyDetector",
    "SpecialistStage",
    "SynthesisStage",
    "ProgressTracker",

    # Data models
    "AcquisitionMethod",
    "AnalyzerKind",
    "SpecialistStatus",
    "PerformanceTimings",
    "VisualCapture",
    "PageContent",
    "SiteSnapshot",
    "SpecialistReport",
    "CompetitorReport",
    "SiteFailure",
    "FinalReport",

    # Errors
    "ScanError",
    "ValidationError",
    "AcquisitionError",
    "AnalysisError",
    "SynthesisError",
    "TotalFailureError",
    "ScanCancelledError",
    "EnqueueError",
]
