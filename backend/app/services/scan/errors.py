"""Error taxonomy for scan submission and execution."""

from __future__ import annotations

from typing import List, Optional, Tuple


class ScanError(RuntimeError):
    """Base class for scan errors."""


class ValidationError(ScanError):
    """Submission input rejected before any job is created."""


class AcquisitionError(ScanError):
    """Both acquisition strategies failed for one site."""

    def __init__(
        self,
        url: str,
        *,
        primary_error: Optional[BaseException] = None,
        fallback_error: Optional[BaseException] = None,
    ) -> None:
        self.url = url
        self.primary_error = primary_error
        self.fallback_error = fallback_error
        super().__init__(
            f"Failed to analyze {url}: primary={_describe(primary_error)}; "
            f"fallback={_describe(fallback_error)}"
        )


class AnalysisError(ScanError):
    """One specialist analyzer failed for one site."""

    def __init__(self, analyzer: str, message: str) -> None:
        self.analyzer = analyzer
        super().__init__(f"{analyzer} analyzer failed: {message}")


class SynthesisError(ScanError):
    """The cross-competitor synthesis call failed."""


class TotalFailureError(ScanError):
    """Every site's acquisition failed."""

    def __init__(self, failures: List[Tuple[str, str]]) -> None:
        self.failures = list(failures)
        details = " | ".join(f"{url}: {error}" for url, error in self.failures)
        super().__init__(
            f"No competitor data could be analyzed. All {len(self.failures)} attempts failed: {details}"
        )


class EnqueueError(ScanError):
    """The job row exists but the broker did not accept its message."""


class ScanCancelledError(ScanError):
    """The caller asked for the job to stop."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__("cancelled by caller")


def _describe(exc: Optional[BaseException]) -> str:
    if exc is None:
        return "not attempted"
    text = str(exc).strip() or exc.__class__.__name__
    return text[:300]
