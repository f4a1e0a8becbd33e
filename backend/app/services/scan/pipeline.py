"""Competitor scan pipeline - dedup, acquisition, specialists, synthesis."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Iterable, List, Optional, TypeVar

from app.config import Settings, get_settings
from app.services.llm.orchestrator import LLMOrchestrator

from .acquisition import BrowserAcquirer, HttpAcquirer, SiteAnalyzer
from .context import PipelineContext
from .dedup import deduplicate_by_domain
from .errors import AcquisitionError, ScanCancelledError, TotalFailureError
from .fingerprint import ScanRequest
from .models import CompetitorReport, FinalReport, SiteFailure, SiteSnapshot
from .progress import ProgressTracker
from .specialists import SpecialistStage
from .synthesis import SynthesisStage
from .technology import TechnologyDetector

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _gather_cancelling(awaitables: Iterable[Awaitable[T]]) -> List[T]:
    """gather() that cancels the siblings when one of them raises."""
    tasks = [asyncio.ensure_future(awaitable) for awaitable in awaitables]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


@dataclass(frozen=True)
class AcquisitionOutcome:
    url: str
    snapshot: Optional[SiteSnapshot] = None
    error: Optional[str] = None


class ScanPipeline:
    """
    Executes one job end to end:

    1. Dedup - one URL per root domain, capped
    2. Acquisition - SiteAnalyzer per URL, in parallel
    3. Specialists - technical/content/visual per acquired site, in parallel
    4. Synthesis - one narrative across all competitors

    Nothing here has external side effects; the caller persists the report.
    """

    def __init__(
        self,
        site_analyzer: SiteAnalyzer,
        orchestrator: LLMOrchestrator,
        site_cap: int = 5,
        acquisition_weight: float = 50.0,
        analysis_weight: float = 50.0,
        analysis_timeout_seconds: int = 60,
        synthesis_timeout_seconds: int = 120,
    ):
        self.site_analyzer = site_analyzer
        self.orchestrator = orchestrator
        self.site_cap = site_cap
        self.acquisition_weight = acquisition_weight
        self.analysis_weight = analysis_weight
        self.analysis_timeout_seconds = analysis_timeout_seconds
        self.synthesis = SynthesisStage(orchestrator, timeout_seconds=synthesis_timeout_seconds)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        orchestrator: Optional[LLMOrchestrator] = None,
    ) -> "ScanPipeline":
        settings = settings or get_settings()
        orchestrator = orchestrator or LLMOrchestrator()
        analyzer = SiteAnalyzer(
            primary=BrowserAcquirer(
                navigation_timeout_seconds=settings.scan_navigation_timeout_seconds,
                capture_screenshot=settings.scan_capture_screenshot,
            ),
            fallback=HttpAcquirer(timeout_seconds=settings.scan_fallback_timeout_seconds),
            technology_detector=TechnologyDetector(orchestrator),
        )
        return cls(
            site_analyzer=analyzer,
            orchestrator=orchestrator,
            site_cap=settings.scan_site_cap,
            acquisition_weight=settings.scan_acquisition_weight,
            analysis_weight=settings.scan_analysis_weight,
            analysis_timeout_seconds=settings.llm_analysis_timeout_seconds,
            synthesis_timeout_seconds=settings.llm_synthesis_timeout_seconds,
        )

    async def run(self, request: ScanRequest, ctx: PipelineContext) -> FinalReport:
        urls = deduplicate_by_domain(request.competitor_urls, cap=self.site_cap)
        logger.info(
            "[%s] Scanning %d unique competitors for brand=%s category=%s",
            ctx.job_id,
            len(urls),
            request.brand_name,
            request.category,
        )
        if not urls:
            raise TotalFailureError([(url, "invalid URL") for url in request.competitor_urls])

        tracker = ProgressTracker(
            total_sites=len(urls),
            acquisition_weight=self.acquisition_weight,
            analysis_weight=self.analysis_weight,
        )
        await ctx.raise_if_cancelled()

        outcomes = await _gather_cancelling(self._acquire(url, ctx, tracker) for url in urls)
        acquired = [outcome for outcome in outcomes if outcome.snapshot is not None]
        failures = [SiteFailure(url=o.url, error=o.error or "unknown error") for o in outcomes if o.snapshot is None]
        logger.info("[%s] Acquisition summary: %d successful, %d failed", ctx.job_id, len(acquired), len(failures))

        if not acquired:
            raise TotalFailureError([(failure.url, failure.error) for failure in failures])

        message = f"Analyzing {len(acquired)} competitors..."
        await ctx.report_progress(tracker.begin_analysis(len(acquired), message), message)
        specialists = SpecialistStage(
            self.orchestrator,
            brand_name=request.brand_name,
            category=request.category,
            timeout_seconds=self.analysis_timeout_seconds,
        )
        reports: List[CompetitorReport] = await _gather_cancelling(
            self._analyze(specialists, outcome, ctx, tracker) for outcome in acquired
        )

        analysis = await self.synthesis.synthesize(request.brand_name, request.category, reports, ctx)
        await ctx.report_progress(tracker.complete("Report ready"), "Report ready")
        return FinalReport(
            brand_name=request.brand_name,
            category=request.category,
            competitors=reports,
            analysis=analysis,
            timestamp=datetime.now(timezone.utc).isoformat(),
            failed_sites=failures,
        )

    async def _acquire(self, url: str, ctx: PipelineContext, tracker: ProgressTracker) -> AcquisitionOutcome:
        try:
            snapshot = await self.site_analyzer.analyze(url, ctx)
        except ScanCancelledError:
            raise
        except AcquisitionError as exc:
            logger.warning("[%s] %s", ctx.job_id, exc)
            outcome = AcquisitionOutcome(url=url, error=str(exc))
        except Exception as exc:
            logger.warning("[%s] Snapshot extraction failed for %s: %s", ctx.job_id, url, exc)
            outcome = AcquisitionOutcome(url=url, error=f"{exc.__class__.__name__}: {exc}")
        else:
            outcome = AcquisitionOutcome(url=url, snapshot=snapshot)
        message = f"Acquired {outcome.url}" if outcome.snapshot else f"Failed {outcome.url}"
        await ctx.report_progress(tracker.site_acquired(message), message)
        return outcome

    async def _analyze(
        self,
        specialists: SpecialistStage,
        outcome: AcquisitionOutcome,
        ctx: PipelineContext,
        tracker: ProgressTracker,
    ) -> CompetitorReport:
        report = await specialists.analyze(outcome.url, outcome.snapshot, ctx)
        message = f"Analyzed {outcome.url}"
        await ctx.report_progress(tracker.site_analyzed(message), message)
        return report


def run_pipeline_sync(pipeline: ScanPipeline, request: ScanRequest, ctx: PipelineContext) -> FinalReport:
    """Run the async pipeline on a private event loop (Celery tasks are sync)."""
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        return loop.run_until_complete(pipeline.run(request, ctx))
    finally:
        try:
            loop.run_until_complete(loop.shutdown_default_executor())
        finally:
            asyncio.set_event_loop(None)
            loop.close()
