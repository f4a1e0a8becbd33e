"""Specialist analysis stage: independent technical, content and visual passes."""

import asyncio
import logging
from typing import Dict, List

from app.services.llm.orchestrator import LLMOrchestrator
from app.services.llm.types import LLMImage, LLMOrchestrationError, LLMRequest, LLMStage

from .context import PipelineContext
from .errors import AnalysisError, ScanCancelledError
from .models import AnalyzerKind, CompetitorReport, SiteSnapshot, SpecialistReport, SpecialistStatus
from .parsing import ResponseFormatError, parse_findings
from .prompts import SPECIALIST_SYSTEM, specialist_prompt

logger = logging.getLogger(__name__)

_STAGE_FOR_KIND = {
    AnalyzerKind.technical: LLMStage.technical_analysis,
    AnalyzerKind.content: LLMStage.content_analysis,
    AnalyzerKind.visual: LLMStage.visual_analysis,
}


class SpecialistStage:
    def __init__(
        self,
        orchestrator: LLMOrchestrator,
        brand_name: str,
        category: str,
        timeout_seconds: int = 60,
    ):
        self.orchestrator = orchestrator
        self.brand_name = brand_name
        self.category = category
        self.timeout_seconds = timeout_seconds

    def applicable_kinds(self, snapshot: SiteSnapshot) -> List[AnalyzerKind]:
        kinds = [AnalyzerKind.technical, AnalyzerKind.content]
        if snapshot.visual_capture is not None:
            kinds.append(AnalyzerKind.visual)
        return kinds

    async def analyze(self, source_url: str, snapshot: SiteSnapshot, ctx: PipelineContext) -> CompetitorReport:
        """Run every applicable analyzer; all kinds are present in the result."""
        kinds = self.applicable_kinds(snapshot)
        results = await asyncio.gather(*(self._run(kind, snapshot, ctx) for kind in kinds))

        specialists: Dict[AnalyzerKind, SpecialistReport] = {report.analyzer: report for report in results}
        for kind in AnalyzerKind:
            if kind not in specialists:
                specialists[kind] = SpecialistReport(
                    analyzer=kind,
                    status=SpecialistStatus.skipped,
                    error="no visual capture available",
                )
        await ctx.raise_if_cancelled()
        return CompetitorReport(source_url=source_url, snapshot=snapshot, specialists=specialists)

    async def _run(self, kind: AnalyzerKind, snapshot: SiteSnapshot, ctx: PipelineContext) -> SpecialistReport:
        await ctx.raise_if_cancelled()
        try:
            findings = await self._call(kind, snapshot, ctx.job_id)
        except ScanCancelledError:
            raise
        except AnalysisError as exc:
            logger.warning("[%s] %s for %s", ctx.job_id, exc, snapshot.url)
            return SpecialistReport(analyzer=kind, status=SpecialistStatus.failed, error=str(exc))
        return SpecialistReport(
            analyzer=kind,
            status=SpecialistStatus.ok,
            strengths=findings.strengths,
            weaknesses=findings.weaknesses,
        )

    async def _call(self, kind: AnalyzerKind, snapshot: SiteSnapshot, job_id: str):
        images: List[LLMImage] = []
        if kind == AnalyzerKind.visual and snapshot.visual_capture is not None:
            images.append(
                LLMImage(
                    media_type=snapshot.visual_capture.media_type,
                    data_base64=snapshot.visual_capture.data_base64,
                )
            )
        request = LLMRequest(
            stage=_STAGE_FOR_KIND[kind],
            prompt=specialist_prompt(kind, snapshot, self.brand_name, self.category),
            system=SPECIALIST_SYSTEM[kind].format(category=self.category),
            timeout_seconds=self.timeout_seconds,
            expect_json=True,
            images=images,
            max_tokens=800,
            temperature=0.3,
            metadata={"job_id": job_id, "url": snapshot.url, "analyzer": kind.value},
        )
        try:
            response = await asyncio.to_thread(self.orchestrator.run_stage, request)
            return parse_findings(response.text)
        except (LLMOrchestrationError, ResponseFormatError) as exc:
            raise AnalysisError(kind.value, str(exc)) from exc
        except Exception as exc:
            raise AnalysisError(kind.value, f"{exc.__class__.__name__}: {exc}") from exc
