"""Synthesis stage: one cross-competitor narrative from all competitor reports."""

import asyncio
import logging
from typing import List

from app.services.llm.orchestrator import LLMOrchestrator
from app.services.llm.types import LLMRequest, LLMStage

from .context import PipelineContext
from .errors import SynthesisError
from .models import CompetitorReport
from .prompts import synthesis_prompt, synthesis_system

logger = logging.getLogger(__name__)


class SynthesisStage:
    def __init__(self, orchestrator: LLMOrchestrator, timeout_seconds: int = 120):
        self.orchestrator = orchestrator
        self.timeout_seconds = timeout_seconds

    async def synthesize(
        self,
        brand_name: str,
        category: str,
        reports: List[CompetitorReport],
        ctx: PipelineContext,
    ) -> str:
        if not reports:
            raise SynthesisError("Synthesis requires at least one competitor report.")
        await ctx.raise_if_cancelled()
        request = LLMRequest(
            stage=LLMStage.synthesis,
            prompt=synthesis_prompt(brand_name, category, reports),
            system=synthesis_system(category),
            timeout_seconds=self.timeout_seconds,
            max_tokens=2000,
            temperature=0.5,
            metadata={"job_id": ctx.job_id, "competitors": len(reports)},
        )
        try:
            response = await asyncio.to_thread(self.orchestrator.run_stage, request)
        except Exception as exc:
            logger.error("[%s] Synthesis failed: %s", ctx.job_id, exc)
            raise SynthesisError(f"Failed to generate comparative report: {exc}") from exc
        await ctx.raise_if_cancelled()

        text = str(response.text or "").strip()
        if not text:
            raise SynthesisError("Failed to generate comparative report: empty response")
        return text
