"""Technology detection from script, stylesheet and generator clues."""

import asyncio
import logging
from typing import List, Optional

from app.services.llm.orchestrator import LLMOrchestrator
from app.services.llm.types import LLMRequest, LLMStage

from .constants import TECH_SIGNATURES, UNKNOWN_TECHNOLOGY
from .models import TechClues
from .parsing import parse_technologies
from .prompts import technology_prompt

logger = logging.getLogger(__name__)


def detect_from_signatures(clues: TechClues) -> List[str]:
    haystack = " ".join(clues.scripts + clues.stylesheets).lower()
    generator = (clues.generator or "").lower()
    found: List[str] = []
    for needle, name in TECH_SIGNATURES:
        if (needle in haystack or needle in generator) and name not in found:
            found.append(name)
    return found or [UNKNOWN_TECHNOLOGY]


class TechnologyDetector:
    """Classifies clues through the LLM; never raises."""

    def __init__(self, orchestrator: LLMOrchestrator, timeout_seconds: int = 30):
        self.orchestrator = orchestrator
        self.timeout_seconds = timeout_seconds

    async def detect(self, clues: TechClues, url: str, job_id: Optional[str] = None) -> List[str]:
        if clues.is_empty():
            return [UNKNOWN_TECHNOLOGY]
        request = LLMRequest(
            stage=LLMStage.technology_detection,
            prompt=technology_prompt(clues, url),
            system="You are a web technology expert that returns only JSON.",
            timeout_seconds=self.timeout_seconds,
            expect_json=True,
            max_tokens=400,
            temperature=0.0,
            metadata={"job_id": job_id, "url": url},
        )
        try:
            response = await asyncio.to_thread(self.orchestrator.run_stage, request)
            technologies = parse_technologies(response.text)
        except Exception as exc:
            logger.warning("[%s] Technology detection degraded to heuristics for %s: %s", job_id, url, exc)
            return detect_from_signatures(clues)
        return technologies or [UNKNOWN_TECHNOLOGY]
