from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Tuple

from app.config import get_settings
from app.services.llm.providers.anthropic_provider import AnthropicProvider
from app.services.llm.providers.gemini_provider import GeminiProvider
from app.services.llm.providers.openai_provider import OpenAIProvider
from app.services.llm.types import (
    LLMOrchestrationError,
    LLMProviderError,
    LLMRequest,
    LLMResponse,
    ModelAttemptTrace,
    classify_retryable_error,
    now_iso,
)

logger = logging.getLogger(__name__)


class LLMOrchestrator:
    def __init__(self) -> None:
        self._settings = get_settings()
        self._providers: Dict[str, object] = {}

    def _provider(self, name: str):
        key = str(name or "").strip().lower()
        if key in self._providers:
            return self._providers[key]
        if key == "openai":
            instance = OpenAIProvider()
        elif key == "anthropic":
            instance = AnthropicProvider()
        elif key == "gemini":
            instance = GeminiProvider()
        else:
            raise LLMProviderError(f"Unsupported LLM provider: {name}", retryable=False)
        self._providers[key] = instance
        return instance

    def _routes_for_stage(self, stage_name: str) -> List[Tuple[str, str]]:
        routes = self._settings.stage_model_routes(stage_name)
        return routes if routes else [("openai", "gpt-4.1-mini")]

    def run_stage(self, request: LLMRequest) -> LLMResponse:
        """
        Walk the stage's provider:model routes in order. Retryable errors are
        retried on the same route with linear backoff; anything else moves on
        to the next route. Every attempt is traced with the request metadata
        (job id, competitor URL, analyzer) so a failing scan can be followed
        across providers.
        """
        attempts: List[ModelAttemptTrace] = []
        routes = self._routes_for_stage(request.stage.value)
        max_attempts = max(1, int(self._settings.stage_retry_max_attempts))
        backoff = max(0.0, float(self._settings.stage_retry_backoff_seconds))
        scope = _scope(request.metadata)

        for provider_name, model in routes:
            for retry_count in range(max_attempts):
                text, trace = self._attempt(request, provider_name, model, retry_count)
                attempts.append(trace)
                if trace.status == "success":
                    if len(attempts) > 1:
                        logger.info(
                            "LLM stage=%s %s served by %s:%s after %d attempts",
                            request.stage.value,
                            scope,
                            provider_name,
                            model,
                            len(attempts),
                        )
                    return LLMResponse(text=text, provider=provider_name, model=model, attempts=attempts)
                if trace.status != "retryable_error" or retry_count == max_attempts - 1:
                    break
                if backoff > 0:
                    time.sleep(backoff * (retry_count + 1))

        logger.error(
            "LLM stage=%s %s exhausted %d routes in %d attempts",
            request.stage.value,
            scope,
            len(routes),
            len(attempts),
        )
        raise LLMOrchestrationError(
            f"All model routes failed for stage={request.stage.value}",
            attempts=attempts,
        )

    def _attempt(
        self,
        request: LLMRequest,
        provider_name: str,
        model: str,
        retry_count: int,
    ) -> Tuple[str, ModelAttemptTrace]:
        started = now_iso()
        t0 = time.perf_counter()
        try:
            provider = self._provider(provider_name)
            text = provider.generate(
                model=model,
                prompt=request.prompt,
                system=request.system,
                timeout_seconds=max(1, int(request.timeout_seconds)),
                expect_json=bool(request.expect_json),
                images=list(request.images),
                max_tokens=int(request.max_tokens),
                temperature=float(request.temperature),
            )
        except Exception as exc:
            retryable = _is_retryable(exc)
            logger.warning(
                "LLM stage=%s %s provider=%s model=%s attempt=%d failed: %s",
                request.stage.value,
                _scope(request.metadata),
                provider_name,
                model,
                retry_count,
                str(exc)[:200],
            )
            return "", ModelAttemptTrace(
                stage=request.stage.value,
                provider=provider_name,
                model=model,
                latency_ms=int((time.perf_counter() - t0) * 1000),
                status="retryable_error" if retryable else "terminal_error",
                retry_count=retry_count,
                error_class=exc.__class__.__name__,
                error_message=str(exc)[:500],
                started_at=started,
                ended_at=now_iso(),
                metadata=dict(request.metadata),
            )
        return text, ModelAttemptTrace(
            stage=request.stage.value,
            provider=provider_name,
            model=model,
            latency_ms=int((time.perf_counter() - t0) * 1000),
            status="success",
            retry_count=retry_count,
            started_at=started,
            ended_at=now_iso(),
            metadata=dict(request.metadata),
        )


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, LLMProviderError) and exc.retryable:
        return True
    return classify_retryable_error(exc)


def _scope(metadata: Dict[str, Any]) -> str:
    """Render request metadata as ``key=value`` pairs for log lines."""
    pairs = [f"{key}={value}" for key, value in metadata.items() if value is not None]
    return " ".join(pairs) if pairs else "-"
