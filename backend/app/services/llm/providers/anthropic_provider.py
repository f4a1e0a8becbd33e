from __future__ import annotations

from typing import List, Optional

from anthropic import Anthropic

from app.config import get_settings
from app.services.llm.types import LLMImage, LLMProviderError


class AnthropicProvider:
    name = "anthropic"

    def __init__(self) -> None:
        settings = get_settings()
        if not settings.anthropic_api_key:
            raise LLMProviderError("ANTHROPIC_API_KEY not configured", retryable=False)
        self._client = Anthropic(api_key=settings.anthropic_api_key)

    def generate(
        self,
        *,
        model: str,
        prompt: str,
        timeout_seconds: int,
        system: str = "",
        expect_json: bool = False,
        images: Optional[List[LLMImage]] = None,
        max_tokens: int = 2000,
        temperature: float = 0.4,
    ) -> str:
        # No native JSON mode; the prompt carries the output contract.
        del expect_json
        content = []
        for image in images or []:
            content.append(
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": image.media_type,
                        "data": image.data_base64,
                    },
                }
            )
        content.append({"type": "text", "text": prompt})
        kwargs = {}
        if system:
            kwargs["system"] = system
        try:
            response = self._client.messages.create(
                model=model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[{"role": "user", "content": content}],
                timeout=timeout_seconds,
                **kwargs,
            )
            text_parts = []
            for block in getattr(response, "content", []) or []:
                value = getattr(block, "text", None)
                if value:
                    text_parts.append(str(value))
            return "\n".join(text_parts).strip()
        except Exception as exc:
            raise LLMProviderError(str(exc), retryable=True) from exc
