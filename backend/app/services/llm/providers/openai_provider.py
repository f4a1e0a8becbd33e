from __future__ import annotations

from typing import List, Optional

from openai import OpenAI

from app.config import get_settings
from app.services.llm.types import LLMImage, LLMProviderError


class OpenAIProvider:
    name = "openai"

    def __init__(self) -> None:
        settings = get_settings()
        if not settings.openai_api_key:
            raise LLMProviderError("OPENAI_API_KEY not configured", retryable=False)
        self._client = OpenAI(api_key=settings.openai_api_key)

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
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        if images:
            content = [{"type": "text", "text": prompt}]
            for image in images:
                content.append(
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:{image.media_type};base64,{image.data_base64}"},
                    }
                )
            messages.append({"role": "user", "content": content})
        else:
            messages.append({"role": "user", "content": prompt})

        kwargs = {}
        if expect_json:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            response = self._client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
                timeout=timeout_seconds,
                **kwargs,
            )
            content = response.choices[0].message.content if response.choices else ""
            return str(content or "").strip()
        except Exception as exc:
            raise LLMProviderError(str(exc), retryable=True) from exc
