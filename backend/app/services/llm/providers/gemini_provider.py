from __future__ import annotations

import base64
from typing import List, Optional

from google import genai
from google.genai import types

from app.config import get_settings
from app.services.llm.types import LLMImage, LLMProviderError


class GeminiProvider:
    name = "gemini"

    def __init__(self) -> None:
        settings = get_settings()
        if not settings.gemini_api_key:
            raise LLMProviderError("GEMINI_API_KEY not configured", retryable=False)
        self._client = genai.Client(api_key=settings.gemini_api_key)

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
        contents: list = [
            types.Part.from_bytes(
                data=base64.b64decode(image.data_base64),
                mime_type=image.media_type,
            )
            for image in images or []
        ]
        contents.append(prompt)
        try:
            cfg = types.GenerateContentConfig(
                system_instruction=system or None,
                max_output_tokens=max_tokens,
                temperature=temperature,
                response_mime_type="application/json" if expect_json else None,
                http_options=types.HttpOptions(timeout=int(timeout_seconds) * 1000),
            )
            response = self._client.models.generate_content(
                model=model,
                contents=contents,
                config=cfg,
            )
            return str(response.text or "").strip()
        except Exception as exc:
            raise LLMProviderError(str(exc), retryable=True) from exc
