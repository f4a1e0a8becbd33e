"""Strict validation of analysis-capability responses."""

from __future__ import annotations

import json
import re
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class ResponseFormatError(ValueError):
    """The response did not match the expected schema."""


def _clean_items(values: List[str]) -> List[str]:
    cleaned: List[str] = []
    for value in values:
        text = value.strip()
        if text and text not in cleaned:
            cleaned.append(text)
    return cleaned


class Findings(BaseModel):
    model_config = ConfigDict(extra="ignore", strict=True)

    strengths: List[str]
    weaknesses: List[str]

    @field_validator("strengths", "weaknesses")
    @classmethod
    def _strip_items(cls, values: List[str]) -> List[str]:
        return _clean_items(values)


class TechnologyList(BaseModel):
    model_config = ConfigDict(extra="ignore", strict=True)

    technologies: List[str] = Field(default_factory=list)

    @field_validator("technologies")
    @classmethod
    def _strip_items(cls, values: List[str]) -> List[str]:
        return _clean_items(values)


def strip_code_fence(text: str) -> str:
    return _CODE_FENCE.sub("", str(text or "").strip()).strip()


def _load_json(text: str) -> Any:
    cleaned = strip_code_fence(text)
    if not cleaned:
        raise ResponseFormatError("empty response")
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ResponseFormatError(f"response is not valid JSON: {exc.msg}") from exc


def parse_findings(text: str) -> Findings:
    payload = _load_json(text)
    try:
        return Findings.model_validate(payload)
    except ValidationError as exc:
        raise ResponseFormatError(f"response does not match findings schema: {exc.error_count()} errors") from exc


def parse_technologies(text: str) -> List[str]:
    payload = _load_json(text)
    if isinstance(payload, list):
        payload = {"technologies": payload}
    try:
        return TechnologyList.model_validate(payload).technologies
    except ValidationError as exc:
        raise ResponseFormatError(f"response does not match technology schema: {exc.error_count()} errors") from exc
