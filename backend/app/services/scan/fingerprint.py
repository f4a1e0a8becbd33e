"""Deterministic job identifiers for idempotent submission."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Any, List, Optional

from .constants import DEFAULT_CATEGORY, FINGERPRINT_LENGTH
from .errors import ValidationError


@dataclass(frozen=True)
class ScanRequest:
    brand_name: str
    category: str
    competitor_urls: List[str]

    @property
    def fingerprint_urls(self) -> List[str]:
        return sorted(set(self.competitor_urls))


def normalize_request(
    brand_name: Any,
    category: Any,
    competitor_urls: Any,
) -> ScanRequest:
    """Validate raw submission input and apply defaults.

    ``competitor_urls`` keeps the caller's order; only the fingerprint sees a
    sorted copy.
    """
    if not isinstance(brand_name, str) or not brand_name.strip():
        raise ValidationError("brandName is required.")
    if not isinstance(competitor_urls, (list, tuple)) or not competitor_urls:
        raise ValidationError("competitorUrls must be a non-empty array.")

    urls: List[str] = []
    for raw in competitor_urls:
        if not isinstance(raw, str):
            raise ValidationError("competitorUrls must contain only strings.")
        value = raw.strip()
        if value:
            urls.append(value)
    if not urls:
        raise ValidationError("competitorUrls must be a non-empty array.")

    normalized_category: Optional[str] = category.strip() if isinstance(category, str) else None
    return ScanRequest(
        brand_name=brand_name.strip(),
        category=normalized_category or DEFAULT_CATEGORY,
        competitor_urls=urls,
    )


def compute_fingerprint(request: ScanRequest) -> str:
    payload = json.dumps(
        {
            "brandName": request.brand_name,
            "category": request.category,
            "competitorUrls": request.fingerprint_urls,
        },
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]
