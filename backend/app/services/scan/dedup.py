"""Collapse competitor URLs to one per registrable domain."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional
from urllib.parse import urlparse

import tldextract

from .constants import DEFAULT_SITE_CAP

logger = logging.getLogger(__name__)

# Offline extraction: use the bundled public suffix snapshot, never fetch it.
_extract = tldextract.TLDExtract(suffix_list_urls=())


def ensure_scheme(url: str) -> str:
    value = url.strip()
    if not value.lower().startswith(("http://", "https://")):
        value = f"https://{value}"
    return value


def root_domain(url: str) -> Optional[str]:
    """Registrable domain for ``url`` (``shop.example.co.uk`` -> ``example.co.uk``)."""
    try:
        hostname = urlparse(ensure_scheme(url)).hostname
    except ValueError:
        return None
    if not hostname:
        return None
    hostname = hostname.lower().rstrip(".")
    extracted = _extract(hostname)
    if extracted.domain and extracted.suffix:
        return f"{extracted.domain}.{extracted.suffix}"
    return hostname


def deduplicate_by_domain(urls: Iterable[object], cap: int = DEFAULT_SITE_CAP) -> List[str]:
    """Keep the first URL seen per root domain, in input order, up to ``cap``."""
    seen: set[str] = set()
    unique: List[str] = []
    for raw in urls:
        if not isinstance(raw, str) or not raw.strip():
            logger.warning("Skipping invalid URL for deduplication: %r", raw)
            continue
        clean = ensure_scheme(raw)
        domain = root_domain(clean)
        if not domain:
            logger.warning("Skipping invalid URL for deduplication: %s", raw)
            continue
        if domain in seen:
            continue
        seen.add(domain)
        unique.append(clean)
    return unique[: max(0, int(cap))]
