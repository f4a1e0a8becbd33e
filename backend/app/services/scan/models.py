"""Data models for the competitor scan pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class AcquisitionMethod(str, Enum):
    primary = "primary"
    fallback = "fallback"


class AnalyzerKind(str, Enum):
    technical = "technical"
    content = "content"
    visual = "visual"


class SpecialistStatus(str, Enum):
    ok = "ok"
    failed = "failed"
    skipped = "skipped"


@dataclass(frozen=True)
class PerformanceTimings:
    """Browser-reported timings in milliseconds; None when not reported."""
    first_contentful_paint_ms: Optional[int] = None
    dom_content_loaded_ms: Optional[int] = None
    page_load_ms: Optional[int] = None


@dataclass(frozen=True)
class VisualCapture:
    media_type: str
    data_base64: str


@dataclass(frozen=True)
class PageContent:
    """Raw markup obtained by one acquisition strategy."""
    final_url: str
    html: str
    performance: Optional[PerformanceTimings] = None
    visual_capture: Optional[VisualCapture] = None


@dataclass(frozen=True)
class TechClues:
    scripts: List[str] = field(default_factory=list)
    stylesheets: List[str] = field(default_factory=list)
    generator: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.scripts and not self.stylesheets and not self.generator


@dataclass(frozen=True)
class MarkupFields:
    """Structured fields extracted from markup, before technology detection."""
    title: str
    meta_description: str
    h1: str
    h2_count: int
    h3_count: int
    word_count: int
    internal_links: int
    external_links: int
    images: int
    images_with_alt: int
    schema_markup: bool
    canonical_url: Optional[str]
    meta_robots: Optional[str]
    tech_clues: TechClues


@dataclass(frozen=True)
class SiteSnapshot:
    """One competitor site's scraped data."""
    url: str
    requested_url: str
    title: str
    meta_description: str
    h1: str
    h2_count: int
    h3_count: int
    word_count: int
    internal_links: int
    external_links: int
    images: int
    images_with_alt: int
    schema_markup: bool
    canonical_url: Optional[str]
    meta_robots: Optional[str]
    performance: Optional[PerformanceTimings]
    technology_stack: List[str]
    acquisition_method: AcquisitionMethod
    visual_capture: Optional[VisualCapture] = None

    def performance_summary(self) -> Dict[str, Any]:
        if self.performance is None:
            return {"available": False, "reason": f"{self.acquisition_method.value}_acquisition"}
        return {
            "available": True,
            "firstContentfulPaintMs": self.performance.first_contentful_paint_ms,
            "domContentLoadedMs": self.performance.dom_content_loaded_ms,
            "pageLoadMs": self.performance.page_load_ms,
        }

    def to_summary(self) -> Dict[str, Any]:
        """JSON-safe summary; the capture bytes are reduced to a flag."""
        return {
            "url": self.url,
            "requestedUrl": self.requested_url,
            "title": self.title,
            "metaDescription": self.meta_description,
            "h1": self.h1,
            "h2Count": self.h2_count,
            "h3Count": self.h3_count,
            "wordCount": self.word_count,
            "internalLinks": self.internal_links,
            "externalLinks": self.external_links,
            "images": self.images,
            "imagesWithAlt": self.images_with_alt,
            "schemaMarkup": self.schema_markup,
            "canonicalUrl": self.canonical_url,
            "metaRobots": self.meta_robots,
            "performance": self.performance_summary(),
            "technologyStack": list(self.technology_stack),
            "hasVisualCapture": self.visual_capture is not None,
            "acquisitionMethod": self.acquisition_method.value,
        }


@dataclass(frozen=True)
class SpecialistReport:
    analyzer: AnalyzerKind
    status: SpecialistStatus
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == SpecialistStatus.ok

    def to_dict(self) -> Dict[str, Any]:
        return {
            "analyzer": self.analyzer.value,
            "status": self.status.value,
            "strengths": list(self.strengths),
            "weaknesses": list(self.weaknesses),
            "error": self.error,
        }


@dataclass(frozen=True)
class CompetitorReport:
    source_url: str
    snapshot: SiteSnapshot
    specialists: Dict[AnalyzerKind, SpecialistReport]

    def to_summary(self) -> Dict[str, Any]:
        summary = self.snapshot.to_summary()
        summary["sourceUrl"] = self.source_url
        summary["specialists"] = {
            kind.value: self.specialists[kind].to_dict()
            for kind in AnalyzerKind
            if kind in self.specialists
        }
        return summary


@dataclass(frozen=True)
class SiteFailure:
    url: str
    error: str


@dataclass(frozen=True)
class FinalReport:
    brand_name: str
    category: str
    competitors: List[CompetitorReport]
    analysis: str
    timestamp: str
    failed_sites: List[SiteFailure] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "brandName": self.brand_name,
            "category": self.category,
            "competitorsAnalyzed": [report.to_summary() for report in self.competitors],
            "analysis": self.analysis,
            "timestamp": self.timestamp,
            "failedSites": [{"url": f.url, "error": f.error} for f in self.failed_sites],
        }
