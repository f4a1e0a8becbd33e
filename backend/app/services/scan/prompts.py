"""Prompt builders for the analysis stages."""

import json
from typing import Any, Dict, List

from .models import AnalyzerKind, CompetitorReport, SiteSnapshot, TechClues

FINDINGS_CONTRACT = (
    'Return ONLY a JSON object of the form {"strengths": ["..."], "weaknesses": ["..."]} '
    "with 2-6 short, specific items in each list."
)

SPECIALIST_SYSTEM = {
    AnalyzerKind.technical: "You are a technical SEO and web performance auditor for the {category} industry. You return only JSON.",
    AnalyzerKind.content: "You are a content and messaging strategist for the {category} industry. You return only JSON.",
    AnalyzerKind.visual: "You are a conversion-focused visual design reviewer for the {category} industry. You return only JSON.",
}


def _dump(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def technology_prompt(clues: TechClues, url: str) -> str:
    payload = {
        "scripts": clues.scripts,
        "stylesheets": clues.stylesheets,
        "generator": clues.generator,
    }
    return f"""Based on the JavaScript files, CSS files and generator tag below from {url},
identify the key technologies in use. Focus on major frameworks, platforms, and analytics tools.

{_dump(payload)}

Return ONLY a JSON object: {{"technologies": ["React", "Shopify"]}}"""


def technical_payload(snapshot: SiteSnapshot) -> Dict[str, Any]:
    return {
        "url": snapshot.url,
        "performance": snapshot.performance_summary(),
        "schemaMarkup": snapshot.schema_markup,
        "canonicalUrl": snapshot.canonical_url,
        "metaRobots": snapshot.meta_robots,
        "internalLinks": snapshot.internal_links,
        "externalLinks": snapshot.external_links,
        "images": snapshot.images,
        "imagesWithAlt": snapshot.images_with_alt,
        "technologyStack": snapshot.technology_stack,
    }


def content_payload(snapshot: SiteSnapshot) -> Dict[str, Any]:
    return {
        "url": snapshot.url,
        "title": snapshot.title,
        "metaDescription": snapshot.meta_description,
        "h1": snapshot.h1,
        "h2Count": snapshot.h2_count,
        "h3Count": snapshot.h3_count,
        "wordCount": snapshot.word_count,
    }


def specialist_prompt(kind: AnalyzerKind, snapshot: SiteSnapshot, brand_name: str, category: str) -> str:
    if kind == AnalyzerKind.technical:
        focus = "Evaluate the technical foundation: performance timings, crawlability and SEO signals, accessibility of images, and the modernity of the technology stack."
        data = technical_payload(snapshot)
    elif kind == AnalyzerKind.content:
        focus = "Evaluate messaging and content structure: clarity of the value proposition, heading hierarchy, depth of copy, and search snippet quality."
        data = content_payload(snapshot)
    else:
        focus = "Evaluate the attached above-the-fold screenshot: visual hierarchy, trust signals, call-to-action prominence, and brand consistency."
        data = {"url": snapshot.url, "title": snapshot.title}

    return f"""Competitor being analyzed for "{brand_name}" in the "{category}" industry.

{focus}

Competitor data:
```json
{_dump(data)}
```

{FINDINGS_CONTRACT}"""


def _competitor_brief(report: CompetitorReport) -> Dict[str, Any]:
    snapshot = report.snapshot
    findings: Dict[str, Any] = {}
    for kind, specialist in report.specialists.items():
        if specialist.succeeded:
            findings[kind.value] = {
                "strengths": specialist.strengths,
                "weaknesses": specialist.weaknesses,
            }
        else:
            findings[kind.value] = {"status": specialist.status.value}
    return {
        "sourceUrl": report.source_url,
        "url": snapshot.url,
        "title": snapshot.title,
        "wordCount": snapshot.word_count,
        "technologyStack": snapshot.technology_stack,
        "acquisitionMethod": snapshot.acquisition_method.value,
        "findings": findings,
    }


def synthesis_prompt(brand_name: str, category: str, reports: List[CompetitorReport]) -> str:
    briefs = [_competitor_brief(report) for report in reports]
    return f"""You are briefing "{brand_name}" on its competitive landscape in the "{category}" industry.
Analyzer entries marked "failed" or "skipped" had no findings; do not infer any.

Competitors:
```json
{json.dumps(briefs, indent=2, ensure_ascii=False)}
```

Write a strategic report in markdown with exactly these sections:
1. ## Market Overview - common patterns, strengths and weaknesses across these competitors.
2. ## Competitor Threat Ranking - rank every competitor from highest to lowest threat, one line of justification each.
3. ## Decisive Advantage - the single most important advantage "{brand_name}" must build.
4. ## Recommended Actions - 3-5 concrete actions, quick wins first."""


def synthesis_system(category: str) -> str:
    return f"You are a chief marketing strategist for the {category} industry. Your analysis is direct and data-driven."
