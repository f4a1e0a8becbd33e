"""Structured field extraction from page markup."""

import re
from typing import List, Optional, Tuple
from urllib.parse import urljoin, urlparse

from selectolax.parser import HTMLParser, Node

from .constants import (
    MAX_SCRIPT_CLUES,
    MAX_STYLESHEET_CLUES,
    NO_H1,
    NO_META_DESCRIPTION,
    NO_TITLE,
)
from .dedup import root_domain
from .models import MarkupFields, TechClues

_WHITESPACE = re.compile(r"\s+")


class SnapshotExtractor:
    """Extracts snapshot fields from HTML, whichever strategy produced it."""

    def _safe_node_text(self, node: Optional[Node], strip: bool = True) -> str:
        """Safely extract text from selectolax node."""
        if node is None:
            return ""
        try:
            text = node.text(strip=strip)
        except Exception:
            return ""
        if text is None:
            return ""
        return str(text).strip() if strip else str(text)

    def _safe_attr_text(self, node: Optional[Node], key: str) -> str:
        """Safely extract attribute text and normalize it."""
        if node is None:
            return ""
        raw = node.attributes.get(key, "")
        if raw is None:
            return ""
        return str(raw).strip()

    def extract(self, html: str, final_url: str) -> MarkupFields:
        tree = HTMLParser(html or "")

        title = self._safe_node_text(tree.css_first("title"))
        meta_description = self._safe_attr_text(tree.css_first('meta[name="description"]'), "content")
        h1 = self._safe_node_text(tree.css_first("h1"))
        internal_links, external_links = self._count_links(tree, final_url)
        images = tree.css("img")
        images_with_alt = sum(1 for img in images if self._safe_attr_text(img, "alt"))
        canonical = self._safe_attr_text(tree.css_first('link[rel="canonical"]'), "href")
        robots = self._safe_attr_text(tree.css_first('meta[name="robots"]'), "content")
        tech_clues = self.extract_tech_clues(tree)
        schema_markup = tree.css_first('script[type="application/ld+json"]') is not None
        # Word counting decomposes script nodes, so it runs after every script-based field.
        word_count = self._word_count(tree)

        return MarkupFields(
            title=title or NO_TITLE,
            meta_description=meta_description or NO_META_DESCRIPTION,
            h1=h1 or NO_H1,
            h2_count=len(tree.css("h2")),
            h3_count=len(tree.css("h3")),
            word_count=word_count,
            internal_links=internal_links,
            external_links=external_links,
            images=len(images),
            images_with_alt=images_with_alt,
            schema_markup=schema_markup,
            canonical_url=canonical or None,
            meta_robots=robots or None,
            tech_clues=tech_clues,
        )

    def extract_tech_clues(self, tree: HTMLParser) -> TechClues:
        scripts: List[str] = []
        for node in tree.css("script[src]"):
            src = self._safe_attr_text(node, "src")
            if src and src not in scripts:
                scripts.append(src)
        stylesheets: List[str] = []
        for node in tree.css("link[href]"):
            rel = self._safe_attr_text(node, "rel").lower()
            href = self._safe_attr_text(node, "href")
            if "stylesheet" in rel and href and href not in stylesheets:
                stylesheets.append(href)
        generator = self._safe_attr_text(tree.css_first('meta[name="generator"]'), "content")
        return TechClues(
            scripts=scripts[:MAX_SCRIPT_CLUES],
            stylesheets=stylesheets[:MAX_STYLESHEET_CLUES],
            generator=generator or None,
        )

    def _count_links(self, tree: HTMLParser, base_url: str) -> Tuple[int, int]:
        site_domain = root_domain(base_url)
        internal = 0
        external = 0
        for anchor in tree.css("a[href]"):
            href = self._safe_attr_text(anchor, "href")
            if not href:
                continue
            try:
                resolved = urlparse(urljoin(base_url, href))
            except ValueError:
                continue
            if resolved.scheme not in ("http", "https") or not resolved.hostname:
                continue
            if root_domain(resolved.geturl()) == site_domain:
                internal += 1
            else:
                external += 1
        return internal, external

    def _word_count(self, tree: HTMLParser) -> int:
        body = tree.body
        if body is None:
            return 0
        # Script and style bodies are not visible copy.
        for tag in ("script", "style", "noscript", "template"):
            for node in body.css(tag):
                node.decompose()
        text = body.text(deep=True, separator=" ", strip=False) or ""
        return len([token for token in _WHITESPACE.split(text) if token])
