"""Site acquisition: rendered primary strategy with a direct-fetch fallback."""

import base64
import logging
from typing import Optional, Protocol

import httpx
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .constants import BROWSER_LAUNCH_ARGS, REQUEST_HEADERS, USER_AGENT, VIEWPORT
from .context import PipelineContext
from .dedup import ensure_scheme
from .errors import AcquisitionError
from .extraction import SnapshotExtractor
from .models import AcquisitionMethod, PageContent, PerformanceTimings, SiteSnapshot, VisualCapture
from .technology import TechnologyDetector

logger = logging.getLogger(__name__)

_PERFORMANCE_SCRIPT = """() => {
    const paint = performance.getEntriesByType('paint')
        .find(entry => entry.name === 'first-contentful-paint');
    const nav = performance.getEntriesByType('navigation')[0];
    const span = (end) => (nav && end > 0 ? end - nav.startTime : null);
    return {
        fcp: paint ? paint.startTime : null,
        domContentLoaded: nav ? span(nav.domContentLoadedEventEnd) : null,
        load: nav ? span(nav.loadEventEnd) : null,
    };
}"""


class ContentAcquirer(Protocol):
    method: AcquisitionMethod

    async def fetch(self, url: str) -> PageContent:
        ...


def _as_ms(value) -> Optional[int]:
    if value is None:
        return None
    try:
        return max(0, int(round(float(value))))
    except (TypeError, ValueError):
        return None


class BrowserAcquirer:
    """Renders the page in headless Chromium, scripts included."""

    method = AcquisitionMethod.primary

    def __init__(
        self,
        navigation_timeout_seconds: float = 30.0,
        capture_screenshot: bool = True,
    ):
        self.navigation_timeout_ms = int(navigation_timeout_seconds * 1000)
        self.capture_screenshot = capture_screenshot

    async def fetch(self, url: str) -> PageContent:
        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(headless=True, args=BROWSER_LAUNCH_ARGS)
            try:
                context = await browser.new_context(user_agent=USER_AGENT, viewport=VIEWPORT)
                try:
                    page = await context.new_page()
                    page.set_default_timeout(self.navigation_timeout_ms)
                    response = await self._navigate(page, url)
                    if response is not None and response.status >= 400:
                        raise PlaywrightError(f"HTTP {response.status} for {url}")

                    html = await page.content()
                    performance = await self._performance(page)
                    capture = await self._screenshot(page) if self.capture_screenshot else None
                    return PageContent(
                        final_url=page.url,
                        html=html,
                        performance=performance,
                        visual_capture=capture,
                    )
                finally:
                    await context.close()
            finally:
                await browser.close()

    async def _navigate(self, page, url: str):
        try:
            return await page.goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms)
        except PlaywrightTimeoutError:
            logger.warning("Navigation timeout for %s, retrying with relaxed wait", url)
            return await page.goto(url, wait_until="load", timeout=max(1000, self.navigation_timeout_ms // 2))

    async def _performance(self, page) -> PerformanceTimings:
        try:
            raw = await page.evaluate(_PERFORMANCE_SCRIPT) or {}
        except PlaywrightError as exc:
            logger.warning("Performance timings unavailable for %s: %s", page.url, exc)
            return PerformanceTimings()
        return PerformanceTimings(
            first_contentful_paint_ms=_as_ms(raw.get("fcp")),
            dom_content_loaded_ms=_as_ms(raw.get("domContentLoaded")),
            page_load_ms=_as_ms(raw.get("load")),
        )

    async def _screenshot(self, page) -> Optional[VisualCapture]:
        try:
            image = await page.screenshot(type="jpeg", quality=60, full_page=False)
        except PlaywrightError as exc:
            logger.warning("Screenshot failed for %s: %s", page.url, exc)
            return None
        return VisualCapture(
            media_type="image/jpeg",
            data_base64=base64.b64encode(image).decode("ascii"),
        )


class HttpAcquirer:
    """Direct fetch without script execution."""

    method = AcquisitionMethod.fallback

    def __init__(
        self,
        timeout_seconds: float = 15.0,
        max_redirects: int = 5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout_seconds = timeout_seconds
        self.max_redirects = max_redirects
        self.transport = transport

    async def fetch(self, url: str) -> PageContent:
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds,
            follow_redirects=True,
            max_redirects=self.max_redirects,
            headers=REQUEST_HEADERS,
            transport=self.transport,
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
            return PageContent(final_url=str(response.url), html=response.text)


class SiteAnalyzer:
    """
    Produces one SiteSnapshot per URL.

    Primary -> Done(primary); Primary fails -> Fallback -> Done(fallback);
    Fallback fails -> AcquisitionError.
    """

    def __init__(
        self,
        primary: ContentAcquirer,
        fallback: ContentAcquirer,
        technology_detector: TechnologyDetector,
        extractor: Optional[SnapshotExtractor] = None,
    ):
        self.primary = primary
        self.fallback = fallback
        self.technology_detector = technology_detector
        self.extractor = extractor or SnapshotExtractor()

    async def analyze(self, url: str, ctx: PipelineContext) -> SiteSnapshot:
        url = ensure_scheme(url)
        await ctx.raise_if_cancelled()
        logger.info("[%s] Primary acquisition for %s", ctx.job_id, url)
        try:
            content = await self.primary.fetch(url)
        except Exception as primary_error:
            logger.warning(
                "[%s] Primary acquisition failed for %s, trying fallback: %s",
                ctx.job_id,
                url,
                primary_error,
            )
            await ctx.raise_if_cancelled()
            try:
                content = await self.fallback.fetch(url)
            except Exception as fallback_error:
                raise AcquisitionError(
                    url,
                    primary_error=primary_error,
                    fallback_error=fallback_error,
                ) from fallback_error
            return await self._build_snapshot(url, content, self.fallback.method, ctx)
        return await self._build_snapshot(url, content, self.primary.method, ctx)

    async def _build_snapshot(
        self,
        requested_url: str,
        content: PageContent,
        method: AcquisitionMethod,
        ctx: PipelineContext,
    ) -> SiteSnapshot:
        await ctx.raise_if_cancelled()
        fields = self.extractor.extract(content.html, content.final_url)
        technologies = await self.technology_detector.detect(fields.tech_clues, content.final_url, ctx.job_id)
        is_primary = method == AcquisitionMethod.primary
        snapshot = SiteSnapshot(
            url=content.final_url,
            requested_url=requested_url,
            title=fields.title,
            meta_description=fields.meta_description,
            h1=fields.h1,
            h2_count=fields.h2_count,
            h3_count=fields.h3_count,
            word_count=fields.word_count,
            internal_links=fields.internal_links,
            external_links=fields.external_links,
            images=fields.images,
            images_with_alt=fields.images_with_alt,
            schema_markup=fields.schema_markup,
            canonical_url=fields.canonical_url,
            meta_robots=fields.meta_robots,
            performance=content.performance if is_primary else None,
            technology_stack=technologies,
            acquisition_method=method,
            visual_capture=content.visual_capture if is_primary else None,
        )
        logger.info("[%s] Acquired %s via %s", ctx.job_id, snapshot.url, method.value)
        return snapshot
