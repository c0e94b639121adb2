"""
Browser-rendered extractor for event listing pages.

Cost: Free (local headless Chromium via Playwright)
Use Case: Calendars built client-side with JavaScript

Each page gets its own browser context so cookies and storage never leak
between targets. A hard per-page deadline aborts slow pages with
RenderTimeout so the orchestrator can fall back to static extraction.
"""

import asyncio
from typing import Any, Optional

import structlog
from playwright.async_api import Browser, Error as PlaywrightError, Playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from ..errors import FetchFailure, RenderResourceUnavailable, RenderTimeout
from ..models import RawCandidate, SelectorConfig, Strategy
from .headers import EXTRA_HEADERS, USER_AGENT

logger = structlog.get_logger()


# Runs in the page. Mirrors the static extractor field by field.
EXTRACT_SCRIPT = """
(sel) => {
  const pick = (root, selector) => {
    if (!selector) return null;
    try { return root.querySelector(selector); } catch (e) { return null; }
  };
  const text = (el) => (el && el.textContent ? el.textContent.replace(/\\s+/g, ' ').trim() : '');
  const date = (el) => (el && el.getAttribute('datetime')) || text(el);
  const location = (el) => {
    if (!el) return '';
    const coords = el.getAttribute('data-coordinates');
    if (coords && coords.trim()) return coords.trim();
    const lat = el.getAttribute('data-lat');
    const lng = el.getAttribute('data-lng');
    const label = text(el);
    if (lat && lng) return label ? `${label} (${lat}, ${lng})` : `${lat}, ${lng}`;
    return label;
  };
  const link = (root) => {
    const el = pick(root, sel.link) || (root.tagName === 'A' ? root : null);
    return el && el.getAttribute('href') ? el.getAttribute('href').trim() : '';
  };

  let containers = [];
  try { containers = Array.from(document.querySelectorAll(sel.event_container)); }
  catch (e) { return []; }

  return containers.map((root) => ({
    title: text(pick(root, sel.title)),
    description: text(pick(root, sel.description)),
    date: date(pick(root, sel.date)),
    location: location(pick(root, sel.location)),
    category: text(pick(root, sel.category)),
    source_url: link(root),
    price: text(pick(root, sel.price)),
  }));
}
"""


class RenderedExtractor:
    """Headless Chromium session used to extract events from live pages.

    The session is the job's rendering resource: started once with `start()`,
    shared by every URL in the job, and released with `close()`.
    """

    strategy = Strategy.RENDERED

    def __init__(
        self,
        render_timeout: float = 30.0,
        executable_path: Optional[str] = None,
        headless: bool = True,
    ):
        self.render_timeout = render_timeout
        self.executable_path = executable_path
        self.headless = headless
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def start(self) -> None:
        """Launch the browser.

        Raises:
            RenderResourceUnavailable: if Chromium cannot be launched
        """
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                executable_path=self.executable_path,
                args=["--no-sandbox", "--disable-setuid-sandbox"],
            )
        except (PlaywrightError, OSError) as e:
            await self.close()
            raise RenderResourceUnavailable(f"Browser launch failed: {e}") from e

        logger.info("browser_started", executable_path=self.executable_path)

    async def close(self) -> None:
        """Shut the browser down. Safe to call more than once."""
        browser, playwright = self._browser, self._playwright
        self._browser = None
        self._playwright = None

        if browser is not None:
            try:
                await browser.close()
            except PlaywrightError as e:
                logger.warning("browser_close_failed", error=str(e))
        if playwright is not None:
            await playwright.stop()
            logger.info("browser_closed")

    async def __aenter__(self) -> "RenderedExtractor":
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def extract(self, url: str, selectors: SelectorConfig) -> list[RawCandidate]:
        """Render a page and extract candidates from the live DOM.

        Raises:
            RenderResourceUnavailable: if the browser is not running
            RenderTimeout: if the page did not finish within render_timeout
            FetchFailure: on navigation or evaluation errors
        """
        if not self.is_running:
            raise RenderResourceUnavailable("Browser is not running")

        try:
            rows = await asyncio.wait_for(
                self._render(url, selectors), timeout=self.render_timeout
            )
        except (asyncio.TimeoutError, PlaywrightTimeoutError) as e:
            raise RenderTimeout(url, self.render_timeout) from e
        except PlaywrightError as e:
            raise FetchFailure(url, f"Navigation failed: {e}") from e

        candidates = [
            RawCandidate(**row, page_url=url, strategy=Strategy.RENDERED)
            for row in rows
        ]
        logger.info("rendered_extraction_complete", url=url, count=len(candidates))
        return candidates

    async def _render(self, url: str, selectors: SelectorConfig) -> list[dict[str, str]]:
        context = await self._browser.new_context(
            user_agent=USER_AGENT,
            extra_http_headers=EXTRA_HEADERS,
        )
        try:
            page = await context.new_page()
            await page.goto(
                url,
                wait_until="networkidle",
                timeout=self.render_timeout * 1000,
            )
            return await page.evaluate(
                EXTRACT_SCRIPT,
                selectors.model_dump(by_alias=False),
            )
        finally:
            await context.close()
