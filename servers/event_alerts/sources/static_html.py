"""
Static-HTML extractor for event listing pages.

Cost: Free (uses httpx + BeautifulSoup)
Use Case: Server-rendered calendars, community listings, fallback for
pages the browser could not render

The page is downloaded once, parsed once, and every field selector is
applied inside each event container.
"""

from typing import Optional

import httpx
import structlog
from bs4 import BeautifulSoup
from bs4.element import Tag
from soupsieve import SelectorSyntaxError

from ..errors import FetchFailure
from ..models import RawCandidate, SelectorConfig, Strategy
from ..resilience.retry import retry_transient
from .headers import REQUEST_HEADERS

logger = structlog.get_logger()


def extract_candidates(
    html: str,
    selectors: SelectorConfig,
    page_url: str = "",
) -> list[RawCandidate]:
    """
    Extract raw candidates from page markup.

    One candidate per matched container. Missing sub-fields are empty strings;
    a broken selector yields no candidates rather than an error.
    """
    soup = BeautifulSoup(html, "html.parser")

    try:
        containers = soup.select(selectors.event_container)
    except (SelectorSyntaxError, ValueError, TypeError) as e:
        logger.warning(
            "invalid_container_selector",
            selector=selectors.event_container,
            url=page_url,
            error=str(e),
        )
        return []

    return [_parse_container(el, selectors, page_url) for el in containers]


def _parse_container(element: Tag, selectors: SelectorConfig, page_url: str) -> RawCandidate:
    """Parse a single event container into a RawCandidate."""
    return RawCandidate(
        title=_extract_text(element, selectors.title),
        description=_extract_text(element, selectors.description),
        date=_extract_date(element, selectors.date),
        location=_extract_location(element, selectors.location),
        category=_extract_text(element, selectors.category),
        source_url=_extract_attr(element, selectors.link, "href"),
        price=_extract_text(element, selectors.price),
        page_url=page_url,
        strategy=Strategy.STATIC,
    )


def _select_one(element: Tag, selector: str) -> Optional[Tag]:
    if not selector:
        return None
    try:
        return element.select_one(selector)
    except (SelectorSyntaxError, ValueError, TypeError):
        return None


def _extract_text(element: Tag, selector: str) -> str:
    """Text of the first match for selector inside element."""
    sub_el = _select_one(element, selector)
    if sub_el is None:
        return ""
    return sub_el.get_text(" ", strip=True)


def _extract_attr(element: Tag, selector: str, attr: str) -> str:
    """Attribute of the first match, falling back to the container itself."""
    sub_el = _select_one(element, selector)
    if sub_el is None and element.name == "a":
        sub_el = element
    if sub_el is None:
        return ""
    value = sub_el.get(attr)
    return value.strip() if isinstance(value, str) else ""


def _extract_date(element: Tag, selector: str) -> str:
    """Prefer a machine-readable <time datetime> over the display text."""
    sub_el = _select_one(element, selector)
    if sub_el is None:
        return ""
    machine = sub_el.get("datetime")
    if isinstance(machine, str) and machine.strip():
        return machine.strip()
    return sub_el.get_text(" ", strip=True)


def _extract_location(element: Tag, selector: str) -> str:
    """Location text, preferring coordinates carried in data attributes."""
    sub_el = _select_one(element, selector)
    if sub_el is None:
        return ""

    coordinates = sub_el.get("data-coordinates")
    if isinstance(coordinates, str) and coordinates.strip():
        return coordinates.strip()

    lat, lng = sub_el.get("data-lat"), sub_el.get("data-lng")
    text = sub_el.get_text(" ", strip=True)
    if lat and lng:
        return f"{text} ({lat}, {lng})" if text else f"{lat}, {lng}"
    return text


class StaticHtmlExtractor:
    """Fetch pages over plain HTTP and extract candidates from the markup."""

    strategy = Strategy.STATIC

    def __init__(
        self,
        timeout: float = 30.0,
        max_attempts: int = 3,
        retry_base_delay: float = 1.0,
    ):
        self.timeout = timeout
        self._download = retry_transient(
            max_attempts=max_attempts, base_delay=retry_base_delay
        )(self._get)

    async def _get(self, url: str) -> str:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(
                url,
                headers=REQUEST_HEADERS,
                follow_redirects=True,
            )
            response.raise_for_status()
            return response.text

    async def fetch(self, url: str) -> str:
        """Download a page, raising FetchFailure on any HTTP problem."""
        try:
            return await self._download(url)
        except httpx.HTTPStatusError as e:
            raise FetchFailure(url, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise FetchFailure(url, f"Request failed: {e!r}") from e

    async def extract(self, url: str, selectors: SelectorConfig) -> list[RawCandidate]:
        html = await self.fetch(url)
        candidates = extract_candidates(html, selectors, page_url=url)
        logger.info("static_extraction_complete", url=url, count=len(candidates))
        return candidates
