"""
Event extractors.

Each extractor implements:
- strategy: the Strategy tag it produces candidates under
- extract(url, selectors) -> list[RawCandidate]

The orchestrator treats them interchangeably and picks the order.
"""

from .rendered import RenderedExtractor
from .static_html import StaticHtmlExtractor, extract_candidates

__all__ = [
    "RenderedExtractor",
    "StaticHtmlExtractor",
    "extract_candidates",
]
