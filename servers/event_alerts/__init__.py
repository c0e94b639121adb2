"""
Local Event Alerts

Harvests event listings from web pages and alerts nearby subscribers:
- Extracting events with a headless browser, falling back to static HTML
- Normalizing and storing new events, deduplicated by source link
- Matching events to subscribers by distance and category
- Notifying over SMS and email, each channel failing independently
"""

__version__ = "1.0.0"
