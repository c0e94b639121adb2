"""Jinja2 template engine for notification messages."""

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from .models import Event


class TemplateEngine:
    """Render notification templates using Jinja2."""

    def __init__(self, template_dir: Path | None = None):
        """Initialize template engine with template directory.

        Args:
            template_dir: Path to templates directory.
                         Defaults to the package templates/ folder.
        """
        if template_dir is None:
            template_dir = Path(__file__).parent / "templates"

        self.template_dir = template_dir
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["event_date"] = format_event_date

    def render(self, template_name: str, context: dict[str, Any]) -> str:
        """Render a template with the given context.

        Raises:
            TemplateNotFound: If template doesn't exist
        """
        template = self.env.get_template(template_name)
        return template.render(**context)

    def render_event(self, template_name: str, event: Event) -> str:
        """Render a template for a single event."""
        return self.render(template_name, {"event": event})


def format_event_date(value) -> str:
    """Human-readable event date, e.g. 'Sat, Jan 17 2026 at 09:00 PM UTC'."""
    return value.strftime("%a, %b %d %Y at %I:%M %p %Z").strip()
