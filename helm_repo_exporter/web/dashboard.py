"""HTML rendering of the merged chart dashboard."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import urlparse

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..engine import CorpusAnalysis

_TEMPLATES_DIR = Path(__file__).parent / "templates"
_ALLOWED_IMAGE_TYPES = ("svg+xml", "png", "jpeg", "jpg", "gif", "webp")


def sanitize_icon_url(icon_url: str | None) -> str:
    """Return ``icon_url`` when it is safe to use as an ``img`` source, else ``""``.

    Only http(s) URLs and base64 encoded ``data:image/...`` URIs of common
    raster/SVG types are allowed.
    """

    if not icon_url:
        return ""
    if icon_url.startswith("data:image/"):
        header, sep, _ = icon_url.partition(",")
        if not sep or ";base64" not in header:
            return ""
        mime = header[len("data:image/"):].split(";", 1)[0]
        if mime not in _ALLOWED_IMAGE_TYPES:
            return ""
        return icon_url
    if any(ch in icon_url for ch in "\"'<> \t\r\n"):
        return ""
    try:
        parsed = urlparse(icon_url)
    except ValueError:
        return ""
    if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
        return ""
    return icon_url


def _format_date(value: datetime | None, fmt: str = "%Y-%m-%d") -> str:
    if value is None:
        return ""
    return value.strftime(fmt)


class DashboardRenderer:
    """Render a :class:`CorpusAnalysis` into the dashboard page."""

    def __init__(self, templates_dir: Path = _TEMPLATES_DIR) -> None:
        self.environment = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html"]),
        )
        self.environment.filters["safe_icon_url"] = sanitize_icon_url
        self.environment.filters["date"] = _format_date
        self.template = self.environment.get_template("dashboard.html")

    def render(self, analysis: CorpusAnalysis, generated: datetime | None = None) -> str:
        return self.template.render(
            analysis=analysis,
            repositories=sorted(analysis.repositories),
            generated=generated or datetime.now(timezone.utc),
        )


__all__ = ["DashboardRenderer", "sanitize_icon_url"]
