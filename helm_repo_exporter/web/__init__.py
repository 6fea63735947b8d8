"""HTTP surface: metrics exposition, probes and dashboard."""

from .dashboard import DashboardRenderer, sanitize_icon_url
from .server import create_app

__all__ = ["DashboardRenderer", "create_app", "sanitize_icon_url"]
