"""FastAPI application exposing metrics, probes and the dashboard."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import HTMLResponse, PlainTextResponse, Response

from ..config import ExporterConfig
from ..engine import MultiSourceMerger
from ..engine.exporter import PrometheusExporter
from ..logging_conf import configure_logging
from ..orchestrator import Orchestrator
from .dashboard import DashboardRenderer


def create_app(
    config: ExporterConfig,
    merger: MultiSourceMerger,
    metrics: PrometheusExporter,
    orchestrator: Orchestrator | None = None,
    renderer: DashboardRenderer | None = None,
) -> FastAPI:
    """Create the HTTP application.

    When an orchestrator is given, the application lifespan launches it
    (warm-up followed by steady-state scheduling) and shuts it down with the
    configured grace period.
    """

    logger = configure_logging().bind(component="web")

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if orchestrator is not None:
            orchestrator.launch()
        yield
        if orchestrator is not None:
            grace = config.shutdown_grace.total_seconds()
            await asyncio.to_thread(orchestrator.shutdown, grace)

    app = FastAPI(title="Helm Repository Exporter", lifespan=lifespan)
    app.state.merger = merger
    app.state.orchestrator = orchestrator

    @app.get(config.metrics_path)
    def metrics_endpoint() -> Response:
        payload, content_type = metrics.render()
        return Response(content=payload, media_type=content_type)

    @app.get("/health", response_class=PlainTextResponse)
    def health_check() -> str:
        return "OK"

    @app.get("/ready", response_class=PlainTextResponse)
    def readiness_check() -> PlainTextResponse:
        if orchestrator is not None and not orchestrator.ready:
            return PlainTextResponse("Warming up", status_code=503)
        return PlainTextResponse("Ready")

    if config.enable_html:
        dashboard = renderer or DashboardRenderer()

        @app.get(config.html_path, response_class=HTMLResponse)
        def dashboard_page() -> Response:
            analysis = merger.view()
            if analysis is None:
                return PlainTextResponse("No data available yet", status_code=503)
            return HTMLResponse(dashboard.render(analysis))

        logger.info("dashboard_enabled", path=config.html_path)

    return app


__all__ = ["create_app"]
