"""Typer CLI entrypoint for the Helm repository exporter."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import ConfigError, ExporterConfig, load_config
from .engine import Fetcher, MultiSourceMerger
from .engine.exporter import PrometheusExporter
from .logging_conf import configure_logging
from .orchestrator import Orchestrator, ScrapeResult

app = typer.Typer(
    help="Helm repository exporter: chart version-age metrics and dashboard.",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()

ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="YAML/JSON config file; defaults to CONFIG_FILE or INDEX_URL from the environment.",
)


@dataclass
class AppState:
    config: ExporterConfig
    fetcher: Fetcher
    merger: MultiSourceMerger
    metrics: PrometheusExporter
    orchestrator: Orchestrator


def build_state(config_path: Optional[Path], verbose: bool = False) -> AppState:
    configure_logging(verbose=verbose)
    config = load_config(config_path)
    fetcher = Fetcher(timeout=config.scan_timeout_seconds)
    merger = MultiSourceMerger()
    metrics = PrometheusExporter()
    orchestrator = Orchestrator(config, fetcher=fetcher, merger=merger, exporters=[metrics])
    return AppState(
        config=config,
        fetcher=fetcher,
        merger=merger,
        metrics=metrics,
        orchestrator=orchestrator,
    )


def _load_state(config_path: Optional[Path], verbose: bool = False) -> AppState:
    try:
        return build_state(config_path, verbose=verbose)
    except ConfigError as exc:
        console.print(f"Configuration error: {exc}", style="red", markup=False)
        raise typer.Exit(code=1) from exc


def _format_date(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "-"


def _format_seconds(seconds: float) -> str:
    if seconds % 3600 == 0:
        return f"{int(seconds // 3600)}h"
    if seconds % 60 == 0:
        return f"{int(seconds // 60)}m"
    return f"{seconds:g}s"


def _render_repositories_table(config: ExporterConfig) -> Table:
    table = Table(title="Repositories", box=box.SIMPLE_HEAVY)
    table.add_column("Name", style="cyan")
    table.add_column("URL")
    table.add_column("Interval", justify="right")
    table.add_column("Auth")
    for repository in config.repositories:
        table.add_row(
            repository.name,
            repository.url,
            _format_seconds(repository.interval_seconds),
            repository.auth.kind if repository.auth else "none",
        )
    return table


def _render_results_table(results: Sequence[ScrapeResult]) -> Table:
    table = Table(title="Scrape results", box=box.SIMPLE_HEAVY)
    table.add_column("Repository", style="cyan")
    table.add_column("Charts", justify="right")
    table.add_column("Versions", justify="right")
    table.add_column("Oldest")
    table.add_column("Newest")
    table.add_column("Median")
    table.add_column("Duration", justify="right")
    table.add_column("Status")
    for result in results:
        analysis = result.analysis
        if result.success and analysis is not None:
            table.add_row(
                result.repository,
                str(analysis.total_charts),
                str(analysis.total_versions),
                _format_date(analysis.oldest),
                _format_date(analysis.newest),
                _format_date(analysis.median),
                f"{result.duration:.2f}s",
                "ok",
            )
        else:
            table.add_row(
                result.repository,
                "-",
                "-",
                "-",
                "-",
                "-",
                f"{result.duration:.2f}s",
                escape(f"failed ({result.error_kind}): {result.error}"),
            )
    return table


@app.command("config", help="Validate the configuration and list repositories.")
def show_config(config_path: Optional[Path] = ConfigOption) -> None:
    state = _load_state(config_path)
    config = state.config
    console.print(_render_repositories_table(config))
    console.print(
        f"scan timeout {_format_seconds(config.scan_timeout_seconds)}, "
        f"metrics on :{config.metrics_port}{config.metrics_path}, "
        f"dashboard {config.html_path if config.enable_html else 'disabled'}"
    )


@app.command("scrape", help="Scrape every repository once and print the statistics.")
def scrape(
    config_path: Optional[Path] = ConfigOption,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
) -> None:
    state = _load_state(config_path, verbose=verbose)
    try:
        results = state.orchestrator.scrape_once()
    finally:
        state.fetcher.close()
    console.print(_render_results_table(results))
    view = state.merger.view()
    if view is not None:
        console.print(
            f"Total: {view.total_charts} charts, {view.total_versions} versions, "
            f"oldest {_format_date(view.oldest)}, newest {_format_date(view.newest)}"
        )
    if not any(result.success for result in results):
        console.print("No successful scrapes", style="red")
        raise typer.Exit(code=1)


@app.command("serve", help="Run the exporter HTTP service with scheduled scrapes.")
def serve(
    config_path: Optional[Path] = ConfigOption,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
) -> None:
    import uvicorn

    from .web import create_app

    state = _load_state(config_path, verbose=verbose)
    config = state.config
    logger = configure_logging().bind(component="cli")
    logger.info(
        "exporter_starting",
        repositories=[repository.name for repository in config.repositories],
        scan_timeout_seconds=config.scan_timeout_seconds,
        metrics_port=config.metrics_port,
        metrics_path=config.metrics_path,
        enable_html=config.enable_html,
    )
    http_app = create_app(config, state.merger, state.metrics, orchestrator=state.orchestrator)
    try:
        uvicorn.run(
            http_app,
            host=config.listen_host,
            port=config.metrics_port,
            log_config=None,
            timeout_graceful_shutdown=int(config.shutdown_grace.total_seconds()),
        )
    finally:
        state.fetcher.close()


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
