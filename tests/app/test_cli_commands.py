from __future__ import annotations

from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

from helm_repo_exporter.app import AppState, app, build_state
from helm_repo_exporter.config import ConfigError
from helm_repo_exporter.engine import MultiSourceMerger, SingleSourceUpdate, analyze, parse_index
from helm_repo_exporter.engine.exporter import PrometheusExporter
from helm_repo_exporter.orchestrator import ScrapeResult

CONFIG_YAML = """
repositories:
  - name: bitnami
    url: https://charts.bitnami.com/bitnami/index.yaml
    scanInterval: 10m
    auth:
      bearerToken: secret-token
  - name: stable
    url: https://charts.example.com/index.yaml
scanInterval: 90s
"""


class StubFetcher:
    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True


class StubOrchestrator:
    def __init__(self, results: list[ScrapeResult]) -> None:
        self.results = results

    def scrape_once(self) -> list[ScrapeResult]:
        return self.results


@pytest.fixture(autouse=True)
def wide_console(monkeypatch) -> None:
    monkeypatch.setattr("helm_repo_exporter.app.console", Console(width=200))


def make_state(sample_exporter_config, results: list[ScrapeResult], merger=None) -> AppState:
    return AppState(
        config=sample_exporter_config(*(result.repository for result in results)),
        fetcher=StubFetcher(),  # type: ignore[arg-type]
        merger=merger or MultiSourceMerger(),
        metrics=PrometheusExporter(),
        orchestrator=StubOrchestrator(results),  # type: ignore[arg-type]
    )


def test_cli_config_lists_repositories(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    result = CliRunner().invoke(app, ["config", "--config", str(path)])
    assert result.exit_code == 0, result.stdout
    output = result.stdout
    assert "bitnami" in output
    assert "10m" in output
    assert "90s" in output
    assert "bearer" in output
    assert "secret-token" not in output


def test_cli_config_error_exits_with_code_one(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("repositories: []\n", encoding="utf-8")
    result = CliRunner().invoke(app, ["config", "--config", str(path)])
    assert result.exit_code == 1
    assert "Configuration error" in result.stdout


def test_cli_scrape_reports_results(monkeypatch, sample_exporter_config, make_index) -> None:
    analysis = analyze(
        parse_index(make_index({"nginx": [{"version": "1", "created": 100}, {"version": "2", "created": 200}]})),
        repository="alpha",
    )
    results = [
        ScrapeResult(repository="alpha", success=True, duration=0.1, analysis=analysis),
        ScrapeResult(repository="beta", success=False, duration=0.2, error="denied", error_kind="auth"),
    ]
    merger = MultiSourceMerger()
    merger.update(SingleSourceUpdate("alpha", analysis))
    state = make_state(sample_exporter_config, results, merger)
    monkeypatch.setattr("helm_repo_exporter.app.build_state", lambda config_path, verbose=False: state)

    result = CliRunner().invoke(app, ["scrape"])
    assert result.exit_code == 0, result.stdout
    output = result.stdout
    assert "alpha" in output
    assert "failed (auth)" in output
    assert "Total: 1 charts, 2 versions" in output
    assert state.fetcher.closed is True


def test_cli_scrape_exits_non_zero_when_everything_fails(monkeypatch, sample_exporter_config) -> None:
    results = [ScrapeResult(repository="alpha", success=False, duration=0.1, error="slow", error_kind="timeout")]
    state = make_state(sample_exporter_config, results)
    monkeypatch.setattr("helm_repo_exporter.app.build_state", lambda config_path, verbose=False: state)

    result = CliRunner().invoke(app, ["scrape"])
    assert result.exit_code == 1
    assert "No successful scrapes" in result.stdout


def test_cli_serve_rejects_invalid_environment(monkeypatch) -> None:
    monkeypatch.delenv("CONFIG_FILE", raising=False)
    monkeypatch.delenv("INDEX_URL", raising=False)
    result = CliRunner().invoke(app, ["serve"])
    assert result.exit_code == 1
    assert "Configuration error" in result.stdout


def test_cli_serve_runs_uvicorn(monkeypatch, tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML + "metricsPort: 9999\n", encoding="utf-8")
    captured: dict = {}

    def fake_run(http_app, **kwargs):  # noqa: ANN001
        captured["app"] = http_app
        captured.update(kwargs)

    monkeypatch.setattr("uvicorn.run", fake_run)
    result = CliRunner().invoke(app, ["serve", "--config", str(path)])
    assert result.exit_code == 0, result.stdout
    assert captured["port"] == 9999
    assert captured["host"] == "0.0.0.0"
    assert captured["timeout_graceful_shutdown"] == 10
    assert captured["app"].state.orchestrator is not None


def test_build_state_wires_components(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    state = build_state(path)
    try:
        assert state.orchestrator.merger is state.merger
        assert state.orchestrator.exporters == [state.metrics]
        assert state.fetcher.timeout == 30
    finally:
        state.fetcher.close()


def test_build_state_propagates_config_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        build_state(tmp_path / "missing.yaml")
