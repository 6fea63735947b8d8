"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path

import structlog

LOGGER_NAME = "helm_repo_exporter"

_LOGGING_INITIALISED = False


def _handlers(level: str, log_dir: Path | None) -> dict[str, dict]:
    handlers: dict[str, dict] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "plain",
        },
    }
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers["exporter_file"] = {
            "class": "logging.FileHandler",
            "level": "INFO",
            "filename": str(log_dir / "exporter.log"),
            "formatter": "plain",
        }
        handlers["error_file"] = {
            "class": "logging.FileHandler",
            "level": "ERROR",
            "filename": str(log_dir / "error.log"),
            "formatter": "plain",
        }
    return handlers


def configure_logging(verbose: bool = False, log_dir: Path | None = None) -> structlog.BoundLogger:
    """Configure structlog + stdlib handlers and return application logger."""

    global _LOGGING_INITIALISED

    if not _LOGGING_INITIALISED:
        level = "DEBUG" if verbose else "INFO"
        handlers = _handlers(level, log_dir)
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "plain": {
                        "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                        "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
                    }
                },
                "handlers": handlers,
                "loggers": {
                    LOGGER_NAME: {
                        "handlers": list(handlers),
                        "level": level,
                        "propagate": False,
                    },
                },
            }
        )

        # Forward structlog events to stdlib logging; JSON rendering happens at handler level
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return structlog.get_logger(LOGGER_NAME)


def repository_logger(repository: str) -> structlog.BoundLogger:
    """Return a logger bound to a single chart repository."""

    configure_logging()
    return structlog.get_logger(f"{LOGGER_NAME}.repository").bind(repository=repository)


__all__ = ["LOGGER_NAME", "configure_logging", "repository_logger"]
