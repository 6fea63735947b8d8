"""Exporter SPI and implementations."""

from .base import BaseExporter
from .prometheus_exporter import PrometheusExporter

__all__ = ["BaseExporter", "PrometheusExporter"]
