"""Prometheus exporter and dashboard for Helm chart repository indexes."""

__version__ = "0.1.0"
