"""Observability stack for the registry."""

from identity_registry.observability.metrics import MetricsCollector
from identity_registry.observability.logging import setup_logging

__all__ = [
    "MetricsCollector",
    "setup_logging",
]
