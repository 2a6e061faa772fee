"""Metric sources - host queries backed by psutil."""

from .base import MetricsSource, SampleValue
from .registry import SourceRegistry, register_source, list_sources

# Built-in sources register themselves on import
from . import network, system  # noqa: E402,F401

__all__ = [
    "MetricsSource",
    "SampleValue",
    "SourceRegistry",
    "register_source",
    "list_sources",
]
