"""Source registry - maps source type names to source classes."""

from typing import Any, Optional, Type
import logging

from .base import MetricsSource

logger = logging.getLogger(__name__)


class SourceRegistry:
    """
    Registry for metric source classes.
    
    Sources register themselves here and can be instantiated by type name.
    """
    
    _sources: dict[str, Type[MetricsSource]] = {}
    
    @classmethod
    def register(cls, source_type: str, source_class: Type[MetricsSource]):
        """Register a metric source class."""
        cls._sources[source_type] = source_class
        logger.debug(f"Registered metric source: {source_type}")
    
    @classmethod
    def create(cls, source_type: str, options: Optional[dict[str, Any]] = None) -> MetricsSource:
        """Create a source instance by type name."""
        source_class = cls._sources.get(source_type)
        if source_class is None:
            raise KeyError(f"Unknown source type: {source_type}")
        return source_class(options)
    
    @classmethod
    def list_types(cls) -> list[str]:
        """List all registered source types."""
        return list(cls._sources.keys())


def register_source(source_type: str):
    """
    Decorator to register a metric source class.
    
    Usage:
        @register_source("cpu")
        class CpuSource(MetricsSource):
            ...
    """
    def decorator(cls: Type[MetricsSource]):
        cls.source_type = source_type
        SourceRegistry.register(source_type, cls)
        return cls
    return decorator


def list_sources() -> list[str]:
    """List all registered source types."""
    return SourceRegistry.list_types()
