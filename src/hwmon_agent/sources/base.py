"""Base interface for all metric sources."""

from abc import ABC, abstractmethod
from typing import Any, Optional, Union

from ..errors import SourceError

SampleValue = Union[float, int]


class MetricsSource(ABC):
    """
    Abstract base class for all metric sources.
    
    A source performs a single short OS query and returns one number, or
    raises ``SourceError``. Sources are callable so a metric can treat them
    as plain sampling functions.
    
    Example:
        @register_source("load")
        class LoadSource(MetricsSource):
            def sample(self) -> float:
                return os.getloadavg()[0]
    """
    
    # Override in subclass - used for registration
    source_type: str = "base"
    
    def __init__(self, options: Optional[dict[str, Any]] = None):
        self.options = dict(options or {})
    
    @abstractmethod
    def sample(self) -> SampleValue:
        """
        Take one sample.
        
        Returns:
            The sampled value
        
        Raises:
            SourceError: if the underlying query failed or returned no data
        """
        pass
    
    def __call__(self) -> SampleValue:
        return self.sample()
    
    def health_check(self) -> bool:
        """Check whether the source can currently produce a sample."""
        try:
            self.sample()
            return True
        except SourceError:
            return False
    
    def __repr__(self) -> str:
        return f"{type(self).__name__}(options={self.options!r})"
