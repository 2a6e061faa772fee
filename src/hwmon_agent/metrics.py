"""Metrics - aggregation policies wrapped around sources."""

import logging
import math
from abc import ABC, abstractmethod
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Callable

from .errors import MetricError, SourceError
from .sources import SampleValue, SourceRegistry

if TYPE_CHECKING:
    from .config import AgentConfig

logger = logging.getLogger(__name__)

DEFAULT_PRECISION = 1


def round1(value: float) -> float:
    """Round to one decimal place, halves away from zero.

    Computes ``round(value * 10) / 10`` where the inner round goes through
    Decimal so that 230.5 becomes 231 rather than the even 230. Values with
    no fractional part left to round (infinite, NaN, or at least 2**52) are
    returned unchanged.
    """
    if not math.isfinite(value) or abs(value) >= 2**52:
        return value
    tenths = Decimal(value * 10).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return float(tenths) / 10


def format_value(value: float, precision: int = DEFAULT_PRECISION) -> str:
    """Round to one decimal place and format with ``precision`` digits."""
    return f"{round1(value):.{precision}f}"


def format_counter(value: SampleValue) -> str:
    """Format a cumulative counter as an unsigned integer string."""
    if value < 0:
        raise SourceError(f"Counter value is negative: {value}")
    return str(int(value))


class Metric(ABC):
    """A named quantity the monitor samples and publishes.

    ``name`` is used verbatim as the topic suffix.
    """

    def __init__(self, name: str, source: Callable[[], SampleValue]):
        self.name = name
        self.source = source

    @abstractmethod
    def update(self) -> None:
        """Sample the source and fold the result into internal state."""

    @abstractmethod
    def get_value(self) -> str:
        """Return the value to publish, or raise MetricError/SourceError."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class AverageMetric(Metric):
    """
    Mean of the samples collected since the last successful flush.

    ``update()`` adds a sample to a running sum and count. ``get_value()``
    computes the mean and resets both; with no samples it raises
    ``MetricError`` and leaves the state alone.
    """

    def __init__(
        self,
        name: str,
        source: Callable[[], SampleValue],
        precision: int = DEFAULT_PRECISION,
    ):
        super().__init__(name, source)
        self.precision = precision
        self.sum = 0.0
        self.count = 0

    def update(self) -> None:
        try:
            value = self.source()
        except SourceError as e:
            logger.warning(f"Error sampling {self.name}: {e}")
            return
        self.sum += value
        self.count += 1

    def get_value(self) -> str:
        if self.count == 0:
            raise MetricError(f"No samples for {self.name}")
        mean = self.sum / self.count
        self.sum = 0.0
        self.count = 0
        return format_value(mean, self.precision)


class RawMetric(Metric):
    """
    Value sampled directly at send time, without averaging.

    ``update()`` does nothing; ``get_value()`` calls the source and lets a
    ``SourceError`` propagate to the caller.
    """

    def __init__(
        self,
        name: str,
        source: Callable[[], SampleValue],
        formatter: Callable[[SampleValue], str] = format_counter,
    ):
        super().__init__(name, source)
        self._formatter = formatter

    def update(self) -> None:
        pass

    def get_value(self) -> str:
        return self._formatter(self.source())


def build_metrics(config: "AgentConfig") -> list[Metric]:
    """Create the fixed metric set, in publish order, from config."""
    metrics: list[Metric] = []
    enabled = config.metrics
    precision = config.precision

    if enabled.temperature:
        metrics.append(AverageMetric(
            "k10_temperature_celsius",
            SourceRegistry.create("temperature", {"sensor": config.temperature_sensor}),
            precision,
        ))

    if enabled.cpu:
        metrics.append(AverageMetric(
            "cpu_utilization_percent",
            SourceRegistry.create("cpu"),
            precision,
        ))

    if enabled.memory:
        metrics.append(AverageMetric(
            "ram_used_percent",
            SourceRegistry.create("memory"),
            precision,
        ))

    if enabled.network:
        for direction in ("sent", "received"):
            options = {
                "direction": direction,
                "interface_prefixes": config.interface_prefixes,
                "excluded_interface_prefixes": config.excluded_interface_prefixes,
            }
            if config.network_mode == "rate":
                metrics.append(AverageMetric(
                    f"network_mbps_{direction}",
                    SourceRegistry.create("network_rate", options),
                    precision,
                ))
            else:
                metrics.append(RawMetric(
                    f"network_total_bytes_{direction}",
                    SourceRegistry.create("network_bytes", options),
                ))

    logger.debug(f"Built {len(metrics)} metrics: {[m.name for m in metrics]}")
    return metrics
