"""Host sources - CPU, chipset temperature and memory via psutil."""

import logging

import psutil

from ..errors import SourceError
from .base import MetricsSource
from .registry import register_source

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE_SENSOR = "k10temp"


@register_source("cpu")
class CpuSource(MetricsSource):
    """
    Overall CPU utilization in percent.

    Uses psutil's non-blocking mode, so each sample covers the time since the
    previous call. psutil is primed once here because the very first
    non-blocking call has nothing to compare against and returns 0.0.
    """

    def __init__(self, options=None):
        super().__init__(options)
        psutil.cpu_percent(interval=None)

    def sample(self) -> float:
        try:
            return float(psutil.cpu_percent(interval=None))
        except (OSError, psutil.Error) as e:
            raise SourceError(f"CPU utilization unavailable: {e}") from e


@register_source("temperature")
class TemperatureSource(MetricsSource):
    """
    Chipset temperature in degrees Celsius.

    Config options:
        sensor: str - psutil sensor group to read (default: "k10temp")
    """

    @property
    def sensor(self) -> str:
        return self.options.get("sensor", DEFAULT_TEMPERATURE_SENSOR)

    def sample(self) -> float:
        if not hasattr(psutil, "sensors_temperatures"):
            raise SourceError("Temperature sensors are not supported on this platform")

        try:
            sensors = psutil.sensors_temperatures()
        except (OSError, psutil.Error) as e:
            raise SourceError(f"Failed to read temperature sensors: {e}") from e

        readings = sensors.get(self.sensor)
        if not readings:
            raise SourceError(f"{self.sensor} sensor not found")
        return float(readings[0].current)


@register_source("memory")
class MemorySource(MetricsSource):
    """Percentage of used virtual memory."""

    def sample(self) -> float:
        try:
            return float(psutil.virtual_memory().percent)
        except (OSError, psutil.Error) as e:
            raise SourceError(f"Memory usage unavailable: {e}") from e
