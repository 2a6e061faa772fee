"""Exception types raised by the HWMON agent."""


class HwmonError(Exception):
    """Base class for all agent errors."""


class ConfigError(HwmonError):
    """Configuration could not be loaded or is invalid."""


class SourceError(HwmonError):
    """A sensor or OS query failed or returned no data."""


class MetricError(HwmonError):
    """A metric has no accumulated samples at flush time."""


class SinkConnectError(HwmonError):
    """The MQTT broker could not be reached."""


class SinkPublishError(HwmonError):
    """A single publish attempt failed."""
