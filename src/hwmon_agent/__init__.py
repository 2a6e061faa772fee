"""HWMON Agent - host hardware metrics published to an MQTT broker."""

__version__ = "0.2.0"
