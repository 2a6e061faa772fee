"""Configuration management for HWMON Agent."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .errors import ConfigError
from .sources.network import DEFAULT_EXCLUDED_PREFIXES, DEFAULT_INTERFACE_PREFIXES
from .sources.system import DEFAULT_TEMPERATURE_SENSOR

NETWORK_MODES = ("cumulative", "rate")


def _string_list(value: Any, key: str) -> list[str]:
    """Accept a list of strings, or a single string as a one-item list."""
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{key} must be a list of strings, got {value!r}")
    return list(value)


@dataclass
class BrokerConfig:
    """MQTT broker connection configuration."""

    host: str = "localhost"
    port: int = 1883
    username: Optional[str] = None
    password: Optional[str] = None
    client_id: str = ""
    keepalive: int = 60
    qos: int = 0
    connect_timeout: float = 10.0
    publish_timeout: float = 10.0
    reconnect_delay: float = 5.0  # seconds between connection attempts


@dataclass
class MetricToggles:
    """Which metric groups are collected."""

    temperature: bool = True
    cpu: bool = True
    memory: bool = True
    network: bool = True


@dataclass
class AgentConfig:
    """Main agent configuration."""

    broker: BrokerConfig = field(default_factory=BrokerConfig)

    # Publishing
    prefix: str = "hwinfo/"
    update_interval: float = 1.0  # seconds
    send_interval: float = 30.0  # seconds
    poll_interval: float = 0.05  # seconds
    precision: int = 1

    # Metric set
    metrics: MetricToggles = field(default_factory=MetricToggles)
    network_mode: str = "cumulative"
    temperature_sensor: str = DEFAULT_TEMPERATURE_SENSOR
    interface_prefixes: list[str] = field(default_factory=lambda: list(DEFAULT_INTERFACE_PREFIXES))
    excluded_interface_prefixes: list[str] = field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_PREFIXES)
    )

    log_level: str = "INFO"

    def validate(self) -> "AgentConfig":
        """Check value ranges, raising ConfigError on the first problem."""
        if not isinstance(self.prefix, str):
            raise ConfigError(f"prefix must be a string, got {self.prefix!r}")
        for key in ("update_interval", "send_interval", "poll_interval"):
            if getattr(self, key) <= 0:
                raise ConfigError(f"{key} must be positive, got {getattr(self, key)}")
        if self.network_mode not in NETWORK_MODES:
            raise ConfigError(
                f"network_mode must be one of {', '.join(NETWORK_MODES)}, got {self.network_mode!r}"
            )
        if self.precision < 0:
            raise ConfigError(f"precision must not be negative, got {self.precision}")
        if self.broker.qos not in (0, 1, 2):
            raise ConfigError(f"broker.qos must be 0, 1 or 2, got {self.broker.qos}")
        if self.broker.reconnect_delay < 0:
            raise ConfigError("broker.reconnect_delay must not be negative")
        if not self.broker.host:
            raise ConfigError("broker.host is required")
        return self

    @classmethod
    def from_file(cls, path: str | Path) -> "AgentConfig":
        """Load configuration from YAML file."""
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"Failed to read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if data is not None and not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AgentConfig":
        """Create config from dictionary, then apply environment overrides."""
        config = cls()

        try:
            # Broker
            if "broker" in data:
                b = data["broker"] or {}
                defaults = config.broker
                config.broker = BrokerConfig(
                    host=b.get("host", defaults.host),
                    port=int(b.get("port", defaults.port)),
                    username=b.get("username") or b.get("user"),
                    password=b.get("password") or b.get("pass"),
                    client_id=b.get("client_id", defaults.client_id),
                    keepalive=int(b.get("keepalive", defaults.keepalive)),
                    qos=int(b.get("qos", defaults.qos)),
                    connect_timeout=float(b.get("connect_timeout", defaults.connect_timeout)),
                    publish_timeout=float(b.get("publish_timeout", defaults.publish_timeout)),
                    reconnect_delay=float(b.get("reconnect_delay", defaults.reconnect_delay)),
                )

            # Metric toggles
            toggles = data.get("metrics") or {}
            config.metrics = MetricToggles(
                temperature=bool(toggles.get("temperature", True)),
                cpu=bool(toggles.get("cpu", True)),
                memory=bool(toggles.get("memory", True)),
                network=bool(toggles.get("network", True)),
            )

            # Agent settings
            config.prefix = data.get("prefix", config.prefix)
            config.update_interval = float(data.get("update_interval", config.update_interval))
            config.send_interval = float(data.get("send_interval", config.send_interval))
            config.poll_interval = float(data.get("poll_interval", config.poll_interval))
            config.precision = int(data.get("precision", config.precision))
            config.network_mode = data.get("network_mode", config.network_mode)
            config.temperature_sensor = data.get("temperature_sensor", config.temperature_sensor)
            config.interface_prefixes = _string_list(
                data.get("interface_prefixes", config.interface_prefixes), "interface_prefixes"
            )
            config.excluded_interface_prefixes = _string_list(
                data.get("excluded_interface_prefixes", config.excluded_interface_prefixes),
                "excluded_interface_prefixes",
            )
            config.log_level = data.get("log_level", config.log_level)
        except (AttributeError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration value: {e}") from e

        config.apply_env()
        return config.validate()

    @classmethod
    def from_env(cls) -> "AgentConfig":
        """Create config from environment variables."""
        config = cls()
        config.apply_env()
        return config.validate()

    def apply_env(self):
        """Override broker settings and prefix from the environment."""
        env = os.environ

        if env.get("HWMON_MQTT_HOST"):
            self.broker.host = env["HWMON_MQTT_HOST"]
        if env.get("HWMON_MQTT_PORT"):
            try:
                self.broker.port = int(env["HWMON_MQTT_PORT"])
            except ValueError as e:
                raise ConfigError(f"Invalid HWMON_MQTT_PORT: {env['HWMON_MQTT_PORT']}") from e
        if env.get("HWMON_MQTT_USER"):
            self.broker.username = env["HWMON_MQTT_USER"]
        if env.get("HWMON_MQTT_PASSWORD"):
            self.broker.password = env["HWMON_MQTT_PASSWORD"]
        if env.get("HWMON_PREFIX"):
            self.prefix = env["HWMON_PREFIX"]


def load_config(config_path: Optional[str] = None) -> AgentConfig:
    """Load configuration from file or environment."""
    if config_path:
        if not Path(config_path).exists():
            raise ConfigError(f"Config file not found: {config_path}")
        return AgentConfig.from_file(config_path)

    # Try default locations
    default_paths = [
        Path("hwmon-agent.yaml"),
        Path("hwmon-agent.yml"),
        Path.home() / ".hwmon" / "agent.yaml",
        Path("/etc/hwmon/agent.yaml"),
    ]

    for path in default_paths:
        if path.exists():
            return AgentConfig.from_file(path)

    # Fall back to environment
    return AgentConfig.from_env()
