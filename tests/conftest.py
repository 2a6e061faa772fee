"""Shared fixtures for HWMON agent tests."""

import pytest

from helpers import FakeClock, RecordingSink


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep HWMON_* variables from the host out of the tests."""
    for key in ("HWMON_MQTT_HOST", "HWMON_MQTT_PORT", "HWMON_MQTT_USER",
                "HWMON_MQTT_PASSWORD", "HWMON_PREFIX"):
        monkeypatch.delenv(key, raising=False)
