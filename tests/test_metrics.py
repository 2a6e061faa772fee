"""Tests for metric aggregation and value formatting."""

import pytest

from hwmon_agent.config import AgentConfig
from hwmon_agent.errors import MetricError, SourceError
from hwmon_agent.metrics import (
    AverageMetric,
    RawMetric,
    build_metrics,
    format_counter,
    format_value,
    round1,
)

from helpers import sequence_source


def failing_source():
    raise SourceError("sensor missing")


class TestRounding:
    """Test one-decimal rounding and formatting."""

    @pytest.mark.parametrize("value,expected", [
        (23.04, "23.0"),
        (23.05, "23.1"),
        (23.06, "23.1"),
        (0.25, "0.3"),
        (-23.05, "-23.1"),
        (21.0, "21.0"),
        (0.0, "0.0"),
    ])
    def test_pinned_values(self, value, expected):
        assert format_value(value) == expected

    @pytest.mark.parametrize("value", [
        23.04, 23.05, 99.95, 0.05, 12.345, -7.25, 1e6 + 0.15,
        4e15 + 0.5, 2.0 ** 60, 1e30, -1e300, float("inf"), float("-inf"),
    ])
    def test_idempotent(self, value):
        once = round1(value)
        assert round1(once) == once
        assert format_value(float(format_value(value))) == format_value(value)

    def test_values_beyond_float_fraction_pass_through(self):
        assert round1(1e30) == 1e30
        assert format_value(float("inf")) == "inf"
        assert format_value(2.0 ** 53) == "9007199254740992.0"

    def test_precision_controls_digits(self):
        assert format_value(21.0, 2) == "21.00"
        assert format_value(23.05, 0) == "23"

    def test_counter_format(self):
        assert format_counter(123456789012) == "123456789012"
        with pytest.raises(SourceError):
            format_counter(-1)


class TestAverageMetric:
    """Test the averaging metric."""

    def test_mean_of_samples(self):
        metric = AverageMetric("cpu_utilization_percent", sequence_source(10.0, 20.0, 33.0))
        for _ in range(3):
            metric.update()

        assert metric.count == 3
        assert metric.get_value() == "21.0"

    def test_get_value_resets(self):
        metric = AverageMetric("cpu", sequence_source(10.0, 20.0, 33.0))
        for _ in range(3):
            metric.update()
        metric.get_value()

        assert metric.sum == 0.0
        assert metric.count == 0
        with pytest.raises(MetricError):
            metric.get_value()

    def test_empty_is_error_not_zero(self):
        metric = AverageMetric("ram_used_percent", sequence_source())
        with pytest.raises(MetricError, match="ram_used_percent"):
            metric.get_value()

    def test_no_carryover_after_failed_flush(self):
        metric = AverageMetric("temp", sequence_source(50.0, 40.0, 44.0))
        metric.update()
        assert metric.get_value() == "50.0"

        with pytest.raises(MetricError):
            metric.get_value()

        metric.update()
        metric.update()
        assert metric.get_value() == "42.0"

    def test_source_failure_leaves_state(self, caplog):
        metric = AverageMetric("k10_temperature_celsius", failing_source)
        metric.update()

        assert metric.count == 0
        assert metric.sum == 0.0
        assert "Error sampling k10_temperature_celsius" in caplog.text

    def test_failures_between_samples_are_skipped(self):
        values = iter([10.0, SourceError("busy"), 30.0])

        def flaky():
            v = next(values)
            if isinstance(v, Exception):
                raise v
            return v

        metric = AverageMetric("cpu", flaky)
        for _ in range(3):
            metric.update()

        assert metric.count == 2
        assert metric.get_value() == "20.0"


class TestRawMetric:
    """Test the passthrough metric."""

    def test_update_is_noop(self):
        calls = []
        metric = RawMetric("network_total_bytes_sent", lambda: calls.append(1) or 5)
        metric.update()
        metric.update()
        assert calls == []

    def test_samples_at_send_time(self):
        metric = RawMetric("network_total_bytes_sent", sequence_source(1000, 2500))
        assert metric.get_value() == "1000"
        assert metric.get_value() == "2500"

    def test_source_error_propagates(self):
        metric = RawMetric("network_total_bytes_received", failing_source)
        with pytest.raises(SourceError):
            metric.get_value()

    def test_custom_formatter(self):
        metric = RawMetric("load", lambda: 0.75, formatter=format_value)
        assert metric.get_value() == "0.8"


class TestBuildMetrics:
    """Test metric set construction from config."""

    def test_default_set(self):
        metrics = build_metrics(AgentConfig())

        assert [m.name for m in metrics] == [
            "k10_temperature_celsius",
            "cpu_utilization_percent",
            "ram_used_percent",
            "network_total_bytes_sent",
            "network_total_bytes_received",
        ]
        assert isinstance(metrics[0], AverageMetric)
        assert isinstance(metrics[3], RawMetric)

    def test_rate_mode(self):
        config = AgentConfig(network_mode="rate")
        metrics = build_metrics(config)
        names = [m.name for m in metrics]

        assert "network_mbps_sent" in names
        assert "network_mbps_received" in names
        assert "network_total_bytes_sent" not in names
        rate = next(m for m in metrics if m.name == "network_mbps_sent")
        assert isinstance(rate, AverageMetric)
        assert rate.source.source_type == "network_rate"

    def test_toggles(self):
        config = AgentConfig()
        config.metrics.temperature = False
        config.metrics.network = False

        names = [m.name for m in build_metrics(config)]
        assert names == ["cpu_utilization_percent", "ram_used_percent"]

    def test_options_reach_sources(self):
        config = AgentConfig(temperature_sensor="coretemp", interface_prefixes=["wlan"])
        metrics = build_metrics(config)

        assert metrics[0].source.sensor == "coretemp"
        assert metrics[3].source.prefixes == ("wlan",)
        assert metrics[4].source.direction == "received"
