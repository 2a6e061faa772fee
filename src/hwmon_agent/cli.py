"""HWMON Agent CLI - host hardware metrics over MQTT."""

import asyncio
import logging
import sys
from typing import Optional

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from . import __version__
from .client import MqttSink
from .config import AgentConfig, load_config
from .errors import ConfigError
from .metrics import AverageMetric, build_metrics
from .monitor import HwMonitor
from .sources import list_sources

console = Console()


def setup_logging(level: str):
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )


def _load(config_path: Optional[str]) -> AgentConfig:
    try:
        return load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]x {e}[/red]")
        sys.exit(1)


def create_monitor(config: AgentConfig, sink=None) -> HwMonitor:
    """Build the metric set and monitor described by ``config``."""
    return HwMonitor(
        metrics=build_metrics(config),
        sink=sink or MqttSink.from_config(config.broker),
        prefix=config.prefix,
        update_interval=config.update_interval,
        send_interval=config.send_interval,
        poll_interval=config.poll_interval,
        reconnect_delay=config.broker.reconnect_delay,
    )


@click.group()
@click.version_option(version=__version__, prog_name="hwmon-agent")
def main():
    """HWMON Agent - sample host hardware metrics and publish them to MQTT."""
    pass


@main.command()
@click.option("--config", "-c", "config_path", help="Path to config file")
@click.option("--host", envvar="HWMON_MQTT_HOST", help="MQTT broker host")
@click.option("--user", envvar="HWMON_MQTT_USER", help="MQTT username")
@click.option("--password", envvar="HWMON_MQTT_PASSWORD", help="MQTT password")
@click.option("--log-level", default=None, help="Log level")
@click.option("--once", is_flag=True, help="Sample once, print values and exit")
def run(
    config_path: Optional[str],
    host: Optional[str],
    user: Optional[str],
    password: Optional[str],
    log_level: Optional[str],
    once: bool,
):
    """Run the HWMON monitor."""
    config = _load(config_path)

    # Override with CLI options
    if host:
        config.broker.host = host
    if user:
        config.broker.username = user
    if password:
        config.broker.password = password
    if log_level:
        config.log_level = log_level

    setup_logging(config.log_level)
    monitor = create_monitor(config)

    if once:
        values = asyncio.run(monitor.collect_once())
        _display_values(values)
        return

    console.print(Panel(
        f"[bold green]HWMON Agent v{__version__}[/bold green]\n"
        f"Broker: {config.broker.host}:{config.broker.port}\n"
        f"User: {config.broker.username or '-'}\n"
        f"Metrics: {', '.join(m.name for m in monitor.metrics)}\n"
        f"Update: {config.update_interval:g}s  Send: {config.send_interval:g}s",
        title="Starting",
    ))

    async def _run():
        try:
            await monitor.run()
        finally:
            await monitor.stop()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Shutting down...[/yellow]")


def _display_values(values: dict[str, str]):
    """Display collected values in a table."""
    if not values:
        console.print("[yellow]No metrics collected[/yellow]")
        return

    table = Table(title=f"Collected {len(values)} Metrics", show_lines=True)
    table.add_column("Topic", style="cyan")
    table.add_column("Value", justify="right")

    for topic, value in values.items():
        table.add_row(topic, value)

    console.print(table)


@main.command()
@click.option("--config", "-c", "config_path", help="Path to config file")
def test(config_path: Optional[str]):
    """Test every configured metric source and the broker without publishing."""
    config = _load(config_path)
    monitor = create_monitor(config)

    console.print("[bold]Testing metric sources...[/bold]\n")
    console.print(f"Available source types: {', '.join(list_sources())}\n")

    for metric in monitor.metrics:
        if metric.source.health_check():
            console.print(f"  [green]+ {metric.name}[/green] ({metric.source.source_type})")
        else:
            console.print(f"  [red]x {metric.name}[/red] ({metric.source.source_type}) unavailable")

    console.print()
    _display_values(asyncio.run(monitor.collect_once()))

    # Test broker connection
    console.print(f"\n[cyan]MQTT broker ({config.broker.host}:{config.broker.port}):[/cyan]")
    sink = monitor.sink

    async def _test():
        try:
            await sink.connect()
        except Exception as e:
            console.print(f"  [red]x Could not connect: {e}[/red]")
            return
        console.print("  [green]+ Connected successfully[/green]")
        await sink.close()

    asyncio.run(_test())


@main.command("metrics")
@click.option("--config", "-c", "config_path", help="Path to config file")
def list_metrics(config_path: Optional[str]):
    """List the configured metrics and their topics."""
    config = _load(config_path)

    table = Table(show_header=True)
    table.add_column("Topic", style="cyan")
    table.add_column("Kind")
    table.add_column("Source", style="dim")

    for metric in build_metrics(config):
        kind = "average" if isinstance(metric, AverageMetric) else "raw"
        table.add_row(f"{config.prefix}{metric.name}", kind, metric.source.source_type)

    console.print(table)


@main.command()
@click.option("--output", "-o", type=click.Path(), help="Output file path")
def init(output: Optional[str]):
    """Generate a sample configuration file."""
    sample_config = """# HWMON Agent Configuration

# MQTT broker
broker:
  host: localhost
  port: 1883
  # username: hwmon       # or HWMON_MQTT_USER
  # password: secret      # or HWMON_MQTT_PASSWORD
  keepalive: 60
  qos: 0
  reconnect_delay: 5

# Topic prefix; each metric publishes to <prefix><metric name>
prefix: hwinfo/

# Sample every update_interval seconds, publish every send_interval seconds
update_interval: 1
send_interval: 30
precision: 1

# Metric groups
metrics:
  temperature: true
  cpu: true
  memory: true
  network: true

# cumulative: total bytes since boot; rate: average Mbit/s between sends
network_mode: cumulative
temperature_sensor: k10temp
interface_prefixes: [eth, enp]

log_level: INFO
"""

    output_path = output or "hwmon-agent.yaml"

    with open(output_path, "w") as f:
        f.write(sample_config)

    console.print(f"[green]+ Created config file: {output_path}[/green]")
    console.print("\nEdit the broker settings, then run:")
    console.print(f"  [cyan]hwmon-agent run -c {output_path}[/cyan]")


@main.command()
def status():
    """Show agent status and system info."""
    import psutil
    import platform

    console.print(Panel(
        f"[bold]HWMON Agent v{__version__}[/bold]",
        title="Status",
    ))

    table = Table(title="System Information", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Platform", platform.platform())
    table.add_row("Python", platform.python_version())
    table.add_row("CPU Cores", str(psutil.cpu_count()))
    table.add_row("CPU Usage", f"{psutil.cpu_percent(interval=0.1):.1f}%")

    mem = psutil.virtual_memory()
    table.add_row("Memory Total", f"{mem.total / 1024**3:.1f} GB")
    table.add_row("Memory Used", f"{mem.percent:.1f}%")

    sensors = getattr(psutil, "sensors_temperatures", lambda: {})()
    table.add_row("Temperature Sensors", ", ".join(sensors) or "none")

    console.print(table)

    console.print(f"\n[bold]Available Source Types:[/bold] {', '.join(list_sources())}")


if __name__ == "__main__":
    main()
