"""Network sources - byte counters over physical Ethernet interfaces."""

import logging
import time
from typing import Callable, Iterable, Optional

import psutil

from ..errors import SourceError
from .base import MetricsSource
from .registry import register_source

logger = logging.getLogger(__name__)

DEFAULT_INTERFACE_PREFIXES = ("eth", "enp")

# Loopback, container bridges, VPN/tunnels, virtual bridges and orchestration overlays
DEFAULT_EXCLUDED_PREFIXES = (
    "lo",
    "docker",
    "br-",
    "veth",
    "tun",
    "tap",
    "wg",
    "virbr",
    "vnet",
    "cali",
    "flannel",
    "cni",
    "kube",
    "tailscale",
)

DIRECTIONS = {
    "sent": "bytes_sent",
    "received": "bytes_recv",
}


def is_physical_ethernet(
    name: str,
    prefixes: Iterable[str] = DEFAULT_INTERFACE_PREFIXES,
    excluded: Iterable[str] = DEFAULT_EXCLUDED_PREFIXES,
) -> bool:
    """Check if an interface name looks like a physical Ethernet device."""
    if any(name.startswith(p) for p in excluded):
        return False
    return any(name.startswith(p) for p in prefixes)


def sum_interface_bytes(
    counters: dict,
    direction: str,
    prefixes: Iterable[str] = DEFAULT_INTERFACE_PREFIXES,
    excluded: Iterable[str] = DEFAULT_EXCLUDED_PREFIXES,
) -> int:
    """Sum one direction's byte counter across matching interfaces.

    Args:
        counters: Mapping of interface name to psutil ``snetio`` tuples
        direction: "sent" or "received"
    """
    field = DIRECTIONS[direction]
    prefixes = tuple(prefixes)
    excluded = tuple(excluded)
    return sum(
        getattr(stats, field)
        for name, stats in counters.items()
        if is_physical_ethernet(name, prefixes, excluded)
    )


class _InterfaceBytesSource(MetricsSource):
    """Shared option handling for the network sources.

    Config options:
        direction: str - "sent" or "received"
        interface_prefixes: list[str] - allowed name prefixes
        excluded_interface_prefixes: list[str] - rejected name prefixes
    """

    def __init__(self, options=None):
        super().__init__(options)
        self.direction = self.options.get("direction", "sent")
        if self.direction not in DIRECTIONS:
            raise ValueError(f"Unknown network direction: {self.direction}")
        self.prefixes = tuple(self.options.get("interface_prefixes") or DEFAULT_INTERFACE_PREFIXES)
        self.excluded = tuple(
            self.options.get("excluded_interface_prefixes") or DEFAULT_EXCLUDED_PREFIXES
        )

    def total_bytes(self) -> int:
        try:
            counters = psutil.net_io_counters(pernic=True)
        except (OSError, psutil.Error) as e:
            raise SourceError(f"Failed to read network counters: {e}") from e
        return sum_interface_bytes(counters, self.direction, self.prefixes, self.excluded)


@register_source("network_bytes")
class NetworkBytesSource(_InterfaceBytesSource):
    """Cumulative bytes since boot, summed over physical Ethernet interfaces."""

    def sample(self) -> int:
        return self.total_bytes()


@register_source("network_rate")
class NetworkRateSource(_InterfaceBytesSource):
    """
    Throughput in Mbit/s since the previous sample.

    The previous total and its timestamp live on the instance. The first
    sample, and any sample after the counter went backwards, only records a
    baseline and raises ``SourceError``.
    """

    def __init__(self, options=None, clock: Optional[Callable[[], float]] = None):
        super().__init__(options)
        self._clock = clock or time.monotonic
        self._last_total: Optional[int] = None
        self._last_time: Optional[float] = None

    def sample(self) -> float:
        total = self.total_bytes()
        now = self._clock()
        last_total, last_time = self._last_total, self._last_time
        self._last_total, self._last_time = total, now

        if last_total is None:
            raise SourceError(f"No network {self.direction} baseline yet")
        if total < last_total:
            raise SourceError(f"Network {self.direction} counter went backwards, re-baselined")

        elapsed = now - last_time
        if elapsed <= 0:
            raise SourceError("No time elapsed since previous network sample")

        return (total - last_total) * 8 / 1_000_000 / elapsed

    def health_check(self) -> bool:
        """Check the counters are readable without touching the baseline."""
        try:
            self.total_bytes()
            return True
        except SourceError:
            return False
