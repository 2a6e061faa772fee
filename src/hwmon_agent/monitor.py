"""HWMON monitor - dual-interval sampling and publishing loop."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Protocol

from .errors import MetricError, SinkConnectError, SinkPublishError, SourceError
from .metrics import Metric

logger = logging.getLogger(__name__)


class PublishSink(Protocol):
    """Where the monitor sends metric values."""

    async def connect(self) -> None: ...

    async def publish(self, topic: str, value: str) -> None: ...

    async def close(self) -> None: ...


class HwMonitor:
    """
    Samples metrics on a fast update tick and publishes them on a slower
    send tick.

    Both ticks are polled from one loop every ``poll_interval`` seconds.
    Update runs before send so that a send in the same tick sees the fresh
    samples. Each timer advances once its interval has elapsed, whether or
    not the individual metrics succeeded.
    """

    def __init__(
        self,
        metrics: list[Metric],
        sink: PublishSink,
        prefix: str = "hwinfo/",
        update_interval: float = 1.0,
        send_interval: float = 30.0,
        poll_interval: float = 0.05,
        reconnect_delay: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.metrics = list(metrics)
        self.sink = sink
        self.prefix = prefix
        self.update_interval = update_interval
        self.send_interval = send_interval
        self.poll_interval = poll_interval
        self.reconnect_delay = reconnect_delay
        self._clock = clock
        self._sleep = sleep
        self.last_update: Optional[float] = None
        self.last_send: Optional[float] = None
        self.connected = False

    def topic(self, metric: Metric) -> str:
        return f"{self.prefix}{metric.name}"

    async def connect(self) -> int:
        """Connect to the sink, retrying forever.

        Returns:
            Number of failed attempts before the connection succeeded
        """
        failures = 0
        while True:
            try:
                await self.sink.connect()
            except SinkConnectError as e:
                failures += 1
                logger.warning(
                    f"Failed to connect to MQTT broker: {e}. "
                    f"Retrying in {self.reconnect_delay:g}s"
                )
                await self._sleep(self.reconnect_delay)
                continue
            self.connected = True
            return failures

    def start_timers(self):
        now = self._clock()
        self.last_update = now
        self.last_send = now

    async def run(self):
        """Connect, then sample and publish until the process is stopped."""
        logger.info(f"Starting HWMON monitor with {len(self.metrics)} metrics")
        await self.connect()
        self.start_timers()

        while True:
            await self.tick()
            await self._sleep(self.poll_interval)

    async def tick(self):
        """One pass of the main loop: maybe update, then maybe send."""
        self.maybe_update()
        await self.maybe_send()

    def maybe_update(self, now: Optional[float] = None) -> bool:
        """Update every metric if the update interval has elapsed."""
        now = self._clock() if now is None else now
        if self.last_update is not None and now - self.last_update < self.update_interval:
            return False

        for metric in self.metrics:
            metric.update()

        self._advance("last_update", now)
        return True

    async def maybe_send(self, now: Optional[float] = None) -> bool:
        """Publish every metric if the send interval has elapsed."""
        now = self._clock() if now is None else now
        if self.last_send is not None and now - self.last_send < self.send_interval:
            return False

        published = 0
        for metric in self.metrics:
            try:
                value = metric.get_value()
            except (MetricError, SourceError) as e:
                logger.warning(f"Error getting value for {metric.name}: {e}")
                continue

            topic = self.topic(metric)
            try:
                await self.sink.publish(topic, value)
                published += 1
            except SinkPublishError as e:
                logger.error(f"Failed to publish to {topic}: {e}")

        logger.info(f"Published {published}/{len(self.metrics)} metrics")
        self._advance("last_send", now)
        return True

    def _advance(self, attr: str, now: float):
        # Timers never move backwards, even if handed an older timestamp
        current = getattr(self, attr)
        if current is None or now > current:
            setattr(self, attr, now)

    async def collect_once(self, samples: int = 2) -> dict[str, str]:
        """Run ``samples`` update passes one update interval apart, then
        return ``{topic: value}`` for every metric without publishing.

        Delta based sources (CPU, network rate) need at least two passes to
        produce a meaningful value.
        """
        for i in range(samples):
            if i:
                await self._sleep(self.update_interval)
            for metric in self.metrics:
                metric.update()

        values = {}
        for metric in self.metrics:
            try:
                values[self.topic(metric)] = metric.get_value()
            except (MetricError, SourceError) as e:
                logger.warning(f"Error getting value for {metric.name}: {e}")
        return values

    async def stop(self):
        """Close the sink. In-flight values are not drained."""
        logger.info("Stopping HWMON monitor...")
        if self.connected:
            await self.sink.close()
            self.connected = False
