"""Test doubles shared across the test modules."""

from hwmon_agent.errors import SinkConnectError, SinkPublishError


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingSink:
    """Publish sink that records messages and fails on request."""

    def __init__(self, connect_failures: int = 0, failing_topics=()):
        self.connect_failures = connect_failures
        self.failing_topics = set(failing_topics)
        self.connect_attempts = 0
        self.published: list[tuple[str, str]] = []
        self.attempted: list[str] = []
        self.closed = False

    async def connect(self):
        self.connect_attempts += 1
        if self.connect_attempts <= self.connect_failures:
            raise SinkConnectError("connection refused")

    async def publish(self, topic: str, value: str):
        self.attempted.append(topic)
        if topic in self.failing_topics:
            raise SinkPublishError("not acknowledged")
        self.published.append((topic, value))

    async def close(self):
        self.closed = True


def sequence_source(*values):
    """Source returning the given values in order, one per call."""
    it = iter(values)
    return lambda: next(it)
