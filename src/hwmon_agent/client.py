"""MQTT publish sink for sending metric values to the broker."""

import asyncio
import logging
import threading
from typing import Optional

import paho.mqtt.client as mqtt

from .errors import SinkConnectError, SinkPublishError

logger = logging.getLogger(__name__)


class MqttSink:
    """Client for publishing metric values to an MQTT broker.

    paho's network loop runs on its own thread once connected and takes care
    of reconnecting if the broker drops the session later on. The blocking
    calls are handed to ``asyncio.to_thread`` and awaited, so callers still
    see one publish at a time.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None,
        client_id: str = "",
        keepalive: int = 60,
        qos: int = 0,
        connect_timeout: float = 10.0,
        publish_timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.client_id = client_id
        self.keepalive = keepalive
        self.qos = qos
        self.connect_timeout = connect_timeout
        self.publish_timeout = publish_timeout
        self._connack = threading.Event()
        self._connect_reason: Optional[mqtt.ReasonCode] = None
        self._client = self._create_client()

    @classmethod
    def from_config(cls, broker) -> "MqttSink":
        """Create a sink from a ``BrokerConfig``."""
        return cls(
            host=broker.host,
            port=broker.port,
            username=broker.username,
            password=broker.password,
            client_id=broker.client_id,
            keepalive=broker.keepalive,
            qos=broker.qos,
            connect_timeout=broker.connect_timeout,
            publish_timeout=broker.publish_timeout,
        )

    @property
    def address(self) -> str:
        return f"tcp://{self.host}:{self.port}"

    def _create_client(self) -> mqtt.Client:
        """Create the underlying paho client."""
        client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=self.client_id)
        if self.username:
            client.username_pw_set(self.username, self.password)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        return client

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        self._connect_reason = reason_code
        if reason_code.is_failure:
            logger.warning(f"Broker refused connection: {reason_code}")
        else:
            logger.info(f"Connected to MQTT broker at {self.address}")
        self._connack.set()

    def _on_disconnect(self, client, userdata, flags, reason_code, properties):
        if reason_code.is_failure:
            logger.warning(f"Disconnected from MQTT broker: {reason_code}")

    async def connect(self):
        """Connect to the broker and wait for its CONNACK.

        Raises:
            SinkConnectError: if the broker is unreachable, refuses the
                connection or does not answer within ``connect_timeout``
        """
        self._connack.clear()
        self._connect_reason = None

        try:
            await asyncio.to_thread(self._client.connect, self.host, self.port, self.keepalive)
        except (OSError, ValueError) as e:
            raise SinkConnectError(f"Failed to connect to {self.address}: {e}") from e

        self._client.loop_start()
        acked = await asyncio.to_thread(self._connack.wait, self.connect_timeout)

        if not acked:
            self._client.loop_stop()
            raise SinkConnectError(f"No answer from {self.address} after {self.connect_timeout}s")
        if self._connect_reason is not None and self._connect_reason.is_failure:
            self._client.loop_stop()
            raise SinkConnectError(f"Connection to {self.address} refused: {self._connect_reason}")

    async def publish(self, topic: str, value: str):
        """Publish a value and wait until paho reports it as sent.

        Raises:
            SinkPublishError: if the message could not be queued or was not
                acknowledged within ``publish_timeout``
        """
        info = self._client.publish(topic, value, qos=self.qos)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise SinkPublishError(f"Failed to publish to {topic}: {mqtt.error_string(info.rc)}")

        try:
            await asyncio.to_thread(info.wait_for_publish, self.publish_timeout)
        except (RuntimeError, ValueError) as e:
            raise SinkPublishError(f"Failed to publish to {topic}: {e}") from e

        if not info.is_published():
            raise SinkPublishError(f"Timeout publishing to {topic}")
        logger.debug(f"Published {topic} = {value}")

    async def close(self):
        """Disconnect and stop the network loop."""
        self._client.disconnect()
        self._client.loop_stop()
