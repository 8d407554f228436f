"""
MQTT access for the recorder.

Only what the recorder needs from the bus: connect, subscribe a topic with a
payload handler, unsubscribe and disconnect. Subscriptions are replayed when
the client reconnects.
"""

import threading
from typing import Callable, Optional
from urllib.parse import urlparse

import paho.mqtt.client as mqtt
from loguru import logger

from .errors import BusError

DEFAULT_PORT = 1883
TLS_SCHEMES = ("ssl", "tls", "mqtts")

PayloadHandler = Callable[[bytes], None]


def parse_broker(broker: str) -> tuple[str, int, bool]:
    """Split a broker url such as `tcp://127.0.0.1:1883` into host, port and tls flag."""
    parsed = urlparse(broker if "://" in broker else f"tcp://{broker}")
    if parsed.scheme not in ("tcp", "mqtt", *TLS_SCHEMES):
        raise BusError(f"unsupported broker scheme '{parsed.scheme}' in {broker}")
    if not parsed.hostname:
        raise BusError(f"missing host in broker url {broker}")
    return parsed.hostname, parsed.port or DEFAULT_PORT, parsed.scheme in TLS_SCHEMES


class MqttBus:
    def __init__(
        self,
        broker: str,
        *,
        client_id: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        keepalive: int = 60,
    ):
        self.host, self.port, tls = parse_broker(broker)
        self.keepalive = keepalive
        self._connected = threading.Event()
        self._subscriptions: dict[str, int] = {}

        self._client = mqtt.Client(callback_api_version=mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
        if username:
            self._client.username_pw_set(username, password)
        if tls:
            self._client.tls_set()
        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if reason_code.is_failure:
            logger.error(f"Connection to mqtt broker {self.host}:{self.port} refused: {reason_code}")
            return
        logger.info(f"Connected to mqtt broker {self.host}:{self.port}")
        for topic, qos in list(self._subscriptions.items()):
            client.subscribe(topic, qos)
        self._connected.set()

    def _on_disconnect(self, client, userdata, flags, reason_code, properties):
        self._connected.clear()
        if reason_code.is_failure:
            logger.warning(f"Disconnected from mqtt broker: {reason_code}")

    def connect(self, timeout: float = 10.0) -> None:
        try:
            self._client.connect(self.host, self.port, self.keepalive)
        except OSError as e:
            raise BusError(f"unable to connect to mqtt bus {self.host}:{self.port}: {e}") from e
        self._client.loop_start()
        if not self._connected.wait(timeout):
            self._client.loop_stop()
            raise BusError(f"no connection acknowledgement from {self.host}:{self.port} after {timeout}s")

    def subscribe(self, topic: str, handler: PayloadHandler, qos: int = 0) -> None:
        def on_message(client, userdata, message: mqtt.MQTTMessage):
            handler(message.payload)

        self._client.message_callback_add(topic, on_message)
        self._subscriptions[topic] = qos
        if self._connected.is_set():
            result, _ = self._client.subscribe(topic, qos)
            if result != mqtt.MQTT_ERR_SUCCESS:
                raise BusError(f"unable to subscribe to {topic}: {mqtt.error_string(result)}")
        logger.info(f"Subscribed to {topic} (qos={qos})")

    def unsubscribe(self, topic: str) -> None:
        self._subscriptions.pop(topic, None)
        self._client.message_callback_remove(topic)
        if self._connected.is_set():
            self._client.unsubscribe(topic)
        logger.info(f"Unsubscribed from {topic}")

    def disconnect(self) -> None:
        self._client.disconnect()
        self._client.loop_stop()
