"""Tests for the mqtt bus wrapper, the paho client is mocked."""

from unittest.mock import MagicMock, Mock, patch

import paho.mqtt.client as mqtt
import pytest

from rc_recorder.bus import MqttBus, parse_broker
from rc_recorder.errors import BusError


@pytest.mark.parametrize(
    "broker, expected",
    [
        ("tcp://127.0.0.1:1883", ("127.0.0.1", 1883, False)),
        ("mqtt://broker.local", ("broker.local", 1883, False)),
        ("ssl://broker.local:8883", ("broker.local", 8883, True)),
        ("broker.local:1884", ("broker.local", 1884, False)),
    ],
)
def test_parse_broker(broker, expected):
    assert parse_broker(broker) == expected


@pytest.mark.parametrize("broker", ["ws://broker.local:80", "tcp://:1883"])
def test_parse_broker_invalid(broker):
    with pytest.raises(BusError):
        parse_broker(broker)


@pytest.fixture
def mock_client():
    with patch("rc_recorder.bus.mqtt.Client") as client_cls:
        client = MagicMock()
        client.subscribe.return_value = (mqtt.MQTT_ERR_SUCCESS, 1)
        client_cls.return_value = client
        yield client


def connack(bus, client, failure=False):
    bus._on_connect(client, None, {}, Mock(is_failure=failure), None)


class TestMqttBus:
    def test_credentials(self, mock_client):
        MqttBus("tcp://127.0.0.1:1883", client_id="rc", username="user", password="secret")

        mock_client.username_pw_set.assert_called_once_with("user", "secret")
        mock_client.tls_set.assert_not_called()

    def test_tls(self, mock_client):
        MqttBus("ssl://127.0.0.1:8883", client_id="rc")

        mock_client.tls_set.assert_called_once()

    def test_connect(self, mock_client):
        bus = MqttBus("tcp://127.0.0.1:1883", client_id="rc")
        mock_client.loop_start.side_effect = lambda: connack(bus, mock_client)

        bus.connect(timeout=1)

        mock_client.connect.assert_called_once_with("127.0.0.1", 1883, 60)

    def test_connect_refused(self, mock_client):
        mock_client.connect.side_effect = ConnectionRefusedError("refused")
        bus = MqttBus("tcp://127.0.0.1:1883", client_id="rc")

        with pytest.raises(BusError, match="unable to connect"):
            bus.connect(timeout=1)

    def test_connect_without_ack(self, mock_client):
        bus = MqttBus("tcp://127.0.0.1:1883", client_id="rc")

        with pytest.raises(BusError, match="no connection acknowledgement"):
            bus.connect(timeout=0.05)
        mock_client.loop_stop.assert_called_once()

    def test_subscribe_delivers_payload(self, mock_client):
        bus = MqttBus("tcp://127.0.0.1:1883", client_id="rc")
        connack(bus, mock_client)
        handler = Mock()

        bus.subscribe("robocar/records", handler, qos=1)

        mock_client.subscribe.assert_called_once_with("robocar/records", 1)
        topic, on_message = mock_client.message_callback_add.call_args.args
        assert topic == "robocar/records"
        on_message(mock_client, None, Mock(payload=b"payload"))
        handler.assert_called_once_with(b"payload")

    def test_subscribe_failure(self, mock_client):
        mock_client.subscribe.return_value = (mqtt.MQTT_ERR_NO_CONN, None)
        bus = MqttBus("tcp://127.0.0.1:1883", client_id="rc")
        connack(bus, mock_client)

        with pytest.raises(BusError, match="unable to subscribe"):
            bus.subscribe("robocar/records", Mock())

    def test_subscriptions_replayed_on_reconnect(self, mock_client):
        bus = MqttBus("tcp://127.0.0.1:1883", client_id="rc")
        bus.subscribe("robocar/records", Mock(), qos=2)
        mock_client.subscribe.assert_not_called()

        connack(bus, mock_client)

        mock_client.subscribe.assert_called_once_with("robocar/records", 2)

    def test_refused_connack_does_not_subscribe(self, mock_client):
        bus = MqttBus("tcp://127.0.0.1:1883", client_id="rc")
        bus.subscribe("robocar/records", Mock())

        connack(bus, mock_client, failure=True)

        mock_client.subscribe.assert_not_called()

    def test_unsubscribe(self, mock_client):
        bus = MqttBus("tcp://127.0.0.1:1883", client_id="rc")
        connack(bus, mock_client)
        bus.subscribe("robocar/records", Mock())

        bus.unsubscribe("robocar/records")

        mock_client.message_callback_remove.assert_called_once_with("robocar/records")
        mock_client.unsubscribe.assert_called_once_with("robocar/records")
        connack(bus, mock_client)
        assert mock_client.subscribe.call_count == 1

    def test_disconnect(self, mock_client):
        bus = MqttBus("tcp://127.0.0.1:1883", client_id="rc")

        bus.disconnect()

        mock_client.disconnect.assert_called_once()
        mock_client.loop_stop.assert_called_once()

    def test_subscription_added_during_replay(self, mock_client):
        bus = MqttBus("tcp://127.0.0.1:1883", client_id="rc")
        bus.subscribe("robocar/records", Mock())

        def subscribe(topic, qos):
            # another thread subscribing while the connack callback replays
            bus._subscriptions["robocar/late"] = 0
            return mqtt.MQTT_ERR_SUCCESS, 1

        mock_client.subscribe.side_effect = subscribe

        connack(bus, mock_client)

        mock_client.subscribe.assert_called_once_with("robocar/records", 0)
        assert bus._connected.is_set()
