from unittest.mock import MagicMock

import pulsar
import pytest
from pulsar.exceptions import AuthenticationError, PulsarException

from src.config.settings import Settings
from src.producer.producer import MessageProducer
from src.utils.errors import BrokerConnectionError, OperationError

TOPIC = "persistent://tenant/ns/orders"


class TestMessageProducer:
    def setup_method(self):
        self.client = MagicMock()
        self.producer = MessageProducer(self.client, Settings())

    def test_create_uses_batching_and_compression(self):
        self.producer.create(TOPIC, "zlib")

        args, kwargs = self.client.create_producer.call_args
        assert args == (TOPIC,)
        assert kwargs["batching_enabled"] is True
        assert kwargs["send_timeout_millis"] == 30000
        assert kwargs["compression_type"] == pulsar.CompressionType.ZLib

    def test_default_compression(self):
        self.producer.create(TOPIC)
        assert self.client.create_producer.call_args[1]["compression_type"] == pulsar.CompressionType.NONE

    def test_send_encodes_payload_with_key(self):
        self.producer.create(TOPIC)
        self.producer.send_message("héllo", "k1")

        handle = self.client.create_producer.return_value
        handle.send.assert_called_once_with("héllo".encode("utf-8"), partition_key="k1")

    def test_send_before_create(self):
        with pytest.raises(OperationError, match="not initialized"):
            self.producer.send_message("x", "k")

    def test_auth_failure_is_connection_error(self):
        self.client.create_producer.side_effect = AuthenticationError("bad token")
        with pytest.raises(BrokerConnectionError):
            self.producer.create(TOPIC)

    def test_create_failure_is_operation_error(self):
        self.client.create_producer.side_effect = PulsarException("topic not found")
        with pytest.raises(OperationError):
            self.producer.create(TOPIC)

    def test_close_flushes_once(self):
        self.producer.create(TOPIC)
        handle = self.client.create_producer.return_value
        self.producer.close()
        self.producer.close()
        handle.flush.assert_called_once()
        handle.close.assert_called_once()
