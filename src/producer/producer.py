"""
Pulsar Producer for the companion CLI

This module creates a batching producer on a fully-qualified topic and sends
text payloads with a partition key.
"""

from typing import Optional

import pulsar
from pulsar.exceptions import AuthenticationError, ConnectError, PulsarException

from src.config.settings import Settings
from src.utils.errors import BrokerConnectionError, OperationError
from src.utils.logging_config import get_logger

logger = get_logger(__name__)

COMPRESSION_TYPES = {
    "NONE": pulsar.CompressionType.NONE,
    "LZ4": pulsar.CompressionType.LZ4,
    "ZLIB": pulsar.CompressionType.ZLib,
    "ZSTD": pulsar.CompressionType.ZSTD,
    "SNAPPY": pulsar.CompressionType.SNAPPY,
}


class MessageProducer:
    """
    Pulsar producer wrapper

    Features:
    - Batching enabled
    - Fixed send timeout from settings
    - Partition key on every message (ordering per key)
    """

    def __init__(self, client: pulsar.Client, settings: Settings):
        self.client = client
        self.settings = settings
        self.producer: Optional[pulsar.Producer] = None
        self.topic: Optional[str] = None

    def create(self, topic_name: str, compression: Optional[str] = None):
        """
        Create the underlying producer

        Args:
            topic_name: Full topic name (persistent://tenant/ns/topic)
            compression: One of NONE, LZ4, ZLIB, ZSTD, SNAPPY

        Raises:
            BrokerConnectionError: If the broker cannot be reached
            OperationError: If the broker refuses to create the producer
        """
        compression = (compression or self.settings.default_compression).upper()
        try:
            self.producer = self.client.create_producer(
                topic_name,
                batching_enabled=True,
                send_timeout_millis=self.settings.send_timeout_ms,
                compression_type=COMPRESSION_TYPES[compression],
            )
        except (ConnectError, AuthenticationError) as e:
            logger.error("Failed to connect while creating producer", topic=topic_name, error=str(e))
            raise BrokerConnectionError(f"Cannot connect to broker: {e}") from e
        except PulsarException as e:
            logger.error("Failed to create producer", topic=topic_name, error=str(e))
            raise OperationError(f"Failed to create producer on {topic_name}: {e}") from e

        self.topic = topic_name
        logger.info(
            "Producer successfully created",
            topic=topic_name.split("/")[-1],
            compression=compression,
        )

    def send_message(self, message: str, key: str):
        """
        Send a text message

        Args:
            message: Message payload, sent UTF-8 encoded
            key: Partition key

        Returns:
            Broker message id of the sent message
        """
        if self.producer is None:
            raise OperationError("Producer not initialized. Call create() first.")

        try:
            message_id = self.producer.send(message.encode("utf-8"), partition_key=key)
        except PulsarException as e:
            logger.error("Failed to send message", key=key, error=str(e))
            raise OperationError(f"Failed to send message: {e}") from e

        logger.info(f"Message sent: {message} (key: {key})", message_id=str(message_id))
        return message_id

    def close(self):
        """Flush and close the producer"""
        if self.producer is not None:
            self.producer.flush()
            self.producer.close()
            self.producer = None
            logger.info("Producer closed")
