"""
Pulsar Consumer for the companion CLI

This module handles tailing a topic either through a durable subscription
(messages are acknowledged after they are logged, so a crash before the ack
means redelivery) or through a positional reader (no subscription, no acks).
"""

import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Union

import pulsar
from pulsar.exceptions import AuthenticationError, ConnectError, PulsarException, Timeout

from src.config.settings import Settings
from src.utils.errors import BrokerConnectionError, OperationError
from src.utils.logging_config import get_logger

logger = get_logger(__name__)

INITIAL_POSITIONS = {
    "earliest": pulsar.InitialPosition.Earliest,
    "latest": pulsar.InitialPosition.Latest,
}


def now_ms() -> int:
    return int(time.time() * 1000)


def iso_timestamp(ms: int) -> str:
    moment = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class ReceivedMessage:
    """Read-only view of a message handed over by the broker client."""

    message_id: str
    publish_timestamp: int
    data: bytes
    partition_key: Optional[str] = None

    @classmethod
    def from_pulsar(cls, msg) -> "ReceivedMessage":
        return cls(
            message_id=str(msg.message_id()),
            publish_timestamp=msg.publish_timestamp(),
            data=msg.data(),
            partition_key=msg.partition_key() or None,
        )

    @property
    def text(self) -> str:
        try:
            return self.data.decode("utf-8")
        except UnicodeDecodeError:
            return f"<Binary Data: {len(self.data)} bytes>"

    @property
    def published_at(self) -> str:
        return iso_timestamp(self.publish_timestamp)


def format_message(message: ReceivedMessage) -> str:
    return f"[{message.published_at}] {message.text} (key: {message.partition_key}, ID: {message.message_id})"


class MessageConsumer:
    """
    Subscription consumer or positional reader over one topic

    Features:
    - Ack after local handling (at-least-once) for subscriptions
    - Observational reads for readers, seeking back to a timestamp
    - Receive timeouts are retried, everything else ends the loop
    - Cooperative stop through a threading.Event
    """

    def __init__(
        self,
        client: pulsar.Client,
        settings: Settings,
        clock: Callable[[], int] = now_ms,
    ):
        self.client = client
        self.settings = settings
        self.clock = clock
        self.consumer = None
        self.is_reader = False

    def create(
        self,
        topic_name: str,
        subscription_name: Optional[str] = None,
        subscription_type: Optional[str] = None,
        read_position: Optional[str] = None,
        since: Optional[Union[str, int]] = None,
    ):
        """Create a reader when ``since`` is given, a subscription otherwise."""
        try:
            if since is not None:
                self.consumer = self.create_reader(topic_name, since)
                self.is_reader = True
            else:
                self.consumer = self.create_subscriber(
                    topic_name,
                    subscription_name or self.settings.default_subscription_name,
                    subscription_type or self.settings.default_subscription_type,
                    read_position or self.settings.default_read_position,
                )
                self.is_reader = False
        except (ConnectError, AuthenticationError) as e:
            logger.error("Failed to connect while creating consumer", topic=topic_name, error=str(e))
            raise BrokerConnectionError(f"Cannot connect to broker: {e}") from e
        except PulsarException as e:
            logger.error("Failed to create consumer", topic=topic_name, error=str(e))
            raise OperationError(f"Failed to create consumer on {topic_name}: {e}") from e

    def create_reader(self, topic_name: str, since: Union[str, int]):
        """
        Create a reader starting at a sentinel or at a past timestamp

        Args:
            topic_name: Full topic name
            since: "earliest", "latest" or epoch milliseconds

        A timestamp in the future is treated as "latest": readers never
        seek forward.
        """
        start = pulsar.MessageId.earliest if since == "earliest" else pulsar.MessageId.latest

        reader = self.client.create_reader(
            topic_name,
            start,
            receiver_queue_size=self.settings.reader_queue_size,
        )

        if isinstance(since, int):
            if since < self.clock():
                try:
                    reader.seek(since)
                except Exception:
                    reader.close()
                    raise
                logger.info("Reader successfully created", starting_from=iso_timestamp(since))
                return reader
            since = "latest"

        logger.info("Reader successfully created", starting_from=since)
        return reader

    def create_subscriber(
        self,
        topic_name: str,
        subscription_name: str,
        subscription_type: str,
        read_position: str,
    ):
        subscriber = self.client.subscribe(
            topic_name,
            subscription_name,
            consumer_type=getattr(pulsar.ConsumerType, subscription_type),
            unacked_messages_timeout_ms=self.settings.ack_timeout_ms,
            initial_position=INITIAL_POSITIONS[read_position],
        )
        logger.info(
            f"Consumer successfully created with subscription {subscription_name} ({subscription_type})"
        )
        return subscriber

    def receive_messages(self, stop_event: Optional[threading.Event] = None):
        """
        Main consumption loop

        Runs until ``stop_event`` is set or an unrecoverable error occurs:
        1. Receives the next message (polling with the receive timeout)
        2. Logs it
        3. Acknowledges it when consuming through a subscription
        """
        if self.consumer is None:
            raise OperationError("Consumer not initialized. Call create() first.")

        if stop_event is None:
            stop_event = threading.Event()
        receive = self.consumer.read_next if self.is_reader else self.consumer.receive
        logger.info("Listening for messages...", reader=self.is_reader)

        while not stop_event.is_set():
            try:
                msg = receive(timeout_millis=self.settings.receive_timeout_ms)
            except Timeout:
                continue
            except PulsarException as e:
                logger.error("Error in consumption loop", error=str(e))
                raise OperationError(f"Failed to receive message: {e}") from e

            try:
                self.handle_message(msg)
            except PulsarException as e:
                logger.error("Failed to acknowledge message", error=str(e))
                raise OperationError(f"Failed to acknowledge message: {e}") from e

        logger.info("Consumption loop stopped")

    def handle_message(self, msg):
        logger.info(format_message(ReceivedMessage.from_pulsar(msg)))

        if not self.is_reader:
            self.consumer.acknowledge(msg)

    def close(self):
        """Close the consumer or reader"""
        if self.consumer is not None:
            self.consumer.close()
            self.consumer = None
            logger.info("Reader closed" if self.is_reader else "Consumer closed")
