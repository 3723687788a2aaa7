"""
Session orchestration for one companion run.

A ``PulsarManager`` owns the single broker client of the process plus at most
one producer or consumer/reader. It sequences connect -> create -> operate and
releases everything it acquired in reverse order on ``cleanup()``.
"""

from __future__ import annotations

import threading
from typing import Callable, List, Optional, Tuple, Union

import pulsar
from pulsar.exceptions import PulsarException

from src.config.settings import Settings
from src.config.user_config import ConnectionConfig, UserConfigStore
from src.consumer.consumer import MessageConsumer, now_ms
from src.producer.producer import MessageProducer
from src.utils.errors import BrokerConnectionError, OperationError
from src.utils.logging_config import get_logger

logger = get_logger(__name__)


class PulsarManager:
    """Owns the broker client and the producer or consumer built on it."""

    def __init__(
        self,
        settings: Settings,
        config_store: UserConfigStore,
        client_factory: Callable[..., pulsar.Client] = pulsar.Client,
        clock: Callable[[], int] = now_ms,
    ):
        self.settings = settings
        self.config_store = config_store
        self.client_factory = client_factory
        self.clock = clock
        self.client: Optional[pulsar.Client] = None
        self.producer: Optional[MessageProducer] = None
        self.consumer: Optional[MessageConsumer] = None
        self._user_config: Optional[ConnectionConfig] = None
        # (name, close) pairs in acquisition order
        self._resources: List[Tuple[str, Callable[[], None]]] = []

    @property
    def user_config(self) -> ConnectionConfig:
        if self._user_config is None:
            self._user_config = self.config_store.load()
        return self._user_config

    def topic_name(self, suffix: Optional[str] = None) -> str:
        return f"{self.user_config.namespace}{suffix or self.settings.default_topic}"

    def connect(self, io_threads: Optional[int] = None):
        """Create the broker client. Pulsar connects lazily on first use."""
        if self.client is not None:
            raise OperationError("Already connected")

        config = self.user_config
        try:
            self.client = self.client_factory(
                config.service_url,
                authentication=pulsar.AuthenticationToken(config.token),
                operation_timeout_seconds=self.settings.operation_timeout_seconds,
                io_threads=io_threads or self.settings.default_threads,
            )
        except (PulsarException, ValueError) as e:
            logger.error("Failed to create Pulsar client", service_url=config.service_url, error=str(e))
            raise BrokerConnectionError(f"Cannot connect to {config.service_url}: {e}") from e

        self._resources.append(("client", self.client.close))
        logger.info("Attempting to connect to Pulsar broker...", service_url=config.service_url)

    def _require_client(self) -> pulsar.Client:
        if self.client is None:
            raise OperationError("Not connected. Call connect() first.")
        if self.producer is not None or self.consumer is not None:
            raise OperationError("A producer or consumer was already created for this session")
        return self.client

    def create_producer(self, compression: Optional[str] = None, topic: Optional[str] = None):
        client = self._require_client()
        producer = MessageProducer(client, self.settings)
        producer.create(self.topic_name(topic), compression)
        self.producer = producer
        self._resources.append(("producer", producer.close))

    def create_consumer(
        self,
        subscription_type: Optional[str],
        read_position: Optional[str] = None,
        since: Optional[Union[str, int]] = None,
        topic: Optional[str] = None,
        subscription_name: Optional[str] = None,
    ):
        """Create a positional reader when ``since`` is set, a subscription otherwise."""
        client = self._require_client()
        consumer = MessageConsumer(client, self.settings, clock=self.clock)
        consumer.create(
            self.topic_name(topic),
            subscription_name=subscription_name,
            subscription_type=subscription_type,
            read_position=read_position,
            since=since,
        )
        self.consumer = consumer
        self._resources.append(("consumer", consumer.close))

    def send_message(self, message: str, key: Optional[str] = None):
        if self.producer is None:
            raise OperationError("Producer not initialized. Call create_producer() first.")
        return self.producer.send_message(message, key or self.settings.default_key)

    def receive_messages(self, stop_event: Optional[threading.Event] = None):
        if self.consumer is None:
            raise OperationError("Consumer not initialized. Call create_consumer() first.")
        self.consumer.receive_messages(stop_event)

    def cleanup(self) -> List[Exception]:
        """
        Close everything acquired so far, newest first.

        Every close is attempted even when an earlier one fails. Close errors
        are logged and returned, never raised, so they cannot mask the error
        that ended the run.
        """
        errors: List[Exception] = []
        while self._resources:
            name, close = self._resources.pop()
            try:
                close()
                if name == "client":
                    logger.info("Client closed")
            except Exception as e:
                logger.error("Error while closing resource", resource=name, error=str(e))
                errors.append(e)

        self.producer = None
        self.consumer = None
        self.client = None
        return errors
