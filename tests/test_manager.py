"""Tests for session orchestration: topic naming, connect and cleanup."""

import json
from unittest.mock import MagicMock

import pytest

from src.app.manager import PulsarManager
from src.config.settings import Settings
from src.config.user_config import UserConfigStore
from src.utils.errors import BrokerConnectionError, OperationError


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "serviceUrl": "pulsar://localhost:6650",
        "token": "tok",
        "namespace": "tenant/ns",
    }))
    return path


@pytest.fixture
def factory():
    return MagicMock()


@pytest.fixture
def manager(config_path, factory):
    return PulsarManager(Settings(config_path=config_path), UserConfigStore(config_path), client_factory=factory)


def test_topic_name(manager):
    assert manager.topic_name("orders") == "persistent://tenant/ns/orders"
    assert manager.topic_name() == "persistent://tenant/ns/pulsar_companion"


def test_user_config_loaded_once(config_path, factory):
    store = MagicMock(wraps=UserConfigStore(config_path))
    manager = PulsarManager(Settings(), store, client_factory=factory)
    manager.topic_name("a")
    manager.connect()
    manager.topic_name("b")
    assert store.load.call_count == 1


def test_connect_passes_io_threads(manager, factory):
    manager.connect(4)

    args, kwargs = factory.call_args
    assert args == ("pulsar://localhost:6650",)
    assert kwargs["io_threads"] == 4
    assert kwargs["operation_timeout_seconds"] == 30


def test_connect_defaults_to_one_thread(manager, factory):
    manager.connect()
    assert factory.call_args[1]["io_threads"] == 1


def test_connect_failure(manager, factory):
    factory.side_effect = ValueError("invalid service url")
    with pytest.raises(BrokerConnectionError):
        manager.connect()
    assert manager.cleanup() == []


def test_create_before_connect(manager):
    with pytest.raises(OperationError):
        manager.create_producer()


def test_send_uses_default_key(manager, factory):
    manager.connect()
    manager.create_producer("LZ4", topic="orders")
    manager.send_message("hello")

    client = factory.return_value
    assert client.create_producer.call_args[0][0] == "persistent://tenant/ns/orders"
    client.create_producer.return_value.send.assert_called_once_with(b"hello", partition_key="default")


def test_only_one_handle_per_session(manager):
    manager.connect()
    manager.create_producer()
    with pytest.raises(OperationError):
        manager.create_consumer("Exclusive")


def test_create_consumer_branches_on_since(manager, factory):
    manager.connect()
    manager.create_consumer(None, since="earliest", topic="orders")

    client = factory.return_value
    client.create_reader.assert_called_once()
    client.subscribe.assert_not_called()


def test_cleanup_without_resources_is_noop(manager):
    assert manager.cleanup() == []
    assert manager.cleanup() == []


def test_cleanup_closes_in_reverse_order(manager, factory):
    order = []
    client = factory.return_value
    client.close.side_effect = lambda: order.append("client")
    client.subscribe.return_value.close.side_effect = lambda: order.append("consumer")

    manager.connect()
    manager.create_consumer("Shared", "latest")
    assert manager.cleanup() == []
    assert order == ["consumer", "client"]
    assert manager.client is None


def test_cleanup_continues_after_close_failure(manager, factory):
    client = factory.return_value
    failure = RuntimeError("flush failed")
    client.create_producer.return_value.flush.side_effect = failure

    manager.connect()
    manager.create_producer()
    errors = manager.cleanup()

    assert errors == [failure]
    client.close.assert_called_once()
    assert manager.cleanup() == []
