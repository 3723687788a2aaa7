"""Tests for the CLI entry points with a mocked session."""

import signal
import threading
from unittest.mock import MagicMock

import pytest

from src.app import main as companion
from src.app import stress
from src.app.manager import PulsarManager
from src.config.settings import Settings
from src.utils.errors import BrokerConnectionError, OperationError


@pytest.fixture
def settings(tmp_path):
    return Settings(config_path=tmp_path / "config.json")


@pytest.fixture
def manager():
    return MagicMock(spec=PulsarManager)


def test_send(settings, manager):
    code = companion.run(["--send", "hi", "--key", "k1", "-c", "zstd", "--topic", "orders"], settings, manager)

    assert code == 0
    manager.connect.assert_called_once_with(1)
    manager.create_producer.assert_called_once_with("ZSTD", topic="orders")
    manager.send_message.assert_called_once_with("hi", "k1")
    manager.cleanup.assert_called_once()


def test_consume(settings, manager):
    stop = threading.Event()
    code = companion.run(["--type", "Failover", "-s", "audit"], settings, manager, stop)

    assert code == 0
    manager.create_consumer.assert_called_once_with(
        "Failover", "latest", topic="pulsar_companion", subscription_name="audit"
    )
    manager.receive_messages.assert_called_once_with(stop)
    manager.cleanup.assert_called_once()


def test_read_since(settings, manager):
    code = companion.run(["--since", "earliest", "--topic", "orders"], settings, manager)

    assert code == 0
    manager.create_consumer.assert_called_once_with(None, since="earliest", topic="orders")


def test_validation_error_creates_nothing(settings, manager):
    assert companion.run(["--send", "hi", "--threads", "0"], settings, manager) == 1
    manager.connect.assert_not_called()
    manager.cleanup.assert_not_called()


def test_operational_error_cleans_up(settings, manager):
    manager.connect.side_effect = BrokerConnectionError("unreachable")

    assert companion.run(["--send", "hi"], settings, manager) == 1
    manager.cleanup.assert_called_once()


def test_help_exits_zero(settings, manager):
    with pytest.raises(SystemExit) as exc:
        companion.run(["-h"], settings, manager)
    assert exc.value.code == 0


def test_stop_signals_routed_only_while_consuming(settings, manager):
    original = signal.getsignal(signal.SIGINT)
    seen = {}

    def connect(threads):
        seen["connect"] = signal.getsignal(signal.SIGINT)

    def receive(stop_event):
        handler = signal.getsignal(signal.SIGINT)
        seen["receive"] = handler
        handler(signal.SIGINT, None)
        seen["stopped"] = stop_event.is_set()

    manager.connect.side_effect = connect
    manager.receive_messages.side_effect = receive

    assert companion.run(["--since", "latest"], settings, manager) == 0
    assert seen["connect"] == original
    assert seen["receive"] != original
    assert seen["stopped"]
    assert signal.getsignal(signal.SIGINT) == original


def test_second_signal_interrupts_consumption(settings, manager):
    def receive(stop_event):
        handler = signal.getsignal(signal.SIGTERM)
        handler(signal.SIGTERM, None)
        handler(signal.SIGTERM, None)

    manager.receive_messages.side_effect = receive
    original = signal.getsignal(signal.SIGTERM)

    assert companion.run([], settings, manager) == 1
    manager.cleanup.assert_called_once()
    assert signal.getsignal(signal.SIGTERM) == original


def test_interrupt_outside_loop_exits_non_zero(settings, manager):
    manager.send_message.side_effect = KeyboardInterrupt

    assert companion.run(["--send", "hi"], settings, manager) == 1
    manager.cleanup.assert_called_once()


def test_graceful_stop_restores_handlers():
    original = signal.getsignal(signal.SIGTERM)
    stop = threading.Event()

    with companion.graceful_stop(stop):
        signal.getsignal(signal.SIGTERM)(signal.SIGTERM, None)

    assert stop.is_set()
    assert signal.getsignal(signal.SIGTERM) == original


class TestStress:
    def setup_method(self):
        self.manager = MagicMock(spec=PulsarManager)
        self.sleep = MagicMock()

    def test_sends_keyed_messages(self):
        code = stress.run(["--count", "25", "--delay", "0"], Settings(), self.manager, self.sleep)

        assert code == 0
        assert self.manager.send_message.call_count == 25
        first = self.manager.send_message.call_args_list[0]
        last = self.manager.send_message.call_args_list[-1]
        assert first.args == ("Test message #1", "key-1")
        assert last.args == ("Test message #25", "key-0")
        self.sleep.assert_not_called()
        self.manager.create_producer.assert_called_once_with(topic="pulsar_companion")
        self.manager.cleanup.assert_called_once()

    def test_delay_between_messages(self):
        stress.run(["--count", "3", "--delay", "5"], Settings(), self.manager, self.sleep)
        assert self.sleep.call_count == 3
        self.sleep.assert_called_with(0.005)

    def test_send_failure(self):
        self.manager.send_message.side_effect = OperationError("send timeout")

        assert stress.run(["--count", "3"], Settings(), self.manager, self.sleep) == 1
        assert self.manager.send_message.call_count == 1
        self.manager.cleanup.assert_called_once()

    def test_invalid_count(self):
        assert stress.run(["--count", "x"], Settings(), self.manager, self.sleep) == 1
        self.manager.connect.assert_not_called()


def test_stress_interrupt_exits_non_zero():
    manager = MagicMock(spec=PulsarManager)
    manager.send_message.side_effect = KeyboardInterrupt

    assert stress.run(["--count", "2"], Settings(), manager, MagicMock()) == 1
    manager.cleanup.assert_called_once()
