"""
Pulsar Companion entry point.

One invocation performs one operation: send a message, tail a subscription,
or read from a position without subscribing. Validation happens before any
broker resource is created; everything created is cleaned up on every exit
path.

SIGINT/SIGTERM stop the consumption loop gracefully. Outside the loop they
keep their default behavior and interrupt the process.
"""

import signal
import sys
import threading
from contextlib import contextmanager
from typing import Optional, Sequence

from src.app.manager import PulsarManager
from src.cli.arguments import MAIN_FLAGS, Mode, ParsedArguments, resolve_mode
from src.cli.validation import CommandOptions, validate
from src.config.settings import Settings
from src.config.user_config import UserConfigStore
from src.utils.errors import CompanionError
from src.utils.logging_config import get_logger, setup_logging

logger = get_logger(__name__)

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@contextmanager
def graceful_stop(stop_event: threading.Event):
    """
    Route SIGINT/SIGTERM to ``stop_event`` for the duration of the block.

    A second signal while stopping raises KeyboardInterrupt. The previous
    handlers are restored on exit.
    """

    def _handler(signum, frame):
        if stop_event.is_set():
            raise KeyboardInterrupt
        logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        stop_event.set()

    previous = {signum: signal.getsignal(signum) for signum in STOP_SIGNALS}
    for signum in STOP_SIGNALS:
        signal.signal(signum, _handler)
    try:
        yield stop_event
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def consume(manager: PulsarManager, stop_event: threading.Event):
    with graceful_stop(stop_event):
        manager.receive_messages(stop_event)


def execute(
    manager: PulsarManager,
    options: CommandOptions,
    stop_event: Optional[threading.Event] = None,
):
    if stop_event is None:
        stop_event = threading.Event()

    manager.connect(options.threads)

    if options.mode is Mode.SEND:
        manager.create_producer(options.compression, topic=options.topic)
        manager.send_message(options.message, options.key)
        logger.info("Message sent successfully")
    elif options.mode is Mode.READ_SINCE:
        manager.create_consumer(None, since=options.since, topic=options.topic)
        consume(manager, stop_event)
    elif options.mode is Mode.CONSUME:
        manager.create_consumer(
            options.subscription_type,
            options.read_position,
            topic=options.topic,
            subscription_name=options.subscription_name,
        )
        consume(manager, stop_event)
    else:
        raise ValueError(f"Unhandled mode: {options.mode}")


def run(
    argv: Sequence[str],
    settings: Optional[Settings] = None,
    manager: Optional[PulsarManager] = None,
    stop_event: Optional[threading.Event] = None,
) -> int:
    """Run one companion invocation and return the process exit status."""
    settings = settings or Settings()
    setup_logging(settings.log_level, component="pulsar-companion", json_logs=settings.json_logs)

    parsed = ParsedArguments(argv, MAIN_FLAGS)
    mode = resolve_mode(parsed)
    try:
        options = validate(parsed, mode, settings)
    except CompanionError as e:
        logger.error(f"[Error] {e}")
        return 1

    manager = manager or PulsarManager(settings, UserConfigStore(settings.config_path))
    try:
        execute(manager, options, stop_event)
    except CompanionError as e:
        logger.error(f"[Error] {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 1
    finally:
        manager.cleanup()
    return 0


def main():
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
