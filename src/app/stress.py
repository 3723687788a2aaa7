"""Load generator: sends a fixed number of keyed test messages to one topic."""

import sys
import time
from typing import Callable, Optional, Sequence

from src.app.manager import PulsarManager
from src.cli.arguments import STRESS_FLAGS, ParsedArguments
from src.cli.validation import StressOptions, validate_stress
from src.config.settings import Settings
from src.config.user_config import UserConfigStore
from src.utils.errors import CompanionError
from src.utils.logging_config import get_logger, setup_logging

logger = get_logger(__name__)

PROGRESS_EVERY = 10
KEY_SPREAD = 5


def generate_load(
    manager: PulsarManager,
    options: StressOptions,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Send ``options.count`` messages and return how many were sent."""
    manager.connect()
    manager.create_producer(topic=options.topic)

    for i in range(1, options.count + 1):
        manager.send_message(f"Test message #{i}", f"key-{i % KEY_SPREAD}")

        if i % PROGRESS_EVERY == 0:
            logger.info(f"Progress: {i}/{options.count} messages sent")

        if options.delay_ms > 0:
            sleep(options.delay_ms / 1000)

    return options.count


def run(
    argv: Sequence[str],
    settings: Optional[Settings] = None,
    manager: Optional[PulsarManager] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    settings = settings or Settings()
    setup_logging(settings.log_level, component="pulsar-companion-stress", json_logs=settings.json_logs)

    parsed = ParsedArguments(argv, STRESS_FLAGS)
    try:
        options = validate_stress(parsed, settings)
    except CompanionError as e:
        logger.error(f"Error during test: {e}")
        return 1

    logger.info(f"Starting to send {options.count} messages to topic {options.topic}")
    logger.info(f"Delay between messages: {options.delay_ms}ms")

    manager = manager or PulsarManager(settings, UserConfigStore(settings.config_path))
    try:
        generate_load(manager, options, sleep)
    except CompanionError as e:
        logger.error(f"Error during test: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Test interrupted by user")
        return 1
    finally:
        manager.cleanup()

    logger.info("Test completed successfully!")
    return 0


def main():
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
