"""
Command-line validation for the companion and its load generator.

Validation runs entirely before any broker resource is created. Checks run
in a fixed order and stop at the first failure:

1. ``--help`` / ``--version`` print and exit with status 0
2. conflicting mode flags (``--send`` with ``--since``)
3. required flags of the resolved mode
4. flags not allowed in the resolved mode
5. flags given without a value
6. value checks (threads, compression, since, subscription type)
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from src.cli.arguments import (
    MODE_SPECS,
    SINCE_SENTINELS,
    STRESS_SPEC,
    VALID_COMPRESSION_TYPES,
    VALID_SUBSCRIPTION_TYPES,
    VALUELESS_FLAGS,
    Mode,
    ModeSpec,
    ParsedArguments,
)
from src.cli.help import MAIN_HELP, STRESS_HELP, version_string
from src.config.settings import Settings
from src.utils.errors import (
    ConflictingFlags,
    FlagNotAllowedInMode,
    InvalidCompressionType,
    InvalidCount,
    InvalidDelay,
    InvalidSinceValue,
    InvalidSubscriptionType,
    InvalidThreadCount,
    MissingFlagValue,
    MissingRequiredFlag,
)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

SinceValue = Union[str, int]


@dataclass(frozen=True)
class CommandOptions:
    """Normalized options of one companion invocation."""

    mode: Mode
    topic: str
    threads: int
    compression: str
    key: str
    message: Optional[str] = None
    since: Optional[SinceValue] = None
    subscription_name: Optional[str] = None
    subscription_type: Optional[str] = None
    read_position: Optional[str] = None


@dataclass(frozen=True)
class StressOptions:
    topic: str
    count: int
    delay_ms: int


def parse_timestamp_ms(value: str) -> int:
    """Parse an ISO 8601 timestamp into epoch milliseconds (naive means UTC)."""
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - EPOCH) // timedelta(milliseconds=1)


def parse_since(value: str) -> SinceValue:
    if value.lower() in SINCE_SENTINELS:
        return value.lower()
    try:
        return parse_timestamp_ms(value)
    except ValueError as e:
        raise InvalidSinceValue(value) from e


def _handle_info_flags(parsed: ParsedArguments, help_text: str) -> None:
    if parsed.has("help"):
        print(help_text)
        sys.exit(0)
    if parsed.has("version"):
        print(version_string())
        sys.exit(0)


def _check_presence(parsed: ParsedArguments, spec: ModeSpec, mode_name: str) -> None:
    for flag in sorted(spec.required):
        if not parsed.has(flag):
            raise MissingRequiredFlag(flag, mode_name)

    for flag in parsed.present():
        if flag not in spec.allowed:
            raise FlagNotAllowedInMode(flag, mode_name)

    for flag in parsed.present():
        if flag not in VALUELESS_FLAGS and not parsed.value(flag):
            raise MissingFlagValue(flag)


def _positive_int(value: str, minimum: int) -> Optional[int]:
    try:
        number = int(value)
    except ValueError:
        return None
    return number if number >= minimum else None


def validate(parsed: ParsedArguments, mode: Mode, settings: Settings) -> CommandOptions:
    """Validate ``parsed`` against ``mode`` and return the normalized options."""
    _handle_info_flags(parsed, MAIN_HELP)

    if parsed.has("send") and parsed.has("since"):
        raise ConflictingFlags("send", "since", mode.value)

    _check_presence(parsed, MODE_SPECS[mode], mode.value)

    threads = settings.default_threads
    raw_threads = parsed.value("threads")
    if raw_threads is not None:
        threads = _positive_int(raw_threads, 1)
        if threads is None:
            raise InvalidThreadCount(raw_threads)

    compression = (parsed.value("compression") or settings.default_compression).upper()
    if compression not in VALID_COMPRESSION_TYPES:
        raise InvalidCompressionType(parsed.value("compression") or compression, VALID_COMPRESSION_TYPES)

    since = None
    raw_since = parsed.value("since")
    if raw_since is not None:
        since = parse_since(raw_since)

    requested_type = parsed.value("type")
    if requested_type is not None and requested_type not in VALID_SUBSCRIPTION_TYPES:
        raise InvalidSubscriptionType(requested_type, VALID_SUBSCRIPTION_TYPES)

    subscription_name = subscription_type = read_position = None
    if mode is Mode.CONSUME:
        subscription_name = parsed.value("subscription") or settings.default_subscription_name
        subscription_type = parsed.subscription_type(settings.default_subscription_type)
        read_position = settings.default_read_position

    return CommandOptions(
        mode=mode,
        topic=parsed.value("topic") or settings.default_topic,
        threads=threads,
        compression=compression,
        key=parsed.value("key") or settings.default_key,
        message=parsed.value("send"),
        since=since,
        subscription_name=subscription_name,
        subscription_type=subscription_type,
        read_position=read_position,
    )


def validate_stress(parsed: ParsedArguments, settings: Settings) -> StressOptions:
    """Validate load generator flags."""
    _handle_info_flags(parsed, STRESS_HELP)
    _check_presence(parsed, STRESS_SPEC, "STRESS")

    count = settings.stress_default_count
    raw_count = parsed.value("count")
    if raw_count is not None:
        count = _positive_int(raw_count, 1)
        if count is None:
            raise InvalidCount(raw_count)

    delay_ms = settings.stress_default_delay_ms
    raw_delay = parsed.value("delay")
    if raw_delay is not None:
        delay_ms = _positive_int(raw_delay, 0)
        if delay_ms is None:
            raise InvalidDelay(raw_delay)

    return StressOptions(
        topic=parsed.value("topic") or settings.default_topic,
        count=count,
        delay_ms=delay_ms,
    )
