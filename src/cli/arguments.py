"""Raw argv scanning and mode resolution.

Flags are located by position rather than parsed positionally: a flag is
present iff one of its spellings occurs in argv, and its value is the token
right after it. Unrecognized tokens are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from src.utils.logging_config import get_logger

logger = get_logger(__name__)

VALID_COMPRESSION_TYPES: Tuple[str, ...] = ("NONE", "LZ4", "ZLIB", "ZSTD", "SNAPPY")
VALID_SUBSCRIPTION_TYPES: Tuple[str, ...] = ("Exclusive", "Failover", "Shared", "KeyShared")
SINCE_SENTINELS: Tuple[str, ...] = ("earliest", "latest")

# Flags that never take a value
VALUELESS_FLAGS = frozenset({"help", "version"})

MAIN_FLAGS: Mapping[str, Tuple[str, ...]] = {
    "compression": ("--compression", "-c"),
    "help": ("--help", "-h"),
    "key": ("--key",),
    "send": ("--send",),
    "since": ("--since",),
    "subscription": ("--sub", "-s"),
    "threads": ("--threads", "-t"),
    "topic": ("--topic",),
    "type": ("--type",),
    "version": ("--version", "-v"),
}

STRESS_FLAGS: Mapping[str, Tuple[str, ...]] = {
    "count": ("--count",),
    "delay": ("--delay",),
    "help": ("--help", "-h"),
    "topic": ("--topic",),
    "version": ("--version", "-v"),
}


class Mode(Enum):
    SEND = "PRODUCER"
    CONSUME = "CONSUMER"
    READ_SINCE = "READER"


@dataclass(frozen=True)
class ModeSpec:
    required: frozenset
    optional: frozenset

    @property
    def allowed(self) -> frozenset:
        return self.required | self.optional | VALUELESS_FLAGS


MODE_SPECS: Mapping[Mode, ModeSpec] = {
    Mode.SEND: ModeSpec(
        required=frozenset({"send"}),
        optional=frozenset({"compression", "key", "threads", "topic"}),
    ),
    Mode.CONSUME: ModeSpec(
        required=frozenset(),
        optional=frozenset({"subscription", "topic", "type"}),
    ),
    Mode.READ_SINCE: ModeSpec(
        required=frozenset({"since"}),
        optional=frozenset({"topic"}),
    ),
}

STRESS_SPEC = ModeSpec(required=frozenset(), optional=frozenset({"count", "delay", "topic"}))


def _locate(args: Sequence[str], spellings: Sequence[str]) -> int:
    # Later spelling wins when both are given, e.g. "-c LZ4 --compression ZSTD"
    positions = [args.index(s) for s in spellings if s in args]
    return max(positions) if positions else -1


class ParsedArguments:
    """Recognized flags of one invocation, located by index in argv."""

    def __init__(self, args: Sequence[str], flags: Mapping[str, Tuple[str, ...]] = MAIN_FLAGS):
        self.args: List[str] = list(args)
        self.positions: Dict[str, int] = {
            name: _locate(self.args, spellings) for name, spellings in flags.items()
        }

    def has(self, flag: str) -> bool:
        return self.positions.get(flag, -1) != -1

    def value(self, flag: str) -> Optional[str]:
        """Return the stripped token after ``flag``, or None when absent or last."""
        index = self.positions.get(flag, -1)
        if index == -1 or index + 1 >= len(self.args):
            return None
        return self.args[index + 1].strip()

    def present(self) -> List[str]:
        return [name for name, index in self.positions.items() if index != -1]

    def subscription_type(self, default: str) -> str:
        """Subscription type to request; a ``--key`` forces KeyShared."""
        if self.has("key"):
            logger.warning(
                "Key specified, automatically switching to KeyShared mode",
                requested=self.value("type"),
            )
            return "KeyShared"
        return self.value("type") or default

    def __repr__(self) -> str:
        return f"ParsedArguments({self.present()!r})"


def resolve_mode(parsed: ParsedArguments) -> Mode:
    if parsed.has("send"):
        return Mode.SEND
    if parsed.has("since"):
        return Mode.READ_SINCE
    return Mode.CONSUME
