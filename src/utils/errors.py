"""Error taxonomy for the companion CLI.

Every error raised by the CLI derives from ``CompanionError`` so the entry
points can report it and exit non-zero. Broker timeouts during receive are
not part of this hierarchy: the consumption loop absorbs them.
"""

from __future__ import annotations


class CompanionError(Exception):
    """Base class for all errors surfaced to the operator."""


class ConfigurationError(CompanionError):
    """Persisted user configuration is missing fields or cannot be read/written."""


class ValidationError(CompanionError):
    """Command-line flags are missing, forbidden or carry bad values."""


class MissingRequiredFlag(ValidationError):
    def __init__(self, flag: str, mode: str):
        super().__init__(f"Missing required parameter --{flag} for {mode} mode")
        self.flag = flag
        self.mode = mode


class FlagNotAllowedInMode(ValidationError):
    def __init__(self, flag: str, mode: str, message: str | None = None):
        super().__init__(message or f"Parameter --{flag} cannot be used in {mode} mode")
        self.flag = flag
        self.mode = mode


class ConflictingFlags(FlagNotAllowedInMode):
    def __init__(self, first: str, second: str, mode: str):
        super().__init__(
            second,
            mode,
            f"Parameters --{first} and --{second} cannot be combined",
        )
        self.first = first


class MissingFlagValue(ValidationError):
    def __init__(self, flag: str):
        super().__init__(f"Missing value for parameter --{flag}")
        self.flag = flag


class InvalidThreadCount(ValidationError):
    def __init__(self, value: str):
        super().__init__(f"Number of threads must be a positive integer, got: {value}")
        self.value = value


class InvalidCompressionType(ValidationError):
    def __init__(self, value: str, valid: tuple[str, ...]):
        super().__init__(
            f"Invalid compression type: {value}\nValid types: {', '.join(valid)}"
        )
        self.value = value


class InvalidSinceValue(ValidationError):
    def __init__(self, value: str):
        super().__init__(
            f"Invalid value for --since: {value}\n"
            'Valid values: earliest, latest, or ISO 8601 timestamp (e.g., "2024-01-20T10:00:00Z")'
        )
        self.value = value


class InvalidSubscriptionType(ValidationError):
    def __init__(self, value: str, valid: tuple[str, ...]):
        super().__init__(
            f"Invalid subscription type: {value}\nValid types: {', '.join(valid)}"
        )
        self.value = value


class InvalidCount(ValidationError):
    def __init__(self, value: str):
        super().__init__(f"Message count must be a positive integer, got: {value}")
        self.value = value


class InvalidDelay(ValidationError):
    def __init__(self, value: str):
        super().__init__(f"Delay must be a non-negative integer (ms), got: {value}")
        self.value = value


class BrokerConnectionError(CompanionError):
    """The broker could not be reached or rejected the credentials."""


class OperationError(CompanionError):
    """Producer, consumer or reader creation, or a send, failed."""
