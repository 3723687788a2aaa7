"""Persisted user connection configuration.

The file lives at ``~/.config/pulsar-companion/config.json`` by default and
holds a single JSON object:

{
  "serviceUrl": "pulsar+ssl://host:6651",
  "token": "...",
  "namespace": "tenant/namespace"
}

When the file does not exist the operator is prompted for the three values
and the answers are saved before use. The namespace is always normalized to
``persistent://tenant/namespace/`` once loaded.
"""

from __future__ import annotations

import getpass
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from src.utils.errors import ConfigurationError
from src.utils.logging_config import get_logger

logger = get_logger(__name__)

STORAGE_SCHEME = "persistent://"
REQUIRED_FIELDS = ("serviceUrl", "token", "namespace")


@dataclass(frozen=True)
class ConnectionConfig:
    service_url: str
    token: str
    namespace: str


def normalize_namespace(namespace: str) -> str:
    if not namespace.endswith("/"):
        namespace += "/"
    if not namespace.startswith(STORAGE_SCHEME):
        namespace = f"{STORAGE_SCHEME}{namespace}"
    return namespace


def _validate_service_url(value: str) -> Optional[str]:
    if not value:
        return "Service URL cannot be empty"
    if not value.startswith("pulsar"):
        return 'Service URL must start with "pulsar://" or "pulsar+ssl://"'
    return None


def _validate_token(value: str) -> Optional[str]:
    if not value:
        return "Token cannot be empty"
    return None


def _validate_namespace(value: str) -> Optional[str]:
    if not value:
        return "Namespace cannot be empty"
    if "/" not in value:
        return "Namespace must be in format: tenant/namespace"
    return None


class UserConfigStore:
    """Loads, and on first run creates, the persisted connection config."""

    def __init__(
        self,
        path: str | Path,
        prompt: Callable[[str], str] = input,
        secret_prompt: Callable[[str], str] = getpass.getpass,
    ):
        self.path = Path(path)
        self.prompt = prompt
        self.secret_prompt = secret_prompt

    def load(self) -> ConnectionConfig:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return self.create()
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file {self.path}: {e}") from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Config file {self.path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {self.path} must contain a JSON object")

        for field in REQUIRED_FIELDS:
            value = data.get(field)
            if not value or not isinstance(value, str):
                raise ConfigurationError(f"Missing {field} in config file")

        return ConnectionConfig(
            service_url=data["serviceUrl"],
            token=data["token"],
            namespace=normalize_namespace(data["namespace"]),
        )

    def create(self) -> ConnectionConfig:
        """Prompt for connection details, save them and return the config."""
        print("No configuration file found. Please provide your Pulsar connection details:")

        service_url = self._ask(
            self.prompt,
            "Enter Pulsar service URL (e.g., pulsar+ssl://host:port): ",
            _validate_service_url,
        )
        token = self._ask(self.secret_prompt, "Enter your authentication token: ", _validate_token)
        namespace = self._ask(
            self.prompt,
            "Enter your namespace (e.g., tenant/namespace): ",
            _validate_namespace,
        )

        raw = {"namespace": namespace, "serviceUrl": service_url, "token": token}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(raw, indent=2), encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Error saving configuration to {self.path}: {e}") from e
        logger.info("Configuration saved", path=str(self.path))

        return ConnectionConfig(
            service_url=service_url,
            token=token,
            namespace=normalize_namespace(namespace),
        )

    @staticmethod
    def _ask(
        prompt: Callable[[str], str],
        message: str,
        check: Callable[[str], Optional[str]],
    ) -> str:
        while True:
            try:
                value = prompt(message).strip()
            except EOFError as e:
                raise ConfigurationError("Input ended before the configuration was complete") from e
            problem = check(value)
            if problem is None:
                return value
            print(problem)
