from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Where the persisted connection details live
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "pulsar-companion" / "config.json"


class Settings(BaseSettings):
    """Companion defaults with environment variable support (PULSAR_COMPANION_*)"""

    model_config = SettingsConfigDict(
        env_prefix="PULSAR_COMPANION_",
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    # CLI defaults
    default_compression: str = "NONE"
    default_key: str = "default"
    default_read_position: str = "latest"
    default_threads: int = 1
    default_topic: str = "pulsar_companion"
    default_subscription_type: str = "Exclusive"
    default_subscription_name: str = "pulsar_companion_sub"

    # Broker timeouts
    ack_timeout_ms: int = 10000
    operation_timeout_seconds: int = 30
    send_timeout_ms: int = 30000
    receive_timeout_ms: int = 1000  # poll interval; the stop token is checked between polls

    # Reader
    reader_queue_size: int = 1000

    # Load generator
    stress_default_count: int = 100
    stress_default_delay_ms: int = 10

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    config_path: Path = DEFAULT_CONFIG_PATH
