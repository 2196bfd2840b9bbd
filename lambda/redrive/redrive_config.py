"""
Environment configuration shared by the redrive Lambda handlers.

Environment Variables:
    - DLQ_URL: URL of the Dead Letter Queue
    - MAIN_QUEUE_URL: URL of the main processing queue
    - MAX_MESSAGES: Default number of messages to redrive per invocation (default: 10)
    - RECEIVE_WAIT_SECONDS: Wait time for DLQ receives during bulk redrive (default: 0)
    - LISTING_VISIBILITY_TIMEOUT: Visibility timeout used when listing DLQ messages (default: 30)
    - LOG_LEVEL: Logging level (default: INFO)
"""

import logging
import os
from dataclasses import dataclass

log_level_map = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class ConfigurationError(Exception):
    """Raised when a required environment variable is missing or invalid."""


@dataclass(frozen=True)
class RedriveConfig:
    dlq_url: str
    main_queue_url: str
    max_messages: int = 10
    receive_wait_seconds: int = 0
    listing_visibility_timeout: int = 30

    @classmethod
    def from_env(cls) -> "RedriveConfig":
        dlq_url = os.environ.get("DLQ_URL")
        main_queue_url = os.environ.get("MAIN_QUEUE_URL")

        if not dlq_url or not main_queue_url:
            raise ConfigurationError(
                "Missing required environment variables: DLQ_URL and MAIN_QUEUE_URL"
            )

        return cls(
            dlq_url=dlq_url,
            main_queue_url=main_queue_url,
            max_messages=_int_env("MAX_MESSAGES", 10),
            receive_wait_seconds=_int_env("RECEIVE_WAIT_SECONDS", 0),
            listing_visibility_timeout=_int_env("LISTING_VISIBILITY_TIMEOUT", 30),
        )


def _int_env(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Environment variable {name} must be an integer")


def configure_logging() -> logging.Logger:
    """Set the root logger level from LOG_LEVEL and return the root logger."""
    logger = logging.getLogger()
    log_level_str = os.environ.get("LOG_LEVEL", "INFO")
    logger.setLevel(log_level_map.get(log_level_str.upper(), logging.INFO))
    return logger
