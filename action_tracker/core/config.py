"""Tracker configuration loaded from environment variables.

All configuration values have sensible defaults tuned for an interactive
CLI waiting on a handful of actions.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any numeric
    value is out of its valid range.  This catches bad configuration
    before the first poll instead of mid-wait.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from action_tracker.core.constants import (
    DEFAULT_API_ENDPOINT,
    DEFAULT_MAX_RETRIES,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_POLL_JITTER_RATIO,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_RETRY_BASE_SECONDS,
    DEFAULT_RETRY_CAP_SECONDS,
    DEFAULT_STATUS_BATCH_SIZE,
    DEFAULT_WAIT_TIMEOUT_SECONDS,
    MAX_STATUS_BATCH_SIZE,
)
from action_tracker.core.exceptions import ValidationError


class ConfigValidationError(ValidationError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class TrackerConfig:
    """Immutable tracker configuration.

    Loaded once per CLI invocation and handed to the waiter and the
    status source.

    Attributes:
        poll_interval_s: Base delay between status fetches, in seconds.
        poll_jitter_ratio: Symmetric jitter applied to each poll delay.
        max_retries: Retries of a failed status fetch before giving up.
        retry_base_s: First retry backoff; doubles on each further retry.
        retry_cap_s: Upper bound for a single retry backoff.
        wait_timeout_s: Overall wait timeout (0 = no timeout).
        batch_size: Maximum action IDs per status request.
        api_endpoint: Base URL of the cloud API.
        api_token: Bearer token for the cloud API.
        request_timeout_s: Timeout for a single HTTP request.
    """

    poll_interval_s: float = DEFAULT_POLL_INTERVAL_SECONDS
    poll_jitter_ratio: float = DEFAULT_POLL_JITTER_RATIO
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_base_s: float = DEFAULT_RETRY_BASE_SECONDS
    retry_cap_s: float = DEFAULT_RETRY_CAP_SECONDS
    wait_timeout_s: float = DEFAULT_WAIT_TIMEOUT_SECONDS
    batch_size: int = DEFAULT_STATUS_BATCH_SIZE
    api_endpoint: str = DEFAULT_API_ENDPOINT
    api_token: str = ""
    request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls) -> TrackerConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a numeric value is out of range
                or a required string value is empty.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``ACTION_POLL_MAX_RETRIES=abc``).
        """
        config = cls(
            poll_interval_s=float(
                os.getenv("ACTION_POLL_INTERVAL_SECONDS", str(DEFAULT_POLL_INTERVAL_SECONDS))
            ),
            poll_jitter_ratio=float(
                os.getenv("ACTION_POLL_JITTER_RATIO", str(DEFAULT_POLL_JITTER_RATIO))
            ),
            max_retries=int(os.getenv("ACTION_POLL_MAX_RETRIES", str(DEFAULT_MAX_RETRIES))),
            retry_base_s=float(
                os.getenv("ACTION_POLL_RETRY_BASE_SECONDS", str(DEFAULT_RETRY_BASE_SECONDS))
            ),
            retry_cap_s=float(
                os.getenv("ACTION_POLL_RETRY_CAP_SECONDS", str(DEFAULT_RETRY_CAP_SECONDS))
            ),
            wait_timeout_s=float(
                os.getenv("ACTION_WAIT_TIMEOUT_SECONDS", str(DEFAULT_WAIT_TIMEOUT_SECONDS))
            ),
            batch_size=int(os.getenv("ACTION_STATUS_BATCH_SIZE", str(DEFAULT_STATUS_BATCH_SIZE))),
            api_endpoint=os.getenv("ACTION_API_ENDPOINT", DEFAULT_API_ENDPOINT),
            api_token=os.getenv("ACTION_API_TOKEN", ""),
            request_timeout_s=float(
                os.getenv("ACTION_REQUEST_TIMEOUT_SECONDS", str(DEFAULT_REQUEST_TIMEOUT_SECONDS))
            ),
        )
        validate_config(config)
        return config


def validate_config(config: TrackerConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if config.poll_interval_s <= 0:
        raise ConfigValidationError(
            "ACTION_POLL_INTERVAL_SECONDS",
            config.poll_interval_s,
            "must be > 0 (seconds)",
        )

    if not 0.0 <= config.poll_jitter_ratio < 1.0:
        raise ConfigValidationError(
            "ACTION_POLL_JITTER_RATIO",
            config.poll_jitter_ratio,
            "must be >= 0 and < 1",
        )

    if config.max_retries < 0:
        raise ConfigValidationError(
            "ACTION_POLL_MAX_RETRIES",
            config.max_retries,
            "must be >= 0",
        )

    if config.retry_base_s <= 0:
        raise ConfigValidationError(
            "ACTION_POLL_RETRY_BASE_SECONDS",
            config.retry_base_s,
            "must be > 0 (seconds)",
        )

    if config.retry_cap_s < config.retry_base_s:
        raise ConfigValidationError(
            "ACTION_POLL_RETRY_CAP_SECONDS",
            config.retry_cap_s,
            f"must be >= ACTION_POLL_RETRY_BASE_SECONDS ({config.retry_base_s})",
        )

    if config.wait_timeout_s < 0:
        raise ConfigValidationError(
            "ACTION_WAIT_TIMEOUT_SECONDS",
            config.wait_timeout_s,
            "must be >= 0 (seconds, 0 disables the timeout)",
        )

    if not 1 <= config.batch_size <= MAX_STATUS_BATCH_SIZE:
        raise ConfigValidationError(
            "ACTION_STATUS_BATCH_SIZE",
            config.batch_size,
            f"must be between 1 and {MAX_STATUS_BATCH_SIZE}",
        )

    if not config.api_endpoint:
        raise ConfigValidationError(
            "ACTION_API_ENDPOINT",
            config.api_endpoint,
            "must not be empty",
        )

    if config.request_timeout_s <= 0:
        raise ConfigValidationError(
            "ACTION_REQUEST_TIMEOUT_SECONDS",
            config.request_timeout_s,
            "must be > 0 (seconds)",
        )
