"""Provider configuration with validation.

Credentials and timing knobs are read from the environment and validated
once at load time, so handlers never have to second-guess their inputs.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


DEFAULT_BASE_URL = "https://cloud.mongodb.com/api/atlas/v1.0"

DEFAULT_REQUEST_TIMEOUT_SECONDS = 60
MIN_REQUEST_TIMEOUT_SECONDS = 1
MAX_REQUEST_TIMEOUT_SECONDS = 600

# Snapshot creation waits (see cloud_backup_snapshot.py)
DEFAULT_CLUSTER_IDLE_TIMEOUT_SECONDS = 10 * 60
DEFAULT_CLUSTER_POLL_INTERVAL_SECONDS = 10
DEFAULT_CLUSTER_DELAY_SECONDS = 3 * 60
DEFAULT_SNAPSHOT_TIMEOUT_SECONDS = 60 * 60
DEFAULT_SNAPSHOT_POLL_INTERVAL_SECONDS = 60
DEFAULT_SNAPSHOT_DELAY_SECONDS = 60

MAX_WAIT_TIMEOUT_SECONDS = 24 * 60 * 60

# Desired-state documents are small; anything larger is a mistake
MAX_SPEC_FILE_SIZE_BYTES = 1024 * 1024
MAX_STATE_FILE_SIZE_BYTES = 10 * 1024 * 1024

DEFAULT_STATE_DIR = ".atlas-state"


@dataclass(frozen=True)
class WaitConfig:
    """Polling bounds for one wait loop."""

    timeout_seconds: float
    poll_interval_seconds: float
    delay_seconds: float = 0.0


@dataclass(frozen=True)
class ProviderConfig:
    """Provider configuration loaded from environment variables.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError immediately rather than failing mid-operation.
    """

    public_key: str
    private_key: str = field(repr=False)

    base_url: str = DEFAULT_BASE_URL
    request_timeout_seconds: int = DEFAULT_REQUEST_TIMEOUT_SECONDS
    state_dir: Path = field(default_factory=lambda: Path(DEFAULT_STATE_DIR))

    cluster_wait: WaitConfig = field(
        default_factory=lambda: WaitConfig(
            timeout_seconds=DEFAULT_CLUSTER_IDLE_TIMEOUT_SECONDS,
            poll_interval_seconds=DEFAULT_CLUSTER_POLL_INTERVAL_SECONDS,
            delay_seconds=DEFAULT_CLUSTER_DELAY_SECONDS,
        )
    )
    snapshot_wait: WaitConfig = field(
        default_factory=lambda: WaitConfig(
            timeout_seconds=DEFAULT_SNAPSHOT_TIMEOUT_SECONDS,
            poll_interval_seconds=DEFAULT_SNAPSHOT_POLL_INTERVAL_SECONDS,
            delay_seconds=DEFAULT_SNAPSHOT_DELAY_SECONDS,
        )
    )

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        errors: list[str] = []

        if not self.public_key:
            errors.append("MONGODB_ATLAS_PUBLIC_KEY is required")
        if not self.private_key:
            errors.append("MONGODB_ATLAS_PRIVATE_KEY is required")

        if not self.base_url.startswith("https://"):
            errors.append(f"MONGODB_ATLAS_BASE_URL must use https: {self.base_url}")

        if not (
            MIN_REQUEST_TIMEOUT_SECONDS
            <= self.request_timeout_seconds
            <= MAX_REQUEST_TIMEOUT_SECONDS
        ):
            errors.append(
                f"ATLAS_REQUEST_TIMEOUT must be between {MIN_REQUEST_TIMEOUT_SECONDS} "
                f"and {MAX_REQUEST_TIMEOUT_SECONDS} seconds"
            )

        for name, wait in (("cluster", self.cluster_wait), ("snapshot", self.snapshot_wait)):
            if not 0 < wait.timeout_seconds <= MAX_WAIT_TIMEOUT_SECONDS:
                errors.append(
                    f"{name} wait timeout must be between 1 and {MAX_WAIT_TIMEOUT_SECONDS} seconds"
                )
            if wait.poll_interval_seconds <= 0:
                errors.append(f"{name} poll interval must be positive")
            if wait.delay_seconds < 0:
                errors.append(f"{name} initial delay cannot be negative")

        if self.state_dir.exists() and not self.state_dir.is_dir():
            errors.append(f"ATLAS_STATE_DIR is not a directory: {self.state_dir}")

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @classmethod
    def from_env(cls) -> ProviderConfig:
        """Load configuration from environment variables.

        Environment Variables:
            MONGODB_ATLAS_PUBLIC_KEY: Programmatic API public key
            MONGODB_ATLAS_PRIVATE_KEY: Programmatic API private key
            MONGODB_ATLAS_BASE_URL: Admin API root (default: Atlas cloud v1.0)
            ATLAS_REQUEST_TIMEOUT: Per-request timeout in seconds (default: 60)
            ATLAS_STATE_DIR: Where the CLI keeps resource state (default: .atlas-state)

        Wait Variables (seconds):
            ATLAS_CLUSTER_IDLE_TIMEOUT, ATLAS_CLUSTER_POLL_INTERVAL, ATLAS_CLUSTER_DELAY
            ATLAS_SNAPSHOT_TIMEOUT, ATLAS_SNAPSHOT_POLL_INTERVAL, ATLAS_SNAPSHOT_DELAY
        """

        def get_int(key: str, default: int) -> int:
            value = os.environ.get(key)
            if value is None or value == "":
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer: {value}") from e

        return cls(
            public_key=os.environ.get("MONGODB_ATLAS_PUBLIC_KEY", ""),
            private_key=os.environ.get("MONGODB_ATLAS_PRIVATE_KEY", ""),
            base_url=os.environ.get("MONGODB_ATLAS_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            request_timeout_seconds=get_int(
                "ATLAS_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT_SECONDS
            ),
            state_dir=Path(os.environ.get("ATLAS_STATE_DIR", DEFAULT_STATE_DIR)),
            cluster_wait=WaitConfig(
                timeout_seconds=get_int(
                    "ATLAS_CLUSTER_IDLE_TIMEOUT", DEFAULT_CLUSTER_IDLE_TIMEOUT_SECONDS
                ),
                poll_interval_seconds=get_int(
                    "ATLAS_CLUSTER_POLL_INTERVAL", DEFAULT_CLUSTER_POLL_INTERVAL_SECONDS
                ),
                delay_seconds=get_int("ATLAS_CLUSTER_DELAY", DEFAULT_CLUSTER_DELAY_SECONDS),
            ),
            snapshot_wait=WaitConfig(
                timeout_seconds=get_int(
                    "ATLAS_SNAPSHOT_TIMEOUT", DEFAULT_SNAPSHOT_TIMEOUT_SECONDS
                ),
                poll_interval_seconds=get_int(
                    "ATLAS_SNAPSHOT_POLL_INTERVAL", DEFAULT_SNAPSHOT_POLL_INTERVAL_SECONDS
                ),
                delay_seconds=get_int("ATLAS_SNAPSHOT_DELAY", DEFAULT_SNAPSHOT_DELAY_SECONDS),
            ),
        )
