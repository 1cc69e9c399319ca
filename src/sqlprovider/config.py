"""Provider configuration with validation.

Configuration is validated at load time so that a misconfigured provider
fails before it issues any Azure API call.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Operation timeouts reflect managed instance provisioning latency
DEFAULT_CREATE_TIMEOUT_SECONDS = 6 * 60 * 60
DEFAULT_READ_TIMEOUT_SECONDS = 5 * 60
DEFAULT_UPDATE_TIMEOUT_SECONDS = 6 * 60 * 60
DEFAULT_DELETE_TIMEOUT_SECONDS = 6 * 60 * 60
MIN_TIMEOUT_SECONDS = 1
MAX_TIMEOUT_SECONDS = 24 * 60 * 60

DEFAULT_POLL_INTERVAL_SECONDS = 30
MIN_POLL_INTERVAL_SECONDS = 1
MAX_POLL_INTERVAL_SECONDS = 300

# Security constraints
MAX_SPEC_FILE_SIZE_BYTES = 1024 * 1024  # 1MB max spec file

VALID_SUBSCRIPTION_ID_PATTERN = r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"


@dataclass(frozen=True)
class OperationTimeouts:
    """Per-operation time budgets in seconds."""

    create_seconds: int = DEFAULT_CREATE_TIMEOUT_SECONDS
    read_seconds: int = DEFAULT_READ_TIMEOUT_SECONDS
    update_seconds: int = DEFAULT_UPDATE_TIMEOUT_SECONDS
    delete_seconds: int = DEFAULT_DELETE_TIMEOUT_SECONDS

    def as_dict(self) -> dict[str, int]:
        return {
            "create": self.create_seconds,
            "read": self.read_seconds,
            "update": self.update_seconds,
            "delete": self.delete_seconds,
        }


@dataclass(frozen=True)
class Config:
    """Provider configuration loaded from environment variables.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError immediately rather than failing mid-operation.
    """

    subscription_id: str

    # User-assigned managed identity; system-assigned when None
    client_id: str | None = None

    # Refuse to create over an existing, unmanaged instance
    require_unique: bool = True

    timeouts: OperationTimeouts = field(default_factory=OperationTimeouts)
    poll_interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS

    json_logging: bool = True

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        errors: list[str] = []

        if not self.subscription_id:
            errors.append("AZURE_SUBSCRIPTION_ID is required")
        elif not re.match(VALID_SUBSCRIPTION_ID_PATTERN, self.subscription_id.lower()):
            errors.append(f"AZURE_SUBSCRIPTION_ID must be a valid GUID: {self.subscription_id}")

        for operation, seconds in self.timeouts.as_dict().items():
            if not MIN_TIMEOUT_SECONDS <= seconds <= MAX_TIMEOUT_SECONDS:
                errors.append(
                    f"{operation.upper()}_TIMEOUT must be between {MIN_TIMEOUT_SECONDS} "
                    f"and {MAX_TIMEOUT_SECONDS} seconds"
                )

        if not (
            MIN_POLL_INTERVAL_SECONDS <= self.poll_interval_seconds <= MAX_POLL_INTERVAL_SECONDS
        ):
            errors.append(
                f"POLL_INTERVAL must be between {MIN_POLL_INTERVAL_SECONDS} "
                f"and {MAX_POLL_INTERVAL_SECONDS} seconds"
            )

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            AZURE_SUBSCRIPTION_ID: Subscription holding the managed instances
            AZURE_CLIENT_ID: Client ID of a user-assigned managed identity (optional)
            REQUIRE_UNIQUE: Probe for existing instances before create (default: true)
            CREATE_TIMEOUT: Create budget in seconds (default: 21600)
            READ_TIMEOUT: Read budget in seconds (default: 300)
            UPDATE_TIMEOUT: Update budget in seconds (default: 21600)
            DELETE_TIMEOUT: Delete budget in seconds (default: 21600)
            POLL_INTERVAL: Seconds between long-running operation polls (default: 30)
            JSON_LOGGING: Emit JSON logs to stderr (default: true)
        """

        def get_int(key: str, default: int) -> int:
            value = os.environ.get(key)
            if value is None:
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer: {value}") from e

        def get_bool(key: str, default: bool) -> bool:
            value = os.environ.get(key, "").lower()
            if not value:
                return default
            return value in ("true", "1", "yes")

        return cls(
            subscription_id=os.environ.get("AZURE_SUBSCRIPTION_ID", ""),
            client_id=os.environ.get("AZURE_CLIENT_ID") or None,
            require_unique=get_bool("REQUIRE_UNIQUE", True),
            timeouts=OperationTimeouts(
                create_seconds=get_int("CREATE_TIMEOUT", DEFAULT_CREATE_TIMEOUT_SECONDS),
                read_seconds=get_int("READ_TIMEOUT", DEFAULT_READ_TIMEOUT_SECONDS),
                update_seconds=get_int("UPDATE_TIMEOUT", DEFAULT_UPDATE_TIMEOUT_SECONDS),
                delete_seconds=get_int("DELETE_TIMEOUT", DEFAULT_DELETE_TIMEOUT_SECONDS),
            ),
            poll_interval_seconds=get_int("POLL_INTERVAL", DEFAULT_POLL_INTERVAL_SECONDS),
            json_logging=get_bool("JSON_LOGGING", True),
        )
