"""Process setup for the SQL Managed Instance provider.

SECRETLESS ARCHITECTURE:
- ALL authentication uses Managed Identities
- NO service principal secrets or passwords are allowed
- The administrator password travels only inside the desired configuration
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime

from azure.mgmt.sql import SqlManagementClient

from .config import Config
from .reconciler import ManagedInstanceReconciler
from .security import get_managed_identity_credential

# LogRecord attributes that are not structured extras
_RESERVED_RECORD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class JsonFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        # Add extra fields from the record
        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(json_output: bool = True, level: int = logging.INFO) -> None:
    """Configure logging on stderr, JSON for production or plain text."""
    handler = logging.StreamHandler(sys.stderr)
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Reduce noise from Azure SDK
    logging.getLogger("azure").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def build_reconciler(config: Config) -> ManagedInstanceReconciler:
    """Build a reconciler authenticated with the configured managed identity.

    Raises:
        SecretlessViolationError: If secret-based credentials are present.
    """
    credential = get_managed_identity_credential(config.client_id)
    client = SqlManagementClient(credential, config.subscription_id)

    logger = logging.getLogger(__name__)
    logger.info(
        "SQL Managed Instance provider initialized",
        extra={
            "subscription_id": config.subscription_id,
            "require_unique": config.require_unique,
            "timeouts": config.timeouts.as_dict(),
        },
    )
    return ManagedInstanceReconciler(client, config)
