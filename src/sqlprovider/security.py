"""Credential handling for the provider.

The provider authenticates to Azure Resource Manager with a managed identity
only. Service principal secrets, certificates and username/password flows are
refused outright:

1. No AZURE_CLIENT_SECRET or certificate variables may be present
2. ManagedIdentityCredential is the only credential constructed
3. Managed instance administrator passwords come from the desired
   configuration, never from the environment, and are never logged
"""

from __future__ import annotations

import logging
import os

from azure.identity import ManagedIdentityCredential

logger = logging.getLogger(__name__)

# Environment variables that indicate secret-based authentication
FORBIDDEN_CREDENTIAL_ENV_VARS: tuple[str, ...] = (
    "AZURE_CLIENT_SECRET",
    "AZURE_CLIENT_CERTIFICATE_PATH",
    "AZURE_CLIENT_CERTIFICATE_PASSWORD",
    "AZURE_USERNAME",
    "AZURE_PASSWORD",
)

SECRETLESS_VIOLATION_MESSAGE = (
    "SECURITY VIOLATION: {env_var} is set. "
    "The SQL managed instance provider authenticates with a managed identity only. "
    "Remove secret-based credential variables from the environment and assign a "
    "managed identity with SQL Managed Instance Contributor on the target scope."
)


class SecretlessViolationError(Exception):
    """Raised when secret-based credentials are present in the environment."""

    pass


def enforce_secretless_architecture() -> None:
    """Refuse to run when secret-based credential variables are set.

    Raises:
        SecretlessViolationError: If any forbidden variable is present.
    """
    for env_var in FORBIDDEN_CREDENTIAL_ENV_VARS:
        if os.environ.get(env_var):
            logger.critical(
                "Secretless architecture violation",
                extra={
                    "security_event": "credential_detected",
                    "env_var": env_var,
                    "action": "startup_blocked",
                },
            )
            raise SecretlessViolationError(SECRETLESS_VIOLATION_MESSAGE.format(env_var=env_var))

    logger.debug(
        "Secretless architecture verified",
        extra={"security_event": "secretless_verified", "credential_type": "ManagedIdentity"},
    )


def get_managed_identity_credential(
    client_id: str | None = None,
) -> ManagedIdentityCredential:
    """Build the managed identity credential used for the SQL management client.

    Args:
        client_id: Client ID of a user-assigned identity; system-assigned when None.

    Returns:
        ManagedIdentityCredential for the chosen identity.

    Raises:
        SecretlessViolationError: If secret-based credential variables are set.
    """
    enforce_secretless_architecture()

    if client_id:
        logger.info(
            "Using user-assigned managed identity",
            extra={"client_id": client_id[:8] + "..." if len(client_id) > 8 else client_id},
        )
        return ManagedIdentityCredential(client_id=client_id)

    logger.info("Using system-assigned managed identity")
    return ManagedIdentityCredential()
