"""Azure SQL API Mock for Integration Testing.

This module provides a mock implementation of the Azure SQL managed
instance APIs that enables testing without actual Azure connectivity.

Key Features:
- In-memory state built from real azure-mgmt-sql models
- Long-running operation simulation with optional failure and delay
- Globally taken names for conflict scenarios
- Managed Identity simulation

Usage:
    from azure_mock import MockAzureContext

    with MockAzureContext() as ctx:
        reconciler = build_reconciler(config)
        state = await reconciler.create(desired)

        assert ctx.state.instance_count == 1
"""

from .context import MockAzureContext, mock_azure_context
from .credential import MockManagedIdentityCredential, create_mock_credential
from .resources import MockOperation, MockSqlClient, MockSqlState

__all__ = [
    "MockAzureContext",
    "MockManagedIdentityCredential",
    "MockOperation",
    "MockSqlClient",
    "MockSqlState",
    "create_mock_credential",
    "mock_azure_context",
]
