"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
from typing import Any

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for azure_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000000"
SUBNET_ID = (
    f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/acctestRG-sql"
    "/providers/Microsoft.Network/virtualNetworks/acctest-vnet/subnets/mi-subnet"
)
ADMIN_PASSWORD = "P@s$w0rd1234!1234!"


@pytest.fixture
def instance_spec() -> dict[str, Any]:
    """Raw desired configuration for a general purpose instance."""
    return {
        "name": "sqlmi1",
        "resource_group_name": "acctestRG-sql",
        "location": "West Europe",
        "administrator_login": "mradministrator",
        "administrator_login_password": ADMIN_PASSWORD,
        "license_type": "BasePrice",
        "sku_name": "GP_Gen5",
        "storage_size_in_gb": 32,
        "subnet_id": SUBNET_ID,
        "vcores": 4,
        "tags": {"environment": "staging", "database": "test"},
    }
