"""Tests for mapping to and from azure-mgmt-sql models."""

from __future__ import annotations

from typing import Any

from azure.mgmt.sql.models import ManagedInstance, Sku

from conftest import ADMIN_PASSWORD, SUBNET_ID
from sqlprovider.mapper import (
    build_create_request,
    build_update_request,
    expand_tags,
    flatten_managed_instance,
    flatten_tags,
)
from sqlprovider.models import ManagedInstanceConfig, ManagedInstanceDiff
from sqlprovider.resource_id import ManagedInstanceId

INSTANCE_ID = ManagedInstanceId(resource_group="acctestRG-sql", name="sqlmi1")
RAW_ID = INSTANCE_ID.id("00000000-0000-0000-0000-000000000000")


class TestTags:
    """Tests for tag conversion."""

    def test_none_flattens_to_empty(self) -> None:
        assert flatten_tags(None) == {}

    def test_expand_copies(self) -> None:
        tags = {"environment": "staging"}
        expanded = expand_tags(tags)

        assert expanded == tags
        assert expanded is not tags


class TestBuildCreateRequest:
    """Tests for the create-or-update body."""

    def test_maps_every_field(self, instance_spec: dict[str, Any]) -> None:
        request = build_create_request(ManagedInstanceConfig(**instance_spec))

        assert request.location == "westeurope"
        assert request.sku.name == "GP_Gen5"
        assert request.administrator_login == "mradministrator"
        assert request.administrator_login_password == ADMIN_PASSWORD
        assert request.subnet_id == SUBNET_ID
        assert request.license_type == "BasePrice"
        assert request.storage_size_in_gb == 32
        assert request.v_cores == 4
        assert request.proxy_override == "Proxy"
        assert request.public_data_endpoint_enabled is False
        assert request.tags == {"environment": "staging", "database": "test"}

    def test_optional_fields_left_unset(self, instance_spec: dict[str, Any]) -> None:
        """Test that unset collation and time zone are left to the service."""
        request = build_create_request(ManagedInstanceConfig(**instance_spec))

        assert request.collation is None
        assert request.timezone_id is None

    def test_optional_fields_sent_when_set(self, instance_spec: dict[str, Any]) -> None:
        instance_spec.update(collation="Latin1_General_100_CS_AS", time_zone="W. Europe Standard Time")
        request = build_create_request(ManagedInstanceConfig(**instance_spec))

        assert request.collation == "Latin1_General_100_CS_AS"
        assert request.timezone_id == "W. Europe Standard Time"


class TestBuildUpdateRequest:
    """Tests for the sparse update body."""

    def test_only_changed_fields_sent(self, instance_spec: dict[str, Any]) -> None:
        instance_spec.update(storage_size_in_gb=64, vcores=8)
        diff = ManagedInstanceDiff(
            desired=ManagedInstanceConfig(**instance_spec),
            changed=frozenset({"storage_size_in_gb"}),
        )

        request = build_update_request(diff)

        assert request.storage_size_in_gb == 64
        assert request.v_cores is None
        assert request.sku is None
        assert request.tags is None
        assert request.administrator_login_password is None

    def test_sku_uses_sku_name(self, instance_spec: dict[str, Any]) -> None:
        instance_spec["sku_name"] = "BC_Gen5"
        diff = ManagedInstanceDiff(
            desired=ManagedInstanceConfig(**instance_spec), changed=frozenset({"sku_name"})
        )

        assert build_update_request(diff).sku.name == "BC_Gen5"

    def test_password_sent_when_changed(self, instance_spec: dict[str, Any]) -> None:
        diff = ManagedInstanceDiff(
            desired=ManagedInstanceConfig(**instance_spec),
            changed=frozenset({"administrator_login_password", "tags"}),
        )

        request = build_update_request(diff)

        assert request.administrator_login_password == ADMIN_PASSWORD
        assert request.tags == {"environment": "staging", "database": "test"}

    def test_empty_diff_builds_empty_body(self, instance_spec: dict[str, Any]) -> None:
        request = build_update_request(ManagedInstanceDiff(desired=ManagedInstanceConfig(**instance_spec)))

        for attribute in ("sku", "tags", "administrator_login", "storage_size_in_gb", "v_cores", "timezone_id"):
            assert getattr(request, attribute) is None


class TestFlattenManagedInstance:
    """Tests for mapping responses into observed state."""

    def test_full_response(self) -> None:
        resource = ManagedInstance(
            location="West Europe",
            sku=Sku(name="GP_Gen5"),
            administrator_login="mradministrator",
            collation="SQL_Latin1_General_CP1_CI_AS",
            license_type="BasePrice",
            proxy_override="Redirect",
            public_data_endpoint_enabled=True,
            subnet_id=SUBNET_ID,
            timezone_id="UTC",
            storage_size_in_gb=32,
            v_cores=4,
            tags={"environment": "staging"},
        )
        resource.id = RAW_ID
        resource.fully_qualified_domain_name = "sqlmi1.0a1b2c3d4e5f.database.windows.net"

        state = flatten_managed_instance(resource, INSTANCE_ID, RAW_ID)

        assert state.id == RAW_ID
        assert state.name == "sqlmi1"
        assert state.resource_group_name == "acctestRG-sql"
        assert state.location == "westeurope"
        assert state.sku_name == "GP_Gen5"
        assert state.license_type == "BasePrice"
        assert state.proxy_override == "Redirect"
        assert state.public_data_endpoint_enabled is True
        assert state.time_zone == "UTC"
        assert state.storage_size_in_gb == 32
        assert state.vcores == 4
        assert state.fully_qualified_domain_name.startswith("sqlmi1.")
        assert state.tags == {"environment": "staging"}

    def test_sparse_response_uses_zero_values(self) -> None:
        """Test that absent remote fields become zero values."""
        state = flatten_managed_instance(ManagedInstance(location="westeurope"), INSTANCE_ID, RAW_ID)

        assert state.id == RAW_ID
        assert state.sku_name == ""
        assert state.administrator_login == ""
        assert state.license_type == ""
        assert state.public_data_endpoint_enabled is False
        assert state.storage_size_in_gb == 0
        assert state.vcores == 0
        assert state.tags == {}
