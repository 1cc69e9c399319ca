"""Tests for desired state, observed state and change set models."""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError

from conftest import ADMIN_PASSWORD
from sqlprovider.models import (
    DEFAULT_LICENSE_TYPE,
    DEFAULT_PROXY_OVERRIDE,
    ManagedInstanceConfig,
    ManagedInstanceDiff,
    ManagedInstanceState,
)


def _state_from(config: ManagedInstanceConfig, **overrides: Any) -> ManagedInstanceState:
    data = config.model_dump(exclude={"administrator_login_password", "collation", "time_zone"})
    data.update(
        id="/subscriptions/x/resourceGroups/acctestRG-sql/providers/Microsoft.Sql/managedInstances/sqlmi1",
        collation="SQL_Latin1_General_CP1_CI_AS",
        time_zone="UTC",
    )
    data.update(overrides)
    return ManagedInstanceState(**data)


class TestManagedInstanceConfig:
    """Tests for ManagedInstanceConfig validation."""

    def test_valid_config(self, instance_spec: dict[str, Any]) -> None:
        """Test a valid configuration with location normalisation."""
        config = ManagedInstanceConfig(**instance_spec)

        assert config.location == "westeurope"
        assert config.proxy_override == DEFAULT_PROXY_OVERRIDE
        assert config.collation is None

    def test_license_defaults(self, instance_spec: dict[str, Any]) -> None:
        """Test that license type defaults to LicenseIncluded."""
        del instance_spec["license_type"]
        assert ManagedInstanceConfig(**instance_spec).license_type == DEFAULT_LICENSE_TYPE

    def test_password_not_in_repr(self, instance_spec: dict[str, Any]) -> None:
        """Test that the password never shows up in repr."""
        config = ManagedInstanceConfig(**instance_spec)
        assert ADMIN_PASSWORD not in repr(config)

    def test_frozen(self, instance_spec: dict[str, Any]) -> None:
        """Test that desired configuration is immutable."""
        config = ManagedInstanceConfig(**instance_spec)
        with pytest.raises(ValidationError):
            config.vcores = 8  # type: ignore[misc]

    def test_unknown_field_rejected(self, instance_spec: dict[str, Any]) -> None:
        instance_spec["edition"] = "GeneralPurpose"
        with pytest.raises(ValidationError):
            ManagedInstanceConfig(**instance_spec)

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("name", "SQLMI1"),
            ("resource_group_name", ""),
            ("location", "   "),
            ("administrator_login", "  "),
            ("administrator_login_password", "P@s$w0rd12345!!"),
            ("sku_name", "GP_Gen6"),
            ("storage_size_in_gb", 33),
            ("subnet_id", "subnet1"),
            ("vcores", 6),
            ("license_type", "Free"),
            ("proxy_override", "Default"),
            ("time_zone", "Mars Standard Time"),
        ],
    )
    def test_invalid_field(self, instance_spec: dict[str, Any], field: str, value: Any) -> None:
        """Test that each invalid field is reported by name."""
        instance_spec[field] = value

        with pytest.raises(ValidationError) as exc_info:
            ManagedInstanceConfig(**instance_spec)

        assert exc_info.value.errors()[0]["loc"] == (field,)

    def test_password_of_sixteen_accepted(self, instance_spec: dict[str, Any]) -> None:
        instance_spec["administrator_login_password"] = "P@s$w0rd12345!!!"
        assert ManagedInstanceConfig(**instance_spec)

    def test_too_many_tags(self, instance_spec: dict[str, Any]) -> None:
        instance_spec["tags"] = {f"key{i}": "value" for i in range(51)}
        with pytest.raises(ValidationError, match="maximum of 50 tags"):
            ManagedInstanceConfig(**instance_spec)

    def test_scalar_tag_values_coerced(self, instance_spec: dict[str, Any]) -> None:
        instance_spec["tags"] = {"cost-center": 1234, "managed": False}
        assert ManagedInstanceConfig(**instance_spec).tags == {"cost-center": "1234", "managed": "false"}

    def test_null_tag_value_rejected(self, instance_spec: dict[str, Any]) -> None:
        instance_spec["tags"] = {"owner": None}
        with pytest.raises(ValidationError):
            ManagedInstanceConfig(**instance_spec)

    def test_tag_value_too_long(self, instance_spec: dict[str, Any]) -> None:
        instance_spec["tags"] = {"environment": "x" * 257}
        with pytest.raises(ValidationError, match="256"):
            ManagedInstanceConfig(**instance_spec)

    def test_time_zone_canonicalised(self, instance_spec: dict[str, Any]) -> None:
        instance_spec["time_zone"] = "utc"
        assert ManagedInstanceConfig(**instance_spec).time_zone == "UTC"


class TestManagedInstanceDiff:
    """Tests for change set computation."""

    def test_no_changes(self, instance_spec: dict[str, Any]) -> None:
        """Test that matching state produces an empty change set."""
        config = ManagedInstanceConfig(**instance_spec)
        diff = ManagedInstanceDiff.between(_state_from(config), config)

        assert diff.changed == frozenset()
        assert diff.requires_replacement == frozenset()

    def test_detects_changed_fields(self, instance_spec: dict[str, Any]) -> None:
        config = ManagedInstanceConfig(**instance_spec)
        prior = _state_from(config, storage_size_in_gb=64, tags={"environment": "prod"})

        diff = ManagedInstanceDiff.between(prior, config)

        assert diff.changed == frozenset({"storage_size_in_gb", "tags"})
        assert diff.has_change("tags")
        assert not diff.has_change("vcores")

    def test_password_only_when_flagged(self, instance_spec: dict[str, Any]) -> None:
        """Test that the password is never diffed, only flagged."""
        config = ManagedInstanceConfig(**instance_spec)
        prior = _state_from(config)

        assert not ManagedInstanceDiff.between(prior, config).has_change(
            "administrator_login_password"
        )
        assert ManagedInstanceDiff.between(prior, config, password_changed=True).changed == {
            "administrator_login_password"
        }

    def test_unset_computed_fields_ignored(self, instance_spec: dict[str, Any]) -> None:
        """Test that service defaults for collation and time zone are not changes."""
        config = ManagedInstanceConfig(**instance_spec)
        prior = _state_from(config, collation="Latin1_General_100_CS_AS", time_zone="Pacific Standard Time")

        assert ManagedInstanceDiff.between(prior, config).changed == frozenset()

    def test_time_zone_compared_case_insensitively(self, instance_spec: dict[str, Any]) -> None:
        instance_spec["time_zone"] = "UTC"
        config = ManagedInstanceConfig(**instance_spec)

        assert ManagedInstanceDiff.between(_state_from(config, time_zone="utc"), config).changed == frozenset()

    def test_location_requires_replacement(self, instance_spec: dict[str, Any]) -> None:
        config = ManagedInstanceConfig(**instance_spec)
        diff = ManagedInstanceDiff.between(_state_from(config, location="northeurope"), config)

        assert diff.requires_replacement == frozenset({"location"})

    def test_unknown_field_rejected(self, instance_spec: dict[str, Any]) -> None:
        config = ManagedInstanceConfig(**instance_spec)
        with pytest.raises(ValueError, match="Unknown fields"):
            ManagedInstanceDiff(desired=config, changed=frozenset({"edition"}))
