"""Pydantic models for managed instance desired and observed state.

These models provide:
1. Typed desired configuration, validated at construction (fail fast)
2. Observed remote state as read back from the service
3. An explicit change set consumed by update
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field, field_validator

from . import validators

DEFAULT_LICENSE_TYPE = "LicenseIncluded"
DEFAULT_PROXY_OVERRIDE = "Proxy"

MAX_TAG_COUNT = 50
MAX_TAG_KEY_LENGTH = 512
MAX_TAG_VALUE_LENGTH = 256

# Changing any of these means destroying and re-creating the instance
FORCE_NEW_FIELDS: frozenset[str] = frozenset({"name", "resource_group_name", "location"})

UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "administrator_login",
        "administrator_login_password",
        "collation",
        "license_type",
        "proxy_override",
        "public_data_endpoint_enabled",
        "sku_name",
        "storage_size_in_gb",
        "subnet_id",
        "tags",
        "time_zone",
        "vcores",
    }
)

# The service never returns the password, so it cannot be diffed against state
UNOBSERVABLE_FIELDS: frozenset[str] = frozenset({"administrator_login_password"})

# Left to the service default when not configured
COMPUTED_WHEN_UNSET_FIELDS: frozenset[str] = frozenset({"collation", "time_zone"})


# =============================================================================
# Desired State
# =============================================================================


class ManagedInstanceConfig(BaseModel):
    """Desired configuration of a SQL managed instance.

    Immutable for the duration of a reconciliation.
    """

    model_config = {"extra": "forbid", "frozen": True}

    name: str
    resource_group_name: str
    location: str = Field(min_length=1)
    administrator_login: str
    administrator_login_password: str = Field(repr=False)
    sku_name: str
    storage_size_in_gb: int
    subnet_id: str
    vcores: int
    tags: dict[str, str] = Field(default_factory=dict)

    collation: str | None = None
    license_type: str = DEFAULT_LICENSE_TYPE
    proxy_override: str = DEFAULT_PROXY_OVERRIDE
    public_data_endpoint_enabled: bool = False
    time_zone: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validators.validate_server_name(v)

    @field_validator("resource_group_name")
    @classmethod
    def validate_resource_group_name(cls, v: str) -> str:
        return validators.validate_resource_group_name(v)

    @field_validator("location")
    @classmethod
    def validate_location(cls, v: str) -> str:
        normalized = validators.normalize_location(v)
        if not normalized:
            raise ValueError("location must not be empty")
        return normalized

    @field_validator("administrator_login")
    @classmethod
    def validate_administrator_login(cls, v: str) -> str:
        return validators.no_empty_strings(v, "administrator_login")

    @field_validator("administrator_login_password")
    @classmethod
    def validate_administrator_login_password(cls, v: str) -> str:
        return validators.string_at_least(
            v, validators.MIN_PASSWORD_LENGTH, "administrator_login_password"
        )

    @field_validator("sku_name")
    @classmethod
    def validate_sku_name(cls, v: str) -> str:
        return validators.validate_sku_name(v)

    @field_validator("storage_size_in_gb")
    @classmethod
    def validate_storage_size(cls, v: int) -> int:
        return validators.validate_storage_size(v)

    @field_validator("subnet_id")
    @classmethod
    def validate_subnet_id(cls, v: str) -> str:
        return validators.validate_resource_id(v, "subnet_id")

    @field_validator("vcores")
    @classmethod
    def validate_vcores(cls, v: int) -> int:
        return validators.validate_vcores(v)

    @field_validator("license_type")
    @classmethod
    def validate_license_type(cls, v: str) -> str:
        return validators.string_in_slice(v, validators.VALID_LICENSE_TYPES, "license_type")

    @field_validator("proxy_override")
    @classmethod
    def validate_proxy_override(cls, v: str) -> str:
        return validators.string_in_slice(v, validators.VALID_PROXY_OVERRIDES, "proxy_override")

    @field_validator("time_zone")
    @classmethod
    def validate_time_zone(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return validators.validate_time_zone(v)

    @field_validator("tags", mode="before")
    @classmethod
    def coerce_tag_values(cls, v: Any) -> Any:
        # YAML reads unquoted numbers and booleans as scalars; tags are strings
        if not isinstance(v, dict):
            return v
        coerced = {}
        for key, value in v.items():
            if isinstance(value, bool):
                value = "true" if value else "false"
            elif isinstance(value, (int, float)):
                value = str(value)
            coerced[key] = value
        return coerced

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: dict[str, str]) -> dict[str, str]:
        if len(v) > MAX_TAG_COUNT:
            raise ValueError(f"a maximum of {MAX_TAG_COUNT} tags can be applied, got {len(v)}")
        for key, value in v.items():
            if len(key) > MAX_TAG_KEY_LENGTH:
                raise ValueError(f"tag key {key[:32]!r}... exceeds {MAX_TAG_KEY_LENGTH} characters")
            if len(value) > MAX_TAG_VALUE_LENGTH:
                raise ValueError(f"tag {key!r} value exceeds {MAX_TAG_VALUE_LENGTH} characters")
        return v


# =============================================================================
# Observed State
# =============================================================================


class ManagedInstanceState(BaseModel):
    """Remote state of a managed instance as last read from the service.

    Unset remote fields are represented by zero values.
    """

    model_config = {"extra": "ignore", "frozen": True}

    id: str
    name: str
    resource_group_name: str
    location: str = ""
    sku_name: str = ""
    administrator_login: str = ""
    collation: str = ""
    fully_qualified_domain_name: str = ""
    license_type: str = ""
    proxy_override: str = ""
    public_data_endpoint_enabled: bool = False
    subnet_id: str = ""
    time_zone: str = ""
    storage_size_in_gb: int = 0
    vcores: int = 0
    tags: dict[str, str] = Field(default_factory=dict)


# =============================================================================
# Change Set
# =============================================================================


def _comparable(field_name: str, value: Any) -> Any:
    if value is None:
        return ""
    # The service treats both case-insensitively
    if field_name in ("time_zone", "resource_group_name") and isinstance(value, str):
        return value.lower()
    return value


@dataclass(frozen=True)
class ManagedInstanceDiff:
    """Desired configuration plus the set of fields that changed.

    Update sends only the fields named in ``changed``.
    """

    desired: ManagedInstanceConfig
    changed: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        unknown = self.changed - UPDATABLE_FIELDS - FORCE_NEW_FIELDS
        if unknown:
            raise ValueError(f"Unknown fields in change set: {sorted(unknown)}")

    def has_change(self, field_name: str) -> bool:
        return field_name in self.changed

    @property
    def requires_replacement(self) -> frozenset[str]:
        """Changed fields that cannot be updated in place."""
        return self.changed & FORCE_NEW_FIELDS

    @classmethod
    def between(
        cls,
        prior: ManagedInstanceState,
        desired: ManagedInstanceConfig,
        *,
        password_changed: bool = False,
    ) -> ManagedInstanceDiff:
        """Compute the change set from observed state to desired configuration.

        Args:
            prior: State from the last successful read.
            desired: Target configuration.
            password_changed: Whether the caller knows the password changed.

        Returns:
            ManagedInstanceDiff naming every differing field.
        """
        changed: set[str] = set()
        for field_name in (FORCE_NEW_FIELDS | UPDATABLE_FIELDS) - UNOBSERVABLE_FIELDS:
            desired_value = getattr(desired, field_name)
            if desired_value is None and field_name in COMPUTED_WHEN_UNSET_FIELDS:
                continue
            before = _comparable(field_name, getattr(prior, field_name))
            after = _comparable(field_name, desired_value)
            if before != after:
                changed.add(field_name)

        if password_changed:
            changed.add("administrator_login_password")

        return cls(desired=desired, changed=frozenset(changed))
