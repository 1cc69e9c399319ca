"""Mapping between managed instance models and azure-mgmt-sql request/response models.

Pure functions, no I/O. The forward direction leaves optional fields unset
so that partial updates never overwrite unrelated remote values; the reverse
direction tolerates None for every optional remote field.
"""

from __future__ import annotations

from typing import Any

from azure.mgmt.sql.models import ManagedInstance, ManagedInstanceUpdate, Sku

from .models import (
    DEFAULT_LICENSE_TYPE,
    DEFAULT_PROXY_OVERRIDE,
    ManagedInstanceConfig,
    ManagedInstanceDiff,
    ManagedInstanceState,
)
from .resource_id import ManagedInstanceId
from .validators import normalize_location

__all__ = [
    "build_create_request",
    "build_update_request",
    "expand_tags",
    "flatten_managed_instance",
    "flatten_tags",
    "normalize_location",
]


def expand_tags(tags: dict[str, str] | None) -> dict[str, str]:
    """Convert configured tags into the request shape."""
    return dict(tags or {})


def flatten_tags(tags: dict[str, str] | None) -> dict[str, str]:
    """Convert response tags into state, treating None as no tags."""
    if not tags:
        return {}
    return dict(tags)


def _enum_value(value: Any) -> str:
    # The SDK hands back enum members for known values and plain strings otherwise
    if value is None:
        return ""
    return str(getattr(value, "value", value))


def build_create_request(config: ManagedInstanceConfig) -> ManagedInstance:
    """Build the create-or-update body from desired configuration."""
    parameters = ManagedInstance(
        location=normalize_location(config.location),
        tags=expand_tags(config.tags),
        sku=Sku(name=config.sku_name),
        administrator_login=config.administrator_login,
        administrator_login_password=config.administrator_login_password,
        subnet_id=config.subnet_id,
        license_type=config.license_type or DEFAULT_LICENSE_TYPE,
        storage_size_in_gb=config.storage_size_in_gb,
        v_cores=config.vcores,
        public_data_endpoint_enabled=config.public_data_endpoint_enabled,
        proxy_override=config.proxy_override or DEFAULT_PROXY_OVERRIDE,
    )

    if config.collation:
        parameters.collation = config.collation

    if config.time_zone:
        parameters.timezone_id = config.time_zone

    return parameters


def build_update_request(diff: ManagedInstanceDiff) -> ManagedInstanceUpdate:
    """Build a sparse update body containing only the changed fields."""
    desired = diff.desired
    parameters = ManagedInstanceUpdate()

    if diff.has_change("administrator_login"):
        parameters.administrator_login = desired.administrator_login

    if diff.has_change("administrator_login_password"):
        parameters.administrator_login_password = desired.administrator_login_password

    if diff.has_change("collation"):
        parameters.collation = desired.collation

    if diff.has_change("license_type"):
        parameters.license_type = desired.license_type

    if diff.has_change("proxy_override"):
        parameters.proxy_override = desired.proxy_override

    if diff.has_change("public_data_endpoint_enabled"):
        parameters.public_data_endpoint_enabled = desired.public_data_endpoint_enabled

    if diff.has_change("sku_name"):
        parameters.sku = Sku(name=desired.sku_name)

    if diff.has_change("storage_size_in_gb"):
        parameters.storage_size_in_gb = desired.storage_size_in_gb

    if diff.has_change("subnet_id"):
        parameters.subnet_id = desired.subnet_id

    if diff.has_change("tags"):
        parameters.tags = expand_tags(desired.tags)

    if diff.has_change("time_zone"):
        parameters.timezone_id = desired.time_zone

    if diff.has_change("vcores"):
        parameters.v_cores = desired.vcores

    return parameters


def flatten_managed_instance(
    resource: ManagedInstance,
    instance_id: ManagedInstanceId,
    resource_id: str,
) -> ManagedInstanceState:
    """Map a service response back into observed state.

    Args:
        resource: The managed instance returned by the service.
        instance_id: Decoded identifier; name and resource group come from here.
        resource_id: Raw identifier, used when the response carries no ID.

    Returns:
        ManagedInstanceState with zero values for unset fields.
    """
    sku_name = ""
    if resource.sku is not None and resource.sku.name:
        sku_name = resource.sku.name

    return ManagedInstanceState(
        id=resource.id or resource_id,
        name=instance_id.name,
        resource_group_name=instance_id.resource_group,
        location=normalize_location(resource.location) if resource.location else "",
        sku_name=sku_name,
        administrator_login=resource.administrator_login or "",
        collation=resource.collation or "",
        fully_qualified_domain_name=resource.fully_qualified_domain_name or "",
        license_type=_enum_value(resource.license_type),
        proxy_override=_enum_value(resource.proxy_override),
        public_data_endpoint_enabled=bool(resource.public_data_endpoint_enabled),
        subnet_id=resource.subnet_id or "",
        time_zone=resource.timezone_id or "",
        storage_size_in_gb=resource.storage_size_in_gb or 0,
        vcores=resource.v_cores or 0,
        tags=flatten_tags(resource.tags),
    )
