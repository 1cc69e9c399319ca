"""Azure resource ID parsing for managed instances.

Azure resource IDs are slash-delimited key/value paths:
/subscriptions/{sub}/resourceGroups/{rg}/providers/{namespace}/{type}/{name}

Parsing is pure. Every lifecycle operation except create decodes its
identifier here before touching the network.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import MalformedIdentifierError, MissingNameSegmentError, MissingResourceGroupError

MANAGED_INSTANCES_SEGMENT = "managedInstances"
SQL_PROVIDER_NAMESPACE = "Microsoft.Sql"


@dataclass(frozen=True)
class ResourceId:
    """A parsed Azure resource ID.

    Attributes:
        subscription_id: Value of the subscriptions segment.
        resource_group: Value of the resourceGroups segment, empty if absent.
        provider: Value of the providers segment, empty if absent.
        path: Remaining key/value segments (e.g. {"managedInstances": "mi1"}).
    """

    subscription_id: str
    resource_group: str = ""
    provider: str = ""
    path: dict[str, str] = field(default_factory=dict)

    @classmethod
    def parse(cls, raw: str) -> ResourceId:
        """Parse a raw resource ID.

        Raises:
            MalformedIdentifierError: If the ID is not a key/value path
                rooted at a subscription.
        """
        if not raw or not raw.startswith("/"):
            raise MalformedIdentifierError(f"Cannot parse Azure ID: {raw!r}", resource_id=raw)

        components = raw.strip("/").split("/")
        if len(components) % 2 != 0:
            raise MalformedIdentifierError(
                f"The number of path segments is not divisible by 2 in {raw!r}",
                resource_id=raw,
            )

        segments: dict[str, str] = {}
        for key, value in zip(components[0::2], components[1::2], strict=True):
            if not key or not value:
                raise MalformedIdentifierError(
                    f"Key/Value cannot be empty strings. Key: {key!r}, Value: {value!r}",
                    resource_id=raw,
                )
            segments[key] = value

        subscription_id = segments.pop("subscriptions", "")
        if not subscription_id:
            raise MalformedIdentifierError(f"No subscription ID found in: {raw!r}", resource_id=raw)

        provider = segments.pop("providers", "")
        resource_group = segments.pop("resourceGroups", "") or segments.pop("resourcegroups", "")

        return cls(
            subscription_id=subscription_id,
            resource_group=resource_group,
            provider=provider,
            path=segments,
        )


def is_valid_resource_id(raw: str) -> bool:
    """Check whether ``raw`` parses as a resource ID."""
    try:
        ResourceId.parse(raw)
    except MalformedIdentifierError:
        return False
    return True


@dataclass(frozen=True)
class ManagedInstanceId:
    """The (resource group, name) pair identifying a managed instance."""

    resource_group: str
    name: str

    def id(self, subscription_id: str) -> str:
        """Format the canonical resource ID."""
        return (
            f"/subscriptions/{subscription_id}/resourceGroups/{self.resource_group}"
            f"/providers/{SQL_PROVIDER_NAMESPACE}/{MANAGED_INSTANCES_SEGMENT}/{self.name}"
        )


def parse_managed_instance_id(raw: str) -> ManagedInstanceId:
    """Decode a managed instance resource ID.

    Args:
        raw: Full ARM resource ID.

    Returns:
        ManagedInstanceId with resource group and instance name.

    Raises:
        MissingResourceGroupError: If the resource group segment is empty.
        MissingNameSegmentError: If there is no managedInstances segment.
        MalformedIdentifierError: If the ID cannot be parsed at all.
    """
    parsed = ResourceId.parse(raw)

    if not parsed.resource_group:
        raise MissingResourceGroupError(f"{raw!r} is missing a Resource Group", resource_id=raw)

    name = parsed.path.get(MANAGED_INSTANCES_SEGMENT, "")
    if not name:
        raise MissingNameSegmentError(
            f"{raw!r} is missing the `{MANAGED_INSTANCES_SEGMENT}` segment",
            resource_id=raw,
        )

    return ManagedInstanceId(resource_group=parsed.resource_group, name=name)
