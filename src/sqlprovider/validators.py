"""Field validators for managed instance configuration.

Each validator returns the (possibly normalised) value or raises ValueError,
so they plug straight into pydantic field validators. They are pure and run
before any network call.
"""

from __future__ import annotations

import re
from collections.abc import Collection

from .resource_id import is_valid_resource_id

# Managed instance names share the SQL server naming rules
VALID_SERVER_NAME_PATTERN = r"^[0-9a-z]([-0-9a-z]{0,61}[0-9a-z])?$"
VALID_RESOURCE_GROUP_NAME_PATTERN = r"^[-\w._()]+$"
MAX_RESOURCE_GROUP_NAME_LENGTH = 90

MIN_PASSWORD_LENGTH = 16

STORAGE_SIZE_MIN_GB = 32
STORAGE_SIZE_MAX_GB = 8000
STORAGE_SIZE_STEP_GB = 32

VALID_VCORES: tuple[int, ...] = (4, 8, 16, 24, 32, 40, 64, 80)
VALID_SKU_NAMES: tuple[str, ...] = ("BC_Gen4", "BC_Gen5", "GP_Gen4", "GP_Gen5")
VALID_LICENSE_TYPES: tuple[str, ...] = ("BasePrice", "LicenseIncluded")
VALID_PROXY_OVERRIDES: tuple[str, ...] = ("Proxy", "Redirect")

# Windows time zone IDs accepted by the service
VALID_TIME_ZONES: tuple[str, ...] = (
    "Afghanistan Standard Time",
    "Alaskan Standard Time",
    "Aleutian Standard Time",
    "Altai Standard Time",
    "Arab Standard Time",
    "Arabian Standard Time",
    "Arabic Standard Time",
    "Argentina Standard Time",
    "Astrakhan Standard Time",
    "Atlantic Standard Time",
    "AUS Central Standard Time",
    "Aus Central W. Standard Time",
    "AUS Eastern Standard Time",
    "Azerbaijan Standard Time",
    "Azores Standard Time",
    "Bahia Standard Time",
    "Bangladesh Standard Time",
    "Belarus Standard Time",
    "Bougainville Standard Time",
    "Canada Central Standard Time",
    "Cape Verde Standard Time",
    "Caucasus Standard Time",
    "Cen. Australia Standard Time",
    "Central America Standard Time",
    "Central Asia Standard Time",
    "Central Brazilian Standard Time",
    "Central Europe Standard Time",
    "Central European Standard Time",
    "Central Pacific Standard Time",
    "Central Standard Time",
    "Central Standard Time (Mexico)",
    "Chatham Islands Standard Time",
    "China Standard Time",
    "Cuba Standard Time",
    "Dateline Standard Time",
    "E. Africa Standard Time",
    "E. Australia Standard Time",
    "E. Europe Standard Time",
    "E. South America Standard Time",
    "Easter Island Standard Time",
    "Eastern Standard Time",
    "Eastern Standard Time (Mexico)",
    "Egypt Standard Time",
    "Ekaterinburg Standard Time",
    "Fiji Standard Time",
    "FLE Standard Time",
    "Georgian Standard Time",
    "GMT Standard Time",
    "Greenland Standard Time",
    "Greenwich Standard Time",
    "GTB Standard Time",
    "Haiti Standard Time",
    "Hawaiian Standard Time",
    "India Standard Time",
    "Iran Standard Time",
    "Israel Standard Time",
    "Jordan Standard Time",
    "Kaliningrad Standard Time",
    "Kamchatka Standard Time",
    "Korea Standard Time",
    "Libya Standard Time",
    "Line Islands Standard Time",
    "Lord Howe Standard Time",
    "Magadan Standard Time",
    "Magallanes Standard Time",
    "Marquesas Standard Time",
    "Mauritius Standard Time",
    "Mid-Atlantic Standard Time",
    "Middle East Standard Time",
    "Montevideo Standard Time",
    "Morocco Standard Time",
    "Mountain Standard Time",
    "Mountain Standard Time (Mexico)",
    "Myanmar Standard Time",
    "N. Central Asia Standard Time",
    "Namibia Standard Time",
    "Nepal Standard Time",
    "New Zealand Standard Time",
    "Newfoundland Standard Time",
    "Norfolk Standard Time",
    "North Asia East Standard Time",
    "North Asia Standard Time",
    "North Korea Standard Time",
    "Omsk Standard Time",
    "Pacific SA Standard Time",
    "Pacific Standard Time",
    "Pacific Standard Time (Mexico)",
    "Pakistan Standard Time",
    "Paraguay Standard Time",
    "Romance Standard Time",
    "Russia Time Zone 10",
    "Russia Time Zone 11",
    "Russia Time Zone 3",
    "Russian Standard Time",
    "SA Eastern Standard Time",
    "SA Pacific Standard Time",
    "SA Western Standard Time",
    "Saint Pierre Standard Time",
    "Sakhalin Standard Time",
    "Samoa Standard Time",
    "Sao Tome Standard Time",
    "Saratov Standard Time",
    "SE Asia Standard Time",
    "Singapore Standard Time",
    "South Africa Standard Time",
    "Sri Lanka Standard Time",
    "Sudan Standard Time",
    "Syria Standard Time",
    "Taipei Standard Time",
    "Tasmania Standard Time",
    "Tocantins Standard Time",
    "Tokyo Standard Time",
    "Tomsk Standard Time",
    "Tonga Standard Time",
    "Transbaikal Standard Time",
    "Turkey Standard Time",
    "Turks And Caicos Standard Time",
    "Ulaanbaatar Standard Time",
    "US Eastern Standard Time",
    "US Mountain Standard Time",
    "UTC",
    "UTC-02",
    "UTC-08",
    "UTC-09",
    "UTC-11",
    "UTC+12",
    "UTC+13",
    "Venezuela Standard Time",
    "Vladivostok Standard Time",
    "Volgograd Standard Time",
    "W. Australia Standard Time",
    "W. Central Africa Standard Time",
    "W. Europe Standard Time",
    "W. Mongolia Standard Time",
    "West Asia Standard Time",
    "West Bank Standard Time",
    "West Pacific Standard Time",
    "Yakutsk Standard Time",
)


def normalize_location(value: str) -> str:
    """Normalise an Azure region name ("West Europe" -> "westeurope")."""
    return value.replace(" ", "").lower()


def validate_server_name(value: str) -> str:
    if not re.match(VALID_SERVER_NAME_PATTERN, value):
        raise ValueError(
            "name can contain only lowercase letters, numbers and '-', can't start or end "
            f"with '-', and must be between 1 and 63 characters: {value!r}"
        )
    return value


def validate_resource_group_name(value: str) -> str:
    if not value:
        raise ValueError("resource group name cannot be blank")
    if len(value) > MAX_RESOURCE_GROUP_NAME_LENGTH:
        raise ValueError(
            f"resource group name may not exceed {MAX_RESOURCE_GROUP_NAME_LENGTH} characters"
        )
    if not re.match(VALID_RESOURCE_GROUP_NAME_PATTERN, value):
        raise ValueError(
            "resource group name may only contain alphanumeric characters, dash, "
            f"underscores, parentheses and periods: {value!r}"
        )
    if value.endswith("."):
        raise ValueError("resource group name cannot end with a period")
    return value


def no_empty_strings(value: str, field_name: str) -> str:
    """Reject strings made only of whitespace."""
    if not value.strip():
        raise ValueError(f"{field_name} must not be empty")
    return value


def string_at_least(value: str, minimum: int, field_name: str) -> str:
    # Never echo the value, this validates passwords
    if len(value) < minimum:
        raise ValueError(f"{field_name} must be at least {minimum} characters")
    return value


def int_between_and_divisible_by(
    value: int, minimum: int, maximum: int, divisor: int, field_name: str
) -> int:
    if not minimum <= value <= maximum:
        raise ValueError(f"{field_name} must be in the range ({minimum} - {maximum}), got {value}")
    if value % divisor != 0:
        raise ValueError(f"{field_name} must be divisible by {divisor}, got {value}")
    return value


def int_in_slice(value: int, valid: Collection[int], field_name: str) -> int:
    if value not in valid:
        raise ValueError(f"{field_name} must be one of {sorted(valid)}, got {value}")
    return value


def string_in_slice(
    value: str, valid: Collection[str], field_name: str, *, ignore_case: bool = False
) -> str:
    """Check membership and return the canonical spelling from ``valid``."""
    for candidate in valid:
        if candidate == value or (ignore_case and candidate.lower() == value.lower()):
            return candidate
    raise ValueError(f"{field_name} must be one of {list(valid)}, got {value!r}")


def validate_storage_size(value: int) -> int:
    return int_between_and_divisible_by(
        value,
        STORAGE_SIZE_MIN_GB,
        STORAGE_SIZE_MAX_GB,
        STORAGE_SIZE_STEP_GB,
        "storage_size_in_gb",
    )


def validate_vcores(value: int) -> int:
    return int_in_slice(value, VALID_VCORES, "vcores")


def validate_sku_name(value: str) -> str:
    return string_in_slice(value, VALID_SKU_NAMES, "sku_name")


def validate_resource_id(value: str, field_name: str) -> str:
    if not is_valid_resource_id(value):
        raise ValueError(f"{field_name} must be a valid Azure resource ID, got {value!r}")
    return value


def validate_time_zone(value: str) -> str:
    return string_in_slice(value, VALID_TIME_ZONES, "time_zone", ignore_case=True)
