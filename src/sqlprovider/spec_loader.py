"""Managed instance spec loading with validation.

SECURITY: All file operations enforce size limits to prevent DoS attacks
via large files. Input validation is performed at the boundary.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .config import MAX_SPEC_FILE_SIZE_BYTES
from .errors import InvalidConfigError
from .models import ManagedInstanceConfig

logger = logging.getLogger(__name__)


class SpecLoadError(Exception):
    """Raised when a spec file cannot be read or parsed."""

    pass


def parse_config(data: dict[str, Any]) -> ManagedInstanceConfig:
    """Validate raw spec data into a managed instance configuration.

    Raises:
        InvalidConfigError: Listing every invalid field.
    """
    try:
        return ManagedInstanceConfig.model_validate(data)
    except ValidationError as e:
        # Format Pydantic validation errors for readability
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            msg = error["msg"]
            errors.append(f"  - {loc}: {msg}")

        error_list = "\n".join(errors)
        raise InvalidConfigError(
            f"Invalid SQL Managed Instance configuration:\n{error_list}",
            resource_group=data.get("resource_group_name"),
            name=data.get("name"),
        ) from e


def load_spec(spec_path: Path) -> ManagedInstanceConfig:
    """Load and validate a managed instance spec from YAML.

    Both a flat mapping and a Kubernetes-style wrapper
    (``apiVersion``/``kind``/``spec``) are accepted.

    Raises:
        SpecLoadError: If the file cannot be read or is not a YAML mapping.
        InvalidConfigError: If the content fails validation.
    """
    if not spec_path.exists():
        raise SpecLoadError(f"Spec file not found: {spec_path}")

    # SECURITY: Check file size before reading to prevent DoS
    try:
        file_size = spec_path.stat().st_size
    except OSError as e:
        raise SpecLoadError(f"Failed to stat spec file {spec_path}: {e}") from e

    if file_size > MAX_SPEC_FILE_SIZE_BYTES:
        raise SpecLoadError(
            f"Spec file exceeds maximum size of {MAX_SPEC_FILE_SIZE_BYTES} bytes: {spec_path}"
        )

    try:
        content = spec_path.read_text(encoding="utf-8")
    except OSError as e:
        raise SpecLoadError(f"Failed to read spec file {spec_path}: {e}") from e

    try:
        raw_data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SpecLoadError(f"Invalid YAML in {spec_path}: {e}") from e

    if not isinstance(raw_data, dict):
        raise SpecLoadError(f"Spec file must contain a YAML mapping: {spec_path}")

    if "apiVersion" in raw_data and "spec" in raw_data:
        spec_data = raw_data.get("spec", {})
        if not isinstance(spec_data, dict):
            raise SpecLoadError(f"Spec section must be a mapping: {spec_path}")
    else:
        spec_data = raw_data

    config = parse_config(spec_data)
    logger.info(
        "Loaded SQL Managed Instance spec",
        extra={
            "spec_path": str(spec_path),
            "resource_group": config.resource_group_name,
            "resource_name": config.name,
        },
    )
    return config
