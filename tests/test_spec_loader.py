"""Tests for managed instance spec loading."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml

from sqlprovider.config import MAX_SPEC_FILE_SIZE_BYTES
from sqlprovider.errors import InvalidConfigError
from sqlprovider.spec_loader import SpecLoadError, load_spec, parse_config


def _write(path: Path, data: Any) -> Path:
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestLoadSpec:
    """Tests for load_spec()."""

    def test_flat_spec(self, tmp_path: Path, instance_spec: dict[str, Any]) -> None:
        config = load_spec(_write(tmp_path / "sqlmi.yaml", instance_spec))

        assert config.name == "sqlmi1"
        assert config.location == "westeurope"
        assert config.tags == {"environment": "staging", "database": "test"}

    def test_unquoted_tag_values(self, tmp_path: Path, instance_spec: dict[str, Any]) -> None:
        """Test that numeric and boolean YAML tag values load as strings."""
        instance_spec["tags"] = {"cost-center": 1234, "managed": True, "ratio": 0.5}

        config = load_spec(_write(tmp_path / "sqlmi.yaml", instance_spec))

        assert config.tags == {"cost-center": "1234", "managed": "true", "ratio": "0.5"}

    def test_kubernetes_style_wrapper(self, tmp_path: Path, instance_spec: dict[str, Any]) -> None:
        """Test that the spec section is extracted from an apiVersion/kind document."""
        document = {
            "apiVersion": "sql.azure.com/v1",
            "kind": "ManagedInstance",
            "metadata": {"name": "sqlmi1"},
            "spec": instance_spec,
        }

        config = load_spec(_write(tmp_path / "sqlmi.yaml", document))

        assert config.vcores == 4

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SpecLoadError, match="not found"):
            load_spec(tmp_path / "missing.yaml")

    def test_oversized_file(self, tmp_path: Path) -> None:
        spec_path = tmp_path / "big.yaml"
        spec_path.write_text("#" * (MAX_SPEC_FILE_SIZE_BYTES + 1), encoding="utf-8")

        with pytest.raises(SpecLoadError, match="maximum size"):
            load_spec(spec_path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        spec_path = tmp_path / "broken.yaml"
        spec_path.write_text("name: [unterminated", encoding="utf-8")

        with pytest.raises(SpecLoadError, match="Invalid YAML"):
            load_spec(spec_path)

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        with pytest.raises(SpecLoadError, match="mapping"):
            load_spec(_write(tmp_path / "list.yaml", ["sqlmi1"]))

    def test_wrapper_spec_not_a_mapping(self, tmp_path: Path) -> None:
        document = {"apiVersion": "sql.azure.com/v1", "kind": "ManagedInstance", "spec": "sqlmi1"}

        with pytest.raises(SpecLoadError, match="Spec section"):
            load_spec(_write(tmp_path / "sqlmi.yaml", document))


class TestParseConfig:
    """Tests for parse_config()."""

    def test_every_invalid_field_listed(self, instance_spec: dict[str, Any]) -> None:
        instance_spec.update(storage_size_in_gb=33, vcores=6)

        with pytest.raises(InvalidConfigError) as exc_info:
            parse_config(instance_spec)

        message = str(exc_info.value)
        assert "storage_size_in_gb" in message
        assert "vcores" in message
        assert exc_info.value.name == "sqlmi1"

    def test_password_not_echoed(self, instance_spec: dict[str, Any]) -> None:
        instance_spec["administrator_login_password"] = "short-secret"

        with pytest.raises(InvalidConfigError) as exc_info:
            parse_config(instance_spec)

        assert "administrator_login_password" in str(exc_info.value)
        assert "short-secret" not in str(exc_info.value)

    def test_missing_required_field(self, instance_spec: dict[str, Any]) -> None:
        del instance_spec["subnet_id"]

        with pytest.raises(InvalidConfigError, match="subnet_id"):
            parse_config(instance_spec)
