"""Tests for session configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from provenance_core.config import ConfigError, ProvenanceConfig, load_config

if TYPE_CHECKING:
    from pathlib import Path


class TestProvenanceConfig:
    """Tests for ProvenanceConfig class."""

    def test_defaults(self) -> None:
        config = ProvenanceConfig()

        assert config.delimiter == "||"
        assert config.load_from_url is False
        assert config.location_env == "PROVENANCE_LOCATION"
        assert config.root_label == "Root"
        assert config.import_label == "Imported state"

    def test_from_dict_empty_uses_defaults(self) -> None:
        assert ProvenanceConfig.from_dict({}) == ProvenanceConfig()

    def test_from_dict_overrides(self) -> None:
        config = ProvenanceConfig.from_dict(
            {"delimiter": "~~", "load_from_url": True, "root_label": "Start"}
        )

        assert config.delimiter == "~~"
        assert config.load_from_url is True
        assert config.root_label == "Start"

    def test_from_dict_unknown_keys(self) -> None:
        with pytest.raises(ValueError, match="Unknown config keys: colour, size"):
            ProvenanceConfig.from_dict({"size": 1, "colour": "red"})

    def test_env_overrides_delimiter(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PROVENANCE_DELIMITER", "##")
        config = ProvenanceConfig.from_dict({"delimiter": "~~"})
        assert config.delimiter == "##"

    def test_invalid_delimiter_rejected(self) -> None:
        with pytest.raises(ValueError, match="payload characters"):
            ProvenanceConfig(delimiter="ab")


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_top_level(self, tmp_path: Path) -> None:
        config_file = tmp_path / "provenance.yaml"
        config_file.write_text("delimiter: '~~'\nimport_label: Shared link\n")

        config = load_config(config_file)

        assert config.delimiter == "~~"
        assert config.import_label == "Shared link"

    def test_load_nested_section(self, tmp_path: Path) -> None:
        config_file = tmp_path / "app.yaml"
        config_file.write_text("provenance:\n  load_from_url: true\n  location_env: APP_URL\n")

        config = load_config(config_file)

        assert config.load_from_url is True
        assert config.location_env == "APP_URL"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="File not found") as exc_info:
            load_config(tmp_path / "missing.yaml")
        assert exc_info.value.path == tmp_path / "missing.yaml"

    def test_empty_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        with pytest.raises(ConfigError, match="Empty file"):
            load_config(config_file)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "broken.yaml"
        config_file.write_text("delimiter: [unclosed\n")

        with pytest.raises(ConfigError):
            load_config(config_file)

    def test_unknown_keys_wrapped(self, tmp_path: Path) -> None:
        config_file = tmp_path / "provenance.yaml"
        config_file.write_text("delimeter: '~~'\n")

        with pytest.raises(ConfigError, match="Unknown config keys: delimeter") as exc_info:
            load_config(config_file)
        assert exc_info.value.reason == "Unknown config keys: delimeter"
