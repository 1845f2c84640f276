"""Session configuration loading."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import Any

from ruamel.yaml import YAML

from provenance_core.codec import DEFAULT_DELIMITER, validate_delimiter
from provenance_core.graph.mutations import IMPORT_LABEL, ROOT_LABEL
from provenance_core.location import DEFAULT_LOCATION_ENV

DELIMITER_ENV = "PROVENANCE_DELIMITER"


@dataclass
class ProvenanceConfig:
    """Configuration for a provenance session.

    Attributes:
        delimiter: Marker surrounding exported states.
        load_from_url: Whether ``done()`` seeds the session from the location.
        location_env: Environment variable read by the default location provider.
        root_label: Label given to the root node.
        import_label: Label given to nodes created by state imports.
    """

    delimiter: str = DEFAULT_DELIMITER
    load_from_url: bool = False
    location_env: str = DEFAULT_LOCATION_ENV
    root_label: str = ROOT_LABEL
    import_label: str = IMPORT_LABEL

    def __post_init__(self) -> None:
        validate_delimiter(self.delimiter)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProvenanceConfig:
        """Create config from a dictionary.

        The ``PROVENANCE_DELIMITER`` environment variable overrides the
        delimiter given in ``data``.

        Args:
            data: Dictionary with any of the dataclass fields.

        Returns:
            ProvenanceConfig instance.

        Raises:
            ValueError: If unknown keys are present or the delimiter is invalid.
        """
        known = {"delimiter", "load_from_url", "location_env", "root_label", "import_label"}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

        return cls(
            delimiter=os.getenv(DELIMITER_ENV) or data.get("delimiter", DEFAULT_DELIMITER),
            load_from_url=bool(data.get("load_from_url", False)),
            location_env=data.get("location_env", DEFAULT_LOCATION_ENV),
            root_label=data.get("root_label", ROOT_LABEL),
            import_label=data.get("import_label", IMPORT_LABEL),
        )


class ConfigError(Exception):
    """Raised when configuration cannot be loaded."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load provenance config at {path}: {reason}")


def load_config(config_path: Path) -> ProvenanceConfig:
    """Load configuration from a YAML file.

    The file may hold the settings at top level or under a ``provenance`` key.

    Args:
        config_path: Path to the YAML file.

    Returns:
        ProvenanceConfig instance.

    Raises:
        ConfigError: If config cannot be loaded.
    """
    if not config_path.exists():
        raise ConfigError(config_path, "File not found")

    yaml = YAML(typ="safe")
    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)

        if data is None:
            raise ConfigError(config_path, "Empty file")

        data = dict(data)
        section = data.get("provenance", data)
        return ProvenanceConfig.from_dict(dict(section))
    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(config_path, str(e)) from e
