"""Configuration resolution with precedence handling.

Precedence: Programmatic > Environment > Project file > Defaults
"""

import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from estimate_tracker.core.exceptions import ConfigurationError

from .env_loader import EnvironmentConfigLoader
from .file_loader import FileConfigLoader
from .schema import TrackerSettings
from .types import ConfigOrigin, ResolvedConfig

PROFILE_ENV = "ESTIMATE_TRACKER_PROFILE"


class ConfigResolver:
    """Merges configuration values from every source in precedence order."""

    def __init__(self) -> None:
        """Initialize the configuration resolver."""
        self.file_loader = FileConfigLoader()
        self.env_loader = EnvironmentConfigLoader()

    def resolve(
        self,
        programmatic: dict[str, Any] | None = None,
        *,
        profile: str | None = None,
        use_env_file: str | Path | None = None,
        project_root: Path | None = None,
    ) -> ResolvedConfig:
        """Resolve configuration from all sources with proper precedence.

        Args:
            programmatic: Programmatic overrides (highest precedence).
            profile: Profile name to load from pyproject.toml. Defaults to
                ESTIMATE_TRACKER_PROFILE when set.
            use_env_file: Optional .env file to load.
            project_root: Directory to search for pyproject.toml.

        Returns:
            ResolvedConfig with merged values and source tracking.

        Raises:
            ConfigurationError: If a source is malformed or the merged values
                fail validation.
        """
        merged: dict[str, Any] = {}
        origin: dict[str, ConfigOrigin] = {}

        if profile is None:
            profile = os.getenv(PROFILE_ENV)

        def apply(values: dict[str, Any], source: ConfigOrigin) -> None:
            for field, value in values.items():
                if field in merged:  # Only override known fields
                    merged[field] = value
                    origin[field] = source

        for field, value in TrackerSettings.defaults().items():
            merged[field] = value
            origin[field] = "default"

        apply(self.file_loader.load_project_config(project_root, profile), "file")

        try:
            apply(self.env_loader.load_env_config(env_file=use_env_file), "env")
        except (ValueError, FileNotFoundError) as e:
            raise ConfigurationError(f"Environment configuration error: {e}") from e

        if programmatic:
            apply(programmatic, "programmatic")

        try:
            validated = TrackerSettings(**merged).to_dict()
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

        return ResolvedConfig(**validated, origin=origin)
