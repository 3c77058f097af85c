"""File-based configuration loading with profile support.

Reads the ``[tool.estimate_tracker]`` table of the project's pyproject.toml,
optionally selecting ``[tool.estimate_tracker.profiles.<name>]``.
"""

import os
from pathlib import Path
import tomllib
from typing import Any

from estimate_tracker.core.exceptions import ConfigurationError

PYPROJECT_PATH_ENV = "ESTIMATE_TRACKER_PYPROJECT_PATH"
TOOL_SECTION = "estimate_tracker"


class ConfigFileError(ConfigurationError):
    """Raised when configuration file loading fails."""

    def __init__(
        self, file_path: Path, message: str, cause: Exception | None = None
    ) -> None:
        """Initialize with file path, message, and optional cause."""
        self.file_path = file_path
        self.message = message
        self.cause = cause
        super().__init__(f"Config file error in {file_path}: {message}")


class FileConfigLoader:
    """Loads configuration from pyproject.toml with profile support."""

    def load_project_config(
        self, project_root: Path | None = None, profile: str | None = None
    ) -> dict[str, Any]:
        """Load configuration from pyproject.toml.

        Args:
            project_root: Directory to search for pyproject.toml. If None,
                uses ESTIMATE_TRACKER_PYPROJECT_PATH or searches the current
                directory and its parents.
            profile: Optional profile name to load instead of the base table.

        Returns:
            Configuration values from the file; empty if there is no file or
            no estimate_tracker table.

        Raises:
            ConfigFileError: If the file cannot be parsed or the profile is
                missing.
        """
        pyproject_path = self._find_pyproject_toml(project_root)
        if not pyproject_path:
            return {}

        try:
            with Path(pyproject_path).open(mode="rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigFileError(
                pyproject_path, f"Failed to parse TOML: {e}", cause=e
            ) from e

        section = data.get("tool", {}).get(TOOL_SECTION, {})
        if not section:
            if profile:
                raise ConfigFileError(
                    pyproject_path, f"Profile '{profile}' not found. Available profiles: []"
                )
            return {}

        if profile:
            profiles = section.get("profiles", {})
            if profile not in profiles:
                raise ConfigFileError(
                    pyproject_path,
                    f"Profile '{profile}' not found. Available profiles: {list(profiles)}",
                )
            return dict(profiles[profile])

        config = dict(section)
        config.pop("profiles", None)
        return config

    def _find_pyproject_toml(self, start_dir: Path | None = None) -> Path | None:
        """Find pyproject.toml by searching up the directory tree."""
        if start_dir is None:
            explicit = os.getenv(PYPROJECT_PATH_ENV)
            if explicit:
                path = Path(explicit)
                return path if path.exists() else None
            start_dir = Path.cwd()

        current = Path(start_dir).resolve()
        while True:
            pyproject_path = current / "pyproject.toml"
            if pyproject_path.exists():
                return pyproject_path
            if current == current.parent:
                return None
            current = current.parent
