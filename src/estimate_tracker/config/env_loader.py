"""Environment variable configuration loading.

Reads ESTIMATE_TRACKER_* variables, optionally after loading a .env file.
"""

import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .schema import TrackerSettings


class EnvironmentConfigLoader:
    """Loads configuration values that are explicitly set in the environment."""

    def load_env_config(self, env_file: str | Path | None = None) -> dict[str, Any]:
        """Load configuration from environment variables.

        Args:
            env_file: Optional .env file loaded first. Variables already in
                the environment are not overridden.

        Returns:
            Parsed values for the fields that are set in the environment.

        Raises:
            FileNotFoundError: If ``env_file`` does not exist.
            ValueError: If a variable holds an invalid value.
        """
        if env_file:
            self._load_env_file(env_file)

        names = TrackerSettings.env_var_names()
        raw = {field: os.environ[var] for var, field in names.items() if var in os.environ}
        if not raw:
            return {}

        try:
            settings = TrackerSettings(**raw)
        except ValidationError as e:
            set_vars = ", ".join(f"{var}={os.environ[var]}" for var in names if var in os.environ)
            raise ValueError(
                f"Invalid environment variable values: {set_vars}. Error: {e}"
            ) from e
        return {field: getattr(settings, field) for field in raw}

    def _load_env_file(self, env_file: str | Path) -> None:
        """Load KEY=VALUE lines from a .env file into the environment."""
        env_path = Path(env_file)
        if not env_path.exists():
            raise FileNotFoundError(f"Environment file not found: {env_path}")

        try:
            with env_path.open(encoding="utf-8") as f:
                for line_num, line in enumerate(f, 1):
                    line = line.strip()
                    if not line or line.startswith("#"):
                        continue
                    if "=" not in line:
                        raise ValueError(
                            f"Invalid line {line_num} in {env_path}: {line!r}"
                        )

                    key, value = line.split("=", 1)
                    key = key.strip()
                    value = value.strip()
                    if (value.startswith('"') and value.endswith('"')) or (
                        value.startswith("'") and value.endswith("'")
                    ):
                        value = value[1:-1]

                    if key not in os.environ:
                        os.environ[key] = value
        except OSError as e:
            raise ValueError(f"Failed to read environment file {env_path}: {e}") from e
