"""Configuration for the delete subsystem.

Resolve once with ``resolve_config()``, then hand ``.to_frozen()`` to the
components that need it.
"""

from pathlib import Path
from typing import Any

from .file_loader import ConfigFileError, FileConfigLoader
from .resolver import ConfigResolver
from .schema import TrackerSettings
from .types import ConfigOrigin, FrozenConfig, ResolvedConfig, SourceMap

_resolver = ConfigResolver()


def resolve_config(
    programmatic: dict[str, Any] | None = None,
    *,
    profile: str | None = None,
    use_env_file: str | Path | None = None,
    project_root: Path | None = None,
) -> ResolvedConfig:
    """Resolve configuration from all sources with proper precedence.

    Programmatic > Environment > Project file > Defaults.

    Example:
        config = resolve_config({"max_retries": 5})
        orchestrator = DeleteOrchestrator.from_config(delete_project, config.to_frozen())
    """
    return _resolver.resolve(
        programmatic,
        profile=profile,
        use_env_file=use_env_file,
        project_root=project_root,
    )


__all__ = [
    "ConfigFileError",
    "ConfigOrigin",
    "ConfigResolver",
    "FileConfigLoader",
    "FrozenConfig",
    "ResolvedConfig",
    "SourceMap",
    "TrackerSettings",
    "resolve_config",
]
