"""Configuration management for Blocker Diverter.

Provides YAML-based configuration with:
- User-level config (~/.config/blocker-diverter/config.yaml)
- Project-level config ($project_root/.blocker-diverter/config.yaml)
- Environment variable overrides (highest priority)

Example usage:
    from blockerdiverter.config import load_config

    config = load_config(project_root="/path/to/project")
    print(config.max_reprompts)
"""

from blockerdiverter.config.paths import (
    get_config_paths,
    get_lock_path,
    get_project_config_path,
    get_template_path,
    get_user_config_path,
)
from blockerdiverter.config.schema import (
    DEFAULT_BLOCKERS_FILE,
    DEFAULT_COMPLETION_MARKER,
    LoggingConfig,
    PluginConfig,
)
from blockerdiverter.config.loader import (
    get_config,
    load_config,
    reset_config,
)

__all__ = [
    "PluginConfig",
    "LoggingConfig",
    "DEFAULT_BLOCKERS_FILE",
    "DEFAULT_COMPLETION_MARKER",
    "load_config",
    "get_config",
    "reset_config",
    "get_config_paths",
    "get_user_config_path",
    "get_project_config_path",
    "get_template_path",
    "get_lock_path",
]
