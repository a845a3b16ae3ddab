"""Configuration file loading and caching.

Handles:
- YAML file parsing
- Environment variable overrides
- Per-field validation with fallback to defaults
- Conversion from dict to typed PluginConfig dataclass
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

import yaml

from blockerdiverter.config.merge import merge_configs
from blockerdiverter.config.paths import get_config_paths
from blockerdiverter.config.schema import DEFAULT_BLOCKERS_FILE, LoggingConfig, PluginConfig
from blockerdiverter.logging import get_logger

log = get_logger("config")

# Global cached config
_cached_config: PluginConfig | None = None


@dataclass(frozen=True)
class _FieldRule:
    kind: type
    minimum: int | None = None
    maximum: int | None = None


_FIELD_RULES: dict[str, _FieldRule] = {
    "enabled": _FieldRule(bool),
    "default_divert_blockers": _FieldRule(bool),
    "blockers_file": _FieldRule(str),
    "max_blockers_per_run": _FieldRule(int, 1, 100),
    "max_blockers_per_file": _FieldRule(int, 1),
    "cooldown_ms": _FieldRule(int, 1000),
    "max_reprompts": _FieldRule(int, 1),
    "reprompt_window_ms": _FieldRule(int, 60000),
    "completion_marker": _FieldRule(str),
    "prompt_timeout_ms": _FieldRule(int, 1000),
}


def load_yaml_file(path: Any) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found or invalid."""
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except yaml.YAMLError as e:
        log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        log.warning("Error reading %s: %s", path, e)
        return {}


def env_overrides() -> dict[str, Any]:
    """Build config dict from environment variables (highest priority)."""
    overrides: dict[str, Any] = {}

    log_path = os.environ.get("BLOCKER_DIVERTER_LOG")
    if log_path:
        overrides["logging"] = {"file": log_path}

    return overrides


def _validated(name: str, value: Any, default: Any) -> Any:
    rule = _FIELD_RULES[name]
    # bool is an int subclass; keep the two apart
    if rule.kind is int and (isinstance(value, bool) or not isinstance(value, int)):
        log.warning("Config %s must be an integer, got %r; using %r", name, value, default)
        return default
    if not isinstance(value, rule.kind):
        log.warning("Config %s must be %s, got %r; using %r", name, rule.kind.__name__, value, default)
        return default
    if rule.minimum is not None and value < rule.minimum:
        log.warning("Config %s=%r below minimum %d; using %r", name, value, rule.minimum, default)
        return default
    if rule.maximum is not None and value > rule.maximum:
        log.warning("Config %s=%r above maximum %d; using %r", name, value, rule.maximum, default)
        return default
    return value


def _resolve_blockers_file(blockers_file: str, project_root: str | None) -> str:
    """Keep ``blockers_file`` if it stays inside the project, else the default."""
    if not project_root:
        return blockers_file

    from blockerdiverter.errors import PathTraversalError
    from blockerdiverter.persistence import validate_path

    try:
        validate_path(blockers_file, project_root)
    except PathTraversalError:
        log.warning(
            "blockers_file %r escapes project root %s; using %s",
            blockers_file,
            project_root,
            DEFAULT_BLOCKERS_FILE,
        )
        return DEFAULT_BLOCKERS_FILE
    return blockers_file


def dict_to_config(data: dict[str, Any], project_root: str | None = None) -> PluginConfig:
    """Convert a merged dict to a typed PluginConfig.

    Each known field is validated on its own; an invalid value falls back to
    that field's default instead of discarding the whole file.
    """
    defaults = PluginConfig()
    values: dict[str, Any] = {}
    for name in _FIELD_RULES:
        if name in data and data[name] is not None:
            values[name] = _validated(name, data[name], getattr(defaults, name))

    if "blockers_file" in values:
        values["blockers_file"] = _resolve_blockers_file(values["blockers_file"], project_root)

    log_data = data.get("logging") or {}
    if not isinstance(log_data, dict):
        log.warning("Config logging must be a mapping, got %r", log_data)
        log_data = {}
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        file=log_data.get("file"),
    )

    known_keys = set(_FIELD_RULES) | {"logging"}
    extra = {k: v for k, v in data.items() if k not in known_keys}

    return PluginConfig(**values, logging=logging_config, extra=extra)


def load_config(project_root: str | None = None, reload: bool = False) -> PluginConfig:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. Environment variables
    2. Project config ($project_root/.blocker-diverter/config.yaml)
    3. User config (~/.config/blocker-diverter/config.yaml)

    Args:
        project_root: Project directory for project-level config.
        reload: Force reload even if cached.

    Returns:
        Merged PluginConfig object.
    """
    global _cached_config

    if _cached_config is not None and not reload and project_root is None:
        return _cached_config

    configs: list[dict[str, Any]] = []
    for path in get_config_paths(project_root):
        config_data = load_yaml_file(path)
        if config_data:
            log.debug("Loaded config from %s", path)
            configs.append(config_data)

    if not configs:
        log.info("No config found, using defaults")

    env_config = env_overrides()
    if env_config:
        configs.append(env_config)

    config = dict_to_config(merge_configs(*configs), project_root)

    # Cache only global config (no project_root)
    if project_root is None:
        _cached_config = config

    return config


def get_config() -> PluginConfig:
    """Get the cached global config, loading it if needed."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Reset cached config (tests, forced reload)."""
    global _cached_config
    _cached_config = None
