"""Configuration path resolution.

Handles config file locations for:
- User: $XDG_CONFIG_HOME/blocker-diverter/ or ~/.config/blocker-diverter/
  (%APPDATA%\\blocker-diverter\\ on Windows)
- Project: $project_root/.blocker-diverter/
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

CONFIG_FILENAME = "config.yaml"
APP_NAME = "blocker-diverter"
PROJECT_DIR_NAME = ".blocker-diverter"
TEMPLATE_FILENAME = "BLOCKERS.template.md"
LOCKS_DIR_NAME = "locks"


def get_user_config_path() -> Path | None:
    """Get user-level config path.

    Returns:
        Path to user config file, or None if not determinable.
        The file may not exist.
    """
    if sys.platform == "win32":
        app_data = os.environ.get("APPDATA")
        if app_data:
            return Path(app_data) / APP_NAME / CONFIG_FILENAME
        return None

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_NAME / CONFIG_FILENAME
    return Path.home() / ".config" / APP_NAME / CONFIG_FILENAME


def get_project_dir(project_root: str) -> Path:
    """Get the per-project plugin directory (config and record template)."""
    return Path(project_root) / PROJECT_DIR_NAME


def get_project_config_path(project_root: str) -> Path:
    """Get project-level config path (may not exist)."""
    return get_project_dir(project_root) / CONFIG_FILENAME


def get_template_path(project_root: str) -> Path:
    """Get the path of the project's custom blocker record template."""
    return get_project_dir(project_root) / TEMPLATE_FILENAME


def get_lock_path(project_root: str, destination: Path) -> Path:
    """Get the file lock guarding writes to ``destination``.

    Locks live in the project's plugin directory rather than beside the
    blocker log. The name is derived from the destination's path relative
    to the project root, so distinct destinations get distinct locks.
    """
    relative = os.path.relpath(destination, os.path.realpath(project_root))
    name = relative.replace(os.sep, "__").replace("/", "__")
    return get_project_dir(project_root) / LOCKS_DIR_NAME / f"{name}.lock"


def get_config_paths(project_root: str | None = None) -> list[Path]:
    """Get all config paths in priority order (lowest to highest).

    Args:
        project_root: Optional project directory for project-level config.

    Returns:
        List of config paths in order: user, project.
        Later paths override earlier ones when merging.
    """
    paths: list[Path] = []

    user_path = get_user_config_path()
    if user_path:
        paths.append(user_path)

    if project_root:
        paths.append(get_project_config_path(project_root))

    return paths
