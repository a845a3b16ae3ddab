"""Merging and key normalization for configuration cascading.

Config files may use either snake_case (the canonical spelling) or the
camelCase spelling used by the host's JSON settings. Keys are normalized
before merging so that a camelCase project file overrides a snake_case
user file for the same setting.
"""

from __future__ import annotations

import re
from typing import Any

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def to_snake_case(key: str) -> str:
    """Convert ``maxBlockersPerRun`` to ``max_blockers_per_run``."""
    return _CAMEL_BOUNDARY.sub(r"_\1", key).lower()


def normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with every mapping key in snake_case."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            value = normalize_keys(value)
        result[to_snake_case(str(key))] = value
    return result


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``.

    - Nested dicts are merged recursively
    - Lists and scalars are replaced
    - None in ``override`` leaves the base value in place
    """
    result = base.copy()
    for key, value in override.items():
        if value is None:
            continue
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        else:
            result[key] = value
    return result


def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Normalize and merge configs in order (later overrides earlier)."""
    result: dict[str, Any] = {}
    for config in configs:
        if config:
            result = deep_merge(result, normalize_keys(config))
    return result
