"""Blocker log persistence.

Blockers are appended to a markdown file inside the project, one record per
blocker, each starting with the line-anchored marker ``## Blocker #``. The
file is rotated to a timestamped backup once it holds the configured number
of records.

Path escapes raise :class:`PathTraversalError`. Every other I/O failure is
logged and reported as ``False`` / ``0`` so callers can degrade.
"""

from __future__ import annotations

import asyncio
import os
import re
from datetime import datetime, timezone
from pathlib import Path

from filelock import FileLock, Timeout

from blockerdiverter.config.paths import get_lock_path, get_template_path
from blockerdiverter.config.schema import DEFAULT_BLOCKERS_FILE
from blockerdiverter.errors import PathTraversalError
from blockerdiverter.logging import get_logger
from blockerdiverter.models import Blocker
from blockerdiverter.sanitize import sanitize_blocker_text
from blockerdiverter.templates import DEFAULT_RECORD_TEMPLATE

log = get_logger("persistence")

TEMPLATE_RELATIVE_PATH = ".blocker-diverter/BLOCKERS.template.md"

# Free-text fields keep far more than the prompt-facing default
TEXT_MAX_LENGTH = 2000
FIELD_MAX_LENGTH = 200

_RECORD_START = re.compile(r"^## Blocker #", re.MULTILINE)
_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")

# project root -> template text
_template_cache: dict[str, str] = {}


def validate_path(path: str | os.PathLike[str], project_root: str | os.PathLike[str]) -> Path:
    """Resolve ``path`` against ``project_root`` and require it to stay inside.

    Containment is decided on the relative path from the root, so a sibling
    such as ``/proj-evil`` is rejected for root ``/proj``.

    Returns:
        The resolved absolute path.

    Raises:
        PathTraversalError: If the path resolves outside the root.
    """
    root = Path(project_root).resolve()
    resolved = (root / path).resolve()
    try:
        relative = os.path.relpath(resolved, root)
    except ValueError:
        # Different drive on Windows
        raise PathTraversalError(str(path), str(root)) from None
    if relative == os.pardir or relative.startswith(os.pardir + os.sep) or os.path.isabs(relative):
        raise PathTraversalError(str(path), str(root))
    return resolved


def load_template(project_root: str | os.PathLike[str]) -> str:
    """Return the project's record template, or the built-in default.

    The result is cached per project root until :func:`clear_template_cache`.
    """
    key = str(Path(project_root).resolve())
    cached = _template_cache.get(key)
    if cached is not None:
        return cached

    template = DEFAULT_RECORD_TEMPLATE
    custom = get_template_path(key)
    try:
        if custom.is_file():
            template = custom.read_text(encoding="utf-8")
            log.debug("Using custom blocker template %s", custom)
    except (OSError, UnicodeDecodeError) as e:
        log.warning("Failed to read blocker template %s: %s; using default", custom, e)
        template = DEFAULT_RECORD_TEMPLATE

    _template_cache[key] = template
    return template


def clear_template_cache() -> None:
    """Forget cached templates so the next load re-reads from disk."""
    _template_cache.clear()


def _options_section(blocker: Blocker) -> str:
    if not blocker.options:
        return ""
    lines = ["", "### Options Considered"]
    lines.extend(
        f"{index}. {sanitize_blocker_text(option, FIELD_MAX_LENGTH)}"
        for index, option in enumerate(blocker.options, start=1)
    )
    return "\n".join(lines) + "\n"


def _chosen_section(blocker: Blocker) -> str:
    parts: list[str] = []
    if blocker.chosen_option:
        parts.append(f"\n### Chosen Option\n{sanitize_blocker_text(blocker.chosen_option, FIELD_MAX_LENGTH)}\n")
    if blocker.chosen_reasoning:
        parts.append(f"\n### Reasoning\n{sanitize_blocker_text(blocker.chosen_reasoning, TEXT_MAX_LENGTH)}\n")
    if blocker.clarification:
        parts.append(f"\n### User Clarification\n{sanitize_blocker_text(blocker.clarification, TEXT_MAX_LENGTH)}\n")
    return "".join(parts)


def render_blocker(blocker: Blocker, template: str = DEFAULT_RECORD_TEMPLATE) -> str:
    """Fill ``template`` with the blocker's sanitized fields.

    Unknown placeholders render as empty strings. Substitution is a single
    pass, so placeholder syntax inside field values is left alone.
    """
    values = {
        "id": sanitize_blocker_text(blocker.id, FIELD_MAX_LENGTH),
        "timestamp": sanitize_blocker_text(blocker.timestamp, FIELD_MAX_LENGTH),
        "sessionId": sanitize_blocker_text(blocker.session_id, FIELD_MAX_LENGTH),
        "category": blocker.category.value,
        "question": sanitize_blocker_text(blocker.question, TEXT_MAX_LENGTH),
        "context": sanitize_blocker_text(blocker.context, TEXT_MAX_LENGTH) or "No additional context",
        "blocksProgress": "Yes" if blocker.blocks_progress else "No",
        "status": blocker.clarified.value if blocker.clarified else "pending",
        "optionsSection": _options_section(blocker),
        "chosenSection": _chosen_section(blocker),
    }
    return _PLACEHOLDER.sub(lambda m: values.get(m.group(1), ""), template)


def count_blocker_records(text: str) -> int:
    """Count line-anchored ``## Blocker #`` markers."""
    return len(_RECORD_START.findall(text))


def backup_path_for(path: Path, now: datetime) -> Path:
    """Timestamped sibling of ``path`` used when rotating.

    ``BLOCKERS.md`` becomes ``BLOCKERS-2026-01-31T12-00-00.md``; a numeric
    suffix is added if that name is already taken.
    """
    stamp = now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
    candidate = path.with_name(f"{path.stem}-{stamp}{path.suffix}")
    counter = 1
    while candidate.exists():
        candidate = path.with_name(f"{path.stem}-{stamp}-{counter}{path.suffix}")
        counter += 1
    return candidate


class BlockerLog:
    """Append-only markdown log of blockers for one project.

    Appends through one instance are serialized by an asyncio lock; a file
    lock under ``.blocker-diverter/locks/`` serializes writers across
    instances and processes sharing the same destination.
    """

    def __init__(
        self,
        project_root: str | os.PathLike[str],
        path: str | os.PathLike[str] = DEFAULT_BLOCKERS_FILE,
        max_records_per_file: int | None = None,
        lock_timeout: float = 10.0,
    ) -> None:
        self.project_root = str(project_root)
        self.path = str(path)
        self.max_records_per_file = max_records_per_file
        self._lock_timeout = lock_timeout
        self._lock = asyncio.Lock()

    def resolve(self) -> Path:
        """Validated absolute destination path."""
        return validate_path(self.path, self.project_root)

    def _file_lock(self, target: Path) -> FileLock:
        lock_path = get_lock_path(self.project_root, target)
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        return FileLock(str(lock_path), timeout=self._lock_timeout)

    async def append(self, blocker: Blocker) -> bool:
        """Render and append one record.

        Returns:
            True on success, False if the write failed (nothing was written).

        Raises:
            PathTraversalError: If the destination escapes the project root.
        """
        target = self.resolve()
        async with self._lock:
            try:
                await asyncio.to_thread(self._append_sync, target, blocker)
            except (OSError, Timeout) as e:
                log.error("Failed to append blocker %s to %s: %s", blocker.id, target, e)
                return False
        log.debug("Appended blocker %s to %s", blocker.id, target)
        return True

    def _append_sync(self, target: Path, blocker: Blocker) -> None:
        record = render_blocker(blocker, load_template(self.project_root))
        if not record.startswith("\n"):
            record = "\n" + record
        if not record.endswith("\n"):
            record += "\n"
        data = record.encode("utf-8")

        target.parent.mkdir(parents=True, exist_ok=True)
        with self._file_lock(target):
            if self.max_records_per_file:
                self._rotate_sync(target, self.max_records_per_file)
            with open(target, "ab") as f:
                start = f.tell()
                try:
                    f.write(data)
                    f.flush()
                except OSError:
                    f.truncate(start)
                    raise

    async def count(self) -> int:
        """Number of records in the current file (0 if missing or unreadable)."""
        target = self.resolve()
        return await asyncio.to_thread(self._count_sync, target)

    def _count_sync(self, target: Path) -> int:
        if not target.exists():
            return 0
        try:
            return count_blocker_records(target.read_text(encoding="utf-8", errors="replace"))
        except OSError as e:
            log.warning("Failed to count blockers in %s: %s", target, e)
            return 0

    async def rotate_if_needed(self, max_count: int | None = None) -> bool:
        """Rotate the file if it holds at least ``max_count`` records.

        Returns:
            True if the file was renamed to a backup.
        """
        limit = max_count or self.max_records_per_file
        if not limit:
            return False
        target = self.resolve()
        async with self._lock:
            try:
                return await asyncio.to_thread(self._rotate_locked, target, limit)
            except (OSError, Timeout) as e:
                log.warning("Could not lock %s for rotation: %s", target, e)
                return False

    def _rotate_locked(self, target: Path, max_count: int) -> bool:
        if not target.exists():
            return False
        with self._file_lock(target):
            return self._rotate_sync(target, max_count)

    def _rotate_sync(self, target: Path, max_count: int) -> bool:
        if not target.exists():
            return False
        count = self._count_sync(target)
        if count < max_count:
            return False
        backup = backup_path_for(target, datetime.now(timezone.utc))
        try:
            target.rename(backup)
        except OSError as e:
            log.warning("Failed to rotate %s: %s", target, e)
            return False
        log.info("Rotated %s (%d records) to %s", target.name, count, backup.name)
        return True


__all__ = [
    "BlockerLog",
    "PathTraversalError",
    "TEMPLATE_RELATIVE_PATH",
    "backup_path_for",
    "clear_template_cache",
    "count_blocker_records",
    "load_template",
    "render_blocker",
    "validate_path",
]
