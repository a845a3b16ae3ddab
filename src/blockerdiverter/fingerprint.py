"""Stable fingerprints, ids and timestamps for blockers."""

from __future__ import annotations

import hashlib
import json
import re
from datetime import datetime, timezone

_WHITESPACE = re.compile(r"\s+")


def _normalize(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def fingerprint(question: str, context: str = "") -> str:
    """SHA-256 hex digest of the whitespace-normalized (question, context) pair.

    Case is significant. The pair is JSON-encoded before hashing so that
    ``("a b", "c")`` and ``("a", "b c")`` never collide.
    """
    payload = json.dumps([_normalize(question), _normalize(context or "")], ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def make_blocker_id(session_id: str, digest: str, now_ms: int) -> str:
    """Build ``<epoch ms>-<session id>-<first 6 hex chars of digest>``."""
    return f"{now_ms}-{session_id}-{digest[:6]}"


def utc_timestamp(now_ms: int) -> str:
    """Format epoch milliseconds as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    moment = datetime.fromtimestamp(now_ms / 1000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now_ms % 1000:03d}Z"
