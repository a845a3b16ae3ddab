"""Text sanitization for synthetic prompts and persisted blocker records.

Three profiles:

- ``sanitize_input``: short single-line text interpolated into a message the
  agent reads as coming from the user.
- ``sanitize_blocker_text``: text embedded in the markdown blocker log or the
  system prompt. Strips invisible and control characters, escapes markdown
  and neutralizes the record-start marker so content cannot forge records.
- ``redact_secrets``: masks credential-shaped values in serialized metadata.
"""

from __future__ import annotations

import re

RECORD_MARKER = "## Blocker #"
REDACTED = "[REDACTED]"

INPUT_MAX_LENGTH = 200
ELLIPSIS = "..."

_INPUT_STRIP = re.compile(r"[\n\r\t]")
_LINE_BREAKS = re.compile(r"[\n\r\t]")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_INVISIBLE_CHARS = re.compile("[\u200b-\u200f\u202a-\u202e\u2060\u2066-\u2069\ufeff]")
_ANGLE_BRACKETS = re.compile(r"[<>]")
# Lookbehind keeps already-escaped characters from being escaped twice
_MARKDOWN_CHARS = re.compile(r"(?<!\\)([*_\[\]()`#])")
_WHITESPACE = re.compile(r"\s+")
_RECORD_MARKER_LINE = re.compile(r"^## Blocker #", re.MULTILINE)

# Credential-shaped key names. Separators inside a key may be _ - . or :
_SECRET_KEYWORDS = (
    r"api[\w.\-:]*key"
    r"|access[\w.\-:]*token"
    r"|auth[\w.\-:]*token"
    r"|client[\w.\-:]*secret"
    r"|private[\w.\-:]*key"
    r"|token"
    r"|bearer"
    r"|authorization"
    r"|auth(?![a-zA-Z])"
    r"|password"
    r"|passwd"
    r"|pwd"
    r"|secret"
)

_JSON_SECRET = re.compile(
    rf'("([^"]*(?:{_SECRET_KEYWORDS})[^"]*)"\s*:\s*)(?:"(?:[^"\\]|\\.)*"|[^\s,}}\]]+)',
    re.IGNORECASE,
)
# Quotes around the value may themselves be JSON-escaped (\")
_CLI_SECRET = re.compile(
    rf"""([^\s="']*(?:{_SECRET_KEYWORDS})[^\s="']*)=(?:\\?["'])?[^\s"'\\,]+(?:\\?["'])?""",
    re.IGNORECASE,
)
_HEADER_SECRET = re.compile(
    r"""\b(Authorization|Auth)\s*:\s*(?:Bearer\s+)?[^\s"',}]+""",
    re.IGNORECASE,
)
_INLINE_SECRET = re.compile(
    rf"""(?<!["\w])([\w.\-]*(?:{_SECRET_KEYWORDS})[\w.\-]*)\s*:\s+(?!\[REDACTED\])[^\s"',}}]+""",
    re.IGNORECASE,
)


def sanitize_input(text: str) -> str:
    """Constrain text that will be sent to the agent as a user message."""
    return _INPUT_STRIP.sub("", text).strip()[:INPUT_MAX_LENGTH]


def escape_record_marker(text: str) -> str:
    """Escape any line-anchored record marker so it is not counted as a record."""
    return _RECORD_MARKER_LINE.sub(r"\\#\\# Blocker \\#", text)


def sanitize_blocker_text(text: str, max_length: int = 100) -> str:
    """Make untrusted text safe to embed in markdown.

    Applying it twice yields the same string, apart from truncation when
    escaping pushed the first result past ``max_length``.

    Args:
        text: Untrusted input.
        max_length: Maximum length before the ellipsis is appended.

    Returns:
        Single-line, escaped text. Empty if nothing printable remains.
    """
    if not text:
        return ""
    result = _LINE_BREAKS.sub(" ", text)
    result = _CONTROL_CHARS.sub("", result)
    result = _INVISIBLE_CHARS.sub("", result)
    result = _ANGLE_BRACKETS.sub("", result)
    result = _MARKDOWN_CHARS.sub(r"\\\1", result)
    result = _WHITESPACE.sub(" ", result).strip()
    if len(result) > max_length:
        result = result[:max_length]
        # Don't leave a dangling escape in front of the ellipsis
        if result.endswith("\\") and not result.endswith("\\\\"):
            result = result[:-1]
        result = result.rstrip() + ELLIPSIS
    return escape_record_marker(result)


def redact_secrets(text: str) -> str:
    """Replace credential values with ``[REDACTED]``, keeping key names."""
    if not text:
        return text
    result = _JSON_SECRET.sub(rf'\1"{REDACTED}"', text)
    result = _CLI_SECRET.sub(rf"\1={REDACTED}", result)
    result = _HEADER_SECRET.sub(rf"\1: {REDACTED}", result)
    result = _INLINE_SECRET.sub(rf"\1: {REDACTED}", result)
    return result
