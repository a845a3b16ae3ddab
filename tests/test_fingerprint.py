"""Tests for fingerprints, blocker ids and timestamps."""

from __future__ import annotations

import re

from blockerdiverter.fingerprint import fingerprint, make_blocker_id, utc_timestamp


class TestFingerprint:
    def test_is_sha256_hex(self) -> None:
        assert re.fullmatch(r"[0-9a-f]{64}", fingerprint("Which DB?", "ctx"))

    def test_whitespace_normalized(self) -> None:
        assert fingerprint("Which  DB?\n", " ctx ") == fingerprint("Which DB?", "ctx")

    def test_case_sensitive(self) -> None:
        assert fingerprint("Which DB?") != fingerprint("which db?")

    def test_context_participates(self) -> None:
        assert fingerprint("Which DB?", "a") != fingerprint("Which DB?", "b")

    def test_field_boundary_unambiguous(self) -> None:
        assert fingerprint("a b", "c") != fingerprint("a", "b c")

    def test_missing_context_same_as_empty(self) -> None:
        assert fingerprint("q") == fingerprint("q", "")


class TestBlockerId:
    def test_format(self) -> None:
        assert make_blocker_id("s1", "abcdef123", 1700000000000) == "1700000000000-s1-abcdef"


class TestUtcTimestamp:
    def test_epoch(self) -> None:
        assert utc_timestamp(0) == "1970-01-01T00:00:00.000Z"

    def test_millisecond_precision(self) -> None:
        assert utc_timestamp(1700000000123) == "2023-11-14T22:13:20.123Z"
