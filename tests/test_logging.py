"""Tests for logging setup and the host log handler."""

from __future__ import annotations

import asyncio
import logging

import pytest

from blockerdiverter.logging import (
    SERVICE_NAME,
    HostLogHandler,
    attach_host_sink,
    detach_host_sink,
    get_logger,
    logger,
)


def make_record(level: int, message: str) -> logging.LogRecord:
    return logging.LogRecord("blockerdiverter.test", level, __file__, 1, message, None, None)


class TestGetLogger:
    def test_root_logger(self) -> None:
        assert get_logger() is logger
        assert logger.name == "blockerdiverter"

    def test_child_logger(self) -> None:
        assert get_logger("scheduler").name == "blockerdiverter.scheduler"


class TestHostLogHandler:
    """Records are forwarded best effort; sink failures never surface."""

    def test_sync_sink(self) -> None:
        entries: list[dict] = []
        handler = HostLogHandler(entries.append)
        handler.handle(make_record(logging.WARNING, "disk almost full"))
        assert entries == [{"service": SERVICE_NAME, "level": "warn", "message": "disk almost full"}]

    @pytest.mark.parametrize(
        ("level", "name"),
        [
            (logging.DEBUG, "debug"),
            (logging.INFO, "info"),
            (logging.WARNING, "warn"),
            (logging.ERROR, "error"),
            (logging.CRITICAL, "error"),
        ],
    )
    def test_level_mapping(self, level: int, name: str) -> None:
        entries: list[dict] = []
        HostLogHandler(entries.append).handle(make_record(level, "x"))
        assert entries[0]["level"] == name

    def test_sync_sink_failure_swallowed(self) -> None:
        def broken(entry: dict) -> None:
            raise ConnectionError("host log API down")

        HostLogHandler(broken).handle(make_record(logging.ERROR, "x"))

    async def test_async_sink(self) -> None:
        entries: list[dict] = []

        async def sink(entry: dict) -> None:
            await asyncio.sleep(0)
            entries.append(entry)

        handler = HostLogHandler(sink)
        handler.handle(make_record(logging.INFO, "async entry"))
        await handler.drain()
        assert entries[0]["message"] == "async entry"

    async def test_async_sink_failure_swallowed(self) -> None:
        async def sink(entry: dict) -> None:
            raise RuntimeError("rejected")

        handler = HostLogHandler(sink)
        handler.handle(make_record(logging.INFO, "x"))
        await handler.drain()

    async def test_async_sink_from_worker_thread(self) -> None:
        entries: list[dict] = []

        async def sink(entry: dict) -> None:
            entries.append(entry)

        handler = HostLogHandler(sink)
        await asyncio.to_thread(handler.handle, make_record(logging.WARNING, "logged off the loop"))
        await handler.drain()
        assert entries == [{"service": SERVICE_NAME, "level": "warn", "message": "logged off the loop"}]

    async def test_worker_thread_uses_last_seen_loop(self) -> None:
        entries: list[dict] = []

        async def sink(entry: dict) -> None:
            entries.append(entry["message"])

        handler = await asyncio.to_thread(HostLogHandler, sink)
        handler.handle(make_record(logging.INFO, "on loop"))
        await asyncio.to_thread(handler.handle, make_record(logging.INFO, "off loop"))
        await handler.drain()
        assert entries == ["on loop", "off loop"]

    def test_async_sink_without_loop_is_dropped(self) -> None:
        calls: list[dict] = []

        async def sink(entry: dict) -> None:
            calls.append(entry)

        HostLogHandler(sink).handle(make_record(logging.INFO, "x"))
        assert calls == []


class TestAttachDetach:
    def test_attach_and_detach(self, caplog: pytest.LogCaptureFixture) -> None:
        entries: list[dict] = []
        handler = attach_host_sink(entries.append)
        try:
            with caplog.at_level(logging.WARNING, logger="blockerdiverter"):
                get_logger("test").warning("first")
        finally:
            detach_host_sink(handler)
        get_logger("test").warning("second")
        assert [e["message"] for e in entries] == ["first"]
        assert handler not in logger.handlers

    def test_logging_continues_when_sink_fails(self, caplog: pytest.LogCaptureFixture) -> None:
        def broken(entry: dict) -> None:
            raise OSError("pipe closed")

        handler = attach_host_sink(broken)
        try:
            with caplog.at_level(logging.WARNING, logger="blockerdiverter"):
                get_logger("test").warning("still logged")
        finally:
            detach_host_sink(handler)
        assert "still logged" in caplog.text
