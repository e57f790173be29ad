"""Tests for stderr collection (stderr_collector.py)."""

from __future__ import annotations

import asyncio
import io
import logging

import pytest

from testsum.models.execution import ExecutionState
from testsum.stderr_collector import collect_stderr
from tests.helpers import make_stream


class _ExplodingReader:
    """Reader that yields one line and then fails."""

    def __init__(self) -> None:
        self._lines = [b"first\n"]

    async def readline(self) -> bytes:
        if self._lines:
            return self._lines.pop(0)
        raise ConnectionResetError("pipe closed")


class TestCollectStderr:
    async def test_records_lines_without_newlines(self) -> None:
        state = ExecutionState()
        sink = io.StringIO()

        recorded = await collect_stderr(make_stream("one\r\ntwo\n"), sink, state)

        assert recorded == 2
        assert state.errors() == ["one", "two"]
        assert sink.getvalue() == "one\r\ntwo\n"

    async def test_build_header_is_echoed_only(self) -> None:
        state = ExecutionState()
        sink = io.StringIO()

        recorded = await collect_stderr(make_stream("# pkg/foo\nreal error\n"), sink, state)

        assert recorded == 1
        assert state.errors() == ["real error"]
        assert sink.getvalue() == "# pkg/foo\nreal error\n"

    async def test_last_line_without_newline(self) -> None:
        state = ExecutionState()
        sink = io.StringIO()

        await collect_stderr(make_stream("dangling"), sink, state)

        assert state.errors() == ["dangling"]
        assert sink.getvalue() == "dangling\n"

    async def test_invalid_utf8_is_replaced(self) -> None:
        state = ExecutionState()

        await collect_stderr(make_stream(b"bad \xff byte\n"), io.StringIO(), state)

        assert state.errors() == ["bad � byte"]

    async def test_empty_stream(self) -> None:
        state = ExecutionState()
        assert await collect_stderr(make_stream(b""), io.StringIO(), state) == 0
        assert state.errors() == []

    async def test_read_failure_is_logged_not_raised(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        state = ExecutionState()
        reader: asyncio.StreamReader = _ExplodingReader()  # type: ignore[assignment]

        with caplog.at_level(logging.WARNING, logger="testsum.stderr_collector"):
            recorded = await collect_stderr(reader, io.StringIO(), state)

        assert recorded == 1
        assert state.errors() == ["first"]
        assert "pipe closed" in caplog.text
