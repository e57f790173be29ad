"""Drive the event stream: decode, apply, format and write each event in order.

Each event is fully handled (state update, then formatter, then write)
before the next line is read. The stderr stream is drained concurrently by
:func:`testsum.stderr_collector.collect_stderr` and always joined before the
result is returned.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from testsum.formatters.base import FormatterError
from testsum.models.event import TestEvent
from testsum.models.execution import ExecutionState, apply
from testsum.stderr_collector import collect_stderr

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import TextIO

    from testsum.utils.clock import Clock

logger = logging.getLogger(__name__)

# go test -json output lines (benchmarks, large logs) can exceed asyncio's 64 KiB default.
STREAM_LIMIT = 16 * 1024 * 1024

_MAX_LINE_IN_MESSAGE = 200


class DecodeError(ValueError):
    """A line of the event stream could not be decoded.

    Attributes:
        line: The raw offending line.
        line_number: 1-based line number in the stream.
    """

    def __init__(self, message: str, *, line: str, line_number: int) -> None:
        super().__init__(message)
        self.line = line
        self.line_number = line_number


@dataclass
class ScanConfig:
    """Streams, sinks and formatter for :func:`scan_test_output`."""

    stdout: asyncio.StreamReader
    """Newline-delimited JSON events."""

    out: TextIO
    """Sink for formatter output."""

    formatter: Callable[[TestEvent, ExecutionState], str]
    """Renders each event after it has been applied."""

    stderr: asyncio.StreamReader | None = None
    """Plain-text error stream, collected concurrently."""

    err: TextIO | None = None
    """Sink that stderr lines are echoed to."""

    clock: Clock | None = None
    """Time source for the execution; defaults to the system clock."""


@dataclass
class ScanResult:
    """Outcome of a scan. ``execution`` is always present, even after a decode error."""

    execution: ExecutionState
    decode_error: DecodeError | None = None
    formatter_errors: list[FormatterError] = field(default_factory=list)
    events: int = 0
    """Number of events applied."""

    @property
    def ok(self) -> bool:
        return self.decode_error is None and not self.formatter_errors

    def error(self) -> Exception | None:
        """Return the decode error, or all formatter errors combined, or None."""
        if self.decode_error is not None:
            return self.decode_error
        if not self.formatter_errors:
            return None
        if len(self.formatter_errors) == 1:
            return self.formatter_errors[0]
        return FormatterError(
            f"{len(self.formatter_errors)} events failed to format; first: "
            f"{self.formatter_errors[0]}",
            errors=self.formatter_errors,
        )


def _decode(raw: bytes, line_number: int) -> TestEvent:
    text = raw.decode("utf-8", errors="replace").rstrip("\r\n")
    try:
        return TestEvent.from_json(text)
    except (ValueError, TypeError) as exc:
        shown = text if len(text) <= _MAX_LINE_IN_MESSAGE else text[:_MAX_LINE_IN_MESSAGE] + "..."
        raise DecodeError(
            f"failed to parse test output line {line_number}: {shown!r}: {exc}",
            line=text,
            line_number=line_number,
        ) from exc


def _format(
    formatter: Callable[[TestEvent, ExecutionState], str],
    event: TestEvent,
    execution: ExecutionState,
    result: ScanResult,
) -> str:
    try:
        return formatter(event, execution)
    except FormatterError as exc:
        result.formatter_errors.append(exc)
        return exc.text
    except Exception as exc:
        result.formatter_errors.append(FormatterError.for_event(event, [exc]))
        return ""


async def _drain(reader: asyncio.StreamReader) -> int:
    """Discard the rest of *reader* so the producing process can exit."""
    discarded = 0
    while True:
        try:
            raw = await reader.readline()
        except ValueError:
            discarded += 1
            continue
        if not raw:
            return discarded
        discarded += 1


async def _read_events(config: ScanConfig, result: ScanResult) -> None:
    line_number = 0
    while True:
        line_number += 1
        try:
            raw = await config.stdout.readline()
        except ValueError as exc:
            result.decode_error = DecodeError(
                f"failed to read test output line {line_number}: {exc}",
                line="",
                line_number=line_number,
            )
            return
        if not raw:
            return
        if not raw.strip():
            continue

        try:
            event = _decode(raw, line_number)
        except DecodeError as exc:
            logger.debug("Stopping at undecodable line %d: %r", line_number, exc.line)
            result.decode_error = exc
            return

        apply(result.execution, event)
        result.events += 1
        text = _format(config.formatter, event, result.execution, result)
        if text:
            config.out.write(text)
            config.out.flush()


async def scan_test_output(config: ScanConfig) -> ScanResult:
    """Read every event from ``config.stdout`` and build the execution state.

    A malformed line stops processing; the state accumulated so far is
    returned with ``decode_error`` set and the remainder of stdout is
    discarded. Formatter failures are collected in ``formatter_errors`` and
    do not stop the scan.
    """
    execution = ExecutionState(clock=config.clock)
    result = ScanResult(execution=execution)

    stderr_task: asyncio.Task[int] | None = None
    if config.stderr is not None:
        stderr_task = asyncio.create_task(
            collect_stderr(config.stderr, config.err or _NullSink(), execution)
        )

    try:
        await _read_events(config, result)
        if result.decode_error is not None:
            discarded = await _drain(config.stdout)
            if discarded:
                logger.debug("Discarded %d line(s) after decode error", discarded)
    except BaseException:
        if stderr_task is not None:
            stderr_task.cancel()
        raise

    if stderr_task is not None:
        await stderr_task

    logger.debug(
        "Scanned %d event(s) from %d package(s)", result.events, len(execution.packages)
    )
    return result


class _NullSink:
    def write(self, text: str) -> int:
        return len(text)

    def flush(self) -> None:
        pass
