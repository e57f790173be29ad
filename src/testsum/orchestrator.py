"""Run the tests, stream their events through a formatter and print the summary."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from testsum.formatters.base import FormatOptions
from testsum.formatters.registry import get_formatter
from testsum.scanner import ScanConfig, scan_test_output
from testsum.summary import print_summary
from testsum.utils.subprocess_runner import (
    SubprocessError,
    go_test_command,
    start_go_test,
)

if TYPE_CHECKING:
    from pathlib import Path
    from typing import TextIO

    from testsum.models.execution import ExecutionState
    from testsum.utils.clock import Clock

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_TESTS_FAILED = 1
EXIT_INTERNAL_ERROR = 3


@dataclass
class RunOptions:
    """What to run and how to render it."""

    args: list[str] = field(default_factory=list)
    """Arguments for ``go test`` (or the full command with ``raw_command``)."""

    format: str = "short"
    pkg_prefix: str = ""
    color: bool = False
    raw_command: bool = False
    timeout: float = 0.0
    """Seconds before the test process is killed (0 = no timeout)."""

    cwd: Path | None = None


@dataclass
class RunOutcome:
    """Result of :func:`run`."""

    exit_code: int
    execution: ExecutionState | None = None
    error: Exception | None = None


def _exit_code_for(error: SubprocessError) -> int:
    if error.returncode > 0:
        return error.returncode
    return EXIT_TESTS_FAILED


async def run(
    options: RunOptions,
    *,
    out: TextIO,
    err: TextIO,
    clock: Clock | None = None,
) -> RunOutcome:
    """Run the test command and report on it.

    The formatter is resolved before the process starts, so an unknown
    format name fails without side effects. The summary is printed whenever
    any events were scanned, even if the stream later failed to decode.

    Raises:
        UnknownFormatError: If ``options.format`` names an unknown formatter.
        SubprocessError: If the test command could not be started.
    """
    formatter = get_formatter(
        options.format,
        FormatOptions(pkg_prefix=options.pkg_prefix, color=options.color),
    )
    command = go_test_command(options.args, raw_command=options.raw_command)
    proc = await start_go_test(command, cwd=options.cwd)

    watchdog: asyncio.Task[None] | None = None
    if options.timeout > 0:
        watchdog = asyncio.create_task(proc.kill_after(options.timeout))

    try:
        result = await scan_test_output(
            ScanConfig(
                stdout=proc.stdout,
                stderr=proc.stderr,
                out=out,
                err=err,
                formatter=formatter,
                clock=clock,
            )
        )
    except BaseException:
        proc.kill()
        raise
    finally:
        if watchdog is not None:
            watchdog.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await watchdog

    print_summary(out, result.execution, pkg_prefix=options.pkg_prefix)
    await proc.wait()

    scan_error = result.error()
    if scan_error is not None:
        logger.debug("Scan failed: %s", scan_error)
        return RunOutcome(EXIT_INTERNAL_ERROR, result.execution, scan_error)

    try:
        proc.check_returncode()
    except SubprocessError as exc:
        return RunOutcome(_exit_code_for(exc), result.execution, exc)
    return RunOutcome(EXIT_OK, result.execution)
