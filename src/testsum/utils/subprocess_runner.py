"""Launch and supervise the ``go test -json`` subprocess.

Unlike a capture-everything runner, the process is started with both
pipes exposed as :class:`asyncio.StreamReader` objects so events can be
handled while the tests are still running. Timeouts and exit-code handling
live here; the scanner only ever sees the two streams.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from testsum.scanner import STREAM_LIMIT

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

_JSON_FLAGS = frozenset({"-json", "--json"})


def has_json_arg(args: Sequence[str]) -> bool:
    """Return True if *args* already asks ``go test`` for JSON output."""
    return any(arg in _JSON_FLAGS for arg in args)


def go_test_command(args: Sequence[str], *, raw_command: bool = False) -> list[str]:
    """Build the command line that produces the event stream.

    Args:
        args: Extra arguments for ``go test``, or a full command when
            *raw_command* is set.
        raw_command: Use *args* verbatim instead of prepending ``go test``.

    Returns:
        ``go test -json ./...`` when *args* is empty, otherwise ``go test``
        followed by *args*, with ``-json`` added unless already present.
    """
    if raw_command:
        return list(args)
    if not args:
        return ["go", "test", "-json", "./..."]
    command = ["go", "test"]
    if not has_json_arg(args):
        command.append("-json")
    return [*command, *args]


class SubprocessError(Exception):
    """Exception raised when the test runner could not run or exited non-zero."""

    def __init__(self, message: str, *, command: Sequence[str], returncode: int) -> None:
        """Initialize with error message, command and exit code.

        Args:
            message: Error description.
            command: The command that was run.
            returncode: Exit code of the process, ``-1`` if it never started.
        """
        super().__init__(message)
        self.command = list(command)
        self.returncode = returncode


@dataclass
class GoTestProcess:
    """A running test process with its output streams."""

    command: list[str]
    """Command line of the process."""

    process: asyncio.subprocess.Process
    """The underlying asyncio process."""

    started_at: float = field(default_factory=time.perf_counter)
    """``perf_counter`` value when the process was started."""

    timed_out: bool = False
    """True if :meth:`kill_after` killed the process."""

    @property
    def stdout(self) -> asyncio.StreamReader:
        assert self.process.stdout is not None
        return self.process.stdout

    @property
    def stderr(self) -> asyncio.StreamReader:
        assert self.process.stderr is not None
        return self.process.stderr

    def kill(self) -> None:
        """Kill the process; both streams then reach end-of-stream."""
        try:
            self.process.kill()
        except ProcessLookupError:
            pass  # Process already terminated

    async def kill_after(self, timeout: float) -> None:
        """Kill the process if it is still running after *timeout* seconds.

        Meant to run as a background task next to the stream readers; cancel
        it once the process has finished.
        """
        await asyncio.sleep(timeout)
        if self.process.returncode is None:
            logger.warning("Test process timed out after %s seconds", timeout)
            self.timed_out = True
            self.kill()

    async def wait(self) -> int:
        """Wait for the process to exit and return its exit code."""
        returncode = await self.process.wait()
        logger.debug(
            "Test process exited: returncode=%d, duration=%.2fms",
            returncode,
            (time.perf_counter() - self.started_at) * 1000,
        )
        return returncode

    def check_returncode(self) -> None:
        """Raise :class:`SubprocessError` if the process exited non-zero.

        Raises:
            SubprocessError: With the exit code, or ``-1`` after a timeout.
        """
        returncode = self.process.returncode
        if self.timed_out:
            raise SubprocessError(
                f"Command timed out: {' '.join(self.command)}",
                command=self.command,
                returncode=-1,
            )
        if returncode:
            raise SubprocessError(
                f"Command failed with exit code {returncode}: {' '.join(self.command)}",
                command=self.command,
                returncode=returncode,
            )


async def start_go_test(
    command: Sequence[str],
    *,
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
) -> GoTestProcess:
    """Start *command* with stdout and stderr piped.

    Args:
        command: Command and arguments (see :func:`go_test_command`).
        cwd: Working directory. Defaults to the current directory.
        env: Extra environment variables, merged over the current environment.

    Returns:
        The running process.

    Raises:
        SubprocessError: If the executable cannot be found or started.
        ValueError: If *command* is empty or *cwd* does not exist.
    """
    if not command:
        raise ValueError("Command cannot be empty")

    work_dir = cwd.resolve() if cwd else Path.cwd()
    if not work_dir.exists():
        raise ValueError(f"Working directory does not exist: {work_dir}")

    full_env = {**os.environ, **env} if env else None

    logger.debug("Running subprocess: %s (cwd=%s)", " ".join(command), work_dir)

    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=work_dir,
            env=full_env,
            limit=STREAM_LIMIT,
        )
    except FileNotFoundError as exc:
        logger.error("Command not found: %s", command[0])
        raise SubprocessError(
            f"Command not found: {command[0]}", command=command, returncode=-1
        ) from exc
    except OSError as exc:
        raise SubprocessError(
            f"Failed to start {command[0]}: {exc}", command=command, returncode=-1
        ) from exc

    return GoTestProcess(command=list(command), process=process)
