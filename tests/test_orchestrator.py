"""Tests for the run orchestration (orchestrator.py)."""

from __future__ import annotations

import io
import sys
from typing import TYPE_CHECKING

import pytest

from testsum.formatters import UnknownFormatError
from testsum.orchestrator import (
    EXIT_INTERNAL_ERROR,
    EXIT_OK,
    EXIT_TESTS_FAILED,
    RunOptions,
    run,
)
from testsum.scanner import DecodeError
from testsum.utils.subprocess_runner import SubprocessError
from tests.helpers import GO_TEST_JSON, event_line

if TYPE_CHECKING:
    from pathlib import Path

    from tests.helpers import FakeClock


def _replay_command(tmp_path: Path, stdout: str, *, stderr: str = "", code: int = 0) -> list[str]:
    """Return a command that prints canned streams and exits with *code*."""
    (tmp_path / "stdout.json").write_text(stdout, encoding="utf-8")
    (tmp_path / "stderr.txt").write_text(stderr, encoding="utf-8")
    script = (
        "import sys\n"
        "sys.stdout.write(open('stdout.json', encoding='utf-8').read())\n"
        "sys.stderr.write(open('stderr.txt', encoding='utf-8').read())\n"
        f"sys.exit({code})\n"
    )
    return [sys.executable, "-c", script]


def _options(tmp_path: Path, command: list[str], **kwargs: object) -> RunOptions:
    return RunOptions(args=command, raw_command=True, cwd=tmp_path, **kwargs)  # type: ignore[arg-type]


# ── Successful runs ──────────────────────────────────────────────


async def test_passing_run(tmp_path: Path, clock: FakeClock) -> None:
    """Test a clean run prints package lines and the totals."""
    stream = (
        event_line("run", test="TestA")
        + event_line("pass", test="TestA", elapsed=0.01)
        + event_line("output", output="ok  \texample.com/project/pkg\t0.010s\n")
        + event_line("pass", elapsed=0.01)
    )
    out, err = io.StringIO(), io.StringIO()

    outcome = await run(
        _options(tmp_path, _replay_command(tmp_path, stream), pkg_prefix="example.com/project"),
        out=out,
        err=err,
        clock=clock,
    )

    assert outcome.exit_code == EXIT_OK
    assert outcome.error is None
    assert outcome.execution is not None
    assert outcome.execution.total() == 1
    assert out.getvalue() == "✓  pkg (0.01s)\n\nDONE 1 test in 0s\n"
    assert err.getvalue() == ""


async def test_failing_run_passes_exit_code_through(tmp_path: Path, clock: FakeClock) -> None:
    """Test go test's exit status becomes the outcome's exit code."""
    out, err = io.StringIO(), io.StringIO()

    outcome = await run(
        _options(
            tmp_path,
            _replay_command(tmp_path, GO_TEST_JSON, stderr="# pkg\nvet failed\n", code=1),
            format="dots",
            pkg_prefix="example.com/project",
        ),
        out=out,
        err=err,
        clock=clock,
    )

    assert outcome.exit_code == EXIT_TESTS_FAILED
    assert isinstance(outcome.error, SubprocessError)
    assert outcome.error.returncode == 1
    assert outcome.execution is not None
    assert outcome.execution.errors() == ["vet failed"]

    text = out.getvalue()
    assert text.startswith("[pkg]·✖↷\n")
    assert "DONE 3 tests, 1 skipped, 1 failure, 1 error in 0s" in text
    assert "=== FAIL: pkg TestFail (0.01s)\n    pkg_test.go:12: expected 1, got 0\n" in text
    assert err.getvalue() == "# pkg\nvet failed\n"


async def test_other_exit_codes_are_kept(tmp_path: Path) -> None:
    """Test exit codes other than 1 are passed on unchanged."""
    outcome = await run(
        _options(tmp_path, _replay_command(tmp_path, "", code=2)),
        out=io.StringIO(),
        err=io.StringIO(),
    )

    assert outcome.exit_code == 2


# ── Failures ─────────────────────────────────────────────────────


async def test_decode_error_still_prints_summary(tmp_path: Path, clock: FakeClock) -> None:
    """Test a malformed stream is an internal error but the summary is still printed."""
    stream = event_line("run", test="TestA") + "{not json\n" + event_line("pass", test="TestA")
    out = io.StringIO()

    outcome = await run(
        _options(tmp_path, _replay_command(tmp_path, stream)),
        out=out,
        err=io.StringIO(),
        clock=clock,
    )

    assert outcome.exit_code == EXIT_INTERNAL_ERROR
    assert isinstance(outcome.error, DecodeError)
    assert "DONE 1 test in 0s" in out.getvalue()


async def test_unknown_format_fails_before_starting(tmp_path: Path) -> None:
    """Test an unknown format is rejected before any process is started."""
    marker = tmp_path / "started"
    command = [sys.executable, "-c", f"open({str(marker)!r}, 'w').close()"]

    with pytest.raises(UnknownFormatError, match="bogus"):
        await run(
            _options(tmp_path, command, format="bogus"),
            out=io.StringIO(),
            err=io.StringIO(),
        )

    assert not marker.exists()


async def test_missing_command(tmp_path: Path) -> None:
    """Test a command that cannot be started raises SubprocessError."""
    with pytest.raises(SubprocessError, match="Command not found"):
        await run(
            _options(tmp_path, ["nonexistent_command_xyz123"]),
            out=io.StringIO(),
            err=io.StringIO(),
        )


async def test_timeout_kills_the_process(tmp_path: Path) -> None:
    """Test a run that exceeds its timeout is killed and reported as failed."""
    script = (
        "import sys, time\n"
        f"sys.stdout.write({event_line('run', test='TestSlow')!r})\n"
        "sys.stdout.flush()\n"
        "time.sleep(30)\n"
    )
    out = io.StringIO()

    outcome = await run(
        _options(tmp_path, [sys.executable, "-c", script], timeout=0.5),
        out=out,
        err=io.StringIO(),
    )

    assert outcome.exit_code == EXIT_TESTS_FAILED
    assert isinstance(outcome.error, SubprocessError)
    assert "timed out" in str(outcome.error)
    assert outcome.execution is not None
    assert outcome.execution.total() == 1
    assert "DONE 1 test" in out.getvalue()
