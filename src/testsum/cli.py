"""testsum CLI: run ``go test -json`` and print a readable report."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

from testsum import __version__
from testsum.config import ConfigError, TestsumConfig, load_config, validate_config
from testsum.formatters.registry import FORMAT_DESCRIPTIONS, UnknownFormatError
from testsum.orchestrator import EXIT_INTERNAL_ERROR, RunOptions, run
from testsum.utils.gomod import detect_pkg_prefix
from testsum.utils.subprocess_runner import SubprocessError

logger = logging.getLogger(__name__)
err_console = Console(stderr=True)


def _formats_epilog() -> str:
    width = max(len(name) for name in FORMAT_DESCRIPTIONS)
    lines = [f"  {name.ljust(width)}  {desc}" for name, desc in FORMAT_DESCRIPTIONS.items()]
    return "\b\nFormats:\n" + "\n".join(lines)


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _fail(message: str) -> NoReturn:
    err_console.print(Text.assemble(("testsum: Error:", "red"), " ", message), highlight=False)
    sys.exit(EXIT_INTERNAL_ERROR)


def _merge_options(
    config: TestsumConfig,
    *,
    fmt: str | None,
    pkg_prefix: str | None,
    color: bool | None,
    raw_command: bool,
    debug: bool,
    timeout: float | None,
) -> TestsumConfig:
    """Apply command-line overrides on top of the file configuration."""
    return TestsumConfig(
        format=fmt if fmt is not None else config.format,
        pkg_prefix=pkg_prefix if pkg_prefix is not None else config.pkg_prefix,
        color=color if color is not None else config.color,
        raw_command=raw_command or config.raw_command,
        debug=debug or config.debug,
        timeout=timeout if timeout is not None else config.timeout,
    )


@click.command(
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
    epilog=_formats_epilog(),
)
@click.option("--format", "-f", "fmt", default=None, help="Print format of test input.")
@click.option("--pkg-prefix", default=None, help="Import path prefix to trim from package names.")
@click.option("--color/--no-color", default=None, help="Color status glyphs and words.")
@click.option(
    "--raw-command",
    is_flag=True,
    help="Don't prepend 'go test -json' to the command.",
)
@click.option("--debug", is_flag=True, help="Enable debug logging.")
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Kill the tests after this many seconds (0 = no timeout).",
)
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Directory to run the tests in.",
)
@click.version_option(version=__version__, prog_name="testsum")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def cli(
    fmt: str | None,
    pkg_prefix: str | None,
    color: bool | None,
    raw_command: bool,
    debug: bool,
    timeout: float | None,
    path: str,
    args: tuple[str, ...],
) -> None:
    """Run go test with JSON output and print a summary of the results.

    Arguments after the flags (or after --) are passed to go test.
    """
    root = Path(path)
    try:
        config = _merge_options(
            load_config(root),
            fmt=fmt,
            pkg_prefix=pkg_prefix,
            color=color,
            raw_command=raw_command,
            debug=debug,
            timeout=timeout,
        )
    except ConfigError as exc:
        _fail(str(exc))

    _setup_logging(config.debug)

    problems = validate_config(config)
    if problems:
        _fail("; ".join(problems))

    prefix = config.pkg_prefix or detect_pkg_prefix(root)
    options = RunOptions(
        args=list(args),
        format=config.format,
        pkg_prefix=prefix,
        color=config.color,
        raw_command=config.raw_command,
        timeout=config.timeout,
        cwd=root,
    )

    try:
        outcome = asyncio.run(run(options, out=sys.stdout, err=sys.stderr))
    except UnknownFormatError as exc:
        _fail(str(exc))
    except SubprocessError as exc:
        _fail(str(exc))

    if outcome.error is not None and not isinstance(outcome.error, SubprocessError):
        _fail(str(outcome.error))
    # go test already reported a non-zero exit on stderr; just pass the code on.
    sys.exit(outcome.exit_code)


def main() -> None:
    cli()
