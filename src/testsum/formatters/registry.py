"""Formatter registry mapping configuration names to formatter classes.

Names are validated when the formatter is built, before any event is read.
"""

from __future__ import annotations

import logging

from testsum.formatters.base import EventFormatter, FormatOptions
from testsum.formatters.dots import DotsFormatter
from testsum.formatters.multi import MultiFormatter
from testsum.formatters.short import ShortFormatter, ShortVerboseFormatter
from testsum.formatters.standard import (
    DebugFormatter,
    StandardQuietFormatter,
    StandardVerboseFormatter,
)

logger = logging.getLogger(__name__)

FORMATTERS: dict[str, type[EventFormatter]] = {
    "debug": DebugFormatter,
    "standard-verbose": StandardVerboseFormatter,
    "standard-quiet": StandardQuietFormatter,
    "dots": DotsFormatter,
    "short": ShortFormatter,
    "short-verbose": ShortVerboseFormatter,
}

FORMAT_DESCRIPTIONS: dict[str, str] = {
    "dots": "print a character for each test",
    "short": "print a line for each package",
    "short-verbose": "print a line for each test and package",
    "standard-quiet": "default go test format",
    "standard-verbose": "default go test -v format",
    "debug": "print every event field",
}


class UnknownFormatError(ValueError):
    """Raised when a formatter name is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"unknown format {name!r} (expected one of: {', '.join(sorted(FORMATTERS))})"
        )
        self.name = name


def available_formats() -> list[str]:
    return sorted(FORMATTERS)


def split_format_names(setting: str) -> list[str]:
    """Split a comma-separated format list, dropping blanks."""
    return [part.strip() for part in setting.split(",") if part.strip()]


def validate_format(setting: str) -> list[str]:
    """Return a list of problems with a format setting (empty if valid)."""
    names = split_format_names(setting)
    if not names:
        return ["format must not be empty"]
    return [str(UnknownFormatError(name)) for name in names if name not in FORMATTERS]


def get_formatter(setting: str, options: FormatOptions | None = None) -> EventFormatter:
    """Build the formatter for *setting*.

    Args:
        setting: A registered name, or several joined with commas; more than one
            name is composed with :class:`MultiFormatter`.
        options: Package prefix and color settings shared by all formatters.

    Raises:
        UnknownFormatError: If any name is not registered.
    """
    names = split_format_names(setting)
    if not names:
        raise UnknownFormatError(setting)
    for name in names:
        if name not in FORMATTERS:
            raise UnknownFormatError(name)

    options = options or FormatOptions()
    formatters = [FORMATTERS[name](options) for name in names]
    logger.debug("Using formatters: %s", ", ".join(names))
    if len(formatters) == 1:
        return formatters[0]
    return MultiFormatter(formatters)
