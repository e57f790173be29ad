"""Event formatters and the registry that selects them by name."""

from testsum.formatters.base import (
    EventFormatter,
    FormatOptions,
    FormatterError,
    relative_package_path,
)
from testsum.formatters.multi import MultiFormatter
from testsum.formatters.registry import (
    FORMATTERS,
    UnknownFormatError,
    available_formats,
    get_formatter,
)

__all__ = [
    "FORMATTERS",
    "EventFormatter",
    "FormatOptions",
    "FormatterError",
    "MultiFormatter",
    "UnknownFormatError",
    "available_formats",
    "get_formatter",
    "relative_package_path",
]
