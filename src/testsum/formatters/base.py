"""Shared pieces for event formatters.

A formatter turns one event, together with the state the event has already
been applied to, into text for the output sink. Formatters never write
anywhere themselves and never look at events that have not been applied.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from rich.color import ColorSystem
from rich.style import Style

from testsum.models.event import Action

if TYPE_CHECKING:
    from collections.abc import Sequence

    from testsum.models.event import TestEvent
    from testsum.models.execution import ExecutionState

_ACTION_STYLES = {
    Action.PASS: Style(color="green"),
    Action.FAIL: Style(color="red"),
    Action.SKIP: Style(color="yellow"),
}


@dataclass(frozen=True)
class FormatOptions:
    """Options fixed when a formatter is built."""

    pkg_prefix: str = ""
    """Import path prefix stripped from package names when printing."""

    color: bool = False
    """Emit ANSI colors for status glyphs and words."""


class FormatterError(Exception):
    """One or more formatters failed to render an event.

    Attributes:
        package: Package of the event being rendered.
        test: Test name of the event (empty for package-scope events).
        action: Action of the event.
        errors: The underlying exceptions.
        text: Output produced by formatters that did succeed.
    """

    def __init__(
        self,
        message: str,
        *,
        package: str = "",
        test: str = "",
        action: str = "",
        errors: Sequence[BaseException] = (),
        text: str = "",
    ) -> None:
        super().__init__(message)
        self.package = package
        self.test = test
        self.action = action
        self.errors = list(errors)
        self.text = text

    @classmethod
    def for_event(
        cls,
        event: TestEvent,
        errors: Sequence[BaseException],
        *,
        text: str = "",
    ) -> FormatterError:
        """Build an error describing failures while formatting *event*."""
        flat: list[BaseException] = []
        for err in errors:
            if isinstance(err, FormatterError):
                flat.extend(err.errors or [err])
            else:
                flat.append(err)
        details = "; ".join(str(err) or type(err).__name__ for err in flat)
        label = f"{event.package} {event.test}".rstrip()
        return cls(
            f"failed to format {action_name(event)} event for {label}: {details}",
            package=event.package,
            test=event.test,
            action=action_name(event),
            errors=flat,
            text=text,
        )


class EventFormatter(ABC):
    """Base class for formatters selectable by name."""

    def __init__(self, options: FormatOptions | None = None) -> None:
        self.options = options or FormatOptions()

    @property
    @abstractmethod
    def name(self) -> str:
        """Configuration name of this formatter (e.g. ``'dots'``)."""

    @abstractmethod
    def format(self, event: TestEvent, state: ExecutionState) -> str:
        """Return the text to print for *event*; may be empty."""

    def __call__(self, event: TestEvent, state: ExecutionState) -> str:
        return self.format(event, state)

    def relative(self, package: str) -> str:
        return relative_package_path(package, self.options.pkg_prefix)

    def colorize(self, text: str, action: Action | str) -> str:
        """Color *text* for *action* when colors are enabled."""
        style = _ACTION_STYLES.get(action) if isinstance(action, Action) else None
        if not self.options.color or style is None:
            return text
        return style.render(text, color_system=ColorSystem.STANDARD)


def action_name(event: TestEvent) -> str:
    """Return the wire name of an event's action."""
    return event.action.value if isinstance(event.action, Action) else event.action


def relative_package_path(package: str, prefix: str) -> str:
    """Return *package* relative to *prefix*; ``"."`` for the prefix itself."""
    if not prefix:
        return package
    if package == prefix:
        return "."
    return package.removeprefix(prefix + "/")
