"""Test events emitted by ``go test -json`` (and ``go tool test2json``)."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class Action(Enum):
    """Action reported by a single test event."""

    RUN = "run"
    PAUSE = "pause"
    CONT = "cont"
    PASS = "pass"
    BENCH = "bench"
    FAIL = "fail"
    OUTPUT = "output"
    SKIP = "skip"


_ACTIONS = {action.value: action for action in Action}

# datetime only keeps microseconds; go emits nanoseconds.
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def _parse_time(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise TypeError(f"Time must be a string, got {type(value).__name__}")
    return datetime.fromisoformat(_FRACTION_RE.sub(r"\1", value))


def _parse_action(value: Any) -> Action | str:
    if not isinstance(value, str):
        raise TypeError(f"Action must be a string, got {type(value).__name__}")
    return _ACTIONS.get(value, value)


def _parse_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string, got {type(value).__name__}")
    return value


def _parse_elapsed(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Elapsed must be a number, got {type(value).__name__}")
    return float(value)


@dataclass(frozen=True)
class TestEvent:
    """One record from the test runner's JSON event stream."""

    __test__ = False

    action: Action | str
    """Event action; unrecognised action strings are kept verbatim."""

    package: str = ""
    """Import path of the package the event belongs to."""

    test: str = ""
    """Test name, empty for package-scope events."""

    elapsed: float = 0.0
    """Elapsed seconds, present on pass/fail/skip."""

    output: str = ""
    """Output fragment, present on output/bench."""

    time: datetime | None = None
    """Event timestamp."""

    @property
    def is_package_event(self) -> bool:
        """Return True for events describing a whole test binary."""
        return self.test == ""

    def elapsed_formatted(self) -> str:
        """Return the elapsed time in the go test format, e.g. ``(0.00s)``."""
        return f"({self.elapsed:.2f}s)"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TestEvent:
        """Build an event from a decoded JSON object.

        Raises:
            TypeError: If a field has the wrong JSON type.
            ValueError: If ``Time`` is not an RFC3339 timestamp.
        """
        return cls(
            action=_parse_action(data.get("Action", "")),
            package=_parse_str(data, "Package"),
            test=_parse_str(data, "Test"),
            elapsed=_parse_elapsed(data.get("Elapsed")),
            output=_parse_str(data, "Output"),
            time=_parse_time(data.get("Time")),
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> TestEvent:
        """Decode one newline-delimited JSON record.

        Raises:
            ValueError: On malformed JSON (``json.JSONDecodeError``) or a bad
                timestamp.
            TypeError: If the record is not an object or a field has the
                wrong type.
        """
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise TypeError(f"event must be a JSON object, got {type(data).__name__}")
        return cls.from_dict(data)
