"""Find the module path of a Go project, used to shorten package names."""

from __future__ import annotations

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

_GO_MOD = "go.mod"
_MODULE_RE = re.compile(r"^\s*module\s+(\"[^\"]+\"|\S+)", re.MULTILINE)


def parse_module_path(text: str) -> str:
    """Return the module path declared in go.mod *text*, or ``""``."""
    match = _MODULE_RE.search(text)
    if match is None:
        return ""
    return match.group(1).strip('"')


def detect_pkg_prefix(start: Path) -> str:
    """Return the import path of *start*, derived from the nearest go.mod.

    Walks up from *start* to the first directory containing ``go.mod`` and
    joins its module path with the relative location of *start*. Returns
    ``""`` when no module is found.
    """
    start = start.resolve()
    for directory in (start, *start.parents):
        go_mod = directory / _GO_MOD
        if not go_mod.is_file():
            continue
        try:
            module = parse_module_path(go_mod.read_text(encoding="utf-8"))
        except OSError as exc:
            logger.warning("Could not read %s: %s", go_mod, exc)
            return ""
        if not module:
            return ""
        rel = start.relative_to(directory)
        return "/".join([module, *rel.parts]) if rel.parts else module
    logger.debug("No go.mod found above %s", start)
    return ""
