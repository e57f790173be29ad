"""Configuration parsing from ``.testsum.yml``."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from testsum.formatters.registry import validate_format

logger = logging.getLogger(__name__)

CONFIG_FILE = ".testsum.yml"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")

_TRUE_VALUES = {True, "true", "1", "yes", "on"}


class ConfigError(ValueError):
    """Raised when the configuration file cannot be used."""


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _resolve_env_vars(item) if isinstance(item, str) else item for item in value
            ]
        else:
            result[key] = value
    return result


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_VALUES
    return value in _TRUE_VALUES


@dataclass
class TestsumConfig:
    """Settings for a testsum run."""

    __test__ = False

    format: str = "short"
    """Formatter name, or several separated by commas."""

    pkg_prefix: str = ""
    """Import path prefix trimmed from package names (empty = detect from go.mod)."""

    color: bool = True
    """Color status glyphs and words."""

    raw_command: bool = False
    """Run the command arguments verbatim instead of prepending ``go test -json``."""

    debug: bool = False
    """Enable debug logging."""

    timeout: float = 0.0
    """Seconds before the test process is killed (0 = no timeout)."""


def _format_from_raw(value: Any) -> str:
    if isinstance(value, list):
        return ",".join(str(item) for item in value)
    return str(value)


def load_config(root: str | Path) -> TestsumConfig:
    """Load ``.testsum.yml`` from *root*.

    Falls back to defaults and ``TESTSUM_*`` environment variables when the
    file is missing or incomplete.

    Raises:
        ConfigError: If the file is not valid YAML or a value has the wrong type.
    """
    config_path = Path(root).resolve() / CONFIG_FILE

    raw: dict[str, Any] = {}
    if config_path.is_file():
        try:
            parsed = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
        if isinstance(parsed, dict):
            raw = _resolve_dict(parsed)
        elif parsed is not None:
            logger.warning("Ignoring %s: expected a mapping at the top level", config_path)

    try:
        return TestsumConfig(
            format=_format_from_raw(raw.get("format", os.environ.get("TESTSUM_FORMAT", "short"))),
            pkg_prefix=str(raw.get("pkg_prefix", os.environ.get("TESTSUM_PKG_PREFIX", ""))),
            color=_as_bool(raw.get("color", "NO_COLOR" not in os.environ)),
            raw_command=_as_bool(raw.get("raw_command", False)),
            debug=_as_bool(raw.get("debug", os.environ.get("TESTSUM_DEBUG", False))),
            timeout=float(raw.get("timeout", 0.0) or 0.0),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid value in {config_path}: {exc}") from exc


def validate_config(config: TestsumConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors = validate_format(config.format)
    if config.timeout < 0:
        errors.append(f"timeout must not be negative (got: {config.timeout})")
    return errors
