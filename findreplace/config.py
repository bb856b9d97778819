"""Persistent JSON config helpers.

Holds defaults for binary probing, worker count, hidden-file handling, and
ignore-file names. All access is defensive: malformed or missing config falls
back to built-in defaults, and each key is validated on its own.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_config_dir

from .classify import BINARY_CONTROL_THRESHOLD, BINARY_PROBE_BYTES
from .ignore import DEFAULT_IGNORE_FILENAMES

APP_NAME = "findreplace"
CONFIG_FILENAME = "config.json"
CONFIG_ENV_VAR = "FR_CONFIG"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
CONFIG_PATH = DEFAULT_CONFIG_PATH
MAX_JOBS = 64


@dataclass(frozen=True)
class Settings:
    """Effective run settings after config and CLI overrides are applied."""

    binary_probe_bytes: int = BINARY_PROBE_BYTES
    binary_threshold: float = BINARY_CONTROL_THRESHOLD
    jobs: int = 1
    hidden: bool = False
    respect_ignore: bool = True
    ignore_filenames: tuple[str, ...] = DEFAULT_IGNORE_FILENAMES
    color: bool = True


def config_path() -> Path:
    """Return the config file path, honoring the ``FR_CONFIG`` override."""
    override = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if override:
        return Path(override).expanduser()
    return CONFIG_PATH


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(config_path().read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def _positive_int(value: object, default: int, upper: int | None = None) -> int:
    """Accept real ints >= 1; booleans and other types fall back to ``default``."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        return default
    if upper is not None:
        return min(value, upper)
    return value


def _fraction(value: object, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if value < 0 or value > 1:
        return default
    return float(value)


def _flag(value: object, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def _filenames(value: object, default: tuple[str, ...]) -> tuple[str, ...]:
    """Keep non-empty plain file names; reject anything containing a separator."""
    if not isinstance(value, list):
        return default
    names: list[str] = []
    for item in value:
        if not isinstance(item, str):
            continue
        stripped = item.strip()
        if not stripped or "/" in stripped or os.sep in stripped:
            continue
        if stripped not in names:
            names.append(stripped)
    return tuple(names)


def load_settings() -> Settings:
    """Build ``Settings`` from the config file, sanitizing every key."""
    data = load_config()
    defaults = Settings()
    return Settings(
        binary_probe_bytes=_positive_int(data.get("binary_probe_bytes"), defaults.binary_probe_bytes),
        binary_threshold=_fraction(data.get("binary_threshold"), defaults.binary_threshold),
        jobs=_positive_int(data.get("jobs"), defaults.jobs, upper=MAX_JOBS),
        hidden=_flag(data.get("hidden"), defaults.hidden),
        respect_ignore=_flag(data.get("respect_ignore"), defaults.respect_ignore),
        ignore_filenames=_filenames(data.get("ignore_filenames"), defaults.ignore_filenames),
        color=_flag(data.get("color"), defaults.color),
    )


__all__ = [
    "APP_NAME",
    "CONFIG_ENV_VAR",
    "CONFIG_PATH",
    "MAX_JOBS",
    "Settings",
    "config_path",
    "load_config",
    "load_settings",
]
