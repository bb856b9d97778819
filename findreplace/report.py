"""Human-readable run summary and error listing.

Colors come from Pygments' console helpers and are applied only when the
caller asks for them (TTY output with color enabled).
"""

from __future__ import annotations

import os
from pathlib import Path

from pygments.console import colorize

from .run import Summary


def _paint(color_key: str, text: str, color: bool) -> str:
    return colorize(color_key, text) if color else text


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def _printable(name: str) -> str:
    """Show undecodable filename bytes as ``\\xNN`` escapes."""
    return os.fsencode(name).decode("utf-8", "backslashreplace")


def display_path(path: Path, root: Path) -> str:
    """Return ``path`` relative to ``root`` when possible, else as given."""
    try:
        return _printable(path.relative_to(root).as_posix())
    except ValueError:
        return _printable(str(path))


def format_summary(summary: Summary, color: bool = False) -> str:
    """Format the one-line totals, e.g. ``Scanned 3 files, changed 1 file, 2 replacements``."""
    changed = _plural(summary.files_changed, "file")
    replacements = _plural(summary.occurrences, "replacement")
    parts = [
        f"Scanned {_plural(summary.files_scanned, 'file')}",
        "changed " + _paint("green" if summary.files_changed else "bold", changed, color),
        _paint("green" if summary.occurrences else "bold", replacements, color),
    ]
    line = ", ".join(parts)
    if summary.files_skipped_binary:
        line += f" ({summary.files_skipped_binary} binary skipped)"
    return line


def format_changed(summary: Summary, root: Path, color: bool = False) -> list[str]:
    """One line per rewritten file, in walk order."""
    return [_paint("green", "M", color) + " " + display_path(path, root) for path in summary.changed_paths]


def format_errors(summary: Summary, root: Path, color: bool = False) -> list[str]:
    """One ``path: kind: message`` line per collected error."""
    lines: list[str] = []
    for error in summary.errors:
        label = _paint("red", error.kind.value, color)
        lines.append(f"{display_path(error.path, root)}: {label}: {error.message}")
    return lines


__all__ = [
    "display_path",
    "format_summary",
    "format_changed",
    "format_errors",
]
