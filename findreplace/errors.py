"""Error types and non-fatal error records.

Only ``RootInaccessibleError`` aborts a run. Everything else is collected as
``RunError`` records so a single bad file or directory never stops the batch.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class FindReplaceError(Exception):
    """Base class for findreplace exceptions."""


class RootInaccessibleError(FindReplaceError):
    """Raised when the traversal root cannot be listed."""

    def __init__(self, root: Path, reason: str) -> None:
        super().__init__(f"cannot access root {root}: {reason}")
        self.root = root
        self.reason = reason


class InvalidIgnorePattern(FindReplaceError, ValueError):
    """Raised when one ignore-file line cannot be compiled."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"invalid ignore pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class ErrorKind(Enum):
    DIRECTORY_UNREADABLE = "directory unreadable"
    FILE_UNREADABLE = "file unreadable"
    FILE_UNWRITABLE = "file unwritable"
    INVALID_IGNORE_PATTERN = "invalid ignore pattern"


@dataclass(frozen=True)
class RunError:
    """One collected, non-fatal failure tied to a filesystem path."""

    path: Path
    kind: ErrorKind
    message: str

    @classmethod
    def from_os_error(cls, path: Path, kind: ErrorKind, exc: OSError) -> RunError:
        """Build a record from an ``OSError`` using its strerror when present."""
        message = exc.strerror or str(exc)
        return cls(path=path, kind=kind, message=message)


__all__ = [
    "FindReplaceError",
    "RootInaccessibleError",
    "InvalidIgnorePattern",
    "ErrorKind",
    "RunError",
]
