"""Literal substitution and atomic file rewrite.

Files are read whole, decoded as strict UTF-8 without newline translation,
rewritten in memory, and replaced on disk through a sibling temporary file
plus ``os.replace``. A crash mid-write leaves the original untouched.
"""

from __future__ import annotations

import os
import stat
import tempfile
from dataclasses import dataclass
from pathlib import Path

from .errors import ErrorKind, RunError

TEMP_FILE_PREFIX = ".fr-"
TEMP_FILE_SUFFIX = ".tmp"


@dataclass(frozen=True)
class SubstitutionOutcome:
    """Result of processing one file."""

    path: Path
    occurrences: int = 0
    changed: bool = False
    error: RunError | None = None

    @classmethod
    def failed(cls, path: Path, error: RunError, occurrences: int = 0) -> SubstitutionOutcome:
        return cls(path=path, occurrences=occurrences, changed=False, error=error)


def replace_literal(content: str, search: str, replace: str) -> tuple[str, int]:
    """Replace every non-overlapping leftmost ``search`` in ``content``.

    Scanning resumes after each inserted replacement, so replacement text is
    never searched again. Returns ``(new_content, occurrences)``.
    """
    if not search:
        raise ValueError("search text must not be empty")
    occurrences = content.count(search)
    if occurrences == 0:
        return content, 0
    return content.replace(search, replace), occurrences


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` via a temp file in the same directory.

    The temp file inherits the target's permission bits, is fsynced, then
    renamed over the target. It is removed if anything fails.
    """
    try:
        mode: int | None = stat.S_IMODE(path.stat().st_mode)
    except OSError:
        mode = None

    fd, temp_name = tempfile.mkstemp(
        prefix=TEMP_FILE_PREFIX,
        suffix=TEMP_FILE_SUFFIX,
        dir=path.parent,
    )
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        if mode is not None:
            os.chmod(temp_path, mode)
        os.replace(temp_path, path)
    except BaseException:
        try:
            temp_path.unlink()
        except FileNotFoundError:
            pass
        raise


def substitute(path: Path, search: str, replace: str) -> SubstitutionOutcome:
    """Replace ``search`` with ``replace`` in ``path`` and rewrite it if changed.

    Files without an occurrence, or whose content would not change, are not
    written (their mtime is preserved). Read, decode, and write failures come
    back as an outcome carrying a ``RunError``; they are not raised.
    """
    if not search:
        raise ValueError("search text must not be empty")

    try:
        raw = path.read_bytes()
    except OSError as exc:
        return SubstitutionOutcome.failed(
            path, RunError.from_os_error(path, ErrorKind.FILE_UNREADABLE, exc)
        )

    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        return SubstitutionOutcome.failed(
            path,
            RunError(
                path=path,
                kind=ErrorKind.FILE_UNREADABLE,
                message=f"not valid UTF-8 text (byte offset {exc.start})",
            ),
        )

    new_content, occurrences = replace_literal(content, search, replace)
    if occurrences == 0 or new_content == content:
        return SubstitutionOutcome(path=path, occurrences=occurrences, changed=False)

    try:
        # Replace the link target, not the link itself.
        target = path.resolve() if path.is_symlink() else path
        atomic_write_bytes(target, new_content.encode("utf-8"))
    except OSError as exc:
        return SubstitutionOutcome.failed(
            path,
            RunError.from_os_error(path, ErrorKind.FILE_UNWRITABLE, exc),
            occurrences=occurrences,
        )
    return SubstitutionOutcome(path=path, occurrences=occurrences, changed=True)


__all__ = [
    "TEMP_FILE_PREFIX",
    "TEMP_FILE_SUFFIX",
    "SubstitutionOutcome",
    "replace_literal",
    "atomic_write_bytes",
    "substitute",
]
