"""Ignore-aware, depth-first directory traversal.

``walk`` yields candidate files in deterministic pre-order (entries sorted by
name). Traversal state lives on an explicit stack of directory cursors; each
cursor carries the ignore rule stack and ancestor identities that apply to
its subtree, so leaving a directory drops its rules automatically.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import ErrorKind, RootInaccessibleError, RunError
from .ignore import (
    DEFAULT_IGNORE_FILENAMES,
    IgnoreRuleSet,
    base_rule_stack,
    is_excluded,
    load_directory_rules,
)
from .substitute import TEMP_FILE_PREFIX, TEMP_FILE_SUFFIX

ErrorCallback = Callable[[RunError], None]


class EntryKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    OTHER = "other"


@dataclass(frozen=True)
class FileEntry:
    """A file produced by the walk.

    ``kind`` is ``SYMLINK`` for links that resolve to a regular file.
    ``depth`` is 1 for direct children of the root.
    """

    path: Path
    kind: EntryKind
    depth: int


@dataclass
class _DirectoryCursor:
    """Open directory plus the state its children inherit."""

    path: Path
    depth: int
    rule_stack: tuple[IgnoreRuleSet, ...]
    ancestors: tuple[tuple[int, int], ...]
    children: Iterator[os.DirEntry[str]]


def _identity(st: os.stat_result) -> tuple[int, int]:
    return (st.st_dev, st.st_ino)


def _is_temp_artifact(name: str) -> bool:
    return name.startswith(TEMP_FILE_PREFIX) and name.endswith(TEMP_FILE_SUFFIX)


def _list_sorted(directory: Path) -> list[os.DirEntry[str]]:
    with os.scandir(directory) as entries:
        return sorted(entries, key=lambda entry: entry.name)


def _entry_kind(entry: os.DirEntry[str]) -> tuple[EntryKind, bool]:
    """Return ``(kind, is_symlink)`` where kind follows symlinks.

    Dangling links come back as ``OTHER``. Any other stat failure raises
    ``OSError``.
    """
    is_symlink = entry.is_symlink()
    if entry.is_dir(follow_symlinks=True):
        return EntryKind.DIRECTORY, is_symlink
    if entry.is_file(follow_symlinks=True):
        return EntryKind.FILE, is_symlink
    return EntryKind.OTHER, is_symlink


def walk(
    root: Path,
    *,
    hidden: bool = False,
    respect_ignore: bool = True,
    ignore_filenames: Sequence[str] = DEFAULT_IGNORE_FILENAMES,
    on_error: ErrorCallback | None = None,
) -> Iterator[FileEntry]:
    """Yield non-excluded files under ``root`` in pre-order.

    Excluded directories are pruned without being opened. Symlinked
    directories are followed unless they resolve to a directory already on
    the current ancestor chain. Unreadable subdirectories are reported via
    ``on_error`` and skipped; an unreadable ``root`` raises
    ``RootInaccessibleError`` on first iteration.
    """
    root = Path(os.path.abspath(root))
    report: ErrorCallback = on_error if on_error is not None else (lambda _error: None)
    filenames = tuple(ignore_filenames) if respect_ignore else ()

    try:
        root_identity = _identity(os.stat(root))
        root_children = iter(_list_sorted(root))
    except OSError as exc:
        raise RootInaccessibleError(root, exc.strerror or str(exc)) from exc

    inherited: tuple[IgnoreRuleSet, ...] = ()
    if respect_ignore:
        base_rules, base_errors = base_rule_stack(root, filenames)
        for error in base_errors:
            report(error)
        inherited = tuple(base_rules)

    def enter(
        directory: Path,
        depth: int,
        parent_rules: tuple[IgnoreRuleSet, ...],
        ancestors: tuple[tuple[int, int], ...],
        children: Iterator[os.DirEntry[str]] | None = None,
    ) -> _DirectoryCursor | None:
        if children is None:
            try:
                children = iter(_list_sorted(directory))
            except OSError as exc:
                report(RunError.from_os_error(directory, ErrorKind.DIRECTORY_UNREADABLE, exc))
                return None
        rule_stack = parent_rules
        if filenames:
            rules, rule_errors = load_directory_rules(directory, filenames)
            for error in rule_errors:
                report(error)
            if rules is not None and rules.patterns:
                rule_stack = parent_rules + (rules,)
        return _DirectoryCursor(
            path=directory,
            depth=depth,
            rule_stack=rule_stack,
            ancestors=ancestors,
            children=children,
        )

    root_cursor = enter(root, 0, inherited, (root_identity,), root_children)
    stack: list[_DirectoryCursor] = [root_cursor] if root_cursor is not None else []

    while stack:
        cursor = stack[-1]
        entry = next(cursor.children, None)
        if entry is None:
            stack.pop()
            continue

        name = entry.name
        if _is_temp_artifact(name):
            continue
        if not hidden and name.startswith("."):
            continue

        child_path = cursor.path / name
        try:
            kind, is_symlink = _entry_kind(entry)
        except OSError as exc:
            if not is_excluded(child_path, False, cursor.rule_stack):
                report(RunError.from_os_error(child_path, ErrorKind.FILE_UNREADABLE, exc))
            continue
        if kind is EntryKind.OTHER:
            continue
        is_dir = kind is EntryKind.DIRECTORY
        if is_excluded(child_path, is_dir, cursor.rule_stack):
            continue

        if is_dir:
            try:
                child_identity = _identity(entry.stat(follow_symlinks=True))
            except OSError as exc:
                report(RunError.from_os_error(child_path, ErrorKind.DIRECTORY_UNREADABLE, exc))
                continue
            if child_identity in cursor.ancestors:
                continue
            child_cursor = enter(
                child_path,
                cursor.depth + 1,
                cursor.rule_stack,
                cursor.ancestors + (child_identity,),
            )
            if child_cursor is not None:
                stack.append(child_cursor)
            continue

        yield FileEntry(
            path=child_path,
            kind=EntryKind.SYMLINK if is_symlink else EntryKind.FILE,
            depth=cursor.depth + 1,
        )


__all__ = [
    "EntryKind",
    "FileEntry",
    "walk",
]
