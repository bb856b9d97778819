"""Drive a find-and-replace pass over one directory tree.

The walk is always sequential. With ``jobs > 1`` per-file work (classify,
substitute, atomic write) runs on a thread pool, while the ``Summary`` is
only ever touched by the calling thread, which drains results in walk order.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from .classify import Classification, classify_sample, read_probe
from .config import Settings
from .errors import ErrorKind, RootInaccessibleError, RunError
from .substitute import SubstitutionOutcome, substitute
from .walk import FileEntry, walk

IN_FLIGHT_PER_WORKER = 4


@dataclass
class Summary:
    """Aggregate result of one run."""

    files_scanned: int = 0
    files_changed: int = 0
    occurrences: int = 0
    files_skipped_binary: int = 0
    errors: list[RunError] = field(default_factory=list)
    changed_paths: list[Path] = field(default_factory=list)


@dataclass(frozen=True)
class FileResult:
    """Per-file classification plus substitution outcome (text files only).

    ``error`` is set when the file could not be probed.
    """

    path: Path
    classification: Classification
    outcome: SubstitutionOutcome | None = None
    error: RunError | None = None


def process_file(entry: FileEntry, search: str, replace: str, settings: Settings) -> FileResult:
    """Classify one walked file and substitute it when it is text."""
    try:
        sample = read_probe(entry.path, settings.binary_probe_bytes)
    except OSError as exc:
        return FileResult(
            path=entry.path,
            classification=Classification.UNREADABLE,
            error=RunError.from_os_error(entry.path, ErrorKind.FILE_UNREADABLE, exc),
        )
    classification = classify_sample(sample, settings.binary_threshold)
    if classification is not Classification.TEXT:
        return FileResult(path=entry.path, classification=classification)
    return FileResult(
        path=entry.path,
        classification=classification,
        outcome=substitute(entry.path, search, replace),
    )


def _record(summary: Summary, result: FileResult) -> None:
    summary.files_scanned += 1
    if result.classification is Classification.BINARY:
        summary.files_skipped_binary += 1
        return
    if result.classification is Classification.UNREADABLE:
        if result.error is not None:
            summary.errors.append(result.error)
        return
    outcome = result.outcome
    if outcome is None:
        return
    if outcome.error is not None:
        summary.errors.append(outcome.error)
        return
    if outcome.changed:
        summary.files_changed += 1
        summary.occurrences += outcome.occurrences
        summary.changed_paths.append(outcome.path)


def _check_root(root: Path) -> Path:
    resolved = root.resolve()
    if not resolved.exists():
        raise RootInaccessibleError(root, "no such directory")
    if not resolved.is_dir():
        raise RootInaccessibleError(root, "not a directory")
    return resolved


def run(
    root: Path,
    search: str,
    replace: str,
    settings: Settings | None = None,
    on_result: Callable[[FileResult], None] | None = None,
) -> Summary:
    """Replace ``search`` with ``replace`` in every text file under ``root``.

    Raises ``ValueError`` for an empty ``search`` and
    ``RootInaccessibleError`` when ``root`` cannot be listed. All other
    failures are collected into ``Summary.errors``. ``on_result`` is invoked
    on the calling thread for every processed file, in walk order.
    """
    if not search:
        raise ValueError("search text must not be empty")
    settings = settings or Settings()
    root = _check_root(root)

    summary = Summary()
    entries = walk(
        root,
        hidden=settings.hidden,
        respect_ignore=settings.respect_ignore,
        ignore_filenames=settings.ignore_filenames,
        on_error=summary.errors.append,
    )

    def handle(result: FileResult) -> None:
        _record(summary, result)
        if on_result is not None:
            on_result(result)

    if settings.jobs <= 1:
        for entry in entries:
            handle(process_file(entry, search, replace, settings))
        return summary

    for result in _process_parallel(entries, search, replace, settings):
        handle(result)
    return summary


def _process_parallel(
    entries: Iterator[FileEntry],
    search: str,
    replace: str,
    settings: Settings,
) -> Iterator[FileResult]:
    """Run ``process_file`` on a pool, yielding results in submission order.

    At most ``jobs * IN_FLIGHT_PER_WORKER`` files are pending at once so the
    walk never runs far ahead of the workers.
    """
    max_in_flight = settings.jobs * IN_FLIGHT_PER_WORKER
    pending: deque[Future[FileResult]] = deque()
    with ThreadPoolExecutor(max_workers=settings.jobs, thread_name_prefix="findreplace-file") as executor:
        for entry in entries:
            pending.append(executor.submit(process_file, entry, search, replace, settings))
            while len(pending) >= max_in_flight:
                yield pending.popleft().result()
        while pending:
            yield pending.popleft().result()


__all__ = [
    "IN_FLIGHT_PER_WORKER",
    "Summary",
    "FileResult",
    "process_file",
    "run",
]
