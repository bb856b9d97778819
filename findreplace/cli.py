"""Command-line front door for fr.

Parses CLI options, merges them over the persisted config, and runs one
find-and-replace pass rooted at the current working directory.
"""

from __future__ import annotations

import argparse
import dataclasses
import sys
from pathlib import Path

from . import __version__
from .config import MAX_JOBS, load_settings
from .errors import RootInaccessibleError
from .report import format_changed, format_errors, format_summary
from .run import run

NOTES = """\
notes:
  - text matching is literal (no regular expressions)
  - files matching .gitignore / .ignore patterns are skipped
  - only text files are processed; binary files are left untouched
  - files are rewritten atomically (temp file + rename)

example:
  fr "old_text" "new_text"
"""


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return min(parsed, MAX_JOBS)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fr",
        description="Recursively find and replace literal text in files under the current directory.",
        epilog=NOTES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("find_text", help="Text to find (matched literally).")
    parser.add_argument("replace_text", help="Replacement text (inserted literally, may be empty).")
    parser.add_argument("--version", action="version", version=f"fr {__version__}")
    parser.add_argument("--hidden", action="store_true", help="Include hidden files and directories.")
    parser.add_argument(
        "--no-ignore",
        action="store_true",
        help="Do not read .gitignore/.ignore files (.git is still skipped).",
    )
    parser.add_argument(
        "-j",
        "--jobs",
        type=_positive_int,
        default=None,
        help="Number of files processed in parallel (default: from config, else 1).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="List every changed file.")
    parser.add_argument("--no-color", action="store_true", help="Disable color output even on TTY.")
    return parser


def main(default_path: Path | None = None) -> None:
    """Parse CLI arguments and run find-and-replace.

    ``default_path`` is primarily for tests; when omitted the current working
    directory is the root. Per-file errors are reported on stderr but do not
    change the exit status; an empty find text or an inaccessible root exits
    non-zero.
    """
    parser = build_parser()
    args = parser.parse_args()

    if not args.find_text:
        raise SystemExit("Find text cannot be empty")

    settings = load_settings()
    overrides: dict[str, object] = {}
    if args.hidden:
        overrides["hidden"] = True
    if args.no_ignore:
        overrides["respect_ignore"] = False
    if args.jobs is not None:
        overrides["jobs"] = args.jobs
    if args.no_color:
        overrides["color"] = False
    settings = dataclasses.replace(settings, **overrides)

    if default_path is None:
        try:
            default_path = Path.cwd()
        except OSError as exc:
            raise SystemExit(f"Failed to get current directory: {exc}") from exc
    root = default_path.resolve()

    try:
        summary = run(root, args.find_text, args.replace_text, settings)
    except RootInaccessibleError as exc:
        raise SystemExit(str(exc)) from exc

    color_out = settings.color and sys.stdout.isatty()
    color_err = settings.color and sys.stderr.isatty()
    if args.verbose:
        for line in format_changed(summary, root, color=color_out):
            sys.stdout.write(line + "\n")
    sys.stdout.write(format_summary(summary, color=color_out) + "\n")
    if summary.errors:
        sys.stderr.write(f"{len(summary.errors)} error(s):\n")
        for line in format_errors(summary, root, color=color_err):
            sys.stderr.write(f"  {line}\n")


if __name__ == "__main__":
    main()
