"""Gitignore-style rule parsing and exclusion checks.

Ignore files are compiled into ``IgnoreRuleSet`` values, one per defining
directory. The walker keeps a stack of active rule sets (ancestors first) and
asks ``is_excluded`` about every entry it enumerates. Within a set the last
matching pattern wins; deeper sets are consulted after shallower ones so a
nested ignore file has the final say for paths beneath it.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from .errors import ErrorKind, InvalidIgnorePattern, RunError

DEFAULT_IGNORE_FILENAMES = (".gitignore", ".ignore")
VCS_METADATA_NAME = ".git"


@dataclass(frozen=True)
class IgnorePattern:
    """One compiled ignore-file line.

    ``anchored`` patterns are matched against the full path relative to the
    defining directory; unanchored ones may match at any depth below it.
    """

    pattern: str
    negated: bool
    directory_only: bool
    anchored: bool
    regex: re.Pattern[str]

    def matches(self, relative_path: str, is_dir: bool) -> bool:
        """Return whether ``relative_path`` (posix form) is matched."""
        if self.directory_only and not is_dir:
            return False
        return self.regex.fullmatch(relative_path) is not None


def _strip_trailing_spaces(line: str) -> str:
    """Drop trailing spaces unless escaped with a backslash."""
    end = len(line)
    while end > 0 and line[end - 1] == " ":
        backslashes = 0
        idx = end - 2
        while idx >= 0 and line[idx] == "\\":
            backslashes += 1
            idx -= 1
        if backslashes % 2 == 1:
            break
        end -= 1
    return line[:end]


def _translate_bracket(pattern: str, start: int) -> tuple[str, int]:
    """Translate a ``[...]`` class starting at ``pattern[start] == "["``.

    Returns the regex fragment and the index just past the closing bracket.
    """
    idx = start + 1
    negate = False
    if idx < len(pattern) and pattern[idx] in "!^":
        negate = True
        idx += 1

    members: list[str] = []
    first = True
    while idx < len(pattern):
        ch = pattern[idx]
        if ch == "]" and not first:
            body = "".join(members)
            # A class never matches the path separator, even via a range.
            if negate:
                return "[^/" + body + "]", idx + 1
            return "(?!/)[" + body + "]", idx + 1
        first = False
        if ch == "\\":
            if idx + 1 >= len(pattern):
                break
            members.append(re.escape(pattern[idx + 1]))
            idx += 2
            continue
        if ch == "/":
            raise InvalidIgnorePattern(pattern, "path separator inside character class")
        members.append("-" if ch == "-" else re.escape(ch))
        idx += 1
    raise InvalidIgnorePattern(pattern, "unterminated character class")


def _translate(pattern: str) -> str:
    """Translate a gitignore glob body into a regular expression string."""
    out: list[str] = []
    idx = 0
    length = len(pattern)
    while idx < length:
        ch = pattern[idx]
        if ch == "*":
            if pattern.startswith("**", idx):
                at_segment_start = idx == 0 or pattern[idx - 1] == "/"
                after = idx + 2
                if at_segment_start and after == length:
                    out.append(".*")
                    idx = after
                    continue
                if at_segment_start and pattern.startswith("/", after):
                    out.append("(?:.*/)?")
                    idx = after + 1
                    continue
            out.append("[^/]*")
            while idx < length and pattern[idx] == "*":
                idx += 1
            continue
        if ch == "?":
            out.append("[^/]")
            idx += 1
            continue
        if ch == "[":
            fragment, idx = _translate_bracket(pattern, idx)
            out.append(fragment)
            continue
        if ch == "\\":
            if idx + 1 >= length:
                raise InvalidIgnorePattern(pattern, "trailing backslash")
            out.append(re.escape(pattern[idx + 1]))
            idx += 2
            continue
        out.append(re.escape(ch))
        idx += 1
    return "".join(out)


def parse_pattern(line: str) -> IgnorePattern | None:
    """Compile one ignore-file line.

    Returns ``None`` for blank lines and comments. Raises
    ``InvalidIgnorePattern`` when the line cannot be compiled.
    """
    text = line.rstrip("\r\n")
    if not text.strip() or text.startswith("#"):
        return None
    text = _strip_trailing_spaces(text)
    if not text:
        return None

    raw = text
    negated = False
    if text.startswith("!"):
        negated = True
        text = text[1:]
    if not text:
        raise InvalidIgnorePattern(raw, "negation without a pattern")

    directory_only = False
    if text.endswith("/") and not text.endswith("\\/"):
        directory_only = True
        text = text.rstrip("/")
    if not text:
        raise InvalidIgnorePattern(raw, "pattern matches nothing")

    anchored = "/" in text
    if text.startswith("/"):
        text = text[1:]
        if not text:
            raise InvalidIgnorePattern(raw, "pattern matches nothing")

    body = _translate(text)
    if not anchored:
        body = "(?:.*/)?" + body
    try:
        regex = re.compile(body, re.DOTALL)
    except re.error as exc:
        raise InvalidIgnorePattern(raw, str(exc)) from exc

    return IgnorePattern(
        pattern=raw,
        negated=negated,
        directory_only=directory_only,
        anchored=anchored,
        regex=regex,
    )


@dataclass(frozen=True)
class IgnoreRuleSet:
    """Ordered patterns defined by ignore files in one directory."""

    base: Path
    patterns: tuple[IgnorePattern, ...]
    sources: tuple[Path, ...] = ()

    @classmethod
    def from_lines(
        cls,
        base: Path,
        lines: Iterable[str],
        source: Path | None = None,
    ) -> tuple[IgnoreRuleSet, list[RunError]]:
        """Compile ``lines``, skipping malformed ones and reporting them."""
        patterns: list[IgnorePattern] = []
        errors: list[RunError] = []
        for line_number, line in enumerate(lines, start=1):
            try:
                compiled = parse_pattern(line)
            except InvalidIgnorePattern as exc:
                errors.append(
                    RunError(
                        path=source if source is not None else base,
                        kind=ErrorKind.INVALID_IGNORE_PATTERN,
                        message=f"line {line_number}: {exc}",
                    )
                )
                continue
            if compiled is not None:
                patterns.append(compiled)
        sources = (source,) if source is not None else ()
        return cls(base=base, patterns=tuple(patterns), sources=sources), errors

    def verdict(self, relative_path: str, is_dir: bool) -> bool | None:
        """Return the last matching pattern's decision, or ``None`` if none match.

        ``True`` means excluded; ``False`` means re-included by a negation.
        """
        for pattern in reversed(self.patterns):
            if pattern.matches(relative_path, is_dir):
                return not pattern.negated
        return None

    def merged_with(self, other: IgnoreRuleSet) -> IgnoreRuleSet:
        """Append ``other``'s patterns after this set's (same base directory)."""
        return IgnoreRuleSet(
            base=self.base,
            patterns=self.patterns + other.patterns,
            sources=self.sources + other.sources,
        )


def _decode_lines(data: bytes) -> list[str]:
    text = data.decode("utf-8", errors="replace")
    if text.startswith("\ufeff"):
        text = text[1:]
    return text.splitlines()


def load_rule_file(base: Path, source: Path) -> tuple[IgnoreRuleSet | None, list[RunError]]:
    """Load one ignore file whose patterns are relative to ``base``.

    A missing file yields ``(None, [])``. Unreadable files and bad lines are
    reported, never raised.
    """
    try:
        data = source.read_bytes()
    except FileNotFoundError:
        return None, []
    except IsADirectoryError:
        return None, []
    except OSError as exc:
        return None, [RunError.from_os_error(source, ErrorKind.FILE_UNREADABLE, exc)]
    return IgnoreRuleSet.from_lines(base, _decode_lines(data), source=source)


def load_directory_rules(
    directory: Path,
    filenames: Sequence[str] = DEFAULT_IGNORE_FILENAMES,
) -> tuple[IgnoreRuleSet | None, list[RunError]]:
    """Load and merge the ignore files found directly in ``directory``.

    Files are merged in ``filenames`` order, so later names take precedence.
    """
    merged: IgnoreRuleSet | None = None
    errors: list[RunError] = []
    for name in filenames:
        rule_set, file_errors = load_rule_file(directory, directory / name)
        errors.extend(file_errors)
        if rule_set is None:
            continue
        merged = rule_set if merged is None else merged.merged_with(rule_set)
    return merged, errors


def find_repository_root(start: Path) -> Path | None:
    """Return the nearest directory at or above ``start`` holding ``.git``."""
    for candidate in (start, *start.parents):
        try:
            if (candidate / VCS_METADATA_NAME).exists():
                return candidate
        except OSError:
            continue
    return None


def base_rule_stack(
    root: Path,
    filenames: Sequence[str] = DEFAULT_IGNORE_FILENAMES,
) -> tuple[list[IgnoreRuleSet], list[RunError]]:
    """Collect rule sets that apply to ``root`` from outside its own tree.

    When ``root`` is inside a git working tree this loads
    ``.git/info/exclude`` and the ignore files of every directory from the
    repository top down to ``root``'s parent. ``root``'s own ignore files are
    left to the walker.
    """
    repo_root = find_repository_root(root)
    if repo_root is None:
        return [], []

    stack: list[IgnoreRuleSet] = []
    errors: list[RunError] = []

    exclude_rules, exclude_errors = load_rule_file(
        repo_root,
        repo_root / VCS_METADATA_NAME / "info" / "exclude",
    )
    errors.extend(exclude_errors)
    if exclude_rules is not None and exclude_rules.patterns:
        stack.append(exclude_rules)

    try:
        relative_parts = root.relative_to(repo_root).parts
    except ValueError:
        return stack, errors

    directory = repo_root
    for part in relative_parts:
        rule_set, dir_errors = load_directory_rules(directory, filenames)
        errors.extend(dir_errors)
        if rule_set is not None and rule_set.patterns:
            stack.append(rule_set)
        directory = directory / part
    return stack, errors


def is_excluded(path: Path, is_dir: bool, rule_stack: Sequence[IgnoreRuleSet]) -> bool:
    """Return whether ``path`` is excluded by ``rule_stack``.

    The version-control metadata entry is always excluded. Rule sets are
    consulted in stack order and each one's verdict overrides earlier ones.
    Sets whose base does not contain ``path`` are skipped.
    """
    if path.name == VCS_METADATA_NAME:
        return True

    excluded = False
    for rule_set in rule_stack:
        try:
            relative = path.relative_to(rule_set.base)
        except ValueError:
            continue
        relative_text = relative.as_posix()
        if relative_text in ("", "."):
            continue
        decision = rule_set.verdict(relative_text, is_dir)
        if decision is not None:
            excluded = decision
    return excluded


__all__ = [
    "DEFAULT_IGNORE_FILENAMES",
    "VCS_METADATA_NAME",
    "IgnorePattern",
    "IgnoreRuleSet",
    "parse_pattern",
    "load_rule_file",
    "load_directory_rules",
    "find_repository_root",
    "base_rule_stack",
    "is_excluded",
]
