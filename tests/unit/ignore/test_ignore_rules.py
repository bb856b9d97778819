"""Tests for rule-stack evaluation and ignore-file loading."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from findreplace.errors import ErrorKind
from findreplace.ignore import (
    IgnoreRuleSet,
    base_rule_stack,
    find_repository_root,
    is_excluded,
    load_directory_rules,
    load_rule_file,
)


class IsExcludedTests(unittest.TestCase):
    def test_nested_rule_set_overrides_ancestor(self) -> None:
        root = Path("/r")
        parent_rules, _ = IgnoreRuleSet.from_lines(root, ["*.txt"])
        child_rules, _ = IgnoreRuleSet.from_lines(root / "sub", ["!keep.txt"])
        stack = [parent_rules, child_rules]

        self.assertFalse(is_excluded(root / "sub" / "keep.txt", False, stack))
        self.assertTrue(is_excluded(root / "sub" / "other.txt", False, stack))
        self.assertTrue(is_excluded(root / "top.txt", False, stack))

    def test_patterns_are_relative_to_their_defining_directory(self) -> None:
        root = Path("/r")
        child_rules, _ = IgnoreRuleSet.from_lines(root / "sub", ["/local.txt"])

        self.assertTrue(is_excluded(root / "sub" / "local.txt", False, [child_rules]))
        self.assertFalse(is_excluded(root / "sub" / "deeper" / "local.txt", False, [child_rules]))
        self.assertFalse(is_excluded(root / "local.txt", False, [child_rules]))

    def test_vcs_metadata_is_always_excluded(self) -> None:
        self.assertTrue(is_excluded(Path("/r/.git"), True, []))
        self.assertTrue(is_excluded(Path("/r/sub/.git"), False, []))

    def test_empty_stack_excludes_nothing_else(self) -> None:
        self.assertFalse(is_excluded(Path("/r/a.txt"), False, []))
        self.assertFalse(is_excluded(Path("/r/node_modules"), True, []))


class LoadRulesTests(unittest.TestCase):
    def test_load_rule_file_missing_file_is_not_an_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()

            rule_set, errors = load_rule_file(root, root / ".gitignore")

            self.assertIsNone(rule_set)
            self.assertEqual(errors, [])

    def test_load_rule_file_reports_invalid_lines_and_keeps_the_rest(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            (root / ".gitignore").write_text("\ufeff*.log\n[oops\nbuild/\n", encoding="utf-8")

            rule_set, errors = load_rule_file(root, root / ".gitignore")

            assert rule_set is not None
            self.assertEqual([pattern.pattern for pattern in rule_set.patterns], ["*.log", "build/"])
            self.assertEqual([error.kind for error in errors], [ErrorKind.INVALID_IGNORE_PATTERN])

    def test_load_directory_rules_applies_ignore_after_gitignore(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            (root / ".gitignore").write_text("*.txt\n", encoding="utf-8")
            (root / ".ignore").write_text("!keep.txt\n", encoding="utf-8")

            rule_set, errors = load_directory_rules(root)

            assert rule_set is not None
            self.assertEqual(errors, [])
            self.assertFalse(is_excluded(root / "keep.txt", False, [rule_set]))
            self.assertTrue(is_excluded(root / "drop.txt", False, [rule_set]))

    def test_load_directory_rules_without_files_returns_none(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            rule_set, errors = load_directory_rules(Path(tmp).resolve())

            self.assertIsNone(rule_set)
            self.assertEqual(errors, [])


class RepositoryRulesTests(unittest.TestCase):
    def test_base_rule_stack_loads_ancestor_ignores_and_info_exclude(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            repo = Path(tmp).resolve()
            (repo / ".git" / "info").mkdir(parents=True)
            (repo / ".git" / "info" / "exclude").write_text("secret.txt\n", encoding="utf-8")
            (repo / ".gitignore").write_text("*.gen\n", encoding="utf-8")
            package = repo / "pkg"
            package.mkdir()
            (package / ".gitignore").write_text("local.txt\n", encoding="utf-8")

            self.assertEqual(find_repository_root(package), repo)
            stack, errors = base_rule_stack(package)

            self.assertEqual(errors, [])
            self.assertEqual([rule_set.base for rule_set in stack], [repo, repo])
            self.assertTrue(is_excluded(package / "secret.txt", False, stack))
            self.assertTrue(is_excluded(package / "a.gen", False, stack))
            # pkg's own ignore file is loaded by the walker, not here
            self.assertFalse(is_excluded(package / "local.txt", False, stack))

    def test_base_rule_stack_outside_repository_is_empty(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            if find_repository_root(root) is not None:
                self.skipTest("temporary directory is inside a git checkout")

            stack, errors = base_rule_stack(root)

            self.assertEqual(stack, [])
            self.assertEqual(errors, [])


if __name__ == "__main__":
    unittest.main()
