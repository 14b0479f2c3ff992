from __future__ import annotations

from pathlib import Path

import pytest

from hypermix.core.ignore_files import (
    CURSOR_IGNORE,
    CURSOR_IGNORE_INDEX,
    GITIGNORE,
    IgnoreAction,
    IgnoreRule,
    apply_rule,
    build_ignore_rules,
    canonical_glob,
    contains_rule,
    globs_equivalent,
    ignore_pattern_for,
    sync_ignore_files,
)

PATTERN = ".hypermix/**/*.xml"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (".hypermix/**/*.xml", ".hypermix/*/*.xml"),
        ("./.hypermix/**/*.xml", ".hypermix/*/*.xml"),
        ("  .hypermix/*/*.xml/  ", ".hypermix/*/*.xml"),
        ("!./.hypermix/**/*.xml", "!.hypermix/*/*.xml"),
        ("! .hypermix/**/*.xml", "!.hypermix/*/*.xml"),
        ("build/", "build"),
    ],
)
def test_canonical_glob(raw: str, expected: str) -> None:
    assert canonical_glob(raw) == expected


def test_globs_equivalent_treats_double_star_segment_as_optional() -> None:
    assert globs_equivalent(".hypermix/*.xml", PATTERN)
    assert globs_equivalent(".hypermix/*/*.xml", PATTERN)
    assert not globs_equivalent(".hypermix/*.json", PATTERN)
    assert not globs_equivalent(f"!{PATTERN}", PATTERN)


def test_contains_rule_ignores_comments_and_blanks() -> None:
    assert not contains_rule(["# .hypermix/**/*.xml", "", "node_modules"], PATTERN)
    assert contains_rule(["node_modules", "./.hypermix/**/*.xml/"], PATTERN)


def test_ignore_pattern_is_relative_with_forward_slashes(tmp_path: Path) -> None:
    assert ignore_pattern_for(tmp_path / ".hypermix", tmp_path) == PATTERN
    assert ignore_pattern_for(tmp_path / "ctx" / "out", tmp_path) == "ctx/out/**/*.xml"
    assert ignore_pattern_for(tmp_path, tmp_path) == "**/*.xml"


def test_rules_cover_three_files(tmp_path: Path) -> None:
    rules = build_ignore_rules(tmp_path / ".hypermix", tmp_path)

    assert [rule.file_path.name for rule in rules] == [GITIGNORE, CURSOR_IGNORE_INDEX, CURSOR_IGNORE]
    assert [rule.pattern for rule in rules] == [PATTERN, PATTERN, f"!{PATTERN}"]
    assert all(rule.should_be_present for rule in rules)


def test_apply_rule_creates_missing_file(tmp_path: Path) -> None:
    path = tmp_path / GITIGNORE
    change = apply_rule(IgnoreRule(path, PATTERN))

    assert change.action is IgnoreAction.CREATED
    assert path.read_text(encoding="utf-8") == f"# AI context files\n{PATTERN}\n"


def test_apply_rule_appends_without_touching_existing_lines(tmp_path: Path) -> None:
    path = tmp_path / GITIGNORE
    path.write_text("node_modules\n*.log", encoding="utf-8")

    change = apply_rule(IgnoreRule(path, PATTERN))

    assert change.action is IgnoreAction.APPENDED
    assert path.read_text(encoding="utf-8") == (
        f"node_modules\n*.log\n\n# AI context files\n{PATTERN}\n"
    )


def test_apply_rule_recognizes_equivalent_spelling(tmp_path: Path) -> None:
    path = tmp_path / GITIGNORE
    original = "dist\n./.hypermix/*/*.xml/\n"
    path.write_text(original, encoding="utf-8")

    change = apply_rule(IgnoreRule(path, PATTERN))

    assert change.action is IgnoreAction.UNCHANGED
    assert path.read_text(encoding="utf-8") == original


def test_apply_rule_removes_when_absent_requested(tmp_path: Path) -> None:
    path = tmp_path / CURSOR_IGNORE
    path.write_text(f"secrets/\n!{PATTERN}\n", encoding="utf-8")

    change = apply_rule(IgnoreRule(path, f"!{PATTERN}", should_be_present=False))

    assert change.action is IgnoreAction.REMOVED
    assert path.read_text(encoding="utf-8") == "secrets/\n"


def test_apply_rule_absent_on_missing_file_is_noop(tmp_path: Path) -> None:
    path = tmp_path / CURSOR_IGNORE
    change = apply_rule(IgnoreRule(path, PATTERN, should_be_present=False))

    assert change.action is IgnoreAction.UNCHANGED
    assert not path.exists()


def test_apply_rule_reports_io_failure(tmp_path: Path) -> None:
    # a directory where the ignore file should be
    path = tmp_path / GITIGNORE
    path.mkdir()

    change = apply_rule(IgnoreRule(path, PATTERN))

    assert change.action is IgnoreAction.FAILED
    assert change.error


@pytest.mark.asyncio
async def test_sync_is_idempotent(tmp_path: Path) -> None:
    (tmp_path / GITIGNORE).write_text("node_modules\n", encoding="utf-8")
    root = tmp_path / ".hypermix"

    first = await sync_ignore_files(root, cwd=tmp_path)
    snapshot = {name: (tmp_path / name).read_bytes() for name in (GITIGNORE, CURSOR_IGNORE_INDEX, CURSOR_IGNORE)}
    second = await sync_ignore_files(root, cwd=tmp_path)

    assert [change.action for change in first] == [
        IgnoreAction.APPENDED,
        IgnoreAction.CREATED,
        IgnoreAction.CREATED,
    ]
    assert all(change.action is IgnoreAction.UNCHANGED for change in second)
    for name, content in snapshot.items():
        assert (tmp_path / name).read_bytes() == content
    assert (tmp_path / CURSOR_IGNORE).read_text(encoding="utf-8").count(f"!{PATTERN}") == 1
