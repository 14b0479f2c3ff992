"""Keep ignore-list files in step with the output directory.

Generated context files must stay out of git and out of Cursor's automatic
index, while remaining readable by Cursor when attached by hand. Three files
get one rule each:

    .gitignore           <root>/**/*.xml
    .cursorignoreindex   <root>/**/*.xml
    .cursorignore        !<root>/**/*.xml

Matching goes through ``canonical_glob`` so ``./x/**/*.xml``, ``x/*/*.xml/``
and ``x/**/*.xml`` count as the same rule. Running the sync twice never adds
a second copy.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from hypermix.core.console import get_logger

GITIGNORE = ".gitignore"
CURSOR_IGNORE_INDEX = ".cursorignoreindex"
CURSOR_IGNORE = ".cursorignore"

CONTEXT_COMMENT = "AI context files"
INCLUDE_COMMENT = "Include AI context files (auto-generated by hypermix)"

_STAR_RUN = re.compile(r"\*{2,}")
_DOUBLE_STAR_SEGMENT = re.compile(r"\*\*/")

_PURPOSE = {
    GITIGNORE: (
        "Ignored from tracking. Contributors will have to run hypermix after cloning "
        "to generate the context files, or run it from a git hook."
    ),
    CURSOR_IGNORE_INDEX: (
        "Preventing Cursor from indexing context files keeps them out of the agent's "
        "context window by default. You can still attach them to a chat by hand."
    ),
    CURSOR_IGNORE: (
        "Ensured Cursor is not blocked from reading the context files, which it needs "
        "since they are gitignored."
    ),
}

_logger = get_logger(__name__)


class IgnoreAction(str, Enum):
    CREATED = "created"
    APPENDED = "appended"
    REMOVED = "removed"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class IgnoreRule:
    file_path: Path
    pattern: str
    should_be_present: bool = True
    comment: str = CONTEXT_COMMENT


@dataclass(frozen=True, slots=True)
class IgnoreChange:
    rule: IgnoreRule
    action: IgnoreAction
    error: str | None = None

    @property
    def changed(self) -> bool:
        return self.action in {IgnoreAction.CREATED, IgnoreAction.APPENDED, IgnoreAction.REMOVED}


def canonical_glob(pattern: str) -> str:
    """Normalize a glob so equivalent spellings compare equal.

    Strips surrounding whitespace, a leading ``./`` (after an optional ``!``),
    trailing slashes, and collapses ``**`` to ``*``.
    """
    text = pattern.strip()
    negated = text.startswith("!")
    if negated:
        text = text[1:].lstrip()
    while text.startswith("./"):
        text = text[2:]
    text = text.rstrip("/")
    text = _STAR_RUN.sub("*", text)
    return f"!{text}" if negated else text


def globs_equivalent(left: str, right: str) -> bool:
    """True when two globs name the same rule, treating ``**/`` as optional."""
    if canonical_glob(left) == canonical_glob(right):
        return True
    return canonical_glob(_DOUBLE_STAR_SEGMENT.sub("", left)) == canonical_glob(
        _DOUBLE_STAR_SEGMENT.sub("", right)
    )


def _is_rule_line(line: str, pattern: str) -> bool:
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return False
    return globs_equivalent(stripped, pattern)


def contains_rule(lines: Iterable[str], pattern: str) -> bool:
    return any(_is_rule_line(line, pattern) for line in lines)


def ignore_pattern_for(output_root: Path, cwd: Path) -> str:
    """Glob for every XML file under ``output_root``, relative to ``cwd``."""
    try:
        relative = os.path.relpath(output_root, cwd)
    except ValueError:
        relative = str(output_root)
    # Ignore files always use forward slashes.
    normalized = relative.replace("\\", "/")
    if normalized in {"", "."}:
        return "**/*.xml"
    return f"{normalized}/**/*.xml"


def build_ignore_rules(output_root: Path, cwd: Path) -> list[IgnoreRule]:
    pattern = ignore_pattern_for(output_root, cwd)
    return [
        IgnoreRule(cwd / GITIGNORE, pattern),
        IgnoreRule(cwd / CURSOR_IGNORE_INDEX, pattern),
        IgnoreRule(cwd / CURSOR_IGNORE, f"!{pattern}", comment=INCLUDE_COMMENT),
    ]


def apply_rule(rule: IgnoreRule, logger: logging.Logger | None = None) -> IgnoreChange:
    """Bring one ignore file in line with ``rule``."""
    log = logger or _logger
    path = rule.file_path
    purpose = _PURPOSE.get(path.name, "")
    block = f"# {rule.comment}\n{rule.pattern}\n"

    try:
        if not path.exists():
            if not rule.should_be_present:
                return IgnoreChange(rule, IgnoreAction.UNCHANGED)
            path.write_text(block, encoding="utf-8")
            log.info("Created %s: %s", path.name, purpose)
            return IgnoreChange(rule, IgnoreAction.CREATED)

        content = path.read_text(encoding="utf-8")
        lines = content.splitlines(keepends=True)
        present = contains_rule(lines, rule.pattern)

        if rule.should_be_present:
            if present:
                return IgnoreChange(rule, IgnoreAction.UNCHANGED)
            if not content:
                prefix = ""
            elif content.endswith("\n"):
                prefix = "\n"
            else:
                prefix = "\n\n"
            with path.open("a", encoding="utf-8") as handle:
                handle.write(prefix + block)
            log.info("Updated %s: %s", path.name, purpose)
            return IgnoreChange(rule, IgnoreAction.APPENDED)

        if not present:
            return IgnoreChange(rule, IgnoreAction.UNCHANGED)
        kept = [line for line in lines if not _is_rule_line(line, rule.pattern)]
        path.write_text("".join(kept), encoding="utf-8")
        log.info("Removed %s from %s", rule.pattern, path.name)
        return IgnoreChange(rule, IgnoreAction.REMOVED)
    except (OSError, UnicodeDecodeError) as exc:
        log.error("Error processing %s: %s", path, exc)
        return IgnoreChange(rule, IgnoreAction.FAILED, error=str(exc))


async def sync_ignore_files(
    output_root: Path,
    *,
    cwd: Path | None = None,
    logger: logging.Logger | None = None,
) -> list[IgnoreChange]:
    """Apply the three ignore rules for ``output_root``, one file at a time."""
    base = cwd or Path.cwd()
    changes: list[IgnoreChange] = []
    for rule in build_ignore_rules(output_root, base):
        changes.append(await asyncio.to_thread(apply_rule, rule, logger))
    return changes


__all__ = [
    "CURSOR_IGNORE",
    "CURSOR_IGNORE_INDEX",
    "GITIGNORE",
    "IgnoreAction",
    "IgnoreChange",
    "IgnoreRule",
    "apply_rule",
    "build_ignore_rules",
    "canonical_glob",
    "contains_rule",
    "globs_equivalent",
    "ignore_pattern_for",
    "sync_ignore_files",
]
