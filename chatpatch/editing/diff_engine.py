"""
Diff engine — line-level diff rows for reviewing a pending edit.
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass
from enum import Enum

NO_CHANGES_PLACEHOLDER = "(no changes)"


class DiffKind(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    CONTEXT = "context"


@dataclass(frozen=True)
class DiffRow:
    """One rendered line of a diff."""
    text: str
    kind: DiffKind


def split_segments(content: str) -> list[str]:
    """Split *content* into line segments, each keeping its newline.

    A trailing newline yields an explicit empty final segment, so
    ``"a\\n"`` is ``["a\\n", ""]`` and ``""`` is ``[""]``.
    """
    parts = content.split("\n")
    return [p + "\n" for p in parts[:-1]] + [parts[-1]]


def compute_diff_rows(original_content: str, new_content: str) -> list[DiffRow]:
    """Compute the ordered diff rows between two texts.

    Removed rows of a replaced region precede its added rows. Joining the
    text of every non-removed row reproduces *new_content* exactly.
    Identical inputs produce a single placeholder context row.
    """
    if original_content == new_content:
        return [DiffRow(NO_CHANGES_PLACEHOLDER, DiffKind.CONTEXT)]

    old_lines = split_segments(original_content)
    new_lines = split_segments(new_content)

    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)
    rows: list[DiffRow] = []

    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            rows.extend(DiffRow(line, DiffKind.CONTEXT) for line in new_lines[j1:j2])
            continue
        if tag in ("replace", "delete"):
            rows.extend(DiffRow(line, DiffKind.REMOVED) for line in old_lines[i1:i2])
        if tag in ("replace", "insert"):
            rows.extend(DiffRow(line, DiffKind.ADDED) for line in new_lines[j1:j2])

    return rows


def reconstruct_new(rows: list[DiffRow]) -> str:
    """Join the text of all non-removed rows."""
    return "".join(row.text for row in rows if row.kind is not DiffKind.REMOVED)


def diff_stats(rows: list[DiffRow]) -> tuple[int, int]:
    """Return ``(added, removed)`` row counts."""
    added = sum(1 for r in rows if r.kind is DiffKind.ADDED)
    removed = sum(1 for r in rows if r.kind is DiffKind.REMOVED)
    return added, removed


def format_unified(original_content: str, new_content: str, path: str) -> str | None:
    """Return a unified diff for logging, or None if nothing changed."""
    if original_content == new_content:
        return None
    diff = difflib.unified_diff(
        original_content.splitlines(keepends=True),
        new_content.splitlines(keepends=True),
        fromfile=f"a/{path}",
        tofile=f"b/{path}",
        lineterm="",
    )
    diff_text = "".join(
        line if line.endswith("\n") else line + "\n" for line in diff
    )
    return diff_text or None
