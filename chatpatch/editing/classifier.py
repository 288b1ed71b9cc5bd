"""
Edit classifier — derives the edit action from OLD/NEW presence.
"""

from __future__ import annotations

from enum import Enum


class EditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


def classify_edit(old_content: str, new_content: str) -> EditAction:
    """Return the action implied by which sections of a patch are non-empty.

    Both sections empty is an ``UPDATE`` (accepting it truncates the file).
    """
    has_old = len(old_content) > 0
    has_new = len(new_content) > 0

    if not has_old and has_new:
        return EditAction.CREATE
    if has_old and not has_new:
        return EditAction.DELETE
    return EditAction.UPDATE
