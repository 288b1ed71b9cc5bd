"""
Patch parser — extracts ``***PATCH`` blocks from assistant text into
ordered edit proposals.

Grammar (after CRLF → LF)::

    ***PATCH <path>
    [***REASON: <text>]
    ***OLD:
    <old content>
    ***NEW:
    <new content>

A block ends at the next ``***PATCH`` marker or at end of input.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .classifier import EditAction, classify_edit

logger = logging.getLogger(__name__)

# Markers
PATCH_MARKER = "***PATCH"
_OLD_MARKER = "***OLD:"
_NEW_MARKER = "***NEW:"
_REASON_MARKER = "***REASON:"

_NO_CHANGE_PATH = "none"


@dataclass
class ParsedFileEdit:
    """One edit proposal, not yet tied to the filesystem."""
    path: str
    action: EditAction
    content: Optional[str] = None   # the NEW section
    reason: Optional[str] = None
    old_content: str = ""


def has_patch_marker(text: str) -> bool:
    return PATCH_MARKER in text


def parse_patch_blocks(text: str) -> list[ParsedFileEdit]:
    """Parse every well-formed patch block in *text*, in source order.

    Blocks whose path is empty or ``NONE`` (any case) mean "no change" and
    are dropped. Blocks missing an ``***OLD:`` or ``***NEW:`` section are
    skipped. This function never raises on malformed input.
    """
    normalized = text.replace("\r\n", "\n")
    edits: list[ParsedFileEdit] = []

    start = normalized.find(PATCH_MARKER)
    while start != -1:
        body_start = start + len(PATCH_MARKER)
        end = normalized.find(PATCH_MARKER, body_start)
        segment = normalized[body_start:] if end == -1 else normalized[body_start:end]

        edit = _parse_segment(segment)
        if edit is not None:
            edits.append(edit)

        start = end

    return edits


def _parse_segment(segment: str) -> ParsedFileEdit | None:
    """Parse the text following one ``***PATCH`` marker."""
    header, sep, body = segment.partition("\n")
    path = header.strip()
    if not path or path.lower() == _NO_CHANGE_PATH:
        logger.debug("[Patch] Skipping no-change block (path=%r)", path)
        return None
    if not sep:
        logger.debug("[Patch] Unterminated block header for %s", path)
        return None

    reason = None
    if body.startswith(_REASON_MARKER):
        reason_line, _, body = body.partition("\n")
        reason = reason_line[len(_REASON_MARKER):].strip() or None

    old_idx = body.find(_OLD_MARKER)
    if old_idx == -1:
        logger.debug("[Patch] Missing %s section for %s", _OLD_MARKER, path)
        return None
    old_start = old_idx + len(_OLD_MARKER)

    new_idx = body.find(_NEW_MARKER, old_start)
    if new_idx == -1:
        logger.debug("[Patch] Missing %s section for %s", _NEW_MARKER, path)
        return None

    old_content = _trim_section(body[old_start:new_idx])
    new_content = _trim_section(body[new_idx + len(_NEW_MARKER):])

    return ParsedFileEdit(
        path=path,
        action=classify_edit(old_content, new_content),
        content=new_content,
        reason=reason,
        old_content=old_content,
    )


def _trim_section(raw: str) -> str:
    """Drop the newline closing the marker line and the one before the
    next marker; everything in between is content, byte for byte."""
    if raw.startswith("\n"):
        raw = raw[1:]
    if raw.endswith("\n"):
        raw = raw[:-1]
    return raw
