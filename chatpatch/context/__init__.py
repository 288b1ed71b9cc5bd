"""Prompt context — choose which project files the model sees."""

from .listing import EntryKind, FileListingEntry, build_listing, entries_from_paths
from .selector import (
    ContextBlock, ContextSelection, ContextSelector, SelectionLimits,
    build_context_block, heuristic_matches, parse_selection_response,
    tokenize_question,
)

__all__ = [
    "EntryKind", "FileListingEntry", "build_listing", "entries_from_paths",
    "ContextBlock", "ContextSelection", "ContextSelector", "SelectionLimits",
    "build_context_block", "heuristic_matches", "parse_selection_response",
    "tokenize_question",
]
