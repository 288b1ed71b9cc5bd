"""Patch editing — parse assistant patches, review them, apply them."""

from .classifier import EditAction, classify_edit
from .patch_parser import ParsedFileEdit, parse_patch_blocks, has_patch_marker
from .path_resolver import resolve_path, to_display_path, normalize_project_root
from .diff_engine import DiffRow, DiffKind, compute_diff_rows, diff_stats
from .pending_store import PendingEditStore, PendingFileEdit
from .metrics import log_review_metric, read_review_stats

__all__ = [
    "EditAction", "classify_edit",
    "ParsedFileEdit", "parse_patch_blocks", "has_patch_marker",
    "resolve_path", "to_display_path", "normalize_project_root",
    "DiffRow", "DiffKind", "compute_diff_rows", "diff_stats",
    "PendingEditStore", "PendingFileEdit",
    "log_review_metric", "read_review_stats",
]
