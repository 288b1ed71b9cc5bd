"""
Project listing — walks the project tree into flat listing entries that
the context selector chooses from.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum

from ..editing.path_resolver import (
    normalize_project_root, resolve_path, to_display_path,
)

SKIP_DIRS = {
    ".git", "node_modules", "__pycache__", "venv", ".venv", "env",
    "dist", "build", ".tox", ".mypy_cache", ".pytest_cache",
    "target", "bin", "obj", ".idea", ".vscode", ".eggs",
    "site-packages", ".next", ".nuxt", "coverage", "htmlcov",
    ".chatpatch",
}

SKIP_EXTENSIONS = {
    ".pyc", ".pyo", ".exe", ".dll", ".so", ".dylib", ".o", ".obj",
    ".class", ".jar", ".war", ".zip", ".tar", ".gz", ".bz2",
    ".png", ".jpg", ".jpeg", ".gif", ".ico", ".bmp",
    ".mp3", ".mp4", ".wav", ".avi", ".mov",
    ".pdf", ".doc", ".docx", ".xls", ".xlsx",
    ".woff", ".woff2", ".ttf", ".eot",
    ".lock", ".db", ".sqlite", ".sqlite3",
}


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class FileListingEntry:
    relative_path: str
    absolute_path: str
    kind: EntryKind = EntryKind.FILE


def entries_from_paths(
    paths: list[str],
    project_root: str | None = None,
) -> list[FileListingEntry]:
    """Build file entries from relative (or absolute) path strings."""
    root = normalize_project_root(project_root or os.getcwd())
    entries: list[FileListingEntry] = []
    for raw in paths:
        absolute = resolve_path(raw, root)
        entries.append(FileListingEntry(
            to_display_path(absolute, root), absolute, EntryKind.FILE,
        ))
    return entries


def build_listing(
    directory: str,
    max_entries: int | None = None,
) -> list[FileListingEntry]:
    """Walk *directory* and return its files and folders, sorted per level.

    VCS, dependency and build directories plus binary files are skipped.
    """
    abs_dir = os.path.abspath(directory)
    root = normalize_project_root(abs_dir)
    entries: list[FileListingEntry] = []

    for current, dirs, files in os.walk(abs_dir):
        # Filter out skipped directories (in-place so os.walk respects it)
        dirs[:] = sorted(d for d in dirs if d not in SKIP_DIRS)

        for dname in dirs:
            rel = os.path.relpath(os.path.join(current, dname), abs_dir).replace("\\", "/")
            entries.append(FileListingEntry(rel, resolve_path(rel, root), EntryKind.DIRECTORY))

        for fname in sorted(files):
            _, ext = os.path.splitext(fname)
            if ext.lower() in SKIP_EXTENSIONS:
                continue
            rel = os.path.relpath(os.path.join(current, fname), abs_dir).replace("\\", "/")
            entries.append(FileListingEntry(rel, resolve_path(rel, root), EntryKind.FILE))

        if max_entries is not None and len(entries) >= max_entries:
            return entries[:max_entries]

    return entries
