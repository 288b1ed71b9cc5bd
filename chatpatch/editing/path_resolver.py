"""
Path resolver — canonicalizes the many spellings an LLM (or an upstream
string concatenation) produces for one logical file into a single
absolute, forward-slash path.

Pure string manipulation: no filesystem access.
"""

from __future__ import annotations

import os
import posixpath
import re

_FILE_SCHEME = re.compile(r"^file://", re.IGNORECASE)
# "./C:/x", "../C:/x", "/C:/x" -> "C:/x"
_RELATIVE_DRIVE_PREFIX = re.compile(r"^[.\\/]+(?=[A-Za-z]:)")
_DRIVE = re.compile(r"^([A-Za-z]:)(.*)$", re.DOTALL)


def _normalize(path: str) -> str:
    """Unify separators and collapse ``.``/``..`` segments (drive-aware).

    Drive letters keep the caller's spelling.
    """
    path = path.replace("\\", "/")
    drive = ""
    match = _DRIVE.match(path)
    if match:
        drive, path = match.group(1), match.group(2)
    if not path:
        return drive + "/" if drive else "."
    normalized = posixpath.normpath(path)
    # POSIX keeps a leading "//" as-is; nothing downstream wants it
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    if drive and normalized == ".":
        normalized = "/"
    return drive + normalized


def _is_absolute(path: str) -> bool:
    return path.startswith("/") or bool(_DRIVE.match(path))


def normalize_project_root(project_root: str | None) -> str:
    """Return the normalized root without trailing separators, or ``""``."""
    if not project_root:
        return ""
    root = _normalize(project_root)
    if len(root) > 1 and not re.fullmatch(r"[A-Za-z]:/", root):
        root = root.rstrip("/")
    return root


def collapse_duplicate_root(path: str, project_root: str) -> str:
    """Collapse literal ``root + "/" + root`` repetitions to a single ``root``.

    Only the full root spelled twice counts: with root ``/app`` the marker
    is ``/app//app``, so a real ``/app/app`` subdirectory is left alone.
    *path* must still carry its original separators (before ``//`` is
    normalized away).
    """
    # a filesystem root cannot be "repeated"
    if not project_root or project_root == "/" or re.fullmatch(r"[A-Za-z]:/?", project_root):
        return path
    marker = project_root + "/" + project_root
    while marker in path:
        path = path.replace(marker, project_root, 1)
    return path


def resolve_path(raw_path: str, project_root: str | None = None) -> str:
    """Resolve *raw_path* to a canonical absolute path.

    Steps, in order: strip a ``file://`` scheme, strip a relative prefix that
    precedes a drive letter, collapse a repeated project root, normalize
    separators and dot segments, then anchor relative results at the project
    root (or the current working directory when no root is configured).

    >>> resolve_path("./C:/proj/x.ts", "C:/proj")
    'C:/proj/x.ts'
    >>> resolve_path("C:/proj/C:/proj/x.ts", "C:/proj")
    'C:/proj/x.ts'
    """
    path = raw_path.strip()
    path = _FILE_SCHEME.sub("", path)
    path = _RELATIVE_DRIVE_PREFIX.sub("", path).replace("\\", "/")

    root = normalize_project_root(project_root)
    path = collapse_duplicate_root(path, root)
    path = _normalize(path)

    if not _is_absolute(path):
        base = root or normalize_project_root(os.getcwd())
        path = _normalize(base + "/" + path)

    return path


def to_display_path(absolute_path: str, project_root: str | None) -> str:
    """Path relative to the project root when inside it, else unchanged."""
    root = normalize_project_root(project_root)
    if root:
        prefix = root if root.endswith("/") else root + "/"
        if absolute_path.startswith(prefix):
            return absolute_path[len(prefix):]
    return absolute_path
