"""
Review metrics — records accept/reject outcomes in a JSONL log file.
"""

from __future__ import annotations

import json
import logging
import os
from collections import Counter
from datetime import datetime, timezone
from typing import Iterator

logger = logging.getLogger(__name__)

_METRICS_DIR = ".chatpatch"
_METRICS_FILE = "review_metrics.jsonl"


def _metrics_path(project_root: str | None = None) -> str:
    """Return the absolute path to the metrics file."""
    base = project_root or os.getcwd()
    return os.path.join(base, _METRICS_DIR, _METRICS_FILE)


def log_review_metric(data: dict, project_root: str | None = None) -> None:
    """Append a single review outcome to the JSONL log.

    Parameters
    ----------
    data:
        Fields to log (outcome, action, path, added, removed, error).
    project_root:
        Optional project root directory. Defaults to CWD.
    """
    path = _metrics_path(project_root)

    entry = {"timestamp": datetime.now(timezone.utc).isoformat()}
    entry.update(data)

    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry) + "\n")
    except OSError as exc:
        logger.warning("[Review] Failed to write metrics: %s", exc)


def _iter_entries(path: str) -> Iterator[dict]:
    """Yield decoded log records, skipping blank and corrupt lines."""
    if not os.path.isfile(path):
        return
    try:
        with open(path, encoding="utf-8") as log:
            raw_lines = log.read().splitlines()
    except OSError as exc:
        logger.warning("[Review] Failed to read metrics: %s", exc)
        return
    for raw in raw_lines:
        if not raw.strip():
            continue
        try:
            record = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug("[Review] Skipping corrupt metrics line")
            continue
        if isinstance(record, dict):
            yield record


def read_review_stats(
    last_n: int = 100,
    project_root: str | None = None,
) -> dict:
    """Compute rolling statistics from the metrics log.

    Returns
    -------
    dict
        ``total``, ``accept_rate``, ``failure_rate`` (percentages),
        ``actions`` (action -> count) and ``lines_added`` /
        ``lines_removed`` over accepted edits.
    """
    entries = list(_iter_entries(_metrics_path(project_root)))[-last_n:]

    if not entries:
        return {
            "total": 0,
            "accept_rate": 0.0,
            "failure_rate": 0.0,
            "actions": {},
            "lines_added": 0,
            "lines_removed": 0,
        }

    total = len(entries)
    outcomes = Counter(e.get("outcome", "unknown") for e in entries)
    accepted = [e for e in entries if e.get("outcome") == "accepted"]

    return {
        "total": total,
        "accept_rate": outcomes["accepted"] / total * 100,
        "failure_rate": outcomes["failed"] / total * 100,
        "actions": dict(Counter(e.get("action", "unknown") for e in entries)),
        "lines_added": sum(e.get("added", 0) for e in accepted),
        "lines_removed": sum(e.get("removed", 0) for e in accepted),
    }
