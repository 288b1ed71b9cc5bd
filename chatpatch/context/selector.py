"""
Context selector — picks a small set of project files to inject into the
next prompt.

Two independent stages are composed by :class:`ContextSelector`:

* a heuristic stage that scores paths by token containment, and
* an LLM stage that asks the model which files matter.

The LLM stage is optional and any failure or cancellation there falls back
to the heuristic result, so selection never blocks a question.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, Union

from ..editing.path_resolver import normalize_project_root, resolve_path
from ..gateways import CancellationToken, CompletionGateway, FileAccessGateway
from .listing import EntryKind, FileListingEntry, entries_from_paths

logger = logging.getLogger(__name__)

_TOKEN_PATTERN = re.compile(r"[a-z0-9._-]+")
_WORD_PATTERN = re.compile(r"[a-z0-9_-]+")
_MIN_TOKEN_LEN = 3
_LONG_TOKEN_LEN = 6

TRUNCATION_MARKER = "\n... [truncated]"

ListingInput = Sequence[Union[FileListingEntry, str]]


@dataclass
class SelectionLimits:
    max_files: int = 5
    listing_max_entries: int = 400
    listing_max_chars: int = 4000
    context_char_budget: int = 8000
    per_file_char_cap: int = 2000


@dataclass
class ContextSelection:
    """Outcome of one selection request."""
    paths: list[str] = field(default_factory=list)
    source: str = "heuristic"      # "llm" or "heuristic"
    fallback_reason: str = ""


@dataclass
class ContextBlock:
    text: str = ""
    included: list[str] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)


# ══════════════════════════════════════════════════════════════════
#  Heuristic stage
# ══════════════════════════════════════════════════════════════════

def tokenize_question(question: str) -> list[str]:
    """Lowercase tokens of ``[a-z0-9._-]`` with at least 3 characters."""
    seen: dict[str, None] = {}
    for token in _TOKEN_PATTERN.findall(question.lower()):
        if len(token) >= _MIN_TOKEN_LEN:
            seen.setdefault(token, None)
    return list(seen)


def score_path(path: str, tokens: Iterable[str], words: Iterable[str] = ()) -> int:
    """Score *path* against question tokens.

    Each token contained in the path adds 2 when it is at least 6 chars
    long, else 1. A file whose stem equals a question word adds 1, which
    lets short names like ``y.ts`` match "fix y".
    """
    lowered = path.lower()
    score = 0
    for token in tokens:
        if token in lowered:
            score += 2 if len(token) >= _LONG_TOKEN_LEN else 1

    stem = os.path.splitext(lowered.rsplit("/", 1)[-1])[0]
    if stem and stem in set(words):
        score += 1
    return score


def heuristic_matches(question: str, candidates: Sequence[str], limit: int) -> list[str]:
    """Return up to *limit* candidate paths, best score first.

    Ties keep listing order; zero scores are dropped.
    """
    if limit <= 0:
        return []
    tokens = tokenize_question(question)
    words = _WORD_PATTERN.findall(question.lower())
    scored = [
        (score_path(path, tokens, words), index, path)
        for index, path in enumerate(candidates)
    ]
    scored = [item for item in scored if item[0] > 0]
    scored.sort(key=lambda item: (-item[0], item[1]))
    return [path for _, _, path in scored[:limit]]


# ══════════════════════════════════════════════════════════════════
#  LLM stage
# ══════════════════════════════════════════════════════════════════

def format_listing_for_prompt(paths: Sequence[str], max_entries: int, max_chars: int) -> str:
    """Render at most *max_entries* paths within *max_chars* characters."""
    lines: list[str] = []
    used = 0
    for path in paths[:max_entries]:
        line = f"- {path}"
        cost = len(line) + (1 if lines else 0)
        if used + cost > max_chars:
            break
        lines.append(line)
        used += cost
    return "\n".join(lines)


def build_selection_prompt(
    question: str,
    preferred: Sequence[str],
    listing_text: str,
    max_files: int,
) -> list[dict[str, str]]:
    """Build the chat messages asking the model to pick relevant files."""
    preferred_text = "\n".join(f"- {p}" for p in preferred) or "(none)"
    system = (
        "You choose which project files are needed to answer a coding "
        "question. Reply with a JSON array of at most "
        f"{max_files} file paths copied exactly from the listing, or [] if "
        "no file is needed. Reply with the JSON array only."
    )
    user = (
        f"## Question\n{question}\n\n"
        f"## Files the user has open\n{preferred_text}\n\n"
        f"## Project files\n{listing_text}\n"
    )
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]


def parse_selection_response(text: str) -> list[str]:
    """Extract path strings from a model reply.

    Tries strict JSON between the first ``[`` and the last ``]``; on
    failure, splits on commas and newlines.
    """
    start = text.find("[")
    end = text.rfind("]")
    if start != -1 and end > start:
        try:
            data = json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            data = None
        if isinstance(data, list):
            return [str(item).strip() for item in data if str(item).strip()]

    paths: list[str] = []
    for piece in re.split(r"[,\n]", text):
        cleaned = piece.strip().strip("[]").strip().lstrip("-*").strip()
        cleaned = cleaned.strip("`\"'").strip()
        if cleaned:
            paths.append(cleaned)
    return paths


# ══════════════════════════════════════════════════════════════════
#  Composition
# ══════════════════════════════════════════════════════════════════

def merge_selection(
    preferred: Sequence[str],
    chosen: Sequence[str],
    heuristic: Sequence[str],
    max_files: int,
) -> list[str]:
    """Preferred first, then chosen, then heuristic padding; deduplicated
    and capped at *max_files*."""
    merged: list[str] = []
    for group in (preferred, chosen, heuristic):
        for path in group:
            if len(merged) >= max_files:
                return merged
            if path not in merged:
                merged.append(path)
    return merged


class _ListingIndex:
    """Maps the many spellings of a listed file to its relative path."""

    def __init__(self, entries: Sequence[FileListingEntry], project_root: str) -> None:
        self.project_root = project_root
        self.paths: list[str] = []
        self._by_key: dict[str, str] = {}
        for entry in entries:
            if entry.kind is not EntryKind.FILE:
                continue
            self.paths.append(entry.relative_path)
            self._by_key.setdefault(entry.relative_path, entry.relative_path)
            self._by_key.setdefault(entry.absolute_path, entry.relative_path)

    def lookup(self, raw: str) -> str | None:
        raw = raw.strip()
        if not raw:
            return None
        if raw in self._by_key:
            return self._by_key[raw]
        return self._by_key.get(resolve_path(raw, self.project_root))

    def lookup_all(self, raws: Iterable[str]) -> list[str]:
        found: list[str] = []
        for raw in raws:
            rel = self.lookup(raw)
            if rel is not None and rel not in found:
                found.append(rel)
        return found


class ContextSelector:
    """Choose at most ``limits.max_files`` files for a question.

    Parameters
    ----------
    completion:
        Gateway for the LLM stage; when None only heuristics are used.
    project_root:
        Root against which listing and preferred paths are resolved.
    """

    def __init__(
        self,
        completion: Optional[CompletionGateway] = None,
        project_root: str | None = None,
        limits: SelectionLimits | None = None,
        use_llm: bool = True,
    ) -> None:
        self._completion = completion
        self._project_root = normalize_project_root(project_root or os.getcwd())
        self.limits = limits or SelectionLimits()
        self._use_llm = use_llm

    async def select(
        self,
        question: str,
        listing: ListingInput,
        active_file: str | None = None,
        open_files: Sequence[str] = (),
        cancellation_token: CancellationToken | None = None,
    ) -> ContextSelection:
        """Select context files; never raises for LLM-stage failures."""
        index = _ListingIndex(self._as_entries(listing), self._project_root)
        max_files = self.limits.max_files

        raw_preferred = ([active_file] if active_file else []) + list(open_files)
        preferred = index.lookup_all(raw_preferred)[:max_files]
        heuristic = heuristic_matches(question, index.paths, max_files)

        reason = self._llm_precondition_failure(question, index, cancellation_token)
        if reason:
            logger.debug("[Context] Heuristic selection only: %s", reason)
            return ContextSelection(
                merge_selection(preferred, [], heuristic, max_files),
                "heuristic", reason,
            )

        try:
            chosen = await self._llm_stage(question, preferred, index, cancellation_token)
        except Exception as exc:
            logger.warning("[Context] LLM selection failed, using heuristics: %s", exc)
            return ContextSelection(
                merge_selection(preferred, [], heuristic, max_files),
                "heuristic", f"{type(exc).__name__}: {exc}",
            )

        paths = merge_selection(preferred, chosen, heuristic, max_files)
        logger.info("[Context] Selected %d file(s): %s", len(paths), ", ".join(paths))
        return ContextSelection(paths, "llm")

    async def build_context(
        self,
        paths: Sequence[str],
        file_gateway: FileAccessGateway,
    ) -> ContextBlock:
        return await build_context_block(
            paths, file_gateway, self._project_root, self.limits,
        )

    # ── Internals ──

    def _as_entries(self, listing: ListingInput) -> list[FileListingEntry]:
        entries: list[FileListingEntry] = []
        raw_paths: list[str] = []
        for item in listing:
            if isinstance(item, FileListingEntry):
                entries.append(item)
            else:
                raw_paths.append(item)
        if raw_paths:
            entries.extend(entries_from_paths(raw_paths, self._project_root))
        return entries

    def _llm_precondition_failure(
        self,
        question: str,
        index: _ListingIndex,
        token: CancellationToken | None,
    ) -> str:
        if self._completion is None or not self._use_llm:
            return "LLM selection disabled"
        if not index.paths:
            return "empty listing"
        if not question.strip():
            return "empty question"
        if token is not None and token.is_cancelled:
            return "cancelled"
        return ""

    async def _llm_stage(
        self,
        question: str,
        preferred: Sequence[str],
        index: _ListingIndex,
        token: CancellationToken | None,
    ) -> list[str]:
        listing_text = format_listing_for_prompt(
            index.paths,
            self.limits.listing_max_entries,
            self.limits.listing_max_chars,
        )
        messages = build_selection_prompt(
            question, preferred, listing_text, self.limits.max_files,
        )
        reply = await self._completion.request_completion(
            messages, cancellation_token=token,
        )
        chosen = index.lookup_all(parse_selection_response(reply))
        logger.debug("[Context] Model picked %s", chosen)
        return chosen[:self.limits.max_files]


# ══════════════════════════════════════════════════════════════════
#  Snippet formatting
# ══════════════════════════════════════════════════════════════════

def number_lines(content: str) -> str:
    """Prefix each line with a 4-digit, 1-based line number."""
    return "\n".join(
        f"{number:04d}| {line}"
        for number, line in enumerate(content.split("\n"), start=1)
    )


def format_file_snippet(path: str, content: str, per_file_cap: int) -> str:
    """Render one file as a fenced, line-numbered block capped in size."""
    body = number_lines(content)
    if len(body) > per_file_cap:
        body = body[:per_file_cap] + TRUNCATION_MARKER
    return f"### File: {path}\n```\n{body}\n```\n"


async def build_context_block(
    paths: Sequence[str],
    file_gateway: FileAccessGateway,
    project_root: str | None,
    limits: SelectionLimits | None = None,
) -> ContextBlock:
    """Read the selected files and concatenate their snippets.

    Files are appended in order until the next one would exceed the total
    character budget; it and every later file are dropped. Unreadable
    files (missing, unreadable or not valid text) are skipped.
    """
    limits = limits or SelectionLimits()
    block = ContextBlock()
    parts: list[str] = []
    used = 0

    for position, path in enumerate(paths):
        try:
            content = await file_gateway.read_file(resolve_path(path, project_root))
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("[Context] Skipping unreadable %s: %s", path, exc)
            continue

        snippet = format_file_snippet(path, content, limits.per_file_char_cap)
        cost = len(snippet) + (1 if parts else 0)
        if used + cost > limits.context_char_budget:
            block.dropped = list(paths[position:])
            logger.debug("[Context] Budget reached, dropped %s", block.dropped)
            break
        parts.append(snippet)
        block.included.append(path)
        used += cost

    block.text = "\n".join(parts)
    return block
