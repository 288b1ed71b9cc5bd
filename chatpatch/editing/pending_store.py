"""
Pending edit store — holds parsed edits awaiting review and applies or
discards them on the user's decision.

Lifecycle per edit id::

    Parsed -> Enriched (enqueue) -> Accepted | Rejected

Accepted and Rejected are terminal: the entry leaves the store.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Iterable, Optional

from .. import events
from ..events import EventBus
from ..exceptions import EditApplyError, UnknownEditError
from ..gateways import FileAccessGateway
from .classifier import EditAction
from .diff_engine import DiffRow, compute_diff_rows
from .patch_parser import ParsedFileEdit
from .path_resolver import resolve_path, to_display_path

logger = logging.getLogger(__name__)


@dataclass
class PendingFileEdit:
    """A parsed edit enriched with its resolved target and original text."""
    id: str
    path: str
    action: EditAction
    absolute_path: str
    display_path: str
    original_content: str
    new_content: str
    content: Optional[str] = None
    reason: Optional[str] = None


class PendingEditStore:
    """Edits awaiting accept/reject, in arrival order."""

    def __init__(
        self,
        file_gateway: FileAccessGateway,
        project_root: str | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._files = file_gateway
        self._project_root = project_root
        self._events = event_bus or EventBus()
        self._edits: list[PendingFileEdit] = []
        self._selected_id: str | None = None
        self._lock = asyncio.Lock()

    # ── Queries ──

    @property
    def edits(self) -> list[PendingFileEdit]:
        return list(self._edits)

    @property
    def selected(self) -> PendingFileEdit | None:
        if self._selected_id is None:
            return None
        return self._find(self._selected_id)

    def __len__(self) -> int:
        return len(self._edits)

    def __contains__(self, edit_id: object) -> bool:
        return any(e.id == edit_id for e in self._edits)

    def get(self, edit_id: str) -> PendingFileEdit:
        edit = self._find(edit_id)
        if edit is None:
            raise UnknownEditError(edit_id)
        return edit

    def diff_for(self, edit_id: str) -> list[DiffRow]:
        edit = self.get(edit_id)
        return compute_diff_rows(edit.original_content, edit.new_content)

    # ── Selection ──

    def select(self, edit_id: str | None) -> None:
        """Select *edit_id* for the detail view, or clear with None."""
        if edit_id is not None:
            self.get(edit_id)
        self._selected_id = edit_id

    # ── Mutations ──

    async def enqueue(self, edits: Iterable[ParsedFileEdit]) -> list[PendingFileEdit]:
        """Enrich parsed edits and append them to the store.

        Never raises on read failure: the patch's OLD section stands in for
        the original content when the target cannot be read.
        """
        added: list[PendingFileEdit] = []
        async with self._lock:
            for parsed in edits:
                pending = await self._enrich(parsed)
                self._edits.append(pending)
                added.append(pending)
                if self._selected_id is None:
                    self._selected_id = pending.id
                logger.info(
                    "[Patch] Queued %s %s (id=%s)",
                    pending.action.value, pending.display_path, pending.id,
                )
                self._events.emit(events.OPEN_FILE, pending.absolute_path)
        return added

    async def accept(self, edit_id: str) -> PendingFileEdit:
        """Apply the edit to disk and remove it from the store.

        On failure the edit stays pending and a single
        :class:`EditApplyError` is raised; accepting again retries.
        """
        async with self._lock:
            edit = self.get(edit_id)
            try:
                if edit.action is EditAction.DELETE:
                    await self._files.delete_file(edit.absolute_path)
                else:
                    await self._files.write_file(edit.absolute_path, edit.new_content)
            except Exception as exc:
                error = EditApplyError(edit.id, edit.display_path, exc)
                logger.warning("[Patch] %s", error)
                self._events.emit(events.ERROR, str(error))
                raise error from exc

            self._remove(edit.id)
            logger.info(
                "[Patch] Accepted %s %s", edit.action.value, edit.display_path,
            )
            self._events.emit(events.FILESYSTEM_CHANGED)
            if edit.action is not EditAction.DELETE:
                self._events.emit(events.OPEN_FILE, edit.absolute_path)
            return edit

    async def reject(self, edit_id: str) -> PendingFileEdit:
        """Discard the edit without touching the filesystem.

        Waits for an in-flight accept to finish first; if that accept
        applied this edit, :class:`UnknownEditError` is raised because the
        change is already on disk.
        """
        async with self._lock:
            return self._reject_locked(edit_id)

    async def accept_all(self) -> list[PendingFileEdit]:
        """Accept every pending edit in order, stopping at the first failure."""
        accepted: list[PendingFileEdit] = []
        for edit in self.edits:
            accepted.append(await self.accept(edit.id))
        return accepted

    async def reject_all(self) -> list[PendingFileEdit]:
        async with self._lock:
            return [self._reject_locked(edit.id) for edit in self.edits]

    # ── Internals ──

    def _reject_locked(self, edit_id: str) -> PendingFileEdit:
        edit = self.get(edit_id)
        self._remove(edit.id)
        logger.info("[Patch] Rejected %s %s", edit.action.value, edit.display_path)
        return edit

    async def _enrich(self, parsed: ParsedFileEdit) -> PendingFileEdit:
        absolute_path = resolve_path(parsed.path, self._project_root)
        new_content = parsed.content or ""

        original = parsed.old_content
        if parsed.action is not EditAction.CREATE:
            try:
                original = await self._files.read_file(absolute_path)
            except Exception as exc:
                logger.warning(
                    "[Patch] Cannot read %s, using OLD section as original: %s",
                    absolute_path, exc,
                )
                original = parsed.old_content

        return PendingFileEdit(
            id=uuid.uuid4().hex,
            path=parsed.path,
            action=parsed.action,
            absolute_path=absolute_path,
            display_path=to_display_path(absolute_path, self._project_root),
            original_content=original,
            new_content=new_content,
            content=parsed.content,
            reason=parsed.reason,
        )

    def _find(self, edit_id: str) -> PendingFileEdit | None:
        for edit in self._edits:
            if edit.id == edit_id:
                return edit
        return None

    def _remove(self, edit_id: str) -> None:
        self._edits = [e for e in self._edits if e.id != edit_id]
        if self._selected_id == edit_id:
            self._selected_id = self._edits[0].id if self._edits else None
