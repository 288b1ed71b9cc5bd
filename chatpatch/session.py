"""
Chat session — the explicitly constructed application context and the
orchestration of question → context → completion → pending edits.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from pydantic import BaseModel, ValidationError

from . import events, protocol
from .config import Config
from .context.listing import FileListingEntry, build_listing
from .context.selector import ContextSelector, SelectionLimits
from .editing.diff_engine import compute_diff_rows, diff_stats
from .editing.metrics import log_review_metric
from .editing.patch_parser import ParsedFileEdit, has_patch_marker, parse_patch_blocks
from .editing.pending_store import PendingEditStore, PendingFileEdit
from .events import EventBus
from .exceptions import (
    ChatPatchError, CompletionError, EditApplyError, OperationCancelled,
)
from .gateways import (
    CancellationToken, CompletionGateway, FileAccessGateway, LocalFileGateway,
)
from .llm.openai_client import OpenAICompatibleClient
from .prompts import SYSTEM_PROMPT, build_question_message

logger = logging.getLogger(__name__)


@dataclass
class ChatMessage:
    role: str            # "user" | "assistant"
    content: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass
class AskResult:
    reply: str = ""
    edits: list[PendingFileEdit] = field(default_factory=list)
    context_paths: list[str] = field(default_factory=list)
    selection_source: str = ""
    banner: Optional[str] = None
    cancelled: bool = False


@dataclass
class AppContext:
    """Owns the gateways, configuration and event bus for one project."""
    config: Config
    files: FileAccessGateway
    completion: Optional[CompletionGateway] = None
    events: EventBus = field(default_factory=EventBus)

    @classmethod
    def from_config(
        cls,
        config: Config,
        files: FileAccessGateway | None = None,
        completion: CompletionGateway | None = None,
        event_bus: EventBus | None = None,
    ) -> "AppContext":
        if completion is None:
            completion = OpenAICompatibleClient(
                base_url=config.BASE_URL,
                model=config.MODEL,
                api_key=config.API_KEY,
                temperature=config.TEMPERATURE,
                timeout=config.REQUEST_TIMEOUT,
                max_retries=config.LLM_MAX_RETRIES,
                retry_delay=config.LLM_RETRY_DELAY,
            )
        return cls(
            config=config,
            files=files or LocalFileGateway(),
            completion=completion,
            events=event_bus or EventBus(),
        )

    @property
    def project_root(self) -> str:
        return self.config.project_root

    def selection_limits(self) -> SelectionLimits:
        cfg = self.config
        return SelectionLimits(
            max_files=cfg.MAX_CONTEXT_FILES,
            listing_max_entries=cfg.LISTING_MAX_ENTRIES,
            listing_max_chars=cfg.LISTING_MAX_CHARS,
            context_char_budget=cfg.CONTEXT_CHAR_BUDGET,
            per_file_char_cap=cfg.PER_FILE_CHAR_CAP,
        )


class MessageIntake:
    """Decides which assistant message, if any, should be parsed.

    Only the most recent patch-bearing assistant message is considered, and
    only once; older messages are never parsed after a newer one was.
    """

    def __init__(self) -> None:
        self._parsed_ids: set[str] = set()

    def take(self, messages: Sequence[ChatMessage]) -> list[ParsedFileEdit]:
        for message in reversed(messages):
            if message.role == "assistant" and has_patch_marker(message.content):
                if message.id in self._parsed_ids:
                    return []
                self._parsed_ids.add(message.id)
                return parse_patch_blocks(message.content)
        return []


class ChatSession:
    """One chat panel: history, pending edits and context selection."""

    def __init__(
        self,
        ctx: AppContext,
        listing_provider: Callable[[], list[FileListingEntry]] | None = None,
    ) -> None:
        self.ctx = ctx
        self.history: list[ChatMessage] = []
        self.active_file: str | None = None
        self.open_files: list[str] = []
        self.store = PendingEditStore(ctx.files, ctx.project_root, ctx.events)
        self.selector = ContextSelector(
            completion=ctx.completion,
            project_root=ctx.project_root,
            limits=ctx.selection_limits(),
            use_llm=ctx.config.USE_LLM_SELECTION,
        )
        self._intake = MessageIntake()
        self._listing_provider = listing_provider or (
            lambda: build_listing(ctx.project_root)
        )

    # ── Conversation ──

    async def ask(
        self,
        question: str,
        cancellation_token: CancellationToken | None = None,
        active_file: str | None = None,
        open_files: Sequence[str] | None = None,
    ) -> AskResult:
        """Send *question* with selected file context and queue any patches
        in the reply.

        Completion failures come back as ``AskResult.banner``; cancellation
        as ``AskResult.cancelled``. Neither mutates history or the store.
        """
        if active_file is not None:
            self.active_file = active_file
        if open_files is not None:
            self.open_files = list(open_files)

        listing = await asyncio.to_thread(self._listing_provider)
        selection = await self.selector.select(
            question, listing,
            active_file=self.active_file,
            open_files=self.open_files,
            cancellation_token=cancellation_token,
        )
        block = await self.selector.build_context(selection.paths, self.ctx.files)
        result = AskResult(
            context_paths=block.included, selection_source=selection.source,
        )

        if self.ctx.completion is None:
            return self._banner(result, "No completion provider is configured.")

        messages = [{"role": "system", "content": SYSTEM_PROMPT}]
        messages.extend({"role": m.role, "content": m.content} for m in self.history)
        messages.append({
            "role": "user",
            "content": build_question_message(question, block.text),
        })

        try:
            reply = await self.ctx.completion.request_completion(
                messages, cancellation_token=cancellation_token,
            )
        except OperationCancelled:
            logger.info("[Chat] Question cancelled")
            result.cancelled = True
            return result
        except CompletionError as exc:
            return self._banner(result, f"Assistant unavailable: {exc}")

        if cancellation_token is not None and cancellation_token.is_cancelled:
            result.cancelled = True
            return result

        self.history.append(ChatMessage("user", question))
        result.reply = reply
        result.edits = await self.add_assistant_message(reply)
        return result

    async def add_assistant_message(
        self,
        content: str,
        message_id: str | None = None,
    ) -> list[PendingFileEdit]:
        """Record an assistant message and queue patches it proposes."""
        message = ChatMessage("assistant", content)
        if message_id:
            message.id = message_id
        self.history.append(message)
        parsed = self._intake.take(self.history)
        if not parsed:
            return []
        return await self.store.enqueue(parsed)

    # ── Review ──

    async def accept(self, edit_id: str) -> PendingFileEdit:
        edit = self.store.get(edit_id)
        try:
            accepted = await self.store.accept(edit_id)
        except EditApplyError as exc:
            self._record(edit, "failed", error=str(exc.cause))
            raise
        self._record(accepted, "accepted")
        return accepted

    async def reject(self, edit_id: str) -> PendingFileEdit:
        rejected = await self.store.reject(edit_id)
        self._record(rejected, "rejected")
        return rejected

    async def accept_all(self) -> list[PendingFileEdit]:
        return [await self.accept(edit.id) for edit in self.store.edits]

    async def reject_all(self) -> list[PendingFileEdit]:
        rejected = await self.store.reject_all()
        for edit in rejected:
            self._record(edit, "rejected")
        return rejected

    # ── Boundary ──

    async def dispatch(self, payload: dict | str | bytes) -> BaseModel:
        """Validate a raw UI request and route it; always returns a response."""
        try:
            if isinstance(payload, (str, bytes)):
                request = protocol.request_adapter.validate_json(payload)
            else:
                request = protocol.request_adapter.validate_python(payload)
        except ValidationError as exc:
            logger.warning("[Chat] Rejected malformed request: %s", exc)
            return protocol.ErrorResponse(message=f"Invalid request: {exc}")

        try:
            return await self._route(request)
        except (ChatPatchError, KeyError) as exc:
            return protocol.ErrorResponse(message=str(exc))

    async def _route(self, request) -> BaseModel:
        if isinstance(request, protocol.AskRequest):
            result = await self.ask(
                request.question,
                active_file=request.active_file,
                open_files=request.open_files,
            )
            return protocol.AskResponse(
                reply=result.reply,
                edit_ids=[e.id for e in result.edits],
                context_paths=result.context_paths,
                banner=result.banner,
                cancelled=result.cancelled,
            )
        if isinstance(request, protocol.AssistantMessagePacket):
            await self.add_assistant_message(request.content, request.message_id)
            return self._edit_list()
        if isinstance(request, protocol.AcceptEditRequest):
            await self.accept(request.edit_id)
            return self._edit_list()
        if isinstance(request, protocol.RejectEditRequest):
            await self.reject(request.edit_id)
            return self._edit_list()
        if isinstance(request, protocol.AcceptAllRequest):
            await self.accept_all()
            return self._edit_list()
        if isinstance(request, protocol.RejectAllRequest):
            await self.reject_all()
            return self._edit_list()
        if isinstance(request, protocol.SelectEditRequest):
            self.store.select(request.edit_id)
            return self._edit_list()
        if isinstance(request, protocol.DiffRequest):
            rows = self.store.diff_for(request.edit_id)
            return protocol.DiffResponse(
                edit_id=request.edit_id,
                rows=[protocol.DiffRowModel(text=r.text, kind=r.kind.value) for r in rows],
            )
        if isinstance(request, protocol.ListEditsRequest):
            return self._edit_list()
        return protocol.AckResponse()

    # ── Internals ──

    def _edit_list(self) -> protocol.EditListResponse:
        selected = self.store.selected
        return protocol.EditListResponse(
            edits=[
                protocol.EditSummary(
                    id=e.id,
                    path=e.path,
                    display_path=e.display_path,
                    absolute_path=e.absolute_path,
                    action=e.action.value,
                    reason=e.reason,
                )
                for e in self.store.edits
            ],
            selected_id=selected.id if selected else None,
        )

    def _banner(self, result: AskResult, message: str) -> AskResult:
        logger.warning("[Chat] %s", message)
        result.banner = message
        self.ctx.events.emit(events.BANNER, message)
        return result

    def _record(self, edit: PendingFileEdit, outcome: str, error: str = "") -> None:
        if not self.ctx.config.METRICS_ENABLED:
            return
        added, removed = diff_stats(
            compute_diff_rows(edit.original_content, edit.new_content))
        data = {
            "outcome": outcome,
            "action": edit.action.value,
            "path": edit.display_path,
            "added": added,
            "removed": removed,
        }
        if error:
            data["error"] = error
        log_review_metric(data, self.ctx.project_root)
