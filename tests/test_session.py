"""
Tests for the chat session:
- ask: context selection, completion, patch intake
- completion failures surface as a banner, cancellation as a flag
- only the latest patch-bearing assistant message is parsed, once
- the validated request boundary (dispatch)
- review metrics recording
"""
import asyncio
import json

import pytest

from chatpatch import events, protocol
from chatpatch.config import Config
from chatpatch.events import EventBus
from chatpatch.context.listing import entries_from_paths
from chatpatch.editing.metrics import read_review_stats
from chatpatch.exceptions import EditApplyError, NetworkError, OperationCancelled
from chatpatch.gateways import (
    CancellationToken, CompletionGateway, InMemoryFileGateway, LocalFileGateway,
)
from chatpatch.session import AppContext, ChatMessage, ChatSession, MessageIntake


PATCH_REPLY = "Renamed it.\n***PATCH src/x.ts\n***OLD:\nlet x = 1\n***NEW:\nlet y = 1\n"


class QueueCompletion(CompletionGateway):
    """Pops scripted replies (or exceptions) in order and records prompts."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.prompts = []

    async def request_completion(self, messages, cancellation_token=None):
        self.prompts.append(messages)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _config(root="/proj", **overrides):
    data = {"project_root": root, "use_llm_selection": False, "metrics_enabled": False}
    data.update(overrides)
    return Config(data)


def _session(completion, root="/proj", files=None, bus=None, **config_overrides):
    gateway = InMemoryFileGateway(files if files is not None else {
        f"{root}/src/x.ts": "let x = 1",
        f"{root}/src/y.ts": "let y = 2",
    })
    ctx = AppContext(
        config=_config(root, **config_overrides),
        files=gateway,
        completion=completion,
        events=bus or EventBus(),
    )
    listing = entries_from_paths(["src/x.ts", "src/y.ts"], root)
    return ChatSession(ctx, listing_provider=lambda: listing)


# ── ask ──────────────────────────────────────────────────────


class TestAsk:
    @pytest.mark.asyncio
    async def test_reply_with_patch_queues_edit(self):
        completion = QueueCompletion(PATCH_REPLY)
        session = _session(completion)

        result = await session.ask("rename x", active_file="src/x.ts")

        assert result.reply == PATCH_REPLY
        assert result.context_paths == ["src/x.ts"]
        assert [e.display_path for e in result.edits] == ["src/x.ts"]
        assert result.edits[0].original_content == "let x = 1"
        assert [m.role for m in session.history] == ["user", "assistant"]

    @pytest.mark.asyncio
    async def test_prompt_carries_context_and_history(self):
        completion = QueueCompletion("first answer", "second answer")
        session = _session(completion)

        await session.ask("what is y", active_file="src/y.ts")
        await session.ask("and again?")

        first, second = completion.prompts
        assert first[0]["role"] == "system"
        assert "### File: src/y.ts" in first[-1]["content"]
        assert "0001| let y = 2" in first[-1]["content"]
        assert [m["role"] for m in second] == ["system", "user", "assistant", "user"]

    @pytest.mark.asyncio
    async def test_completion_error_becomes_banner(self, bus):
        session = _session(QueueCompletion(NetworkError("connection refused")), bus=bus)

        result = await session.ask("fix y")

        assert result.banner is not None
        assert "connection refused" in result.banner
        assert session.history == []
        assert len(session.store) == 0
        assert bus.of(events.BANNER) == [(result.banner,)]

    @pytest.mark.asyncio
    async def test_cancelled_request(self):
        session = _session(QueueCompletion(OperationCancelled("stop")))

        result = await session.ask("fix y", cancellation_token=CancellationToken())

        assert result.cancelled is True
        assert result.banner is None
        assert session.history == []

    @pytest.mark.asyncio
    async def test_reply_after_cancel_is_discarded(self):
        token = CancellationToken()

        class CancelThenReply(CompletionGateway):
            async def request_completion(self, messages, cancellation_token=None):
                token.cancel()
                return PATCH_REPLY

        session = _session(CancelThenReply())

        result = await session.ask("fix y", cancellation_token=token)

        assert result.cancelled is True
        assert len(session.store) == 0

    @pytest.mark.asyncio
    async def test_binary_active_file_does_not_block_question(self, tmp_path):
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "blob.bin").write_bytes(b"\xff\xfe\x00bad")
        root = str(tmp_path)
        completion = QueueCompletion("answered")
        ctx = AppContext(
            config=_config(root),
            files=LocalFileGateway(),
            completion=completion,
            events=EventBus(),
        )
        listing = entries_from_paths(["src/blob.bin"], root)
        session = ChatSession(ctx, listing_provider=lambda: listing)

        result = await session.ask("fix it", active_file="src/blob.bin")

        assert result.reply == "answered"
        assert result.context_paths == []
        assert len(completion.prompts) == 1

    @pytest.mark.asyncio
    async def test_no_completion_provider(self):
        session = _session(None)

        result = await session.ask("fix y")

        assert result.banner == "No completion provider is configured."

    @pytest.mark.asyncio
    async def test_llm_selection_then_answer(self):
        completion = QueueCompletion('["src/y.ts"]', "answer")
        session = _session(completion, use_llm_selection=True)

        result = await session.ask("explain this")

        assert result.selection_source == "llm"
        assert result.context_paths == ["src/y.ts"]
        assert result.reply == "answer"


# ── Intake ───────────────────────────────────────────────────


class TestMessageIntake:
    def test_only_latest_patch_message(self):
        intake = MessageIntake()
        older = ChatMessage("assistant", "***PATCH a.py\n***OLD:\n1\n***NEW:\n2\n")
        newer = ChatMessage("assistant", "***PATCH b.py\n***OLD:\n1\n***NEW:\n2\n")

        edits = intake.take([older, ChatMessage("user", "more"), newer])

        assert [e.path for e in edits] == ["b.py"]

    def test_each_message_parsed_once(self):
        intake = MessageIntake()
        message = ChatMessage("assistant", "***PATCH a.py\n***OLD:\n1\n***NEW:\n2\n")

        assert len(intake.take([message])) == 1
        assert intake.take([message]) == []

    def test_older_not_reparsed_after_plain_reply(self):
        intake = MessageIntake()
        patched = ChatMessage("assistant", "***PATCH a.py\n***OLD:\n1\n***NEW:\n2\n")
        intake.take([patched])

        assert intake.take([patched, ChatMessage("assistant", "no patches here")]) == []

    def test_user_messages_ignored(self):
        intake = MessageIntake()

        assert intake.take([ChatMessage("user", "***PATCH a.py\n***OLD:\n***NEW:\nx")]) == []

    @pytest.mark.asyncio
    async def test_session_add_assistant_message_same_id(self):
        session = _session(None)

        first = await session.add_assistant_message(PATCH_REPLY, message_id="m1")
        second = await session.add_assistant_message(PATCH_REPLY, message_id="m1")

        assert len(first) == 1
        assert second == []
        assert len(session.store) == 1


# ── Review ───────────────────────────────────────────────────


class TestReview:
    @pytest.mark.asyncio
    async def test_accept_writes_and_records_metric(self, tmp_path):
        root = str(tmp_path)
        session = _session(None, root=root, metrics_enabled=True)
        [edit] = await session.add_assistant_message(PATCH_REPLY)

        await session.accept(edit.id)

        assert session.ctx.files.files[f"{root}/src/x.ts"] == "let y = 1"
        stats = read_review_stats(project_root=root)
        assert stats["total"] == 1
        assert stats["accept_rate"] == 100.0

    @pytest.mark.asyncio
    async def test_failed_accept_recorded_and_raised(self, tmp_path):
        root = str(tmp_path)
        session = _session(None, root=root, metrics_enabled=True)
        [edit] = await session.add_assistant_message(PATCH_REPLY)

        async def broken_write(path, content):
            raise OSError("disk full")

        session.ctx.files.write_file = broken_write

        with pytest.raises(EditApplyError):
            await session.accept(edit.id)

        assert edit.id in session.store
        assert read_review_stats(project_root=root)["failure_rate"] == 100.0

    @pytest.mark.asyncio
    async def test_reject_all(self):
        session = _session(None)
        await session.add_assistant_message(PATCH_REPLY + PATCH_REPLY.split("\n", 1)[1])

        rejected = await session.reject_all()

        assert len(rejected) == 2
        assert len(session.store) == 0


# ── Boundary ─────────────────────────────────────────────────


class TestDispatch:
    @pytest.mark.asyncio
    async def test_malformed_request_rejected(self):
        session = _session(None)

        response = await session.dispatch({"kind": "accept_edit"})

        assert isinstance(response, protocol.ErrorResponse)
        assert "Invalid request" in response.message

    @pytest.mark.asyncio
    async def test_unknown_kind_rejected(self):
        session = _session(None)

        response = await session.dispatch('{"kind": "format_disk"}')

        assert isinstance(response, protocol.ErrorResponse)

    @pytest.mark.asyncio
    async def test_unknown_edit_id(self):
        session = _session(None)

        response = await session.dispatch({"kind": "reject_edit", "edit_id": "nope"})

        assert isinstance(response, protocol.ErrorResponse)
        assert "nope" in response.message

    @pytest.mark.asyncio
    async def test_assistant_message_then_diff_then_accept(self):
        session = _session(None)

        listed = await session.dispatch(
            {"kind": "assistant_message", "content": PATCH_REPLY, "message_id": "m1"})
        assert isinstance(listed, protocol.EditListResponse)
        [summary] = listed.edits
        assert listed.selected_id == summary.id
        assert summary.action == "update"

        diff = await session.dispatch(json.dumps({"kind": "diff_req", "edit_id": summary.id}))
        assert isinstance(diff, protocol.DiffResponse)
        assert {"text": "let y = 1", "kind": "added"} in [r.model_dump() for r in diff.rows]

        accepted = await session.dispatch({"kind": "accept_edit", "edit_id": summary.id})
        assert accepted.edits == []
        assert session.ctx.files.files["/proj/src/x.ts"] == "let y = 1"

    @pytest.mark.asyncio
    async def test_ask_response_round_trips(self):
        session = _session(QueueCompletion(PATCH_REPLY))

        response = await session.dispatch({"kind": "ask", "question": "rename x"})
        decoded = protocol.response_adapter.validate_json(response.model_dump_json())

        assert isinstance(decoded, protocol.AskResponse)
        assert len(decoded.edit_ids) == 1
