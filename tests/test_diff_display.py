"""
Tests for diff rendering and the console review fallback.
"""
import pytest

from chatpatch import diff_display
from chatpatch.config import Config
from chatpatch.diff_display import (
    format_colored_rows, format_rich_rows, review_pending_edits, summarize_edit,
)
from chatpatch.editing.diff_engine import DiffKind, DiffRow
from chatpatch.gateways import InMemoryFileGateway
from chatpatch.session import AppContext, ChatSession


TWO_PATCHES = (
    "***PATCH a.py\n***OLD:\nold a\n***NEW:\nnew a\n"
    "***PATCH b.py\n***OLD:\nold b\n***NEW:\nnew b\n"
)


def _session():
    ctx = AppContext(
        config=Config({"project_root": "/proj", "metrics_enabled": False}),
        files=InMemoryFileGateway({"/proj/a.py": "old a", "/proj/b.py": "old b"}),
    )
    return ChatSession(ctx, listing_provider=lambda: [])


def _inputs(monkeypatch, answers):
    answers = iter(answers)
    monkeypatch.setattr("builtins.input", lambda _prompt="": next(answers))


@pytest.fixture
def no_textual(monkeypatch):
    async def unavailable(session):
        raise ImportError("textual")

    monkeypatch.setattr(diff_display, "_textual_review", unavailable)


def test_colored_rows_prefixes():
    rows = [
        DiffRow("same\n", DiffKind.CONTEXT),
        DiffRow("gone\n", DiffKind.REMOVED),
        DiffRow("added\n", DiffKind.ADDED),
    ]
    text = format_colored_rows(rows)

    lines = text.split("\n")
    assert lines[0] == "  same"
    assert "- gone" in lines[1] and "\033[31m" in lines[1]
    assert "+ added" in lines[2] and "\033[32m" in lines[2]


def test_rich_rows_escape_markup():
    text = format_rich_rows([DiffRow("x = [1]\n", DiffKind.ADDED)])

    assert text == "[green]+ x = \\[1][/green]"


@pytest.mark.asyncio
async def test_summarize_edit():
    session = _session()
    [edit, _] = await session.add_assistant_message(TWO_PATCHES)

    assert summarize_edit(edit) == "update a.py  (+1 -1)"


@pytest.mark.asyncio
async def test_console_review_accept_and_reject(monkeypatch, no_textual, capsys):
    session = _session()
    await session.add_assistant_message(TWO_PATCHES)
    _inputs(monkeypatch, ["a", "r"])

    await review_pending_edits(session)

    assert session.ctx.files.files["/proj/a.py"] == "new a"
    assert session.ctx.files.files["/proj/b.py"] == "old b"
    assert len(session.store) == 0
    assert "PATCH REVIEW" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_console_review_skip_leaves_edits(monkeypatch, no_textual):
    session = _session()
    await session.add_assistant_message(TWO_PATCHES)
    _inputs(monkeypatch, ["x", "s"])

    await review_pending_edits(session)

    assert len(session.store) == 2


@pytest.mark.asyncio
async def test_console_review_eof(monkeypatch, no_textual):
    session = _session()
    await session.add_assistant_message(TWO_PATCHES)

    def eof(_prompt=""):
        raise EOFError

    monkeypatch.setattr("builtins.input", eof)

    await review_pending_edits(session)

    assert len(session.store) == 2
