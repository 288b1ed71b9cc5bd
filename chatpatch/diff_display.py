"""
Diff display — render pending edits as colored diff rows and let the user
accept or reject them.

Includes a Textual-based review app; when it cannot run, a console prompt
loop takes over.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .cli_display import colorize, print_header
from .editing.diff_engine import DiffKind, DiffRow, compute_diff_rows, diff_stats
from .exceptions import EditApplyError

if TYPE_CHECKING:
    from .editing.pending_store import PendingFileEdit
    from .session import ChatSession

logger = logging.getLogger(__name__)

_PREFIX = {DiffKind.ADDED: "+", DiffKind.REMOVED: "-", DiffKind.CONTEXT: " "}
_COLOR = {DiffKind.ADDED: "green", DiffKind.REMOVED: "red"}


def _escape(text: str) -> str:
    """Escape Rich markup characters."""
    return text.replace("[", "\\[")


def format_colored_rows(rows: list[DiffRow]) -> str:
    """ANSI-colored text for diff rows: green additions, red removals."""
    lines: list[str] = []
    for row in rows:
        text = row.text.rstrip("\n")
        line = f"{_PREFIX[row.kind]} {text}"
        color = _COLOR.get(row.kind)
        lines.append(colorize(line, color) if color else line)
    return "\n".join(lines)


def format_rich_rows(rows: list[DiffRow]) -> str:
    """Rich markup for diff rows, for Textual display."""
    lines: list[str] = []
    for row in rows:
        escaped = _escape(row.text.rstrip("\n"))
        line = f"{_PREFIX[row.kind]} {escaped}"
        style = _COLOR.get(row.kind)
        lines.append(f"[{style}]{line}[/{style}]" if style else line)
    return "\n".join(lines)


def summarize_edit(edit: "PendingFileEdit") -> str:
    added, removed = diff_stats(compute_diff_rows(edit.original_content, edit.new_content))
    return f"{edit.action.value:<6} {edit.display_path}  (+{added} -{removed})"


# ══════════════════════════════════════════════════════════════════
#  Interactive review (Textual TUI)
# ══════════════════════════════════════════════════════════════════

async def review_pending_edits(session: "ChatSession") -> None:
    """Walk the user through every pending edit until the store is empty."""
    if not len(session.store):
        return
    try:
        await _textual_review(session)
        return
    except ImportError:
        logger.warning("Textual not installed, falling back to console review.")
    except Exception as e:
        logger.warning("Textual review failed: %s", e)

    await _console_review(session)


async def _textual_review(session: "ChatSession") -> None:
    """Run a Textual app that shows the selected edit's diff."""
    from textual.app import App, ComposeResult
    from textual.binding import Binding
    from textual.containers import VerticalScroll
    from textual.widgets import Footer, Static

    class ReviewApp(App):
        """Accept/reject pending edits one at a time."""

        CSS = """
        #title-bar {
            dock: top;
            height: 3;
            background: #1a1a2e;
            color: #e94560;
            text-align: center;
            padding: 1;
            text-style: bold;
        }
        #diff-scroll {
            height: 1fr;
            margin: 1 2;
            border: round #444;
            padding: 1;
        }
        #status {
            dock: bottom;
            height: 1;
            text-align: center;
            color: #888;
        }
        """

        BINDINGS = [
            Binding("a", "accept", "Accept"),
            Binding("r", "reject", "Reject"),
            Binding("n", "next", "Next"),
            Binding("A", "accept_all", "Accept all"),
            Binding("escape", "quit", "Quit"),
        ]

        def compose(self) -> ComposeResult:
            yield Static("", id="title-bar")
            with VerticalScroll(id="diff-scroll"):
                yield Static("", id="diff")
            yield Static("", id="status")
            yield Footer()

        def on_mount(self) -> None:
            self._refresh_view()

        def _refresh_view(self, status: str = "") -> None:
            edit = session.store.selected
            if edit is None:
                self.exit()
                return
            position = [e.id for e in session.store.edits].index(edit.id) + 1
            self.query_one("#title-bar", Static).update(
                f" ━━  Review {position}/{len(session.store)} — {edit.display_path}  ━━ "
            )
            body = format_rich_rows(session.store.diff_for(edit.id))
            if edit.reason:
                body = f"[bold yellow]{_escape(edit.reason)}[/bold yellow]\n\n{body}"
            self.query_one("#diff", Static).update(body)
            self.query_one("#status", Static).update(
                status or f"{edit.action.value} — [bold]A[/bold]ccept  [bold]R[/bold]eject  [bold]N[/bold]ext"
            )

        async def action_accept(self) -> None:
            edit = session.store.selected
            if edit is None:
                return
            try:
                await session.accept(edit.id)
            except EditApplyError as exc:
                self._refresh_view(f"[red]{exc}[/red]")
                return
            self._refresh_view()

        async def action_accept_all(self) -> None:
            try:
                await session.accept_all()
            except EditApplyError as exc:
                self._refresh_view(f"[red]{exc}[/red]")
                return
            self._refresh_view()

        async def action_reject(self) -> None:
            edit = session.store.selected
            if edit is not None:
                await session.reject(edit.id)
            self._refresh_view()

        def action_next(self) -> None:
            ids = [e.id for e in session.store.edits]
            edit = session.store.selected
            if edit is not None and len(ids) > 1:
                session.store.select(ids[(ids.index(edit.id) + 1) % len(ids)])
            self._refresh_view()

    await ReviewApp().run_async()


async def _console_review(session: "ChatSession") -> None:
    """Fallback console review when Textual is unavailable."""
    print_header("PATCH REVIEW")

    while len(session.store):
        edit = session.store.selected or session.store.edits[0]
        print(f"\n{'─' * 60}")
        print(colorize(summarize_edit(edit), "bold"))
        if edit.reason:
            print(colorize(edit.reason, "yellow"))
        print(format_colored_rows(session.store.diff_for(edit.id)))
        print("\n  [A]ccept  |  [R]eject  |  [S]kip remaining")

        try:
            choice = input("  Your choice: ").strip().lower()
        except (EOFError, KeyboardInterrupt):
            return

        if choice in ("a", "accept"):
            try:
                await session.accept(edit.id)
            except EditApplyError as exc:
                print(colorize(f"  {exc}", "red"))
        elif choice in ("r", "reject"):
            await session.reject(edit.id)
        elif choice in ("s", "skip"):
            return
        else:
            print("  Invalid choice. Use A, R or S.")
