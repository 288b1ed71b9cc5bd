"""
CLI entry point — argument parsing and main execution flow.
"""

import argparse
import asyncio
import os
import sys

from .cli_display import colorize, print_banner, setup_logger
from .config import Config
from .context.listing import build_listing
from .diff_display import review_pending_edits, summarize_edit
from .editing.metrics import read_review_stats
from .session import AppContext, ChatSession


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chatpatch",
        description="Review LLM-proposed file patches and pick prompt context",
    )
    parser.add_argument("--config", default=None,
                        help="Path to .chatpatch.yaml config file")
    parser.add_argument("--root", default=None,
                        help="Project root (default: from config, else CWD)")
    parser.add_argument("--verbose", action="store_true",
                        help="Echo log output to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    ask = sub.add_parser("ask", help="Ask a question and review proposed patches")
    ask.add_argument("question", help="The question to send")
    ask.add_argument("--active", default=None, help="Currently active file")
    ask.add_argument("--open", dest="open_files", action="append", default=[],
                     help="Open file (repeatable)")
    ask.add_argument("--model", default=None, help="Model name override")
    ask.add_argument("--no-review", action="store_true",
                     help="Only list proposed patches, do not review them")

    apply = sub.add_parser("apply", help="Review patches from a saved assistant reply")
    apply.add_argument("file", help="File containing the assistant reply ('-' for stdin)")

    ctx = sub.add_parser("context", help="Show which files would be sent as context")
    ctx.add_argument("question", help="The question to select context for")
    ctx.add_argument("--active", default=None, help="Currently active file")
    ctx.add_argument("--no-llm", action="store_true",
                     help="Heuristic selection only")

    sub.add_parser("stats", help="Show review statistics")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    # ── 0. Load config ──
    cfg = Config.load(args.config)
    if args.root:
        cfg.PROJECT_ROOT = os.path.abspath(args.root)
    if getattr(args, "model", None):
        cfg.MODEL = args.model
    if getattr(args, "no_llm", False):
        cfg.USE_LLM_SELECTION = False

    setup_logger(os.path.join(cfg.project_root, cfg.LOG_DIR), verbose=args.verbose)

    if args.command == "stats":
        return _print_stats(cfg)

    session = ChatSession(AppContext.from_config(cfg))
    return asyncio.run(_run(args, session))


async def _run(args: argparse.Namespace, session: ChatSession) -> int:
    if args.command == "context":
        listing = build_listing(session.ctx.project_root)
        selection = await session.selector.select(
            args.question, listing, active_file=args.active,
        )
        print(f"  Selected via {selection.source}:")
        for path in selection.paths:
            print(f"    {path}")
        return 0

    if args.command == "apply":
        if args.file == "-":
            text = sys.stdin.read()
        else:
            with open(args.file, "r", encoding="utf-8") as f:
                text = f.read()
        edits = await session.add_assistant_message(text)
        if not edits:
            print("  No patches found.")
            return 0
        await review_pending_edits(session)
        return 0

    result = await session.ask(
        args.question, active_file=args.active, open_files=args.open_files,
    )
    if result.banner:
        print_banner(result.banner)
        return 1

    print(result.reply)
    if result.context_paths:
        print(colorize(f"\n  Context: {', '.join(result.context_paths)}", "dim"))
    if not result.edits:
        return 0
    if args.no_review:
        for edit in result.edits:
            print(f"  {summarize_edit(edit)}")
        return 0
    await review_pending_edits(session)
    return 0


def _print_stats(cfg: Config) -> int:
    stats = read_review_stats(project_root=cfg.project_root)
    print(f"  Reviewed edits : {stats['total']}")
    print(f"  Accept rate    : {stats['accept_rate']:.1f}%")
    print(f"  Failure rate   : {stats['failure_rate']:.1f}%")
    print(f"  Lines +/-      : +{stats['lines_added']} -{stats['lines_removed']}")
    for action, count in sorted(stats["actions"].items()):
        print(f"    {action:<8} {count}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
