"""Command-line interface: the daemon plus inspection commands."""

import argparse
import asyncio
import signal
import sys
from pathlib import Path

from .agent import AgentRuntime
from .config import AppConfig
from .errors import TelosError
from .intake import submit_intent
from .logging import configure_logger, configure_logging
from .orchestrator import BeatOrchestrator, spawn
from .state import AppContext
from .storage import (
    LLMLogQuery,
    MemoryLevel,
    MemoryQuery,
    ensure_data_layout,
    list_markdown_tree,
    load_usage_summary,
    read_llm_logs,
    read_memory_entries,
)


def _load_config(args: argparse.Namespace) -> AppConfig:
    root = Path(args.root) if args.root else None
    return AppConfig.load(root)


def _build_context(config: AppConfig) -> AppContext:
    """Create the data layout and a context wired to the configured LLM."""
    ensure_data_layout(config.data_dir)
    events = configure_logger(config.data_dir / "logs")
    return AppContext(config, AgentRuntime.from_config(config), events=events)


async def _run_daemon(config: AppConfig) -> None:
    ctx = _build_context(config)
    handle, task = spawn(ctx)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, ctx.request_shutdown)

    bridge = None
    if config.telegram is not None:
        from .telegram import TelegramBridge

        bridge = TelegramBridge(
            config.data_dir,
            handle,
            token=config.telegram.bot_token,
            default_alignment=config.telegram.default_alignment,
        )
        await bridge.start()

    print(f"Telos running (data: {config.data_dir}). Press Ctrl+C to stop.")
    try:
        await task
    finally:
        if bridge is not None:
            await bridge.stop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
    print("Telos stopped.")


def cmd_run(args: argparse.Namespace) -> int:
    """Run the orchestrator until SIGINT or SIGTERM."""
    config = _load_config(args)
    asyncio.run(_run_daemon(config))
    return 0


def cmd_submit(args: argparse.Namespace) -> int:
    """Write an intent into the inbox."""
    config = _load_config(args)
    ensure_data_layout(config.data_dir)
    result = asyncio.run(
        submit_intent(
            config.data_dir,
            None,
            source=args.source,
            summary=args.summary,
            alignment=args.alignment,
            body=args.body or "",
        )
    )
    print(f"Submitted intent {result.id}")
    print(f"  {result.path}")
    return 0


async def _single_beat(config: AppConfig) -> None:
    ctx = _build_context(config)
    orchestrator = BeatOrchestrator(ctx)
    orchestrator.load_existing_queue()
    report = await orchestrator.run_beat()
    print(
        f"Ingested: {report.ingest.queued} queued, {report.ingest.deferred} deferred, "
        f"{report.ingest.errors} error(s)"
    )
    print(
        f"Drained: {report.drain.processed} processed, {report.drain.retried} retried, "
        f"{report.drain.quarantined} quarantined"
    )


def cmd_beat(args: argparse.Namespace) -> int:
    """Run one beat and exit."""
    config = _load_config(args)
    asyncio.run(_single_beat(config))
    return 0


def cmd_logs(args: argparse.Namespace) -> int:
    """Show LLM calls, newest first."""
    config = _load_config(args)
    query = LLMLogQuery(model=args.model, phase=args.phase, limit=args.limit)
    entries = asyncio.run(read_llm_logs(config.data_dir, query))

    if not entries:
        print("No LLM logs found.")
        return 0

    for entry in entries:
        print(f"{entry.timestamp.isoformat()} {entry.phase:<6} {entry.provider}/{entry.model} run={entry.run_id}")
        print(f"  {entry.response}")
    return 0


def cmd_memory(args: argparse.Namespace) -> int:
    """Show memory entries, newest first."""
    config = _load_config(args)
    query = MemoryQuery(level=MemoryLevel(args.level.upper()), limit=args.limit, tag=args.tag)
    entries = read_memory_entries(config.data_dir, query)

    if not entries:
        print("No memories found.")
        return 0

    for entry in entries:
        print(f"[{entry.level.value}] {entry.created_at.date().isoformat()} {entry.summary}")
        for line in entry.details:
            print(f"    {line}")
        if entry.tags:
            print(f"    tags: {', '.join(entry.tags)}")
    return 0


def cmd_usage(args: argparse.Namespace) -> int:
    """Show the usage index."""
    config = _load_config(args)
    summary = load_usage_summary(config.data_dir)

    print("Top used:")
    for line in summary.top_used or ["(none)"]:
        print(f"  {line}")
    print("Most recent:")
    for line in summary.most_recent or ["(none)"]:
        print(f"  {line}")
    return 0


def cmd_tree(args: argparse.Namespace) -> int:
    """List markdown artifacts under the data directory."""
    config = _load_config(args)
    for path in list_markdown_tree(config.data_dir):
        print(path)
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the telos CLI."""
    parser = argparse.ArgumentParser(
        prog="telos",
        description="Beat-driven intent orchestrator",
    )
    parser.add_argument(
        "--root",
        help="App root holding config/ and data/ (default: TELOS_APP_ROOT or cwd)",
    )
    parser.add_argument("--log-level", help="Diagnostic log level (default: TELOS_LOG_LEVEL or INFO)")

    subparsers = parser.add_subparsers(dest="command", help="Sub-command help")

    subparsers.add_parser("run", help="Run the orchestrator daemon")

    submit_parser = subparsers.add_parser("submit", help="Submit an intent")
    submit_parser.add_argument("summary", help="Short description of the intent")
    submit_parser.add_argument("--source", default="cli", help="Origin of the intent")
    submit_parser.add_argument(
        "--alignment",
        type=float,
        default=1.0,
        help="Alignment score used for admission",
    )
    submit_parser.add_argument("--body", help="Free-text body")

    subparsers.add_parser("beat", help="Run a single beat and exit")

    logs_parser = subparsers.add_parser("logs", help="Show LLM call logs")
    logs_parser.add_argument("--phase", help="Filter by phase (THINK or FINAL)")
    logs_parser.add_argument("--model", help="Filter by model")
    logs_parser.add_argument("--limit", type=int, default=20, help="Maximum entries")

    memory_parser = subparsers.add_parser("memory", help="Show memory entries")
    memory_parser.add_argument(
        "--level",
        choices=["l1", "l2", "L1", "L2"],
        default="l2",
        help="Memory level",
    )
    memory_parser.add_argument("--tag", help="Only entries with this tag")
    memory_parser.add_argument("--limit", type=int, default=20, help="Maximum entries")

    subparsers.add_parser("usage", help="Show the usage index")
    subparsers.add_parser("tree", help="List markdown artifacts")

    return parser


def run_cli(argv: list[str] | None = None) -> int:
    """Run the CLI with given arguments.

    Args:
        argv: Command-line arguments. Uses sys.argv[1:] if None.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    configure_logging(args.log_level)

    commands = {
        "run": cmd_run,
        "submit": cmd_submit,
        "beat": cmd_beat,
        "logs": cmd_logs,
        "memory": cmd_memory,
        "usage": cmd_usage,
        "tree": cmd_tree,
    }

    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        return handler(args)
    except (TelosError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(run_cli())
