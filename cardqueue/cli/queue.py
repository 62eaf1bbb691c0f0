#!/usr/bin/env python3
"""Command-line access to the pending queues.

Usage:
    python -m cardqueue.cli.queue list [--kind KIND]
    python -m cardqueue.cli.queue add --front TEXT --back TEXT [--deck D] [--model M] [--tag T ...]
    python -m cardqueue.cli.queue remove INDEX [--kind KIND]
    python -m cardqueue.cli.queue clear [--kind KIND | --all]
    python -m cardqueue.cli.queue sync [--kind KIND]
    python -m cardqueue.cli.queue status
    python -m cardqueue.cli.queue watch [--max-runtime SECONDS]

Exit code is 1 when a command fails or a sync reports failed items.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from contextlib import AsyncExitStack, suppress
from typing import TYPE_CHECKING, Any

from cardqueue.adapters.ankiconnect import AnkiConnectClient
from cardqueue.application.queue_sync import PendingQueueService, UnreadableEntry
from cardqueue.config import load_config
from cardqueue.core.logging_utils import setup_json_logging, truncate_log_content
from cardqueue.db.session import DatabaseSessionManager
from cardqueue.domain.exceptions import QueueError
from cardqueue.domain.models import PendingItem, PendingItemKind
from cardqueue.infrastructure.persistence import SqliteQueueStore
from cardqueue.services.scheduler import SyncScheduler

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cardqueue.application.queue_sync import BatchResult, FullSyncResult, QueueEntry
    from cardqueue.application.queue_sync.protocols import (
        NoteServiceProtocol,
        QueueStoreProtocol,
    )
    from cardqueue.config import AppConfig

logger = logging.getLogger("cardqueue.cli")

KIND_CHOICES = [kind.value for kind in PendingItemKind]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cardqueue", description="Manage pending flashcards and sync them to Anki"
    )
    parser.add_argument("--json", action="store_true", help="Print machine-readable JSON")
    parser.add_argument("--db", default=None, help="SQLite database path (overrides DB_PATH)")
    parser.add_argument("--log-level", default=None, help="Log level (overrides LOG_LEVEL)")

    commands = parser.add_subparsers(dest="command", required=True)

    list_cmd = commands.add_parser("list", help="Show queued items")
    list_cmd.add_argument("--kind", choices=KIND_CHOICES, default=PendingItemKind.CARD.value)

    add_cmd = commands.add_parser("add", help="Queue a new card")
    add_cmd.add_argument("--front", required=True)
    add_cmd.add_argument("--back", required=True)
    add_cmd.add_argument("--deck", default=None, help="Deck name (defaults to ANKI_DEFAULT_DECK)")
    add_cmd.add_argument("--model", default=None, help="Note type (defaults to ANKI_DEFAULT_MODEL)")
    add_cmd.add_argument("--tag", action="append", default=[], dest="tags")
    add_cmd.add_argument("--kind", choices=KIND_CHOICES, default=PendingItemKind.CARD.value)

    remove_cmd = commands.add_parser("remove", help="Remove a queued item by position")
    remove_cmd.add_argument("index", type=int)
    remove_cmd.add_argument("--kind", choices=KIND_CHOICES, default=PendingItemKind.CARD.value)

    clear_cmd = commands.add_parser("clear", help="Remove every queued item")
    clear_target = clear_cmd.add_mutually_exclusive_group()
    clear_target.add_argument("--kind", choices=KIND_CHOICES, default=PendingItemKind.CARD.value)
    clear_target.add_argument("--all", action="store_true", help="Clear every queue")

    sync_cmd = commands.add_parser("sync", help="Submit queued items to Anki")
    sync_cmd.add_argument("--kind", choices=KIND_CHOICES, default=None)

    commands.add_parser("status", help="Show pending counts and AnkiConnect reachability")

    watch_cmd = commands.add_parser(
        "watch", help="Keep syncing on the SYNC_INTERVAL_MINUTES schedule until interrupted"
    )
    watch_cmd.add_argument(
        "--max-runtime", type=float, default=None, help="Stop after this many seconds"
    )

    return parser


def _emit(args: argparse.Namespace, payload: Any, text: str) -> None:
    if args.json:
        print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))
    else:
        print(text)


def _format_item(position: int, item: QueueEntry) -> str:
    if isinstance(item, UnreadableEntry):
        return f"{position:>3}. (unreadable: {item.reason})"
    front = truncate_log_content(item.front.replace("\n", " "), 60) or "(empty)"
    target = " / ".join(name for name in (item.deck_name, item.model_name) if name)
    suffix = f"  [{target}]" if target else ""
    return f"{position:>3}. {front}{suffix}  ({item.id[:8]})"


def _format_full_result(full: FullSyncResult) -> str:
    lines = [f"{kind}: {result.summary()}" for kind, result in full.results.items()]
    lines.extend(f"{kind}: storage error: {error}" for kind, error in full.storage_errors.items())
    lines.append(f"Duration: {full.duration_seconds:.1f}s")
    return "\n".join(lines)


async def _cmd_list(args: argparse.Namespace, service: PendingQueueService) -> int:
    items = await service.queue(args.kind).entries()
    text = "\n".join(_format_item(i, item) for i, item in enumerate(items)) or "Queue is empty"
    _emit(args, [item.to_storage() for item in items], text)
    return 0


async def _cmd_add(args: argparse.Namespace, service: PendingQueueService) -> int:
    item = PendingItem(
        kind=args.kind,
        front=args.front,
        back=args.back,
        deck_name=args.deck,
        model_name=args.model,
        tags=args.tags,
    )
    stored = await service.enqueue(item)
    count = await service.queue(args.kind).count()
    _emit(args, stored.to_storage(), f"Queued {stored.id[:8]} ({count} pending)")
    return 0


async def _cmd_remove(args: argparse.Namespace, service: PendingQueueService) -> int:
    removed = await service.queue(args.kind).remove_at(args.index)
    _emit(args, removed.to_storage(), f"Removed {_format_item(args.index, removed).strip()}")
    return 0


async def _cmd_clear(args: argparse.Namespace, service: PendingQueueService) -> int:
    if args.all:
        await service.clear_all()
        _emit(args, {"cleared": KIND_CHOICES}, "Cleared all queues")
    else:
        await service.queue(args.kind).clear()
        _emit(args, {"cleared": [args.kind]}, f"Cleared {args.kind} queue")
    return 0


async def _cmd_sync(args: argparse.Namespace, service: PendingQueueService) -> int:
    if args.kind:
        result: BatchResult = await service.sync(args.kind)
        _emit(args, result.model_dump(mode="json"), result.summary())
        return 1 if result.errors else 0

    full = await service.sync_all()
    _emit(args, full.model_dump(mode="json"), _format_full_result(full))
    return 0 if full.ok else 1


async def _cmd_status(
    args: argparse.Namespace, service: PendingQueueService, client: AnkiConnectClient | None
) -> int:
    counts = {kind.value: count for kind, count in (await service.pending_counts()).items()}
    payload: dict[str, Any] = {"pending": counts}
    lines = [f"{kind}: {count} pending" for kind, count in counts.items()]

    if client is not None:
        status = await client.check_status()
        payload["anki"] = status.model_dump()
        if status.is_online:
            lines.append(f"AnkiConnect: online ({len(status.decks)} decks)")
        else:
            lines.append(f"AnkiConnect: offline ({status.error})")

    _emit(args, payload, "\n".join(lines))
    return 0


async def _cmd_watch(
    args: argparse.Namespace, service: PendingQueueService, cfg: AppConfig
) -> int:
    scheduler = SyncScheduler(service, cfg.sync)
    service.on_enqueue = scheduler.on_item_queued
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop.set)
        except (NotImplementedError, RuntimeError, ValueError):
            # Windows event loops and non-main threads cannot install handlers
            logger.warning("cli_signal_handlers_unsupported", extra={"signal": str(signum)})
            continue
        installed.append(signum)

    await scheduler.start()
    try:
        await scheduler.schedule_if_pending()
        logger.info(
            "cli_watch_started",
            extra={
                "auto_sync_enabled": cfg.sync.auto_sync_enabled,
                "interval_minutes": cfg.sync.sync_interval_minutes,
            },
        )
        if args.max_runtime is None:
            await stop.wait()
        else:
            with suppress(TimeoutError):
                await asyncio.wait_for(stop.wait(), timeout=args.max_runtime)
    finally:
        await scheduler.stop()
        for signum in installed:
            loop.remove_signal_handler(signum)

    counts = {kind.value: count for kind, count in (await service.pending_counts()).items()}
    text = ", ".join(f"{kind}: {count} pending" for kind, count in counts.items())
    _emit(args, {"pending": counts}, f"Stopped watching ({text})")
    return 0


async def run(
    args: argparse.Namespace,
    *,
    cfg: AppConfig | None = None,
    store: QueueStoreProtocol | None = None,
    note_service: NoteServiceProtocol | None = None,
) -> int:
    """Execute one parsed command.

    ``store`` and ``note_service`` default to the configured SQLite database
    and AnkiConnect endpoint.
    """
    cfg = cfg or load_config()

    async with AsyncExitStack() as stack:
        if store is None:
            session = DatabaseSessionManager(args.db or cfg.runtime.db_path)
            session.migrate()
            stack.callback(session.close)
            store = SqliteQueueStore(session)

        client: AnkiConnectClient | None = None
        if note_service is None:
            client = AnkiConnectClient.from_config(cfg.anki)
            # Only commands that talk to Anki open the HTTP connection
            if args.command in ("sync", "status", "watch"):
                await stack.enter_async_context(client)
            note_service = client
        elif isinstance(note_service, AnkiConnectClient):
            client = note_service

        service = PendingQueueService(store, note_service, config=cfg)

        try:
            if args.command == "list":
                return await _cmd_list(args, service)
            if args.command == "add":
                return await _cmd_add(args, service)
            if args.command == "remove":
                return await _cmd_remove(args, service)
            if args.command == "clear":
                return await _cmd_clear(args, service)
            if args.command == "sync":
                return await _cmd_sync(args, service)
            if args.command == "status":
                return await _cmd_status(args, service, client)
            if args.command == "watch":
                return await _cmd_watch(args, service, cfg)
        except QueueError as exc:
            logger.warning("cli_command_failed", extra={"command": args.command, "error": str(exc)})
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    msg = f"Unknown command: {args.command}"
    raise ValueError(msg)


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        cfg = load_config()
    except RuntimeError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    level = (args.log_level or cfg.runtime.log_level).upper()
    if cfg.runtime.log_json:
        setup_json_logging(
            level,
            use_loguru=cfg.runtime.use_loguru,
            log_file=cfg.runtime.log_file,
            stream=sys.stderr,
        )
    else:
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            handlers=[logging.StreamHandler(sys.stderr)],
        )
    return asyncio.run(run(args, cfg=cfg))


if __name__ == "__main__":
    sys.exit(main())
