"""Application entry point — wires services and runs a command.

Usage:
    python main.py games
    python main.py add-game <name> <save_location> [--exe <exe_name>]
    python main.py snapshot <game_id> [--name <label>]
    python main.py list <game_id>
    python main.py restore <game_id> <snapshot_id>
    python main.py verify <game_id> <snapshot_id>
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger

from checkpoint.commands import CheckpointCommands
from checkpoint.config import Config, get_config
from checkpoint.context import AppContext
from checkpoint.core.errors import CheckpointError
from checkpoint.core.restore import RestoreManager
from checkpoint.core.snapshot_store import SnapshotStore
from checkpoint.logger import setup_logger
from checkpoint.utils import format_size


def create_context(config: Config | None = None) -> AppContext:
    """Wire all services and return an AppContext."""
    config = config or get_config()

    store = SnapshotStore(config)
    restore_manager = RestoreManager(store)
    commands = CheckpointCommands(config, store, restore_manager)

    return AppContext(
        config=config,
        snapshot_store=store,
        restore_manager=restore_manager,
        commands=commands,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="checkpoint", description="Game save snapshots")
    parser.add_argument("--config-dir", type=Path, default=None, help="Config directory")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug output on the console")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("games", help="List registered games")

    p = sub.add_parser("add-game", help="Register a game")
    p.add_argument("name")
    p.add_argument("save_location", type=Path)
    p.add_argument("--exe", dest="exe_name", default=None, help="Executable name for the running check")

    p = sub.add_parser("remove-game", help="Unregister a game and delete its snapshots")
    p.add_argument("game_id")

    p = sub.add_parser("set-backup-location", help="Change the snapshot root directory")
    p.add_argument("path", type=Path)

    p = sub.add_parser("snapshot", help="Take a snapshot of a game's saves")
    p.add_argument("game_id")
    p.add_argument("--name", default=None)

    p = sub.add_parser("list", help="List snapshots, newest first")
    p.add_argument("game_id")

    for name, help_text in (
        ("restore", "Restore a snapshot over the live saves"),
        ("delete", "Delete a snapshot"),
        ("verify", "Check a snapshot against its metadata"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("game_id")
        p.add_argument("snapshot_id")

    p = sub.add_parser("rename", help="Rename a snapshot")
    p.add_argument("game_id")
    p.add_argument("snapshot_id")
    p.add_argument("new_name")

    p = sub.add_parser("import", help="Import a ZIP archive as a snapshot")
    p.add_argument("game_id")
    p.add_argument("archive", type=Path)
    p.add_argument("--name", default=None)

    p = sub.add_parser("export", help="Export a snapshot as a ZIP archive")
    p.add_argument("game_id")
    p.add_argument("snapshot_id")
    p.add_argument("dest", type=Path)

    return parser


def run_command(ctx: AppContext, args: argparse.Namespace) -> int:
    cmd = ctx.commands

    if args.command == "games":
        for game in cmd.list_games():
            exe = f" [{game.exe_name}]" if game.exe_name else ""
            print(f"{game.id}  {game.name}{exe}  {game.save_location}")
    elif args.command == "add-game":
        game = cmd.add_game(args.name, args.save_location.resolve(), args.exe_name)
        print(game.id)
    elif args.command == "remove-game":
        cmd.delete_game(args.game_id)
    elif args.command == "set-backup-location":
        cmd.set_backup_location(args.path.resolve())
    elif args.command == "snapshot":
        snapshot = cmd.create_snapshot(args.game_id, args.name)
        print(f"{snapshot.id}  {snapshot.name}  {snapshot.file_count} files, {format_size(snapshot.size)}")
    elif args.command == "list":
        for snapshot in cmd.list_snapshots(args.game_id):
            print(
                f"{snapshot.id}  {snapshot.timestamp:%Y-%m-%d %H:%M:%S}  {snapshot.name}  "
                f"{snapshot.file_count} files, {format_size(snapshot.size)}"
            )
    elif args.command == "restore":
        result = cmd.restore_snapshot(args.snapshot_id, args.game_id)
        print(result.message)
        if result.backup_snapshot_id:
            print(f"Previous saves backed up as {result.backup_snapshot_id}")
        return 0 if result.success else 1
    elif args.command == "delete":
        cmd.delete_snapshot(args.snapshot_id, args.game_id)
    elif args.command == "verify":
        ok = cmd.verify_snapshot(args.snapshot_id, args.game_id)
        print("OK" if ok else "FAILED")
        return 0 if ok else 1
    elif args.command == "rename":
        cmd.rename_snapshot(args.snapshot_id, args.game_id, args.new_name)
    elif args.command == "import":
        name = args.name or args.archive.stem
        snapshot = cmd.import_snapshot(args.game_id, name, args.archive.read_bytes())
        print(snapshot.id)
    elif args.command == "export":
        print(cmd.export_snapshot(args.snapshot_id, args.game_id, args.dest))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Application entry point."""
    args = build_parser().parse_args(argv)

    config = Config(args.config_dir) if args.config_dir else get_config()
    setup_logger(config.log_dir, verbose=args.verbose)

    ctx = create_context(config)
    try:
        return run_command(ctx, args)
    except (CheckpointError, OSError, ValueError) as e:
        logger.debug(f"Command {args.command} failed: {e!r}")
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
