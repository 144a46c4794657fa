"""
Fusion CLI - Command-line interface for the engine.

Usage:
    fusion play [--new] [--seed N]     Play in the terminal
    fusion serve [--host H] [--port P] Run the HTTP API
    fusion leaderboard                 Show local top scores
    fusion reset [--yes]               Delete the saved game, stats and leaderboard
"""

import argparse
import asyncio
import sys
from pathlib import Path

from .config import Settings, configure_logging


PLAY_HELP = """\
  w/a/s/d   move up/left/down/right
  u         undo
  p N       use power-up in slot N
  r ROW COL pick a cell for the armed power-up
  c         cancel the armed power-up
  q         quit (the game is saved)
"""

MOVE_KEYS = {"w": "up", "a": "left", "s": "down", "d": "right"}


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Fusion - Tile-merging puzzle engine",
        prog="fusion",
    )
    parser.add_argument("--data-dir", help="Override FUSION_DATA_DIR")
    parser.add_argument("--log-level", help="Override FUSION_LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Play command
    play_parser = subparsers.add_parser("play", help="Play in the terminal")
    play_parser.add_argument("--new", action="store_true", help="Ignore the saved game")
    play_parser.add_argument("--seed", type=int, help="Seed for spawns and power-ups")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    subparsers.add_parser("leaderboard", help="Show local top scores")

    reset_parser = subparsers.add_parser("reset", help="Delete all local data")
    reset_parser.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    args = parser.parse_args(argv)

    settings = Settings.from_env()
    if args.data_dir:
        settings.data_dir = Path(args.data_dir).expanduser()
    if args.log_level:
        settings.log_level = args.log_level.upper()
    configure_logging(settings.log_level)

    if args.command == "play":
        asyncio.run(cmd_play(args, settings))
    elif args.command == "serve":
        cmd_serve(args, settings)
    elif args.command == "leaderboard":
        asyncio.run(cmd_leaderboard(args, settings))
    elif args.command == "reset":
        cmd_reset(args, settings)
    else:
        parser.print_help()
        sys.exit(1)


def _manager(settings):
    from .persistence import FileGateway
    from .session import SessionManager

    return SessionManager(gateway=FileGateway(settings.data_dir))


def render(session) -> str:
    """Plain-text board: levels, J for Jokers, * after frozen tiles."""
    game = session.game
    lines = [f"Score: {game.score}   Best rank: {game.highest_level}"]
    for row in game.grid.to_rows():
        cells = []
        for tile in row:
            if tile is None:
                cells.append("  .  ")
                continue
            label = "J" if tile.is_joker else str(tile.level)
            if game.effects.is_frozen(tile.id):
                label += "*"
            cells.append(label.center(5))
        lines.append("".join(cells))

    if game.economy.inventory:
        slots = ", ".join(
            f"{i + 1}:{p.type.value}" for i, p in enumerate(game.economy.inventory)
        )
        lines.append(f"Power-ups: {slots}")
    if game.economy.extra_undos:
        lines.append(f"Extra undos: {game.economy.extra_undos}")
    if game.effects.slow_motion_active:
        lines.append(f"Slow motion: {game.effects.slow_motion_turns} move(s)")
    if game.selection.is_armed:
        armed = game.selection.session
        lines.append(f"Pick {armed.required - len(armed.picked)} more tile(s) for {armed.type.value}")
    return "\n".join(lines)


def parse_command(line: str):
    """Turn a line of input into an Action, "quit", or None."""
    from .engine_core import Action

    parts = line.strip().lower().split()
    if not parts:
        return None
    head, rest = parts[0], parts[1:]

    if head in MOVE_KEYS:
        return Action.move(MOVE_KEYS[head])
    if head == "u":
        return Action.undo()
    if head == "c":
        return Action.cancel_selection()
    if head == "q":
        return "quit"
    if head == "r" and len(rest) == 2 and all(p.isdigit() for p in rest):
        return Action.pick(int(rest[0]), int(rest[1]))
    if head == "p" and len(rest) == 1 and rest[0].isdigit():
        return ("power_up", int(rest[0]))
    return None


async def cmd_play(args, settings):
    """Interactive terminal game."""
    from .engine_core import Action

    manager = _manager(settings)
    session = await manager.create_session(resume=not args.new, seed=args.seed)
    if session.resumed:
        print("Resuming saved game.")
    print(PLAY_HELP)

    while True:
        print()
        print(render(session))

        if session.game.game_over:
            if not await _game_over_prompt(manager, session):
                break
            continue

        command = parse_command(input("> "))
        if command is None:
            print(PLAY_HELP)
            continue
        if command == "quit":
            break
        if isinstance(command, tuple):
            slot = command[1] - 1
            inventory = session.game.economy.inventory
            if not 0 <= slot < len(inventory):
                print(f"No power-up in slot {command[1]}")
                continue
            command = Action.use_power_up(inventory[slot].id)

        result = await manager.handle(session.session_id, command)
        for notice in result.notices:
            print(f"! {notice}")
        if not result.success:
            print(f"({result.error})")
        elif result.granted_power_up:
            print(f"+ {result.granted_power_up.type.value} power-up")

    manager.end_session(session.session_id)


async def _game_over_prompt(manager, session) -> bool:
    """Returns False when the player is done with this game."""
    from .engine_core import Action

    print("Game over.")
    if session.game.can_undo:
        answer = input("Undo last move? [y/N] ").strip().lower()
        if answer == "y":
            await manager.handle(session.session_id, Action.undo())
            return True

    if session.pending_score is not None:
        name = input(f"Top score {session.pending_score}! Name: ")
        while not await manager.submit_score(session.session_id, name):
            if input("Submission failed. Retry? [Y/n] ").strip().lower() == "n":
                await manager.discard_score(session.session_id)
                break
    else:
        await manager.discard_score(session.session_id)
    print(f"Final score: {session.game.score}")
    return False


async def cmd_leaderboard(args, settings):
    manager = _manager(settings)
    entries = await manager.leaderboard()
    print(f"High score: {await manager.high_score()}")
    print(f"Best rank ever: {await manager.max_discovered_rank()}")
    if not entries:
        print("No scores yet.")
        return
    for i, entry in enumerate(entries, start=1):
        print(f"{i:>2}. {entry.name:<20} {entry.score:>8}  (rank {entry.highest_rank})")


def cmd_serve(args, settings):
    """Run the HTTP API."""
    try:
        import uvicorn
    except ImportError:
        print("uvicorn not installed. Install with: pip install uvicorn")
        sys.exit(1)

    from .api import create_app

    uvicorn.run(create_app(settings=settings), host=args.host, port=args.port)


def cmd_reset(args, settings):
    from .persistence import FileGateway

    if not args.yes:
        answer = input(f"Delete all data in {settings.data_dir}? [y/N] ").strip().lower()
        if answer != "y":
            print("Aborted.")
            return
    FileGateway(settings.data_dir).reset()
    print("Local data deleted.")


if __name__ == "__main__":
    main()
