import argparse
import logging
import sys
import time
from typing import Optional

from game.game import Game, parse_seed
from game.persistence import GameLoadError, GameSaveError
from game import settings
from world.export import export_grid_json, export_grid_xml

logger = logging.getLogger("sandbox.main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run the world simulation sandbox."
    )
    parser.add_argument("--seed", type=str, default=None, help="World seed (positive integer)")
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Advance turns on a timer without opening the map window",
    )
    parser.add_argument(
        "--turns", type=int, default=0,
        help="Stop after this many turns in headless mode (0 runs until the game ends)",
    )
    parser.add_argument(
        "--interval", type=float, default=settings.AUTOPLAY_INTERVAL,
        help="Seconds between turns in headless mode",
    )
    parser.add_argument("--load-file", type=str, default="", help="Resume from a saved snapshot")
    parser.add_argument(
        "--save-file", type=str, default=str(settings.SAVE_FILE),
        help="Where to write the snapshot on exit",
    )
    parser.add_argument(
        "--no-save",
        action="store_true",
        help="Exit without saving the game state",
    )
    parser.add_argument("--export-json", type=str, default="", help="Write the generated map as JSON")
    parser.add_argument("--export-xml", type=str, default="", help="Write the generated map as XML")
    parser.add_argument(
        "--log-level", type=str, default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level",
    )
    return parser


def run_headless(game: Game, turns: int, interval: float) -> None:
    played = 0
    try:
        while not turns or played < turns:
            if not game.next_turn():
                break
            played += 1
            if interval > 0:
                time.sleep(interval)
    except KeyboardInterrupt:
        print("\nStopping game...")
    stats = game.game_stats()
    print(
        f"Turn {stats['turn']} (seed {stats['seed']}): "
        f"{stats['active_nations']} nations, {stats['total_armies']} armies, "
        f"{stats['total_battles']} battles"
    )
    if game.winner is not None:
        print(f"Winner: {game.winner.name}")


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    game = Game(seed=parse_seed(args.seed), initialize=not args.load_file)
    if args.load_file:
        try:
            if not game.load(args.load_file):
                return 1
        except GameLoadError as e:
            logger.error("Error loading save file %r: %s", args.load_file, e)
            return 1
    elif not game.initialized:
        return 2

    if args.export_json:
        export_grid_json(game.grid, args.export_json)
    if args.export_xml:
        export_grid_xml(game.grid, args.export_xml)

    try:
        if args.headless:
            run_headless(game, args.turns, args.interval)
        else:
            from ui.map_view import MapView

            MapView(game).run()
    finally:
        game.pause()

    if args.no_save:
        print("Skipping save (--no-save)")
        return 0
    try:
        path = game.save(args.save_file)
    except GameSaveError as e:
        logger.error("Error while saving game: %s", e)
        return 3
    print(f"Game saved to {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
