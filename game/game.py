import logging
import threading
import time
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from world.cells import Coordinate, Development, TerrainType
from world.generation import MapGenerator
from world.grid import Grid, euclidean_distance
from world.random_source import SeededRandom
from world.resource_types import empty_stock
from world.settings import WorldSettings
from . import ai
from . import settings
from .autoplay import AutoPlayer
from .battle import BattleManager, BattleRecord, dedupe_battles
from .game_log import Clock, GameLog, LogEntry
from .models import Army, Faction
from .persistence import (
    GameLoadError,
    GameState,
    deserialize_faction,
    deserialize_log,
    load_snapshot,
    reconcile_world,
    save_snapshot,
    serialize_faction,
    serialize_log,
)
from .population import process_population_growth
from .resources import ResourceManager
from .territory import claim_territory, disband_army, release_all_territory, station_army

logger = logging.getLogger("sandbox.Game")
logger.addHandler(logging.NullHandler())


class GamePhase(Enum):
    INITIALIZING = "initializing"
    RUNNING = "running"
    PAUSED = "paused"
    TERMINAL = "terminal"


def parse_seed(value: Any) -> Optional[int]:
    """
    Read a seed supplied from outside (command line, query string).

    Returns None, meaning "pick a fresh seed", for anything that is not a
    positive integer.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        seed = int(str(value).strip())
    except ValueError:
        logger.warning("Ignoring invalid seed %r", value)
        return None
    if seed <= 0:
        logger.warning("Ignoring non-positive seed %r", value)
        return None
    return seed


# --------------------------------------------------------------------
# “Game” Class: owns the grid, factions and random source for one run
# --------------------------------------------------------------------
class Game:
    """
    Simulation orchestrator.

    A turn runs, in order:
      1. ``--- Turn N ---`` is logged
      2. every faction that still holds territory, by id: income and upkeep,
         expired trade offers dropped, AI decisions, statistics refresh
      3. population growth across all owned settlements
      4. cleanup of factions left without territory
      5. victory check; once at most one faction remains the game is over
         and further calls to :meth:`next_turn` do nothing

    A failure while processing one faction is logged and does not stop the
    others. Turns are serialized by ``self.lock`` so auto-play and manual
    stepping never overlap.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        world_settings: Optional[WorldSettings] = None,
        clock: Clock = time.time,
        initialize: bool = True,
    ):
        self.world_settings = world_settings or WorldSettings()
        self.clock = clock
        self.lock = threading.RLock()
        self.log_book = GameLog(clock)
        self.autoplayer = AutoPlayer(self._autoplay_step)
        self.zoomed_square: Optional[Coordinate] = None
        self.highlighted_square: Optional[Tuple[int, int, str]] = None
        self._setup(seed if seed is not None else self.world_settings.seed)
        if initialize:
            self.initialize()

    def _setup(self, seed: Optional[int]) -> None:
        self.random = SeededRandom(seed)
        self.seed: int = self.random.seed
        self.turn: int = 0
        self.factions: List[Faction] = []
        self.next_army_id: int = 1
        self.game_over: bool = False
        self.winner: Optional[Faction] = None
        self.initialized: bool = False
        self.last_turn_seconds: float = 0.0
        self._eliminated: set = set()
        self.map_generator = MapGenerator(self.random, self.world_settings)
        self.battle_manager = BattleManager(self.random)
        self.grid = Grid(self.world_settings.map_size, self.world_settings.inner_size)
        self.resource_manager = ResourceManager(self.grid)

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    def log(self, message: str) -> LogEntry:
        logger.info("[T%d] %s", self.turn, message)
        return self.log_book.add(self.turn, message)

    @property
    def game_log(self) -> List[LogEntry]:
        return self.log_book.entries

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------
    def initialize(self) -> bool:
        """Generate the map and place every faction's capital."""
        logger.info("Initializing game with seed %d", self.seed)
        try:
            self.grid = self.map_generator.generate_map()
            self.resource_manager = ResourceManager(self.grid)
            self.create_factions()
            self.place_factions()
            for faction in self.factions:
                faction.update_statistics(self.grid)
            self.initialized = True
            self.log(f"Game initialized with {len(self.factions)} nations (seed: {self.seed})")
            return True
        except Exception as e:
            logger.exception("Failed to initialize game")
            self.log(f"Error: Game initialization failed - {e}")
            return False

    def create_factions(self) -> None:
        self.factions = []
        for i in range(settings.NATION_COUNT):
            resources = empty_stock()
            resources.update(settings.STARTING_RESOURCES)
            self.factions.append(
                Faction(
                    id=i,
                    name=settings.NATION_NAMES[i % len(settings.NATION_NAMES)],
                    symbol=settings.NATION_SYMBOLS[i % len(settings.NATION_SYMBOLS)],
                    color=settings.NATION_COLORS[i % len(settings.NATION_COLORS)],
                    resources=resources,
                )
            )

    def place_factions(self) -> None:
        """Place one capital per faction on land, spaced apart, in id order."""
        positions: List[Coordinate] = []
        size = self.grid.size
        for faction in self.factions:
            for _ in range(settings.PLACEMENT_ATTEMPTS):
                x = self.random.random_int(0, size - 1)
                y = self.random.random_int(0, size - 1)
                if self.grid[(x, y)].terrain is not TerrainType.LAND:
                    continue
                if any(
                    euclidean_distance((x, y), p) < settings.MIN_NATION_DISTANCE
                    for p in positions
                ):
                    continue
                self.found_capital(faction, (x, y))
                positions.append((x, y))
                break
            else:
                logger.warning(
                    "Failed to place %s after %d attempts",
                    faction.name,
                    settings.PLACEMENT_ATTEMPTS,
                )

    def found_capital(self, faction: Faction, coord: Coordinate) -> None:
        cell = self.grid[coord]
        claim_territory(self.grid, self.factions, faction, coord)
        cell.development = Development.CITY
        cell.population = settings.CAPITAL_POPULATION
        center = self.grid.inner_size // 2
        micro = cell.micro(center, center)
        if micro is not None:
            micro.development = Development.CITY
            micro.level = settings.CAPITAL_LEVEL
            micro.population = settings.CAPITAL_POPULATION
        faction.capital = coord
        self.log(f"{faction.name} established capital at ({coord[0]}, {coord[1]})")

    # ------------------------------------------------------------------
    # Turn processing
    # ------------------------------------------------------------------
    def next_turn(self) -> bool:
        """
        Advance the simulation by one turn.

        Returns False without doing anything once the game is over.
        """
        with self.lock:
            if self.game_over:
                return False
            start = self.clock()
            self.turn += 1
            logger.debug("Processing turn %d", self.turn)
            self.log(f"--- Turn {self.turn} ---")

            for faction in self.factions:
                if not faction.is_eliminated:
                    self.process_faction_turn(faction)

            try:
                self.process_global_effects()
            except Exception as e:
                logger.exception("Global pass failed on turn %d", self.turn)
                self.log(f"Error: Turn processing failed - {e}")

            self.last_turn_seconds = self.clock() - start
            return True

    def process_faction_turn(self, faction: Faction) -> None:
        try:
            logger.debug("Processing %s", faction.name)
            self.resource_manager.collect_resources(faction)
            self.resource_manager.pay_upkeep(faction)
            faction.cleanup_expired_trade_offers(self.turn)
            ai.take_turn(self, faction)
            faction.update_statistics(self.grid)
        except Exception as e:
            logger.exception("Error processing turn for %s", faction.name)
            self.log(f"Error: {faction.name} turn processing failed - {e}")

    def process_global_effects(self) -> None:
        process_population_growth(self.grid, self.factions)
        self.cleanup_eliminated_factions()
        for faction in self.factions:
            faction.update_statistics(self.grid)
        self.check_game_end_conditions()

    def cleanup_eliminated_factions(self) -> List[Faction]:
        """Strip armies and leftover ownership from factions with no territory."""
        eliminated = [f for f in self.factions if f.is_eliminated]
        for faction in eliminated:
            if faction.id not in self._eliminated:
                self._eliminated.add(faction.id)
                self.log(f"{faction.name} has been eliminated!")
            for army in list(faction.armies):
                disband_army(self.grid, faction, army)
            release_all_territory(self.grid, faction)
            faction.trade_offers.clear()
        return eliminated

    def check_game_end_conditions(self) -> bool:
        if self.game_over:
            return True
        active = self.active_factions()
        if len(active) > 1:
            return False
        self.game_over = True
        self.autoplayer.stop(wait=False)
        if active:
            self.winner = active[0]
            self.log(f"{self.winner.name} has achieved total victory!")
        else:
            self.log("All nations have been eliminated! The world lies in ruins.")
        return True

    # ------------------------------------------------------------------
    # Armies
    # ------------------------------------------------------------------
    def create_army(
        self,
        faction: Faction,
        coord: Coordinate,
        inner: Optional[Coordinate] = None,
        level: int = 1,
    ) -> Optional[Army]:
        """
        Pay for and raise an army of ``level`` at ``coord``.

        The army occupies ``inner`` when that micro cell is free, otherwise
        it stands on the macro cell without an inner position.
        """
        cost = Army.creation_cost(level)
        if not faction.spend_resources(cost):
            return None
        army = Army(id=self.next_army_id, faction_id=faction.id, x=coord[0], y=coord[1])
        army.set_level(level)
        army.created_turn = self.turn
        self.next_army_id += 1
        faction.add_army(army)
        if inner is not None:
            station_army(self.grid, army, *inner)
        self.log(f"{faction.name} created level {army.level} army at ({coord[0]}, {coord[1]})")
        return army

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def active_factions(self) -> List[Faction]:
        return [f for f in self.factions if not f.is_eliminated]

    @property
    def active_faction_count(self) -> int:
        return len(self.active_factions())

    @property
    def phase(self) -> GamePhase:
        if not self.initialized:
            return GamePhase.INITIALIZING
        if self.game_over:
            return GamePhase.TERMINAL
        if self.autoplayer.running:
            return GamePhase.RUNNING
        return GamePhase.PAUSED

    def faction_summaries(self) -> List[Dict[str, Any]]:
        return [f.summary() for f in self.factions]

    def all_battles(self) -> List[BattleRecord]:
        return dedupe_battles(b for f in self.factions for b in f.battles)

    def recent_battles(self, count: int = settings.RECENT_BATTLES) -> List[BattleRecord]:
        """Battles across all factions, each reported once, newest first."""
        battles = self.all_battles()
        battles.sort(key=lambda b: (b.turn, b.seq), reverse=True)
        return battles[:count] if count > 0 else []

    def game_stats(self) -> Dict[str, Any]:
        return {
            "turn": self.turn,
            "seed": self.seed,
            "active_nations": self.active_faction_count,
            "total_population": sum(f.total_population for f in self.factions),
            "total_armies": sum(len(f.armies) for f in self.factions),
            "total_battles": self.battle_manager.total_battles,
            "last_turn_seconds": self.last_turn_seconds,
        }

    # ------------------------------------------------------------------
    # Auto-play and reset
    # ------------------------------------------------------------------
    def _autoplay_step(self) -> bool:
        return self.next_turn() and not self.game_over

    def autoplay(self, interval: Optional[float] = None) -> bool:
        if self.game_over:
            return False
        with self.lock:
            started = self.autoplayer.start(interval)
            if started:
                self.log("Auto-play started")
        return started

    def pause(self) -> None:
        """Stop auto-play; waits for a turn already in progress to finish."""
        self.autoplayer.stop()

    @property
    def is_playing(self) -> bool:
        return self.autoplayer.running

    def reset(self, seed: Optional[int] = None) -> bool:
        self.pause()
        with self.lock:
            self.log_book.clear()
            self.zoomed_square = None
            self.highlighted_square = None
            self._setup(seed)
            ok = self.initialize()
            self.log(f"Game reset (seed: {self.seed})")
            return ok

    # ------------------------------------------------------------------
    # UI pass-through state
    # ------------------------------------------------------------------
    def zoom_into_square(self, x: int, y: int) -> bool:
        if self.grid.in_bounds(x, y):
            self.zoomed_square = (x, y)
            return True
        return False

    def zoom_out(self) -> None:
        self.zoomed_square = None
        self.highlighted_square = None

    def highlight_square(self, x: int, y: int, kind: str = "battle") -> None:
        self.highlighted_square = (x, y, kind)

    def clear_highlight(self) -> None:
        self.highlighted_square = None

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------
    def export_state(self) -> Dict[str, Any]:
        with self.lock:
            state = GameState(
                seed=self.seed,
                turn=self.turn,
                factions=[serialize_faction(f, settings.EXPORT_BATTLES) for f in self.factions],
                game_log=serialize_log(self.log_book.recent(settings.EXPORT_LOG_ENTRIES)),
                game_stats=self.game_stats(),
                next_army_id=self.next_army_id,
            )
            return state.to_dict()

    def import_state(self, snapshot: Union[GameState, Dict[str, Any]]) -> bool:
        """
        Restore factions, turn and log from ``snapshot`` and regenerate the
        map from its seed. Returns False, logging the error, on failure.
        """
        self.pause()
        with self.lock:
            try:
                state = snapshot if isinstance(snapshot, GameState) else GameState.from_dict(snapshot)
                self._setup(state.seed)
                self.grid = self.map_generator.generate_map()
                self.resource_manager = ResourceManager(self.grid)
                self.factions = self._restore_factions(state)
                self.turn = state.turn
                self._restore_army_ids(state.next_army_id)

                self.log_book.clear()
                self.log_book.extend(deserialize_log(state.game_log))

                reconcile_world(self.grid, self.factions)
                self._restore_capitals()
                saved_total = state.game_stats.get("total_battles")
                if not isinstance(saved_total, int):
                    saved_total = 0
                self.battle_manager.total_battles = max(len(self.all_battles()), saved_total)
                for faction in self.factions:
                    faction.update_statistics(self.grid)
                self._eliminated = {f.id for f in self.factions if f.is_eliminated}
                active = self.active_factions()
                if len(active) <= 1:
                    self.game_over = True
                    self.winner = active[0] if active else None
                self.initialized = True
                self.log("Game state loaded successfully")
                return True
            except (GameLoadError, KeyError, TypeError, ValueError) as e:
                logger.exception("Failed to import game state")
                self.log(f"Error: Failed to load game state - {e}")
                return False

    def _restore_factions(self, state: GameState) -> List[Faction]:
        count = max(settings.NATION_COUNT, len(state.factions))
        restored: Dict[int, Faction] = {}
        for data in state.factions:
            faction = deserialize_faction(
                data, count, self.grid.size, self.grid.inner_size
            )
            if faction is None:
                continue
            if faction.id in restored:
                logger.warning("Duplicate faction id %d in snapshot; keeping the first", faction.id)
                continue
            restored[faction.id] = faction
        return [restored[i] for i in sorted(restored)]

    def _restore_army_ids(self, next_id: int) -> None:
        seen = set()
        highest = 0
        armies = [a for f in self.factions for a in f.armies]
        for army in armies:
            if army.id > 0 and army.id not in seen:
                seen.add(army.id)
                highest = max(highest, army.id)
        self.next_army_id = max(next_id, highest + 1)
        seen.clear()
        for army in armies:
            if army.id <= 0 or army.id in seen:
                army.id = self.next_army_id
                self.next_army_id += 1
            seen.add(army.id)

    def _restore_capitals(self) -> None:
        """Rebuild capital cities still held by their faction."""
        center = self.grid.inner_size // 2
        for faction in self.factions:
            coord = faction.capital
            if coord is None or not faction.has_territory(coord):
                continue
            cell = self.grid[coord]
            cell.development = Development.CITY
            cell.population = settings.CAPITAL_POPULATION
            micro = cell.micro(center, center)
            if micro is not None:
                micro.development = Development.CITY
                micro.level = settings.CAPITAL_LEVEL
                micro.population = settings.CAPITAL_POPULATION

    def save(self, path: Union[str, Path, None] = None) -> Path:
        return save_snapshot(self.export_state(), path)

    def load(self, path: Union[str, Path, None] = None) -> bool:
        return self.import_state(load_snapshot(path))

