from __future__ import annotations

"""
Snapshot export and import.

A snapshot holds the seed, turn counter, every faction's state, the recent
log and summary statistics. The map itself is never stored: it is
regenerated from the seed on import, after which :func:`reconcile_world`
re-applies ownership and army positions to the fresh grid.
"""

import json
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING, Union

from world.cells import Coordinate
from world.resource_types import RESOURCE_ORDER, ResourceType, empty_stock
from . import settings
from .battle import BattleRecord, Casualty
from .diplomacy import Relation, TradeOffer
from .game_log import LogEntry
from .models import Army, ArmyTarget, Faction, Order
from .territory import station_army

if TYPE_CHECKING:
    from world.grid import Grid

logger = logging.getLogger("sandbox.Persistence")
logger.addHandler(logging.NullHandler())


# -----------------------------------------------------------------------------
# Custom Exceptions
# -----------------------------------------------------------------------------
class GameSaveError(Exception):
    """Exception raised when saving a snapshot fails."""


class GameLoadError(Exception):
    """Exception raised when loading a snapshot fails."""


# -----------------------------------------------------------------------------
# Data Classes
# -----------------------------------------------------------------------------
@dataclass
class GameState:
    seed: int
    turn: int
    factions: List[Dict[str, Any]] = field(default_factory=list)
    game_log: List[Dict[str, Any]] = field(default_factory=list)
    game_stats: Dict[str, Any] = field(default_factory=dict)
    next_army_id: int = 1
    version: str = settings.SNAPSHOT_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "seed": self.seed,
            "turn": self.turn,
            "next_army_id": self.next_army_id,
            "factions": self.factions,
            "game_log": self.game_log,
            "game_stats": self.game_stats,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "GameState":
        if not isinstance(data, dict):
            raise GameLoadError("Snapshot must be a JSON object")
        try:
            seed = int(data["seed"])
        except (KeyError, TypeError, ValueError) as e:
            raise GameLoadError("Snapshot has no usable seed") from e
        turn = data.get("turn", 0)
        if not isinstance(turn, int) or turn < 0:
            logger.warning("Invalid turn %r in snapshot, using 0", turn)
            turn = 0
        factions = data.get("factions")
        if not isinstance(factions, list):
            logger.warning("Snapshot has no faction list")
            factions = []
        game_log = data.get("game_log")
        if not isinstance(game_log, list):
            game_log = []
        next_army_id = data.get("next_army_id", 1)
        if not isinstance(next_army_id, int) or next_army_id < 1:
            next_army_id = 1
        return cls(
            seed=seed,
            turn=turn,
            factions=factions,
            game_log=game_log,
            game_stats=data.get("game_stats") if isinstance(data.get("game_stats"), dict) else {},
            next_army_id=next_army_id,
            version=str(data.get("version", settings.SNAPSHOT_VERSION)),
        )


# -----------------------------------------------------------------------------
# Input coercion
# -----------------------------------------------------------------------------
def coerce_resources(data: Any) -> Dict[ResourceType, int]:
    """Read a wallet, dropping unknown keys and clamping negatives to zero."""
    result = empty_stock()
    if not isinstance(data, dict):
        logger.warning("Invalid resource data %r, using empty stock", data)
        return result
    for key, value in data.items():
        try:
            res_type = ResourceType(key)
            amount = int(value)
        except (ValueError, TypeError):
            logger.warning("Skipping invalid resource entry: %s:%s", key, value)
            continue
        if amount < 0:
            logger.warning("Negative %s amount %d clamped to 0", key, amount)
            amount = 0
        result[res_type] = amount
    return result


def coerce_nation_id(value: Any, count: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value < count:
        return value
    logger.warning("Invalid nation id %r, using 0", value)
    return 0


def coerce_relation(value: Any) -> Relation:
    try:
        return Relation(value)
    except ValueError:
        logger.warning("Invalid relation %r, using neutral", value)
        return Relation.NEUTRAL


def coerce_level(value: Any) -> int:
    try:
        level = int(value)
    except (TypeError, ValueError):
        logger.warning("Invalid army level %r, using %d", value, settings.ARMY_MIN_LEVEL)
        return settings.ARMY_MIN_LEVEL
    clamped = max(settings.ARMY_MIN_LEVEL, min(settings.ARMY_MAX_LEVEL, level))
    if clamped != level:
        logger.warning("Army level %d clamped to %d", level, clamped)
    return clamped


def coerce_coordinate(value: Any, size: int) -> Optional[Coordinate]:
    """Clamp an ``[x, y]`` pair into ``0..size-1``; None when unreadable."""
    if value is None:
        return None
    if isinstance(value, dict):
        value = (value.get("x"), value.get("y"))
    try:
        x, y = int(value[0]), int(value[1])
    except (TypeError, ValueError, IndexError, KeyError):
        logger.warning("Invalid coordinate %r", value)
        return None
    cx = max(0, min(size - 1, x))
    cy = max(0, min(size - 1, y))
    if (cx, cy) != (x, y):
        logger.warning("Coordinate %s clamped to %s", (x, y), (cx, cy))
    return (cx, cy)


def _coerce_order(value: Any) -> Optional[Order]:
    if value is None:
        return None
    try:
        return Order(value)
    except ValueError:
        logger.warning("Invalid order %r, clearing it", value)
        return None


def _coerce_resource_type(value: Any) -> Optional[ResourceType]:
    try:
        return ResourceType(value)
    except ValueError:
        logger.warning("Invalid resource type %r", value)
        return None


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


# -----------------------------------------------------------------------------
# Serialization / Deserialization Helpers
# -----------------------------------------------------------------------------
def serialize_resources(resources: Dict[ResourceType, int]) -> Dict[str, int]:
    return {r.value: resources.get(r, 0) for r in RESOURCE_ORDER}


def serialize_army(army: Army) -> Dict[str, Any]:
    return army.to_json()


def deserialize_army(
    data: Dict[str, Any], faction_id: int, map_size: int, inner_size: int
) -> Optional[Army]:
    pos = coerce_coordinate((data.get("x"), data.get("y")), map_size)
    if pos is None:
        logger.warning("Dropping army without a readable position: %r", data)
        return None
    inner = None
    if data.get("inner_x") is not None and data.get("inner_y") is not None:
        inner = coerce_coordinate((data.get("inner_x"), data.get("inner_y")), inner_size)
    army = Army(
        id=_int(data.get("id"), 0),
        faction_id=faction_id,
        x=pos[0],
        y=pos[1],
        inner_x=inner[0] if inner else None,
        inner_y=inner[1] if inner else None,
        level=coerce_level(data.get("level", 1)),
        health=max(0, min(settings.ARMY_MAX_HEALTH, _int(data.get("health"), settings.ARMY_MAX_HEALTH))),
        experience=max(0, _int(data.get("experience"))),
        movement_points=max(0, _int(data.get("movement_points"), settings.ARMY_MOVEMENT_POINTS)),
        orders=_coerce_order(data.get("orders")),
        victories=max(0, _int(data.get("victories"))),
        defeats=max(0, _int(data.get("defeats"))),
        battles_participated=max(0, _int(data.get("battles_participated"))),
        created_turn=max(0, _int(data.get("created_turn"))),
    )
    target = data.get("target")
    if isinstance(target, dict):
        coord = coerce_coordinate(target, map_size)
        order = _coerce_order(target.get("type")) or Order.MOVE
        if coord is not None:
            army.target = ArmyTarget(coord[0], coord[1], order)
    return army


def serialize_battle(battle: BattleRecord) -> Dict[str, Any]:
    return battle.to_json()


def deserialize_battle(data: Dict[str, Any]) -> Optional[BattleRecord]:
    try:
        location = (int(data["location"][0]), int(data["location"][1]))
        record = BattleRecord(
            turn=int(data["turn"]),
            attacker=str(data["attacker"]),
            defender=str(data["defender"]),
            location=location,
            attack_power=int(data["attack_power"]),
            defense_power=int(data["defense_power"]),
            attack_roll=int(data["attack_roll"]),
            defense_roll=int(data["defense_roll"]),
            winner=str(data.get("winner", "")),
            experience_gained=int(data.get("experience_gained", 0)),
        )
    except (KeyError, TypeError, ValueError, IndexError):
        logger.warning("Skipping invalid battle record: %r", data)
        return None
    for cas in data.get("casualties", []) or []:
        if not isinstance(cas, dict):
            continue
        record.casualties.append(
            Casualty(
                nation=str(cas.get("nation", "")),
                army_level=coerce_level(cas.get("army_level", 1)),
                type=str(cas.get("type", "destroyed")),
                damage=cas.get("damage"),
            )
        )
    return record


def serialize_trade_offer(offer: TradeOffer) -> Dict[str, Any]:
    return offer.to_json()


def deserialize_trade_offer(data: Dict[str, Any], count: int) -> Optional[TradeOffer]:
    offer_type = _coerce_resource_type(data.get("offer_type"))
    want_type = _coerce_resource_type(data.get("want_type"))
    if offer_type is None or want_type is None:
        return None
    return TradeOffer(
        from_id=coerce_nation_id(data.get("from"), count),
        to_id=coerce_nation_id(data.get("to"), count),
        offer_type=offer_type,
        offer_amount=max(0, _int(data.get("offer_amount"))),
        want_type=want_type,
        want_amount=max(0, _int(data.get("want_amount"))),
        turn=max(0, _int(data.get("turn"))),
    )


def serialize_faction(faction: Faction, battles: int = settings.EXPORT_BATTLES) -> Dict[str, Any]:
    return faction.to_json(battles)


def deserialize_faction(
    data: Any, count: int, map_size: int, inner_size: int
) -> Optional[Faction]:
    if not isinstance(data, dict):
        logger.warning("Skipping invalid faction entry: %r", data)
        return None
    faction_id = coerce_nation_id(data.get("id"), count)
    name = data.get("name")
    if not isinstance(name, str) or not name:
        name = settings.NATION_NAMES[faction_id % len(settings.NATION_NAMES)]
    faction = Faction(
        id=faction_id,
        name=name,
        symbol=str(data.get("symbol", "")),
        color=str(data.get("color", settings.NATION_COLORS[faction_id % len(settings.NATION_COLORS)])),
        resources=coerce_resources(data.get("resources")),
    )
    for raw in data.get("territory", []) or []:
        coord = coerce_coordinate(raw, map_size)
        if coord is not None:
            faction.add_territory(coord)
    faction.capital = coerce_coordinate(data.get("capital"), map_size)

    diplomacy = data.get("diplomacy")
    if isinstance(diplomacy, dict):
        for other, relation in diplomacy.items():
            other_id = coerce_nation_id(_int(other, -1), count)
            if other_id != faction_id:
                faction.set_relation(other_id, coerce_relation(relation))

    for raw in data.get("trade_offers", []) or []:
        if isinstance(raw, dict):
            offer = deserialize_trade_offer(raw, count)
            if offer is not None:
                faction.add_trade_offer(offer)

    for raw in data.get("armies", []) or []:
        if isinstance(raw, dict):
            army = deserialize_army(raw, faction_id, map_size, inner_size)
            if army is not None:
                faction.add_army(army)

    for raw in data.get("battles", []) or []:
        if isinstance(raw, dict):
            battle = deserialize_battle(raw)
            if battle is not None:
                faction.add_battle(battle)
    return faction


def serialize_log(entries: List[LogEntry]) -> List[Dict[str, Any]]:
    return [e.to_json() for e in entries]


def deserialize_log(data: Any) -> List[LogEntry]:
    entries: List[LogEntry] = []
    if not isinstance(data, list):
        return entries
    for raw in data:
        if not isinstance(raw, dict) or "message" not in raw:
            logger.warning("Skipping invalid log entry: %r", raw)
            continue
        entries.append(
            LogEntry(
                turn=max(0, _int(raw.get("turn"))),
                message=str(raw["message"]),
                timestamp=str(raw.get("timestamp", "")),
            )
        )
    return entries


# -----------------------------------------------------------------------------
# Reconciliation after import
# -----------------------------------------------------------------------------
def reconcile_world(grid: "Grid", factions: List[Faction]) -> List[str]:
    """
    Re-apply faction ownership and army positions to a regenerated grid.

    Returns human-readable notes for every gap found: territory on
    regenerated ocean or mountain, armies whose slot could not be restored,
    and the developments and roads that snapshots do not carry.
    """
    notes: List[str] = []
    claimed: Dict[Coordinate, Faction] = {}
    for faction in factions:
        for coord in list(faction.territory):
            other = claimed.get(coord)
            if other is not None:
                faction.remove_territory(coord)
                notes.append(f"{coord} claimed by both {other.name} and {faction.name}; kept {other.name}")
                continue
            claimed[coord] = faction
            cell = grid[coord]
            cell.owner = faction.id
            if not cell.passable:
                notes.append(f"{faction.name} territory {coord} is {cell.terrain.value} on the regenerated map")

    for faction in factions:
        for army in faction.armies:
            inner = army.inner_position
            army.inner_x = army.inner_y = None
            if inner is None:
                continue
            if not station_army(grid, army, *inner):
                notes.append(f"army #{army.id} of {faction.name} could not reoccupy {army.position}/{inner}")

    notes.append("developments and roads are not stored in snapshots and were not restored")
    for note in notes:
        logger.warning(note)
    return notes


# -----------------------------------------------------------------------------
# File I/O
# -----------------------------------------------------------------------------
def save_snapshot(snapshot: Union[GameState, Dict[str, Any]], path: Union[str, Path, None] = None) -> Path:
    """Write ``snapshot`` as JSON, replacing the target file atomically."""
    target = Path(path) if path is not None else settings.SAVE_FILE
    tmp = target.with_suffix(target.suffix + ".tmp")
    data = snapshot.to_dict() if isinstance(snapshot, GameState) else snapshot
    try:
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        shutil.move(str(tmp), str(target))
    except (OSError, TypeError, ValueError) as e:
        if tmp.exists():
            tmp.unlink()
        raise GameSaveError(f"Failed to save snapshot to {target}: {e}") from e
    logger.info("Saved snapshot to %s", target)
    return target


def load_snapshot(path: Union[str, Path, None] = None) -> GameState:
    target = Path(path) if path is not None else settings.SAVE_FILE
    try:
        with open(target, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError as e:
        raise GameLoadError(f"No snapshot at {target}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise GameLoadError(f"Failed to read snapshot {target}: {e}") from e
    return GameState.from_dict(raw)


__all__ = [
    "GameLoadError",
    "GameSaveError",
    "GameState",
    "coerce_coordinate",
    "coerce_level",
    "coerce_nation_id",
    "coerce_relation",
    "coerce_resources",
    "deserialize_army",
    "deserialize_battle",
    "deserialize_faction",
    "deserialize_log",
    "load_snapshot",
    "reconcile_world",
    "save_snapshot",
    "serialize_army",
    "serialize_battle",
    "serialize_faction",
    "serialize_log",
    "serialize_resources",
]
