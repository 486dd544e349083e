from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from world.cells import Coordinate
from world.resource_types import RESOURCE_ORDER, ResourceType, empty_stock
from .diplomacy import Relation, TradeOffer
from . import settings

if TYPE_CHECKING:
    from world.grid import Grid
    from .battle import BattleRecord

logger = logging.getLogger("sandbox.Models")
logger.addHandler(logging.NullHandler())

ResourceDict = Dict[ResourceType, int]


class Order(Enum):
    MOVE = "move"
    ATTACK = "attack"
    DEFEND = "defend"
    BUILD = "build"


@dataclass
class ArmyTarget:
    x: int
    y: int
    order: Order = Order.MOVE


@dataclass(eq=False)
class Army:
    """
    A mobile military unit.

    ``inner_x``/``inner_y`` are both None while the army has no micro cell
    slot. Level follows experience (one level per 100 points, capped at 10)
    and never decreases.
    """

    id: int
    faction_id: int
    x: int
    y: int
    inner_x: Optional[int] = None
    inner_y: Optional[int] = None
    level: int = 1
    health: int = settings.ARMY_MAX_HEALTH
    experience: int = 0
    movement_points: int = settings.ARMY_MOVEMENT_POINTS
    max_movement_points: int = settings.ARMY_MOVEMENT_POINTS
    orders: Optional[Order] = None
    target: Optional[ArmyTarget] = None
    victories: int = 0
    defeats: int = 0
    battles_participated: int = 0
    created_turn: int = 0

    @property
    def position(self) -> Coordinate:
        return (self.x, self.y)

    @property
    def inner_position(self) -> Optional[Coordinate]:
        if self.inner_x is None or self.inner_y is None:
            return None
        return (self.inner_x, self.inner_y)

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------
    def set_position(self, x: int, y: int, size: int = 10) -> None:
        cx, cy = max(0, min(size - 1, int(x))), max(0, min(size - 1, int(y)))
        if (cx, cy) != (x, y):
            logger.warning("Army %d position (%r, %r) out of bounds, clamped to (%d, %d)", self.id, x, y, cx, cy)
        self.x, self.y = cx, cy

    def set_inner_position(self, ix: Optional[int], iy: Optional[int], size: int = 10) -> None:
        """Set the micro cell slot fields; pass None to clear them."""
        if ix is None or iy is None:
            self.inner_x = self.inner_y = None
            return
        cx, cy = max(0, min(size - 1, int(ix))), max(0, min(size - 1, int(iy)))
        if (cx, cy) != (ix, iy):
            logger.warning("Army %d inner position (%r, %r) out of bounds, clamped", self.id, ix, iy)
        self.inner_x, self.inner_y = cx, cy

    def set_level(self, level: int) -> None:
        clamped = max(settings.ARMY_MIN_LEVEL, min(settings.ARMY_MAX_LEVEL, int(level)))
        if clamped != level:
            logger.warning("Invalid army level %r, clamped to %d", level, clamped)
        self.level = clamped

    def gain_experience(self, amount: int) -> bool:
        """Add experience; returns True when the army levelled up."""
        self.experience += amount
        new_level = min(
            settings.ARMY_MAX_LEVEL,
            self.experience // settings.EXPERIENCE_PER_LEVEL + 1,
        )
        if new_level > self.level:
            self.set_level(new_level)
            return True
        return False

    @property
    def combat_power(self) -> int:
        power = self.level * (self.health / settings.ARMY_MAX_HEALTH)
        power += (self.experience // 50) * 0.5
        return max(1, math.floor(power))

    @property
    def is_veteran(self) -> bool:
        return (
            self.experience >= settings.VETERAN_EXPERIENCE
            or self.level >= settings.VETERAN_LEVEL
        )

    def take_damage(self, damage: int) -> bool:
        """Reduce health; returns True when the army is destroyed."""
        self.health = max(0, self.health - damage)
        return self.health <= 0

    def heal(self, amount: int) -> None:
        self.health = min(settings.ARMY_MAX_HEALTH, self.health + amount)

    @property
    def status(self) -> str:
        if self.health <= 25:
            return "wounded"
        if self.health <= 50:
            return "damaged"
        if self.movement_points <= 0:
            return "exhausted"
        if self.is_veteran:
            return "veteran"
        return "ready"

    # ------------------------------------------------------------------
    # Movement
    # ------------------------------------------------------------------
    def reset_movement_points(self) -> None:
        self.movement_points = self.max_movement_points

    def use_movement_points(self, points: int) -> None:
        self.movement_points = max(0, self.movement_points - points)

    def can_move(self) -> bool:
        return self.movement_points > 0 and self.health > 0

    def distance_to(self, x: int, y: int) -> float:
        return math.sqrt((self.x - x) ** 2 + (self.y - y) ** 2)

    def set_target(self, x: int, y: int, order: Order = Order.MOVE) -> None:
        self.target = ArmyTarget(x, y, order)
        self.orders = order

    def clear_target(self) -> None:
        self.target = None
        self.orders = None

    # ------------------------------------------------------------------
    # Battle bookkeeping
    # ------------------------------------------------------------------
    def record_battle(self, won: bool, experience: int = 0) -> None:
        self.battles_participated += 1
        if won:
            self.victories += 1
        else:
            self.defeats += 1
        self.gain_experience(experience)

    @property
    def win_rate(self) -> float:
        if not self.battles_participated:
            return 0.0
        return self.victories / self.battles_participated

    @property
    def upkeep_cost(self) -> int:
        return settings.ARMY_UPKEEP

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "nation_id": self.faction_id,
            "x": self.x,
            "y": self.y,
            "inner_x": self.inner_x,
            "inner_y": self.inner_y,
            "level": self.level,
            "health": self.health,
            "experience": self.experience,
            "movement_points": self.movement_points,
            "orders": self.orders.value if self.orders else None,
            "target": (
                {"x": self.target.x, "y": self.target.y, "type": self.target.order.value}
                if self.target
                else None
            ),
            "victories": self.victories,
            "defeats": self.defeats,
            "battles_participated": self.battles_participated,
            "created_turn": self.created_turn,
        }

    @staticmethod
    def creation_cost(level: int) -> ResourceDict:
        multiplier = max(1, level)
        return {res: amt * multiplier for res, amt in settings.ARMY_BASE_COST.items()}

    def __repr__(self) -> str:
        return (
            f"<Army #{self.id} faction={self.faction_id} at {self.position}"
            f"/{self.inner_position} lvl={self.level} hp={self.health}>"
        )


@dataclass
class Faction:
    """Core data model representing a faction (nation) in the game."""

    id: int
    name: str
    symbol: str = ""
    color: str = "#002200"
    resources: ResourceDict = field(default_factory=empty_stock)
    territory: List[Coordinate] = field(default_factory=list)
    armies: List[Army] = field(default_factory=list)
    diplomacy: Dict[int, Relation] = field(default_factory=dict)
    trade_offers: List[TradeOffer] = field(default_factory=list)
    battles: List["BattleRecord"] = field(default_factory=list)
    capital: Optional[Coordinate] = None
    total_territory: int = 0
    total_armies: int = 0
    total_population: int = 0

    # ------------------------------------------------------------------
    # Territory
    # ------------------------------------------------------------------
    def has_territory(self, coord: Coordinate) -> bool:
        return tuple(coord) in self.territory

    def add_territory(self, coord: Coordinate) -> bool:
        coord = (coord[0], coord[1])
        if coord in self.territory:
            return False
        self.territory.append(coord)
        return True

    def remove_territory(self, coord: Coordinate) -> bool:
        coord = (coord[0], coord[1])
        if coord not in self.territory:
            return False
        self.territory.remove(coord)
        return True

    @property
    def is_eliminated(self) -> bool:
        return not self.territory

    # ------------------------------------------------------------------
    # Armies
    # ------------------------------------------------------------------
    def add_army(self, army: Army) -> None:
        if army not in self.armies:
            self.armies.append(army)

    def remove_army(self, army: Army) -> bool:
        for i, existing in enumerate(self.armies):
            if existing is army:
                del self.armies[i]
                return True
        return False

    # ------------------------------------------------------------------
    # Wallet
    # ------------------------------------------------------------------
    def add_resources(self, amounts: ResourceDict) -> None:
        for res, amount in amounts.items():
            self.resources[res] = max(0, self.resources.get(res, 0) + amount)

    def can_afford(self, cost: ResourceDict) -> bool:
        return all(self.resources.get(res, 0) >= amt for res, amt in cost.items())

    def spend_resources(self, cost: ResourceDict) -> bool:
        """Deduct ``cost`` entirely or not at all."""
        if not self.can_afford(cost):
            return False
        for res, amt in cost.items():
            self.resources[res] -= amt
        return True

    @property
    def total_resources(self) -> int:
        return sum(self.resources.get(res, 0) for res in RESOURCE_ORDER)

    # ------------------------------------------------------------------
    # Diplomacy
    # ------------------------------------------------------------------
    def relation_with(self, other_id: int) -> Relation:
        return self.diplomacy.get(other_id, Relation.NEUTRAL)

    def set_relation(self, other_id: int, relation: Relation) -> None:
        self.diplomacy[other_id] = relation

    def is_at_war_with(self, other_id: int) -> bool:
        return self.relation_with(other_id) is Relation.WAR

    def add_trade_offer(self, offer: TradeOffer) -> None:
        self.trade_offers.append(offer)

    def remove_trade_offer(self, offer: TradeOffer) -> None:
        self.trade_offers = [o for o in self.trade_offers if o is not offer]

    def expired_trade_offers(self, current_turn: int, max_age: Optional[int] = None) -> List[TradeOffer]:
        if max_age is None:
            max_age = settings.TRADE_OFFER_MAX_AGE
        return [o for o in self.trade_offers if o.is_expired(current_turn, max_age)]

    def cleanup_expired_trade_offers(self, current_turn: int, max_age: Optional[int] = None) -> int:
        """Drop offers older than ``max_age`` turns; returns how many were dropped."""
        expired = self.expired_trade_offers(current_turn, max_age)
        if expired:
            self.trade_offers = [o for o in self.trade_offers if o not in expired]
        return len(expired)

    # ------------------------------------------------------------------
    # History and statistics
    # ------------------------------------------------------------------
    def add_battle(self, record: "BattleRecord") -> None:
        """Append ``record``, dropping the oldest beyond ``BATTLE_HISTORY_LIMIT``."""
        self.battles.append(record)
        if len(self.battles) > settings.BATTLE_HISTORY_LIMIT:
            del self.battles[: len(self.battles) - settings.BATTLE_HISTORY_LIMIT]

    def recent_battles(self, count: int = settings.RECENT_BATTLES) -> List["BattleRecord"]:
        if count <= 0:
            return []
        return list(reversed(self.battles[-count:]))

    def update_statistics(self, grid: "Grid") -> None:
        self.total_territory = len(self.territory)
        self.total_armies = len(self.armies)
        population = 0
        for cell in grid.iter_cells(self.territory):
            population += cell.population
            for _, _, micro in cell.iter_micro():
                population += micro.population
        self.total_population = population

    @property
    def strength_rating(self) -> int:
        strength = self.total_territory * 10
        strength += self.total_armies * 20
        strength += self.total_population * 0.01
        strength += self.total_resources * 0.1
        return math.floor(strength)

    def summary(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "symbol": self.symbol,
            "territory": len(self.territory),
            "armies": len(self.armies),
            "population": self.total_population,
            "resources": {r.value: self.resources.get(r, 0) for r in RESOURCE_ORDER},
            "eliminated": self.is_eliminated,
            "strength": self.strength_rating,
        }

    def to_json(self, battles: int = settings.EXPORT_BATTLES) -> Dict[str, Any]:
        """Serializable state; only the newest ``battles`` records are kept."""
        return {
            "id": self.id,
            "name": self.name,
            "symbol": self.symbol,
            "color": self.color,
            "resources": {r.value: self.resources.get(r, 0) for r in RESOURCE_ORDER},
            "territory": [list(c) for c in self.territory],
            "capital": list(self.capital) if self.capital else None,
            "diplomacy": {str(k): v.value for k, v in sorted(self.diplomacy.items())},
            "trade_offers": [o.to_json() for o in self.trade_offers],
            "armies": [a.to_json() for a in self.armies],
            "battles": [b.to_json() for b in self.battles[-battles:]] if battles > 0 else [],
            "statistics": {
                "territory": self.total_territory,
                "armies": self.total_armies,
                "population": self.total_population,
                "strength": self.strength_rating,
            },
        }

    def __repr__(self) -> str:
        return f"<Faction {self.id} {self.name!r} territory={len(self.territory)} armies={len(self.armies)}>"


__all__ = ["Army", "ArmyTarget", "Faction", "Order", "ResourceDict"]
