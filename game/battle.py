from __future__ import annotations

"""
Combat resolution.

Each call to :meth:`BattleManager.initiate_battle` is a complete fight
between one attacking army and every army of the defending owner standing
inside the target macro cell. Ties go to the defender.
"""

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple, TYPE_CHECKING

from world.cells import Coordinate, Development, MacroCell, TerrainType
from world.random_source import SeededRandom
from . import settings
from .territory import (
    armies_in_cell,
    disband_army,
    faction_by_id,
    relocate_army,
    transfer_territory,
)

if TYPE_CHECKING:
    from world.grid import Grid
    from .models import Army, Faction

logger = logging.getLogger("sandbox.BattleManager")
logger.addHandler(logging.NullHandler())

BattleKey = Tuple[int, Coordinate, str, str]

# Creation order of battle records, used to order battles within a turn
_battle_sequence = itertools.count(1)


@dataclass
class Casualty:
    nation: str
    army_level: int
    type: str  # "destroyed" or "damaged"
    damage: Optional[int] = None

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "nation": self.nation,
            "army_level": self.army_level,
            "type": self.type,
        }
        if self.damage is not None:
            data["damage"] = self.damage
        return data


@dataclass
class BattleRecord:
    """Outcome of one battle, stored on both participants' histories."""

    turn: int
    attacker: str
    defender: str
    location: Coordinate
    attack_power: int
    defense_power: int
    attack_roll: int
    defense_roll: int
    winner: str = ""
    casualties: List[Casualty] = field(default_factory=list)
    experience_gained: int = 0
    seq: int = field(default_factory=lambda: next(_battle_sequence), compare=False, repr=False)

    @property
    def key(self) -> BattleKey:
        return (self.turn, self.location, self.attacker, self.defender)

    @property
    def attacker_won(self) -> bool:
        return self.winner == self.attacker

    def to_json(self) -> Dict[str, Any]:
        return {
            "turn": self.turn,
            "attacker": self.attacker,
            "defender": self.defender,
            "location": list(self.location),
            "attack_power": self.attack_power,
            "defense_power": self.defense_power,
            "attack_roll": self.attack_roll,
            "defense_roll": self.defense_roll,
            "winner": self.winner,
            "casualties": [c.to_json() for c in self.casualties],
            "experience_gained": self.experience_gained,
        }

    def log_message(self) -> str:
        lines = [
            f"{self.attacker} attacks {self.defender} at ({self.location[0]}, {self.location[1]})",
            f"Attack: {self.attack_power} ({self.attack_power - self.attack_roll} + {self.attack_roll} roll)",
            f"Defense: {self.defense_power} ({self.defense_power - self.defense_roll} + {self.defense_roll} roll)",
            f"Winner: {self.winner}",
        ]
        if self.casualties:
            lines.append(f"Casualties: {len(self.casualties)} units")
        if self.experience_gained > 0:
            lines.append(f"Experience: +{self.experience_gained}")
        return "\n".join(lines)


def dedupe_battles(battles: Iterable[BattleRecord]) -> List[BattleRecord]:
    """Drop repeated records of the same battle, keeping the first seen."""
    seen = set()
    unique: List[BattleRecord] = []
    for battle in battles:
        if battle.key in seen:
            continue
        seen.add(battle.key)
        unique.append(battle)
    return unique


class BattleManager:
    """
    Resolves battles and keeps the newest ``limit`` records.

    Totals count every battle fought, including records already dropped
    from the history.
    """

    def __init__(self, random: SeededRandom, limit: Optional[int] = None):
        self.random = random
        self.limit = limit if limit is not None else settings.BATTLE_HISTORY_LIMIT
        self.battles: List[BattleRecord] = []
        self.total_battles = 0
        self.total_casualties = 0
        self._power_total = 0

    # ------------------------------------------------------------------
    # Power calculation
    # ------------------------------------------------------------------
    def attack_power(self, army: "Army") -> int:
        power = army.combat_power
        if army.is_veteran:
            power += settings.VETERAN_BONUS
        return power

    def defense_power(self, armies: List["Army"], cell: MacroCell) -> int:
        power = sum(a.combat_power for a in armies)
        if cell.development is Development.CASTLE:
            power += settings.CASTLE_DEFENSE_BONUS
        for _, _, micro in cell.iter_micro():
            if micro.development is Development.CASTLE:
                power += settings.CASTLE_DEFENSE_BONUS
        if cell.terrain is TerrainType.MOUNTAIN:
            power += settings.MOUNTAIN_DEFENSE_BONUS
        return max(1, power)

    def roll_dice(self, sides: int = settings.DICE_SIDES) -> int:
        return self.random.random_int(1, sides)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------
    def initiate_battle(
        self,
        attacker: "Army",
        target: Coordinate,
        grid: "Grid",
        factions: List["Faction"],
        turn: int = 0,
    ) -> Optional[BattleRecord]:
        """
        Resolve an attack by ``attacker`` on macro cell ``target``.

        Returns the battle record, or None when the target has no owner to
        fight (nothing is rolled in that case).
        """
        cell = grid.get(*target)
        attacking = faction_by_id(factions, attacker.faction_id)
        defending = faction_by_id(factions, cell.owner) if cell is not None else None
        if cell is None or attacking is None or defending is None or defending is attacking:
            return None

        defenders = armies_in_cell(grid, cell.coord, defending.id)
        base_attack = self.attack_power(attacker)
        base_defense = self.defense_power(defenders, cell)
        attack_roll = self.roll_dice()
        defense_roll = self.roll_dice()

        battle = BattleRecord(
            turn=turn,
            attacker=attacking.name,
            defender=defending.name,
            location=cell.coord,
            attack_power=base_attack + attack_roll,
            defense_power=base_defense + defense_roll,
            attack_roll=attack_roll,
            defense_roll=defense_roll,
        )

        if battle.attack_power > battle.defense_power:
            self._attacker_victory(battle, attacker, defenders, cell, grid, factions)
        else:
            self._defender_victory(battle, attacker, defenders, grid, factions)

        self._record(battle)
        attacking.add_battle(battle)
        defending.add_battle(battle)
        logger.debug("Battle at %s: %s", cell.coord, battle.winner)
        return battle

    def _attacker_victory(
        self,
        battle: BattleRecord,
        attacker: "Army",
        defenders: List["Army"],
        cell: MacroCell,
        grid: "Grid",
        factions: List["Faction"],
    ) -> None:
        battle.winner = battle.attacker
        for army in defenders:
            self._remove_army(army, grid, factions)
            battle.casualties.append(Casualty(battle.defender, army.level, "destroyed"))

        attacking = faction_by_id(factions, attacker.faction_id)
        transfer_territory(grid, factions, cell.coord, attacking)
        relocate_army(grid, attacker, cell.coord)

        gained = (
            settings.CONQUEST_BASE_EXPERIENCE
            + settings.CONQUEST_EXPERIENCE_PER_KILL * len(defenders)
        )
        battle.experience_gained = gained
        attacker.record_battle(True, gained)

    def _defender_victory(
        self,
        battle: BattleRecord,
        attacker: "Army",
        defenders: List["Army"],
        grid: "Grid",
        factions: List["Faction"],
    ) -> None:
        battle.winner = battle.defender
        gap = battle.defense_power - battle.attack_power
        if gap > settings.ROUT_THRESHOLD or self.random.probability(settings.ROUT_CHANCE):
            self._remove_army(attacker, grid, factions)
            battle.casualties.append(Casualty(battle.attacker, attacker.level, "destroyed"))
        else:
            damage = min(settings.MAX_REPULSE_DAMAGE, gap * settings.DAMAGE_PER_POWER_GAP)
            if attacker.take_damage(damage):
                self._remove_army(attacker, grid, factions)
            battle.casualties.append(Casualty(battle.attacker, attacker.level, "damaged", damage))

        battle.experience_gained = settings.DEFENDER_EXPERIENCE
        for army in defenders:
            army.record_battle(True, settings.DEFENDER_EXPERIENCE)
        attacker.record_battle(False, settings.FAILED_ATTACK_EXPERIENCE)

    def _record(self, battle: BattleRecord) -> None:
        self.total_battles += 1
        self._power_total += battle.attack_power + battle.defense_power
        self.battles.append(battle)
        if len(self.battles) > self.limit:
            del self.battles[: len(self.battles) - self.limit]

    def _remove_army(self, army: "Army", grid: "Grid", factions: List["Faction"]) -> None:
        disband_army(grid, faction_by_id(factions, army.faction_id), army)
        self.total_casualties += 1

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def recent_battles(self, count: int = settings.RECENT_BATTLES) -> List[BattleRecord]:
        if count <= 0:
            return []
        return list(reversed(self.battles[-count:]))

    def battle_stats(self) -> Dict[str, float]:
        average = 0.0
        if self.total_battles:
            average = self._power_total / (self.total_battles * 2)
        return {
            "total_battles": self.total_battles,
            "total_casualties": self.total_casualties,
            "average_battle_power": average,
        }


__all__ = ["BattleKey", "BattleManager", "BattleRecord", "Casualty", "dedupe_battles"]
