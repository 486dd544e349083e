# Resource management utilities
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, TYPE_CHECKING

from world.cells import Development, MacroCell, TerrainType
from world.grid import Grid
from world.resource_types import ResourceType, empty_stock
from . import settings

if TYPE_CHECKING:
    from .models import Faction


@dataclass
class ResourceManager:
    """Computes per-turn income and upkeep for factions from the map."""

    grid: Grid

    def collect_resources(self, faction: "Faction") -> Dict[ResourceType, int]:
        """
        Credit a faction with one turn of income from all of its territory.

        Everything is summed into a single total which is added to the wallet
        once. Returns the collected amounts.
        """
        collected = empty_stock()
        for cell in self.grid.iter_cells(faction.territory):
            self._collect_from_cell(cell, collected)
            self._collect_from_inner_grid(cell, collected)
        faction.add_resources(collected)
        return collected

    def _collect_from_cell(self, cell: MacroCell, collected: Dict[ResourceType, int]) -> None:
        for res_type, amount in cell.resources.items():
            collected[res_type] += amount

        if cell.development is Development.FARM:
            collected[ResourceType.FOOD] += settings.FARM_FOOD_BONUS
        elif cell.development is Development.MINE:
            collected[ResourceType.METAL] += settings.MINE_METAL_BONUS
        elif cell.development is Development.FOREST:
            collected[ResourceType.WOOD] += settings.FOREST_WOOD_BONUS

    def _collect_from_inner_grid(self, cell: MacroCell, collected: Dict[ResourceType, int]) -> None:
        bonus = settings.INNER_DEVELOPMENT_BONUS
        for _, _, micro in cell.iter_micro():
            if micro.resource is not None:
                collected[micro.resource] += settings.INNER_RESOURCE_UNIT

            dev = micro.development
            if dev is Development.FARM:
                collected[ResourceType.FOOD] += bonus
            elif dev is Development.MINE:
                if micro.terrain is TerrainType.MOUNTAIN:
                    collected[ResourceType.METAL] += bonus * settings.MOUNTAIN_MINE_MULTIPLIER
                else:
                    collected[ResourceType.METAL] += bonus
            elif dev is Development.FOREST:
                collected[ResourceType.WOOD] += bonus
            elif dev in settings.GOLD_PER_POP:
                collected[ResourceType.GOLD] += micro.population // settings.GOLD_PER_POP[dev]

    def upkeep_cost(self, faction: "Faction") -> int:
        return (
            sum(army.upkeep_cost for army in faction.armies)
            + len(faction.territory) * settings.TERRITORY_UPKEEP
        )

    def pay_upkeep(self, faction: "Faction") -> int:
        """Charge army and territory upkeep in gold, never going below zero."""
        total = self.upkeep_cost(faction)
        faction.add_resources({ResourceType.GOLD: -total})
        return total

    def process_turn(self, faction: "Faction") -> Dict[ResourceType, int]:
        collected = self.collect_resources(faction)
        self.pay_upkeep(faction)
        return collected


__all__ = ["ResourceManager"]
