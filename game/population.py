from __future__ import annotations

"""Settlement growth applied once per turn in the global pass."""

import math
from typing import Iterable, TYPE_CHECKING, Union

from world.cells import MacroCell, MicroCell
from world.resource_types import ResourceType
from . import settings
from .territory import faction_by_id

if TYPE_CHECKING:
    from world.grid import Grid
    from .models import Faction

Settlement = Union[MacroCell, MicroCell]


def grow_settlement(cell: Settlement, faction: "Faction") -> int:
    """
    Grow a town or city if its faction has food to spare.

    Growth is paid for with food from the faction's wallet. Returns the
    number of new inhabitants.
    """
    rate = settings.GROWTH_RATE.get(cell.development)
    if rate is None:
        return 0
    if faction.resources.get(ResourceType.FOOD, 0) <= settings.FOOD_GROWTH_MINIMUM:
        return 0
    growth = math.floor(cell.population * rate)
    if growth <= 0:
        return 0
    cell.population += growth
    faction.add_resources({ResourceType.FOOD: -growth})

    threshold = settings.LEVEL_UP_POPULATION[cell.development]
    if cell.population >= threshold and cell.level < settings.LEVEL_CAP[cell.development]:
        cell.level += 1
    return growth


def process_population_growth(grid: "Grid", factions: Iterable["Faction"]) -> int:
    """Grow every owned settlement on the map; returns total growth."""
    factions = list(factions)
    total = 0
    for cell in grid.cells():
        faction = faction_by_id(factions, cell.owner)
        if faction is None:
            continue
        if cell.is_settlement:
            total += grow_settlement(cell, faction)
        for _, _, micro in cell.iter_micro():
            if micro.is_settlement:
                total += grow_settlement(micro, faction)
    return total


__all__ = ["grow_settlement", "process_population_growth"]
