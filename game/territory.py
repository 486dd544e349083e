from __future__ import annotations

"""
Territory and army occupancy bookkeeping.

Ownership is recorded twice, on the macro cell (``owner``) and in the
faction's ``territory`` list, and army occupancy is recorded on both the
army (inner coordinates) and the micro cell (``army``). Every mutation of
either goes through this module so the two copies never drift apart.
"""

import logging
from typing import Iterable, List, Optional, TYPE_CHECKING

from world.cells import Coordinate

if TYPE_CHECKING:
    from world.grid import Grid
    from .models import Army, Faction

logger = logging.getLogger("sandbox.Territory")
logger.addHandler(logging.NullHandler())


def faction_by_id(factions: Iterable["Faction"], faction_id: Optional[int]) -> Optional["Faction"]:
    if faction_id is None:
        return None
    for faction in factions:
        if faction.id == faction_id:
            return faction
    return None


# ----------------------------------------------------------------------------
# Territory
# ----------------------------------------------------------------------------
def claim_territory(
    grid: "Grid", factions: Iterable["Faction"], faction: "Faction", coord: Coordinate
) -> bool:
    """
    Make ``faction`` the owner of the macro cell at ``coord``.

    A previous owner loses the cell from its territory. Returns False when the
    coordinate is off the map.
    """
    cell = grid.get(*coord)
    if cell is None:
        logger.warning("Cannot claim %s: outside the map", coord)
        return False
    previous = faction_by_id(factions, cell.owner)
    if previous is not None and previous is not faction:
        previous.remove_territory(cell.coord)
    cell.owner = faction.id
    faction.add_territory(cell.coord)
    return True


def release_territory(grid: "Grid", faction: "Faction", coord: Coordinate) -> None:
    """Drop ``coord`` from ``faction`` and clear the cell's owner if it was theirs."""
    faction.remove_territory(coord)
    cell = grid.get(*coord)
    if cell is not None and cell.owner == faction.id:
        cell.owner = None


def release_all_territory(grid: "Grid", faction: "Faction") -> int:
    released = 0
    for coord in list(faction.territory):
        release_territory(grid, faction, coord)
        released += 1
    # Catch cells that still name the faction without a territory entry
    for coord in grid.owned_by(faction.id):
        grid[coord].owner = None
    return released


def transfer_territory(
    grid: "Grid", factions: Iterable["Faction"], coord: Coordinate, new_owner: "Faction"
) -> Optional["Faction"]:
    """Hand ``coord`` to ``new_owner``; returns the faction that lost it, if any."""
    cell = grid.get(*coord)
    if cell is None:
        return None
    previous = faction_by_id(factions, cell.owner)
    claim_territory(grid, factions, new_owner, coord)
    return previous if previous is not new_owner else None


# ----------------------------------------------------------------------------
# Army occupancy
# ----------------------------------------------------------------------------
def unstation_army(grid: "Grid", army: "Army") -> None:
    """Clear the army's current micro cell slot and its inner position."""
    pos = army.inner_position
    if pos is not None:
        micro = grid.micro(army.x, army.y, *pos)
        if micro is not None and micro.army is army:
            micro.army = None
    army.inner_x = None
    army.inner_y = None


def station_army(grid: "Grid", army: "Army", ix: int, iy: int) -> bool:
    """Put ``army`` into micro cell ``(ix, iy)`` of its current macro cell."""
    micro = grid.micro(army.x, army.y, ix, iy)
    if micro is None:
        logger.warning("Cannot station army #%d at %s/%s: outside the map", army.id, army.position, (ix, iy))
        return False
    if micro.army is not None and micro.army is not army:
        return False
    unstation_army(grid, army)
    micro.army = army
    army.inner_x = ix
    army.inner_y = iy
    return True


def relocate_army(
    grid: "Grid",
    army: "Army",
    coord: Coordinate,
    inner: Optional[Coordinate] = None,
) -> bool:
    """
    Move ``army`` to macro cell ``coord``.

    The old micro cell slot is cleared first. The army is then stationed at
    ``inner`` if given and free, otherwise at the first free standable micro
    cell, otherwise it is left without an inner position.
    """
    if grid.get(*coord) is None:
        return False
    unstation_army(grid, army)
    army.x, army.y = coord
    if inner is not None and station_army(grid, army, *inner):
        return True
    free = grid.free_micro(*coord)
    if free is not None:
        station_army(grid, army, *free)
    return True


def disband_army(grid: "Grid", faction: Optional["Faction"], army: "Army") -> None:
    """Remove ``army`` from the map and from its faction."""
    unstation_army(grid, army)
    army.health = 0
    if faction is not None:
        faction.remove_army(army)


def armies_in_cell(grid: "Grid", coord: Coordinate, faction_id: Optional[int] = None) -> List["Army"]:
    """Armies standing in the inner grid of ``coord``, optionally of one faction."""
    cell = grid.get(*coord)
    if cell is None:
        return []
    found = []
    for _, _, micro in cell.iter_micro():
        army = micro.army
        if army is not None and (faction_id is None or army.faction_id == faction_id):
            found.append(army)
    return found


# ----------------------------------------------------------------------------
# Consistency check
# ----------------------------------------------------------------------------
def audit(grid: "Grid", factions: Iterable["Faction"]) -> List[str]:
    """Return a description of every ownership or occupancy mismatch found."""
    problems: List[str] = []
    factions = list(factions)
    for faction in factions:
        owned = set(grid.owned_by(faction.id))
        claimed = set(faction.territory)
        if len(claimed) != len(faction.territory):
            problems.append(f"{faction.name} lists duplicate territory")
        for coord in sorted(owned - claimed):
            problems.append(f"{coord} owned by {faction.name} but not in its territory")
        for coord in sorted(claimed - owned):
            problems.append(f"{coord} in {faction.name} territory but owned by {grid[coord].owner}")
        for army in faction.armies:
            if army.faction_id != faction.id:
                problems.append(f"army #{army.id} listed by {faction.name} belongs to {army.faction_id}")
            pos = army.inner_position
            if pos is None:
                continue
            micro = grid.micro(army.x, army.y, *pos)
            if micro is None or micro.army is not army:
                problems.append(f"army #{army.id} not found in its micro cell {army.position}/{pos}")

    listed = {id(a) for f in factions for a in f.armies}
    for macro, ix, iy, micro in grid.micro_cells():
        army = micro.army
        if army is None:
            continue
        if id(army) not in listed:
            problems.append(f"orphan army #{army.id} at {macro.coord}/{(ix, iy)}")
        elif army.position != macro.coord or army.inner_position != (ix, iy):
            problems.append(f"army #{army.id} also occupies {macro.coord}/{(ix, iy)}")
    return problems


__all__ = [
    "armies_in_cell",
    "audit",
    "claim_territory",
    "disband_army",
    "faction_by_id",
    "relocate_army",
    "release_all_territory",
    "release_territory",
    "station_army",
    "transfer_territory",
    "unstation_army",
]
