from __future__ import annotations

"""
Data model for the two grid levels: macro cells of the world map and the
micro cells of each macro cell's inner grid.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from .resource_types import ResourceType, empty_stock

if TYPE_CHECKING:
    from game.models import Army

Coordinate = Tuple[int, int]


class TerrainType(Enum):
    LAND = "land"
    OCEAN = "ocean"
    MOUNTAIN = "mountain"
    RIVER = "river"


class Development(Enum):
    NONE = "none"
    FARM = "farm"
    MINE = "mine"
    FOREST = "forest"
    TOWN = "town"
    CITY = "city"
    CASTLE = "castle"


# Developments that count as a settlement for spawning and growth
SETTLEMENTS = (Development.TOWN, Development.CITY)
# Developments that add a flat resource bonus
PRODUCTION_DEVELOPMENTS = (Development.FARM, Development.MINE, Development.FOREST)

MIN_SETTLEMENT_LEVEL = 1
MAX_SETTLEMENT_LEVEL = 10


@dataclass
class MicroCell:
    """
    One tile of a macro cell's inner grid.

    Attributes:
      terrain: Terrain of this tile.
      resource: Optional single resource tag.
      development: Improvement built on the tile.
      population: Inhabitants, only meaningful for towns and cities.
      road: Whether a road crosses the tile.
      level: Settlement level 1..10.
      army: The army standing here, if any. At most one per tile.
    """

    terrain: TerrainType = TerrainType.LAND
    resource: Optional[ResourceType] = None
    development: Development = Development.NONE
    population: int = 0
    road: bool = False
    level: int = MIN_SETTLEMENT_LEVEL
    army: Optional["Army"] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if not isinstance(self.terrain, TerrainType):
            raise TypeError(f"terrain must be a TerrainType, not {type(self.terrain)}")
        if not isinstance(self.development, Development):
            raise TypeError(f"development must be a Development, not {type(self.development)}")
        if self.population < 0:
            raise ValueError("population cannot be negative.")

    @property
    def is_settlement(self) -> bool:
        return self.development in SETTLEMENTS

    @property
    def occupied(self) -> bool:
        return self.army is not None

    def to_json(self) -> Dict[str, Any]:
        return {
            "terrain": self.terrain.value,
            "resource": self.resource.value if self.resource else None,
            "development": self.development.value,
            "population": self.population,
            "road": self.road,
            "level": self.level,
            "army": self.army.id if self.army is not None else None,
        }


@dataclass
class MacroCell:
    """
    One tile of the outer world grid.

    Core Attributes:
      coord: (x, y) position on the world map.
      owner: Id of the owning faction or None when unclaimed.
      terrain: Terrain of the whole tile.
      resources: Raw stock per resource type, collected every turn.
      development: Improvement of the tile as a whole.
      population: Inhabitants of the tile.
      level: Settlement level for towns and cities.
      inner: The inner grid, indexed ``inner[y][x]``.
    """

    coord: Coordinate
    owner: Optional[int] = None
    terrain: TerrainType = TerrainType.LAND
    resources: Dict[ResourceType, int] = field(default_factory=empty_stock)
    development: Development = Development.NONE
    population: int = 0
    level: int = MIN_SETTLEMENT_LEVEL
    inner: List[List[MicroCell]] = field(default_factory=list, repr=False)

    def __post_init__(self):
        if type(self.resources) is not dict:
            raise TypeError("`resources` must be a plain dict, not shared or a subclass.")
        if not isinstance(self.terrain, TerrainType):
            raise TypeError(f"terrain must be a TerrainType, not {type(self.terrain)}")
        for res, amount in self.resources.items():
            if amount < 0:
                raise ValueError(f"{res.value} stock cannot be negative.")

    def micro(self, ix: int, iy: int) -> Optional[MicroCell]:
        if 0 <= iy < len(self.inner) and 0 <= ix < len(self.inner[iy]):
            return self.inner[iy][ix]
        return None

    def iter_micro(self):
        """Yield ``(ix, iy, micro)`` for every inner tile, row by row."""
        for iy, row in enumerate(self.inner):
            for ix, micro in enumerate(row):
                yield ix, iy, micro

    @property
    def is_settlement(self) -> bool:
        return self.development in SETTLEMENTS

    @property
    def passable(self) -> bool:
        return self.terrain not in (TerrainType.OCEAN, TerrainType.MOUNTAIN)

    def to_json(self) -> Dict[str, Any]:
        return {
            "coord": list(self.coord),
            "owner": self.owner,
            "terrain": self.terrain.value,
            "resources": {r.value: amt for r, amt in self.resources.items()},
            "development": self.development.value,
            "population": self.population,
            "level": self.level,
            "inner": [[m.to_json() for m in row] for row in self.inner],
        }

    def __repr__(self) -> str:
        return (
            f"<MacroCell {self.coord} terrain={self.terrain.value} owner={self.owner} "
            f"development={self.development.value} population={self.population}>"
        )


__all__ = [
    "Coordinate",
    "TerrainType",
    "Development",
    "SETTLEMENTS",
    "PRODUCTION_DEVELOPMENTS",
    "MIN_SETTLEMENT_LEVEL",
    "MAX_SETTLEMENT_LEVEL",
    "MicroCell",
    "MacroCell",
]
