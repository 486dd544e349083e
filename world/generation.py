from __future__ import annotations

"""
Procedural map generation.

The generator consumes only the shared :class:`SeededRandom`, so the same seed
always produces the same map. Steps run in a fixed order:

1. every macro cell starts as land with a lightly varied inner grid
2. square ocean regions are stamped onto the map
3. single mountain cells are raised on remaining land
4. rivers are traced from inland cells to the nearest ocean
5. base resources are distributed by terrain

Feature placement uses bounded retries and simply gives up when a crowded map
leaves no room.
"""

import logging
from typing import List, Optional

from .cells import Coordinate, MacroCell, MicroCell, TerrainType
from .grid import Grid, euclidean_distance
from .random_source import SeededRandom
from .resource_types import ResourceType
from .resources import generate_resources, random_resource
from .settings import WorldSettings

logger = logging.getLogger("sandbox.MapGenerator")
logger.addHandler(logging.NullHandler())

InnerGrid = List[List[MicroCell]]


class MapGenerator:
    def __init__(self, random: SeededRandom, settings: Optional[WorldSettings] = None):
        self.random = random
        self.settings = settings or WorldSettings()

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------
    def generate_map(self) -> Grid:
        """Build and return a fully populated :class:`Grid`."""
        grid = self.initialize_map()
        placed = self.generate_ocean_regions(grid)
        mountains = self.generate_mountains(grid)
        rivers = self.generate_rivers(grid)
        self.distribute_resources(grid)
        logger.debug(
            "Generated map: %d ocean regions, %d mountains, %d rivers",
            len(placed),
            mountains,
            rivers,
        )
        return grid

    def initialize_map(self) -> Grid:
        s = self.settings
        grid = Grid(s.map_size, s.inner_size)
        for cell in grid.cells():
            cell.terrain = TerrainType.LAND
            cell.inner = self.land_inner_grid(TerrainType.LAND)
        return grid

    # ------------------------------------------------------------------
    # Inner grids
    # ------------------------------------------------------------------
    def _inner_terrain(self, main: TerrainType) -> TerrainType:
        roll = self.random.random()
        if roll < self.settings.inner_mountain_chance:
            return TerrainType.MOUNTAIN
        if roll < self.settings.inner_mountain_chance + self.settings.inner_river_chance:
            return TerrainType.RIVER
        return main

    def land_inner_grid(self, main: TerrainType = TerrainType.LAND) -> InnerGrid:
        """Mostly ``main`` terrain with small mountain and river patches."""
        n = self.settings.inner_size
        inner: InnerGrid = []
        for _ in range(n):
            row = []
            for _ in range(n):
                terrain = self._inner_terrain(main)
                resource = (
                    random_resource(self.random)
                    if self.random.probability(self.settings.inner_resource_chance)
                    else None
                )
                row.append(MicroCell(terrain=terrain, resource=resource))
            inner.append(row)
        return inner

    def ocean_inner_grid(self) -> InnerGrid:
        n = self.settings.inner_size
        return [[MicroCell(terrain=TerrainType.OCEAN) for _ in range(n)] for _ in range(n)]

    def mountain_inner_grid(self) -> InnerGrid:
        n = self.settings.inner_size
        inner: InnerGrid = []
        for _ in range(n):
            row = []
            for _ in range(n):
                if self.random.probability(self.settings.mountain_inner_chance):
                    metal = self.random.probability(self.settings.mountain_metal_chance)
                    row.append(
                        MicroCell(
                            terrain=TerrainType.MOUNTAIN,
                            resource=ResourceType.METAL if metal else None,
                        )
                    )
                else:
                    row.append(MicroCell(terrain=TerrainType.LAND))
            inner.append(row)
        return inner

    def river_inner_grid(self) -> InnerGrid:
        """Land with one or two straight water channels carrying food."""
        s = self.settings
        n = s.inner_size
        inner: InnerGrid = []
        for _ in range(n):
            row = []
            for _ in range(n):
                food = self.random.probability(s.river_inner_food_chance)
                row.append(
                    MicroCell(
                        terrain=TerrainType.LAND,
                        resource=ResourceType.FOOD if food else None,
                    )
                )
            inner.append(row)

        for _ in range(self.random.random_int(1, 2)):
            horizontal = self.random.probability(0.5)
            offset = self.random.random_int(2, max(2, n - 3))
            width = self.random.random_int(s.river_channel_min, s.river_channel_max)
            for along in range(n):
                for w in range(width):
                    across = offset + w
                    if across >= n:
                        break
                    micro = inner[across][along] if horizontal else inner[along][across]
                    micro.terrain = TerrainType.RIVER
                    micro.resource = ResourceType.FOOD
        return inner

    def regenerate_inner_grid(self, terrain: TerrainType) -> InnerGrid:
        if terrain is TerrainType.OCEAN:
            return self.ocean_inner_grid()
        if terrain is TerrainType.MOUNTAIN:
            return self.mountain_inner_grid()
        if terrain is TerrainType.RIVER:
            return self.river_inner_grid()
        return self.land_inner_grid(TerrainType.LAND)

    # ------------------------------------------------------------------
    # Terrain features
    # ------------------------------------------------------------------
    def generate_ocean_regions(self, grid: Grid) -> List[Coordinate]:
        """Stamp square ocean regions; returns the anchor of each placed region."""
        s = self.settings
        anchors: List[Coordinate] = []
        hi = max(1, s.map_size - 3)
        for _ in range(s.ocean_regions):
            for _ in range(s.ocean_attempts):
                ax = self.random.random_int(1, hi)
                ay = self.random.random_int(1, hi)
                size = self.random.random_int(s.ocean_min_size, s.ocean_max_size)
                region = [
                    (x, y)
                    for x in range(ax, min(ax + size, s.map_size))
                    for y in range(ay, min(ay + size, s.map_size))
                ]
                if any(grid[c].terrain is TerrainType.OCEAN for c in region):
                    continue
                for coord in region:
                    cell = grid[coord]
                    cell.terrain = TerrainType.OCEAN
                    cell.inner = self.ocean_inner_grid()
                anchors.append((ax, ay))
                break
        return anchors

    def generate_mountains(self, grid: Grid) -> int:
        s = self.settings
        raised = 0
        for _ in range(s.mountain_count):
            for _ in range(s.mountain_attempts):
                x = self.random.random_int(0, s.map_size - 1)
                y = self.random.random_int(0, s.map_size - 1)
                cell = grid[(x, y)]
                if cell.terrain is TerrainType.LAND and cell.owner is None:
                    cell.terrain = TerrainType.MOUNTAIN
                    cell.inner = self.mountain_inner_grid()
                    raised += 1
                    break
        return raised

    def generate_rivers(self, grid: Grid) -> int:
        oceans = grid.cells_with(TerrainType.OCEAN)
        if not oceans:
            return 0
        traced = 0
        for _ in range(self.settings.river_count):
            if self._generate_river(grid, oceans):
                traced += 1
        return traced

    def _inland_start(self, grid: Grid) -> Optional[Coordinate]:
        s = self.settings
        for _ in range(s.river_start_attempts):
            x = self.random.random_int(0, s.map_size - 1)
            y = self.random.random_int(0, s.map_size - 1)
            if grid[(x, y)].terrain is not TerrainType.LAND:
                continue
            if any(grid[n].terrain is TerrainType.OCEAN for n in grid.neighbors(x, y)):
                continue
            return (x, y)
        return None

    def _generate_river(self, grid: Grid, oceans: List[Coordinate]) -> bool:
        start = self._inland_start(grid)
        if start is None:
            return False
        target = min(oceans, key=lambda o: euclidean_distance(start, o))
        path = grid.find_path(start, target)
        if not path:
            return False
        for coord in path[:-1]:
            cell = grid[coord]
            if cell.terrain is TerrainType.LAND:
                cell.terrain = TerrainType.RIVER
                cell.inner = self.river_inner_grid()
                cell.resources[ResourceType.FOOD] += self.settings.river_food_bonus
        return True

    def distribute_resources(self, grid: Grid) -> None:
        for cell in grid.cells():
            rolled = generate_resources(
                self.random, cell.terrain, self.settings.gold_deposit_chance
            )
            for res_type, amount in rolled.items():
                if res_type is ResourceType.GOLD:
                    cell.resources[res_type] = amount
                else:
                    cell.resources[res_type] += amount


def generate_map(random: SeededRandom, settings: Optional[WorldSettings] = None) -> Grid:
    return MapGenerator(random, settings).generate_map()


__all__ = ["MapGenerator", "generate_map"]
