from __future__ import annotations

"""
Two-tier world container.

The outer grid holds ``size x size`` macro cells and every macro cell owns an
``inner_size x inner_size`` grid of micro cells. All traversal, neighbor
enumeration and pathfinding over the map goes through :class:`Grid` so that
callers never index nested lists directly.
"""

import math
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from .cells import Coordinate, MacroCell, MicroCell, TerrainType

CoordinateList = List[Coordinate]

# Orthogonal neighbor order, fixed so every consumer draws the same sequence
ORTHOGONAL_DIRECTIONS: List[Coordinate] = [(-1, 0), (1, 0), (0, -1), (0, 1)]


def euclidean_distance(a: Coordinate, b: Coordinate) -> float:
    return math.sqrt((a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2)


def manhattan_distance(a: Coordinate, b: Coordinate) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def neighbors_in(x: int, y: int, size: int) -> CoordinateList:
    """Return in-bounds orthogonal neighbors of ``(x, y)`` on a square grid."""
    result: CoordinateList = []
    for dx, dy in ORTHOGONAL_DIRECTIONS:
        nx, ny = x + dx, y + dy
        if 0 <= nx < size and 0 <= ny < size:
            result.append((nx, ny))
    return result


def find_path(
    start: Coordinate,
    goal: Coordinate,
    passable: Callable[[int, int], bool],
    size: int,
) -> CoordinateList:
    """
    A* search over a square grid.

    Every step costs 1 and the heuristic is the Manhattan distance to
    ``goal``. The start cell is never tested for passability.

    Args:
        start: First cell of the path.
        goal: Target cell.
        passable: Predicate deciding whether a neighbor may be entered.
        size: Edge length of the grid.

    Returns:
        List of coordinates from ``start`` to ``goal`` inclusive, or an empty
        list when the goal is unreachable.
    """
    open_set: CoordinateList = [start]
    came_from: Dict[Coordinate, Coordinate] = {}
    g_score: Dict[Coordinate, int] = {start: 0}
    f_score: Dict[Coordinate, int] = {start: manhattan_distance(start, goal)}

    while open_set:
        # First entry with the lowest f score wins ties
        current = min(open_set, key=lambda c: f_score[c])
        if current == goal:
            path = [current]
            while current in came_from:
                current = came_from[current]
                path.append(current)
            path.reverse()
            return path

        open_set.remove(current)
        for nxt in neighbors_in(current[0], current[1], size):
            if not passable(*nxt):
                continue
            tentative = g_score[current] + 1
            if nxt not in g_score or tentative < g_score[nxt]:
                came_from[nxt] = current
                g_score[nxt] = tentative
                f_score[nxt] = tentative + manhattan_distance(nxt, goal)
                if nxt not in open_set:
                    open_set.append(nxt)
    return []


def straight_line(start: Coordinate, end: Coordinate) -> CoordinateList:
    """Step one axis at a time from ``start`` to ``end``, x first."""
    x, y = start
    path = [(x, y)]
    while (x, y) != end:
        if x != end[0]:
            x += 1 if end[0] > x else -1
        elif y != end[1]:
            y += 1 if end[1] > y else -1
        path.append((x, y))
    return path


class Grid:
    __slots__ = ("size", "inner_size", "_cells")

    def __init__(self, size: int = 10, inner_size: int = 10):
        self.size = size
        self.inner_size = inner_size
        self._cells: List[List[MacroCell]] = [
            [MacroCell(coord=(x, y)) for x in range(size)] for y in range(size)
        ]

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.size and 0 <= y < self.size

    def in_inner_bounds(self, ix: int, iy: int) -> bool:
        return 0 <= ix < self.inner_size and 0 <= iy < self.inner_size

    def get(self, x: int, y: int) -> Optional[MacroCell]:
        """Return the macro cell at ``(x, y)`` or None when out of bounds."""
        if not self.in_bounds(x, y):
            return None
        return self._cells[y][x]

    def __getitem__(self, coord: Coordinate) -> MacroCell:
        cell = self.get(*coord)
        if cell is None:
            raise IndexError(f"{coord} is outside the {self.size}x{self.size} grid")
        return cell

    def __contains__(self, coord: Coordinate) -> bool:
        return self.in_bounds(*coord)

    def micro(self, x: int, y: int, ix: int, iy: int) -> Optional[MicroCell]:
        cell = self.get(x, y)
        if cell is None:
            return None
        return cell.micro(ix, iy)

    def terrain(self, x: int, y: int) -> Optional[TerrainType]:
        cell = self.get(x, y)
        return cell.terrain if cell else None

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------
    def coords(self) -> Iterator[Coordinate]:
        for x in range(self.size):
            for y in range(self.size):
                yield (x, y)

    def cells(self) -> Iterator[MacroCell]:
        for coord in self.coords():
            yield self[coord]

    def micro_cells(self) -> Iterator[Tuple[MacroCell, int, int, MicroCell]]:
        """Yield ``(macro, ix, iy, micro)`` over the whole map."""
        for cell in self.cells():
            for ix, iy, micro in cell.iter_micro():
                yield cell, ix, iy, micro

    def cells_with(self, terrain: TerrainType) -> CoordinateList:
        return [c for c in self.coords() if self[c].terrain is terrain]

    def owned_by(self, faction_id: int) -> CoordinateList:
        return [c for c in self.coords() if self[c].owner == faction_id]

    def neighbors(self, x: int, y: int) -> CoordinateList:
        return neighbors_in(x, y, self.size)

    def inner_neighbors(self, ix: int, iy: int) -> CoordinateList:
        return neighbors_in(ix, iy, self.inner_size)

    def iter_cells(self, coords: Iterable[Coordinate]) -> Iterator[MacroCell]:
        for coord in coords:
            cell = self.get(*coord)
            if cell is not None:
                yield cell

    # ------------------------------------------------------------------
    # Pathfinding
    # ------------------------------------------------------------------
    def find_path(
        self,
        start: Coordinate,
        goal: Coordinate,
        passable: Optional[Callable[[int, int], bool]] = None,
    ) -> CoordinateList:
        if passable is None:
            passable = lambda x, y: self._cells[y][x].terrain in (
                TerrainType.LAND,
                TerrainType.OCEAN,
            )
        return find_path(start, goal, passable, self.size)

    def free_micro_near(
        self, x: int, y: int, ix: int, iy: int
    ) -> Optional[Coordinate]:
        """First unoccupied land micro cell orthogonally next to ``(ix, iy)``."""
        cell = self.get(x, y)
        if cell is None:
            return None
        for nix, niy in self.inner_neighbors(ix, iy):
            micro = cell.micro(nix, niy)
            if micro is not None and micro.army is None and micro.terrain is TerrainType.LAND:
                return (nix, niy)
        return None

    def free_micro(self, x: int, y: int) -> Optional[Coordinate]:
        """First unoccupied micro cell an army can stand on, scanning row by row."""
        cell = self.get(x, y)
        if cell is None:
            return None
        for ix, iy, micro in cell.iter_micro():
            if micro.army is None and micro.terrain not in (
                TerrainType.OCEAN,
                TerrainType.MOUNTAIN,
            ):
                return (ix, iy)
        return None

    def to_json(self) -> Dict[str, object]:
        return {
            "size": self.size,
            "inner_size": self.inner_size,
            "cells": [self[c].to_json() for c in self.coords()],
        }

    def __repr__(self) -> str:
        return f"<Grid {self.size}x{self.size} inner={self.inner_size}>"


__all__ = [
    "CoordinateList",
    "ORTHOGONAL_DIRECTIONS",
    "Grid",
    "euclidean_distance",
    "find_path",
    "manhattan_distance",
    "neighbors_in",
    "straight_line",
]
