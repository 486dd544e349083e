from __future__ import annotations

from .cells import (
    Coordinate,
    Development,
    MacroCell,
    MicroCell,
    SETTLEMENTS,
    TerrainType,
)
from .export import export_grid_json, export_grid_xml
from .generation import MapGenerator, generate_map
from .grid import Grid, euclidean_distance, find_path, manhattan_distance, straight_line
from .random_source import SeededRandom
from .resource_types import RESOURCE_ORDER, ResourceType, empty_stock
from .settings import WorldSettings

__all__ = [
    "Coordinate",
    "Development",
    "Grid",
    "MacroCell",
    "MapGenerator",
    "MicroCell",
    "RESOURCE_ORDER",
    "ResourceType",
    "SETTLEMENTS",
    "SeededRandom",
    "TerrainType",
    "WorldSettings",
    "empty_stock",
    "euclidean_distance",
    "export_grid_json",
    "export_grid_xml",
    "find_path",
    "generate_map",
    "manhattan_distance",
    "straight_line",
]
