from __future__ import annotations

"""Configuration dataclass for world generation."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class WorldSettings:
    seed: Optional[int] = None
    map_size: int = 10
    inner_size: int = 10
    # Oceans
    ocean_regions: int = 3
    ocean_min_size: int = 2
    ocean_max_size: int = 4
    ocean_attempts: int = 50
    # Mountains
    mountain_count: int = 5
    mountain_attempts: int = 20
    # Rivers
    river_count: int = 2
    river_start_attempts: int = 50
    river_food_bonus: int = 2
    river_channel_min: int = 1
    river_channel_max: int = 2
    # Inner grid rolls
    inner_resource_chance: float = 0.2
    inner_mountain_chance: float = 0.05
    inner_river_chance: float = 0.05
    mountain_inner_chance: float = 0.8
    mountain_metal_chance: float = 0.3
    river_inner_food_chance: float = 0.25
    # Extra gold deposit on any macro cell
    gold_deposit_chance: float = 0.15

    @property
    def inner_center(self) -> int:
        return self.inner_size // 2


__all__ = ["WorldSettings"]
