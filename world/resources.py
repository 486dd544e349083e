from __future__ import annotations

"""Resource generation rules and helpers."""

from typing import Dict, List, Tuple

from .cells import TerrainType
from .random_source import SeededRandom
from .resource_types import RESOURCE_ORDER, ResourceType

# Terrain -> list of (resource, min, max, probability)
RESOURCE_RULES: Dict[TerrainType, List[Tuple[ResourceType, int, int, float]]] = {
    TerrainType.LAND: [
        (ResourceType.WOOD, 1, 5, 1.0),
        (ResourceType.FOOD, 1, 3, 1.0),
    ],
    TerrainType.MOUNTAIN: [
        (ResourceType.METAL, 2, 8, 1.0),
    ],
    TerrainType.RIVER: [
        (ResourceType.FOOD, 3, 6, 1.0),
    ],
    TerrainType.OCEAN: [],
}

# Gold deposit that may appear on any terrain: (min, max)
GOLD_DEPOSIT_RANGE: Tuple[int, int] = (1, 3)


def generate_resources(
    rng: SeededRandom, terrain: TerrainType, gold_chance: float = 0.15
) -> Dict[ResourceType, int]:
    """Return a base resource stock for a macro cell of ``terrain``."""
    resources: Dict[ResourceType, int] = {}
    for res_type, lo, hi, prob in RESOURCE_RULES.get(terrain, []):
        if prob < 1.0 and not rng.probability(prob):
            continue
        resources[res_type] = resources.get(res_type, 0) + rng.random_int(lo, hi)
    if rng.probability(gold_chance):
        resources[ResourceType.GOLD] = rng.random_int(*GOLD_DEPOSIT_RANGE)
    return resources


def random_resource(rng: SeededRandom) -> ResourceType:
    return rng.choice(RESOURCE_ORDER)


__all__ = ["RESOURCE_RULES", "GOLD_DEPOSIT_RANGE", "generate_resources", "random_resource"]
