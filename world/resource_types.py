# coding: utf-8
from __future__ import annotations

"""Resource type enumeration."""

from enum import Enum
from typing import Dict, List


class ResourceType(Enum):
    """The four resources every faction stockpiles."""

    GOLD = "gold"
    WOOD = "wood"
    FOOD = "food"
    METAL = "metal"


# Fixed iteration order used by wallets, exports and AI choices
RESOURCE_ORDER: List[ResourceType] = [
    ResourceType.GOLD,
    ResourceType.WOOD,
    ResourceType.FOOD,
    ResourceType.METAL,
]


def empty_stock() -> Dict[ResourceType, int]:
    return {res: 0 for res in RESOURCE_ORDER}


__all__ = [
    "ResourceType",
    "RESOURCE_ORDER",
    "empty_stock",
]
