from __future__ import annotations

"""Diplomacy data models: relations between factions and trade offers."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from world.resource_types import ResourceType


class Relation(Enum):
    NEUTRAL = "neutral"
    TRADE = "trade"
    WAR = "war"
    PEACE = "peace"


# Order used when a relation is re-rolled at random
RELATION_CHOICES = [Relation.NEUTRAL, Relation.TRADE, Relation.WAR, Relation.PEACE]

# Relations under which an offer is accepted without a random roll
FRIENDLY_RELATIONS = (Relation.TRADE, Relation.PEACE)


@dataclass
class TradeOffer:
    """A resource swap proposed by ``from_id`` and queued on ``to_id``."""

    from_id: int
    to_id: int
    offer_type: ResourceType
    offer_amount: int
    want_type: ResourceType
    want_amount: int
    turn: int

    def age(self, current_turn: int) -> int:
        return current_turn - self.turn

    def is_expired(self, current_turn: int, max_age: int) -> bool:
        return self.age(current_turn) > max_age

    def to_json(self) -> Dict[str, Any]:
        return {
            "from": self.from_id,
            "to": self.to_id,
            "offer_type": self.offer_type.value,
            "offer_amount": self.offer_amount,
            "want_type": self.want_type.value,
            "want_amount": self.want_amount,
            "turn": self.turn,
        }


__all__ = ["Relation", "RELATION_CHOICES", "FRIENDLY_RELATIONS", "TradeOffer"]
