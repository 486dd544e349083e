"""Game package exposing core classes."""

from .game import Game, GamePhase, parse_seed
from .models import Army, Faction, Order
from .diplomacy import Relation, TradeOffer
from .battle import BattleManager, BattleRecord, Casualty, dedupe_battles
from .resources import ResourceManager
from .autoplay import AutoPlayer
from .game_log import GameLog, LogEntry
from .persistence import GameLoadError, GameSaveError, GameState

__all__ = [
    "Army",
    "AutoPlayer",
    "BattleManager",
    "BattleRecord",
    "Casualty",
    "Faction",
    "Game",
    "GameLoadError",
    "GameLog",
    "GamePhase",
    "GameSaveError",
    "GameState",
    "LogEntry",
    "Order",
    "Relation",
    "ResourceManager",
    "TradeOffer",
    "dedupe_battles",
    "parse_seed",
]
