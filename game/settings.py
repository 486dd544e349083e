# Settings for the game

from pathlib import Path

from world.cells import Development
from world.resource_types import ResourceType

# ---------------------------------------------------------------------------
# Factions
# ---------------------------------------------------------------------------

# Number of factions placed when the game begins.
NATION_COUNT = 4

# Minimum straight-line distance between two capitals
MIN_NATION_DISTANCE = 3

# Random coordinates tried per capital before giving up
PLACEMENT_ATTEMPTS = 100

NATION_NAMES = ["Red Empire", "Blue Kingdom", "Green Republic", "Yellow Federation"]
NATION_SYMBOLS = ["\U0001F7E5", "\U0001F7E6", "\U0001F7E9", "\U0001F7E8"]
NATION_COLORS = ["#440000", "#000044", "#004400", "#444400"]

STARTING_RESOURCES = {
    ResourceType.GOLD: 100,
    ResourceType.WOOD: 50,
    ResourceType.FOOD: 50,
    ResourceType.METAL: 30,
}

# Capital city mirrored into the center micro cell
CAPITAL_POPULATION = 1000
CAPITAL_LEVEL = 3

# ---------------------------------------------------------------------------
# Economy
# ---------------------------------------------------------------------------

# Gold paid each turn per army and per controlled macro cell
ARMY_UPKEEP = 2
TERRITORY_UPKEEP = 1

# Flat macro-level development income
FARM_FOOD_BONUS = 3
MINE_METAL_BONUS = 2
FOREST_WOOD_BONUS = 2

# Each tagged micro cell yields this much of its resource
INNER_RESOURCE_UNIT = 1
# Micro-level farm/forest/mine income, doubled for mines on mountain tiles
INNER_DEVELOPMENT_BONUS = 1
MOUNTAIN_MINE_MULTIPLIER = 2

# Population needed for one gold of settlement income
GOLD_PER_POP = {Development.TOWN: 100, Development.CITY: 50}

# ---------------------------------------------------------------------------
# Armies
# ---------------------------------------------------------------------------
ARMY_MOVEMENT_POINTS = 3
ARMY_MIN_LEVEL = 1
ARMY_MAX_LEVEL = 10
ARMY_MAX_HEALTH = 100
EXPERIENCE_PER_LEVEL = 100

# Creation cost per level
ARMY_BASE_COST = {
    ResourceType.GOLD: 15,
    ResourceType.WOOD: 5,
    ResourceType.FOOD: 5,
    ResourceType.METAL: 5,
}

# Highest army level a settlement can raise
MAX_ARMY_LEVEL = {Development.TOWN: 3, Development.CITY: 10}

# ---------------------------------------------------------------------------
# Combat
# ---------------------------------------------------------------------------
DICE_SIDES = 6
VETERAN_EXPERIENCE = 200
VETERAN_LEVEL = 5
VETERAN_BONUS = 2
CASTLE_DEFENSE_BONUS = 3
MOUNTAIN_DEFENSE_BONUS = 1
# A defender winning by more than this destroys the attacker outright
ROUT_THRESHOLD = 5
ROUT_CHANCE = 0.5
MAX_REPULSE_DAMAGE = 50
DAMAGE_PER_POWER_GAP = 10
CONQUEST_BASE_EXPERIENCE = 20
CONQUEST_EXPERIENCE_PER_KILL = 10
DEFENDER_EXPERIENCE = 15
FAILED_ATTACK_EXPERIENCE = 5

# ---------------------------------------------------------------------------
# AI behaviour
# ---------------------------------------------------------------------------
DIPLOMACY_CHANGE_CHANCE = 0.05

TRADE_OFFER_MAX_AGE = 3
TRADE_SHORTAGE_THRESHOLD = 30
TRADE_RANDOM_ACCEPT_CHANCE = 0.3
TRADE_OFFER_CHANCE = 0.2
TRADE_MIN_STOCK = 40
TRADE_OFFER_FRACTION = 0.2
TRADE_WANT_RANGE = (5, 20)

RANDOM_MOVE_CHANCE = 0.3
OCEAN_EXTRA_COST = 3
RIVER_REFUND = 2

ARMY_CREATION_CHANCE = 0.3
ARMY_CREATION_MIN_GOLD = 50
ARMY_SPAWN_MIN_POPULATION = 100
# Gold per affordable army level when choosing the level to raise
GOLD_PER_ARMY_LEVEL = 20

DEVELOP_CHANCE = 0.2
DEVELOP_MIN_GOLD = 30
DEVELOP_COST = {ResourceType.GOLD: 20}
EXPAND_CHANCE = 0.4
EXPAND_COST = {ResourceType.GOLD: 10}

INNER_BUILD_CHANCE = 0.25
INNER_BUILD_COSTS = {
    Development.FARM: {ResourceType.GOLD: 10, ResourceType.WOOD: 5},
    Development.FOREST: {ResourceType.GOLD: 10},
    Development.MINE: {ResourceType.GOLD: 15, ResourceType.WOOD: 5},
    Development.TOWN: {ResourceType.GOLD: 30, ResourceType.WOOD: 20, ResourceType.FOOD: 10},
    Development.CASTLE: {ResourceType.GOLD: 40, ResourceType.WOOD: 10, ResourceType.METAL: 20},
}

ROAD_CHANCE = 0.1
ROAD_COST = {ResourceType.WOOD: 5}

# ---------------------------------------------------------------------------
# Population
# ---------------------------------------------------------------------------
FOOD_GROWTH_MINIMUM = 10
GROWTH_RATE = {Development.CITY: 0.05, Development.TOWN: 0.03}
LEVEL_UP_POPULATION = {Development.TOWN: 500, Development.CITY: 2000}
LEVEL_CAP = {Development.TOWN: 3, Development.CITY: 5}
TOWN_START_POPULATION = 100

# ---------------------------------------------------------------------------
# Log, history and persistence
# ---------------------------------------------------------------------------
LOG_LIMIT = 1000
EXPORT_LOG_ENTRIES = 100
EXPORT_BATTLES = 20
RECENT_BATTLES = 10
# Battle records kept per faction and by the battle manager
BATTLE_HISTORY_LIMIT = 200

# Seconds between automatic turns
AUTOPLAY_INTERVAL = 1.0

SAVE_FILE = Path("save.json")
SNAPSHOT_VERSION = "1.0"
