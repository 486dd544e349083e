from __future__ import annotations

"""
Per-faction decision making.

:func:`take_turn` runs the steps below in a fixed order. Each step draws
only from ``game.random`` so a seeded game replays identically.

1. diplomacy drift
2. resolution of incoming trade offers
3. creation of a new trade offer
4. army movement, which may claim land or start battles
5. army creation at a settlement
6. development: macro improvements, expansion, inner buildings and roads
"""

import logging
import math
from typing import List, Optional, Tuple, TYPE_CHECKING

from world.cells import Coordinate, Development, MacroCell, TerrainType
from world.grid import straight_line
from world.resource_types import RESOURCE_ORDER, ResourceType
from . import settings
from .diplomacy import FRIENDLY_RELATIONS, RELATION_CHOICES, Relation, TradeOffer
from .models import Army, Order
from .territory import claim_territory, faction_by_id, relocate_army

if TYPE_CHECKING:
    from .game import Game
    from .models import Faction

logger = logging.getLogger("sandbox.AI")
logger.addHandler(logging.NullHandler())

# Macro developments the AI picks from on land and river tiles
MACRO_DEVELOPMENTS = [Development.FARM, Development.MINE, Development.FOREST, Development.TOWN]
# Inner developments that anchor a road
ROAD_ANCHORS = (Development.TOWN, Development.CITY, Development.CASTLE)


def take_turn(game: "Game", faction: "Faction") -> None:
    """Run one turn of decisions for ``faction``."""
    _drift_diplomacy(game, faction)
    _resolve_trade_offers(game, faction)
    _create_trade_offer(game, faction)
    _move_armies(game, faction)
    _create_army(game, faction)
    _develop(game, faction)


def _others(game: "Game", faction: "Faction") -> List["Faction"]:
    return [f for f in game.factions if f is not faction and not f.is_eliminated]


# ----------------------------------------------------------------------------
# Diplomacy and trade
# ----------------------------------------------------------------------------
def _drift_diplomacy(game: "Game", faction: "Faction") -> None:
    for other in [f for f in game.factions if f is not faction]:
        faction.diplomacy.setdefault(other.id, Relation.NEUTRAL)
        if not game.random.probability(settings.DIPLOMACY_CHANGE_CHANCE):
            continue
        old = faction.relation_with(other.id)
        new = game.random.choice(RELATION_CHOICES)
        faction.set_relation(other.id, new)
        other.set_relation(faction.id, new)
        if new is not old:
            if new is Relation.WAR:
                game.log(f"{faction.name} declared war on {other.name}!")
            else:
                game.log(f"{faction.name} and {other.name} are now at {new.value}")


def _resolve_trade_offers(game: "Game", faction: "Faction") -> None:
    for offer in list(faction.trade_offers):
        if offer.is_expired(game.turn, settings.TRADE_OFFER_MAX_AGE):
            faction.remove_trade_offer(offer)
            continue
        partner = faction_by_id(game.factions, offer.from_id)
        if partner is None or partner.is_eliminated:
            faction.remove_trade_offer(offer)
            continue

        short = faction.resources[offer.offer_type] < settings.TRADE_SHORTAGE_THRESHOLD
        affordable = faction.can_afford({offer.want_type: offer.want_amount})
        if not (short and affordable):
            continue
        if faction.relation_with(partner.id) not in FRIENDLY_RELATIONS and not game.random.probability(
            settings.TRADE_RANDOM_ACCEPT_CHANCE
        ):
            continue
        if not partner.can_afford({offer.offer_type: offer.offer_amount}):
            continue

        faction.spend_resources({offer.want_type: offer.want_amount})
        partner.spend_resources({offer.offer_type: offer.offer_amount})
        faction.add_resources({offer.offer_type: offer.offer_amount})
        partner.add_resources({offer.want_type: offer.want_amount})
        faction.remove_trade_offer(offer)
        game.log(
            f"{faction.name} accepted trade from {partner.name}: "
            f"{offer.offer_amount} {offer.offer_type.value} for "
            f"{offer.want_amount} {offer.want_type.value}"
        )


def _create_trade_offer(game: "Game", faction: "Faction") -> Optional[TradeOffer]:
    if not game.random.probability(settings.TRADE_OFFER_CHANCE):
        return None
    others = _others(game, faction)
    if not others:
        return None
    partner = game.random.choice(others)
    if faction.is_at_war_with(partner.id):
        return None

    kinds = game.random.shuffle(list(RESOURCE_ORDER))
    offer_type, want_type = kinds[0], kinds[1]
    stock = faction.resources[offer_type]
    if stock < settings.TRADE_MIN_STOCK:
        return None

    offer = TradeOffer(
        from_id=faction.id,
        to_id=partner.id,
        offer_type=offer_type,
        offer_amount=math.floor(stock * settings.TRADE_OFFER_FRACTION),
        want_type=want_type,
        want_amount=game.random.random_int(*settings.TRADE_WANT_RANGE),
        turn=game.turn,
    )
    partner.add_trade_offer(offer)
    game.log(
        f"{faction.name} offered {partner.name} {offer.offer_amount} "
        f"{offer_type.value} for {offer.want_amount} {want_type.value}"
    )
    return offer


# ----------------------------------------------------------------------------
# Armies
# ----------------------------------------------------------------------------
def _step_toward(origin: Coordinate, target: Coordinate) -> Coordinate:
    x, y = origin
    if target[0] != x:
        return (x + (1 if target[0] > x else -1), y)
    if target[1] != y:
        return (x, y + (1 if target[1] > y else -1))
    return origin


def _choose_step(game: "Game", faction: "Faction", army: Army) -> Optional[Coordinate]:
    grid = game.grid
    neighbors = grid.neighbors(army.x, army.y)

    at_war = [
        n for n in neighbors
        if grid[n].owner is not None
        and grid[n].owner != faction.id
        and faction.is_at_war_with(grid[n].owner)
    ]
    if at_war:
        target = at_war[0]
        army.set_target(target[0], target[1], Order.ATTACK)
        return _step_toward(army.position, target)

    unclaimed = [n for n in neighbors if grid[n].owner is None and grid[n].passable]
    if unclaimed:
        target = game.random.choice(unclaimed)
        army.set_target(target[0], target[1], Order.MOVE)
        return _step_toward(army.position, target)

    if neighbors and game.random.probability(settings.RANDOM_MOVE_CHANCE):
        return game.random.choice(neighbors)
    return None


def _move_armies(game: "Game", faction: "Faction") -> None:
    for army in list(faction.armies):
        if army not in faction.armies:
            continue
        if army.movement_points <= 0:
            army.reset_movement_points()
            continue
        step = _choose_step(game, faction, army)
        if step is not None:
            move_army(game, faction, army, step)


def move_army(game: "Game", faction: "Faction", army: Army, step: Coordinate) -> bool:
    """
    Move ``army`` one macro cell to ``step``.

    Mountains reject the step. Entering another faction's land starts a
    battle instead of a move. Returns True when a movement point was spent.
    """
    grid = game.grid
    cell = grid.get(*step)
    if cell is None or cell.terrain is TerrainType.MOUNTAIN:
        return False

    owner = cell.owner
    if owner is not None and owner != faction.id:
        battle = game.battle_manager.initiate_battle(army, step, grid, game.factions, game.turn)
        if battle is not None:
            game.log(battle.log_message())
        army.use_movement_points(1)
        army.clear_target()
        return True

    relocate_army(grid, army, step)
    army.use_movement_points(1)
    if cell.terrain is TerrainType.OCEAN:
        army.use_movement_points(settings.OCEAN_EXTRA_COST)
    elif cell.terrain is TerrainType.RIVER:
        army.movement_points = min(
            army.max_movement_points, army.movement_points + settings.RIVER_REFUND
        )

    if owner is None and cell.terrain is not TerrainType.OCEAN:
        claim_territory(grid, game.factions, faction, step)
        game.log(f"{faction.name} claimed territory at ({step[0]}, {step[1]})")
    if army.target is not None and army.position == (army.target.x, army.target.y):
        army.clear_target()
    return True


def _spawn_points(game: "Game", faction: "Faction") -> List[Tuple[Coordinate, int, int]]:
    points = []
    for coord in faction.territory:
        for ix, iy, micro in game.grid[coord].iter_micro():
            if micro.is_settlement and micro.population >= settings.ARMY_SPAWN_MIN_POPULATION:
                points.append((coord, ix, iy))
    return points


def _create_army(game: "Game", faction: "Faction") -> Optional[Army]:
    gold = faction.resources[ResourceType.GOLD]
    if gold <= settings.ARMY_CREATION_MIN_GOLD:
        return None
    if not game.random.probability(settings.ARMY_CREATION_CHANCE):
        return None
    points = _spawn_points(game, faction)
    if not points:
        return None

    coord, ix, iy = game.random.choice(points)
    micro = game.grid[coord].micro(ix, iy)
    cap = settings.MAX_ARMY_LEVEL[micro.development]
    level = max(1, min(cap, gold // settings.GOLD_PER_ARMY_LEVEL + 1))
    while level > 1 and not faction.can_afford(Army.creation_cost(level)):
        level -= 1
    if not faction.can_afford(Army.creation_cost(level)):
        return None

    spot = game.grid.free_micro_near(coord[0], coord[1], ix, iy)
    return game.create_army(faction, coord, spot, level)


# ----------------------------------------------------------------------------
# Development
# ----------------------------------------------------------------------------
def _develop(game: "Game", faction: "Faction") -> None:
    _develop_macro(game, faction)
    _expand(game, faction)
    _build_inner(game, faction)
    _build_road(game, faction)


def _found_town(game: "Game", cell: MacroCell) -> None:
    """Place an inner town on the center tile, or the first free land tile."""
    center = game.grid.inner_size // 2
    candidates = [(center, center)] + [(ix, iy) for ix, iy, _ in cell.iter_micro()]
    for ix, iy in candidates:
        micro = cell.micro(ix, iy)
        if (
            micro is not None
            and micro.terrain is TerrainType.LAND
            and micro.development is Development.NONE
        ):
            micro.development = Development.TOWN
            micro.population = settings.TOWN_START_POPULATION
            micro.level = 1
            return


def _develop_macro(game: "Game", faction: "Faction") -> None:
    if faction.resources[ResourceType.GOLD] <= settings.DEVELOP_MIN_GOLD:
        return
    if not game.random.probability(settings.DEVELOP_CHANCE):
        return
    candidates = [
        c for c in faction.territory
        if game.grid[c].development is Development.NONE
        and game.grid[c].terrain is not TerrainType.OCEAN
    ]
    if not candidates:
        return
    coord = game.random.choice(candidates)
    cell = game.grid[coord]
    if cell.terrain is TerrainType.MOUNTAIN:
        development = Development.MINE
    else:
        development = game.random.choice(MACRO_DEVELOPMENTS)
    if not faction.spend_resources(settings.DEVELOP_COST):
        return

    cell.development = development
    if development is Development.TOWN:
        cell.population = settings.TOWN_START_POPULATION
        _found_town(game, cell)
    game.log(f"{faction.name} developed a {development.value} at ({coord[0]}, {coord[1]})")


def _expand(game: "Game", faction: "Faction") -> None:
    if not game.random.probability(settings.EXPAND_CHANCE):
        return
    grid = game.grid
    frontier: List[Coordinate] = []
    for coord in faction.territory:
        for n in grid.neighbors(*coord):
            if n not in frontier and grid[n].owner is None and grid[n].passable:
                frontier.append(n)
    if not frontier:
        return
    target = game.random.choice(frontier)
    if not faction.spend_resources(settings.EXPAND_COST):
        return
    claim_territory(grid, game.factions, faction, target)
    game.log(f"{faction.name} expanded to ({target[0]}, {target[1]})")


def _build_inner(game: "Game", faction: "Faction") -> None:
    if not faction.territory or not game.random.probability(settings.INNER_BUILD_CHANCE):
        return
    coord = game.random.choice(faction.territory)
    cell = game.grid[coord]
    development = game.random.choice(list(settings.INNER_BUILD_COSTS))
    allowed = (TerrainType.LAND, TerrainType.MOUNTAIN) if development is Development.MINE else (TerrainType.LAND,)
    spots = [
        (ix, iy, micro) for ix, iy, micro in cell.iter_micro()
        if micro.terrain in allowed
        and micro.development is Development.NONE
        and not micro.road
    ]
    if not spots:
        return
    ix, iy, micro = game.random.choice(spots)
    if not faction.spend_resources(settings.INNER_BUILD_COSTS[development]):
        return

    micro.development = development
    if development is Development.TOWN:
        micro.population = settings.TOWN_START_POPULATION
        micro.level = 1
    game.log(
        f"{faction.name} built a {development.value} in ({coord[0]}, {coord[1]}) "
        f"at [{ix}, {iy}]"
    )


def _build_road(game: "Game", faction: "Faction") -> None:
    if not faction.territory or not game.random.probability(settings.ROAD_CHANCE):
        return
    coord = game.random.choice(faction.territory)
    cell = game.grid[coord]
    anchors = [(ix, iy) for ix, iy, micro in cell.iter_micro() if micro.development in ROAD_ANCHORS]
    if len(anchors) < 2:
        return
    start, end = game.random.shuffle(anchors)[:2]
    tiles = []
    for ix, iy in straight_line(start, end):
        micro = cell.micro(ix, iy)
        if (
            micro.terrain is TerrainType.LAND
            and not micro.road
            and micro.development is Development.NONE
        ):
            tiles.append(micro)
    if not tiles or not faction.spend_resources(settings.ROAD_COST):
        return
    for micro in tiles:
        micro.road = True
    game.log(f"{faction.name} built a road in ({coord[0]}, {coord[1]})")


__all__ = ["take_turn", "move_army"]
