import os
import sys

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from game import ai, settings
from game.diplomacy import Relation, TradeOffer
from game.game import Game
from game.models import Army, Faction
from game.territory import audit, claim_territory, station_army
from world.cells import Development, MicroCell, TerrainType
from world.resource_types import ResourceType
from world.settings import WorldSettings


def make_game(size=4, inner=3):
    """Game on a blank all-land map with two factions and no capitals."""
    game = Game(seed=1, world_settings=WorldSettings(map_size=size, inner_size=inner), initialize=False)
    for cell in game.grid.cells():
        cell.inner = [[MicroCell() for _ in range(inner)] for _ in range(inner)]
    game.factions = [Faction(id=0, name="Red"), Faction(id=1, name="Blue")]
    claim_territory(game.grid, game.factions, game.factions[0], (0, 0))
    claim_territory(game.grid, game.factions, game.factions[1], (3, 3))
    return game


def add_army(game, faction, coord, inner=(1, 1)):
    army = Army(id=game.next_army_id, faction_id=faction.id, x=coord[0], y=coord[1])
    game.next_army_id += 1
    faction.add_army(army)
    station_army(game.grid, army, *inner)
    return army


def test_mountain_step_is_rejected():
    game = make_game()
    red = game.factions[0]
    army = add_army(game, red, (0, 0))
    game.grid[(1, 0)].terrain = TerrainType.MOUNTAIN

    assert not ai.move_army(game, red, army, (1, 0))
    assert army.position == (0, 0)
    assert army.movement_points == settings.ARMY_MOVEMENT_POINTS
    assert game.grid[(1, 0)].owner is None


def test_step_onto_unclaimed_land_claims_it():
    game = make_game()
    red = game.factions[0]
    army = add_army(game, red, (0, 0))

    assert ai.move_army(game, red, army, (1, 0))

    assert army.position == (1, 0)
    assert army.movement_points == settings.ARMY_MOVEMENT_POINTS - 1
    assert game.grid[(1, 0)].owner == red.id
    assert red.has_territory((1, 0))
    assert "Red claimed territory at (1, 0)" in game.log_book.messages()
    assert audit(game.grid, game.factions) == []


def test_ocean_costs_extra_and_is_not_claimed():
    game = make_game()
    red = game.factions[0]
    army = add_army(game, red, (0, 0))
    game.grid[(0, 1)].terrain = TerrainType.OCEAN

    assert ai.move_army(game, red, army, (0, 1))
    assert army.movement_points == 0
    assert game.grid[(0, 1)].owner is None


def test_river_refunds_points_up_to_max():
    game = make_game()
    red = game.factions[0]
    army = add_army(game, red, (0, 0))
    army.movement_points = 2
    game.grid[(1, 0)].terrain = TerrainType.RIVER

    assert ai.move_army(game, red, army, (1, 0))
    assert army.movement_points == settings.ARMY_MOVEMENT_POINTS


def test_step_onto_neutral_faction_land_starts_a_battle(monkeypatch):
    game = make_game()
    red, blue = game.factions
    assert red.relation_with(blue.id) is Relation.NEUTRAL
    army = add_army(game, red, (2, 3))
    rolls = iter([6, 1])
    monkeypatch.setattr(game.battle_manager, "roll_dice", lambda sides=6: next(rolls))

    assert ai.move_army(game, red, army, (3, 3))

    assert len(game.battle_manager.battles) == 1
    assert game.battle_manager.battles[0].winner == "Red"
    assert game.grid[(3, 3)].owner == red.id
    assert army.position == (3, 3)
    assert audit(game.grid, game.factions) == []


def test_war_step_starts_a_battle(monkeypatch):
    game = make_game()
    red, blue = game.factions
    red.set_relation(blue.id, Relation.WAR)
    army = add_army(game, red, (2, 3))
    rolls = iter([6, 1])
    monkeypatch.setattr(game.battle_manager, "roll_dice", lambda sides=6: next(rolls))

    assert ai.move_army(game, red, army, (3, 3))
    assert len(game.battle_manager.battles) == 1
    assert army.target is None
    assert any(m.startswith("Red attacks Blue at (3, 3)") for m in game.log_book.messages())


def test_choose_step_prefers_warring_neighbor():
    game = make_game()
    red, blue = game.factions
    red.set_relation(blue.id, Relation.WAR)
    army = add_army(game, red, (3, 2))
    assert ai._choose_step(game, red, army) == (3, 3)
    assert army.target.x == 3 and army.target.y == 3


def test_exhausted_army_rests_for_a_turn():
    game = make_game()
    red = game.factions[0]
    army = add_army(game, red, (0, 0))
    army.movement_points = 0
    ai._move_armies(game, red)
    assert army.position == (0, 0)
    assert army.movement_points == settings.ARMY_MOVEMENT_POINTS


def make_offer(turn=0):
    return TradeOffer(
        from_id=0,
        to_id=1,
        offer_type=ResourceType.GOLD,
        offer_amount=20,
        want_type=ResourceType.WOOD,
        want_amount=10,
        turn=turn,
    )


def test_friendly_trade_is_accepted():
    game = make_game()
    red, blue = game.factions
    red.resources.update({ResourceType.GOLD: 100, ResourceType.WOOD: 50})
    blue.resources.update({ResourceType.GOLD: 10, ResourceType.WOOD: 50})
    blue.set_relation(red.id, Relation.TRADE)
    blue.add_trade_offer(make_offer())

    ai._resolve_trade_offers(game, blue)

    assert blue.resources[ResourceType.GOLD] == 30
    assert blue.resources[ResourceType.WOOD] == 40
    assert red.resources[ResourceType.GOLD] == 80
    assert red.resources[ResourceType.WOOD] == 60
    assert blue.trade_offers == []


def test_unfriendly_trade_can_be_declined(monkeypatch):
    game = make_game()
    red, blue = game.factions
    red.resources.update({ResourceType.GOLD: 100})
    blue.resources.update({ResourceType.GOLD: 10, ResourceType.WOOD: 50})
    blue.add_trade_offer(make_offer())
    monkeypatch.setattr(game.random, "probability", lambda p: False)

    ai._resolve_trade_offers(game, blue)

    assert blue.resources[ResourceType.GOLD] == 10
    assert len(blue.trade_offers) == 1


def test_trade_offers_expire_after_three_turns():
    faction = Faction(id=1, name="Blue")
    old = make_offer(turn=0)
    fresh = make_offer(turn=1)
    faction.add_trade_offer(old)
    faction.add_trade_offer(fresh)
    assert faction.cleanup_expired_trade_offers(3) == 0
    assert faction.cleanup_expired_trade_offers(4) == 1
    assert faction.trade_offers == [fresh]


def test_army_raised_at_town(monkeypatch):
    game = make_game()
    red = game.factions[0]
    town = game.grid[(0, 0)].inner[1][1]
    town.development = Development.TOWN
    town.population = 100
    red.resources.update(
        {ResourceType.GOLD: 100, ResourceType.WOOD: 50, ResourceType.FOOD: 50, ResourceType.METAL: 50}
    )
    monkeypatch.setattr(game.random, "probability", lambda p: True)

    army = ai._create_army(game, red)

    # towns cap army level at 3
    assert army is not None
    assert army.level == 3
    assert red.resources[ResourceType.GOLD] == 100 - 45
    assert army.inner_position == (0, 1)
    assert audit(game.grid, game.factions) == []


def test_army_level_drops_until_affordable(monkeypatch):
    game = make_game()
    red = game.factions[0]
    town = game.grid[(0, 0)].inner[1][1]
    town.development = Development.TOWN
    town.population = 100
    red.resources.update(
        {ResourceType.GOLD: 100, ResourceType.WOOD: 10, ResourceType.FOOD: 50, ResourceType.METAL: 50}
    )
    monkeypatch.setattr(game.random, "probability", lambda p: True)

    army = ai._create_army(game, red)
    assert army.level == 2


def test_no_army_without_settlement(monkeypatch):
    game = make_game()
    red = game.factions[0]
    red.resources[ResourceType.GOLD] = 500
    monkeypatch.setattr(game.random, "probability", lambda p: True)
    assert ai._create_army(game, red) is None


def test_expand_claims_frontier(monkeypatch):
    game = make_game()
    red = game.factions[0]
    red.resources[ResourceType.GOLD] = 50
    monkeypatch.setattr(game.random, "probability", lambda p: True)

    ai._expand(game, red)

    assert len(red.territory) == 2
    assert red.resources[ResourceType.GOLD] == 40
    assert audit(game.grid, game.factions) == []


def test_macro_town_founds_inner_town(monkeypatch):
    game = make_game()
    red = game.factions[0]
    red.resources[ResourceType.GOLD] = 100
    monkeypatch.setattr(game.random, "probability", lambda p: True)
    monkeypatch.setattr(game.random, "choice", lambda items: Development.TOWN if Development.TOWN in items else items[0])

    ai._develop_macro(game, red)

    cell = game.grid[(0, 0)]
    assert cell.development is Development.TOWN
    assert cell.inner[1][1].development is Development.TOWN
    assert cell.inner[1][1].population == settings.TOWN_START_POPULATION
    assert red.resources[ResourceType.GOLD] == 80


def test_take_turn_never_breaks_invariants():
    game = Game(seed=2024, clock=lambda: 0.0)
    for _ in range(3):
        for faction in game.active_factions():
            faction.resources[ResourceType.GOLD] += 200
            ai.take_turn(game, faction)
        assert audit(game.grid, game.factions) == []
        for faction in game.factions:
            assert all(v >= 0 for v in faction.resources.values())


def test_diplomacy_drift_covers_eliminated_factions(monkeypatch):
    game = make_game()
    red, blue = game.factions
    green = Faction(id=2, name="Green")
    game.factions.append(green)
    assert green.is_eliminated
    monkeypatch.setattr(settings, "DIPLOMACY_CHANGE_CHANCE", 1.0)
    monkeypatch.setattr(game.random, "choice", lambda options: Relation.PEACE)

    ai._drift_diplomacy(game, red)

    assert red.relation_with(blue.id) is Relation.PEACE
    assert red.relation_with(green.id) is Relation.PEACE
    assert green.relation_with(red.id) is Relation.PEACE
