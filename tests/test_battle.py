import os
import sys

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from game.battle import BattleManager, BattleRecord, dedupe_battles
from game.models import Army, Faction
from game.territory import audit, claim_territory, station_army
from world.cells import Development, MicroCell, TerrainType
from world.grid import Grid
from world.random_source import SeededRandom


def setup_battle():
    grid = Grid(3, 3)
    for cell in grid.cells():
        cell.inner = [[MicroCell() for _ in range(3)] for _ in range(3)]
    red = Faction(id=0, name="Red")
    blue = Faction(id=1, name="Blue")
    factions = [red, blue]
    claim_territory(grid, factions, red, (0, 1))
    claim_territory(grid, factions, blue, (1, 1))

    attacker = Army(id=1, faction_id=0, x=0, y=1)
    red.add_army(attacker)
    station_army(grid, attacker, 1, 1)
    defender = Army(id=2, faction_id=1, x=1, y=1)
    blue.add_army(defender)
    station_army(grid, defender, 1, 1)
    return grid, factions, attacker, defender


def rigged(monkeypatch, manager, attack_roll, defense_roll, rout=False):
    rolls = iter([attack_roll, defense_roll])
    monkeypatch.setattr(manager, "roll_dice", lambda sides=6: next(rolls))
    monkeypatch.setattr(manager.random, "probability", lambda p: rout)


def test_tie_goes_to_defender(monkeypatch):
    grid, factions, attacker, defender = setup_battle()
    manager = BattleManager(SeededRandom(1))
    rigged(monkeypatch, manager, 3, 3)

    battle = manager.initiate_battle(attacker, (1, 1), grid, factions, turn=4)

    assert battle.attack_power == battle.defense_power
    assert battle.winner == "Blue"
    assert grid[(1, 1)].owner == 1
    assert attacker.defeats == 1
    assert defender.victories == 1
    assert attacker in factions[0].armies
    assert attacker.position == (0, 1)
    assert battle in factions[0].battles and battle in factions[1].battles


def test_attacker_victory_takes_the_cell(monkeypatch):
    grid, factions, attacker, defender = setup_battle()
    red, blue = factions
    manager = BattleManager(SeededRandom(1))
    rigged(monkeypatch, manager, 6, 1)

    battle = manager.initiate_battle(attacker, (1, 1), grid, factions)

    assert battle.attacker_won
    assert grid[(1, 1)].owner == red.id
    assert red.has_territory((1, 1))
    assert not blue.has_territory((1, 1))
    assert blue.armies == []
    assert attacker.position == (1, 1)
    assert grid.micro(0, 1, 1, 1).army is None
    assert battle.experience_gained == 30
    assert attacker.experience == 30
    assert [c.type for c in battle.casualties] == ["destroyed"]
    assert audit(grid, factions) == []


def test_large_gap_routs_attacker(monkeypatch):
    grid, factions, attacker, _ = setup_battle()
    grid[(1, 1)].development = Development.CASTLE
    manager = BattleManager(SeededRandom(1))
    rigged(monkeypatch, manager, 1, 6)

    battle = manager.initiate_battle(attacker, (1, 1), grid, factions)

    assert battle.defense_power - battle.attack_power > 5
    assert attacker not in factions[0].armies
    assert grid.micro(0, 1, 1, 1).army is None
    assert battle.casualties[0].type == "destroyed"
    assert audit(grid, factions) == []


def test_small_gap_damages_attacker(monkeypatch):
    grid, factions, attacker, _ = setup_battle()
    manager = BattleManager(SeededRandom(1))
    rigged(monkeypatch, manager, 2, 4, rout=False)

    battle = manager.initiate_battle(attacker, (1, 1), grid, factions)

    assert battle.winner == "Blue"
    assert attacker.health == 80
    assert battle.casualties[0].damage == 20
    assert attacker in factions[0].armies


def test_unowned_target_is_not_a_battle():
    grid, factions, attacker, _ = setup_battle()
    manager = BattleManager(SeededRandom(1))
    assert manager.initiate_battle(attacker, (2, 2), grid, factions) is None
    assert manager.battles == []


def test_power_never_below_one():
    grid, _, _, _ = setup_battle()
    manager = BattleManager(SeededRandom(1))
    broken = Army(id=5, faction_id=0, x=0, y=0, health=0)
    assert broken.combat_power == 1
    assert manager.defense_power([], grid[(2, 2)]) == 1


def test_mountain_and_veteran_bonuses():
    grid, _, _, _ = setup_battle()
    manager = BattleManager(SeededRandom(1))
    grid[(2, 2)].terrain = TerrainType.MOUNTAIN
    assert manager.defense_power([], grid[(2, 2)]) == 1
    veteran = Army(id=6, faction_id=0, x=0, y=0, level=5)
    assert manager.attack_power(veteran) == 5 + 2


def test_dedupe_keeps_first_of_each_battle():
    a = BattleRecord(1, "Red", "Blue", (1, 1), 5, 4, 3, 2, winner="Red")
    b = BattleRecord(1, "Red", "Blue", (1, 1), 5, 4, 3, 2, winner="Red")
    c = BattleRecord(2, "Red", "Blue", (1, 1), 5, 4, 3, 2, winner="Red")
    assert dedupe_battles([a, b, c]) == [a, c]


def test_battle_stats():
    grid, factions, attacker, _ = setup_battle()
    manager = BattleManager(SeededRandom(3))
    manager.initiate_battle(attacker, (1, 1), grid, factions)
    stats = manager.battle_stats()
    assert stats["total_battles"] == 1
    assert stats["total_casualties"] <= 1
    assert stats["average_battle_power"] > 0


def test_history_is_capped_but_totals_keep_counting(monkeypatch):
    grid, factions, attacker, _ = setup_battle()
    manager = BattleManager(SeededRandom(1), limit=2)
    monkeypatch.setattr(manager, "roll_dice", lambda sides=6: 3)
    monkeypatch.setattr(manager.random, "probability", lambda p: False)

    battles = [manager.initiate_battle(attacker, (1, 1), grid, factions, turn=t) for t in range(3)]

    assert manager.battles == battles[1:]
    stats = manager.battle_stats()
    assert stats["total_battles"] == 3
    assert stats["average_battle_power"] == 4.0
