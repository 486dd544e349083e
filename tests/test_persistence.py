import json
import os
import sys

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from game.diplomacy import Relation
from game.game import Game
from game.persistence import (
    GameLoadError,
    GameSaveError,
    GameState,
    coerce_coordinate,
    coerce_level,
    coerce_nation_id,
    coerce_relation,
    coerce_resources,
    load_snapshot,
    reconcile_world,
    save_snapshot,
)
from game.territory import audit
from world.cells import Development, TerrainType
from world.resource_types import ResourceType


def fixed_clock():
    return 0.0


def test_round_trip(tmp_path):
    game = Game(seed=5, clock=fixed_clock)
    for _ in range(5):
        game.next_turn()
    path = game.save(tmp_path / "save.json")
    assert path.exists()
    assert not (tmp_path / "save.json.tmp").exists()

    loaded = Game(clock=fixed_clock, initialize=False)
    assert loaded.load(path)

    assert loaded.seed == 5
    assert loaded.turn == game.turn
    assert loaded.log_book.messages()[-1] == "Game state loaded successfully"
    for original, restored in zip(game.factions, loaded.factions):
        assert restored.name == original.name
        assert restored.territory == original.territory
        assert restored.resources == original.resources
        assert restored.diplomacy == original.diplomacy
        assert [a.position for a in restored.armies] == [a.position for a in original.armies]
        assert [a.inner_position for a in restored.armies] == [a.inner_position for a in original.armies]
    for coord in game.grid.coords():
        assert loaded.grid[coord].owner == game.grid[coord].owner
        assert loaded.grid[coord].terrain is game.grid[coord].terrain
    for faction in loaded.factions:
        if faction.capital and faction.has_territory(faction.capital):
            assert loaded.grid[faction.capital].development is Development.CITY
    assert audit(loaded.grid, loaded.factions) == []


def test_load_missing_file(tmp_path):
    with pytest.raises(GameLoadError):
        load_snapshot(tmp_path / "missing.json")


def test_load_corrupt_file(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json")
    with pytest.raises(GameLoadError):
        load_snapshot(path)


def test_save_to_missing_directory(tmp_path):
    with pytest.raises(GameSaveError):
        save_snapshot({"seed": 1}, tmp_path / "nope" / "save.json")


def test_snapshot_without_seed_is_rejected():
    with pytest.raises(GameLoadError):
        GameState.from_dict({"turn": 3})
    with pytest.raises(GameLoadError):
        GameState.from_dict([1, 2, 3])


def test_import_failure_is_logged():
    game = Game(seed=1, clock=fixed_clock)
    assert not game.import_state({"seed": "nope"})
    assert game.log_book.messages()[-1].startswith("Error: Failed to load game state")
    assert game.seed == 1


def test_coercion_fallbacks():
    assert coerce_level("x") == 1
    assert coerce_level(99) == 10
    assert coerce_level(0) == 1
    assert coerce_relation("bogus") is Relation.NEUTRAL
    assert coerce_relation("war") is Relation.WAR
    assert coerce_nation_id(7, 4) == 0
    assert coerce_nation_id(True, 4) == 0
    assert coerce_nation_id(2, 4) == 2
    wallet = coerce_resources({"gold": -5, "gems": 3, "wood": "7"})
    assert wallet[ResourceType.GOLD] == 0
    assert wallet[ResourceType.WOOD] == 7
    assert coerce_resources("junk")[ResourceType.FOOD] == 0
    assert coerce_coordinate([12, -1], 10) == (9, 0)
    assert coerce_coordinate({"x": 3, "y": 4}, 10) == (3, 4)
    assert coerce_coordinate("bad", 10) is None
    assert coerce_coordinate(None, 10) is None


def test_duplicate_army_ids_are_reassigned():
    game = Game(seed=5, clock=fixed_clock)
    state = game.export_state()
    holder = next(f for f in state["factions"] if f["territory"])
    x, y = holder["territory"][0]
    holder["armies"] = [{"id": 1, "x": x, "y": y}, {"id": 1, "x": x, "y": y, "level": 42}]

    loaded = Game(clock=fixed_clock, initialize=False)
    assert loaded.import_state(json.loads(json.dumps(state)))

    armies = [a for f in loaded.factions for a in f.armies]
    assert sorted(a.id for a in armies) == [1, 2]
    assert loaded.next_army_id == 3
    assert max(a.level for a in armies) == 10


def test_reconcile_reports_lost_features():
    game = Game(seed=5, clock=fixed_clock)
    faction = next(f for f in game.factions if f.territory)
    ocean = game.grid.cells_with(TerrainType.OCEAN)[0]
    faction.territory.append(ocean)
    for coord in game.grid.coords():
        game.grid[coord].owner = None

    notes = reconcile_world(game.grid, game.factions)

    assert game.grid[ocean].owner == faction.id
    assert any("ocean on the regenerated map" in n for n in notes)
    assert any("developments and roads" in n for n in notes)
