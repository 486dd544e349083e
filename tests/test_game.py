import os
import sys
import threading

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from game import ai, settings
from game.battle import BattleRecord
from game.game import Game, GamePhase, parse_seed
from game.territory import audit, release_all_territory
from world.cells import Development


def fixed_clock():
    return 0.0


def test_same_seed_same_game():
    a = Game(seed=12345, clock=fixed_clock)
    b = Game(seed=12345, clock=fixed_clock)
    for _ in range(10):
        a.next_turn()
        b.next_turn()
    assert a.grid.to_json() == b.grid.to_json()
    assert a.export_state() == b.export_state()
    assert a.game_stats() == b.game_stats()


def test_initialization_places_capitals():
    game = Game(seed=1, clock=fixed_clock)
    assert game.initialized
    assert len(game.factions) == settings.NATION_COUNT
    assert all(f.capital is not None for f in game.factions)
    messages = game.log_book.messages()
    assert messages[-1] == f"Game initialized with {settings.NATION_COUNT} nations (seed: 1)"
    for faction in game.factions:
        assert faction.territory == [faction.capital]
        cell = game.grid[faction.capital]
        assert cell.owner == faction.id
        assert cell.development is Development.CITY
        assert cell.population == settings.CAPITAL_POPULATION
        center = cell.micro(game.grid.inner_size // 2, game.grid.inner_size // 2)
        assert center.development is Development.CITY
        assert center.population == settings.CAPITAL_POPULATION
        x, y = faction.capital
        assert f"{faction.name} established capital at ({x}, {y})" in messages
    assert audit(game.grid, game.factions) == []


def test_twenty_turns_keep_invariants():
    game = Game(seed=1, clock=fixed_clock)
    assert game.next_turn()
    assert game.turn == 1
    first = [e for e in game.game_log if e.turn == 1][0]
    assert first.message == "--- Turn 1 ---"
    assert audit(game.grid, game.factions) == []
    for _ in range(19):
        game.next_turn()
        assert audit(game.grid, game.factions) == [], f"turn {game.turn}"
        slots = [
            (a.position, a.inner_position)
            for f in game.factions for a in f.armies
            if a.inner_position is not None
        ]
        assert len(slots) == len(set(slots))
        ids = [a.id for f in game.factions for a in f.armies]
        assert len(ids) == len(set(ids))
        for faction in game.factions:
            assert all(v >= 0 for v in faction.resources.values())


def test_elimination_is_logged_once():
    game = Game(seed=1, clock=fixed_clock)
    victim = game.factions[-1]
    release_all_territory(game.grid, victim)
    game.next_turn()
    game.next_turn()
    notice = f"{victim.name} has been eliminated!"
    assert game.log_book.messages().count(notice) == 1
    assert victim.armies == []
    assert game.grid.owned_by(victim.id) == []


def test_last_faction_standing_wins():
    game = Game(seed=1, clock=fixed_clock)
    survivor = game.active_factions()[0]
    for faction in game.factions:
        if faction is not survivor:
            release_all_territory(game.grid, faction)

    assert game.next_turn()
    assert game.game_over
    assert game.winner is survivor
    assert game.phase is GamePhase.TERMINAL
    assert f"{survivor.name} has achieved total victory!" in game.log_book.messages()

    turn = game.turn
    assert not game.next_turn()
    assert game.turn == turn


def test_faction_failure_is_isolated(monkeypatch):
    game = Game(seed=1, clock=fixed_clock)
    target = game.active_factions()[0]
    original = ai.take_turn

    def flaky(g, faction):
        if faction is target:
            raise RuntimeError("boom")
        original(g, faction)

    monkeypatch.setattr(ai, "take_turn", flaky)
    assert game.next_turn()
    assert f"Error: {target.name} turn processing failed - boom" in game.log_book.messages()
    assert game.next_turn()
    assert game.turn == 2


def test_log_is_capped(monkeypatch):
    monkeypatch.setattr(settings, "LOG_LIMIT", 5)
    game = Game(seed=1, clock=fixed_clock)
    for _ in range(3):
        game.next_turn()
    assert len(game.game_log) == 5
    assert game.game_log[-1].turn == game.turn


def test_log_timestamps_use_clock():
    game = Game(seed=1, clock=lambda: 3661.0)
    assert all(e.timestamp == "01:01:01" for e in game.game_log)


def test_parse_seed():
    assert parse_seed("42") == 42
    assert parse_seed(7) == 7
    assert parse_seed(" 9 ") == 9
    assert parse_seed("abc") is None
    assert parse_seed("-5") is None
    assert parse_seed("0") is None
    assert parse_seed("") is None
    assert parse_seed(None) is None


def test_reset_starts_over():
    game = Game(seed=1, clock=fixed_clock)
    game.next_turn()
    game.zoom_into_square(2, 2)
    assert game.reset(seed=7)
    assert game.seed == 7
    assert game.turn == 0
    assert game.zoomed_square is None
    assert game.log_book.messages()[-1] == "Game reset (seed: 7)"


def test_zoom_and_highlight():
    game = Game(seed=1, clock=fixed_clock)
    assert game.zoom_into_square(3, 4)
    assert game.zoomed_square == (3, 4)
    assert not game.zoom_into_square(20, 20)
    game.zoom_out()
    assert game.zoomed_square is None
    game.highlight_square(1, 1)
    assert game.highlighted_square == (1, 1, "battle")
    game.clear_highlight()
    assert game.highlighted_square is None
    game.zoom_into_square(3, 4)
    game.highlight_square(3, 4)
    game.zoom_out()
    assert game.highlighted_square is None


def test_recent_battles_are_reported_once():
    game = Game(seed=1, clock=fixed_clock)
    red, blue = game.factions[0], game.factions[1]
    older = BattleRecord(1, red.name, blue.name, (2, 2), 5, 4, 3, 2, winner=red.name)
    newer = BattleRecord(3, blue.name, red.name, (2, 3), 5, 6, 3, 2, winner=red.name)
    for record in (older, newer):
        red.add_battle(record)
        blue.add_battle(record)
    assert game.recent_battles() == [newer, older]
    assert game.all_battles() == [older, newer]


def test_summaries_cover_every_faction():
    game = Game(seed=1, clock=fixed_clock)
    summaries = game.faction_summaries()
    assert [s["id"] for s in summaries] == [f.id for f in game.factions]
    assert set(summaries[0]["resources"]) == {"gold", "wood", "food", "metal"}


def test_recent_battles_orders_battles_within_a_turn():
    game = Game(seed=1, clock=fixed_clock)
    red, blue, green = game.factions[0], game.factions[1], game.factions[2]
    first = BattleRecord(5, red.name, blue.name, (2, 2), 5, 4, 3, 2, winner=red.name)
    red.add_battle(first)
    blue.add_battle(first)
    second = BattleRecord(5, green.name, blue.name, (2, 3), 5, 6, 3, 2, winner=blue.name)
    green.add_battle(second)
    blue.add_battle(second)
    assert game.recent_battles(1) == [second]
    assert game.recent_battles() == [second, first]


def test_battle_total_survives_export_and_import():
    game = Game(seed=1, clock=fixed_clock)
    game.battle_manager.total_battles = 7
    snapshot = game.export_state()
    restored = Game(seed=2, clock=fixed_clock)
    assert restored.import_state(snapshot)
    assert restored.game_stats()["total_battles"] == 7


class RecordingLock:
    def __init__(self):
        self._lock = threading.RLock()
        self.depth = 0

    def __enter__(self):
        self._lock.acquire()
        self.depth += 1
        return self

    def __exit__(self, *exc):
        self.depth -= 1
        self._lock.release()


def test_autoplay_start_is_logged_under_the_lock(monkeypatch):
    game = Game(seed=1, clock=fixed_clock)
    game.lock = RecordingLock()
    held = []
    original = game.log

    def log(message):
        held.append((message, game.lock.depth))
        return original(message)

    monkeypatch.setattr(game, "log", log)
    try:
        assert game.autoplay(interval=60)
    finally:
        game.pause()
    assert ("Auto-play started", 1) in held
