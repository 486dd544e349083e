import os
import sys
import time

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from game.autoplay import AutoPlayer
from game.game import Game, GamePhase


def wait_for(predicate, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_start_and_stop():
    calls = []
    player = AutoPlayer(lambda: calls.append(1) or True, interval=0.01)
    assert player.start()
    assert not player.start()
    assert wait_for(lambda: len(calls) >= 3)
    player.stop()
    assert not player.running
    count = len(calls)
    time.sleep(0.05)
    assert len(calls) == count


def test_stops_when_advance_returns_false():
    calls = []

    def advance():
        calls.append(1)
        return len(calls) < 2

    player = AutoPlayer(advance, interval=0.01)
    player.start()
    assert wait_for(lambda: not player.running)
    assert len(calls) == 2


def test_failing_turn_stops_timer():
    def advance():
        raise RuntimeError("broken")

    player = AutoPlayer(advance, interval=0.01)
    player.start()
    assert wait_for(lambda: not player.running)


def test_game_autoplay_and_pause():
    game = Game(seed=3, clock=lambda: 0.0)
    assert game.autoplay(interval=0.01)
    assert not game.autoplay(interval=0.01)
    assert "Auto-play started" in game.log_book.messages()
    assert wait_for(lambda: game.turn >= 2)
    game.pause()
    assert not game.is_playing
    assert game.phase in (GamePhase.PAUSED, GamePhase.TERMINAL)
    turn = game.turn
    time.sleep(0.05)
    assert game.turn == turn
