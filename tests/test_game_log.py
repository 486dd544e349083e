import os
import sys

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from game.game_log import GameLog, format_timestamp


def test_oldest_entries_are_dropped():
    log = GameLog(clock=lambda: 0.0, limit=3)
    for i in range(5):
        log.add(i, f"event {i}")
    assert len(log) == 3
    assert log.messages() == ["event 2", "event 3", "event 4"]


def test_recent_and_for_turn():
    log = GameLog(clock=lambda: 0.0)
    log.add(1, "a")
    log.add(1, "b")
    log.add(2, "c")
    assert [e.message for e in log.recent(2)] == ["b", "c"]
    assert log.recent(0) == []
    assert [e.message for e in log.for_turn(1)] == ["a", "b"]


def test_timestamp_format():
    assert format_timestamp(0) == "00:00:00"
    assert format_timestamp(3661) == "01:01:01"
    log = GameLog(clock=lambda: 45296.0)
    assert log.add(0, "noon-ish").timestamp == "12:34:56"
