from __future__ import annotations

"""Bounded, append-only game log."""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional

from . import settings

Clock = Callable[[], float]


@dataclass
class LogEntry:
    turn: int
    message: str
    timestamp: str

    def to_json(self) -> Dict[str, object]:
        return {"turn": self.turn, "message": self.message, "timestamp": self.timestamp}


def format_timestamp(seconds: float) -> str:
    return time.strftime("%H:%M:%S", time.gmtime(seconds))


class GameLog:
    """
    Ordered log of game events.

    Only the newest ``limit`` entries are kept; older ones are dropped
    silently. Timestamps come from ``clock`` so tests can pin them.
    """

    def __init__(self, clock: Clock = time.time, limit: Optional[int] = None):
        self.clock = clock
        self.limit = limit if limit is not None else settings.LOG_LIMIT
        self.entries: List[LogEntry] = []

    def add(self, turn: int, message: str) -> LogEntry:
        entry = LogEntry(turn=turn, message=message, timestamp=format_timestamp(self.clock()))
        self.entries.append(entry)
        if len(self.entries) > self.limit:
            del self.entries[: len(self.entries) - self.limit]
        return entry

    def extend(self, entries: List[LogEntry]) -> None:
        self.entries.extend(entries)
        if len(self.entries) > self.limit:
            del self.entries[: len(self.entries) - self.limit]

    def clear(self) -> None:
        self.entries.clear()

    def recent(self, count: int) -> List[LogEntry]:
        if count <= 0:
            return []
        return self.entries[-count:]

    def for_turn(self, turn: int) -> List[LogEntry]:
        return [e for e in self.entries if e.turn == turn]

    def messages(self) -> List[str]:
        return [e.message for e in self.entries]

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


__all__ = ["Clock", "GameLog", "LogEntry", "format_timestamp"]
