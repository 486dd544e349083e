from __future__ import annotations

"""Timer-driven automatic turn advancement."""

import logging
import threading
from typing import Callable, Optional

from . import settings

logger = logging.getLogger("sandbox.AutoPlayer")
logger.addHandler(logging.NullHandler())


class AutoPlayer:
    """
    Calls ``advance`` every ``interval`` seconds on a background thread.

    ``advance`` returns False once there is nothing left to play, which stops
    the timer. :meth:`stop` never interrupts a turn in progress: the thread
    only checks for cancellation between turns, and turns themselves are
    serialized by the game's lock.
    """

    def __init__(self, advance: Callable[[], bool], interval: Optional[float] = None):
        self.advance = advance
        self.interval = interval if interval is not None else settings.AUTOPLAY_INTERVAL
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop.is_set()

    def start(self, interval: Optional[float] = None) -> bool:
        """Start the timer; returns False if it was already running."""
        if self.running:
            return False
        if interval is not None:
            self.interval = interval
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop,), name="autoplay", daemon=True
        )
        self._thread.start()
        return True

    def stop(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        self._stop.set()
        thread = self._thread
        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _run(self, stop: threading.Event) -> None:
        while not stop.wait(self.interval):
            try:
                if not self.advance():
                    stop.set()
            except Exception:
                logger.exception("Auto-play turn failed; stopping")
                stop.set()


__all__ = ["AutoPlayer"]
