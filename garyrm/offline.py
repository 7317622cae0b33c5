"""Detect a data source going silent over a fixed time window."""

from __future__ import annotations

import time
from typing import Callable


class OfflineDetector:
    """Marks a source offline when a whole window passes without a good update.

    Any successful update inside a window keeps the source online; the flag is
    re-evaluated by the first update that arrives after the window has ended.
    """

    def __init__(self, duration: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.offline = False
        self._duration = duration
        self._clock = clock
        self._updated = False
        self._last_time = clock()

    @property
    def duration(self) -> float:
        return self._duration

    def config(self, duration: float) -> None:
        """Change the length of the detection window."""
        self._duration = duration

    def update(self, state: bool) -> None:
        """Record the outcome of one read attempt."""
        now = self._clock()
        if now - self._last_time < self._duration:
            self._updated |= bool(state)
            return
        self.offline = not self._updated
        self._last_time = now
        self._updated = False