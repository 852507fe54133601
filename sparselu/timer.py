"""Benchmark timer reporting wall-clock, user and system time in milliseconds."""

from __future__ import annotations

import os
import time


class Timer:
    """Measure elapsed time since the last call to :meth:`start`."""

    def __init__(self) -> None:
        self._wall: float | None = None
        self._times: os.times_result | None = None

    def __enter__(self) -> Timer:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def start(self) -> None:
        """Record the current wall-clock and process times."""
        self._wall = time.perf_counter()
        self._times = os.times()

    def _require_started(self) -> None:
        if self._wall is None or self._times is None:
            raise RuntimeError("timer has not been started")

    def elapsed_wallclock(self) -> float:
        """Wall-clock milliseconds since start."""
        self._require_started()
        return (time.perf_counter() - self._wall) * 1000.0

    def elapsed_user(self) -> float:
        """User CPU milliseconds since start."""
        self._require_started()
        return (os.times().user - self._times.user) * 1000.0

    def elapsed_system(self) -> float:
        """System CPU milliseconds since start."""
        self._require_started()
        return (os.times().system - self._times.system) * 1000.0

    def elapsed(self) -> tuple[float, float, float]:
        """Wall-clock, user and system milliseconds since start."""
        wallclock = self.elapsed_wallclock()
        now = os.times()
        user = (now.user - self._times.user) * 1000.0
        system = (now.system - self._times.system) * 1000.0
        return wallclock, user, system