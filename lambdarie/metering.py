"""Monotonic clock helpers and extension reset timing."""

from __future__ import annotations

import time
from dataclasses import dataclass

_NS_PER_MS = 1_000_000


def monotime() -> int:
    """Return the monotonic clock reading in nanoseconds."""
    return time.monotonic_ns()


def mono_to_epoch(t: int) -> int:
    """Convert a monotonic nanosecond reading to epoch nanoseconds."""
    mono_ns = monotime()
    wall_ns = time.time_ns()
    return t + (wall_ns - mono_ns)


@dataclass
class ExtensionsResetDurationProfiler:
    """Measures how long extensions took to reset."""

    num_agents_registered_for_shutdown: int = 0
    available_ns: int = 0
    start_ns: int = 0
    end_ns: int = 0

    def start(self) -> None:
        self.start_ns = monotime()

    def stop(self) -> None:
        self.end_ns = monotime()

    def calculate_extensions_reset_ms(self) -> tuple[int, bool]:
        """Return the reset duration in ms and whether it ran out of time."""
        duration_ns = self.end_ns - self.start_ns
        if (
            self.num_agents_registered_for_shutdown == 0
            or self.available_ns < 0
            or duration_ns < 0
        ):
            return 0, False
        if duration_ns > self.available_ns:
            return self.available_ns // _NS_PER_MS, True
        return duration_ns // _NS_PER_MS, False