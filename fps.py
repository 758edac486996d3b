from __future__ import annotations
from collections import deque

class FrameCounter:
    """Rolling min/max/avg of the last 60 frame durations, in milliseconds."""

    def __init__(self, time_ms: float, window: int = 60):
        self.time = time_ms
        self.recorded: deque[float] = deque(maxlen=window)

    def frame(self, time_ms: float) -> float:
        """Record a frame at ``time_ms``; returns seconds since the previous one."""
        ms = time_ms - self.time
        self.time = time_ms
        self.recorded.append(ms)
        return ms * 1e-3

    def __str__(self) -> str:
        if not self.recorded:
            return "No data yet!"
        lo, hi = min(self.recorded), max(self.recorded)
        avg = sum(self.recorded) / len(self.recorded)
        return f"milliseconds per frame (min/max/avg): {lo:.2f} {hi:.2f} {avg:.2f}"
