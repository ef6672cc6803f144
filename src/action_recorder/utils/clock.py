"""
Clocks - millisecond time sources for action timestamps.

Recording code never reads the wall clock directly; it is handed a clock.
Scripted captures use ManualClock so timestamps (and therefore the
deduplication window) are deterministic.
"""

import time


class SystemClock:
    """Wall clock in epoch milliseconds."""
    
    def now_ms(self) -> int:
        return int(time.time() * 1000)


class ManualClock:
    """
    Clock advanced explicitly by the caller.
    
    Example:
        >>> clock = ManualClock(1000)
        >>> clock.advance(250)
        >>> clock.now_ms()
        1250
    """
    
    def __init__(self, start_ms: int = 0):
        self._now = int(start_ms)
    
    def now_ms(self) -> int:
        return self._now
    
    def advance(self, ms: int) -> None:
        if ms < 0:
            raise ValueError("Cannot move a clock backwards")
        self._now += int(ms)
    
    def set(self, ms: int) -> None:
        self._now = int(ms)
