"""
Rate-limited progress reporting for front ends
"""
from __future__ import annotations

import time
from typing import Callable, Optional


class ThrottledProgress:
    """
    Forward page numbers to a sink at most once per ``interval`` seconds

    The acquisition loop reports every page; chat messages and terminals
    only need an occasional update. The latest page is always remembered
    so ``flush`` can report the final count.
    """

    def __init__(
        self,
        sink: Callable[[int], None],
        interval: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.sink = sink
        self.interval = interval
        self.clock = clock
        self.last_emit = clock()
        self.latest: Optional[int] = None
        self.emitted: Optional[int] = None

    def __call__(self, page: int) -> None:
        self.latest = page
        now = self.clock()
        if now - self.last_emit >= self.interval:
            self._emit(page, now)

    def flush(self) -> None:
        if self.latest is not None and self.latest != self.emitted:
            self._emit(self.latest, self.clock())

    def _emit(self, page: int, now: float) -> None:
        self.last_emit = now
        self.emitted = page
        self.sink(page)
