from __future__ import annotations

import threading
import time
from typing import Callable


class LedgerClock:
    """Millisecond wall clock that never repeats or goes backwards.

    Every value handed out is strictly greater than the previous one, so a
    mutation stamped after a sync watermark always compares greater than it.
    """

    def __init__(self, source: Callable[[], float] = time.time) -> None:
        self._source = source
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            current = int(self._source() * 1000)
            if current <= self._last:
                current = self._last + 1
            self._last = current
            return current
