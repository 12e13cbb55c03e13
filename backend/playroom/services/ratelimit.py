import time
from typing import Callable, Dict, Tuple

# Reclaim pass only runs once the table grows past this many keys
SOFT_MAX_KEYS = 4096
# An entry is stale once its window is this many windows old...
IDLE_WINDOWS = 10
# ...or once its burst ran this many times past the limit
BURST_FACTOR = 10


class _Window:
    __slots__ = ('count', 'window_start', 'window_ms', 'max_calls')

    def __init__(self, now_ms: float, window_ms: int, max_calls: int):
        self.count = 1
        self.window_start = now_ms
        self.window_ms = window_ms
        self.max_calls = max_calls


class RateLimiter:
    """Fixed-window call counter keyed by (connection id, action).

    Over-limit calls are reported as ``False`` and the caller drops them
    without telling the sender.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, soft_max_keys: int = SOFT_MAX_KEYS):
        self._clock = clock
        self._soft_max_keys = soft_max_keys
        self._windows: Dict[Tuple[str, str], _Window] = {}

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def allow(self, connection_id: str, action: str, max_calls: int, window_ms: int) -> bool:
        now = self._now_ms()
        key = (connection_id, action)
        entry = self._windows.get(key)
        if entry is None or now - entry.window_start > window_ms:
            self._windows[key] = _Window(now, window_ms, max_calls)
            if len(self._windows) > self._soft_max_keys:
                self._reclaim(now)
            return True
        entry.count += 1
        return entry.count <= max_calls

    def _reclaim(self, now: float) -> None:
        stale = [
            key for key, w in self._windows.items()
            if now - w.window_start > w.window_ms * IDLE_WINDOWS
            or w.count > w.max_calls * BURST_FACTOR and now - w.window_start > w.window_ms
        ]
        for key in stale:
            del self._windows[key]

    def forget(self, connection_id: str) -> None:
        for key in [k for k in self._windows if k[0] == connection_id]:
            del self._windows[key]

    def __len__(self) -> int:
        return len(self._windows)
