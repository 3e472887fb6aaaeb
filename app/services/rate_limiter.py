import threading
import time
from typing import Callable, TypeVar

T = TypeVar("T")


class MinIntervalRateLimiter:
    """
    Serializes call starts so that consecutive calls begin at least
    `min_interval_ms` apart. Construct once per process and pass it to every
    service wrapper that talks to the same backend.
    """

    def __init__(
        self,
        min_interval_ms: int = 300,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval = max(0, min_interval_ms) / 1000.0
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_start = None

    @property
    def enabled(self) -> bool:
        return self.min_interval > 0

    def acquire(self) -> None:
        """Block until the next call may start, then claim that start slot."""
        if not self.enabled:
            return
        # The sleep happens under the lock, so concurrent callers queue here
        # and each one starts a full interval after the previous start
        with self._lock:
            if self._last_start is not None:
                wait = self.min_interval - (self._clock() - self._last_start)
                if wait > 0:
                    self._sleep(wait)
            self._last_start = self._clock()

    def run(self, task: Callable[[], T]) -> T:
        self.acquire()
        return task()
