import threading
import time
from collections.abc import Callable
from typing import Protocol


class Limiter(Protocol):
    def acquire(self, permits: int = 1) -> float: ...


class RateLimiter:
    """
    Smooth token bucket that admits at most `permits_per_second` permits per second.

    No permits are stored while idle, so bursts are never admitted. The first
    acquisition on a fresh limiter is granted immediately; each later one waits
    until the previous reservation has been paid off.
    """

    def __init__(
        self,
        permits_per_second: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        :param permits_per_second: sustained rate, must be positive
        :param clock: monotonic clock in seconds
        :param sleep: function used to block the caller
        """
        if permits_per_second <= 0:
            raise ValueError(
                f"permits_per_second must be positive, got {permits_per_second}"
            )

        self.permits_per_second = permits_per_second
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._next_free: float | None = None

    @property
    def interval(self) -> float:
        return 1.0 / self.permits_per_second

    def _reserve(self, permits: int) -> float:
        with self._lock:
            now = self._clock()

            if self._next_free is None or self._next_free < now:
                self._next_free = now

            wait = self._next_free - now
            self._next_free += permits * self.interval

            return wait

    def acquire(self, permits: int = 1) -> float:
        """
        Blocks until `permits` are granted.

        :param permits: number of permits to take

        :returns: seconds spent waiting
        """
        if permits <= 0:
            raise ValueError(f"permits must be positive, got {permits}")

        wait = self._reserve(permits)
        if wait > 0:
            self._sleep(wait)

        return wait


__all__ = ["Limiter", "RateLimiter"]
