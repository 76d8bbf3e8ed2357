import numpy as np
import threading
import time
from typing import Optional


class RandomDelay:
    """Uniform random delay in milliseconds, drawn from [0, max_delay)"""

    def __init__(self, seed: Optional[int] = None):
        self.rng = np.random.default_rng(seed)
        # numpy generators are not safe to share between threads
        self._lock = threading.Lock()

    def __call__(self, max_delay: int) -> int:
        if max_delay <= 0:
            return 0
        with self._lock:
            return int(self.rng.integers(0, max_delay))


class FixedDelay:
    """Always returns the same delay, for deterministic runs"""

    def __init__(self, delay_ms: int = 0):
        if delay_ms < 0:
            raise ValueError("Delay must be non-negative")
        self.delay_ms = delay_ms

    def __call__(self, max_delay: int) -> int:
        return self.delay_ms


def sleep_ms(duration_ms: int):
    if duration_ms > 0:
        time.sleep(duration_ms / 1000.0)
