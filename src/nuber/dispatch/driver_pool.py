import logging
import threading
from collections import deque
from typing import Deque, Optional

from nuber.models.driver import Driver
from nuber.simulation.config import MAX_IDLE_DRIVERS

logger = logging.getLogger(__name__)


class DriverPool:
    """
    Idle drivers shared by every region, handed out first in, first out.

    Drivers out on a trip still count towards max_drivers, so a driver coming
    back always has room.
    """

    def __init__(self, max_drivers: int = MAX_IDLE_DRIVERS):
        if max_drivers < 0:
            raise ValueError("max_drivers cannot be negative")
        self.max_drivers = max_drivers
        self._idle: Deque[Driver] = deque()
        self._on_trip = 0
        self._available = threading.Condition(threading.Lock())

    def add_driver(self, driver: Driver) -> bool:
        """Register a new idle driver. False once the fleet is at max_drivers."""
        with self._available:
            if len(self._idle) + self._on_trip >= self.max_drivers:
                logger.debug("Pool full, turning away %s", driver.name)
                return False
            self._idle.append(driver)
            self._available.notify()
        return True

    def return_driver(self, driver: Driver):
        """Put back a driver previously taken with get_driver"""
        with self._available:
            self._on_trip = max(0, self._on_trip - 1)
            self._idle.append(driver)
            self._available.notify()

    def get_driver(self, timeout: float = 0) -> Optional[Driver]:
        """
        Remove and return an idle driver.

        With timeout 0 this never blocks. Otherwise waits up to `timeout`
        seconds for a driver to be added and returns None if none turns up.
        """
        with self._available:
            if timeout > 0 and not self._idle:
                self._available.wait_for(lambda: self._idle, timeout)
            if not self._idle:
                return None
            self._on_trip += 1
            return self._idle.popleft()

    def idle_count(self) -> int:
        with self._available:
            return len(self._idle)

    def on_trip_count(self) -> int:
        with self._available:
            return self._on_trip

    def __len__(self):
        return self.idle_count()
