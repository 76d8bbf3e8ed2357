import logging
from enum import Enum
from typing import Optional

from nuber.models.delay import sleep_ms
from nuber.models.passenger import Passenger
from nuber.models.person import Person

logger = logging.getLogger(__name__)


class DriverState(Enum):
    IDLE = "idle"
    PICKING_UP = "picking up"
    DRIVING = "driving"


class Driver(Person):
    """A driver is only ever held by one booking at a time, so it needs no lock"""

    def __init__(self, name: str, max_delay: int, delay=None):
        super().__init__(name, max_delay, delay)
        self.state = DriverState.IDLE
        self.current_passenger: Optional[Passenger] = None

    def pick_up_passenger(self, passenger: Passenger):
        """Take on the passenger and spend 0 to max_delay ms getting to them"""
        self.current_passenger = passenger
        self.state = DriverState.PICKING_UP
        try:
            sleep_ms(self.delay(self.max_delay))
        except Exception:
            self._go_idle()
            raise
        logger.debug("%s picked up %s", self.name, passenger.name)

    def drive_to_destination(self):
        """Drive the current passenger for their travel time, then go idle"""
        if self.current_passenger is None:
            return
        self.state = DriverState.DRIVING
        try:
            sleep_ms(self.current_passenger.travel_time())
            logger.debug("%s drove %s to destination", self.name, self.current_passenger.name)
        finally:
            self._go_idle()

    def _go_idle(self):
        self.current_passenger = None
        self.state = DriverState.IDLE
