import itertools
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from nuber.models.driver import Driver
from nuber.models.passenger import Passenger
from nuber.simulation.config import DRIVER_POLL_INTERVAL

_id_lock = threading.Lock()
_id_counter = itertools.count(1)


def _next_booking_id() -> int:
    with _id_lock:
        return next(_id_counter)


class BookingState(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in progress"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class BookingResult:
    booking_id: int
    passenger: Passenger
    driver: Optional[Driver]
    trip_duration: int  # ms from booking creation to completion

    @property
    def completed(self) -> bool:
        return self.driver is not None


class Booking:
    """
    One passenger's trip, from the moment a region accepts it until the
    passenger reaches their destination (or the booking is aborted).

    The owning region runs execute() on a worker thread. abort() may be called
    from any other thread; whichever of abort() and the driver claim happens
    first decides how the booking ends.
    """

    def __init__(self, dispatch, passenger: Passenger):
        self.booking_id = _next_booking_id()
        self.dispatch = dispatch
        self.passenger = passenger
        self.created_at = time.time()
        self._started = time.monotonic()
        self.driver: Optional[Driver] = None
        self.state = BookingState.PENDING
        self._lock = threading.Lock()

        self.dispatch.log_event(self, "Creating booking")

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self._started) * 1000)

    @property
    def is_pending(self) -> bool:
        return self.state == BookingState.PENDING

    def execute(self, cancel: Optional[threading.Event] = None) -> BookingResult:
        """
        Get a driver, pick up the passenger and drive them to their destination.

        Waits for an idle driver in DRIVER_POLL_INTERVAL steps. Gives up with a
        driverless result once `cancel` is set or the booking has been aborted.
        The driver is handed back to dispatch exactly once.
        """
        self.dispatch.log_event(self, "Starting booking, getting driver")
        driver = None
        while driver is None:
            if not self.is_pending or (cancel is not None and cancel.is_set()):
                return self.abort() or self._driverless_result()
            driver = self.dispatch.get_driver(timeout=DRIVER_POLL_INTERVAL)

        if not self._claim(driver):
            # Aborted between the pool handing out the driver and the claim
            self.dispatch.release_driver(driver)
            return self._driverless_result()

        try:
            self.dispatch.log_event(self, "Starting, on way to passenger")
            driver.pick_up_passenger(self.passenger)
            self.dispatch.log_event(self, "Collected passenger, on way to destination")
            driver.drive_to_destination()
        finally:
            trip_duration = self.elapsed_ms()
            self.dispatch.release_driver(driver)

        with self._lock:
            self.state = BookingState.RESOLVED
        self.dispatch.log_event(self, "At destination, driver is now free")
        return BookingResult(self.booking_id, self.passenger, driver, trip_duration)

    def abort(self) -> Optional[BookingResult]:
        """Resolve a booking that never got a driver. None if it already has one."""
        with self._lock:
            if self.state != BookingState.PENDING:
                return None
            self.state = BookingState.RESOLVED
        self.dispatch.log_event(self, "Aborted, no driver was allocated")
        return self._driverless_result()

    def _claim(self, driver: Driver) -> bool:
        with self._lock:
            if self.state != BookingState.PENDING:
                return False
            self.driver = driver
            self.state = BookingState.IN_PROGRESS
        return True

    def _driverless_result(self) -> BookingResult:
        return BookingResult(self.booking_id, self.passenger, None, self.elapsed_ms())

    def __str__(self):
        driver_name = self.driver.name if self.driver is not None else "null"
        passenger_name = self.passenger.name if self.passenger is not None else "null"
        return f"{self.booking_id}: {driver_name}: {passenger_name}"
