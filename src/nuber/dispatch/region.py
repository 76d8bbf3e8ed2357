import logging
import threading
from concurrent.futures import Future
from typing import Dict, List, Optional, Tuple

from nuber.models.booking import Booking, BookingResult
from nuber.models.passenger import Passenger
from nuber.simulation.config import DRIVER_POLL_INTERVAL

logger = logging.getLogger(__name__)


class NuberRegion:
    """
    A region that runs at most `max_simultaneous_jobs` bookings with a driver
    at any time. Bookings over that limit are still accepted; they wait for a
    free slot and then for a driver. Waiting bookings are not served in FIFO
    order.

    Each accepted booking gets its own worker thread. The region lock guards
    the active-job count, the booking map and the shutdown flag, and is never
    held while a booking waits for a driver or travels.
    """

    def __init__(self, dispatch, region_name: str, max_simultaneous_jobs: int):
        if max_simultaneous_jobs < 1:
            raise ValueError("A region must allow at least one simultaneous job")
        self.dispatch = dispatch
        self.region_name = region_name
        self.max_simultaneous_jobs = max_simultaneous_jobs

        self._slots = threading.Condition(threading.Lock())
        self._active_jobs = 0
        self._bookings: Dict[int, Tuple[Booking, Future]] = {}
        self._shutting_down = False
        self._shutdown_event = threading.Event()

        # Stats for reporting
        self.peak_active_jobs = 0
        self.completed_count = 0
        self.aborted_count = 0

    def book_passenger(self, passenger: Passenger) -> Optional[Future]:
        """
        Accept a booking for the passenger and start processing it.

        Returns a Future that resolves to the BookingResult, or None if the
        region is shutting down.
        """
        rejected = self._shutting_down
        if not rejected:
            # Built outside the lock so event logging never runs under it
            booking = Booking(self.dispatch, passenger)
            future: Future = Future()
            future.set_running_or_notify_cancel()
            with self._slots:
                rejected = self._shutting_down
                if not rejected:
                    self._bookings[booking.booking_id] = (booking, future)
                    queued = self._active_jobs >= self.max_simultaneous_jobs

        if rejected:
            self.dispatch.log_event(None, f"Rejected booking for {passenger} in {self.region_name}: region is shutting down")
            return None

        if queued:
            self.dispatch.log_event(booking, f"{self.region_name} at capacity, booking is waiting for a free slot")
        worker = threading.Thread(
            target=self._process_booking,
            args=(booking, future),
            name=f"{self.region_name}-booking-{booking.booking_id}",
            daemon=True,
        )
        worker.start()
        return future

    def _process_booking(self, booking: Booking, future: Future):
        if not self._acquire_slot(booking):
            # Already resolved by shutdown
            return
        try:
            result = booking.execute(cancel=self._shutdown_event)
        except Exception as exc:
            logger.exception("Booking %s failed in %s", booking.booking_id, self.region_name)
            self._release_slot()
            self._fail(booking, exc)
            return
        self._release_slot()
        self._resolve(booking, result)

    def _acquire_slot(self, booking: Booking) -> bool:
        with self._slots:
            while self._active_jobs >= self.max_simultaneous_jobs:
                if self._shutting_down or not booking.is_pending:
                    return False
                self._slots.wait(DRIVER_POLL_INTERVAL)
            if self._shutting_down or not booking.is_pending:
                return False
            self._active_jobs += 1
            self.peak_active_jobs = max(self.peak_active_jobs, self._active_jobs)
        return True

    def _release_slot(self):
        with self._slots:
            self._active_jobs -= 1
            self._slots.notify()

    def _take_future(self, booking: Booking) -> Optional[Future]:
        with self._slots:
            entry = self._bookings.pop(booking.booking_id, None)
        return entry[1] if entry is not None else None

    def _resolve(self, booking: Booking, result: BookingResult):
        future = self._take_future(booking)
        if future is None:
            return
        with self._slots:
            if result.completed:
                self.completed_count += 1
            else:
                self.aborted_count += 1
        future.set_result(result)

    def _fail(self, booking: Booking, exc: Exception):
        future = self._take_future(booking)
        if future is not None:
            future.set_exception(exc)

    def shutdown(self):
        """
        Stop accepting bookings. Bookings still waiting for a slot or a driver
        are resolved straight away without a driver; bookings that already
        have a driver finish their trip.
        """
        with self._slots:
            if self._shutting_down:
                return
            self._shutting_down = True
            self._shutdown_event.set()
            waiting: List[Booking] = [booking for booking, _ in self._bookings.values()]
            self._slots.notify_all()

        self.dispatch.log_event(None, f"Shutting down {self.region_name}, {len(waiting)} bookings unresolved")
        for booking in waiting:
            result = booking.abort()
            if result is not None:
                self._resolve(booking, result)

    def get_bookings_awaiting_driver(self) -> int:
        """Number of bookings accepted here whose result is not out yet"""
        return len(self._bookings)

    def pending_count(self) -> int:
        with self._slots:
            bookings = [booking for booking, _ in self._bookings.values()]
        return sum(1 for booking in bookings if booking.is_pending)

    @property
    def active_jobs(self) -> int:
        return self._active_jobs

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    def __repr__(self):
        return f"NuberRegion({self.region_name!r}, max_simultaneous_jobs={self.max_simultaneous_jobs})"
