import threading
import time
import unittest

from nuber.dispatch.dispatcher import NuberDispatch
from nuber.models.booking import Booking, BookingState
from nuber.models.delay import FixedDelay
from nuber.models.driver import Driver, DriverState
from nuber.models.passenger import Passenger


class BookingTest(unittest.TestCase):
    def setUp(self):
        self.dispatch = NuberDispatch({}, log_events=False)
        self.passenger = Passenger("Alice", 100, FixedDelay(20))

    def test_ids_are_unique_and_increase_per_thread(self):
        per_thread = {}

        def create(key):
            per_thread[key] = [Booking(self.dispatch, self.passenger).booking_id for _ in range(100)]

        threads = [threading.Thread(target=create, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        all_ids = [booking_id for ids in per_thread.values() for booking_id in ids]
        self.assertEqual(len(all_ids), 800)
        self.assertEqual(len(set(all_ids)), 800)
        for ids in per_thread.values():
            self.assertEqual(ids, sorted(ids))

    def test_string_shows_null_for_missing_names(self):
        booking = Booking(self.dispatch, self.passenger)
        self.assertEqual(str(booking), f"{booking.booking_id}: null: Alice")
        empty = Booking(self.dispatch, None)
        self.assertEqual(str(empty), f"{empty.booking_id}: null: null")

    def test_execute_runs_trip_and_returns_driver(self):
        driver = Driver("Dave", 100, FixedDelay(20))
        self.dispatch.add_driver(driver)
        booking = Booking(self.dispatch, self.passenger)

        result = booking.execute()

        self.assertIs(result.driver, driver)
        self.assertIs(result.passenger, self.passenger)
        self.assertEqual(result.booking_id, booking.booking_id)
        self.assertTrue(result.completed)
        self.assertGreaterEqual(result.trip_duration, 35)
        self.assertEqual(booking.state, BookingState.RESOLVED)
        self.assertEqual(str(booking), f"{booking.booking_id}: Dave: Alice")
        self.assertEqual(self.dispatch.idle_driver_count(), 1)
        self.assertIsNone(driver.current_passenger)
        self.assertEqual(driver.state, DriverState.IDLE)

    def test_execute_waits_for_a_driver(self):
        booking = Booking(self.dispatch, self.passenger)
        driver = Driver("Slow", 0, FixedDelay(0))
        timer = threading.Timer(0.15, self.dispatch.add_driver, args=(driver,))
        timer.start()
        try:
            result = booking.execute()
        finally:
            timer.cancel()
        self.assertIs(result.driver, driver)
        self.assertGreaterEqual(result.trip_duration, 100)

    def test_cancel_gives_driverless_result(self):
        cancel = threading.Event()
        cancel.set()
        booking = Booking(self.dispatch, self.passenger)
        start = time.monotonic()
        result = booking.execute(cancel=cancel)
        self.assertLess(time.monotonic() - start, 1.0)
        self.assertIsNone(result.driver)
        self.assertFalse(result.completed)
        self.assertEqual(booking.state, BookingState.RESOLVED)

    def test_abort_only_resolves_once(self):
        booking = Booking(self.dispatch, self.passenger)
        result = booking.abort()
        self.assertIsNotNone(result)
        self.assertIsNone(result.driver)
        self.assertIsNone(booking.abort())

    def test_aborted_booking_leaves_drivers_in_pool(self):
        driver = Driver("Idle", 0, FixedDelay(0))
        self.dispatch.add_driver(driver)
        booking = Booking(self.dispatch, self.passenger)
        booking.abort()
        result = booking.execute()
        self.assertIsNone(result.driver)
        self.assertIsNone(booking.driver)
        self.assertEqual(self.dispatch.idle_driver_count(), 1)

    def test_abort_before_claim_sends_driver_back(self):
        class AbortingDispatch(NuberDispatch):
            booking = None

            def get_driver(self, timeout=0):
                driver = super().get_driver(timeout)
                self.booking.abort()
                return driver

        dispatch = AbortingDispatch({})
        driver = Driver("Quick", 0, FixedDelay(0))
        dispatch.add_driver(driver)
        booking = Booking(dispatch, self.passenger)
        dispatch.booking = booking

        result = booking.execute()

        self.assertIsNone(result.driver)
        self.assertIsNone(booking.driver)
        self.assertEqual(booking.state, BookingState.RESOLVED)
        self.assertEqual(dispatch.idle_driver_count(), 1)
        self.assertIsNone(driver.current_passenger)

    def test_failed_delay_leaves_driver_idle(self):
        def broken(max_delay):
            raise RuntimeError("delay source failed")

        driver = Driver("Faulty", 10, broken)
        with self.assertRaises(RuntimeError):
            driver.pick_up_passenger(self.passenger)
        self.assertIsNone(driver.current_passenger)
        self.assertEqual(driver.state, DriverState.IDLE)

        driver = Driver("Fine", 10, FixedDelay(0))
        driver.pick_up_passenger(Passenger("Zed", 10, broken))
        with self.assertRaises(RuntimeError):
            driver.drive_to_destination()
        self.assertIsNone(driver.current_passenger)
        self.assertEqual(driver.state, DriverState.IDLE)

    def test_travel_time_is_drawn_each_call(self):
        calls = []

        def delay(max_delay):
            calls.append(max_delay)
            return len(calls)

        passenger = Passenger("Bea", 50, delay)
        self.assertEqual(passenger.travel_time(), 1)
        self.assertEqual(passenger.travel_time(), 2)
        self.assertEqual(calls, [50, 50])


if __name__ == "__main__":
    unittest.main()
