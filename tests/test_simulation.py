import json
import tempfile
import unittest
from pathlib import Path

from nuber.models.booking import BookingResult
from nuber.models.delay import FixedDelay
from nuber.models.driver import Driver
from nuber.models.passenger import Passenger
from nuber.simulation.config import DEFAULT_REGIONS, SimulationConfig
from nuber.simulation.metrics import compute_metrics
from nuber.simulation.simulation import NuberSimulation


def small_config(**overrides) -> SimulationConfig:
    values = dict(
        regions={"North": 2, "South": 1},
        num_drivers=3,
        num_passengers=10,
        max_driver_delay=10,
        max_passenger_travel=10,
        arrival_rate=4.0,
        tick_interval=0.01,
        sample_interval=0.005,
        random_seed=7,
    )
    values.update(overrides)
    return SimulationConfig(**values)


class SimulationConfigTest(unittest.TestCase):
    def test_defaults_are_valid(self):
        config = SimulationConfig()
        config.validate()
        self.assertEqual(config.regions, DEFAULT_REGIONS)
        self.assertIsNot(config.regions, DEFAULT_REGIONS)

    def test_from_dict_validates(self):
        with self.assertRaises(ValueError):
            SimulationConfig.from_dict({"regions": {"North": 0}})
        with self.assertRaises(ValueError):
            SimulationConfig.from_dict({"regions": {}})
        with self.assertRaises(ValueError):
            SimulationConfig.from_dict({"num_drivers": -1})
        with self.assertRaises(ValueError):
            SimulationConfig.from_dict({"arrival_rate": 0})
        with self.assertRaises(ValueError):
            SimulationConfig.from_dict({"road_network": "grid"})

    def test_from_json(self):
        data = {"regions": {"Harbour": 2}, "num_drivers": 4, "random_seed": 3}
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            path.write_text(json.dumps(data), encoding="utf-8")
            config = SimulationConfig.from_json(path)
        self.assertEqual(config.regions, {"Harbour": 2})
        self.assertEqual(config.num_drivers, 4)
        self.assertEqual(config.num_passengers, SimulationConfig().num_passengers)


class MetricsTest(unittest.TestCase):
    def test_basic_metrics(self):
        rider = Passenger("P", 1, FixedDelay(0))
        ann = Driver("Ann", 1, FixedDelay(0))
        bob = Driver("Bob", 1, FixedDelay(0))
        results = [
            BookingResult(1, rider, ann, 100),
            BookingResult(2, rider, bob, 200),
            BookingResult(3, rider, ann, 300),
            BookingResult(4, rider, None, 50),
        ]
        metrics = compute_metrics(results, rejected=2, peak_active_jobs={"North": 2})
        self.assertEqual(metrics.completed_bookings, 3)
        self.assertEqual(metrics.aborted_bookings, 1)
        self.assertEqual(metrics.rejected_bookings, 2)
        self.assertAlmostEqual(metrics.completion_ratio, 0.75)
        self.assertAlmostEqual(metrics.average_trip, 200.0)
        self.assertAlmostEqual(metrics.median_trip, 200.0)
        self.assertAlmostEqual(metrics.max_trip, 300.0)
        self.assertAlmostEqual(metrics.average_abort_wait, 50.0)
        self.assertEqual(metrics.trips_per_driver, {"Ann": 2, "Bob": 1})
        self.assertEqual(metrics.peak_active_jobs, {"North": 2})

    def test_handles_no_results(self):
        metrics = compute_metrics([])
        self.assertEqual(metrics.completed_bookings, 0)
        self.assertEqual(metrics.completion_ratio, 0.0)
        self.assertEqual(metrics.average_trip, 0.0)
        self.assertEqual(metrics.pct90_trip, 0.0)


class SimulationIntegrationTest(unittest.TestCase):
    def test_all_passengers_complete(self):
        config = small_config()
        report = NuberSimulation(config).run()

        self.assertEqual(len(report.results), 10)
        self.assertEqual(report.metrics.completed_bookings, 10)
        self.assertEqual(report.metrics.aborted_bookings, 0)
        self.assertEqual(report.idle_drivers_at_end, 3)
        self.assertEqual(report.rejected_after_shutdown, 2)
        self.assertLessEqual(report.metrics.peak_active_jobs["North"], 2)
        self.assertLessEqual(report.metrics.peak_active_jobs["South"], 1)
        self.assertGreater(len(report.timeline), 0)
        self.assertEqual(report.timeline[-1].awaiting, 0)
        self.assertEqual(sorted(report.to_dict()["bookings_per_region"]), ["North", "South"])

    def test_without_drivers_every_booking_is_aborted(self):
        config = small_config(num_drivers=0, num_passengers=4)
        report = NuberSimulation(config).run()
        self.assertEqual(report.metrics.completed_bookings, 0)
        self.assertEqual(report.metrics.aborted_bookings, 4)
        self.assertTrue(all(result.driver is None for result in report.results))

    def test_early_shutdown_accounts_for_every_passenger(self):
        config = small_config(num_passengers=20, shutdown_after=0.0)
        report = NuberSimulation(config).run()
        m = report.metrics
        self.assertEqual(m.completed_bookings + m.aborted_bookings + m.rejected_bookings, 20)
        self.assertGreater(m.rejected_bookings, 0)
        self.assertEqual(report.idle_drivers_at_end, 3)

    def test_fixed_delay_trips(self):
        config = small_config(num_passengers=3)
        report = NuberSimulation(config, delay=FixedDelay(5)).run()
        self.assertEqual(report.metrics.completed_bookings, 3)
        self.assertGreaterEqual(min(r.trip_duration for r in report.results), 9)


if __name__ == "__main__":
    unittest.main()
