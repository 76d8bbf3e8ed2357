import logging
import threading
import time
from concurrent.futures import Future, wait
from dataclasses import asdict, dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
from scipy.stats import poisson

from nuber.dispatch.dispatcher import NuberDispatch
from nuber.models.booking import BookingResult
from nuber.models.delay import RandomDelay
from nuber.models.driver import Driver
from nuber.models.passenger import Passenger
from nuber.simulation.config import SimulationConfig
from nuber.simulation.metrics import MetricResult, compute_metrics

logger = logging.getLogger(__name__)


@dataclass
class TimelineSample:
    time_s: float
    awaiting: int
    pending: int
    idle_drivers: int
    active_jobs: Dict[str, int] = field(default_factory=dict)


@dataclass
class SimulationReport:
    config: SimulationConfig
    results: List[BookingResult]
    results_by_region: Dict[str, List[BookingResult]]
    metrics: MetricResult
    timeline: List[TimelineSample]
    rejected_after_shutdown: int
    idle_drivers_at_end: int
    wall_time_s: float

    def to_dict(self) -> Dict:
        return {
            "metrics": self.metrics.to_dict(),
            "rejected_after_shutdown": self.rejected_after_shutdown,
            "idle_drivers_at_end": self.idle_drivers_at_end,
            "wall_time_s": self.wall_time_s,
            "bookings_per_region": {
                region: len(results) for region, results in self.results_by_region.items()
            },
            "config": asdict(self.config),
        }


class NuberSimulation:
    def __init__(self, config: SimulationConfig, delay: Optional[Callable[[int], int]] = None):
        """Initialize the simulation
        Args:
            config: Regions, fleet size, delays and arrival process
            delay: Delay generator shared by drivers and passengers (seeded RandomDelay by default)
        """
        config.validate()
        self.config = config
        self.rng = np.random.default_rng(config.random_seed)
        self.delay = delay or RandomDelay(config.random_seed)
        self.dispatch = NuberDispatch(config.regions, config.log_events)
        self.region_names = list(config.regions)

        # Register the fleet
        self.drivers: List[Driver] = []
        for i in range(config.num_drivers):
            driver = Driver(f"D-{i + 1}", config.max_driver_delay, self.delay)
            self.dispatch.add_driver(driver)
            self.drivers.append(driver)

        self.bookings: List[Tuple[str, Future]] = []
        self.rejected = 0
        self.passengers_created = 0
        self.shutdown_at: Optional[float] = None

        self._timeline: List[TimelineSample] = []
        self._timeline_lock = threading.Lock()
        self._stop_sampling = threading.Event()
        self._start = time.monotonic()
        self.finished = threading.Event()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self._start

    def generate_passengers(self) -> List[Passenger]:
        """Draw this tick's arrivals from a Poisson distribution"""
        remaining = self.config.num_passengers - self.passengers_created
        if remaining <= 0:
            return []
        n_new = int(poisson.rvs(self.config.arrival_rate, random_state=self.rng))
        passengers = []
        for _ in range(min(n_new, remaining)):
            self.passengers_created += 1
            passengers.append(
                Passenger(f"P-{self.passengers_created}", self.config.max_passenger_travel, self.delay)
            )
        return passengers

    def step(self):
        """Book one tick's worth of passengers into randomly chosen regions"""
        for passenger in self.generate_passengers():
            region_name = str(self.rng.choice(self.region_names))
            future = self.dispatch.book_passenger(passenger, region_name)
            if future is None:
                self.rejected += 1
            else:
                self.bookings.append((region_name, future))

        if (self.config.shutdown_after is not None and self.shutdown_at is None
                and self.elapsed >= self.config.shutdown_after):
            logger.info("Shutting down dispatch after %.2fs", self.elapsed)
            self.shutdown_at = self.elapsed
            self.dispatch.shutdown()

    def sample(self) -> TimelineSample:
        active = {name: region.active_jobs for name, region in self.dispatch.regions.items()}
        pending = sum(region.pending_count() for region in self.dispatch.regions.values())
        sample = TimelineSample(
            time_s=self.elapsed,
            awaiting=self.dispatch.get_bookings_awaiting_driver(),
            pending=pending,
            idle_drivers=self.dispatch.idle_driver_count(),
            active_jobs=active,
        )
        with self._timeline_lock:
            self._timeline.append(sample)
        return sample

    def timeline(self) -> List[TimelineSample]:
        with self._timeline_lock:
            return list(self._timeline)

    def _sample_loop(self):
        while not self._stop_sampling.is_set():
            self.sample()
            self._stop_sampling.wait(self.config.sample_interval)

    def run(self) -> SimulationReport:
        self._start = time.monotonic()
        sampler = threading.Thread(target=self._sample_loop, name="timeline-sampler", daemon=True)
        sampler.start()
        try:
            while self.passengers_created < self.config.num_passengers:
                self.step()
                time.sleep(self.config.tick_interval)

            if not self.drivers:
                # Nobody could ever serve these bookings
                self.dispatch.shutdown()
            wait([future for _, future in self.bookings])
            self.dispatch.shutdown()

            # Anything booked now must be turned away
            rejected_after_shutdown = 0
            for region_name in self.region_names:
                late = Passenger("late-arrival", self.config.max_passenger_travel, self.delay)
                if self.dispatch.book_passenger(late, region_name) is None:
                    rejected_after_shutdown += 1
        finally:
            self._stop_sampling.set()
            sampler.join()
        self.sample()
        self.finished.set()

        results_by_region: Dict[str, List[BookingResult]] = {name: [] for name in self.region_names}
        for region_name, future in self.bookings:
            results_by_region[region_name].append(future.result())
        results = [result for region_results in results_by_region.values() for result in region_results]

        peaks = {name: region.peak_active_jobs for name, region in self.dispatch.regions.items()}
        metrics = compute_metrics(results, rejected=self.rejected, peak_active_jobs=peaks)
        return SimulationReport(
            config=self.config,
            results=results,
            results_by_region=results_by_region,
            metrics=metrics,
            timeline=self.timeline(),
            rejected_after_shutdown=rejected_after_shutdown,
            idle_drivers_at_end=self.dispatch.idle_driver_count(),
            wall_time_s=self.elapsed,
        )
