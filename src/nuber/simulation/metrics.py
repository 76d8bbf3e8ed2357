from dataclasses import asdict, dataclass, field
from typing import Dict, Iterable, List, Optional

import numpy as np

from nuber.models.booking import BookingResult


@dataclass
class MetricResult:
    completed_bookings: int
    aborted_bookings: int
    rejected_bookings: int
    completion_ratio: float
    average_trip: float
    median_trip: float
    pct90_trip: float
    max_trip: float
    std_trip: float
    average_abort_wait: float
    trips_per_driver: Dict[str, int] = field(default_factory=dict)
    peak_active_jobs: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return asdict(self)


def compute_metrics(
    results: Iterable[BookingResult],
    rejected: int = 0,
    peak_active_jobs: Optional[Dict[str, int]] = None,
) -> MetricResult:
    """Summarise trip durations (ms) over a batch of booking results"""
    results = list(results)
    trips = np.array([r.trip_duration for r in results if r.completed], dtype=float)
    aborted = np.array([r.trip_duration for r in results if not r.completed], dtype=float)

    # How many trips each driver ended up doing
    trips_per_driver: Dict[str, int] = {}
    for result in results:
        if result.completed:
            name = result.driver.name
            trips_per_driver[name] = trips_per_driver.get(name, 0) + 1

    accepted = len(results)
    return MetricResult(
        completed_bookings=int(trips.size),
        aborted_bookings=int(aborted.size),
        rejected_bookings=rejected,
        completion_ratio=trips.size / accepted if accepted else 0.0,
        average_trip=_stat(np.mean, trips),
        median_trip=_stat(np.median, trips),
        pct90_trip=float(np.percentile(trips, 90)) if trips.size else 0.0,
        max_trip=_stat(np.max, trips),
        std_trip=_stat(np.std, trips),
        average_abort_wait=_stat(np.mean, aborted),
        trips_per_driver=trips_per_driver,
        peak_active_jobs=dict(peak_active_jobs or {}),
    )


def _stat(fn, values: np.ndarray) -> float:
    return float(fn(values)) if values.size else 0.0


def durations_by_region(results_by_region: Dict[str, List[BookingResult]]) -> Dict[str, np.ndarray]:
    return {
        region: np.array([r.trip_duration for r in results if r.completed], dtype=float)
        for region, results in results_by_region.items()
    }
