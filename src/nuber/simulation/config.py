import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union

# Dispatch parameters
MAX_IDLE_DRIVERS = 999  # Hard ceiling on the idle driver pool
DRIVER_POLL_INTERVAL = 0.1  # Seconds a booking waits for a driver before re-checking shutdown

# Simulation parameters
TOTAL_DRIVERS = 10  # Drivers registered at startup
TOTAL_PASSENGERS = 40  # Passengers booked over the run
MAX_DRIVER_DELAY = 100  # Upper bound on pick-up time (ms)
MAX_PASSENGER_TRAVEL = 300  # Upper bound on trip length (ms)
PASSENGER_ARRIVAL_RATE = 3.0  # Average number of new passengers per tick
TICK_INTERVAL = 0.05  # Seconds between arrival ticks
SAMPLE_INTERVAL = 0.02  # Seconds between timeline samples
DEFAULT_REGIONS = {
    "North": 3,
    "South": 2,
    "East": 2,
    "West": 1,
}


def validate_regions(regions: Dict[str, int]) -> None:
    for name, max_jobs in regions.items():
        if not isinstance(name, str) or not name:
            raise ValueError("Region names must be non-empty strings")
        if isinstance(max_jobs, bool) or not isinstance(max_jobs, int) or max_jobs < 1:
            raise ValueError(f"Region {name!r} needs a positive integer job limit, got {max_jobs!r}")


@dataclass
class SimulationConfig:
    regions: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_REGIONS))
    num_drivers: int = TOTAL_DRIVERS
    num_passengers: int = TOTAL_PASSENGERS
    max_driver_delay: int = MAX_DRIVER_DELAY
    max_passenger_travel: int = MAX_PASSENGER_TRAVEL
    arrival_rate: float = PASSENGER_ARRIVAL_RATE
    tick_interval: float = TICK_INTERVAL
    sample_interval: float = SAMPLE_INTERVAL
    shutdown_after: Optional[float] = None
    random_seed: Optional[int] = None
    log_events: bool = False

    def validate(self) -> None:
        validate_regions(self.regions)
        if not self.regions:
            raise ValueError("Simulation requires at least one region")
        if self.num_drivers < 0:
            raise ValueError("Number of drivers cannot be negative")
        if self.num_drivers > MAX_IDLE_DRIVERS:
            raise ValueError(f"At most {MAX_IDLE_DRIVERS} drivers fit in the idle pool")
        if self.num_passengers < 0:
            raise ValueError("Number of passengers cannot be negative")
        if self.max_driver_delay < 0 or self.max_passenger_travel < 0:
            raise ValueError("Delays must be non-negative")
        if self.arrival_rate <= 0:
            raise ValueError("Arrival rate must be positive")
        if self.tick_interval <= 0 or self.sample_interval <= 0:
            raise ValueError("Tick and sample intervals must be positive")
        if self.shutdown_after is not None and self.shutdown_after < 0:
            raise ValueError("shutdown_after cannot be negative")

    @classmethod
    def from_dict(cls, data: Dict) -> "SimulationConfig":
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        cfg = cls(**data)
        cfg.validate()
        return cfg

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "SimulationConfig":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.from_dict(data)
