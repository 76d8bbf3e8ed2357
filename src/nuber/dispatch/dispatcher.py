import logging
from concurrent.futures import Future
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from nuber.dispatch.driver_pool import DriverPool
from nuber.dispatch.region import NuberRegion
from nuber.models.driver import Driver
from nuber.models.passenger import Passenger
from nuber.simulation.config import MAX_IDLE_DRIVERS, validate_regions

logger = logging.getLogger(__name__)
event_logger = logging.getLogger("nuber.events")


class NuberDispatch:
    """
    Central dispatch: owns the idle driver pool and the regions, and routes
    each passenger to the region they ask for. Admission control lives in the
    regions.
    """

    def __init__(self, region_info: Mapping[str, int], log_events: bool = False,
                 max_drivers: int = MAX_IDLE_DRIVERS):
        """
        Args:
            region_info: Region names mapped to the max simultaneous bookings each can run
            log_events: Whether log_event should emit anything
            max_drivers: Capacity of the idle driver pool
        """
        validate_regions(dict(region_info))
        self.log_events = log_events
        self.driver_pool = DriverPool(max_drivers)

        self.log_event(None, "Creating Nuber Dispatch")
        regions: Dict[str, NuberRegion] = {}
        for region_name, max_jobs in region_info.items():
            regions[region_name] = NuberRegion(self, region_name, max_jobs)
            self.log_event(None, f"Creating Nuber region for {region_name}")
        self._regions = regions
        self.log_event(None, f"Done creating {len(regions)} regions")

    @property
    def regions(self) -> Mapping[str, NuberRegion]:
        return MappingProxyType(self._regions)

    def region(self, region_name: str) -> Optional[NuberRegion]:
        return self._regions.get(region_name)

    def add_driver(self, driver: Driver) -> bool:
        """Adds an idle driver. False if the pool is already full."""
        return self.driver_pool.add_driver(driver)

    def get_driver(self, timeout: float = 0) -> Optional[Driver]:
        return self.driver_pool.get_driver(timeout)

    def release_driver(self, driver: Driver):
        """Hand a driver back after its booking is done"""
        self.driver_pool.return_driver(driver)
        logger.debug("Driver %s is idle again", driver.name)

    def idle_driver_count(self) -> int:
        return self.driver_pool.idle_count()

    def log_event(self, booking, message: str):
        """Emit "<booking>: <message>" when event logging is on"""
        if not self.log_events:
            return
        event_logger.info("%s: %s", booking if booking is not None else "null", message)

    def book_passenger(self, passenger: Passenger, region_name: str) -> Optional[Future]:
        """
        Books a passenger into the named region.

        Returns a Future with the BookingResult, or None when the region does
        not exist or is shutting down.
        """
        self.log_event(None, f"{passenger}: Starting booking in {region_name}")
        region = self._regions.get(region_name)
        if region is None:
            self.log_event(None, f"Failed booking - Region '{region_name}' does not exist.")
            return None
        return region.book_passenger(passenger)

    def get_bookings_awaiting_driver(self) -> int:
        """Unresolved bookings across all regions"""
        return sum(region.get_bookings_awaiting_driver() for region in self._regions.values())

    def shutdown(self):
        """Tells every region to finish allocated bookings and stop accepting new ones"""
        for region in self._regions.values():
            region.shutdown()
