from nuber.dispatch.dispatcher import NuberDispatch
from nuber.dispatch.region import NuberRegion
from nuber.models.booking import Booking, BookingResult, BookingState
from nuber.models.delay import FixedDelay, RandomDelay
from nuber.models.driver import Driver
from nuber.models.passenger import Passenger

__all__ = [
    "NuberDispatch",
    "NuberRegion",
    "Booking",
    "BookingResult",
    "BookingState",
    "Driver",
    "Passenger",
    "FixedDelay",
    "RandomDelay",
]
