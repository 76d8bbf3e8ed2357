from nuber.models.person import Person


class Passenger(Person):
    def travel_time(self) -> int:
        """Length of the trip in milliseconds, drawn fresh on every call"""
        return self.delay(self.max_delay)
