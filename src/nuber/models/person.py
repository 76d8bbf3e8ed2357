from typing import Callable, Optional

from nuber.models.delay import RandomDelay

# Shared default so unseeded people draw from one stream
_default_delay = RandomDelay()


class Person:
    def __init__(self, name: str, max_delay: int, delay: Optional[Callable[[int], int]] = None):
        if not name:
            raise ValueError("A person needs a name")
        if max_delay < 0:
            raise ValueError("max_delay must be non-negative")
        self.name = name
        self.max_delay = max_delay
        self.delay = delay or _default_delay

    def __str__(self):
        return self.name

    def __repr__(self):
        return f"{self.__class__.__name__}({self.name!r})"
