class RingError(Exception):
    """Base class for all ring errors"""


class CapacityExceededError(RingError):
    """Adding a server would take the ring past its slot capacity"""

    def __init__(self, server: str, occupied: int, requested: int, capacity: int):
        self.server: str = server
        self.occupied: int = occupied
        self.requested: int = requested
        self.capacity: int = capacity
        super().__init__(
            f"The ring is already full: cannot place {requested} positions for "
            f"{server!r} ({occupied}/{capacity} occupied)"
        )


class EmptyRingError(RingError):
    """Lookup on a ring that holds no servers"""

    def __init__(self) -> None:
        super().__init__("No servers available")


class PlacementExhaustedError(RingError):
    """Salted retries ran out before a server got all of its positions"""

    def __init__(self, server: str, attempts: int):
        self.server: str = server
        self.attempts: int = attempts
        super().__init__(
            f"Could not find free positions for {server!r} after {attempts} attempts"
        )


class DuplicateServerError(RingError):
    def __init__(self, server: str):
        self.server: str = server
        super().__init__(f"Server {server!r} is already on the ring")


class UnknownServerError(RingError):
    def __init__(self, server: str):
        self.server: str = server
        super().__init__(f"Server {server!r} is not on the ring")
