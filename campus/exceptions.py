class CampusError(Exception):
    """Base class for booking-domain errors."""


class AvailabilityUnavailable(CampusError):
    """
    The booking store could not be read, so availability is unknown.
    Callers must treat this as "try again", never as "available".
    """

    retryable = True


class BookingConflict(CampusError):
    def __init__(self, conflict):
        self.conflict = conflict
        super().__init__(
            f"{conflict.facility.name} is already booked on {conflict.date} "
            f"from {conflict.start_time} to {conflict.end_time}."
        )


class TransitionNotAllowed(CampusError):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change status from {current} to {target}.")
