"""Errors raised by the availability and reservation services.

Everything derives from ReservationException so the quotation and order
layers (and the HTTP routes) can catch the family in one place.
"""


class ReservationException(Exception):
    pass


class ValidationError(ReservationException):
    """Malformed input: bad window, quantity below one, unknown source type."""


class NotFoundError(ReservationException):
    """The referenced product or reservation does not exist."""


class CapacityError(ReservationException):
    """Requested quantity exceeds the free quantity for the window."""

    def __init__(self, available_quantity: int, requested_quantity: int, message: str = None):
        self.available_quantity = available_quantity
        self.requested_quantity = requested_quantity
        super().__init__(
            message
            or f"Insufficient quantity available. Only {available_quantity} units available."
        )

    @property
    def shortfall(self) -> int:
        return max(0, self.requested_quantity - self.available_quantity)


class InvalidTransitionError(ReservationException):
    """Status change attempted on a reservation that is no longer active."""

    def __init__(self, reservation_id, current_status: str, new_status: str):
        self.reservation_id = reservation_id
        self.current_status = current_status
        self.new_status = new_status
        super().__init__(
            f"Reservation {reservation_id} cannot move from {current_status} to {new_status}"
        )


class ConcurrencyConflictError(ReservationException):
    """The per-product critical section could not be entered; retry."""
