"""
Booking Errors

Typed failures returned to the caller of a booking command. None of these are
retried by the core; AlreadyClaimed and StaleOffer are the expected outcome of
two actors racing for the same seat.
"""

from typing import Optional
from uuid import UUID

__all__ = [
    "BookingError",
    "InvalidRequest",
    "NotEligible",
    "AlreadyClaimed",
    "StaleOffer",
    "NotFound",
    "InvalidTransition",
    "SEAT_TAKEN_MESSAGE",
]

SEAT_TAKEN_MESSAGE = "Someone else already took this"


class BookingError(Exception):
    """Base class for all booking domain failures."""

    code: str = "BookingError"
    http_status: int = 400

    def __init__(self, message: str, assignment_id: Optional[UUID] = None):
        super().__init__(message)
        self.message = message
        self.assignment_id = assignment_id

    @property
    def user_message(self) -> str:
        """Message safe to show to the end user."""
        return self.message


class InvalidRequest(BookingError):
    """Malformed input, e.g. a seat without profile or seniority."""

    code = "InvalidRequest"
    http_status = 400


class NotEligible(BookingError):
    """Candidate fails the matcher predicate at offer time."""

    code = "NotEligible"
    http_status = 422


class AlreadyClaimed(BookingError):
    """Another assignment of the same seat is pending acceptance or accepted."""

    code = "AlreadyClaimed"
    http_status = 409

    @property
    def user_message(self) -> str:
        return SEAT_TAKEN_MESSAGE


class StaleOffer(BookingError):
    """Lost a race on accept/decline, or the offer was withdrawn."""

    code = "StaleOffer"
    http_status = 409

    @property
    def user_message(self) -> str:
        return SEAT_TAKEN_MESSAGE


class NotFound(BookingError):
    """Unknown assignment, seat, candidate or project."""

    code = "NotFound"
    http_status = 404


class InvalidTransition(BookingError):
    """Command is not legal from the current state."""

    code = "InvalidTransition"
    http_status = 409
