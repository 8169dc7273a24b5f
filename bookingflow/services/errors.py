"""Exceptions raised by the service layer and translated to HTTP errors by the routes."""


class BookingError(Exception):
    """
    Base class for refusals coming out of the service layer.
    Carries a human-readable message suitable for the API response.
    """
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ValidationFailure(BookingError):
    """Candidate input rejected before it reaches the availability engine."""


class SlotUnavailableError(BookingError):
    """The requested time collides with an existing booking (buffers included)."""

    def __init__(self, message: str, conflicting_booking_ids=None):
        self.conflicting_booking_ids = conflicting_booking_ids or []
        super().__init__(message)


class TransitionError(BookingError):
    """A workflow change was refused (unknown/inactive status, invalid assignee)."""


class CatalogError(BookingError):
    """A change to event types or workflow statuses was refused."""


class ReferenceDataError(BookingError):
    """Required seed rows (default status, an active event type) are missing."""
