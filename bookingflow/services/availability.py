"""
Availability engine - decides whether a time slot can still be booked.

A candidate slot is padded with its own event type's buffers, every
relevant existing booking is padded with *its* event type's buffers, and
the two padded intervals are compared as half-open ranges. Buffers are
therefore asymmetric: the gap required between two bookings is the earlier
one's buffer_after plus the later one's buffer_before.

Relevant bookings are those in an active workflow status other than
"pending" (pending requests may still be rejected, so they never block).
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from bookingflow.models.domain import Booking, WorkflowStatus
from bookingflow.models.enums import StatusRole
from bookingflow.services.bookings import BookingRepository
from bookingflow.services.catalog import CatalogSnapshot
from bookingflow.services.intervals import Interval, padded_interval

logger = logging.getLogger(__name__)


class AvailabilityEngine:
    """Buffer-aware overlap checks against the booking store."""

    def __init__(self, db: Session, catalog: Optional[CatalogSnapshot] = None):
        self.db = db
        self.catalog = catalog or CatalogSnapshot.load(db)

    def candidate_interval(
        self,
        start: datetime,
        duration_minutes: int,
        event_type_id: Optional[int] = None,
    ) -> Interval:
        """Padded interval of a requested slot (zero buffers without an event type)."""
        before, after = self.catalog.buffers_for(event_type_id)
        return padded_interval(start, duration_minutes, before, after)

    def booking_interval(self, booking: Booking) -> Interval:
        """Padded interval of an existing booking, using its own event type's buffers."""
        before, after = self.catalog.buffers_for(booking.event_type_id)
        return padded_interval(booking.start_at, booking.duration_minutes, before, after)

    def is_slot_available(
        self,
        start: datetime,
        duration_minutes: int,
        event_type_id: Optional[int] = None,
        exclude_booking_id: Optional[int] = None,
    ) -> bool:
        """
        True if the padded candidate slot overlaps no relevant booking.

        Input is assumed to be validated already (positive duration,
        concrete instant).
        """
        candidate = self.candidate_interval(start, duration_minutes, event_type_id)
        for booking in self._relevant_bookings(candidate, exclude_booking_id):
            existing = self.booking_interval(booking)
            if existing.overlaps(candidate):
                logger.debug(
                    "Conflict: booking %s occupies %s - %s, requested %s - %s",
                    booking.id,
                    existing.start.isoformat(),
                    existing.end.isoformat(),
                    candidate.start.isoformat(),
                    candidate.end.isoformat(),
                )
                return False
        return True

    def find_conflicts(
        self,
        start: datetime,
        duration_minutes: int,
        event_type_id: Optional[int] = None,
        exclude_booking_id: Optional[int] = None,
    ) -> List[Booking]:
        """All relevant bookings whose padded interval overlaps the padded candidate."""
        candidate = self.candidate_interval(start, duration_minutes, event_type_id)
        return [
            booking
            for booking in self._relevant_bookings(candidate, exclude_booking_id)
            if self.booking_interval(booking).overlaps(candidate)
        ]

    def _relevant_bookings(
        self,
        candidate: Interval,
        exclude_booking_id: Optional[int] = None,
    ) -> List[Booking]:
        """
        Bookings that could overlap the padded candidate.

        The range on the unpadded start is the widest any booking could
        reach: it may begin up to max(buffer_before) after the candidate's
        padded end, or end up to max(duration) + max(buffer_after) before
        the candidate's padded start. No row cap is applied.
        """
        latest_start = candidate.end + timedelta(minutes=self.catalog.max_buffer_before)
        earliest_start = candidate.start - timedelta(
            minutes=BookingRepository.max_duration_minutes(self.db) + self.catalog.max_buffer_after
        )

        query = (
            self.db.query(Booking)
            .join(WorkflowStatus, Booking.status_id == WorkflowStatus.id)
            .filter(
                WorkflowStatus.is_active.is_(True),
                Booking.start_at < latest_start,
                Booking.start_at > earliest_start,
            )
        )

        pending = self.catalog.status_for(StatusRole.PENDING)
        if pending is not None:
            query = query.filter(Booking.status_id != pending.id)
        else:
            logger.warning("No pending workflow status found, all active bookings block slots")

        if exclude_booking_id is not None:
            query = query.filter(Booking.id != exclude_booking_id)

        return query.order_by(Booking.start_at).all()
