"""Public calendar projections - what the booking form shows as taken."""
import logging
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import List, Optional

from sqlalchemy.orm import Session

from bookingflow.config import DISPLAY_TIMEZONE
from bookingflow.models.domain import Booking, WorkflowStatus
from bookingflow.models.enums import StatusRole
from bookingflow.services.availability import AvailabilityEngine
from bookingflow.services.catalog import CatalogSnapshot
from bookingflow.services.intervals import as_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockedSlot:
    """
    An opaque blocked window on the public calendar.

    Deliberately carries no contact details, notes or assignee.
    """
    id: int
    date: str  # YYYY-MM-DD of the padded start, display timezone
    start_time: str  # HH:MM, display timezone, buffer included
    end_time: str  # HH:MM, display timezone, buffer included
    event_type_label: str
    event_type_slug: str
    status_slug: str


class BlockedSlotProjector:
    """Projects approved bookings onto the public calendar, buffers included."""

    def __init__(self, db: Session, display_timezone: tzinfo = DISPLAY_TIMEZONE):
        self.db = db
        self.display_timezone = display_timezone

    def project(self) -> List[BlockedSlot]:
        catalog = CatalogSnapshot.load(self.db)
        approved = catalog.status_for(StatusRole.APPROVED)
        if approved is None:
            logger.warning("No approved status found, returning empty blocked slots")
            return []

        bookings = (
            self.db.query(Booking)
            .filter(Booking.status_id == approved.id)
            .order_by(Booking.start_at)
            .all()
        )

        engine = AvailabilityEngine(self.db, catalog)
        slots = []
        for booking in bookings:
            blocked = engine.booking_interval(booking)
            local_start = blocked.start.astimezone(self.display_timezone)
            local_end = blocked.end.astimezone(self.display_timezone)
            event_type = catalog.event_type(booking.event_type_id)
            slots.append(BlockedSlot(
                id=booking.id,
                date=local_start.strftime("%Y-%m-%d"),
                start_time=local_start.strftime("%H:%M"),
                end_time=local_end.strftime("%H:%M"),
                event_type_label=event_type.name if event_type else "",
                event_type_slug=event_type.slug if event_type else "",
                status_slug=approved.slug,
            ))
        return slots

    def bookings_in_range(self, start: datetime, end: datetime) -> List[Booking]:
        """Non-pending bookings starting within [start, end], by start time."""
        query = (
            self.db.query(Booking)
            .filter(
                Booking.start_at >= as_utc(start),
                Booking.start_at <= as_utc(end),
            )
        )

        pending: Optional[WorkflowStatus] = CatalogSnapshot.load(self.db).status_for(StatusRole.PENDING)
        if pending is not None:
            query = query.filter(Booking.status_id != pending.id)

        return query.order_by(Booking.start_at).all()
