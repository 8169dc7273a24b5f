"""
Workflow state machine for bookings.

All booking creation and mutation goes through here so that every change of
status, assignee, notes or schedule leaves exactly one activity log entry.
Transitions between active statuses are unconstrained; is_final is advisory.
"""
import logging
from datetime import date, datetime, time
from typing import List, Optional

from sqlalchemy.orm import Session

from bookingflow.config import (
    BOOKING_MAX_DURATION,
    BOOKING_MIN_DURATION,
    DISPLAY_TIMEZONE,
)
from bookingflow.models.audit import SYSTEM_ACTOR, ActivityLog
from bookingflow.models.domain import Booking, EventType, User, WorkflowStatus, utcnow
from bookingflow.models.enums import ActivityAction
from bookingflow.services.availability import AvailabilityEngine
from bookingflow.services.bookings import BookingRepository
from bookingflow.services.catalog import CatalogService
from bookingflow.services.errors import (
    SlotUnavailableError,
    TransitionError,
    ValidationFailure,
)
from bookingflow.services.intervals import as_utc

logger = logging.getLogger(__name__)

NO_ASSIGNEE = "Ingen"

# Fields an admin may patch through update_booking
MUTABLE_FIELDS = ("status_id", "assigned_to", "additional_notes")


class WorkflowStateMachine:
    """Creates bookings and moves them through the workflow, logging each change."""

    def __init__(self, db: Session, display_timezone=DISPLAY_TIMEZONE):
        self.db = db
        self.display_timezone = display_timezone
        self.catalog = CatalogService(db)

    # Creation

    def create_booking_from_form(
        self,
        contact_name: str,
        contact_email: str,
        contact_phone: str,
        requested_date: date,
        start_time: time,
        event_type_id: Optional[int] = None,
        event_type_slug: Optional[str] = None,
        duration_hours: Optional[float] = None,
        additional_notes: Optional[str] = None,
    ) -> Booking:
        """
        Create a booking from the public form.

        The requested date and time are local to the display timezone. The
        duration defaults to the event type's. Status is always the default.
        """
        event_type = self._resolve_event_type(event_type_id, event_type_slug)

        if duration_hours:
            duration_minutes = round(duration_hours * 60)
        else:
            duration_minutes = event_type.default_duration_minutes

        start_at = datetime.combine(requested_date, start_time, tzinfo=self.display_timezone)

        logger.info(
            "Public booking request: %s at %s for %s min",
            event_type.slug,
            start_at.isoformat(),
            duration_minutes,
        )

        return self.create_booking(
            event_type_id=event_type.id,
            contact_name=contact_name,
            contact_email=contact_email,
            contact_phone=contact_phone,
            start_at=start_at,
            duration_minutes=duration_minutes,
            additional_notes=additional_notes or None,
        )

    def create_booking(
        self,
        event_type_id: int,
        contact_name: str,
        contact_email: str,
        contact_phone: str,
        start_at: datetime,
        duration_minutes: int,
        additional_notes: Optional[str] = None,
        status_id: Optional[int] = None,
        actor: Optional[User] = None,
        enforce_availability: bool = True,
    ) -> Booking:
        """
        Create a booking and its 'created' activity entry.

        Refusals:
        - Unknown event type, naive start or duration outside 30-480 minutes
        - Unknown or inactive explicit status
        - Slot taken by a non-pending booking (when enforce_availability)
        """
        if start_at.tzinfo is None:
            raise ValidationFailure("Start time must include a timezone offset.")
        self._validate_duration(duration_minutes)

        event_type = self.catalog.get_event_type(event_type_id)
        if event_type is None:
            raise ValidationFailure("Invalid event type ID")

        if status_id is None:
            status = self.catalog.get_default_status()
        else:
            status = self._resolve_target_status(status_id)

        if enforce_availability:
            engine = AvailabilityEngine(self.db)
            conflicts = engine.find_conflicts(start_at, duration_minutes, event_type.id)
            if conflicts:
                raise SlotUnavailableError(
                    "The requested time is not available.",
                    conflicting_booking_ids=[b.id for b in conflicts],
                )

        booking = Booking(
            event_type_id=event_type.id,
            contact_name=contact_name,
            contact_email=contact_email,
            contact_phone=contact_phone,
            start_at=as_utc(start_at),
            duration_minutes=duration_minutes,
            additional_notes=additional_notes,
            status_id=status.id,
        )
        self.db.add(booking)
        self.db.flush()

        local_date = as_utc(start_at).astimezone(self.display_timezone).strftime("%Y-%m-%d")
        self._log(
            booking,
            ActivityAction.CREATED,
            f"Bokning skapad för {event_type.name} den {local_date}",
            actor,
        )

        self.db.commit()
        self.db.refresh(booking)
        logger.info("Created booking %s in status %s", booking.id, status.slug)
        return booking

    # Transitions

    def update_booking(
        self,
        booking: Booking,
        updates: dict,
        actor: Optional[User] = None,
    ) -> Booking:
        """
        Apply an admin patch of status, assignee and/or notes.

        Each field that actually changes produces its own activity entry;
        unchanged or absent fields produce none. The whole patch is
        validated before anything is written.
        """
        unknown = set(updates) - set(MUTABLE_FIELDS)
        if unknown:
            raise ValidationFailure(f"Cannot update fields: {', '.join(sorted(unknown))}")

        old_status = booking.status
        old_assignee = booking.assignee
        old_notes = booking.additional_notes

        new_status = None
        if "status_id" in updates and updates["status_id"] != booking.status_id:
            if updates["status_id"] is None:
                raise TransitionError("Status is required")
            new_status = self._resolve_target_status(updates["status_id"])

        assignee_changed = "assigned_to" in updates and updates["assigned_to"] != booking.assigned_to
        new_assignee = None
        if assignee_changed and updates["assigned_to"] is not None:
            new_assignee = self._resolve_assignee(updates["assigned_to"])

        notes_changed = (
            "additional_notes" in updates and updates["additional_notes"] != old_notes
        )

        if new_status is not None:
            booking.status = new_status
            self._log(
                booking,
                ActivityAction.STATUS_CHANGED,
                f'Status ändrad från "{old_status.name}" till "{new_status.name}"',
                actor,
            )

        if assignee_changed:
            booking.assigned_to = new_assignee.id if new_assignee else None
            old_name = old_assignee.display_name if old_assignee else NO_ASSIGNEE
            new_name = new_assignee.display_name if new_assignee else NO_ASSIGNEE
            self._log(
                booking,
                ActivityAction.ASSIGNED,
                f'Ansvarig ändrad från "{old_name}" till "{new_name}"',
                actor,
            )

        if notes_changed:
            booking.additional_notes = updates["additional_notes"]
            self._log(
                booking,
                ActivityAction.NOTES_ADDED,
                "Anteckningar uppdaterades" if updates["additional_notes"] else "Anteckningar togs bort",
                actor,
            )

        if new_status is not None or assignee_changed or notes_changed:
            booking.updated_at = utcnow()
            self.db.commit()
            self.db.refresh(booking)
            logger.info(
                "Booking %s updated by %s",
                booking.id,
                actor.display_name if actor else SYSTEM_ACTOR,
            )

        return booking

    def change_status(self, booking: Booking, status_id: int, actor: Optional[User] = None) -> Booking:
        return self.update_booking(booking, {"status_id": status_id}, actor)

    def assign(self, booking: Booking, user_id: Optional[str], actor: Optional[User] = None) -> Booking:
        return self.update_booking(booking, {"assigned_to": user_id}, actor)

    def reschedule(
        self,
        booking: Booking,
        start_at: datetime,
        duration_minutes: Optional[int] = None,
        actor: Optional[User] = None,
        enforce_availability: bool = True,
    ) -> Booking:
        """Move a booking to a new time, checking availability without counting itself."""
        if start_at.tzinfo is None:
            raise ValidationFailure("Start time must include a timezone offset.")
        if duration_minutes is None:
            duration_minutes = booking.duration_minutes
        self._validate_duration(duration_minutes)

        if enforce_availability:
            engine = AvailabilityEngine(self.db)
            conflicts = engine.find_conflicts(
                start_at,
                duration_minutes,
                booking.event_type_id,
                exclude_booking_id=booking.id,
            )
            if conflicts:
                raise SlotUnavailableError(
                    "The requested time is not available.",
                    conflicting_booking_ids=[b.id for b in conflicts],
                )

        old_start = self._local_label(booking.start_at)
        old_duration = booking.duration_minutes

        booking.start_at = as_utc(start_at)
        booking.duration_minutes = duration_minutes
        booking.updated_at = utcnow()
        self._log(
            booking,
            ActivityAction.UPDATED,
            f'Tid ändrad från "{old_start}" ({old_duration} min) '
            f'till "{self._local_label(start_at)}" ({duration_minutes} min)',
            actor,
        )

        self.db.commit()
        self.db.refresh(booking)
        return booking

    def activity_for(self, booking: Booking) -> List[ActivityLog]:
        return BookingRepository.activity_for(self.db, booking.id)

    # Helpers

    def _log(self, booking: Booking, action: ActivityAction, details: str, actor: Optional[User]) -> None:
        self.db.add(ActivityLog(
            booking_id=booking.id,
            action=action,
            details=details,
            user_id=actor.id if actor else None,
            user_name=actor.display_name if actor else SYSTEM_ACTOR,
        ))

    def _resolve_event_type(self, event_type_id: Optional[int], event_type_slug: Optional[str]) -> EventType:
        if event_type_id is not None:
            event_type = self.catalog.get_event_type(event_type_id)
            if event_type is None:
                raise ValidationFailure("Invalid event type ID")
            return event_type
        if event_type_slug:
            event_type = self.catalog.get_event_type_by_slug(event_type_slug)
            if event_type is None:
                raise ValidationFailure(f"Event type with slug '{event_type_slug}' not found")
            return event_type
        raise ValidationFailure("Event type is required")

    def _resolve_target_status(self, status_id: int) -> WorkflowStatus:
        status = self.catalog.get_workflow_status(status_id)
        if status is None:
            raise TransitionError("Workflow status not found")
        if not status.is_active:
            raise TransitionError(f'Workflow status "{status.name}" is not active')
        return status

    def _resolve_assignee(self, user_id: str) -> User:
        user = BookingRepository.get_user(self.db, user_id)
        if user is None:
            raise TransitionError("Assigned user not found")
        if not user.is_admin:
            raise TransitionError("Can only assign bookings to admin users")
        return user

    def _validate_duration(self, duration_minutes: int) -> None:
        if not BOOKING_MIN_DURATION <= duration_minutes <= BOOKING_MAX_DURATION:
            raise ValidationFailure(
                f"Duration must be between {BOOKING_MIN_DURATION} and {BOOKING_MAX_DURATION} minutes"
            )

    def _local_label(self, value: datetime) -> str:
        return as_utc(value).astimezone(self.display_timezone).strftime("%Y-%m-%d %H:%M")
