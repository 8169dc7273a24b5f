"""API routes for the public booking form, the public calendar and the admin board."""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from bookingflow.api.auth import get_current_user, require_admin
from bookingflow.api.schemas import (
    ActivityLogResponse,
    AvailabilityResponse,
    BlockedSlotResponse,
    BookingAssign,
    BookingCreate,
    BookingDetailResponse,
    BookingForm,
    BookingResponse,
    BookingSchedule,
    BookingStatusUpdate,
    BookingUpdate,
    ErrorResponse,
    EventTypeCreate,
    EventTypeResponse,
    EventTypeUpdate,
    UserResponse,
    WorkflowStatusCreate,
    WorkflowStatusResponse,
    WorkflowStatusUpdate,
)
from bookingflow.config import BOOKING_MAX_DURATION, DISPLAY_TIMEZONE
from bookingflow.database import get_db
from bookingflow.models.domain import Booking, EventType, User, WorkflowStatus
from bookingflow.services.availability import AvailabilityEngine
from bookingflow.services.bookings import BookingFilters, BookingRepository
from bookingflow.services.calendar import BlockedSlotProjector
from bookingflow.services.catalog import CatalogService
from bookingflow.services.errors import (
    BookingError,
    CatalogError,
    ReferenceDataError,
    SlotUnavailableError,
)
from bookingflow.services.state_machine import WorkflowStateMachine

logger = logging.getLogger(__name__)

router = APIRouter()

REFUSAL_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Refused - invalid input or transition"},
    409: {"model": ErrorResponse, "description": "Refused - slot not available"},
}


def _refusal(exc: BookingError) -> HTTPException:
    """Translate a service-layer refusal into an HTTP error."""
    if isinstance(exc, SlotUnavailableError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, ReferenceDataError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_400_BAD_REQUEST
    detail = {"message": exc.message}
    if isinstance(exc, SlotUnavailableError):
        detail["conflicting_booking_ids"] = exc.conflicting_booking_ids
    return HTTPException(status_code=code, detail=detail)


def _localize(value: datetime) -> datetime:
    """Naive query datetimes are wall-clock times in the display timezone."""
    if value.tzinfo is None:
        return value.replace(tzinfo=DISPLAY_TIMEZONE)
    return value


def _get_booking_or_404(db: Session, booking_id: int) -> Booking:
    booking = BookingRepository.get_booking(db, booking_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


def _get_event_type_or_404(db: Session, event_type_id: int) -> EventType:
    event_type = CatalogService(db).get_event_type(event_type_id)
    if not event_type:
        raise HTTPException(status_code=404, detail="Event type not found")
    return event_type


def _get_status_or_404(db: Session, status_id: int) -> WorkflowStatus:
    workflow_status = CatalogService(db).get_workflow_status(status_id)
    if not workflow_status:
        raise HTTPException(status_code=404, detail="Workflow status not found")
    return workflow_status


# Public event type endpoints
@router.get("/event-types", response_model=List[EventTypeResponse])
def list_event_types(db: Session = Depends(get_db)):
    """Active event types for the booking form."""
    return CatalogService(db).list_event_types(is_active=True)


@router.get("/event-types/{event_type_id}", response_model=EventTypeResponse)
def get_event_type(event_type_id: int, db: Session = Depends(get_db)):
    return _get_event_type_or_404(db, event_type_id)


# Public calendar endpoints
@router.get("/calendar/blocked-slots", response_model=List[BlockedSlotResponse])
def get_blocked_slots(db: Session = Depends(get_db)):
    """
    Approved bookings as opaque blocked windows, buffers included.
    Dates and times are in the display timezone.
    """
    return BlockedSlotProjector(db).project()


@router.get("/calendar/availability", response_model=AvailabilityResponse)
def check_availability(
    start: datetime,
    duration_minutes: int = Query(..., gt=0, le=BOOKING_MAX_DURATION),
    event_type_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    """Whether a slot could be booked right now (advisory - not a reservation)."""
    start = _localize(start)
    available = AvailabilityEngine(db).is_slot_available(start, duration_minutes, event_type_id)
    return AvailabilityResponse(
        available=available,
        start=start,
        duration_minutes=duration_minutes,
        event_type_id=event_type_id,
    )


# Public booking endpoint
@router.post(
    "/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    responses=REFUSAL_RESPONSES,
)
def create_booking(form: BookingForm, db: Session = Depends(get_db)):
    """
    Create a booking request from the public form.

    WILL REFUSE if:
    - The event type does not exist
    - The duration falls outside 30-480 minutes
    - The slot collides with a non-pending booking (buffers included)
    """
    sm = WorkflowStateMachine(db)
    try:
        return sm.create_booking_from_form(
            contact_name=form.contact_name,
            contact_email=form.contact_email,
            contact_phone=form.contact_phone,
            requested_date=form.requested_date,
            start_time=form.start_time,
            event_type_id=form.event_type_id,
            event_type_slug=form.event_type,
            duration_hours=form.duration_hours,
            additional_notes=form.additional_notes,
        )
    except BookingError as e:
        logger.info("Public booking refused: %s", e.message)
        raise _refusal(e)


# Auth endpoints
@router.get("/auth/user", response_model=UserResponse)
def get_auth_user(user: User = Depends(get_current_user)):
    return user


# Admin user endpoints
@router.get("/admin/users", response_model=List[UserResponse])
def list_admin_users(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Admins that bookings can be assigned to."""
    return BookingRepository.list_admins(db)


# Admin booking endpoints
@router.get("/admin/bookings", response_model=List[BookingResponse])
def list_bookings(
    status_ids: List[int] = Query([]),
    status_slugs: List[str] = Query([]),
    event_type_ids: List[int] = Query([]),
    assigned_to: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Bookings for the kanban board, newest first."""
    filters = BookingFilters(
        status_ids=status_ids,
        status_slugs=status_slugs,
        event_type_ids=event_type_ids,
        assigned_to=assigned_to,
        start_date=_localize(start_date) if start_date else None,
        end_date=_localize(end_date) if end_date else None,
    )
    return BookingRepository.list_bookings(db, filters)


@router.post(
    "/admin/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    responses=REFUSAL_RESPONSES,
)
def admin_create_booking(
    booking_data: BookingCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Create a booking directly, optionally in a chosen status."""
    sm = WorkflowStateMachine(db)
    try:
        return sm.create_booking(
            event_type_id=booking_data.event_type_id,
            contact_name=booking_data.contact_name,
            contact_email=booking_data.contact_email,
            contact_phone=booking_data.contact_phone,
            start_at=booking_data.start_at,
            duration_minutes=booking_data.duration_minutes,
            additional_notes=booking_data.additional_notes,
            status_id=booking_data.status_id,
            actor=admin,
            enforce_availability=booking_data.enforce_availability,
        )
    except BookingError as e:
        raise _refusal(e)


@router.get("/admin/bookings/{booking_id}", response_model=BookingDetailResponse)
def get_booking(booking_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    """A booking together with its activity log."""
    booking = _get_booking_or_404(db, booking_id)
    return BookingDetailResponse(
        booking=booking,
        activities=BookingRepository.activity_for(db, booking.id),
    )


@router.put("/admin/bookings/{booking_id}", response_model=BookingResponse, responses=REFUSAL_RESPONSES)
def update_booking(
    booking_id: int,
    update_data: BookingUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Update status, assignee and/or notes.
    Side effect: one activity log entry per field that changed.
    """
    booking = _get_booking_or_404(db, booking_id)
    sm = WorkflowStateMachine(db)
    try:
        return sm.update_booking(booking, update_data.model_dump(exclude_unset=True), actor=admin)
    except BookingError as e:
        raise _refusal(e)


@router.patch("/admin/bookings/{booking_id}/status", response_model=BookingResponse, responses=REFUSAL_RESPONSES)
def update_booking_status(
    booking_id: int,
    status_data: BookingStatusUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Move a booking to another kanban column."""
    booking = _get_booking_or_404(db, booking_id)
    sm = WorkflowStateMachine(db)
    try:
        return sm.change_status(booking, status_data.status_id, actor=admin)
    except BookingError as e:
        raise _refusal(e)


@router.patch("/admin/bookings/{booking_id}/assign", response_model=BookingResponse, responses=REFUSAL_RESPONSES)
def assign_booking(
    booking_id: int,
    assign_data: BookingAssign,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Assign a booking to an admin user, or unassign it with null."""
    booking = _get_booking_or_404(db, booking_id)
    sm = WorkflowStateMachine(db)
    try:
        return sm.assign(booking, assign_data.assigned_to, actor=admin)
    except BookingError as e:
        raise _refusal(e)


@router.patch("/admin/bookings/{booking_id}/schedule", response_model=BookingResponse, responses=REFUSAL_RESPONSES)
def reschedule_booking(
    booking_id: int,
    schedule_data: BookingSchedule,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Move a booking to a new time. The booking itself never blocks its own move."""
    booking = _get_booking_or_404(db, booking_id)
    sm = WorkflowStateMachine(db)
    try:
        return sm.reschedule(
            booking,
            schedule_data.start_at,
            schedule_data.duration_minutes,
            actor=admin,
            enforce_availability=schedule_data.enforce_availability,
        )
    except BookingError as e:
        raise _refusal(e)


@router.get("/admin/bookings/{booking_id}/activities", response_model=List[ActivityLogResponse])
def list_booking_activities(booking_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Activity log for a booking, newest first."""
    booking = _get_booking_or_404(db, booking_id)
    return BookingRepository.activity_for(db, booking.id)


@router.get("/admin/calendar/bookings", response_model=List[BookingResponse])
def list_calendar_bookings(
    start_date: datetime,
    end_date: datetime,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Non-pending bookings starting within the range, by start time."""
    return BlockedSlotProjector(db).bookings_in_range(_localize(start_date), _localize(end_date))


# Admin event type endpoints
@router.get("/admin/event-types", response_model=List[EventTypeResponse])
def admin_list_event_types(
    is_active: Optional[bool] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return CatalogService(db).list_event_types(is_active=is_active)


@router.post(
    "/admin/event-types",
    response_model=EventTypeResponse,
    status_code=status.HTTP_201_CREATED,
    responses=REFUSAL_RESPONSES,
)
def create_event_type(
    event_type_data: EventTypeCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        event_type = CatalogService(db).create_event_type(**event_type_data.model_dump())
    except CatalogError as e:
        raise _refusal(e)
    logger.info("Admin %s created event type %s", admin.display_name, event_type.slug)
    return event_type


@router.put("/admin/event-types/{event_type_id}", response_model=EventTypeResponse, responses=REFUSAL_RESPONSES)
def update_event_type(
    event_type_id: int,
    update_data: EventTypeUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    event_type = _get_event_type_or_404(db, event_type_id)
    try:
        return CatalogService(db).update_event_type(event_type, **update_data.model_dump(exclude_unset=True))
    except CatalogError as e:
        raise _refusal(e)


@router.delete("/admin/event-types/{event_type_id}", status_code=status.HTTP_204_NO_CONTENT, responses=REFUSAL_RESPONSES)
def delete_event_type(event_type_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Refused while any booking references the event type."""
    event_type = _get_event_type_or_404(db, event_type_id)
    try:
        CatalogService(db).delete_event_type(event_type)
    except CatalogError as e:
        raise _refusal(e)
    logger.info("Admin %s deleted event type %s", admin.display_name, event_type_id)


# Admin workflow status endpoints
@router.get("/admin/workflow-statuses", response_model=List[WorkflowStatusResponse])
def list_workflow_statuses(
    is_active: Optional[bool] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return CatalogService(db).list_workflow_statuses(is_active=is_active)


@router.get("/admin/workflow-statuses/{status_id}", response_model=WorkflowStatusResponse)
def get_workflow_status(status_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return _get_status_or_404(db, status_id)


@router.post(
    "/admin/workflow-statuses",
    response_model=WorkflowStatusResponse,
    status_code=status.HTTP_201_CREATED,
    responses=REFUSAL_RESPONSES,
)
def create_workflow_status(
    status_data: WorkflowStatusCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Create a status. Marking it default clears the flag on every other status."""
    try:
        workflow_status = CatalogService(db).create_workflow_status(**status_data.model_dump())
    except CatalogError as e:
        raise _refusal(e)
    logger.info("Admin %s created workflow status %s", admin.display_name, workflow_status.slug)
    return workflow_status


@router.put("/admin/workflow-statuses/{status_id}", response_model=WorkflowStatusResponse, responses=REFUSAL_RESPONSES)
def update_workflow_status(
    status_id: int,
    update_data: WorkflowStatusUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    workflow_status = _get_status_or_404(db, status_id)
    try:
        return CatalogService(db).update_workflow_status(
            workflow_status, **update_data.model_dump(exclude_unset=True)
        )
    except CatalogError as e:
        raise _refusal(e)


@router.delete("/admin/workflow-statuses/{status_id}", status_code=status.HTTP_204_NO_CONTENT, responses=REFUSAL_RESPONSES)
def delete_workflow_status(status_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Refused while the status is in use or is the default."""
    workflow_status = _get_status_or_404(db, status_id)
    try:
        CatalogService(db).delete_workflow_status(workflow_status)
    except CatalogError as e:
        raise _refusal(e)
    logger.info("Admin %s deleted workflow status %s", admin.display_name, status_id)
