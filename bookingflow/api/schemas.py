"""Pydantic schemas for request/response validation."""
from datetime import date, datetime, time
from typing import List, Optional

from pydantic import AwareDatetime, BaseModel, EmailStr, Field, field_validator, model_validator

from bookingflow.config import (
    BOOKING_MAX_DURATION,
    BOOKING_MIN_DURATION,
    BUFFER_MAX,
    BUFFER_MIN,
    EVENT_TYPE_MAX_DURATION,
    EVENT_TYPE_MIN_DURATION,
)
from bookingflow.models.enums import ActivityAction
from bookingflow.services.intervals import as_utc

SLUG_PATTERN = r"^[a-z0-9_\-]+$"


# User schemas
class UserResponse(BaseModel):
    id: str
    email: Optional[str]
    first_name: Optional[str]
    last_name: Optional[str]
    is_admin: bool
    display_name: str

    class Config:
        from_attributes = True


# EventType schemas
class EventTypeCreate(BaseModel):
    slug: str = Field(..., min_length=1, max_length=64, pattern=SLUG_PATTERN)
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    icon: Optional[str] = None
    default_duration_minutes: int = Field(120, ge=EVENT_TYPE_MIN_DURATION, le=EVENT_TYPE_MAX_DURATION)
    buffer_before_minutes: int = Field(0, ge=BUFFER_MIN, le=BUFFER_MAX)
    buffer_after_minutes: int = Field(0, ge=BUFFER_MIN, le=BUFFER_MAX)
    is_active: bool = True
    display_order: int = 0


class EventTypeUpdate(BaseModel):
    slug: Optional[str] = Field(None, min_length=1, max_length=64, pattern=SLUG_PATTERN)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    icon: Optional[str] = None
    default_duration_minutes: Optional[int] = Field(
        None, ge=EVENT_TYPE_MIN_DURATION, le=EVENT_TYPE_MAX_DURATION
    )
    buffer_before_minutes: Optional[int] = Field(None, ge=BUFFER_MIN, le=BUFFER_MAX)
    buffer_after_minutes: Optional[int] = Field(None, ge=BUFFER_MIN, le=BUFFER_MAX)
    is_active: Optional[bool] = None
    display_order: Optional[int] = None

    @field_validator(
        "slug",
        "name",
        "default_duration_minutes",
        "buffer_before_minutes",
        "buffer_after_minutes",
        "is_active",
        "display_order",
    )
    @classmethod
    def not_null(cls, value):
        # Omit a field to leave it unchanged; these columns cannot be cleared
        if value is None:
            raise ValueError("may not be null")
        return value


class EventTypeResponse(BaseModel):
    id: int
    slug: str
    name: str
    description: Optional[str]
    icon: Optional[str]
    default_duration_minutes: int
    buffer_before_minutes: int
    buffer_after_minutes: int
    is_active: bool
    display_order: int

    class Config:
        from_attributes = True


# WorkflowStatus schemas
class WorkflowStatusCreate(BaseModel):
    slug: str = Field(..., min_length=1, max_length=64, pattern=SLUG_PATTERN)
    name: str = Field(..., min_length=1, max_length=200)
    display_order: int = 0
    color: str = "gray"
    is_default: bool = False
    is_final: bool = False
    is_active: bool = True


class WorkflowStatusUpdate(BaseModel):
    slug: Optional[str] = Field(None, min_length=1, max_length=64, pattern=SLUG_PATTERN)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    display_order: Optional[int] = None
    color: Optional[str] = None
    is_default: Optional[bool] = None
    is_final: Optional[bool] = None
    is_active: Optional[bool] = None

    @field_validator("slug", "name", "display_order", "color", "is_default", "is_final", "is_active")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class WorkflowStatusResponse(BaseModel):
    id: int
    slug: str
    name: str
    display_order: int
    color: str
    is_default: bool
    is_final: bool
    is_active: bool

    class Config:
        from_attributes = True


# Booking schemas
class BookingForm(BaseModel):
    """Public booking form. Date and time are local to the display timezone."""
    event_type_id: Optional[int] = None
    event_type: Optional[str] = None  # Slug, kept for older form clients
    contact_name: str = Field(..., min_length=2)
    contact_email: EmailStr
    contact_phone: str = Field(..., min_length=10)
    requested_date: date
    start_time: time
    duration_hours: Optional[float] = Field(None, ge=0.5, le=8)
    additional_notes: Optional[str] = None

    @model_validator(mode="after")
    def require_event_type(self):
        if self.event_type_id is None and not self.event_type:
            raise ValueError("Please select an event type")
        return self


class BookingCreate(BaseModel):
    """Direct creation by an admin."""
    event_type_id: int
    contact_name: str = Field(..., min_length=2)
    contact_email: EmailStr
    contact_phone: str = Field(..., min_length=1)
    start_at: AwareDatetime
    duration_minutes: int = Field(..., ge=BOOKING_MIN_DURATION, le=BOOKING_MAX_DURATION)
    additional_notes: Optional[str] = None
    status_id: Optional[int] = None
    enforce_availability: bool = True


class BookingUpdate(BaseModel):
    """Only the fields actually sent are applied."""
    status_id: Optional[int] = None
    assigned_to: Optional[str] = None
    additional_notes: Optional[str] = None


class BookingStatusUpdate(BaseModel):
    status_id: int


class BookingAssign(BaseModel):
    assigned_to: Optional[str] = None  # None unassigns


class BookingSchedule(BaseModel):
    start_at: AwareDatetime
    duration_minutes: Optional[int] = Field(None, ge=BOOKING_MIN_DURATION, le=BOOKING_MAX_DURATION)
    enforce_availability: bool = True


class BookingResponse(BaseModel):
    id: int
    event_type_id: int
    contact_name: str
    contact_email: str
    contact_phone: str
    start_at: datetime
    duration_minutes: int
    additional_notes: Optional[str]
    status_id: int
    assigned_to: Optional[str]
    created_at: datetime
    updated_at: datetime
    status: WorkflowStatusResponse
    event_type: EventTypeResponse

    class Config:
        from_attributes = True

    @field_validator("start_at", "created_at", "updated_at")
    @classmethod
    def stored_as_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


# Activity log schemas
class ActivityLogResponse(BaseModel):
    id: int
    booking_id: int
    action: ActivityAction
    details: str
    user_id: Optional[str]
    user_name: Optional[str]
    timestamp: datetime

    class Config:
        from_attributes = True

    @field_validator("timestamp")
    @classmethod
    def stored_as_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class BookingDetailResponse(BaseModel):
    booking: BookingResponse
    activities: List[ActivityLogResponse]


# Calendar schemas
class BlockedSlotResponse(BaseModel):
    """Opaque window on the public calendar - never contact details."""
    id: int
    date: str
    start_time: str
    end_time: str
    event_type_label: str
    event_type_slug: str
    status_slug: str

    class Config:
        from_attributes = True


class AvailabilityResponse(BaseModel):
    available: bool
    start: datetime
    duration_minutes: int
    event_type_id: Optional[int]


# Error response
class ErrorResponse(BaseModel):
    """Response when the service layer refuses an action."""
    message: str
    conflicting_booking_ids: List[int] = []
