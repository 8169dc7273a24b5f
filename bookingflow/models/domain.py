"""Domain models - reference catalogs, bookings and the users who handle them."""
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from bookingflow.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    A staff member known to the external identity provider.

    Only admins may work the kanban board or be assigned bookings.
    """
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)  # Subject id from the identity provider
    email = Column(String, unique=True, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    assigned_bookings = relationship("Booking", back_populates="assignee")

    @property
    def display_name(self) -> str:
        full_name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full_name or self.email or "Admin"


class EventType(Base):
    """
    A bookable kind of event with its default length and setup/teardown buffers.

    Invariants:
    - default_duration_minutes within 15-480
    - buffer_before_minutes and buffer_after_minutes within 0-240
    - Never deleted while a booking references it (service layer)
    """
    __tablename__ = "event_types"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    slug = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String, nullable=True)  # UI icon name
    default_duration_minutes = Column(Integer, nullable=False, default=120)
    buffer_before_minutes = Column(Integer, nullable=False, default=0)
    buffer_after_minutes = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    display_order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    bookings = relationship("Booking", back_populates="event_type")

    __table_args__ = (
        CheckConstraint(
            "default_duration_minutes BETWEEN 15 AND 480", name="ck_event_types_duration"
        ),
        CheckConstraint(
            "buffer_before_minutes BETWEEN 0 AND 240", name="ck_event_types_buffer_before"
        ),
        CheckConstraint(
            "buffer_after_minutes BETWEEN 0 AND 240", name="ck_event_types_buffer_after"
        ),
    )


class WorkflowStatus(Base):
    """
    A column on the kanban board.

    Invariants:
    - At most one row has is_default = True (enforced by CatalogService)
    - is_final is advisory only; bookings may still move out of a final status
    - Cannot be deleted while in use or while it is the default
    """
    __tablename__ = "workflow_statuses"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    slug = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    display_order = Column(Integer, nullable=False, default=0)
    color = Column(String, nullable=False, default="gray")
    is_default = Column(Boolean, nullable=False, default=False)
    is_final = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    bookings = relationship("Booking", back_populates="status")


class Booking(Base):
    """
    A customer's request for an event at a given time.

    Invariants:
    - duration_minutes within 30-480
    - start_at is a concrete instant, stored as UTC
    - Created in the default status unless an admin chooses otherwise
    - Status, assignee and notes changes are recorded in the activity log
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    event_type_id = Column(Integer, ForeignKey("event_types.id"), nullable=False, index=True)
    contact_name = Column(String, nullable=False)
    contact_email = Column(String, nullable=False)
    contact_phone = Column(String, nullable=False)
    start_at = Column(DateTime(timezone=True), nullable=False, index=True)
    duration_minutes = Column(Integer, nullable=False)
    additional_notes = Column(Text, nullable=True)
    status_id = Column(Integer, ForeignKey("workflow_statuses.id"), nullable=False, index=True)
    assigned_to = Column(String, ForeignKey("users.id"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    event_type = relationship("EventType", back_populates="bookings")
    status = relationship("WorkflowStatus", back_populates="bookings")
    assignee = relationship("User", back_populates="assigned_bookings")
    activity_logs = relationship(
        "ActivityLog",
        back_populates="booking",
        order_by="ActivityLog.timestamp.desc()",
    )

    __table_args__ = (
        CheckConstraint("duration_minutes BETWEEN 30 AND 480", name="ck_bookings_duration"),
        # Calendar queries filter on start and status together
        Index("idx_bookings_calendar", "start_at", "status_id"),
    )
