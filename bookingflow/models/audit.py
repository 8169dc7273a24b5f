"""
Booking activity log - the history shown next to a booking on the admin board.

Entries are written by the workflow state machine only. They are never
edited or deleted.
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, Enum as SQLEnum, Index
from sqlalchemy.orm import relationship

from bookingflow.database import Base
from bookingflow.models.domain import utcnow
from bookingflow.models.enums import ActivityAction


class ActivityLog(Base):
    """
    Immutable record of something that happened to a booking.

    Invariants:
    - Once written, never edited or deleted
    - Append-only
    - user_id is null for system entries (user_name is then "System")
    """
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    action = Column(SQLEnum(ActivityAction), nullable=False)
    details = Column(Text, nullable=False)  # Human-readable, Swedish
    user_id = Column(String, ForeignKey("users.id"), nullable=True, index=True)
    user_name = Column(String, nullable=True)  # Cached for display
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    booking = relationship("Booking", back_populates="activity_logs")

    __table_args__ = (
        Index("idx_activity_logs_booking_timestamp", "booking_id", "timestamp"),
    )


SYSTEM_ACTOR = "System"
