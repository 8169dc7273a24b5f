"""Booking repository - database queries for bookings and their activity logs"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from bookingflow.models.audit import ActivityLog
from bookingflow.models.domain import Booking, User, WorkflowStatus
from bookingflow.services.intervals import as_utc


@dataclass
class BookingFilters:
    """Admin board filters. List fields combine with OR, fields with AND."""
    status_ids: List[int] = field(default_factory=list)
    status_slugs: List[str] = field(default_factory=list)
    event_type_ids: List[int] = field(default_factory=list)
    assigned_to: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_booking(db: Session, booking_id: int) -> Optional[Booking]:
        return (
            db.query(Booking)
            .options(joinedload(Booking.status), joinedload(Booking.event_type))
            .filter(Booking.id == booking_id)
            .first()
        )

    @staticmethod
    def list_bookings(db: Session, filters: Optional[BookingFilters] = None) -> List[Booking]:
        """List bookings for the admin board, newest first"""
        query = db.query(Booking).join(WorkflowStatus, Booking.status_id == WorkflowStatus.id)

        if filters:
            if filters.status_ids:
                query = query.filter(Booking.status_id.in_(filters.status_ids))
            if filters.status_slugs:
                query = query.filter(WorkflowStatus.slug.in_(filters.status_slugs))
            if filters.event_type_ids:
                query = query.filter(Booking.event_type_id.in_(filters.event_type_ids))
            if filters.assigned_to:
                query = query.filter(Booking.assigned_to == filters.assigned_to)
            if filters.start_date and filters.end_date:
                query = query.filter(
                    Booking.start_at >= as_utc(filters.start_date),
                    Booking.start_at <= as_utc(filters.end_date),
                )

        return query.order_by(Booking.created_at.desc(), Booking.id.desc()).all()

    @staticmethod
    def max_duration_minutes(db: Session) -> int:
        return db.query(func.max(Booking.duration_minutes)).scalar() or 0

    @staticmethod
    def activity_for(db: Session, booking_id: int) -> List[ActivityLog]:
        """Activity log entries for a booking, newest first"""
        return (
            db.query(ActivityLog)
            .filter(ActivityLog.booking_id == booking_id)
            .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
            .all()
        )

    @staticmethod
    def get_user(db: Session, user_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def list_admins(db: Session) -> List[User]:
        return (
            db.query(User)
            .filter(User.is_admin.is_(True))
            .order_by(User.first_name, User.last_name, User.email)
            .all()
        )

    @staticmethod
    def upsert_user(db: Session, user_id: str, **fields) -> User:
        """Create or refresh a user record from identity provider claims"""
        user = db.query(User).filter(User.id == user_id).first()
        if user is None:
            user = User(id=user_id, **fields)
            db.add(user)
        else:
            for key, value in fields.items():
                setattr(user, key, value)
        db.commit()
        db.refresh(user)
        return user
