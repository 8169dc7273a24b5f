"""Enums for the booking system - closed sets of values the code branches on."""
from enum import Enum

from bookingflow.config import APPROVED_STATUS_SLUG, PENDING_STATUS_SLUG


class ActivityAction(str, Enum):
    """Kinds of entries in a booking's activity log."""
    CREATED = "created"
    STATUS_CHANGED = "status_changed"
    ASSIGNED = "assigned"
    UPDATED = "updated"
    NOTES_ADDED = "notes_added"


class StatusRole(str, Enum):
    """
    Workflow statuses the scheduling core treats specially, keyed by slug.

    Statuses are administrator-curated rows; only these two slugs carry
    behaviour. Pending bookings never block a slot, and only approved
    bookings appear on the public calendar.
    """
    PENDING = PENDING_STATUS_SLUG
    APPROVED = APPROVED_STATUS_SLUG
