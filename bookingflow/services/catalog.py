"""
Event type and workflow status catalogs.

Both catalogs are small, administrator-curated reference tables. The
scheduling code reads them through a CatalogSnapshot built once per
operation instead of looking rows up by slug for every booking it checks.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from bookingflow.models.domain import Booking, EventType, WorkflowStatus
from bookingflow.models.enums import StatusRole
from bookingflow.services.errors import CatalogError, ReferenceDataError

logger = logging.getLogger(__name__)


@dataclass
class CatalogSnapshot:
    """Point-in-time view of both catalogs, indexed for the scheduling code."""
    event_types: Dict[int, EventType] = field(default_factory=dict)
    statuses: Dict[int, WorkflowStatus] = field(default_factory=dict)
    statuses_by_slug: Dict[str, WorkflowStatus] = field(default_factory=dict)

    @classmethod
    def load(cls, db: Session) -> "CatalogSnapshot":
        event_types = db.query(EventType).all()
        statuses = db.query(WorkflowStatus).all()
        return cls(
            event_types={et.id: et for et in event_types},
            statuses={s.id: s for s in statuses},
            statuses_by_slug={s.slug: s for s in statuses},
        )

    def status_for(self, role: StatusRole) -> Optional[WorkflowStatus]:
        return self.statuses_by_slug.get(role.value)

    def event_type(self, event_type_id: Optional[int]) -> Optional[EventType]:
        if event_type_id is None:
            return None
        return self.event_types.get(event_type_id)

    def buffers_for(self, event_type_id: Optional[int]) -> tuple:
        """
        (before, after) buffer minutes for an event type.

        Unknown event types get zero buffers rather than an error.
        """
        event_type = self.event_type(event_type_id)
        if event_type is None:
            if event_type_id is not None:
                logger.warning("Event type %s not found, using zero buffers", event_type_id)
            return 0, 0
        return event_type.buffer_before_minutes, event_type.buffer_after_minutes

    @property
    def max_buffer_before(self) -> int:
        return max((et.buffer_before_minutes for et in self.event_types.values()), default=0)

    @property
    def max_buffer_after(self) -> int:
        return max((et.buffer_after_minutes for et in self.event_types.values()), default=0)


class CatalogService:
    """CRUD for event types and workflow statuses, with their invariants."""

    def __init__(self, db: Session):
        self.db = db

    def snapshot(self) -> CatalogSnapshot:
        return CatalogSnapshot.load(self.db)

    # Event types

    def list_event_types(self, is_active: Optional[bool] = None) -> List[EventType]:
        query = self.db.query(EventType)
        if is_active is not None:
            query = query.filter(EventType.is_active == is_active)
        return query.order_by(EventType.display_order, EventType.name).all()

    def get_event_type(self, event_type_id: int) -> Optional[EventType]:
        return self.db.query(EventType).filter(EventType.id == event_type_id).first()

    def get_event_type_by_slug(self, slug: str) -> Optional[EventType]:
        return self.db.query(EventType).filter(EventType.slug == slug).first()

    def create_event_type(self, **fields) -> EventType:
        self._ensure_unique_slug(EventType, fields.get("slug"))
        event_type = EventType(**fields)
        self.db.add(event_type)
        self.db.commit()
        self.db.refresh(event_type)
        logger.info("Created event type %s (%s)", event_type.name, event_type.slug)
        return event_type

    def update_event_type(self, event_type: EventType, **updates) -> EventType:
        if "slug" in updates and updates["slug"] != event_type.slug:
            self._ensure_unique_slug(EventType, updates["slug"])
        for key, value in updates.items():
            setattr(event_type, key, value)
        self.db.commit()
        self.db.refresh(event_type)
        logger.info("Updated event type %s (%s)", event_type.name, event_type.slug)
        return event_type

    def delete_event_type(self, event_type: EventType) -> None:
        in_use = self.db.query(Booking.id).filter(Booking.event_type_id == event_type.id).first()
        if in_use:
            raise CatalogError("Cannot delete event type that is currently in use by bookings.")
        self.db.delete(event_type)
        self.db.commit()
        logger.info("Deleted event type %s (%s)", event_type.name, event_type.slug)

    # Workflow statuses

    def list_workflow_statuses(self, is_active: Optional[bool] = None) -> List[WorkflowStatus]:
        query = self.db.query(WorkflowStatus)
        if is_active is not None:
            query = query.filter(WorkflowStatus.is_active == is_active)
        return query.order_by(WorkflowStatus.display_order, WorkflowStatus.name).all()

    def get_workflow_status(self, status_id: int) -> Optional[WorkflowStatus]:
        return self.db.query(WorkflowStatus).filter(WorkflowStatus.id == status_id).first()

    def get_workflow_status_by_slug(self, slug: str) -> Optional[WorkflowStatus]:
        return self.db.query(WorkflowStatus).filter(WorkflowStatus.slug == slug).first()

    def get_default_status(self) -> WorkflowStatus:
        status = (
            self.db.query(WorkflowStatus)
            .filter(WorkflowStatus.is_default.is_(True), WorkflowStatus.is_active.is_(True))
            .first()
        )
        if status is None:
            raise ReferenceDataError(
                "No default workflow status found. Please run the workflow status seed."
            )
        return status

    def create_workflow_status(self, **fields) -> WorkflowStatus:
        self._ensure_unique_slug(WorkflowStatus, fields.get("slug"))
        if fields.get("is_default"):
            if fields.get("is_active") is False:
                raise CatalogError("The default workflow status must be active.")
            self._clear_default()
        status = WorkflowStatus(**fields)
        self.db.add(status)
        self.db.commit()
        self.db.refresh(status)
        logger.info("Created workflow status %s (%s)", status.name, status.slug)
        return status

    def update_workflow_status(self, status: WorkflowStatus, **updates) -> WorkflowStatus:
        """
        Update a status.

        Setting is_default clears the flag on every other status within the
        same commit. The current default cannot simply drop its flag, since
        that would leave new bookings without a status, and it cannot be
        deactivated for the same reason.
        """
        if "slug" in updates and updates["slug"] != status.slug:
            self._ensure_unique_slug(WorkflowStatus, updates["slug"])

        becomes_default = updates.get("is_default", status.is_default)
        if becomes_default and updates.get("is_active", status.is_active) is False:
            raise CatalogError("The default workflow status must be active.")

        if updates.get("is_default") is True and not status.is_default:
            self._clear_default(exclude_id=status.id)
        elif updates.get("is_default") is False and status.is_default:
            raise CatalogError(
                "Cannot unset the default workflow status. Set another status as default instead."
            )

        for key, value in updates.items():
            setattr(status, key, value)
        self.db.commit()
        self.db.refresh(status)
        logger.info("Updated workflow status %s (%s)", status.name, status.slug)
        return status

    def delete_workflow_status(self, status: WorkflowStatus) -> None:
        in_use = self.db.query(Booking.id).filter(Booking.status_id == status.id).first()
        if in_use:
            raise CatalogError("Cannot delete workflow status that is currently in use by bookings.")
        if status.is_default:
            raise CatalogError(
                "Cannot delete the default workflow status. Set another status as default first."
            )
        self.db.delete(status)
        self.db.commit()
        logger.info("Deleted workflow status %s (%s)", status.name, status.slug)

    def validate_reference_data(self) -> None:
        """
        Fail fast when the rows the booking flow depends on are missing.

        Missing pending/approved statuses only degrade behaviour, so they
        are reported as warnings.
        """
        self.get_default_status()

        active_event_types = self.db.query(EventType.id).filter(EventType.is_active.is_(True)).first()
        if not active_event_types:
            raise ReferenceDataError("No active event type found. Please run the event type seed.")

        for role in StatusRole:
            if self.get_workflow_status_by_slug(role.value) is None:
                logger.warning("No '%s' workflow status found", role.value)

    def _clear_default(self, exclude_id: Optional[int] = None) -> None:
        query = self.db.query(WorkflowStatus).filter(WorkflowStatus.is_default.is_(True))
        if exclude_id is not None:
            query = query.filter(WorkflowStatus.id != exclude_id)
        query.update({WorkflowStatus.is_default: False}, synchronize_session="fetch")

    def _ensure_unique_slug(self, model, slug: Optional[str]) -> None:
        if slug and self.db.query(model.id).filter(model.slug == slug).first():
            raise CatalogError(f"Slug '{slug}' is already in use.")
