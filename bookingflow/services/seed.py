"""
Default reference data: the two seasonal event types and the kanban statuses.

Run directly to seed a fresh database:

    python -m bookingflow.services.seed
"""
import logging
import sys

from sqlalchemy.orm import Session

from bookingflow.models.domain import EventType, WorkflowStatus

logger = logging.getLogger(__name__)

DEFAULT_EVENT_TYPES = [
    {
        "slug": "luciatag",
        "name": "Luciatåg",
        "description": (
            "Traditionellt luciafirande med sång och ljus. Barn och ungdomar sjunger "
            "julsånger iklädda vita klänningar och stjärnkronor."
        ),
        "icon": "Music",
        "default_duration_minutes": 30,
        "buffer_before_minutes": 30,
        "buffer_after_minutes": 30,
        "is_active": True,
        "display_order": 1,
    },
    {
        "slug": "sjungande_julgran",
        "name": "Sjungande Julgran",
        "description": (
            "Julgransuppvisning med sång och musik. Deltagarna sjunger traditionella "
            "julsånger runt julgranen."
        ),
        "icon": "Users",
        "default_duration_minutes": 120,
        "buffer_before_minutes": 120,
        "buffer_after_minutes": 120,
        "is_active": True,
        "display_order": 2,
    },
]

DEFAULT_WORKFLOW_STATUSES = [
    {
        "slug": "pending",
        "name": "Nya förfrågningar",
        "display_order": 1,
        "color": "yellow",
        "is_default": True,
        "is_final": False,
        "is_active": True,
    },
    {
        "slug": "reviewing",
        "name": "Under granskning",
        "display_order": 2,
        "color": "blue",
        "is_default": False,
        "is_final": False,
        "is_active": True,
    },
    {
        "slug": "approved",
        "name": "Godkänt",
        "display_order": 3,
        "color": "green",
        "is_default": False,
        "is_final": False,
        "is_active": True,
    },
    {
        "slug": "completed",
        "name": "Slutfört",
        "display_order": 4,
        "color": "gray",
        "is_default": False,
        "is_final": True,
        "is_active": True,
    },
]


def seed_event_types(db: Session) -> int:
    """Insert the default event types unless the table already has rows."""
    existing = db.query(EventType).count()
    if existing:
        logger.info("Event types already exist (%s found), skipping seed", existing)
        return 0

    for fields in DEFAULT_EVENT_TYPES:
        db.add(EventType(**fields))
        logger.info(
            "Seeding event type %s (%s min, buffers %s/%s)",
            fields["slug"],
            fields["default_duration_minutes"],
            fields["buffer_before_minutes"],
            fields["buffer_after_minutes"],
        )
    db.commit()
    return len(DEFAULT_EVENT_TYPES)


def seed_workflow_statuses(db: Session) -> int:
    """Insert the default workflow statuses unless the table already has rows."""
    existing = db.query(WorkflowStatus).count()
    if existing:
        logger.info("Workflow statuses already exist (%s found), skipping seed", existing)
        return 0

    for fields in DEFAULT_WORKFLOW_STATUSES:
        db.add(WorkflowStatus(**fields))
        logger.info("Seeding workflow status %s (%s)", fields["slug"], fields["name"])
    db.commit()
    return len(DEFAULT_WORKFLOW_STATUSES)


def seed_all(db: Session) -> None:
    seed_workflow_statuses(db)
    seed_event_types(db)


def main() -> int:
    from bookingflow.config import LOG_LEVEL
    from bookingflow.database import Base, SessionLocal, engine
    import bookingflow.models.audit  # noqa: F401  registers ActivityLog

    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        seed_all(db)
    except Exception:
        logger.exception("Seeding failed")
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
