"""Pytest configuration and shared fixtures."""
import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bookingflow.database import Base, build_engine
from bookingflow.models.domain import Booking, EventType, User, WorkflowStatus
from bookingflow.models.audit import ActivityLog  # noqa: F401
from bookingflow.services.seed import seed_event_types, seed_workflow_statuses


@pytest.fixture
def engine():
    """In-memory SQLite shared across threads (the API test client runs in another thread)."""
    engine = build_engine("sqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Create a fresh in-memory database for each test."""
    TestingSessionLocal = sessionmaker(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()


@pytest.fixture
def statuses(db_session):
    """The default kanban statuses, keyed by slug."""
    seed_workflow_statuses(db_session)
    return {s.slug: s for s in db_session.query(WorkflowStatus).all()}


@pytest.fixture
def seeded_event_types(db_session):
    """The default event types, keyed by slug."""
    seed_event_types(db_session)
    return {et.slug: et for et in db_session.query(EventType).all()}


@pytest.fixture
def make_event_type(db_session):
    def _make(slug, buffer_before=0, buffer_after=0, duration=60, name=None):
        event_type = EventType(
            slug=slug,
            name=name or slug.title(),
            default_duration_minutes=duration,
            buffer_before_minutes=buffer_before,
            buffer_after_minutes=buffer_after,
        )
        db_session.add(event_type)
        db_session.commit()
        db_session.refresh(event_type)
        return event_type
    return _make


@pytest.fixture
def make_booking(db_session):
    """Insert a booking row directly, bypassing the workflow (no activity entry)."""
    def _make(event_type, status, start_at, duration=60, **fields):
        booking = Booking(
            event_type_id=event_type.id,
            status_id=status.id,
            contact_name=fields.pop("contact_name", "Anna Andersson"),
            contact_email=fields.pop("contact_email", "anna@example.se"),
            contact_phone=fields.pop("contact_phone", "0701234567"),
            start_at=start_at,
            duration_minutes=duration,
            **fields,
        )
        db_session.add(booking)
        db_session.commit()
        db_session.refresh(booking)
        return booking
    return _make


@pytest.fixture
def admin_user(db_session):
    user = User(id="admin_1", email="karin@example.se", first_name="Karin", last_name="Berg", is_admin=True)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def staff_user(db_session):
    user = User(id="staff_1", email="olle@example.se", first_name="Olle", last_name="Lind", is_admin=False)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user
