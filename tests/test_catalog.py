"""Tests for the event type and workflow status catalogs."""
from datetime import datetime, timezone

import pytest

from bookingflow.models.domain import EventType, WorkflowStatus
from bookingflow.models.enums import StatusRole
from bookingflow.services.catalog import CatalogService
from bookingflow.services.errors import CatalogError, ReferenceDataError
from bookingflow.services.seed import seed_all, seed_event_types, seed_workflow_statuses


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def default_slugs(db_session):
    return [s.slug for s in db_session.query(WorkflowStatus).filter(WorkflowStatus.is_default.is_(True))]


class TestDefaultStatus:
    """At most one status is the default at any time."""

    def test_seed_has_single_default(self, db_session, statuses):
        assert default_slugs(db_session) == ["pending"]

    def test_creating_new_default_clears_previous(self, db_session, statuses):
        catalog = CatalogService(db_session)

        catalog.create_workflow_status(slug="new", name="Ny", display_order=0, is_default=True)

        assert default_slugs(db_session) == ["new"]
        assert catalog.get_default_status().slug == "new"

    def test_promoting_existing_status_clears_previous(self, db_session, statuses):
        catalog = CatalogService(db_session)

        catalog.update_workflow_status(statuses["reviewing"], is_default=True)

        assert default_slugs(db_session) == ["reviewing"]
        db_session.refresh(statuses["pending"])
        assert statuses["pending"].is_default is False

    def test_current_default_cannot_be_unset(self, db_session, statuses):
        with pytest.raises(CatalogError):
            CatalogService(db_session).update_workflow_status(statuses["pending"], is_default=False)

        assert default_slugs(db_session) == ["pending"]

    def test_current_default_cannot_be_deactivated(self, db_session, statuses):
        with pytest.raises(CatalogError):
            CatalogService(db_session).update_workflow_status(statuses["pending"], is_active=False)

        db_session.refresh(statuses["pending"])
        assert statuses["pending"].is_active is True

    def test_inactive_status_cannot_become_default(self, db_session, statuses):
        catalog = CatalogService(db_session)
        catalog.update_workflow_status(statuses["completed"], is_active=False)

        with pytest.raises(CatalogError):
            catalog.update_workflow_status(statuses["completed"], is_default=True)

        assert default_slugs(db_session) == ["pending"]

    def test_new_default_must_be_active(self, db_session, statuses):
        with pytest.raises(CatalogError):
            CatalogService(db_session).create_workflow_status(
                slug="new", name="Ny", is_default=True, is_active=False
            )

        assert default_slugs(db_session) == ["pending"]

    def test_inactive_default_is_not_used(self, db_session, statuses):
        """A legacy row flagged default but inactive does not receive new bookings."""
        statuses["pending"].is_active = False
        db_session.commit()

        with pytest.raises(ReferenceDataError):
            CatalogService(db_session).get_default_status()

    def test_missing_default_raises_reference_error(self, db_session):
        with pytest.raises(ReferenceDataError):
            CatalogService(db_session).get_default_status()


class TestWorkflowStatusCatalog:

    def test_list_ordered_by_display_order(self, db_session, statuses):
        slugs = [s.slug for s in CatalogService(db_session).list_workflow_statuses()]

        assert slugs == ["pending", "reviewing", "approved", "completed"]

    def test_list_filters_active(self, db_session, statuses):
        catalog = CatalogService(db_session)
        catalog.update_workflow_status(statuses["completed"], is_active=False)

        slugs = [s.slug for s in catalog.list_workflow_statuses(is_active=True)]

        assert "completed" not in slugs

    def test_duplicate_slug_refused(self, db_session, statuses):
        with pytest.raises(CatalogError):
            CatalogService(db_session).create_workflow_status(slug="approved", name="Godkänt igen")

    def test_status_in_use_cannot_be_deleted(self, db_session, statuses, make_event_type, make_booking):
        make_booking(make_event_type("julkonsert"), statuses["approved"], utc(2024, 12, 13, 10, 0))

        with pytest.raises(CatalogError):
            CatalogService(db_session).delete_workflow_status(statuses["approved"])

    def test_default_status_cannot_be_deleted(self, db_session, statuses):
        with pytest.raises(CatalogError):
            CatalogService(db_session).delete_workflow_status(statuses["pending"])

    def test_unused_status_deleted(self, db_session, statuses):
        catalog = CatalogService(db_session)

        catalog.delete_workflow_status(statuses["completed"])

        assert catalog.get_workflow_status_by_slug("completed") is None


class TestEventTypeCatalog:

    def test_create_and_fetch_by_slug(self, db_session):
        catalog = CatalogService(db_session)

        created = catalog.create_event_type(
            slug="julkonsert",
            name="Julkonsert",
            default_duration_minutes=90,
            buffer_before_minutes=15,
            buffer_after_minutes=45,
        )

        fetched = catalog.get_event_type_by_slug("julkonsert")
        assert fetched.id == created.id
        assert (fetched.buffer_before_minutes, fetched.buffer_after_minutes) == (15, 45)
        assert fetched.is_active is True

    def test_duplicate_slug_refused(self, db_session, seeded_event_types):
        with pytest.raises(CatalogError):
            CatalogService(db_session).create_event_type(
                slug="luciatag", name="Luciatåg 2", default_duration_minutes=30
            )

    def test_rename_to_taken_slug_refused(self, db_session, seeded_event_types):
        with pytest.raises(CatalogError):
            CatalogService(db_session).update_event_type(
                seeded_event_types["luciatag"], slug="sjungande_julgran"
            )

    def test_update_buffers(self, db_session, seeded_event_types):
        catalog = CatalogService(db_session)

        updated = catalog.update_event_type(seeded_event_types["luciatag"], buffer_after_minutes=60)

        assert updated.buffer_after_minutes == 60
        assert updated.buffer_before_minutes == 30

    def test_event_type_in_use_cannot_be_deleted(self, db_session, statuses, seeded_event_types, make_booking):
        lucia = seeded_event_types["luciatag"]
        make_booking(lucia, statuses["pending"], utc(2024, 12, 13, 10, 0))

        with pytest.raises(CatalogError):
            CatalogService(db_session).delete_event_type(lucia)

    def test_active_filter(self, db_session, seeded_event_types):
        catalog = CatalogService(db_session)
        catalog.update_event_type(seeded_event_types["sjungande_julgran"], is_active=False)

        assert [et.slug for et in catalog.list_event_types(is_active=True)] == ["luciatag"]
        assert len(catalog.list_event_types()) == 2


class TestSnapshot:

    def test_status_roles_resolved_by_slug(self, db_session, statuses):
        snapshot = CatalogService(db_session).snapshot()

        assert snapshot.status_for(StatusRole.PENDING).id == statuses["pending"].id
        assert snapshot.status_for(StatusRole.APPROVED).id == statuses["approved"].id

    def test_buffers_and_maxima(self, db_session, seeded_event_types):
        snapshot = CatalogService(db_session).snapshot()

        assert snapshot.buffers_for(seeded_event_types["luciatag"].id) == (30, 30)
        assert snapshot.buffers_for(9999) == (0, 0)
        assert snapshot.buffers_for(None) == (0, 0)
        assert snapshot.max_buffer_before == 120
        assert snapshot.max_buffer_after == 120

    def test_empty_catalog_maxima(self, db_session):
        snapshot = CatalogService(db_session).snapshot()

        assert snapshot.max_buffer_before == 0
        assert snapshot.status_for(StatusRole.APPROVED) is None


class TestReferenceData:

    def test_seeded_database_validates(self, db_session):
        seed_all(db_session)

        CatalogService(db_session).validate_reference_data()

    def test_no_active_event_type_fails(self, db_session, statuses):
        db_session.add(EventType(slug="gammal", name="Gammal", default_duration_minutes=60, is_active=False))
        db_session.commit()

        with pytest.raises(ReferenceDataError):
            CatalogService(db_session).validate_reference_data()

    def test_missing_approved_status_only_warns(self, db_session, seeded_event_types, caplog):
        db_session.add(WorkflowStatus(slug="new", name="Ny", is_default=True))
        db_session.commit()

        CatalogService(db_session).validate_reference_data()

        assert "No 'approved' workflow status found" in caplog.text

    def test_seed_is_idempotent(self, db_session):
        assert seed_workflow_statuses(db_session) == 4
        assert seed_event_types(db_session) == 2

        assert seed_workflow_statuses(db_session) == 0
        assert seed_event_types(db_session) == 0
        assert db_session.query(EventType).count() == 2
