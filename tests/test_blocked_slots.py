"""Tests for the public calendar projection of approved bookings."""
from dataclasses import asdict
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from bookingflow.models.domain import WorkflowStatus
from bookingflow.services.calendar import BlockedSlotProjector

STOCKHOLM = ZoneInfo("Europe/Stockholm")


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestBlockedSlotProjection:

    def test_slot_includes_buffers_in_display_timezone(self, db_session, statuses, make_event_type, make_booking):
        event_type = make_event_type("julkonsert", buffer_before=30, buffer_after=30, name="Julkonsert")
        booking = make_booking(event_type, statuses["approved"], utc(2024, 12, 13, 10, 0), duration=120)

        slots = BlockedSlotProjector(db_session, display_timezone=STOCKHOLM).project()

        # UTC+1 in December: 09:30Z-12:30Z is 10:30-13:30 local
        assert len(slots) == 1
        slot = slots[0]
        assert slot.id == booking.id
        assert slot.date == "2024-12-13"
        assert slot.start_time == "10:30"
        assert slot.end_time == "13:30"
        assert slot.event_type_label == "Julkonsert"
        assert slot.event_type_slug == "julkonsert"
        assert slot.status_slug == "approved"

    def test_padded_end_crossing_local_midnight(self, db_session, statuses, make_event_type, make_booking):
        """Date follows the padded start; end time wraps past midnight."""
        event_type = make_event_type("julkonsert", buffer_before=30, buffer_after=30)
        # 22:30Z = 23:30 local; padded 23:00 -> 01:00 local
        make_booking(event_type, statuses["approved"], utc(2024, 12, 13, 22, 30), duration=60)

        slot = BlockedSlotProjector(db_session, display_timezone=STOCKHOLM).project()[0]

        assert slot.date == "2024-12-13"
        assert slot.start_time == "23:00"
        assert slot.end_time == "01:00"

    def test_padded_start_on_next_local_day(self, db_session, statuses, make_event_type, make_booking):
        """A padded start at local midnight belongs to the next local date, not the UTC date."""
        event_type = make_event_type("julkonsert", buffer_before=30, buffer_after=30)
        # Padded start 23:00Z on the 13th = 00:00 local on the 14th
        make_booking(event_type, statuses["approved"], utc(2024, 12, 13, 23, 30), duration=60)

        slot = BlockedSlotProjector(db_session, display_timezone=STOCKHOLM).project()[0]

        assert slot.date == "2024-12-14"
        assert slot.start_time == "00:00"
        assert slot.end_time == "02:00"

    def test_display_timezone_is_injectable(self, db_session, statuses, make_event_type, make_booking):
        event_type = make_event_type("julkonsert", buffer_before=30, buffer_after=30)
        make_booking(event_type, statuses["approved"], utc(2024, 12, 13, 23, 30), duration=60)

        slot = BlockedSlotProjector(db_session, display_timezone=timezone.utc).project()[0]

        assert slot.date == "2024-12-13"
        assert slot.start_time == "23:00"
        assert slot.end_time == "01:00"

    def test_only_approved_bookings_are_projected(self, db_session, statuses, make_event_type, make_booking):
        event_type = make_event_type("julkonsert")
        approved = make_booking(event_type, statuses["approved"], utc(2024, 12, 10, 10, 0))
        for offset, slug in enumerate(["pending", "reviewing", "completed"]):
            make_booking(event_type, statuses[slug], utc(2024, 12, 11 + offset, 10, 0))

        slots = BlockedSlotProjector(db_session).project()

        assert [s.id for s in slots] == [approved.id]

    def test_slots_ordered_by_start(self, db_session, statuses, make_event_type, make_booking):
        event_type = make_event_type("julkonsert")
        later = make_booking(event_type, statuses["approved"], utc(2024, 12, 20, 10, 0))
        earlier = make_booking(event_type, statuses["approved"], utc(2024, 12, 5, 10, 0))

        slots = BlockedSlotProjector(db_session).project()

        assert [s.id for s in slots] == [earlier.id, later.id]

    def test_slots_carry_no_contact_details(self, db_session, statuses, make_event_type, make_booking):
        event_type = make_event_type("julkonsert")
        make_booking(
            event_type,
            statuses["approved"],
            utc(2024, 12, 13, 10, 0),
            contact_name="Hemlig Person",
            additional_notes="Portkod 1234",
        )

        slot = BlockedSlotProjector(db_session).project()[0]

        assert set(asdict(slot)) == {
            "id", "date", "start_time", "end_time", "event_type_label", "event_type_slug", "status_slug",
        }
        assert "Hemlig Person" not in asdict(slot).values()

    def test_no_approved_status_returns_empty(self, db_session, make_event_type, make_booking):
        """Fail-soft: missing 'approved' slug yields no slots rather than an error."""
        new = WorkflowStatus(slug="new", name="Ny", is_default=True)
        db_session.add(new)
        db_session.commit()
        make_booking(make_event_type("julkonsert"), new, utc(2024, 12, 13, 10, 0))

        assert BlockedSlotProjector(db_session).project() == []

    def test_recomputed_on_each_call(self, db_session, statuses, make_event_type, make_booking):
        event_type = make_event_type("julkonsert")
        projector = BlockedSlotProjector(db_session)
        assert projector.project() == []

        make_booking(event_type, statuses["approved"], utc(2024, 12, 13, 10, 0))

        assert len(projector.project()) == 1


class TestBookingsInRange:

    def test_excludes_pending_and_out_of_range(self, db_session, statuses, make_event_type, make_booking):
        event_type = make_event_type("julkonsert")
        reviewing = make_booking(event_type, statuses["reviewing"], utc(2024, 12, 13, 10, 0))
        make_booking(event_type, statuses["pending"], utc(2024, 12, 13, 12, 0))
        make_booking(event_type, statuses["approved"], utc(2024, 12, 20, 10, 0))
        approved = make_booking(event_type, statuses["approved"], utc(2024, 12, 13, 8, 0))

        bookings = BlockedSlotProjector(db_session).bookings_in_range(
            utc(2024, 12, 13, 0, 0), utc(2024, 12, 14, 0, 0)
        )

        assert [b.id for b in bookings] == [approved.id, reviewing.id]
