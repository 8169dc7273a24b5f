"""
Half-open time intervals and the buffer padding applied around bookings.

A booking occupies [start, start + duration). Its padded interval extends
that by the event type's buffer before and after. Two padded intervals
conflict only if they overlap with strict inequality, so back-to-back
intervals never collide.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone


def as_utc(value: datetime) -> datetime:
    """
    Normalise a datetime to an aware UTC value.

    Naive values are assumed to already be UTC (SQLite returns stored
    timestamps without their offset).
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Interval:
    """Half-open range [start, end)."""
    start: datetime
    end: datetime

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and self.end > other.start

    def padded(self, before_minutes: int, after_minutes: int) -> "Interval":
        return Interval(
            start=self.start - timedelta(minutes=before_minutes),
            end=self.end + timedelta(minutes=after_minutes),
        )


def booking_interval(start: datetime, duration_minutes: int) -> Interval:
    start = as_utc(start)
    return Interval(start=start, end=start + timedelta(minutes=duration_minutes))


def padded_interval(
    start: datetime,
    duration_minutes: int,
    buffer_before_minutes: int = 0,
    buffer_after_minutes: int = 0,
) -> Interval:
    return booking_interval(start, duration_minutes).padded(
        buffer_before_minutes, buffer_after_minutes
    )
