"""
Appointment scheduling-conflict detection.

A conflict is a time-interval overlap between two active appointments of the
same artist. Intervals are half-open, ``[start, start + duration)``, so
back-to-back appointments (one ending exactly when the next begins) are
allowed.

Input that cannot be verified (missing artist, naive or missing start,
non-positive duration) is rejected with ``ValidationError``; the checker never
answers "no conflict" for a request it could not check.

Callers that are about to write must hold the artist row lock (see
``AppointmentTransaction``) so that check-then-write is atomic.
"""

import logging
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import Appointment, AppointmentStatus
from studio.errors import (
    AvailabilityCheckFailed,
    StoreTimeoutError,
    ValidationError,
    translate_store_error,
)

logger = logging.getLogger(__name__)


class ScheduledSlot(Protocol):
    id: Any
    artist_id: Any
    appointment_time: datetime
    duration_minutes: int
    status: Any


def intervals_overlap(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    """Half-open interval overlap test; touching endpoints do not overlap."""
    return a_start < b_end and a_end > b_start


def _coerce_artist_id(artist_id: Any) -> UUID:
    if artist_id is None:
        raise ValidationError("artist_id is required to check availability", field="artist_id")
    if isinstance(artist_id, UUID):
        return artist_id
    try:
        return UUID(str(artist_id))
    except ValueError:
        raise ValidationError(f"Invalid artist_id: {artist_id!r}", field="artist_id")


def validate_conflict_input(
    artist_id: Any, proposed_start: Any, proposed_duration_minutes: Any
) -> UUID:
    """
    Validate conflict-check input.

    Returns:
        Normalized artist UUID

    Raises:
        ValidationError: any input is missing or malformed
    """
    normalized_artist_id = _coerce_artist_id(artist_id)

    if not isinstance(proposed_start, datetime):
        raise ValidationError(
            "appointment_time must be a valid instant", field="appointment_time"
        )
    if proposed_start.tzinfo is None or proposed_start.utcoffset() is None:
        raise ValidationError(
            "appointment_time must include a timezone offset", field="appointment_time"
        )

    if (
        isinstance(proposed_duration_minutes, bool)
        or not isinstance(proposed_duration_minutes, int)
        or proposed_duration_minutes <= 0
    ):
        raise ValidationError(
            "duration_minutes must be a positive integer", field="duration_minutes"
        )

    return normalized_artist_id


def end_instant(start: datetime, duration_minutes: int) -> datetime:
    """
    Absolute end of ``[start, start + duration)``.

    Computed in UTC so the duration is elapsed time, also across DST changes.
    """
    return start.astimezone(UTC) + timedelta(minutes=duration_minutes)


def proposed_interval(
    proposed_start: datetime, proposed_duration_minutes: int
) -> tuple[datetime, datetime]:
    """
    Compute ``[start, end)`` for a candidate appointment.

    Raises:
        AvailabilityCheckFailed: the end instant cannot be computed
    """
    try:
        proposed_start = proposed_start.astimezone(UTC)
        proposed_end = end_instant(proposed_start, proposed_duration_minutes)
    except (OverflowError, ValueError) as e:
        logger.error(
            f"Cannot compute end time for {proposed_start!r} + {proposed_duration_minutes} min: {e}"
        )
        raise AvailabilityCheckFailed(
            "Could not verify availability for the requested time."
        ) from e
    return proposed_start, proposed_end


def _slot_end(slot: ScheduledSlot) -> datetime:
    return end_instant(slot.appointment_time, slot.duration_minutes)


def first_conflict(
    existing: Iterable[ScheduledSlot],
    artist_id: UUID,
    proposed_start: datetime,
    proposed_end: datetime,
    excluding_appointment_id: Any = None,
) -> ScheduledSlot | None:
    """
    Return the earliest appointment in ``existing`` that blocks the candidate.

    Only appointments of the same artist, not canceled, with a positive
    duration and an overlapping interval count. ``excluding_appointment_id``
    is skipped (an appointment never conflicts with its own prior slot).
    """
    blocking = [
        slot
        for slot in existing
        if slot.artist_id == artist_id
        and AppointmentStatus(slot.status) != AppointmentStatus.CANCELED
        and slot.duration_minutes
        and slot.duration_minutes > 0
        and (excluding_appointment_id is None or slot.id != excluding_appointment_id)
        and intervals_overlap(proposed_start, proposed_end, slot.appointment_time, _slot_end(slot))
    ]
    if not blocking:
        return None
    return min(blocking, key=lambda slot: slot.appointment_time)


async def find_conflicting_appointment(
    session: AsyncSession,
    artist_id: Any,
    proposed_start: Any,
    proposed_duration_minutes: Any,
    excluding_appointment_id: UUID | None = None,
) -> Appointment | None:
    """
    Find an appointment of ``artist_id`` that overlaps the candidate slot.

    Args:
        session: Active session (inside the caller's transaction)
        artist_id: Artist whose schedule is checked
        proposed_start: Candidate start (timezone-aware)
        proposed_duration_minutes: Candidate duration (> 0)
        excluding_appointment_id: Appointment to ignore (update flow)

    Returns:
        The earliest conflicting Appointment, or None

    Raises:
        ValidationError: invalid input
        AvailabilityCheckFailed: the check could not be completed
        StoreTimeoutError: the store did not answer in time
    """
    normalized_artist_id = validate_conflict_input(
        artist_id, proposed_start, proposed_duration_minutes
    )
    start, end = proposed_interval(proposed_start, proposed_duration_minutes)

    # Existing end is computed from duration in SQL, as stored rows define it
    stmt = (
        select(Appointment)
        .where(Appointment.artist_id == normalized_artist_id)
        .where(Appointment.status != AppointmentStatus.CANCELED)
        .where(Appointment.duration_minutes > 0)
        .where(Appointment.appointment_time < end)
        .where(
            text(
                "appointments.appointment_time"
                " + (appointments.duration_minutes * interval '1 minute') > :proposed_start"
            ).bindparams(proposed_start=start)
        )
        .order_by(Appointment.appointment_time)
    )
    if excluding_appointment_id is not None:
        stmt = stmt.where(Appointment.id != excluding_appointment_id)

    try:
        result = await session.execute(stmt)
        candidates = list(result.scalars().all())
    except (SQLAlchemyError, TimeoutError) as e:
        translated = translate_store_error(e, "availability check")
        if isinstance(translated, StoreTimeoutError):
            raise translated from e
        raise AvailabilityCheckFailed(
            "Could not verify availability for the requested time."
        ) from e

    conflict = first_conflict(
        candidates, normalized_artist_id, start, end, excluding_appointment_id
    )

    if conflict is not None:
        logger.warning(
            f"Slot conflict detected: {start.isoformat()} - {end.isoformat()}",
            extra={
                "artist_id": str(normalized_artist_id),
                "appointment_id": str(conflict.id),
            },
        )
    else:
        logger.debug(
            f"Slot available: {start.isoformat()} - {end.isoformat()}",
            extra={"artist_id": str(normalized_artist_id)},
        )
    return conflict


async def has_conflict(
    session: AsyncSession,
    artist_id: Any,
    proposed_start: Any,
    proposed_duration_minutes: Any,
    excluding_appointment_id: UUID | None = None,
) -> bool:
    """
    Pure predicate: does the candidate slot overlap another active appointment
    of the same artist?

    Raises the same typed errors as ``find_conflicting_appointment``; never
    returns False for input it could not check.
    """
    conflict = await find_conflicting_appointment(
        session,
        artist_id,
        proposed_start,
        proposed_duration_minutes,
        excluding_appointment_id=excluding_appointment_id,
    )
    return conflict is not None
