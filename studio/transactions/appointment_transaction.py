"""
Appointment Transaction Handler.

Create, update and delete appointments atomically. Create and update follow
the same protocol:

1. Validate input (request schema + merged money invariants) before writing
2. Lock the artist row (``SELECT ... FOR UPDATE``) so concurrent bookings for
   one artist are serialized
3. Run the conflict check inside the same transaction
4. Persist and commit

The exclusion constraint on ``appointments`` is the store-level backstop; an
overlap that still reaches the store surfaces as ``ConflictError`` through
``translate_store_error``.
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import Appointment, AppointmentStatus, Artist, Client
from studio.errors import (
    ConflictError,
    InvalidReferenceError,
    NotFoundError,
    StudioError,
    translate_store_error,
)
from studio.schemas import AppointmentCreate, AppointmentPatch
from studio.services.appointment_state import (
    AppointmentState,
    initial_state,
    merge_appointment_patch,
    schedule_changed,
    validate_amounts,
)
from studio.services.conflict_checker import find_conflicting_appointment

logger = logging.getLogger(__name__)


async def _lock_artist(session: AsyncSession, artist_id: UUID, trace_id: str) -> Artist:
    """Lock the artist row for the rest of the transaction."""
    stmt = select(Artist).where(Artist.id == artist_id).with_for_update()
    result = await session.execute(stmt)
    artist = result.scalar_one_or_none()
    if artist is None:
        logger.warning(f"[{trace_id}] Artist not found: {artist_id}")
        raise InvalidReferenceError(
            f"Artist {artist_id} does not exist.", field="artist_id"
        )
    return artist


async def _require_client(session: AsyncSession, client_id: UUID, trace_id: str) -> None:
    result = await session.execute(select(Client.id).where(Client.id == client_id))
    if result.scalar_one_or_none() is None:
        logger.warning(f"[{trace_id}] Client not found: {client_id}")
        raise InvalidReferenceError(
            f"Client {client_id} does not exist.", field="client_id"
        )


async def _ensure_slot_free(
    session: AsyncSession,
    state: AppointmentState,
    trace_id: str,
    excluding_appointment_id: UUID | None = None,
) -> None:
    conflict = await find_conflicting_appointment(
        session,
        state.artist_id,
        state.appointment_time,
        state.duration_minutes,
        excluding_appointment_id=excluding_appointment_id,
    )
    if conflict is not None:
        logger.warning(
            f"[{trace_id}] Slot conflict",
            extra={"appointment_id": str(conflict.id), "artist_id": str(state.artist_id)},
        )
        raise ConflictError(
            "Schedule conflict: the artist already has an appointment in that time range.",
            conflicting_appointment_id=str(conflict.id),
        )


class AppointmentTransaction:
    """
    Atomic transaction handler for appointment writes.

    Every method commits on success and rolls back on failure, raising a
    typed ``StudioError``.
    """

    @staticmethod
    async def create(
        session: AsyncSession,
        payload: AppointmentCreate,
        user_id: UUID | None = None,
        now: datetime | None = None,
    ) -> Appointment:
        """
        Create an appointment after checking the artist's schedule.

        Raises:
            ValidationError: money invariants broken
            InvalidReferenceError: artist or client does not exist
            ConflictError: the slot overlaps another active appointment
            AvailabilityCheckFailed / StoreError / StoreTimeoutError
        """
        now = now or datetime.now(UTC)
        trace_id = f"{payload.artist_id}_{payload.appointment_time.isoformat()}"
        logger.info(
            f"[{trace_id}] Starting appointment create",
            extra={
                "trace_id": trace_id,
                "artist_id": str(payload.artist_id),
                "client_id": str(payload.client_id),
            },
        )

        state = initial_state(payload, now=now)

        try:
            await _lock_artist(session, state.artist_id, trace_id)
            await _require_client(session, state.client_id, trace_id)

            if state.status != AppointmentStatus.CANCELED:
                await _ensure_slot_free(session, state, trace_id)

            appointment = Appointment(user_id=user_id, **state.column_values())
            session.add(appointment)
            await session.flush()
            await session.commit()
            await session.refresh(appointment)

        except StudioError:
            await session.rollback()
            raise
        except (SQLAlchemyError, TimeoutError) as e:
            await session.rollback()
            raise translate_store_error(e, "appointment create") from e

        logger.info(
            f"[{trace_id}] Appointment created",
            extra={"appointment_id": str(appointment.id), "artist_id": str(appointment.artist_id)},
        )
        return appointment

    @staticmethod
    async def update(
        session: AsyncSession,
        appointment_id: UUID,
        patch: AppointmentPatch,
        now: datetime | None = None,
    ) -> Appointment:
        """
        Apply a partial update.

        The conflict check re-runs only when artist, start instant or
        duration actually change, or when a canceled appointment becomes
        active again. The appointment itself is excluded from the check.

        Raises:
            NotFoundError: appointment does not exist
            plus everything ``create`` raises
        """
        now = now or datetime.now(UTC)
        trace_id = f"update_{appointment_id}"
        logger.info(
            f"[{trace_id}] Starting appointment update",
            extra={"trace_id": trace_id, "appointment_id": str(appointment_id)},
        )

        try:
            stmt = select(Appointment).where(Appointment.id == appointment_id).with_for_update()
            result = await session.execute(stmt)
            appointment = result.scalar_one_or_none()
            if appointment is None:
                raise NotFoundError(f"Appointment {appointment_id} not found.")

            current = AppointmentState.from_model(appointment)
            merged = merge_appointment_patch(current, patch, now=now)
            validate_amounts(merged)

            if merged.client_id != current.client_id:
                await _require_client(session, merged.client_id, trace_id)

            reactivated = (
                current.status == AppointmentStatus.CANCELED
                and merged.status != AppointmentStatus.CANCELED
            )
            needs_check = merged.status != AppointmentStatus.CANCELED and (
                schedule_changed(current, merged) or reactivated
            )

            if needs_check:
                await _lock_artist(session, merged.artist_id, trace_id)
                await _ensure_slot_free(
                    session, merged, trace_id, excluding_appointment_id=appointment.id
                )
            else:
                logger.debug(f"[{trace_id}] Schedule unchanged, conflict check skipped")

            for column, value in merged.column_values().items():
                setattr(appointment, column, value)

            await session.flush()
            await session.commit()
            await session.refresh(appointment)

        except StudioError:
            await session.rollback()
            raise
        except (SQLAlchemyError, TimeoutError) as e:
            await session.rollback()
            raise translate_store_error(e, "appointment update") from e

        logger.info(
            f"[{trace_id}] Appointment updated",
            extra={"appointment_id": str(appointment.id), "artist_id": str(appointment.artist_id)},
        )
        return appointment

    @staticmethod
    async def delete(session: AsyncSession, appointment_id: UUID) -> None:
        """Hard-delete an appointment. Raises NotFoundError when missing."""
        try:
            result = await session.execute(
                select(Appointment).where(Appointment.id == appointment_id)
            )
            appointment = result.scalar_one_or_none()
            if appointment is None:
                raise NotFoundError(f"Appointment {appointment_id} not found.")

            await session.delete(appointment)
            await session.commit()

        except StudioError:
            await session.rollback()
            raise
        except (SQLAlchemyError, TimeoutError) as e:
            await session.rollback()
            raise translate_store_error(e, "appointment delete") from e

        logger.info(
            f"Appointment deleted: {appointment_id}",
            extra={"appointment_id": str(appointment_id)},
        )
