"""
Appointments API Endpoints

Writes go through ``AppointmentTransaction`` so every create and every
schedule-changing update is conflict-checked under the artist row lock.
"""

import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Query, status
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from api.auth import CurrentUser
from api.deps import SessionDep
from database.models import Appointment, AppointmentStatus
from studio.errors import NotFoundError, ValidationError
from studio.schemas import AppointmentCreate, AppointmentPatch, ensure_aware
from studio.transactions import AppointmentTransaction

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/appointments", tags=["appointments"])


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def appointment_to_dict(
    appointment: Appointment,
    client_name: str | None = None,
    artist_name: str | None = None,
) -> dict:
    data = {
        "id": str(appointment.id),
        "client_id": str(appointment.client_id),
        "artist_id": str(appointment.artist_id),
        "appointment_time": appointment.appointment_time.isoformat(),
        "duration_minutes": appointment.duration_minutes,
        "end_time": appointment.end_time.isoformat(),
        "description": appointment.description,
        "status": str(appointment.status),
        "payment_status": str(appointment.payment_status),
        "total_price": appointment.total_price,
        "amount_paid": appointment.amount_paid,
        "deposit_paid_at": _iso(appointment.deposit_paid_at),
        "completed_at": _iso(appointment.completed_at),
        "created_at": _iso(appointment.created_at),
        "updated_at": _iso(appointment.updated_at),
    }
    if client_name is not None or artist_name is not None:
        data["client_name"] = client_name
        data["artist_name"] = artist_name
    return data


def _with_names(appointment: Appointment) -> dict:
    return appointment_to_dict(
        appointment,
        client_name=appointment.client.name if appointment.client else None,
        artist_name=appointment.artist.name if appointment.artist else None,
    )


@router.get("")
async def list_appointments(
    current_user: CurrentUser,
    session: SessionDep,
    artist_id: UUID | None = None,
    appointment_status: AppointmentStatus | None = Query(None, alias="status"),
    start: datetime | None = None,
    end: datetime | None = None,
):
    """
    List appointments ordered by start time, with client and artist names.

    Optional filters: artist, status and a ``[start, end]`` range on the
    appointment start time.
    """
    start, end = ensure_aware(start), ensure_aware(end)
    if start and end and start > end:
        raise ValidationError("start must not be after end", field="start")

    query = select(Appointment).options(
        selectinload(Appointment.client), selectinload(Appointment.artist)
    )
    if artist_id is not None:
        query = query.where(Appointment.artist_id == artist_id)
    if appointment_status is not None:
        query = query.where(Appointment.status == appointment_status)
    if start is not None:
        query = query.where(Appointment.appointment_time >= start)
    if end is not None:
        query = query.where(Appointment.appointment_time <= end)
    query = query.order_by(Appointment.appointment_time)

    result = await session.execute(query)
    return [_with_names(a) for a in result.scalars().all()]


@router.get("/{appointment_id}")
async def get_appointment(appointment_id: UUID, current_user: CurrentUser, session: SessionDep):
    result = await session.execute(
        select(Appointment)
        .options(selectinload(Appointment.client), selectinload(Appointment.artist))
        .where(Appointment.id == appointment_id)
    )
    appointment = result.scalar_one_or_none()
    if not appointment:
        raise NotFoundError(f"Appointment {appointment_id} not found.")
    return _with_names(appointment)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_appointment(
    request: AppointmentCreate, current_user: CurrentUser, session: SessionDep
):
    """Book an appointment (409 when the artist is already booked in that range)."""
    user_id = current_user.get("uid")
    appointment = await AppointmentTransaction.create(
        session, request, user_id=UUID(user_id) if user_id else None
    )
    return appointment_to_dict(appointment)


@router.put("/{appointment_id}")
async def update_appointment(
    appointment_id: UUID,
    request: AppointmentPatch,
    current_user: CurrentUser,
    session: SessionDep,
):
    """Partially update an appointment; omitted fields keep their values."""
    appointment = await AppointmentTransaction.update(session, appointment_id, request)
    return appointment_to_dict(appointment)


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_appointment(
    appointment_id: UUID, current_user: CurrentUser, session: SessionDep
):
    await AppointmentTransaction.delete(session, appointment_id)
