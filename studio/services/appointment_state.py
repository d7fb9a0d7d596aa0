"""
Appointment state and the patch merge rule.

``AppointmentState`` is an immutable snapshot of the fields that matter to
scheduling and billing. All derivations that used to be inline per-field
coalescing live here as plain functions:

- ``initial_state``: state for a new appointment (sets first-payment and
  completion instants when the booking is created already paid/completed)
- ``merge_appointment_patch``: patch semantics + write-once timestamps
- ``schedule_changed``: whether an update must re-run the conflict check
- ``validate_amounts``: money invariants on a merged state
"""

from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from database.models import Appointment, AppointmentStatus, PaymentStatus
from studio.errors import ValidationError
from studio.schemas import AppointmentCreate, AppointmentPatch
from studio.services.conflict_checker import end_instant

# Fields copied verbatim from a patch when present
PATCHABLE_FIELDS = (
    "client_id",
    "artist_id",
    "appointment_time",
    "duration_minutes",
    "description",
    "total_price",
    "amount_paid",
    "payment_status",
    "status",
)


@dataclass(frozen=True)
class AppointmentState:
    client_id: UUID
    artist_id: UUID
    appointment_time: datetime
    duration_minutes: int
    description: str | None = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    payment_status: PaymentStatus = PaymentStatus.PENDING
    total_price: int | None = None
    amount_paid: int = 0
    deposit_paid_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def ends_at(self) -> datetime:
        return end_instant(self.appointment_time, self.duration_minutes)

    @classmethod
    def from_model(cls, appointment: Appointment) -> "AppointmentState":
        return cls(
            client_id=appointment.client_id,
            artist_id=appointment.artist_id,
            appointment_time=appointment.appointment_time,
            duration_minutes=appointment.duration_minutes,
            description=appointment.description,
            status=AppointmentStatus(appointment.status),
            payment_status=PaymentStatus(appointment.payment_status),
            total_price=appointment.total_price,
            amount_paid=appointment.amount_paid or 0,
            deposit_paid_at=appointment.deposit_paid_at,
            completed_at=appointment.completed_at,
        )

    def column_values(self) -> dict[str, Any]:
        """Column values to write on the ORM row (includes derived ends_at)."""
        return {
            "client_id": self.client_id,
            "artist_id": self.artist_id,
            "appointment_time": self.appointment_time,
            "duration_minutes": self.duration_minutes,
            "ends_at": self.ends_at,
            "description": self.description,
            "status": self.status,
            "payment_status": self.payment_status,
            "total_price": self.total_price,
            "amount_paid": self.amount_paid,
            "deposit_paid_at": self.deposit_paid_at,
            "completed_at": self.completed_at,
        }


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(UTC)


def validate_amounts(state: AppointmentState) -> None:
    """Raise ValidationError when money fields break their invariants."""
    if state.amount_paid < 0:
        raise ValidationError("amount_paid cannot be negative", field="amount_paid")
    if state.total_price is not None:
        if state.total_price < 0:
            raise ValidationError("total_price cannot be negative", field="total_price")
        if state.amount_paid > state.total_price:
            raise ValidationError(
                "amount_paid cannot exceed total_price", field="amount_paid"
            )


def initial_state(payload: AppointmentCreate, now: datetime | None = None) -> AppointmentState:
    """Build the state of a new appointment."""
    now = _now(now)
    state = AppointmentState(
        client_id=payload.client_id,
        artist_id=payload.artist_id,
        appointment_time=payload.appointment_time,
        duration_minutes=payload.duration_minutes,
        description=payload.description,
        status=payload.status,
        payment_status=payload.payment_status,
        total_price=payload.total_price,
        amount_paid=payload.amount_paid,
        deposit_paid_at=(
            now
            if payload.payment_status == PaymentStatus.DEPOSIT_PAID and payload.amount_paid > 0
            else None
        ),
        completed_at=now if payload.status == AppointmentStatus.COMPLETED else None,
    )
    validate_amounts(state)
    return state


def merge_appointment_patch(
    current: AppointmentState,
    patch: AppointmentPatch,
    now: datetime | None = None,
) -> AppointmentState:
    """
    Apply a patch to the current state.

    Rules:
    - a field that is None in the patch keeps its current value
    - ``deposit_paid_at`` is set to ``now`` only if it is unset, the patch
      moves ``payment_status`` into ``deposit_paid`` from another value, and
      the merged ``amount_paid`` is positive
    - ``completed_at`` is set to ``now`` only if it is unset and the patch
      moves ``status`` into ``completed`` from another value
    - once set, neither timestamp is ever changed by a patch
    """
    now = _now(now)
    changes = {
        name: value
        for name, value in patch.changed_fields().items()
        if name in PATCHABLE_FIELDS
    }
    merged = replace(current, **changes)

    deposit_paid_at = current.deposit_paid_at
    if (
        deposit_paid_at is None
        and patch.payment_status == PaymentStatus.DEPOSIT_PAID
        and current.payment_status != PaymentStatus.DEPOSIT_PAID
        and merged.amount_paid > 0
    ):
        deposit_paid_at = now

    completed_at = current.completed_at
    if (
        completed_at is None
        and patch.status == AppointmentStatus.COMPLETED
        and current.status != AppointmentStatus.COMPLETED
    ):
        completed_at = now

    return replace(merged, deposit_paid_at=deposit_paid_at, completed_at=completed_at)


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def schedule_changed(current: AppointmentState, merged: AppointmentState) -> bool:
    """
    True when artist, start instant or duration differ after normalization.

    Start instants are compared in UTC so "2025-06-10T09:00-05:00" and
    "2025-06-10T14:00Z" count as the same slot.
    """
    return (
        UUID(str(merged.artist_id)) != UUID(str(current.artist_id))
        or _utc(merged.appointment_time) != _utc(current.appointment_time)
        or int(merged.duration_minutes) != int(current.duration_minutes)
    )
