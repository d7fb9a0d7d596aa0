"""
Request schemas for studio entities.

Create schemas carry required fields; patch schemas make every field
optional where ``None`` means "leave unchanged". Money fields go through
``parse_money`` exactly once, here at the boundary, so services only ever
see validated integers.
"""

from datetime import date, datetime
from typing import Any
from uuid import UUID
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field, field_validator, model_validator

from database.models import (
    AppointmentStatus,
    ExpenseCategory,
    PaymentStatus,
)
from shared.config import get_settings
from studio.errors import StudioError
from studio.utils.money import parse_money, parse_positive_money


def studio_timezone() -> ZoneInfo:
    return ZoneInfo(get_settings().STUDIO_TIMEZONE)


def ensure_aware(value: datetime | None) -> datetime | None:
    """
    Attach the studio timezone to naive datetimes.

    The front end may send "2025-06-10T14:00:00" without an offset; such
    values are wall-clock times at the studio.
    """
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=studio_timezone())


def _money_field(value: Any, field: str, positive: bool = False) -> int | None:
    if value is None:
        return None
    try:
        if positive:
            return parse_positive_money(value, field=field)
        return parse_money(value, field=field)
    except StudioError as e:
        raise ValueError(e.message) from e


def _duration_field(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError("duration_minutes must be a whole number of minutes")
    return value


# =============================================================================
# Appointments
# =============================================================================


class AppointmentCreate(BaseModel):
    client_id: UUID
    artist_id: UUID
    appointment_time: datetime
    duration_minutes: int = Field(..., gt=0)
    description: str | None = None
    total_price: int | None = None
    amount_paid: int = 0
    payment_status: PaymentStatus = PaymentStatus.PENDING
    status: AppointmentStatus = AppointmentStatus.SCHEDULED

    @field_validator("appointment_time")
    @classmethod
    def ensure_studio_tz(cls, v):
        return ensure_aware(v)

    @field_validator("duration_minutes", mode="before")
    @classmethod
    def check_duration(cls, v):
        return _duration_field(v)

    @field_validator("total_price", mode="before")
    @classmethod
    def parse_total_price(cls, v):
        return _money_field(v, "total_price")

    @field_validator("amount_paid", mode="before")
    @classmethod
    def parse_amount_paid(cls, v):
        parsed = _money_field(v, "amount_paid")
        return 0 if parsed is None else parsed

    @model_validator(mode="after")
    def check_amount_within_total(self):
        if self.total_price is not None and self.amount_paid > self.total_price:
            raise ValueError("amount_paid cannot exceed total_price")
        return self


class AppointmentPatch(BaseModel):
    """
    Partial appointment update.

    Every field is optional; ``None`` (or an omitted field) leaves the stored
    value unchanged. See ``merge_appointment_patch`` for the merge rule.
    """

    client_id: UUID | None = None
    artist_id: UUID | None = None
    appointment_time: datetime | None = None
    duration_minutes: int | None = Field(None, gt=0)
    description: str | None = None
    total_price: int | None = None
    amount_paid: int | None = None
    payment_status: PaymentStatus | None = None
    status: AppointmentStatus | None = None

    @field_validator("appointment_time")
    @classmethod
    def ensure_studio_tz(cls, v):
        return ensure_aware(v)

    @field_validator("duration_minutes", mode="before")
    @classmethod
    def check_duration(cls, v):
        return _duration_field(v)

    @field_validator("total_price", "amount_paid", mode="before")
    @classmethod
    def parse_amounts(cls, v, info):
        return _money_field(v, info.field_name)

    @model_validator(mode="after")
    def require_at_least_one_field(self):
        if not self.changed_fields():
            raise ValueError("At least one field is required to update an appointment")
        return self

    def changed_fields(self) -> dict[str, Any]:
        """Fields that carry a value (i.e. will change the stored record)."""
        return {
            name: value
            for name, value in self.model_dump(exclude_none=True).items()
        }


# =============================================================================
# Expenses
# =============================================================================


class ExpenseCreate(BaseModel):
    description: str = Field(..., min_length=1)
    amount: int
    category: ExpenseCategory
    expense_date: date | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, v):
        if v is None:
            raise ValueError("amount is required")
        return _money_field(v, "amount", positive=True)


class ExpensePatch(BaseModel):
    description: str | None = Field(None, min_length=1)
    amount: int | None = None
    category: ExpenseCategory | None = None
    expense_date: date | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, v):
        return _money_field(v, "amount", positive=True)

    @model_validator(mode="after")
    def require_at_least_one_field(self):
        if not self.model_dump(exclude_none=True):
            raise ValueError("At least one field is required to update an expense")
        return self


# =============================================================================
# Clients & Artists
# =============================================================================


class ClientBody(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    phone: str | None = Field(None, max_length=30)
    email: str | None = Field(None, max_length=255)
    notes: str | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Client name is required")
        return v

    @field_validator("email")
    @classmethod
    def blank_email_is_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v


class ArtistBody(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Artist name is required")
        return v
