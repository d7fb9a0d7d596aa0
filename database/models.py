"""
SQLAlchemy ORM models for the studio database.

This module defines the tables:
- users: API users (authentication only)
- clients: Studio clients with contact info
- artists: Tattoo artists (unique names)
- appointments: Bookings with schedule, pricing and payment tracking
- expenses: Studio expenses for financial reports

All models use:
- UUID primary keys (auto-generated)
- TIMESTAMP WITH TIME ZONE for datetime fields
- Integer money columns (smallest display unit, no fractional cents)

The appointments table additionally carries an exclusion constraint
(created by the initial Alembic migration) that rejects overlapping,
non-canceled appointments for the same artist:

    EXCLUDE USING gist (
        artist_id WITH =,
        tstzrange(appointment_time, ends_at, '[)') WITH &&
    ) WHERE (status <> 'canceled')
"""

from datetime import UTC, date, datetime, timedelta
from enum import Enum as PyEnum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    DATE,
    TIMESTAMP,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy import (
    Enum as SQLEnum,
)
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# ============================================================================
# Base Class
# ============================================================================


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def utcnow() -> datetime:
    """Timezone-aware current instant (UTC)."""
    return datetime.now(UTC)


# ============================================================================
# Enums
# ============================================================================


class AppointmentStatus(str, PyEnum):
    """Appointment lifecycle status."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELED = "canceled"
    NO_SHOW = "no-show"

    def __str__(self):
        return self.value


class PaymentStatus(str, PyEnum):
    """Client payment progress for an appointment."""

    PENDING = "pending"
    DEPOSIT_PAID = "deposit_paid"
    FULLY_PAID = "fully_paid"

    def __str__(self):
        return self.value


class ExpenseCategory(str, PyEnum):
    """Fixed set of expense categories."""

    RENT = "rent"
    SUPPLIES = "supplies"
    UTILITIES = "utilities"
    OTHER = "other"

    def __str__(self):
        return self.value


def _enum_values(enum_cls) -> list[str]:
    return [e.value for e in enum_cls]


# ============================================================================
# Core Models
# ============================================================================


class User(Base):
    """API user. Only used to issue and verify access tokens."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4
    )
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"


class Client(Base):
    """
    Client model - People who book appointments.

    Email is optional but unique when present.
    """

    __tablename__ = "clients"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4
    )
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    appointments: Mapped[list["Appointment"]] = relationship(
        "Appointment",
        back_populates="client",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_clients_name", "name"),
    )

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, name='{self.name}')>"


class Artist(Base):
    """
    Artist model - Tattoo artists whose time is booked.

    Appointments lock the artist row while checking for schedule conflicts.
    """

    __tablename__ = "artists"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4
    )
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    appointments: Mapped[list["Appointment"]] = relationship(
        "Appointment", back_populates="artist", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Artist(id={self.id}, name='{self.name}')>"


# ============================================================================
# Transactional Models
# ============================================================================


class Appointment(Base):
    """
    Appointment model - A booked slot for one client with one artist.

    ``ends_at`` is always ``appointment_time + duration_minutes`` and is
    maintained by the application so the store can index the interval.
    ``deposit_paid_at`` and ``completed_at`` are write-once.
    """

    __tablename__ = "appointments"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4
    )

    # Foreign keys
    client_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("clients.id", ondelete="CASCADE", name="fk_appointments_client_id"),
        nullable=False,
        index=True,
    )
    artist_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("artists.id", ondelete="RESTRICT", name="fk_appointments_artist_id"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL", name="fk_appointments_user_id"),
        nullable=True,
    )

    # Scheduling
    appointment_time: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, index=True
    )
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    ends_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Status tracking
    # Note: values_callable stores enum .value ("no-show") instead of .name
    status: Mapped[AppointmentStatus] = mapped_column(
        SQLEnum(
            AppointmentStatus,
            name="appointment_status",
            create_type=False,
            values_callable=_enum_values,
        ),
        default=AppointmentStatus.SCHEDULED,
        nullable=False,
        index=True,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(
            PaymentStatus,
            name="payment_status",
            create_type=False,
            values_callable=_enum_values,
        ),
        default=PaymentStatus.PENDING,
        nullable=False,
    )

    # Pricing
    total_price: Mapped[int | None] = mapped_column(Integer, nullable=True)
    amount_paid: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )

    # Income recognition instants (write-once)
    deposit_paid_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    # Relationships
    client: Mapped["Client"] = relationship("Client", back_populates="appointments")
    artist: Mapped["Artist"] = relationship("Artist", back_populates="appointments")
    user: Mapped[Optional["User"]] = relationship("User")

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="check_appointment_duration_positive"),
        CheckConstraint("ends_at > appointment_time", name="check_appointment_ends_after_start"),
        CheckConstraint(
            "ends_at = appointment_time + duration_minutes * interval '1 minute'",
            name="check_appointment_ends_at_matches_duration",
        ),
        CheckConstraint("amount_paid >= 0", name="check_amount_paid_non_negative"),
        CheckConstraint(
            "total_price IS NULL OR total_price >= 0", name="check_total_price_non_negative"
        ),
        CheckConstraint(
            "total_price IS NULL OR amount_paid <= total_price",
            name="check_amount_paid_within_total",
        ),
        # Conflict lookups: one artist's active appointments by time
        Index(
            "idx_appointments_artist_time_active",
            "artist_id",
            "appointment_time",
            postgresql_where=text("status <> 'canceled'"),
        ),
        # Income recognition queries
        Index(
            "idx_appointments_deposit_paid_at",
            "deposit_paid_at",
            postgresql_where=text("deposit_paid_at IS NOT NULL"),
        ),
        Index(
            "idx_appointments_completed_at",
            "completed_at",
            postgresql_where=text("completed_at IS NOT NULL"),
        ),
    )

    @property
    def end_time(self) -> datetime:
        """End instant of the half-open interval [appointment_time, end_time)."""
        return self.appointment_time.astimezone(UTC) + timedelta(minutes=self.duration_minutes)

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, artist_id={self.artist_id}, status='{self.status.value}')>"


class Expense(Base):
    """Expense model - Money spent by the studio on a calendar date."""

    __tablename__ = "expenses"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid4
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[ExpenseCategory] = mapped_column(
        SQLEnum(
            ExpenseCategory,
            name="expense_category",
            create_type=False,
            values_callable=_enum_values,
        ),
        nullable=False,
    )
    expense_date: Mapped[date] = mapped_column(DATE, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="check_expense_amount_positive"),
    )

    def __repr__(self) -> str:
        return f"<Expense(id={self.id}, amount={self.amount}, date={self.expense_date})>"
