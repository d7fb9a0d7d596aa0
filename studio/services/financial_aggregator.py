"""
Financial aggregation over appointments and expenses.

Income is recognized per event, not per appointment:

- deposit event: ``amount_paid`` dated at ``deposit_paid_at`` when the
  appointment is ``deposit_paid`` with a positive amount
- completion event: ``total_price`` (0 when unset) dated at ``completed_at``
  when the appointment is ``completed``

An event counts toward a window only if its own instant lies inside the
window. Both events may fire for one appointment and both are counted, so a
deposit and the completion in the same month add up to deposit + full price.
That is the studio's accounting model and is preserved here.

Windows are inclusive ``[start, end]`` pairs of timezone-aware instants (see
``studio.utils.report_windows``). Expenses are dated by calendar day and are
matched against the window's dates in the studio timezone.

The pending balance is a snapshot at "now" and ignores the window.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from database.models import (
    Appointment,
    AppointmentStatus,
    Expense,
    PaymentStatus,
)
from studio.errors import ValidationError, translate_store_error
from studio.schemas import studio_timezone
from studio.utils.report_windows import start_of_today

logger = logging.getLogger(__name__)


# =============================================================================
# Result types
# =============================================================================


class IncomeKind(str, Enum):
    DEPOSIT = "deposit"
    COMPLETION = "completion"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class IncomeEvent:
    kind: IncomeKind
    appointment_id: UUID
    amount: int
    occurred_at: datetime
    client_name: str | None = None
    artist_name: str | None = None
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "appointment_id": str(self.appointment_id),
            "amount": self.amount,
            "occurred_at": self.occurred_at.isoformat(),
            "client_name": self.client_name,
            "artist_name": self.artist_name,
            "description": self.description,
        }


@dataclass(frozen=True)
class ExpenseLine:
    id: UUID
    description: str
    category: str
    amount: int
    expense_date: date
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "description": self.description,
            "category": str(self.category),
            "amount": self.amount,
            "expense_date": self.expense_date.isoformat(),
        }


@dataclass(frozen=True)
class ReportTotals:
    deposit_income: int = 0
    completion_income: int = 0
    expenses: int = 0

    @property
    def income(self) -> int:
        return self.deposit_income + self.completion_income

    @property
    def profit(self) -> int:
        return self.income - self.expenses

    def to_dict(self) -> dict[str, int]:
        return {
            "income": self.income,
            "deposit_income": self.deposit_income,
            "completion_income": self.completion_income,
            "expenses": self.expenses,
            "profit": self.profit,
        }


@dataclass(frozen=True)
class FinancialSummary:
    totals: ReportTotals
    pending_balance: int

    @property
    def income(self) -> int:
        return self.totals.income

    @property
    def expenses(self) -> int:
        return self.totals.expenses

    @property
    def profit(self) -> int:
        return self.totals.profit

    def to_dict(self) -> dict[str, int]:
        return {**self.totals.to_dict(), "pending_balance": self.pending_balance}


@dataclass(frozen=True)
class DetailedReport:
    totals: ReportTotals
    income_details: list[IncomeEvent] = field(default_factory=list)
    expense_details: list[ExpenseLine] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "income_details": [event.to_dict() for event in self.income_details],
            "expense_details": [line.to_dict() for line in self.expense_details],
            "totals": self.totals.to_dict(),
        }


# =============================================================================
# Classification rules (pure)
# =============================================================================


def validate_window(window_start: Any, window_end: Any) -> None:
    """Reject naive, missing or reversed windows before any query runs."""
    for name, value in (("window_start", window_start), ("window_end", window_end)):
        if not isinstance(value, datetime):
            raise ValidationError(f"{name} must be a datetime", field=name)
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValidationError(f"{name} must be timezone-aware", field=name)
    if window_start > window_end:
        raise ValidationError("window_start must not be after window_end", field="window_start")


def _in_window(instant: datetime | None, window_start: datetime, window_end: datetime) -> bool:
    return instant is not None and window_start <= instant <= window_end


def _names(appointment) -> tuple[str | None, str | None]:
    client = getattr(appointment, "client", None)
    artist = getattr(appointment, "artist", None)
    return getattr(client, "name", None), getattr(artist, "name", None)


def deposit_event(
    appointment, window_start: datetime, window_end: datetime
) -> IncomeEvent | None:
    """Deposit income for ``appointment`` inside the window, if any."""
    amount = appointment.amount_paid or 0
    if (
        PaymentStatus(appointment.payment_status) != PaymentStatus.DEPOSIT_PAID
        or amount <= 0
        or not _in_window(appointment.deposit_paid_at, window_start, window_end)
    ):
        return None
    client_name, artist_name = _names(appointment)
    return IncomeEvent(
        kind=IncomeKind.DEPOSIT,
        appointment_id=appointment.id,
        amount=amount,
        occurred_at=appointment.deposit_paid_at,
        client_name=client_name,
        artist_name=artist_name,
        description=appointment.description,
    )


def completion_event(
    appointment, window_start: datetime, window_end: datetime
) -> IncomeEvent | None:
    """Completion income (full price) for ``appointment`` inside the window, if any."""
    if AppointmentStatus(appointment.status) != AppointmentStatus.COMPLETED or not _in_window(
        appointment.completed_at, window_start, window_end
    ):
        return None
    client_name, artist_name = _names(appointment)
    return IncomeEvent(
        kind=IncomeKind.COMPLETION,
        appointment_id=appointment.id,
        amount=appointment.total_price or 0,
        occurred_at=appointment.completed_at,
        client_name=client_name,
        artist_name=artist_name,
        description=appointment.description,
    )


def income_events(
    appointments: Iterable, window_start: datetime, window_end: datetime
) -> list[IncomeEvent]:
    """All income events in the window, ascending by event instant."""
    events = []
    for appointment in appointments:
        for rule in (deposit_event, completion_event):
            event = rule(appointment, window_start, window_end)
            if event is not None:
                events.append(event)
    events.sort(key=lambda event: event.occurred_at)
    return events


def window_dates(window_start: datetime, window_end: datetime, tz: ZoneInfo) -> tuple[date, date]:
    """Calendar dates (in ``tz``) spanned by the window."""
    return window_start.astimezone(tz).date(), window_end.astimezone(tz).date()


def compute_totals(events: Iterable[IncomeEvent], expense_amounts: Iterable[int]) -> ReportTotals:
    deposit_income = 0
    completion_income = 0
    for event in events:
        if event.kind == IncomeKind.DEPOSIT:
            deposit_income += event.amount
        else:
            completion_income += event.amount
    return ReportTotals(
        deposit_income=deposit_income,
        completion_income=completion_income,
        expenses=sum(expense_amounts),
    )


def outstanding_balance(appointment, today_start: datetime) -> int:
    """
    Amount still owed on an upcoming, deposit-paid, scheduled appointment.

    Returns 0 for anything that does not count toward the pending balance.
    """
    total_price = appointment.total_price
    amount_paid = appointment.amount_paid or 0
    if (
        AppointmentStatus(appointment.status) != AppointmentStatus.SCHEDULED
        or PaymentStatus(appointment.payment_status) != PaymentStatus.DEPOSIT_PAID
        or appointment.appointment_time < today_start
        or total_price is None
        or total_price <= amount_paid
    ):
        return 0
    return total_price - amount_paid


def pending_balance(appointments: Iterable, today_start: datetime) -> int:
    return sum(outstanding_balance(appointment, today_start) for appointment in appointments)


# =============================================================================
# Store reads
# =============================================================================


def _studio_tz(tz: ZoneInfo | None) -> ZoneInfo:
    return tz if tz is not None else studio_timezone()


async def fetch_income_candidates(
    session: AsyncSession,
    window_start: datetime,
    window_end: datetime,
) -> Sequence[Appointment]:
    """
    Appointments with a deposit or completion instant inside the window.

    Client and artist are eager-loaded so event details never lazy-load.
    """
    stmt = select(Appointment).where(
        or_(
            and_(
                Appointment.payment_status == PaymentStatus.DEPOSIT_PAID,
                Appointment.amount_paid > 0,
                Appointment.deposit_paid_at >= window_start,
                Appointment.deposit_paid_at <= window_end,
            ),
            and_(
                Appointment.status == AppointmentStatus.COMPLETED,
                Appointment.completed_at >= window_start,
                Appointment.completed_at <= window_end,
            ),
        )
    )
    stmt = stmt.options(selectinload(Appointment.client), selectinload(Appointment.artist))
    result = await session.execute(stmt)
    return result.scalars().all()


async def fetch_expenses(
    session: AsyncSession, start_date: date, end_date: date
) -> Sequence[Expense]:
    stmt = (
        select(Expense)
        .where(Expense.expense_date >= start_date)
        .where(Expense.expense_date <= end_date)
        .order_by(Expense.expense_date, Expense.created_at)
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def fetch_pending_candidates(
    session: AsyncSession, today_start: datetime
) -> Sequence[Appointment]:
    stmt = (
        select(Appointment)
        .where(Appointment.status == AppointmentStatus.SCHEDULED)
        .where(Appointment.payment_status == PaymentStatus.DEPOSIT_PAID)
        .where(Appointment.appointment_time >= today_start)
        .where(Appointment.total_price.is_not(None))
        .where(Appointment.total_price > Appointment.amount_paid)
    )
    result = await session.execute(stmt)
    return result.scalars().all()


# =============================================================================
# Operations
# =============================================================================


async def get_summary(
    session: AsyncSession,
    window_start: datetime,
    window_end: datetime,
    now: datetime | None = None,
    tz: ZoneInfo | None = None,
) -> FinancialSummary:
    """
    Aggregate totals for the window plus the pending balance at ``now``.

    Raises:
        ValidationError: invalid window
        StoreError / StoreTimeoutError: the store could not be read
    """
    validate_window(window_start, window_end)
    tz = _studio_tz(tz)
    now = now or datetime.now(UTC)
    start_date, end_date = window_dates(window_start, window_end, tz)
    today_start = start_of_today(now, tz)

    try:
        appointments = await fetch_income_candidates(session, window_start, window_end)
        expenses = await fetch_expenses(session, start_date, end_date)
        upcoming = await fetch_pending_candidates(session, today_start)
    except (SQLAlchemyError, TimeoutError) as e:
        raise translate_store_error(e, "financial summary") from e

    totals = compute_totals(
        income_events(appointments, window_start, window_end),
        (expense.amount for expense in expenses if start_date <= expense.expense_date <= end_date),
    )
    summary = FinancialSummary(
        totals=totals, pending_balance=pending_balance(upcoming, today_start)
    )

    logger.info(
        f"Financial summary {window_start.isoformat()} - {window_end.isoformat()}: "
        f"income={summary.income} expenses={summary.expenses} "
        f"pending_balance={summary.pending_balance}"
    )
    return summary


async def get_detailed_report(
    session: AsyncSession,
    window_start: datetime,
    window_end: datetime,
    tz: ZoneInfo | None = None,
) -> DetailedReport:
    """
    Totals plus every contributing income event and expense row.

    Income events are sorted by event instant; expenses by date then
    creation order.
    """
    validate_window(window_start, window_end)
    tz = _studio_tz(tz)
    start_date, end_date = window_dates(window_start, window_end, tz)

    try:
        appointments = await fetch_income_candidates(session, window_start, window_end)
        expenses = await fetch_expenses(session, start_date, end_date)
    except (SQLAlchemyError, TimeoutError) as e:
        raise translate_store_error(e, "detailed report") from e

    events = income_events(appointments, window_start, window_end)
    lines = [
        ExpenseLine(
            id=expense.id,
            description=expense.description,
            category=str(expense.category),
            amount=expense.amount,
            expense_date=expense.expense_date,
            created_at=expense.created_at,
        )
        for expense in expenses
        if start_date <= expense.expense_date <= end_date
    ]

    return DetailedReport(
        totals=compute_totals(events, (line.amount for line in lines)),
        income_details=events,
        expense_details=lines,
    )
