"""
Expenses CRUD API Endpoints
"""

import logging
from datetime import date, datetime
from uuid import UUID

from fastapi import APIRouter, status
from sqlalchemy import select

from api.auth import CurrentUser
from api.deps import SessionDep, commit_or_raise
from database.models import Expense
from studio.errors import NotFoundError, ValidationError
from studio.schemas import ExpenseCreate, ExpensePatch, studio_timezone

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/expenses", tags=["expenses"])


def expense_to_dict(expense: Expense) -> dict:
    return {
        "id": str(expense.id),
        "description": expense.description,
        "amount": expense.amount,
        "category": str(expense.category),
        "expense_date": expense.expense_date.isoformat(),
        "created_at": expense.created_at.isoformat(),
        "updated_at": expense.updated_at.isoformat(),
    }


async def _get_expense_or_404(session, expense_id: UUID) -> Expense:
    result = await session.execute(select(Expense).where(Expense.id == expense_id))
    expense = result.scalar_one_or_none()
    if not expense:
        raise NotFoundError(f"Expense {expense_id} not found.")
    return expense


@router.get("")
async def list_expenses(
    current_user: CurrentUser,
    session: SessionDep,
    start_date: date | None = None,
    end_date: date | None = None,
):
    """List expenses, newest first, optionally within ``[start_date, end_date]``."""
    if start_date and end_date and start_date > end_date:
        raise ValidationError("start_date must not be after end_date", field="start_date")

    query = select(Expense)
    if start_date is not None:
        query = query.where(Expense.expense_date >= start_date)
    if end_date is not None:
        query = query.where(Expense.expense_date <= end_date)
    query = query.order_by(Expense.expense_date.desc(), Expense.created_at.desc())

    result = await session.execute(query)
    return [expense_to_dict(e) for e in result.scalars().all()]


@router.get("/{expense_id}")
async def get_expense(expense_id: UUID, current_user: CurrentUser, session: SessionDep):
    return expense_to_dict(await _get_expense_or_404(session, expense_id))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_expense(request: ExpenseCreate, current_user: CurrentUser, session: SessionDep):
    """Record an expense. ``expense_date`` defaults to today at the studio."""
    expense = Expense(
        description=request.description,
        amount=request.amount,
        category=request.category,
        expense_date=request.expense_date or datetime.now(studio_timezone()).date(),
    )
    session.add(expense)
    await commit_or_raise(session, "expense create")
    await session.refresh(expense)

    logger.info(f"Expense recorded: {expense.id} amount={expense.amount}")
    return expense_to_dict(expense)


@router.put("/{expense_id}")
async def update_expense(
    expense_id: UUID, request: ExpensePatch, current_user: CurrentUser, session: SessionDep
):
    """Partially update an expense; omitted fields keep their values."""
    expense = await _get_expense_or_404(session, expense_id)
    for field, value in request.model_dump(exclude_none=True).items():
        setattr(expense, field, value)

    await commit_or_raise(session, "expense update")
    await session.refresh(expense)
    return expense_to_dict(expense)


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense(expense_id: UUID, current_user: CurrentUser, session: SessionDep):
    expense = await _get_expense_or_404(session, expense_id)
    await session.delete(expense)
    await commit_or_raise(session, "expense delete")
