"""
Financial Reports API Endpoints

- GET /api/reports/summary?year=&month= - Month totals + live pending balance
- GET /api/reports/daily?year=&month=&day= - One day, with line items
- GET /api/reports/monthly?year=&month= - One month, with line items

Date parameters are validated before any query runs; an impossible date
(month 13, Feb 30) is a 400 ``validation_error``.
"""

import logging

from fastapi import APIRouter

from api.auth import CurrentUser
from api.deps import SessionDep
from studio.schemas import studio_timezone
from studio.services.financial_aggregator import get_detailed_report, get_summary
from studio.utils.report_windows import day_window, month_window, validate_date_params

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.get("/summary")
async def summary_report(
    current_user: CurrentUser,
    session: SessionDep,
    year: str | None = None,
    month: str | None = None,
):
    """Income, expenses and profit for one month, plus the pending balance as of now."""
    reference = validate_date_params(year, month)
    tz = studio_timezone()
    window_start, window_end = month_window(reference.year, reference.month, tz)

    summary = await get_summary(session, window_start, window_end, tz=tz)
    return {"year": reference.year, "month": reference.month, **summary.to_dict()}


@router.get("/daily")
async def daily_report(
    current_user: CurrentUser,
    session: SessionDep,
    year: str | None = None,
    month: str | None = None,
    day: str | None = None,
):
    reference = validate_date_params(year, month, day if day is not None else "")
    tz = studio_timezone()
    window_start, window_end = day_window(reference.year, reference.month, reference.day, tz)

    report = await get_detailed_report(session, window_start, window_end, tz=tz)
    return {"type": "daily", "date": reference.isoformat(), **report.to_dict()}


@router.get("/monthly")
async def monthly_report(
    current_user: CurrentUser,
    session: SessionDep,
    year: str | None = None,
    month: str | None = None,
):
    reference = validate_date_params(year, month)
    tz = studio_timezone()
    window_start, window_end = month_window(reference.year, reference.month, tz)

    report = await get_detailed_report(session, window_start, window_end, tz=tz)
    return {
        "type": "monthly",
        "year": reference.year,
        "month": reference.month,
        **report.to_dict(),
    }
