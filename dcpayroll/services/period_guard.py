"""Checks shared by every writer of period-scoped data."""
import uuid
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dcpayroll.core.exceptions import PeriodLockedError
from dcpayroll.models.discrepancy import Discrepancy
from dcpayroll.models.wage_period import WagePeriod


async def locked_period_covering(db: AsyncSession, project_id: uuid.UUID, day: date) -> WagePeriod | None:
    result = await db.execute(
        select(WagePeriod).where(
            WagePeriod.project_id == project_id,
            WagePeriod.status == "locked",
            WagePeriod.start_date <= day,
            WagePeriod.end_date >= day,
        ).limit(1)
    )
    return result.scalar_one_or_none()


async def assert_unlocked(db: AsyncSession, project_id: uuid.UUID, day: date) -> None:
    period = await locked_period_covering(db, project_id, day)
    if period is not None:
        raise PeriodLockedError(period.period_code)


async def locked_spans(db: AsyncSession, project_id: uuid.UUID, start: date, end: date) -> list[tuple[date, date]]:
    result = await db.execute(
        select(WagePeriod.start_date, WagePeriod.end_date).where(
            WagePeriod.project_id == project_id,
            WagePeriod.status == "locked",
            WagePeriod.start_date <= end,
            WagePeriod.end_date >= start,
        )
    )
    return [(row.start_date, row.end_date) for row in result]


def in_spans(day: date, spans: list[tuple[date, date]]) -> bool:
    return any(s <= day <= e for s, e in spans)


async def count_pending(db: AsyncSession, project_id: uuid.UUID, start: date, end: date) -> int:
    result = await db.execute(
        select(func.count(Discrepancy.id)).where(
            Discrepancy.project_id == project_id,
            Discrepancy.status == "pending",
            Discrepancy.work_date >= start,
            Discrepancy.work_date <= end,
        )
    )
    return result.scalar_one()


async def refresh_unresolved_flags(db: AsyncSession, project_id: uuid.UUID, start: date, end: date) -> None:
    """Recompute has_unresolved_discrepancies on non-locked periods overlapping [start, end]. No commit."""
    result = await db.execute(
        select(WagePeriod).where(
            WagePeriod.project_id == project_id,
            WagePeriod.status != "locked",
            WagePeriod.start_date <= end,
            WagePeriod.end_date >= start,
        )
    )
    for period in result.scalars().all():
        pending = await count_pending(db, project_id, period.start_date, period.end_date)
        period.has_unresolved_discrepancies = pending > 0
