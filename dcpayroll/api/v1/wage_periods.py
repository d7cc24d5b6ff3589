"""
Wage Periods API – 15-day payroll cycles
"""
import uuid

from fastapi import APIRouter, Response, status

from dcpayroll.api.deps import DB, CurrentUser, ManagerOrAdmin, AdminUser
from dcpayroll.core.config import settings
from dcpayroll.schemas.wage_period import (
    AdditionalItemCreate, AdditionalItemOut, WagePeriodCreate, WagePeriodDetail, WagePeriodOut,
)
from dcpayroll.services.period_lifecycle import PeriodLifecycle

router = APIRouter(prefix="/wage-periods", tags=["wage-periods"])


@router.post("", response_model=WagePeriodDetail, status_code=status.HTTP_201_CREATED)
async def create_wage_period(payload: WagePeriodCreate, current_user: ManagerOrAdmin, db: DB):
    return await PeriodLifecycle(db).create(
        payload.project_id, payload.start_date, payload.end_date, payload.notes, current_user.id
    )


@router.get("", response_model=list[WagePeriodOut])
async def list_wage_periods(
    current_user: CurrentUser,
    db: DB,
    project_id: uuid.UUID | None = None,
    status: str | None = None,
):
    return await PeriodLifecycle(db).list_periods(project_id, status)


@router.get("/{period_id}", response_model=WagePeriodDetail)
async def get_wage_period(period_id: uuid.UUID, current_user: CurrentUser, db: DB):
    return await PeriodLifecycle(db).get(period_id, with_summaries=True)


@router.post("/{period_id}/calculate", response_model=WagePeriodDetail)
async def calculate_wage_period(period_id: uuid.UUID, response: Response, current_user: ManagerOrAdmin, db: DB):
    """
    Recompute every worker summary of the period.

    With USE_CELERY the calculation is queued and the current period is
    returned with 202 Accepted.
    """
    lifecycle = PeriodLifecycle(db)
    if settings.USE_CELERY:
        from dcpayroll.tasks.wage_tasks import calculate_wage_period as calculate_task
        period = await lifecycle.get(period_id, with_summaries=True)
        calculate_task.delay(str(period_id), str(current_user.id))
        response.status_code = status.HTTP_202_ACCEPTED
        return period
    return await lifecycle.calculate(period_id, current_user.id)


@router.post("/{period_id}/approve", response_model=WagePeriodDetail)
async def approve_wage_period(period_id: uuid.UUID, current_user: ManagerOrAdmin, db: DB):
    return await PeriodLifecycle(db).approve(period_id, current_user.id)


@router.post("/{period_id}/pay", response_model=WagePeriodDetail)
async def mark_wage_period_paid(period_id: uuid.UUID, current_user: ManagerOrAdmin, db: DB):
    return await PeriodLifecycle(db).mark_paid(period_id, current_user.id)


@router.post("/{period_id}/lock", response_model=WagePeriodDetail)
async def lock_wage_period(period_id: uuid.UUID, current_user: AdminUser, db: DB):
    return await PeriodLifecycle(db).lock(period_id, current_user.id)


@router.delete("/{period_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_wage_period(period_id: uuid.UUID, current_user: ManagerOrAdmin, db: DB):
    await PeriodLifecycle(db).delete(period_id, current_user.id)


# ── Additional income / expenses ─────────────────────────────────────────────

@router.get("/{period_id}/additional-income", response_model=list[AdditionalItemOut])
async def list_additional_income(period_id: uuid.UUID, current_user: CurrentUser, db: DB):
    return await PeriodLifecycle(db).list_items(period_id, "income")


@router.post("/{period_id}/additional-income", response_model=AdditionalItemOut, status_code=status.HTTP_201_CREATED)
async def add_additional_income(period_id: uuid.UUID, payload: AdditionalItemCreate, current_user: ManagerOrAdmin, db: DB):
    return await PeriodLifecycle(db).add_item(period_id, "income", payload, current_user.id)


@router.get("/{period_id}/additional-expenses", response_model=list[AdditionalItemOut])
async def list_additional_expenses(period_id: uuid.UUID, current_user: CurrentUser, db: DB):
    return await PeriodLifecycle(db).list_items(period_id, "expense")


@router.post("/{period_id}/additional-expenses", response_model=AdditionalItemOut, status_code=status.HTTP_201_CREATED)
async def add_additional_expense(period_id: uuid.UUID, payload: AdditionalItemCreate, current_user: ManagerOrAdmin, db: DB):
    return await PeriodLifecycle(db).add_item(period_id, "expense", payload, current_user.id)
