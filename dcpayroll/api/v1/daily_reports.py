"""
Daily Reports API
"""
import uuid
from datetime import date

from fastapi import APIRouter, status

from dcpayroll.api.deps import DB, CurrentUser
from dcpayroll.schemas.daily_report import DailyReportCreate, DailyReportBulkCreate, DailyReportUpdate, DailyReportOut
from dcpayroll.services.daily_report_service import DailyReportService

router = APIRouter(prefix="/daily-reports", tags=["daily-reports"])


@router.get("", response_model=list[DailyReportOut])
async def list_daily_reports(
    current_user: CurrentUser,
    db: DB,
    project_id: uuid.UUID,
    start_date: date,
    end_date: date,
    contractor_id: uuid.UUID | None = None,
    work_type: str | None = None,
):
    return await DailyReportService(db).list_reports(project_id, start_date, end_date, contractor_id, work_type)


@router.post("", response_model=DailyReportOut, status_code=status.HTTP_201_CREATED)
async def create_daily_report(payload: DailyReportCreate, current_user: CurrentUser, db: DB):
    return await DailyReportService(db).create(payload, current_user.id)


@router.post("/bulk", response_model=list[DailyReportOut], status_code=status.HTTP_201_CREATED)
async def create_daily_reports_bulk(payload: DailyReportBulkCreate, current_user: CurrentUser, db: DB):
    """Same task and time range for several workers."""
    return await DailyReportService(db).create_many(payload, current_user.id)


@router.get("/{report_id}", response_model=DailyReportOut)
async def get_daily_report(report_id: uuid.UUID, current_user: CurrentUser, db: DB):
    return await DailyReportService(db).get(report_id)


@router.put("/{report_id}", response_model=DailyReportOut)
async def update_daily_report(report_id: uuid.UUID, payload: DailyReportUpdate, current_user: CurrentUser, db: DB):
    return await DailyReportService(db).update(report_id, payload, current_user.id)


@router.delete("/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_daily_report(report_id: uuid.UUID, current_user: CurrentUser, db: DB):
    await DailyReportService(db).delete(report_id, current_user.id)
