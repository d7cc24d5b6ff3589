"""
Late Records API
"""
import uuid
from datetime import date

from fastapi import APIRouter

from dcpayroll.api.deps import DB, CurrentUser, ManagerOrAdmin
from dcpayroll.schemas.late_record import LateRecordOut, LateSyncRequest, LateSyncSummary
from dcpayroll.services.late_record_service import LateRecordService

router = APIRouter(prefix="/late-records", tags=["late-records"])


@router.post("/sync", response_model=LateSyncSummary)
async def sync_late_records(payload: LateSyncRequest, current_user: ManagerOrAdmin, db: DB):
    result = await LateRecordService(db).sync(payload.project_id, payload.start_date, payload.end_date)
    return LateSyncSummary(
        created=result.created,
        updated=result.updated,
        unchanged=result.unchanged,
        skipped_locked=result.skipped_locked,
        warnings=result.warnings,
    )


@router.get("", response_model=list[LateRecordOut])
async def list_late_records(
    project_id: uuid.UUID,
    start_date: date,
    end_date: date,
    current_user: CurrentUser,
    db: DB,
    contractor_id: uuid.UUID | None = None,
):
    return await LateRecordService(db).list_records(project_id, start_date, end_date, contractor_id)
