"""
Discrepancies API – detection and resolution
"""
import uuid
from datetime import date

from fastapi import APIRouter

from dcpayroll.api.deps import DB, CurrentUser, ManagerOrAdmin
from dcpayroll.schemas.discrepancy import DetectRequest, DetectionSummary, DiscrepancyOut, ResolutionAction
from dcpayroll.services.discrepancy_detector import DiscrepancyDetector
from dcpayroll.services.resolution_workflow import ResolutionWorkflow

router = APIRouter(prefix="/discrepancies", tags=["discrepancies"])


@router.post("/detect", response_model=DetectionSummary)
async def detect_discrepancies(payload: DetectRequest, current_user: ManagerOrAdmin, db: DB):
    result = await DiscrepancyDetector(db).detect(
        payload.project_id, payload.start_date, payload.end_date,
        contractor_id=payload.contractor_id, actor_id=current_user.id,
    )
    return DetectionSummary(
        created=result.created,
        updated=result.updated,
        unchanged=result.unchanged,
        redetected=result.redetected,
        skipped_locked=result.skipped_locked,
        stale=result.stale,
    )


@router.get("", response_model=list[DiscrepancyOut])
async def list_discrepancies(
    project_id: uuid.UUID,
    current_user: CurrentUser,
    db: DB,
    start_date: date | None = None,
    end_date: date | None = None,
    status: str | None = None,
    discrepancy_type: str | None = None,
    contractor_id: uuid.UUID | None = None,
):
    return await ResolutionWorkflow(db).list_discrepancies(
        project_id, start_date, end_date, status, discrepancy_type, contractor_id
    )


@router.get("/{discrepancy_id}", response_model=DiscrepancyOut)
async def get_discrepancy(discrepancy_id: uuid.UUID, current_user: CurrentUser, db: DB):
    return await ResolutionWorkflow(db).get(discrepancy_id)


@router.post("/{discrepancy_id}/resolve", response_model=DiscrepancyOut)
async def resolve_discrepancy(
    discrepancy_id: uuid.UUID,
    payload: ResolutionAction,
    current_user: ManagerOrAdmin,
    db: DB,
):
    return await ResolutionWorkflow(db).resolve(discrepancy_id, payload, current_user.id)
