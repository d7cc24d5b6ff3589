"""
Scan Data API – terminal file import and scan sessions
"""
import uuid
from datetime import date

from fastapi import APIRouter, File, Form, UploadFile

from dcpayroll.api.deps import DB, CurrentUser, ManagerOrAdmin
from dcpayroll.core.exceptions import NotFoundError
from dcpayroll.schemas.scan import ImportSummary, ScanEventOut, ScanImportBatchOut, ScanSessionOut
from dcpayroll.services.scan_import import ScanImportService
from dcpayroll.services.scan_store import ScanEventStore

router = APIRouter(prefix="/scan-data", tags=["scan-data"])


@router.post("/import", response_model=ImportSummary)
async def import_scan_file(
    current_user: ManagerOrAdmin,
    db: DB,
    project_id: uuid.UUID = Form(...),
    file: UploadFile = File(...),
    note: str | None = Form(None),
):
    """
    Import a .dat terminal log or .xlsx export.

    Row failures do not abort the import; they are listed in `errors`.
    """
    content = await file.read()
    return await ScanImportService(db).import_file(
        project_id, file.filename or "", content, imported_by=current_user.id, note=note
    )


@router.get("/batches", response_model=list[ScanImportBatchOut])
async def list_import_batches(project_id: uuid.UUID, current_user: CurrentUser, db: DB, limit: int = 50):
    return await ScanImportService(db).list_batches(project_id, limit)


@router.get("/batches/{batch_id}", response_model=ScanImportBatchOut)
async def get_import_batch(batch_id: str, current_user: CurrentUser, db: DB):
    return await ScanImportService(db).get_batch(batch_id)


@router.get("/batches/{batch_id}/events", response_model=list[ScanEventOut])
async def list_batch_events(batch_id: str, current_user: CurrentUser, db: DB):
    service = ScanImportService(db)
    await service.get_batch(batch_id)
    return await service.batch_events(batch_id)


@router.get("/sessions", response_model=ScanSessionOut)
async def get_scan_session(
    project_id: uuid.UUID,
    contractor_id: uuid.UUID,
    work_date: date,
    current_user: CurrentUser,
    db: DB,
):
    session = await ScanEventStore(db).session_for(project_id, contractor_id, work_date)
    if session is None:
        raise NotFoundError("ScanSession", f"{contractor_id}/{work_date.isoformat()}")
    return ScanSessionOut(
        employee_number=session.employee_number,
        work_date=session.work_date,
        total_hours=float(session.total_hours),
        sub_sessions=[
            {
                "sub_period": s.sub_period,
                "work_type": s.work_type,
                "start": s.start,
                "end": s.end,
                "hours": float(s.hours),
                "capped": s.capped,
            }
            for s in session.sub_sessions
        ],
        unmatched=[ScanEventOut.model_validate(e) for e in session.unmatched],
    )
