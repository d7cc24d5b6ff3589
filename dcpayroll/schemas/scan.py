from pydantic import BaseModel
import uuid
from datetime import date, datetime
from typing import Optional


class ImportRowError(BaseModel):
    row: int
    employee_number: Optional[str] = None
    error: str


class ImportSummary(BaseModel):
    batch_id: str
    total: int
    successful: int
    failed: int
    skipped: int
    errors: list[ImportRowError]
    warnings: list[str]


class ScanImportBatchOut(BaseModel):
    id: uuid.UUID
    batch_id: str
    project_id: uuid.UUID
    file_name: Optional[str]
    file_type: str
    total: int
    successful: int
    failed: int
    skipped: int
    errors: list[ImportRowError]
    warnings: list[str]
    note: Optional[str]
    imported_by: Optional[uuid.UUID]
    created_at: datetime

    model_config = {"from_attributes": True}


class ScanEventOut(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    contractor_id: Optional[uuid.UUID]
    employee_number: str
    scan_datetime: datetime
    rounded_time: datetime
    scan_type: str
    work_date: date
    is_late: bool
    late_minutes: int
    import_batch_id: str

    model_config = {"from_attributes": True}


class SubSessionOut(BaseModel):
    sub_period: str
    work_type: str
    start: datetime
    end: datetime
    hours: float
    capped: bool


class ScanSessionOut(BaseModel):
    employee_number: str
    work_date: date
    total_hours: float
    sub_sessions: list[SubSessionOut]
    unmatched: list[ScanEventOut]
