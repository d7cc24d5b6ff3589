from pydantic import BaseModel
import uuid
from datetime import date, datetime, time
from typing import Optional


class LateSyncRequest(BaseModel):
    project_id: uuid.UUID
    start_date: date
    end_date: date


class LateSyncSummary(BaseModel):
    created: int
    updated: int
    unchanged: int
    skipped_locked: int
    warnings: list[str]


class LateRecordOut(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    contractor_id: uuid.UUID
    late_date: date
    scan_time: datetime
    expected_time: time
    late_minutes: int
    late_deduction: float
    included_in_wage_calculation: bool
    notes: Optional[str]

    model_config = {"from_attributes": True}
