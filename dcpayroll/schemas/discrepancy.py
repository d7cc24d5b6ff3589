from pydantic import BaseModel, field_validator
import uuid
from datetime import date, datetime
from typing import Literal, Optional

ResolutionMethod = Literal["update_dr", "create_dr", "verify", "ignore"]


class DetectRequest(BaseModel):
    project_id: uuid.UUID
    start_date: date
    end_date: date
    contractor_id: Optional[uuid.UUID] = None


class DetectionSummary(BaseModel):
    created: int
    updated: int
    unchanged: int
    redetected: int
    skipped_locked: int
    stale: list[uuid.UUID]


class ResolutionAction(BaseModel):
    method: ResolutionMethod
    note: str
    updated_hours: Optional[float] = None

    @field_validator("note")
    @classmethod
    def note_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("A resolution note is required")
        return v

    @field_validator("updated_hours")
    @classmethod
    def hours_non_negative(cls, v: float | None) -> float | None:
        if v is not None and v < 0:
            raise ValueError("updated_hours must not be negative")
        return v


class DiscrepancyOut(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    contractor_id: uuid.UUID
    work_date: date
    discrepancy_type: str
    severity: str
    dr_hours: float | None
    scan_hours: float | None
    hours_difference: float
    status: str
    resolution_method: Optional[str]
    resolution_note: Optional[str]
    resolved_by: Optional[uuid.UUID]
    resolved_at: Optional[datetime]
    detected_at: datetime
    redetected_type: Optional[str]
    redetected_difference: float | None
    redetected_at: Optional[datetime]
    version: int

    model_config = {"from_attributes": True}
