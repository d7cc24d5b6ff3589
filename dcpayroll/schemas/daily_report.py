from pydantic import BaseModel, field_validator, model_validator
import uuid
from datetime import date as Date, datetime as DateTime, time as Time
from decimal import Decimal
from typing import Literal, Optional

WorkType = Literal["regular", "ot_morning", "ot_noon", "ot_evening"]


class DailyReportCreate(BaseModel):
    project_id: uuid.UUID
    contractor_id: uuid.UUID
    work_date: Date
    start_time: Optional[Time] = None
    end_time: Optional[Time] = None
    work_type: WorkType = "regular"
    is_overnight: bool = False
    manual_hours: Optional[Decimal] = None
    task_name: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("manual_hours")
    @classmethod
    def manual_hours_non_negative(cls, v: Decimal | None) -> Decimal | None:
        if v is not None and v < 0:
            raise ValueError("manual_hours must not be negative")
        return v

    @model_validator(mode="after")
    def hours_source_present(self):
        if self.manual_hours is None and (self.start_time is None or self.end_time is None):
            raise ValueError("Either start_time and end_time or manual_hours is required")
        return self


class DailyReportBulkCreate(BaseModel):
    """Same task for several workers on one day."""

    project_id: uuid.UUID
    contractor_ids: list[uuid.UUID]
    work_date: Date
    start_time: Time
    end_time: Time
    work_type: WorkType = "regular"
    is_overnight: bool = False
    task_name: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("contractor_ids")
    @classmethod
    def at_least_one_worker(cls, v: list[uuid.UUID]) -> list[uuid.UUID]:
        if not v:
            raise ValueError("At least one worker is required")
        return v


class DailyReportUpdate(BaseModel):
    work_date: Optional[Date] = None
    start_time: Optional[Time] = None
    end_time: Optional[Time] = None
    work_type: Optional[WorkType] = None
    is_overnight: Optional[bool] = None
    manual_hours: Optional[Decimal] = None
    task_name: Optional[str] = None
    notes: Optional[str] = None
    # Optimistic check against the version the client last read
    expected_version: Optional[int] = None


class DailyReportOut(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    contractor_id: uuid.UUID
    work_date: Date
    start_time: Optional[Time]
    end_time: Optional[Time]
    work_type: str
    is_overnight: bool
    manual_hours: float | None
    worked_hours: float | None
    task_name: Optional[str]
    notes: Optional[str]
    version: int
    created_by: Optional[uuid.UUID]
    updated_by: Optional[uuid.UUID]
    created_at: DateTime
    updated_at: DateTime

    model_config = {"from_attributes": True}
