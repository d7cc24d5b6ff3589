from pydantic import BaseModel, field_validator
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional


class WagePeriodCreate(BaseModel):
    project_id: uuid.UUID
    start_date: date
    end_date: Optional[date] = None  # defaults to start_date + 15 days
    notes: Optional[str] = None


class AdditionalItemCreate(BaseModel):
    contractor_id: uuid.UUID
    category: str = "other"
    description: Optional[str] = None
    amount: Decimal

    @field_validator("amount")
    @classmethod
    def amount_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("amount must be positive")
        return v


class AdditionalItemOut(BaseModel):
    id: uuid.UUID
    wage_period_id: uuid.UUID
    contractor_id: uuid.UUID
    category: str
    description: Optional[str]
    amount: float
    created_at: datetime

    model_config = {"from_attributes": True}


class DCWageSummaryOut(BaseModel):
    id: uuid.UUID
    contractor_id: uuid.UUID
    employee_number: str
    name: str
    regular_hours: float
    ot_morning_hours: float
    ot_noon_hours: float
    ot_evening_hours: float
    total_ot_hours: float
    hourly_rate: float
    professional_rate: float
    phone_allowance: float
    regular_wages: float
    ot_wages: float
    additional_income: float
    gross_income: float
    accommodation_cost: float
    follower_count: int
    follower_accommodation: float
    refrigerator_cost: float
    sound_system_cost: float
    tv_cost: float
    washing_machine_cost: float
    portable_ac_cost: float
    additional_expenses: float
    total_expenses: float
    is_ss_exempt: bool
    social_security: float
    late_deduction: float
    total_deductions: float
    net_wage: float

    model_config = {"from_attributes": True}


class WagePeriodOut(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    period_code: str
    start_date: date
    end_date: date
    status: str
    total_workers: int
    total_regular_hours: float
    total_ot_hours: float
    total_gross: float
    total_deductions: float
    total_net: float
    has_unresolved_discrepancies: bool
    calculated_at: Optional[datetime]
    approved_at: Optional[datetime]
    paid_at: Optional[datetime]
    locked_at: Optional[datetime]
    notes: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class WagePeriodDetail(WagePeriodOut):
    summaries: list[DCWageSummaryOut]
