from pydantic import BaseModel, field_validator
import uuid
from datetime import date, datetime
from decimal import Decimal


class IncomeProfileCreate(BaseModel):
    contractor_id: uuid.UUID
    hourly_rate: Decimal
    professional_rate: Decimal = Decimal("0")
    phone_allowance: Decimal = Decimal("0")
    effective_date: date

    @field_validator("hourly_rate", "professional_rate", "phone_allowance")
    @classmethod
    def non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Rates must not be negative")
        return v


class IncomeProfileOut(BaseModel):
    id: uuid.UUID
    contractor_id: uuid.UUID
    hourly_rate: float
    professional_rate: float
    phone_allowance: float
    effective_date: date
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ExpenseProfileCreate(BaseModel):
    contractor_id: uuid.UUID
    accommodation_cost: Decimal = Decimal("0")
    follower_count: int = 0
    refrigerator_cost: Decimal = Decimal("0")
    sound_system_cost: Decimal = Decimal("0")
    tv_cost: Decimal = Decimal("0")
    washing_machine_cost: Decimal = Decimal("0")
    portable_ac_cost: Decimal = Decimal("0")
    effective_date: date

    @field_validator("follower_count")
    @classmethod
    def follower_count_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("follower_count must not be negative")
        return v


class ExpenseProfileOut(BaseModel):
    id: uuid.UUID
    contractor_id: uuid.UUID
    accommodation_cost: float
    follower_count: int
    refrigerator_cost: float
    sound_system_cost: float
    tv_cost: float
    washing_machine_cost: float
    portable_ac_cost: float
    effective_date: date
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
