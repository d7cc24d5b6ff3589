"""
Rate Cards API – income and expense profiles per worker
"""
import uuid

from fastapi import APIRouter, status

from dcpayroll.api.deps import DB, ManagerOrAdmin
from dcpayroll.schemas.rate_card import ExpenseProfileCreate, ExpenseProfileOut, IncomeProfileCreate, IncomeProfileOut
from dcpayroll.services.rate_cards import RateCardService

router = APIRouter(prefix="/rate-cards", tags=["rate-cards"])


@router.post("/income", response_model=IncomeProfileOut, status_code=status.HTTP_201_CREATED)
async def create_income_profile(payload: IncomeProfileCreate, current_user: ManagerOrAdmin, db: DB):
    return await RateCardService(db).create_income_profile(payload, current_user.id)


@router.post("/expense", response_model=ExpenseProfileOut, status_code=status.HTTP_201_CREATED)
async def create_expense_profile(payload: ExpenseProfileCreate, current_user: ManagerOrAdmin, db: DB):
    return await RateCardService(db).create_expense_profile(payload, current_user.id)


@router.get("/{contractor_id}")
async def get_rate_card_history(contractor_id: uuid.UUID, current_user: ManagerOrAdmin, db: DB):
    income, expense = await RateCardService(db).history(contractor_id)
    return {
        "income": [IncomeProfileOut.model_validate(p) for p in income],
        "expense": [ExpenseProfileOut.model_validate(p) for p in expense],
    }
