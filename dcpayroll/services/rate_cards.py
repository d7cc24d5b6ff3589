"""Rate-card store: effective-dated income and expense profiles."""
import uuid
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dcpayroll.core.exceptions import NotFoundError
from dcpayroll.models.contractor import DailyContractor, ExpenseProfile, IncomeProfile


class RateCardService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _effective(self, model, contractor_ids, as_of: date) -> dict:
        if not contractor_ids:
            return {}
        result = await self.db.execute(
            select(model)
            .where(
                model.contractor_id.in_(list(contractor_ids)),
                model.is_active == True,
                model.effective_date <= as_of,
            )
            .order_by(model.contractor_id, model.effective_date.desc(), model.created_at.desc())
        )
        profiles = {}
        for profile in result.scalars().all():
            profiles.setdefault(profile.contractor_id, profile)
        return profiles

    async def income_profiles_at(self, contractor_ids, as_of: date) -> dict[uuid.UUID, IncomeProfile]:
        return await self._effective(IncomeProfile, contractor_ids, as_of)

    async def expense_profiles_at(self, contractor_ids, as_of: date) -> dict[uuid.UUID, ExpenseProfile]:
        return await self._effective(ExpenseProfile, contractor_ids, as_of)

    async def income_profile_at(self, contractor_id: uuid.UUID, as_of: date) -> IncomeProfile | None:
        return (await self.income_profiles_at([contractor_id], as_of)).get(contractor_id)

    async def expense_profile_at(self, contractor_id: uuid.UUID, as_of: date) -> ExpenseProfile | None:
        return (await self.expense_profiles_at([contractor_id], as_of)).get(contractor_id)

    async def _ensure_contractor(self, contractor_id: uuid.UUID) -> None:
        if await self.db.get(DailyContractor, contractor_id) is None:
            raise NotFoundError("DailyContractor", contractor_id)

    async def create_income_profile(self, data, created_by: uuid.UUID | None = None) -> IncomeProfile:
        await self._ensure_contractor(data.contractor_id)
        profile = IncomeProfile(**data.model_dump(), created_by=created_by)
        self.db.add(profile)
        await self.db.commit()
        await self.db.refresh(profile)
        return profile

    async def create_expense_profile(self, data, created_by: uuid.UUID | None = None) -> ExpenseProfile:
        await self._ensure_contractor(data.contractor_id)
        profile = ExpenseProfile(**data.model_dump(), created_by=created_by)
        self.db.add(profile)
        await self.db.commit()
        await self.db.refresh(profile)
        return profile

    async def history(self, contractor_id: uuid.UUID) -> tuple[list[IncomeProfile], list[ExpenseProfile]]:
        income = await self.db.execute(
            select(IncomeProfile)
            .where(IncomeProfile.contractor_id == contractor_id)
            .order_by(IncomeProfile.effective_date.desc())
        )
        expense = await self.db.execute(
            select(ExpenseProfile)
            .where(ExpenseProfile.contractor_id == contractor_id)
            .order_by(ExpenseProfile.effective_date.desc())
        )
        return list(income.scalars().all()), list(expense.scalars().all())
