"""
WageCalculator: per-worker wage summaries for one wage period.

    gross    = regular h x rate + OT h x rate x 1.5 + professional rate
               + phone allowance + additional income
    expenses = accommodation + followers x follower rate + appliances
               + additional expenses
    net      = gross - expenses - social security - late deductions

Rate cards are taken as of the period start. Amounts are Decimal, rounded
half-up to 0.01 per line. The output is sorted by employee number and uses
ids derived from (period, worker), so unchanged inputs give identical rows.
"""
import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dcpayroll.core.config import settings
from dcpayroll.core.exceptions import MissingRateCardError
from dcpayroll.models.contractor import DailyContractor
from dcpayroll.models.daily_report import DailyReport
from dcpayroll.models.late_record import LateRecord
from dcpayroll.models.wage_period import AdditionalExpense, AdditionalIncome, DCWageSummary, WagePeriod
from dcpayroll.services import time_normalizer
from dcpayroll.services.rate_cards import RateCardService
from dcpayroll.services.social_security import calculate_social_security, is_exempt

logger = logging.getLogger(__name__)

OT_MULTIPLIER = Decimal("1.5")
OT_TYPES = ("ot_morning", "ot_noon", "ot_evening")
APPLIANCES = ("refrigerator_cost", "sound_system_cost", "tv_cost", "washing_machine_cost", "portable_ac_cost")

MONEY = Decimal("0.01")
ZERO = Decimal("0.00")


def money(value) -> Decimal:
    return Decimal(value).quantize(MONEY, rounding=ROUND_HALF_UP)


@dataclass
class WorkerInputs:
    contractor: DailyContractor
    minutes: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    late_deduction: Decimal = ZERO
    additional_income: Decimal = ZERO
    additional_expenses: Decimal = ZERO

    @property
    def total_minutes(self) -> int:
        return sum(self.minutes.values())


def summary_id(period_id: uuid.UUID, contractor_id: uuid.UUID) -> uuid.UUID:
    return uuid.uuid5(period_id, str(contractor_id))


def build_summary(period: WagePeriod, inputs: WorkerInputs, income, expense) -> DCWageSummary:
    """Pure computation of one worker's summary; `income`/`expense` may be None."""
    worker = inputs.contractor
    rate = Decimal(income.hourly_rate) if income else ZERO
    worked = inputs.total_minutes > 0

    regular_minutes = inputs.minutes.get("regular", 0)
    ot_minutes = {t: inputs.minutes.get(t, 0) for t in OT_TYPES}
    total_ot_minutes = sum(ot_minutes.values())

    regular_wages = money(Decimal(regular_minutes) * rate / 60)
    ot_wages = money(Decimal(total_ot_minutes) * rate * OT_MULTIPLIER / 60)
    professional_rate = money(income.professional_rate) if income and worked else ZERO
    phone_allowance = money(income.phone_allowance) if income and worked else ZERO
    additional_income = money(inputs.additional_income)
    gross = regular_wages + ot_wages + professional_rate + phone_allowance + additional_income

    accommodation = money(expense.accommodation_cost) if expense else ZERO
    follower_count = expense.follower_count if expense else 0
    follower_accommodation = money(Decimal(follower_count) * settings.FOLLOWER_ACCOMMODATION_RATE)
    appliances = {name: money(getattr(expense, name)) if expense else ZERO for name in APPLIANCES}
    additional_expenses = money(inputs.additional_expenses)
    total_expenses = accommodation + follower_accommodation + sum(appliances.values()) + additional_expenses

    exempt = is_exempt(worker.employee_number)
    social_security = calculate_social_security(gross, exempt)
    late_deduction = money(inputs.late_deduction)
    total_deductions = social_security + late_deduction

    def hours(minutes: int) -> Decimal:
        return time_normalizer.quantize_hours(time_normalizer.to_hours(minutes))

    return DCWageSummary(
        id=summary_id(period.id, worker.id),
        wage_period_id=period.id,
        contractor_id=worker.id,
        employee_number=worker.employee_number,
        name=worker.name,
        regular_hours=hours(regular_minutes),
        ot_morning_hours=hours(ot_minutes["ot_morning"]),
        ot_noon_hours=hours(ot_minutes["ot_noon"]),
        ot_evening_hours=hours(ot_minutes["ot_evening"]),
        total_ot_hours=hours(total_ot_minutes),
        hourly_rate=money(rate),
        professional_rate=professional_rate,
        phone_allowance=phone_allowance,
        regular_wages=regular_wages,
        ot_wages=ot_wages,
        additional_income=additional_income,
        gross_income=gross,
        accommodation_cost=accommodation,
        follower_count=follower_count,
        follower_accommodation=follower_accommodation,
        additional_expenses=additional_expenses,
        total_expenses=total_expenses,
        is_ss_exempt=exempt,
        social_security=social_security,
        late_deduction=late_deduction,
        total_deductions=total_deductions,
        net_wage=gross - total_expenses - total_deductions,
        **appliances,
    )


class WageCalculator:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.rate_cards = RateCardService(db)

    async def _gather(self, period: WagePeriod) -> dict[uuid.UUID, WorkerInputs]:
        workers: dict[uuid.UUID, WorkerInputs] = {}

        def inputs_for(contractor: DailyContractor) -> WorkerInputs:
            if contractor.id not in workers:
                workers[contractor.id] = WorkerInputs(contractor=contractor)
            return workers[contractor.id]

        reports = await self.db.execute(
            select(DailyReport, DailyContractor)
            .join(DailyContractor, DailyReport.contractor_id == DailyContractor.id)
            .where(
                DailyReport.project_id == period.project_id,
                DailyReport.work_date >= period.start_date,
                DailyReport.work_date <= period.end_date,
                DailyReport.is_deleted == False,
            )
        )
        for report, contractor in reports.all():
            minutes = report.worked_minutes
            if minutes is None:
                logger.warning(
                    "Daily report %s of %s on %s has no defined duration; not paid",
                    report.id, contractor.employee_number, report.work_date,
                )
                minutes = 0
            inputs_for(contractor).minutes[report.work_type] += minutes

        late = await self.db.execute(
            select(LateRecord, DailyContractor)
            .join(DailyContractor, LateRecord.contractor_id == DailyContractor.id)
            .where(
                LateRecord.project_id == period.project_id,
                LateRecord.late_date >= period.start_date,
                LateRecord.late_date <= period.end_date,
                LateRecord.included_in_wage_calculation == True,
            )
        )
        for record, contractor in late.all():
            inputs_for(contractor).late_deduction += Decimal(record.late_deduction)

        for model, attr in ((AdditionalIncome, "additional_income"), (AdditionalExpense, "additional_expenses")):
            rows = await self.db.execute(select(model).where(model.wage_period_id == period.id))
            for item in rows.scalars().all():
                if item.contractor_id in workers:
                    target = workers[item.contractor_id]
                    setattr(target, attr, getattr(target, attr) + Decimal(item.amount))
                else:
                    logger.warning(
                        "Additional %s %s for worker %s ignored: no reports in period %s",
                        attr, item.id, item.contractor_id, period.period_code,
                    )
        return workers

    async def compute(self, period: WagePeriod) -> list[DCWageSummary]:
        """
        Build the full summary list for `period` without touching the session.

        Raises MissingRateCardError, listing every worker with hours but no
        income profile, before any summary is produced.
        """
        workers = await self._gather(period)
        income = await self.rate_cards.income_profiles_at(workers.keys(), period.start_date)
        expense = await self.rate_cards.expense_profiles_at(workers.keys(), period.start_date)

        missing = sorted(
            w.contractor.employee_number
            for cid, w in workers.items()
            if w.total_minutes > 0 and cid not in income
        )
        if missing:
            raise MissingRateCardError(missing)

        summaries = [
            build_summary(period, w, income.get(cid), expense.get(cid))
            for cid, w in workers.items()
        ]
        summaries.sort(key=lambda s: (s.employee_number, str(s.contractor_id)))
        return summaries


def period_totals(summaries: list[DCWageSummary]) -> dict:
    return {
        "total_workers": len(summaries),
        "total_regular_hours": sum((s.regular_hours for s in summaries), ZERO),
        "total_ot_hours": sum((s.total_ot_hours for s in summaries), ZERO),
        "total_gross": sum((s.gross_income for s in summaries), ZERO),
        "total_deductions": sum((s.total_expenses + s.total_deductions for s in summaries), ZERO),
        "total_net": sum((s.net_wage for s in summaries), ZERO),
    }
