"""
PeriodLifecycle: wage period creation, calculation and state transitions.

    draft -> calculate -> calculated -> approve -> approved -> mark_paid -> paid
    lock: from any state, terminal

A calculation claims the period row with a conditional UPDATE on
calculation_token, computes every summary in memory and commits the
summaries, totals and status in one transaction. On failure or cancellation
the transaction is rolled back and the claim released, so the period keeps
its previous state.
"""
import asyncio
import logging
import uuid
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from dcpayroll.core.config import settings
from dcpayroll.core.exceptions import (
    CalculationInProgressError,
    ConcurrentUpdateError,
    DuplicatePeriodError,
    InvalidTransitionError,
    NotFoundError,
    PeriodLockedError,
    PeriodSpanError,
    UnresolvedDiscrepanciesError,
)
from dcpayroll.models.contractor import DailyContractor
from dcpayroll.models.project import Project
from dcpayroll.models.wage_period import AdditionalExpense, AdditionalIncome, DCWageSummary, WagePeriod
from dcpayroll.services.audit import write_audit
from dcpayroll.services.period_guard import count_pending
from dcpayroll.services.wage_calculator import WageCalculator, period_totals

logger = logging.getLogger(__name__)

PERIOD_SPAN_DAYS = 15

# action -> states it may start from
VALID_TRANSITIONS = {
    "calculate": ("draft", "calculated"),
    "approve": ("calculated",),
    "mark_paid": ("approved",),
    "lock": ("draft", "calculated", "approved", "paid"),
    "delete": ("draft", "calculated"),
}

TARGET_STATUS = {
    "calculate": "calculated",
    "approve": "approved",
    "mark_paid": "paid",
    "lock": "locked",
}

SUMMARY_COLUMNS = tuple(
    c.key for c in DCWageSummary.__table__.columns if c.key not in ("id", "wage_period_id")
)


def period_code_for(start_date: date) -> str:
    half = "P1" if start_date.day == 1 else "P2"
    return f"{start_date.strftime('%Y%m')}-{half}"


def validate_span(start_date: date, end_date: date) -> None:
    if (end_date - start_date).days != PERIOD_SPAN_DAYS:
        raise PeriodSpanError(start_date, end_date)


class PeriodLifecycle:

    def __init__(self, db: AsyncSession):
        self.db = db

    # ── Store ────────────────────────────────────────────────────────────────

    async def get(self, period_id: uuid.UUID, with_summaries: bool = False) -> WagePeriod:
        q = select(WagePeriod).where(WagePeriod.id == period_id).execution_options(populate_existing=True)
        if with_summaries:
            q = q.options(selectinload(WagePeriod.summaries))
        period = (await self.db.execute(q)).scalar_one_or_none()
        if period is None:
            raise NotFoundError("WagePeriod", period_id)
        return period

    async def list_periods(self, project_id: uuid.UUID | None = None, status: str | None = None) -> list[WagePeriod]:
        q = select(WagePeriod)
        if project_id:
            q = q.where(WagePeriod.project_id == project_id)
        if status:
            q = q.where(WagePeriod.status == status)
        result = await self.db.execute(q.order_by(WagePeriod.start_date.desc()))
        return list(result.scalars().all())

    async def create(
        self,
        project_id: uuid.UUID,
        start_date: date,
        end_date: date | None = None,
        notes: str | None = None,
        actor_id: uuid.UUID | None = None,
    ) -> WagePeriod:
        if end_date is None:
            end_date = start_date + timedelta(days=PERIOD_SPAN_DAYS)
        validate_span(start_date, end_date)
        if await self.db.get(Project, project_id) is None:
            raise NotFoundError("Project", project_id)

        code = period_code_for(start_date)
        existing = await self.db.execute(
            select(WagePeriod.id).where(WagePeriod.project_id == project_id, WagePeriod.period_code == code)
        )
        if existing.scalar_one_or_none() is not None:
            raise DuplicatePeriodError(code)

        pending = await count_pending(self.db, project_id, start_date, end_date)
        period = WagePeriod(
            project_id=project_id,
            period_code=code,
            start_date=start_date,
            end_date=end_date,
            status="draft",
            has_unresolved_discrepancies=pending > 0,
            notes=notes,
        )
        self.db.add(period)
        try:
            await self.db.flush()
            write_audit(
                self.db, entity_type="wage_period", entity_id=period.id, action="create",
                user_id=actor_id, project_id=project_id,
                new_values={"period_code": code, "start_date": start_date, "end_date": end_date},
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise DuplicatePeriodError(code)
        return await self.get(period.id, with_summaries=True)

    async def delete(self, period_id: uuid.UUID, actor_id: uuid.UUID | None = None) -> None:
        period = await self.get(period_id, with_summaries=True)
        self._check(period, "delete")
        if period.calculation_token and not self._marker_stale(period):
            raise CalculationInProgressError(period.id)
        write_audit(
            self.db, entity_type="wage_period", entity_id=period.id, action="delete",
            user_id=actor_id, project_id=period.project_id,
            old_values={"period_code": period.period_code, "status": period.status},
        )
        await self.db.delete(period)
        await self.db.commit()

    # ── Transitions ──────────────────────────────────────────────────────────

    def _check(self, period: WagePeriod, action: str) -> None:
        if period.status == "locked":
            raise PeriodLockedError(period.period_code)
        if period.status not in VALID_TRANSITIONS[action]:
            raise InvalidTransitionError("wage period", period.status, action)

    def _marker_stale(self, period: WagePeriod) -> bool:
        since = period.calculating_since
        if since is None:
            return True
        if since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)
        return since < datetime.now(timezone.utc) - timedelta(seconds=settings.CALCULATION_LOCK_TIMEOUT_SECONDS)

    async def refresh_unresolved(self, period: WagePeriod) -> int:
        pending = await count_pending(self.db, period.project_id, period.start_date, period.end_date)
        period.has_unresolved_discrepancies = pending > 0
        return pending

    async def _transition(self, period_id: uuid.UUID, action: str, actor_id: uuid.UUID | None) -> WagePeriod:
        period = await self.get(period_id)
        self._check(period, action)
        if action == "approve":
            pending = await self.refresh_unresolved(period)
            if pending:
                code = period.period_code
                await self.db.rollback()
                raise UnresolvedDiscrepanciesError(code, pending)

        old_status = period.status
        now = datetime.now(timezone.utc)
        period.status = TARGET_STATUS[action]
        prefix = {"approve": "approved", "mark_paid": "paid", "lock": "locked"}[action]
        setattr(period, f"{prefix}_by", actor_id)
        setattr(period, f"{prefix}_at", now)
        write_audit(
            self.db, entity_type="wage_period", entity_id=period.id, action=action,
            user_id=actor_id, project_id=period.project_id,
            old_values={"status": old_status}, new_values={"status": period.status},
        )
        await self.db.commit()
        logger.info("Wage period %s: %s -> %s", period.period_code, old_status, period.status)
        return await self.get(period_id, with_summaries=True)

    async def approve(self, period_id: uuid.UUID, actor_id: uuid.UUID | None = None) -> WagePeriod:
        return await self._transition(period_id, "approve", actor_id)

    async def mark_paid(self, period_id: uuid.UUID, actor_id: uuid.UUID | None = None) -> WagePeriod:
        return await self._transition(period_id, "mark_paid", actor_id)

    async def lock(self, period_id: uuid.UUID, actor_id: uuid.UUID | None = None) -> WagePeriod:
        return await self._transition(period_id, "lock", actor_id)

    # ── Calculation ──────────────────────────────────────────────────────────

    async def _claim(self, period: WagePeriod) -> str:
        token = uuid.uuid4().hex
        now = datetime.now(timezone.utc)
        stale_before = now - timedelta(seconds=settings.CALCULATION_LOCK_TIMEOUT_SECONDS)
        result = await self.db.execute(
            update(WagePeriod)
            .where(
                WagePeriod.id == period.id,
                WagePeriod.status.in_(VALID_TRANSITIONS["calculate"]),
                or_(WagePeriod.calculation_token.is_(None), WagePeriod.calculating_since < stale_before),
            )
            .values(calculation_token=token, calculating_since=now)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        if result.rowcount == 0:
            current = await self.get(period.id)
            self._check(current, "calculate")
            raise CalculationInProgressError(period.id)
        return token

    async def _release(self, period_id: uuid.UUID, token: str) -> None:
        await self.db.execute(
            update(WagePeriod)
            .where(WagePeriod.id == period_id, WagePeriod.calculation_token == token)
            .values(calculation_token=None, calculating_since=None)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

    def _replace_summaries(self, period: WagePeriod, computed: list[DCWageSummary]) -> None:
        """Make period.summaries equal to `computed`, reusing rows that keep their id."""
        current = {s.id: s for s in period.summaries}
        replacement = []
        for summary in computed:
            existing = current.get(summary.id)
            if existing is None:
                replacement.append(summary)
                continue
            for column in SUMMARY_COLUMNS:
                setattr(existing, column, getattr(summary, column))
            replacement.append(existing)
        period.summaries = replacement

    async def calculate(self, period_id: uuid.UUID, actor_id: uuid.UUID | None = None) -> WagePeriod:
        period = await self.get(period_id)
        self._check(period, "calculate")
        token = await self._claim(period)

        try:
            period = await self.get(period_id, with_summaries=True)
            computed = await WageCalculator(self.db).compute(period)

            if period.calculation_token != token:
                raise ConcurrentUpdateError(f"Calculation claim on {period.period_code} was taken over")
            old_status = period.status
            self._replace_summaries(period, computed)
            for name, value in period_totals(computed).items():
                setattr(period, name, value)
            await self.refresh_unresolved(period)
            period.status = "calculated"
            period.calculated_by = actor_id
            period.calculated_at = datetime.now(timezone.utc)
            period.calculation_token = None
            period.calculating_since = None
            write_audit(
                self.db, entity_type="wage_period", entity_id=period.id, action="calculate",
                user_id=actor_id, project_id=period.project_id,
                old_values={"status": old_status},
                new_values={"status": "calculated", "total_workers": len(computed), "total_net": period.total_net},
            )
            await self.db.commit()
        except (Exception, asyncio.CancelledError):
            await self.db.rollback()
            await self._release(period_id, token)
            raise

        logger.info(
            "Wage period %s calculated: %d workers, net %s",
            period.period_code, period.total_workers, period.total_net,
        )
        return await self.get(period_id, with_summaries=True)

    # ── Additional line items ────────────────────────────────────────────────

    async def add_item(self, period_id: uuid.UUID, kind: str, data, actor_id: uuid.UUID | None = None):
        """Attach a one-off income or expense line to a worker; rejected once the period is locked."""
        period = await self.get(period_id)
        if period.status == "locked":
            raise PeriodLockedError(period.period_code)
        if await self.db.get(DailyContractor, data.contractor_id) is None:
            raise NotFoundError("DailyContractor", data.contractor_id)
        model = AdditionalIncome if kind == "income" else AdditionalExpense
        item = model(wage_period_id=period.id, created_by=actor_id, **data.model_dump())
        self.db.add(item)
        await self.db.flush()
        write_audit(
            self.db, entity_type="wage_period", entity_id=period.id, action=f"add_{kind}",
            user_id=actor_id, project_id=period.project_id,
            new_values={"item_id": item.id, "contractor_id": data.contractor_id, "amount": data.amount},
        )
        await self.db.commit()
        await self.db.refresh(item)
        return item

    async def list_items(self, period_id: uuid.UUID, kind: str) -> list:
        await self.get(period_id)
        model = AdditionalIncome if kind == "income" else AdditionalExpense
        result = await self.db.execute(
            select(model).where(model.wage_period_id == period_id).order_by(model.created_at)
        )
        return list(result.scalars().all())
