"""
LateRecordService: derives late arrivals from scans.

The first arrival scan (regular_in or late) of a worker's day after 08:00
makes a LateRecord. Arriving 15 minutes or more late costs one hour of the
worker's hourly rate and the record is included in the wage calculation.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dcpayroll.models.contractor import DailyContractor
from dcpayroll.models.late_record import LateRecord
from dcpayroll.services.period_guard import in_spans, locked_spans
from dcpayroll.services.rate_cards import RateCardService
from dcpayroll.services.scan_rules import EXPECTED_ARRIVAL, LATE_DEDUCTION_THRESHOLD_MINUTES, late_minutes_for
from dcpayroll.services.scan_store import ScanEventStore
from dcpayroll.services.wage_calculator import ZERO, money

logger = logging.getLogger(__name__)

ARRIVAL_TAGS = ("regular_in", "late")


@dataclass
class LateSyncResult:
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped_locked: int = 0
    warnings: list[str] = field(default_factory=list)


def late_deduction(late_minutes: int, hourly_rate: Decimal | None) -> Decimal:
    if hourly_rate is None or late_minutes < LATE_DEDUCTION_THRESHOLD_MINUTES:
        return ZERO
    return money(hourly_rate)


class LateRecordService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.rate_cards = RateCardService(db)

    async def sync(self, project_id: uuid.UUID, start: date, end: date) -> LateSyncResult:
        result = LateSyncResult()
        locked = await locked_spans(self.db, project_id, start, end)

        arrivals = {}
        for event in await ScanEventStore(self.db).in_range(project_id, start, end):
            if event.scan_type not in ARRIVAL_TAGS:
                continue
            key = (event.contractor_id, event.work_date)
            if key not in arrivals or event.scan_datetime < arrivals[key].scan_datetime:
                arrivals[key] = event

        existing = await self.db.execute(
            select(LateRecord).where(
                LateRecord.project_id == project_id,
                LateRecord.late_date >= start,
                LateRecord.late_date <= end,
            )
        )
        records = {(r.contractor_id, r.late_date): r for r in existing.scalars().all()}

        numbers = {}
        if arrivals:
            rows = await self.db.execute(
                select(DailyContractor.id, DailyContractor.employee_number)
                .where(DailyContractor.id.in_({k[0] for k in arrivals}))
            )
            numbers = {row.id: row.employee_number for row in rows}

        rate_cache: dict[tuple[uuid.UUID, date], Decimal | None] = {}
        for (contractor_id, work_date), event in sorted(arrivals.items(), key=lambda kv: (kv[0][1], str(kv[0][0]))):
            if in_spans(work_date, locked):
                result.skipped_locked += 1
                continue
            minutes = late_minutes_for(event.scan_datetime, event.scan_type)
            record = records.get((contractor_id, work_date))
            if minutes <= 0 and record is None:
                continue

            if (contractor_id, work_date) not in rate_cache:
                profile = await self.rate_cards.income_profile_at(contractor_id, work_date)
                rate_cache[(contractor_id, work_date)] = Decimal(profile.hourly_rate) if profile else None
            rate = rate_cache[(contractor_id, work_date)]
            if rate is None and minutes >= LATE_DEDUCTION_THRESHOLD_MINUTES:
                result.warnings.append(
                    f"{numbers.get(contractor_id, contractor_id)} late on {work_date.isoformat()}: "
                    "no income profile, no deduction"
                )
            deduction = late_deduction(minutes, rate)
            values = {
                "scan_time": event.scan_datetime,
                "expected_time": EXPECTED_ARRIVAL,
                "late_minutes": max(minutes, 0),
                "late_deduction": deduction,
                "included_in_wage_calculation": deduction > 0,
            }

            if record is None:
                self.db.add(LateRecord(
                    project_id=project_id, contractor_id=contractor_id, late_date=work_date, **values
                ))
                result.created += 1
            elif any(_differs(getattr(record, k), v) for k, v in values.items()):
                for k, v in values.items():
                    setattr(record, k, v)
                result.updated += 1
            else:
                result.unchanged += 1

        await self.db.commit()
        logger.info(
            "Late records %s..%s: %d created, %d updated, %d warnings",
            start, end, result.created, result.updated, len(result.warnings),
        )
        return result

    async def list_records(
        self,
        project_id: uuid.UUID,
        start: date,
        end: date,
        contractor_id: uuid.UUID | None = None,
    ) -> list[LateRecord]:
        q = select(LateRecord).where(
            LateRecord.project_id == project_id,
            LateRecord.late_date >= start,
            LateRecord.late_date <= end,
        )
        if contractor_id:
            q = q.where(LateRecord.contractor_id == contractor_id)
        result = await self.db.execute(q.order_by(LateRecord.late_date))
        return list(result.scalars().all())


def _differs(current, new) -> bool:
    if isinstance(new, Decimal) and current is not None:
        return Decimal(current) != new
    return current != new
