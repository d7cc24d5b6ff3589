"""
ResolutionWorkflow: moves a pending discrepancy to a terminal status.

    update_dr  Type1, Type2  align the worker's daily reports with the scans  -> fixed
    create_dr  Type3         create daily reports from the scan session       -> fixed
    verify     any           accept as is                                     -> verified
    ignore     any           exclude from approval blocking                   -> ignored

All checks run before anything is written.
"""
import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from dcpayroll.core.exceptions import (
    ConcurrentUpdateError, InvalidTransitionError, NotFoundError, ResolutionMethodError, ValidationError,
)
from dcpayroll.core.locks import discrepancy_locks
from dcpayroll.models.daily_report import DailyReport
from dcpayroll.models.discrepancy import Discrepancy
from dcpayroll.services import time_normalizer
from dcpayroll.services.audit import snapshot, write_audit
from dcpayroll.services.daily_report_service import AUDITED_FIELDS, DailyReportService
from dcpayroll.services.period_guard import assert_unlocked, refresh_unresolved_flags
from dcpayroll.services.scan_session_builder import ScanSession
from dcpayroll.services.scan_store import ScanEventStore

logger = logging.getLogger(__name__)

ALLOWED_TYPES = {
    "update_dr": ("Type1", "Type2"),
    "create_dr": ("Type3",),
    "verify": ("Type1", "Type2", "Type3"),
    "ignore": ("Type1", "Type2", "Type3"),
}

TARGET_STATUS = {
    "update_dr": "fixed",
    "create_dr": "fixed",
    "verify": "verified",
    "ignore": "ignored",
}

CREATED_TASK_NAME = "From scan data"


def _primary(reports: list[DailyReport]) -> DailyReport:
    """The report that absorbs a manual correction: the regular one, else the earliest."""
    for report in reports:
        if report.work_type == "regular":
            return report
    return reports[0]


class ResolutionWorkflow:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.reports = DailyReportService(db)

    async def get(self, discrepancy_id: uuid.UUID) -> Discrepancy:
        discrepancy = await self.db.get(Discrepancy, discrepancy_id)
        if discrepancy is None:
            raise NotFoundError("Discrepancy", discrepancy_id)
        return discrepancy

    async def resolve(self, discrepancy_id: uuid.UUID, action, actor_id: uuid.UUID | None = None) -> Discrepancy:
        discrepancy = await self.get(discrepancy_id)
        key = (discrepancy.project_id, discrepancy.contractor_id, discrepancy.work_date)

        async with discrepancy_locks.hold(key):
            result = await self.db.execute(
                select(Discrepancy)
                .where(Discrepancy.id == discrepancy_id)
                .execution_options(populate_existing=True)
            )
            discrepancy = result.scalar_one()

            if discrepancy.discrepancy_type not in ALLOWED_TYPES[action.method]:
                raise ResolutionMethodError(action.method, discrepancy.discrepancy_type)
            if discrepancy.status != "pending":
                raise InvalidTransitionError("discrepancy", discrepancy.status, action.method)
            await assert_unlocked(self.db, discrepancy.project_id, discrepancy.work_date)

            old_values = snapshot(discrepancy, ("status", "resolution_method", "resolution_note"))
            try:
                if action.method == "update_dr":
                    await self._update_reports(discrepancy, action, actor_id)
                elif action.method == "create_dr":
                    await self._create_reports(discrepancy, action, actor_id)

                discrepancy.status = TARGET_STATUS[action.method]
                discrepancy.resolution_method = action.method
                discrepancy.resolution_note = action.note
                discrepancy.resolved_by = actor_id
                discrepancy.resolved_at = datetime.now(timezone.utc)
                write_audit(
                    self.db, entity_type="discrepancy", entity_id=discrepancy.id, action="resolve",
                    user_id=actor_id, project_id=discrepancy.project_id,
                    old_values=old_values,
                    new_values={
                        "status": discrepancy.status,
                        "resolution_method": action.method,
                        "resolution_note": action.note,
                        "updated_hours": action.updated_hours,
                    },
                )
                await self.db.flush()
                await refresh_unresolved_flags(
                    self.db, discrepancy.project_id, discrepancy.work_date, discrepancy.work_date
                )
                await self.db.commit()
            except StaleDataError:
                await self.db.rollback()
                raise ConcurrentUpdateError(f"Discrepancy {discrepancy_id} was changed concurrently")
            except Exception:
                await self.db.rollback()
                raise

        logger.info("Discrepancy %s resolved via %s", discrepancy_id, action.method)
        await self.db.refresh(discrepancy)
        return discrepancy

    async def _session(self, discrepancy: Discrepancy) -> ScanSession | None:
        return await ScanEventStore(self.db).session_for(
            discrepancy.project_id, discrepancy.contractor_id, discrepancy.work_date
        )

    async def _update_reports(self, discrepancy: Discrepancy, action, actor_id) -> None:
        reports = await self.reports.for_worker_date(
            discrepancy.contractor_id, discrepancy.work_date, discrepancy.project_id
        )
        if not reports:
            raise ValidationError(
                f"No daily report left for {discrepancy.work_date.isoformat()}; use create_dr instead"
            )

        targets: dict[uuid.UUID, int] = {}
        if action.updated_hours is not None:
            primary = _primary(reports)
            others = sum(r.worked_minutes or 0 for r in reports if r.id != primary.id)
            remaining = time_normalizer.hours_to_minutes(action.updated_hours) - others
            if remaining < 0:
                raise ValidationError(
                    f"updated_hours {action.updated_hours} is below the {time_normalizer.to_hours(others):.2f} h "
                    "already reported in other daily reports"
                )
            targets[primary.id] = remaining
        else:
            session = await self._session(discrepancy)
            scanned = session.minutes_by_work_type() if session else {}
            by_type: dict[str, list[DailyReport]] = {}
            for report in reports:
                by_type.setdefault(report.work_type, []).append(report)
            for work_type, typed in by_type.items():
                primary = _primary(typed)
                for report in typed:
                    targets[report.id] = scanned.get(work_type, 0) if report is primary else 0
            # Scanned work types nobody reported go to the primary report
            unreported = sum(m for t, m in scanned.items() if t not in by_type)
            if unreported:
                targets[_primary(reports).id] += unreported

        for report in reports:
            if report.id in targets and report.worked_minutes != targets[report.id]:
                self._rewrite(report, targets[report.id], actor_id)

    def _rewrite(self, report: DailyReport, minutes: int, actor_id) -> None:
        old_values = snapshot(report, AUDITED_FIELDS)
        report.manual_hours = time_normalizer.quantize_hours(time_normalizer.to_hours(minutes))
        report.version += 1
        report.updated_by = actor_id
        write_audit(
            self.db, entity_type="daily_report", entity_id=report.id, action="update",
            user_id=actor_id, project_id=report.project_id,
            old_values=old_values, new_values=snapshot(report, AUDITED_FIELDS),
        )

    async def _create_reports(self, discrepancy: Discrepancy, action, actor_id) -> None:
        session = await self._session(discrepancy)
        if session is None or not session.sub_sessions:
            raise ValidationError(
                f"No matched scan session on {discrepancy.work_date.isoformat()} to create a report from"
            )

        created = []
        for sub in session.sub_sessions:
            overnight = sub.end.date() > sub.start.date()
            report = DailyReport(
                project_id=discrepancy.project_id,
                contractor_id=discrepancy.contractor_id,
                work_date=discrepancy.work_date,
                start_time=sub.start.time().replace(second=0, microsecond=0),
                end_time=sub.end.time().replace(second=0, microsecond=0),
                work_type=sub.work_type,
                is_overnight=overnight,
                task_name=CREATED_TASK_NAME,
                notes=action.note,
                created_by=actor_id,
                updated_by=actor_id,
            )
            # Pin the scanned value when the minute-truncated range (or the cap) disagrees
            if report.worked_minutes != sub.minutes:
                report.manual_hours = time_normalizer.quantize_hours(sub.hours)
            self.db.add(report)
            created.append(report)

        if action.updated_hours is not None:
            primary = _primary(created)
            others = sum(r.worked_minutes or 0 for r in created if r is not primary)
            remaining = time_normalizer.hours_to_minutes(action.updated_hours) - others
            if remaining < 0:
                raise ValidationError(
                    f"updated_hours {action.updated_hours} is below the scanned hours of the other sub-periods"
                )
            primary.manual_hours = time_normalizer.quantize_hours(time_normalizer.to_hours(remaining))

        await self.db.flush()
        for report in created:
            write_audit(
                self.db, entity_type="daily_report", entity_id=report.id, action="create",
                user_id=actor_id, project_id=report.project_id,
                new_values=snapshot(report, AUDITED_FIELDS),
            )

    async def list_discrepancies(
        self,
        project_id: uuid.UUID,
        start: date | None = None,
        end: date | None = None,
        status: str | None = None,
        discrepancy_type: str | None = None,
        contractor_id: uuid.UUID | None = None,
    ) -> list[Discrepancy]:
        q = select(Discrepancy).where(Discrepancy.project_id == project_id)
        if start:
            q = q.where(Discrepancy.work_date >= start)
        if end:
            q = q.where(Discrepancy.work_date <= end)
        if status:
            q = q.where(Discrepancy.status == status)
        if discrepancy_type:
            q = q.where(Discrepancy.discrepancy_type == discrepancy_type)
        if contractor_id:
            q = q.where(Discrepancy.contractor_id == contractor_id)
        result = await self.db.execute(q.order_by(Discrepancy.work_date, Discrepancy.severity))
        return list(result.scalars().all())
