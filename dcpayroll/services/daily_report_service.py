"""
DailyReportService: the daily report store.

Reports dated inside a locked wage period cannot be created, edited or
deleted. Every change bumps the version and leaves an audit entry.
"""
import uuid
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dcpayroll.core.exceptions import ConcurrentUpdateError, NotFoundError, ValidationError
from dcpayroll.models.contractor import DailyContractor
from dcpayroll.models.daily_report import DailyReport
from dcpayroll.models.project import Project
from dcpayroll.services.audit import snapshot, write_audit
from dcpayroll.services.period_guard import assert_unlocked
from dcpayroll.services.scan_rules import SUB_PERIODS

MAX_MINUTES = {sp.work_type: sp.max_hours * 60 for sp in SUB_PERIODS}

AUDITED_FIELDS = (
    "work_date", "start_time", "end_time", "work_type", "is_overnight",
    "manual_hours", "task_name", "notes", "is_deleted", "version",
)


def check_report_hours(report: DailyReport) -> None:
    """Raises TimeRangeError for reversed ranges and ValidationError above the work-type maximum."""
    minutes = report.worked_minutes
    limit = MAX_MINUTES[report.work_type]
    if minutes is not None and report.manual_hours is None and minutes > limit:
        raise ValidationError(
            f"{report.work_type} report exceeds the maximum of {limit // 60} hours"
        )


class DailyReportService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _ensure_refs(self, project_id: uuid.UUID, contractor_id: uuid.UUID) -> None:
        if await self.db.get(Project, project_id) is None:
            raise NotFoundError("Project", project_id)
        if await self.db.get(DailyContractor, contractor_id) is None:
            raise NotFoundError("DailyContractor", contractor_id)

    async def create(self, data, user_id: uuid.UUID | None = None) -> DailyReport:
        await self._ensure_refs(data.project_id, data.contractor_id)
        await assert_unlocked(self.db, data.project_id, data.work_date)

        report = DailyReport(**data.model_dump(), created_by=user_id, updated_by=user_id)
        check_report_hours(report)
        self.db.add(report)
        await self.db.flush()
        write_audit(
            self.db, entity_type="daily_report", entity_id=report.id, action="create",
            user_id=user_id, project_id=report.project_id,
            new_values=snapshot(report, AUDITED_FIELDS),
        )
        await self.db.commit()
        await self.db.refresh(report)
        return report

    async def create_many(self, data, user_id: uuid.UUID | None = None) -> list[DailyReport]:
        await assert_unlocked(self.db, data.project_id, data.work_date)
        reports = []
        for contractor_id in data.contractor_ids:
            await self._ensure_refs(data.project_id, contractor_id)
            report = DailyReport(
                project_id=data.project_id,
                contractor_id=contractor_id,
                work_date=data.work_date,
                start_time=data.start_time,
                end_time=data.end_time,
                work_type=data.work_type,
                is_overnight=data.is_overnight,
                task_name=data.task_name,
                notes=data.notes,
                created_by=user_id,
                updated_by=user_id,
            )
            check_report_hours(report)
            self.db.add(report)
            reports.append(report)
        await self.db.flush()
        for report in reports:
            write_audit(
                self.db, entity_type="daily_report", entity_id=report.id, action="create",
                user_id=user_id, project_id=report.project_id,
                new_values=snapshot(report, AUDITED_FIELDS),
            )
        await self.db.commit()
        return reports

    async def get(self, report_id: uuid.UUID) -> DailyReport:
        report = await self.db.get(DailyReport, report_id)
        if report is None or report.is_deleted:
            raise NotFoundError("DailyReport", report_id)
        return report

    async def update(self, report_id: uuid.UUID, data, user_id: uuid.UUID | None = None) -> DailyReport:
        report = await self.get(report_id)
        changes = data.model_dump(exclude_unset=True)
        expected_version = changes.pop("expected_version", None)
        if expected_version is not None and expected_version != report.version:
            raise ConcurrentUpdateError(
                f"Daily report {report_id} was changed by someone else "
                f"(version {report.version}, expected {expected_version})"
            )

        await assert_unlocked(self.db, report.project_id, report.work_date)
        if "work_date" in changes and changes["work_date"] != report.work_date:
            await assert_unlocked(self.db, report.project_id, changes["work_date"])

        old_values = snapshot(report, AUDITED_FIELDS)
        for field, value in changes.items():
            setattr(report, field, value)
        check_report_hours(report)
        report.version += 1
        report.updated_by = user_id

        write_audit(
            self.db, entity_type="daily_report", entity_id=report.id, action="update",
            user_id=user_id, project_id=report.project_id,
            old_values=old_values, new_values=snapshot(report, AUDITED_FIELDS),
        )
        await self.db.commit()
        await self.db.refresh(report)
        return report

    async def delete(self, report_id: uuid.UUID, user_id: uuid.UUID | None = None) -> None:
        report = await self.get(report_id)
        await assert_unlocked(self.db, report.project_id, report.work_date)
        report.is_deleted = True
        report.version += 1
        report.updated_by = user_id
        write_audit(
            self.db, entity_type="daily_report", entity_id=report.id, action="delete",
            user_id=user_id, project_id=report.project_id,
        )
        await self.db.commit()

    async def list_reports(
        self,
        project_id: uuid.UUID,
        start: date,
        end: date,
        contractor_id: uuid.UUID | None = None,
        work_type: str | None = None,
    ) -> list[DailyReport]:
        q = select(DailyReport).where(
            DailyReport.project_id == project_id,
            DailyReport.work_date >= start,
            DailyReport.work_date <= end,
            DailyReport.is_deleted == False,
        )
        if contractor_id:
            q = q.where(DailyReport.contractor_id == contractor_id)
        if work_type:
            q = q.where(DailyReport.work_type == work_type)
        result = await self.db.execute(q.order_by(DailyReport.work_date, DailyReport.start_time))
        return list(result.scalars().all())

    async def for_worker_date(self, contractor_id: uuid.UUID, work_date: date, project_id: uuid.UUID) -> list[DailyReport]:
        result = await self.db.execute(
            select(DailyReport).where(
                DailyReport.contractor_id == contractor_id,
                DailyReport.work_date == work_date,
                DailyReport.project_id == project_id,
                DailyReport.is_deleted == False,
            ).order_by(DailyReport.start_time, DailyReport.created_at)
        )
        return list(result.scalars().all())


def total_report_minutes(reports) -> int | None:
    """Sum of worked minutes; None when no report has a defined duration."""
    known = [r.worked_minutes for r in reports if r.worked_minutes is not None]
    return sum(known) if known else None

